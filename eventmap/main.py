from prometheus_fastapi_instrumentator import Instrumentator

from eventmap import create_app
from eventmap.core.config import get_settings
from eventmap.core.logging import setup_logging

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
app = create_app(settings)
Instrumentator().instrument(app).expose(app, include_in_schema=False)
