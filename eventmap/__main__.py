"""Run the site with uvicorn: ``python -m eventmap``."""

import uvicorn

from eventmap.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("eventmap.main:app", host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
