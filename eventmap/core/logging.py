"""One-line JSON logs for the site and the server running it.

Each line carries the request id and signed-in principal of the request that
produced it, plus any ``extra_data`` mapping (the request log puts method,
path, status and timing there). Uvicorn's own loggers are routed through the
same handler; its access log is silenced because ``RequestIdMiddleware``
already writes one line per request.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from ..middlewares import principal_ctx_var, request_id_ctx_var

SERVER_LOGGERS = ("uvicorn", "uvicorn.error")
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class JsonLogFormatter(logging.Formatter):
    def __init__(self, service: str = "eventmap") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "service": self.service,
            "logger": record.name,
            "event": record.getMessage(),
        }
        context = {
            "request_id": request_id_ctx_var.get(),
            "principal": principal_ctx_var.get(),
        }
        payload.update({key: value for key, value in context.items() if value})
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            # Fields passed explicitly win over the ambient context
            payload.update(extra)
        if record.levelno >= logging.WARNING:
            payload["where"] = f"{record.module}:{record.lineno}"
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def setup_logging(level: str = "INFO", service: str = "eventmap") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter(service))
    logging.root.handlers = [handler]
    logging.root.setLevel(level.upper())
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
