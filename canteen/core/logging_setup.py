from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

from canteen.core.config import LOG_LEVEL
from canteen.core.request_context import get_request_id, get_user_id

# key=value / key: value pairs whose value must never reach the logs
_MASKED_KEYS = re.compile(r"\b(password|password_hash|secret|session|cookie)(\s*[:=]\s*)([^\s\",}]+)", re.IGNORECASE)

# Attributes passed through ``extra=`` by ObservabilityMiddleware
_REQUEST_FIELDS = ("endpoint", "method", "status_code", "duration_ms")


def mask_secrets(text: str) -> str:
    return _MASKED_KEYS.sub(r"\1\2***", text)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, stamped with the current request ids."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": mask_secrets(record.getMessage()),
            "request_id": getattr(record, "request_id", None) or get_request_id(),
            "user_id": getattr(record, "user_id", None) or get_user_id(),
        }
        for field in _REQUEST_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info:
            entry["exc_info"] = mask_secrets(self.formatException(record.exc_info))
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(level: str = LOG_LEVEL) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    # uvicorn installs its own handlers; route everything through the root one
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True
        uvicorn_logger.setLevel(level)
