import json
import logging
import sys
from datetime import datetime, timezone


_SENSITIVE_KEYS = {"password", "secret", "token", "authorization"}
_DEFAULT_LOG_RECORD_KEYS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__)


def _sanitize_value(data: dict) -> dict:
    """Replace values for keys containing sensitive terms with '********'."""
    sanitized = {}
    for key, value in data.items():
        key_lower = key.lower()
        if any(s in key_lower for s in _SENSITIVE_KEYS):
            sanitized[key] = "********"
        elif isinstance(value, dict):
            sanitized[key] = _sanitize_value(value)
        else:
            sanitized[key] = value
    return sanitized


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Read request_id from contextvars (async-safe)
        from storefront.api.middleware.request_id import request_id_var
        request_id = request_id_var.get("")
        if request_id:
            log_entry["request_id"] = request_id
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        # Extra fields carry ids like product_id / sku / variant_index
        extra = {
            k: v for k, v in record.__dict__.items()
            if k not in _DEFAULT_LOG_RECORD_KEYS and k not in ("message", "asctime")
        }
        if extra:
            log_entry["extra"] = _sanitize_value(extra)
        return json.dumps(log_entry, default=str)


def setup_logging(level: int | None = None) -> None:
    """Configure structured JSON logging for the application."""
    from storefront.core.config import settings

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.setLevel(level or (logging.DEBUG if settings.debug else logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
