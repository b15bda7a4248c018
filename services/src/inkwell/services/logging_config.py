"""Structured logging helpers for the review services."""

from __future__ import annotations

import json
import logging
import logging.config
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_SECRET_VALUE_RE = re.compile(r"sk-[A-Za-z0-9_-]{16,}|Bearer\s+[A-Za-z0-9._~+/=-]{8,}")
_SECRET_KEY_NAMES = {
    "api_key",
    "apikey",
    "authorization",
    "bearer",
    "credential",
    "secret",
    "token",
    "x-api-key",
}


def _is_secret_key(key: str | None) -> bool:
    if not key:
        return False
    lowered = key.lower()
    return lowered in _SECRET_KEY_NAMES or lowered.endswith("_api_key")


def scrub_value(value: Any, *, key: str | None = None) -> Any:
    if isinstance(value, Mapping):
        return {inner_key: scrub_value(inner, key=str(inner_key)) for inner_key, inner in value.items()}
    if isinstance(value, (list, tuple, set)):
        return type(value)(scrub_value(item, key=key) for item in value)
    if isinstance(value, str):
        if _is_secret_key(key):
            return "[REDACTED]"
        sanitized = _EMAIL_RE.sub("[REDACTED_EMAIL]", value)
        return _SECRET_VALUE_RE.sub("[REDACTED_SECRET]", sanitized)
    return value


def scrub_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a sanitized copy of ``payload`` suitable for logging."""

    return {key: scrub_value(value, key=str(key)) for key, value in payload.items()}


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra_payload", None)
        if isinstance(extra, Mapping):
            payload.update(scrub_payload(extra))
        return json.dumps(payload, ensure_ascii=False, default=str)


LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "inkwell.services.logging_config.JsonFormatter",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        }
    },
    "loggers": {
        "uvicorn.access": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "inkwell.services": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}


def configure_logging(level: str | None = None) -> None:
    """Apply the structured logging configuration."""

    config = json.loads(json.dumps(LOGGING_CONFIG))
    if level:
        config["loggers"]["inkwell.services"]["level"] = level.upper()
    logging.config.dictConfig(config)


__all__ = ["JsonFormatter", "LOGGING_CONFIG", "configure_logging", "scrub_payload"]
