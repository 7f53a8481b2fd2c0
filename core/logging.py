"""
Structured logging for the plan engine.

JSON lines in production (one object per record, `extra_fields` merged in),
plain text in development. Raw client addresses never leave the process:
any structured field that would carry one is replaced before formatting.

Usage:
    logger.info(
        "createPlan.received",
        extra={"extra_fields": {"request_id": request_id, "ip_hash": ip_hash}},
    )
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict, Mapping
from core.config import settings

# Structured fields that may only ever hold hashed values
REDACTED_FIELDS = frozenset({"ip", "client_ip", "remote_addr", "x-forwarded-for"})
REDACTED = "[redacted]"

_NOISY_LOGGERS = ("sqlalchemy.engine", "urllib3", "redis", "sentry_sdk")


def scrub_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of `fields` with raw address keys redacted."""
    return {
        key: REDACTED if key.lower() in REDACTED_FIELDS else value
        for key, value in fields.items()
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, Mapping):
            log_data.update(scrub_fields(extra_fields))

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Development format; structured fields are appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, Mapping) and extra_fields:
            pairs = " ".join(f"{k}={v}" for k, v in scrub_fields(extra_fields).items())
            line = f"{line} | {pairs}"
        return line


def setup_logging():
    """
    Configure application-wide logging.

    JSON when LOG_FORMAT is "json" or the environment is production.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
