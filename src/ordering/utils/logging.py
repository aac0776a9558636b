"""Logging for the marketplace services.

Standard library handlers carry the output, structlog renders it: JSON in
production and staging (or wherever ``LOG_FORMAT=json``), a console renderer
everywhere else. With a log directory configured, payment flow records also
land in their own ``payments.log`` for reconciliation against the gateway.

Gateway secrets never reach a handler. ``redact_secrets`` masks the auth
token, request signatures and merchant key wherever they appear in an event,
form fields nested in a dict included.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

ENV_LOG_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

SECRET_KEYS = frozenset({"authtoken", "auth_token", "signdata", "sign_data", "merchant_key", "merchantkey"})
MASK = "***"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Libraries that are too chatty below WARNING
QUIET_LOGGERS = ("urllib3", "asyncio", "protean", "httpx")


def _environment() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    """Log level from ``LOG_LEVEL``, else the environment's default."""
    return os.getenv("LOG_LEVEL", ENV_LOG_LEVELS.get(_environment(), "INFO")).upper()


def uses_json_output() -> bool:
    log_format = os.getenv("LOG_FORMAT", "").lower()
    if log_format in ("json", "console"):
        return log_format == "json"
    return _environment() in ("production", "staging")


def _scrub(key, value):
    if isinstance(key, str) and key.lower() in SECRET_KEYS:
        return MASK if value else value
    if isinstance(value, dict):
        return {k: _scrub(k, v) for k, v in value.items()}
    return value


def redact_secrets(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor masking gateway secrets in an event."""
    return {key: _scrub(key, value) for key, value in event_dict.items()}


class PaymentRecords(logging.Filter):
    """Pass only records from the payment flow."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == "payments" or record.name.startswith("payments.")


def _rotating_file(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: str | None = None) -> None:
    """Route all records to stdout, and to rotating files under ``log_dir`` (or ``LOG_DIR``)."""
    log_level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    log_dir = log_dir or os.getenv("LOG_DIR")
    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)

        payments_handler = _rotating_file(path / "payments.log", log_level)
        payments_handler.addFilter(PaymentRecords())

        root_logger.addHandler(_rotating_file(path / "marketplace.log", log_level))
        root_logger.addHandler(_rotating_file(path / "marketplace_error.log", logging.ERROR))
        root_logger.addHandler(payments_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_structlog() -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        redact_secrets,
    ]

    if uses_json_output():
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | None = None) -> None:
    setup_stdlib_logging(log_dir)
    setup_structlog()


def add_context(**kwargs: Any) -> None:
    """Bind values onto every event logged from this context, e.g. the order number of a callback."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
