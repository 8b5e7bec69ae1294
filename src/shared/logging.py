"""Logging configuration shared by the tracking, payments and checkout contexts.

Standard library logging handles the sinks (console plus rotating files);
structlog sits on top and renders key/value events. Log event ids, order ids
and provider ids, never cleartext customer details: ``redact_pii`` masks the
known PII keys in case one slips into an event anyway.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Keys that carry shopper identity in checkout, gateway and tracking payloads
PII_KEYS = frozenset(
    {
        "email",
        "phone",
        "first_name",
        "last_name",
        "customer_name",
        "customer_email",
        "customer_phone",
        "cus_email",
        "cus_phone",
        "cus_name",
        "payerReference",
        "address",
        "shipping_address",
    }
)

REDACTED = "[redacted]"

# Libraries whose request logging would duplicate the adapters' own events
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "protean")


def _environment() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or "development").lower()


def get_log_level() -> str:
    """Explicit ``LOG_LEVEL`` wins; otherwise the level follows the environment."""
    return os.getenv("LOG_LEVEL", LEVELS_BY_ENV.get(_environment(), "INFO"))


def _rotating(path: Path, level: int | str) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: str | Path = "logs") -> None:
    level = get_log_level()
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [
        console,
        _rotating(log_dir / "storefront.log", level),
        _rotating(log_dir / "storefront_error.log", logging.ERROR),
    ]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _masked(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: REDACTED if k in PII_KEYS and v is not None else _masked(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_masked(item) for item in value]
    if type(value) is tuple:
        return tuple(_masked(item) for item in value)
    return value


def redact_pii(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor masking PII keys at any depth of nested dicts and lists."""
    for key, value in event_dict.items():
        if key in PII_KEYS and value is not None:
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _masked(value)
    return event_dict


def build_processors(env: str | None = None) -> list:
    env = env or _environment()
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        redact_pii,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
    ]

    if env in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def setup_structlog() -> None:
    structlog.configure(
        processors=build_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | Path | None = None) -> None:
    """Configure all logging for the application.

    ``log_dir`` defaults to ``$LOG_DIR``, then ``./logs``.
    """
    setup_stdlib_logging(log_dir or os.getenv("LOG_DIR", "logs"))
    setup_structlog()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_order_context(order_id: str, **kwargs: Any) -> None:
    """Attach the order id (and any extra ids) to every subsequent log event."""
    structlog.contextvars.bind_contextvars(order_id=order_id, **kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
