"""
Logging helpers for session components.

Modules log through ``get_session_logger``. Applications that ship logs
to a collector can switch the package logger to one-line JSON records
with ``configure_structured_logging``; the controller stamps its id on
every record through ``SessionLoggerAdapter``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "delegated_session"
LOG_LEVEL_ENV_VAR = "DELEGATED_SESSION_LOG_LEVEL"

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        extras[key] = value
    return extras


class StructuredJsonFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Fixed keys are ``timestamp`` (record creation time, UTC), ``level``,
    ``logger`` and ``message``; context such as ``controller_id`` or
    ``principal`` is merged in from ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(_record_extras(record))
        return json.dumps(entry, default=str)


def configure_structured_logging(
    level: int | str | None = None,
    logger_name: str = PACKAGE_LOGGER,
    stream: Any = None,
) -> logging.Logger:
    """Route ``logger_name`` through a JSON handler.

    Only a JSON handler installed by an earlier call is replaced; other
    handlers on the logger are left alone.

    Args:
        level: Level number or name. Defaults to $DELEGATED_SESSION_LOG_LEVEL, else INFO
        logger_name: Logger to configure (default: the package logger)
        stream: Output stream (default: stdout)
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(logger_name)
    for existing in list(logger.handlers):
        if getattr(existing, "_session_json", False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    handler._session_json = True  # type: ignore[attr-defined]

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_session_logger(name: str) -> logging.Logger:
    """Logger named ``delegated_session.<name>``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


class SessionLoggerAdapter(logging.LoggerAdapter):
    """Adds fixed session context (e.g. ``controller_id``) to each record.

    Per-call ``extra`` keys win over the adapter's defaults.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs
