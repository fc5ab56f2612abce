"""
Logging for pgdocs.

pgdocs is a library, so by default it only attaches a `NullHandler` to the
``pgdocs`` logger and leaves output to the host application. Applications
that want pgdocs' own output call `configure_logging()`, which installs a
console or JSON handler on the ``pgdocs`` namespace only.

Usage:
    from pgdocs.utils.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", json_logs=True)
    log = get_logger(__name__)
    log.info("[CONNECT] people", extra={"table": "people", "mode": "hybrid"})
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "pgdocs"

# Present on every LogRecord; any other attribute was passed via `extra=`.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def _json_formatter(record: logging.LogRecord) -> str:
    """Serialize `record` and its `extra=` fields as one JSON object."""
    payload: Dict[str, Any] = {
        "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    fields = {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and key not in payload
    }
    # A dict passed as extra={"extra": {...}} is flattened into the payload.
    nested = fields.pop("extra", None)
    if isinstance(nested, dict):
        fields.update(nested)
    payload.update(fields)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(
    level: Optional[str] = None,
    json_logs: Optional[bool] = None,
) -> None:
    """
    Send pgdocs log output to stderr.

    Parameters
    ----------
    level : str | None
        Level name for the ``pgdocs`` logger. Defaults to ``LOG_LEVEL``.
    json_logs : bool | None
        Emit one JSON object per line. Defaults to ``LOG_JSON``.

    Other loggers, the root logger included, are left untouched.
    """
    if level is None or json_logs is None:
        from pgdocs.config import get_settings

        settings = get_settings()
        level = level if level is not None else settings.log_level
        json_logs = json_logs if json_logs is not None else settings.log_json
    level = level.upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "pgdocs": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "loggers": {
                PACKAGE_LOGGER: {
                    "handlers": ["pgdocs"],
                    "level": level,
                    "propagate": False,
                }
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the ``pgdocs`` namespace; the package logger when `name` is None."""
    if not name or name == PACKAGE_LOGGER:
        return logging.getLogger(PACKAGE_LOGGER)
    if not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


__all__ = ["PACKAGE_LOGGER", "configure_logging", "get_logger", "JsonFormatter"]
