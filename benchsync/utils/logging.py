"""
Logging setup for benchsync.

Every module logs through ``get_logger(__name__)``; the CLI calls
``configure_logging`` once. Pass and record events carry bracketed tags
(``[PASS START]``, ``[CREATED]``, ``[CONFLICT]``) plus ``extra=`` fields such as
``kind``, ``direction`` and ``correlation_id``. With ``JSON_LOGS=true`` those
fields become top-level keys of one JSON object per line, which is what a
scheduler or log shipper watching ``benchsync watch`` wants.

Usage:
    from benchsync.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("[PASS START] execution_time", extra={"kind": "execution_time"})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

# Attributes present on every LogRecord; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}


def _json_formatter(record: logging.LogRecord) -> str:
    """One JSON object per record: level, logger, message and every extra field."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for key, value in vars(record).items():
        if key not in _RESERVED_ATTRS:
            payload[key] = value
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    # extra={"extra": {...}} nests; flatten it like the other fields.
    if hasattr(record, "extra") and isinstance(record.extra, dict):
        payload.update(record.extra)
    # Summaries and store sets are not JSON types; str() them.
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
) -> None:
    """
    Install the benchsync handler on the root logger.

    Parameters
    ----------
    level : str
        LOG_LEVEL name ("DEBUG", "INFO", ...). DEBUG adds probe results and
        pool/client creation.
    json_logs : bool
        JSON_LOGS: one JSON object per line instead of the console format.
    force : bool
        When False and the root logger already has handlers (an embedding
        application configured logging), leave that configuration alone.
    """
    if not force and logging.getLogger().handlers:
        return

    formatter_name = "json" if json_logs else "console"

    logging.config.dictConfig(
        {
            "version": 1,
            # Module loggers are created at import time and must keep working.
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                    "level": level,
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
            "loggers": {
                "pymongo": {"level": "WARNING"},
                "psycopg.pool": {"level": "WARNING"},
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
