"""
Logging setup shared by the CLI, the web app and the fetchers.

Everything goes through standard library logging. Lines are human-readable
by default; ``LOG_JSON=true`` switches to one JSON object per line, with any
``extra=`` fields (rows, partition ranges, durations) promoted to top-level
keys so a log collector can filter on them.

    configure_logging(level="INFO", json_logs=True)
    log = get_logger(__name__)
    log.info("Finished range query", extra={"range": "10 < id <= 20", "rows": 3})

The connection pool and uvicorn's access log are held at WARNING; the page
service already logs one line per request.
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

_QUIET_LOGGERS: Dict[str, str] = {
    "psycopg.pool": "WARNING",
    "uvicorn.access": "WARNING",
}


def _payload(record: logging.LogRecord) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for key, value in record.__dict__.items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            payload[key] = value
    # a nested extra={"extra": {...}} dict is flattened as well
    if isinstance(getattr(record, "extra", None), dict):
        payload.update(record.extra)
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return payload


def _json_formatter(record: logging.LogRecord) -> str:
    """One JSON line per record; `extra=` fields become top-level keys."""
    return json.dumps(_payload(record), default=str)


class JsonFormatter(logging.Formatter):
    """Formatter wrapper so dictConfig can build the JSON output."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = _payload(record)
        payload["time"] = self.formatTime(record, "%Y-%m-%dT%H:%M:%S")
        return json.dumps(payload, default=str)


def _logging_config(level: str, formatter: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                "datefmt": "%H:%M:%S",
            },
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "level": level,
            }
        },
        "loggers": {name: {"level": quiet} for name, quiet in _QUIET_LOGGERS.items()},
        "root": {"handlers": ["stderr"], "level": level},
    }


def configure_logging(level: str = "INFO", json_logs: bool = False, force: bool = True) -> None:
    """
    Install the stderr handler on the root logger.

    ``force=False`` leaves an existing setup alone, e.g. when uvicorn or a
    test runner configured logging first.
    """
    if not force and logging.getLogger().handlers:
        return
    logging.config.dictConfig(_logging_config(level.upper(), "json" if json_logs else "console"))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
