"""
SightSignal Logging

Module loggers share one stderr handler. Level and output mode come from
settings (SIGHTSIGNAL_LOG_LEVEL, SIGHTSIGNAL_DEBUG, SIGHTSIGNAL_LOG_JSON).

Engines attach request context through ``extra``; those fields are appended
as ``key=value`` pairs in text mode and become top-level keys in JSON mode:

    logger = get_logger(__name__)
    logger.debug("Evaluated sighting", extra={"sighting_id": "s-1", "match_count": 2})

    [SIGHTSIGNAL DEBUG] [evaluator] Evaluated sighting sighting_id=s-1 match_count=2
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from .config import get_settings

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def context_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed via ``extra``, in insertion order."""
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class SightSignalFormatter(logging.Formatter):
    """Text lines with trailing context, or one JSON object per record."""

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        if self.json_output:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        module = record.name.rsplit(".", 1)[-1]
        parts = [f"[SIGHTSIGNAL {record.levelname}] [{module}] {record.getMessage()}"]
        parts.extend(f"{key}={value}" for key, value in context_fields(record).items())
        line = " ".join(parts)

        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line

    def _format_json(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="seconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **context_fields(record),
        }
        if record.exc_info:
            payload["exception"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(payload, default=str)


_loggers: dict[str, logging.Logger] = {}
_handler: Optional[logging.Handler] = None


def _shared_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(SightSignalFormatter(json_output=get_settings().log_json))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module name.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger writing through the shared handler at the configured level
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = logging.getLogger(name)
        logger.setLevel(get_settings().log_level_int)
        logger.addHandler(_shared_handler())
        logger.propagate = False
        _loggers[name] = logger
    return logger


def set_log_level(level: int) -> None:
    """Set the level on every SightSignal logger (the CLI's --verbose)."""
    for logger in _loggers.values():
        logger.setLevel(level)


def reset_logging() -> None:
    """
    Return sightsignal.* loggers to stock behaviour for tests.

    Propagation is restored and levels cleared so pytest's caplog sees every
    record; the shared handler is detached and rebuilt on next use. Loggers
    stay cached.
    """
    global _handler

    for name, entry in list(logging.Logger.manager.loggerDict.items()):
        if name.split(".", 1)[0] == "sightsignal" and isinstance(entry, logging.Logger):
            entry.propagate = True
            entry.setLevel(logging.NOTSET)

    if _handler is not None:
        for logger in _loggers.values():
            logger.removeHandler(_handler)
    _handler = None
