"""
Structured logging for signet.

Every record is an event name plus keyword fields. With JSON output on,
each line is one object:

    {"timestamp": ..., "level": ..., "logger": ..., "message": <event>, **fields}

Usage:
    from signet.observability.logging import get_logger
    logger = get_logger(__name__)
    logger.warning("node_skipped", reason="missing identity", index=3)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict


class StructuredLogFormatter(logging.Formatter):
    """JSON formatter; error records also carry their source location."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "structured_data", {}))

        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """Stdlib logger wrapper taking an event name plus keyword fields."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event: str, fields: Dict[str, Any]) -> None:
        self._logger.log(level, event, extra={"structured_data": fields})

    def debug(self, event: str, **fields):
        self._log(logging.DEBUG, event, fields)

    def info(self, event: str, **fields):
        self._log(logging.INFO, event, fields)

    def warning(self, event: str, **fields):
        self._log(logging.WARNING, event, fields)

    def error(self, event: str, **fields):
        self._log(logging.ERROR, event, fields)


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Install a single stderr handler on the `signet` logger.

    Calling it again replaces the handler, so the latest level and
    format always apply.
    """
    package_logger = logging.getLogger("signet")
    package_logger.setLevel(getattr(logging, level.upper()))
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    package_logger.addHandler(handler)

    # Model downloads are chatty
    logging.getLogger("sentence_transformers").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
