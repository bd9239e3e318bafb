"""Structured logging for dbsink."""

from __future__ import annotations

import json
import logging
import sys
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any

# Attributes every LogRecord carries; anything else arrived through `extra`.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    Render log records as one JSON object per line.

    Context passed through ``extra`` (the writer's ``instance_index`` and
    ``total_instances``) is copied to the top level of the object.
    Warnings and errors carry a ``source`` of ``file:line``.
    """

    def __init__(self, include_extra: bool = True) -> None:
        super().__init__()
        self._include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno >= logging.WARNING:
            payload["source"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        if self._include_extra:
            payload.update(
                (key, _jsonable(value))
                for key, value in vars(record).items()
                if key not in _RECORD_ATTRS and not key.startswith("_")
            )

        return json.dumps(payload, default=str)


def _jsonable(value: Any) -> Any:
    """Convert bound parameter values to JSON-friendly forms."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class ContextLogger(logging.LoggerAdapter[logging.Logger]):
    """
    Logger adapter that automatically includes context fields.

    The batch writer uses it to tag every diagnostic with the parallel
    instance it belongs to.

    Example:
        logger = ContextLogger(
            logging.getLogger(__name__),
            {"instance_index": 2, "total_instances": 4}
        )
        logger.warning("Unmanaged sql type")
        # JSON output includes "instance_index": 2, "total_instances": 4
    """

    def process(  # type: ignore[override]
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        """Add context fields to the log record."""
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(level: str = "INFO", json_format: bool = False) -> logging.Logger:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, use JSON formatting

    Returns:
        Configured root logger
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))

    root.handlers = []

    handler = logging.StreamHandler(sys.stderr)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root.addHandler(handler)

    return root


def get_context_logger(name: str, **context: Any) -> ContextLogger:
    """
    Get a logger with automatic context fields.

    Args:
        name: Logger name (usually __name__)
        **context: Context fields added to every record; None values are skipped

    Returns:
        ContextLogger with the specified context
    """
    fields = {key: value for key, value in context.items() if value is not None}
    return ContextLogger(logging.getLogger(name), fields)
