"""Observability helpers for dbsink."""

from dbsink.obs.logging import ContextLogger, JSONFormatter, get_context_logger, setup_logging
from dbsink.obs.metrics import WriterMetrics

__all__ = [
    "ContextLogger",
    "JSONFormatter",
    "WriterMetrics",
    "get_context_logger",
    "setup_logging",
]
