"""
dbsink - batched relational-database output sink for record pipelines.

Records are bound onto a prepared insert statement, accumulated into
batches and executed once a configurable number of rows is pending.
Any DB-API 2.0 module can serve as the database driver.
"""

__version__ = "0.1.0"

from dbsink.runtime.config import SinkConfig, load_config
from dbsink.sinks.base import BaseSink
from dbsink.sinks.batch_writer import BatchWriter, WriterState
from dbsink.sinks.builder import SinkBuilder
from dbsink.sql.types import SQLTypeTag

__all__ = [
    "__version__",
    "BaseSink",
    "BatchWriter",
    "SinkBuilder",
    "SinkConfig",
    "SQLTypeTag",
    "WriterState",
    "load_config",
]
