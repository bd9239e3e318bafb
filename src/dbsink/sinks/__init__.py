"""Output sinks for dbsink."""

from dbsink.sinks.base import BaseSink
from dbsink.sinks.batch_writer import BatchWriter, WriterState
from dbsink.sinks.builder import SinkBuilder

__all__ = ["BaseSink", "BatchWriter", "SinkBuilder", "WriterState"]
