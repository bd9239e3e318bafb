"""Runtime configuration and error types for dbsink."""

from dbsink.runtime.errors import (
    BatchExecutionError,
    BindTypeMismatchError,
    ConfigurationError,
    ConnectionError,
    DBSinkError,
    DriverLoadError,
    OpenFailure,
    StatementPrepareError,
    WriteFailure,
)

__all__ = [
    "DBSinkError",
    "ConfigurationError",
    "DriverLoadError",
    "ConnectionError",
    "StatementPrepareError",
    "OpenFailure",
    "BindTypeMismatchError",
    "BatchExecutionError",
    "WriteFailure",
]
