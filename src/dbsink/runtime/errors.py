"""Exception hierarchy for dbsink."""

from typing import Any


class DBSinkError(Exception):
    """Base exception for all dbsink errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DBSinkError):
    """Raised when sink configuration is invalid or missing."""

    pass


class DriverLoadError(DBSinkError):
    """Raised when the configured database driver cannot be resolved."""

    pass


class ConnectionError(DBSinkError):
    """Raised when a connection to the database cannot be established."""

    pass


class StatementPrepareError(DBSinkError):
    """Raised when the insert statement cannot be prepared."""

    pass


class OpenFailure(DBSinkError):
    """
    Raised when a writer cannot be opened.

    The stage error (driver, connection or statement) is chained
    as ``__cause__``.
    """

    pass


class BindTypeMismatchError(DBSinkError):
    """Raised when a field value does not fit its declared SQL type."""

    pass


class BatchExecutionError(DBSinkError):
    """Raised when the database rejects an accumulated batch."""

    pass


class WriteFailure(DBSinkError):
    """
    Raised when a record cannot be written.

    The root cause (bind or batch error) is chained as ``__cause__``.
    The writer stays open.
    """

    pass
