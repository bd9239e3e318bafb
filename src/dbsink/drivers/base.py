"""Driver interfaces consumed by the batch writer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from dbsink.sql.types import TypeTag


class PreparedStatement(ABC):
    """
    A parameterized statement with positional, 1-based parameters.

    Rows are built by calling one setter per parameter, then queued with
    `add_batch()`. `execute_batch()` submits all queued rows in one round
    trip.

    Typed setters raise TypeError or ValueError when the value does not
    fit the SQL type they bind.
    """

    @abstractmethod
    def set_null(self, index: int, tag: TypeTag) -> None:
        """Bind a SQL NULL of the given type."""
        ...

    @abstractmethod
    def set_object(self, index: int, value: Any) -> None:
        """Bind a value, leaving type inference to the driver."""
        ...

    @abstractmethod
    def set_boolean(self, index: int, value: bool) -> None: ...

    @abstractmethod
    def set_string(self, index: int, value: str) -> None: ...

    @abstractmethod
    def set_byte(self, index: int, value: int) -> None: ...

    @abstractmethod
    def set_short(self, index: int, value: int) -> None: ...

    @abstractmethod
    def set_int(self, index: int, value: int) -> None: ...

    @abstractmethod
    def set_long(self, index: int, value: int) -> None: ...

    @abstractmethod
    def set_float(self, index: int, value: float) -> None: ...

    @abstractmethod
    def set_double(self, index: int, value: float) -> None: ...

    @abstractmethod
    def set_decimal(self, index: int, value: Decimal) -> None: ...

    @abstractmethod
    def set_date(self, index: int, value: date) -> None: ...

    @abstractmethod
    def set_time(self, index: int, value: time) -> None: ...

    @abstractmethod
    def set_timestamp(self, index: int, value: datetime) -> None: ...

    @abstractmethod
    def set_bytes(self, index: int, value: bytes) -> None: ...

    @abstractmethod
    def add_batch(self) -> None:
        """Queue the currently bound parameters as one row."""
        ...

    @abstractmethod
    def execute_batch(self) -> int:
        """
        Execute all queued rows and clear the queue.

        Returns:
            Number of rows submitted
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the statement."""
        ...


class Connection(ABC):
    """An open database connection."""

    @abstractmethod
    def prepare(self, statement: str) -> PreparedStatement:
        """
        Prepare a statement that uses ``?`` positional placeholders.

        Raises:
            Exception: Driver-specific error if the statement is rejected
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""
        ...


class Driver(ABC):
    """
    Entry point of a database driver.

    Implementations are resolved by `dbsink.drivers.load_driver` from a
    ``package.module:ClassName`` path or the ``dbsink.drivers`` entry-point
    group, and must be constructible without arguments.
    """

    @abstractmethod
    def connect(
        self,
        url: str,
        username: str | None = None,
        password: str | None = None,
    ) -> Connection:
        """Open a connection to the database at `url`."""
        ...
