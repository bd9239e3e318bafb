"""Batched relational-database sink for dbsink."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

from dbsink.drivers.base import Connection, Driver, PreparedStatement
from dbsink.drivers.loader import load_driver
from dbsink.obs.logging import get_context_logger
from dbsink.obs.metrics import WriterMetrics
from dbsink.runtime.config import SinkConfig
from dbsink.runtime.errors import (
    BatchExecutionError,
    BindTypeMismatchError,
    ConnectionError,
    DriverLoadError,
    OpenFailure,
    StatementPrepareError,
    WriteFailure,
)
from dbsink.sinks.base import BaseSink
from dbsink.sql.types import SQLTypeTag, TypeTag, setter_for, tag_name

if TYPE_CHECKING:
    from dbsink.sinks.builder import SinkBuilder


class WriterState(str, Enum):
    """Lifecycle states of a BatchWriter."""

    UNOPENED = "unopened"
    ACTIVE = "active"
    CLOSED = "closed"


class BatchWriter(BaseSink):
    """
    Writes records into a table through a prepared insert statement.

    Rows are accumulated on the statement and executed as one batch every
    `batch_size` records; whatever is still pending is executed by
    `close()`. A writer owns exactly one connection and is driven by a
    single thread: `open()`, a serial stream of `write()` calls, then
    `close()`. Parallelism comes from running one writer per pipeline
    instance.

    With `column_types` configured, each field is bound with the typed
    setter for its SQL type tag. Without it, values are handed to the
    driver untyped and a warning is logged for every field, so missing
    type metadata is visible in production logs.

    Writers are created unopened by `SinkBuilder.finish()`.
    """

    def __init__(self, config: SinkConfig) -> None:
        """
        Initialize the writer in the unopened state.

        Args:
            config: Validated, immutable sink configuration
        """
        self._config = config

        self._connection: Connection | None = None
        self._statement: PreparedStatement | None = None
        self._pending_count = 0

        self._state = WriterState.UNOPENED
        self._instance_index: int | None = None
        self._total_instances: int | None = None
        self._log: logging.LoggerAdapter[logging.Logger] = get_context_logger(__name__)
        self._metrics = WriterMetrics()
        self._suppressed_errors: list[Exception] = []

    @staticmethod
    def builder() -> SinkBuilder:
        """Return a new SinkBuilder."""
        from dbsink.sinks.builder import SinkBuilder

        return SinkBuilder()

    @property
    def config(self) -> SinkConfig:
        return self._config

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is WriterState.ACTIVE

    @property
    def pending_count(self) -> int:
        """Records added to the current batch since the last flush."""
        return self._pending_count

    @property
    def metrics(self) -> WriterMetrics:
        return self._metrics

    @property
    def suppressed_errors(self) -> list[Exception]:
        """Errors swallowed by the last effective close()."""
        return list(self._suppressed_errors)

    def open(self, instance_index: int = 0, total_instances: int = 1) -> None:
        """
        Load the driver, connect and prepare the insert statement.

        Args:
            instance_index: Index of this parallel instance (informational)
            total_instances: Number of parallel instances (informational)

        Raises:
            OpenFailure: If the writer is closed or already open, or if the
                driver, connection or statement stage fails. The stage
                error is chained as ``__cause__``.
        """
        if self._state is WriterState.CLOSED:
            raise OpenFailure("Writer is closed and cannot be reopened")
        if self._state is WriterState.ACTIVE:
            raise OpenFailure("Writer is already open")

        self._instance_index = instance_index
        self._total_instances = total_instances
        self._log = get_context_logger(
            __name__,
            instance_index=instance_index,
            total_instances=total_instances,
        )
        self._log.info(
            f"Opening batch writer {instance_index + 1}/{total_instances} "
            f"(driver={self._config.driver}, batch_size={self._config.batch_size})"
        )

        try:
            driver = load_driver(self._config.driver)
            connection = self._connect(driver)
            try:
                statement = self._prepare(connection)
            except StatementPrepareError:
                self._release_connection(connection)
                raise
        except (DriverLoadError, ConnectionError, StatementPrepareError) as e:
            raise OpenFailure(
                f"open() failed: {e.message}",
                details={"driver": self._config.driver, "instance_index": instance_index},
            ) from e

        self._connection = connection
        self._statement = statement
        self._pending_count = 0
        self._state = WriterState.ACTIVE

    def _connect(self, driver: Driver) -> Connection:
        config = self._config
        try:
            if config.has_credentials:
                return driver.connect(config.url, config.username, config.password)
            return driver.connect(config.url)
        except Exception as e:
            raise ConnectionError(
                f"Could not connect to database: {e}",
                details={"driver": config.driver},
            ) from e

    def _prepare(self, connection: Connection) -> PreparedStatement:
        try:
            return connection.prepare(self._config.query)
        except Exception as e:
            raise StatementPrepareError(
                f"Could not prepare statement: {e}",
                details={"query": self._config.query},
            ) from e

    def _release_connection(self, connection: Connection) -> None:
        try:
            connection.close()
        except Exception as e:
            self._log.warning(f"Connection couldn't be closed - {e}")

    def write(self, record: Sequence[Any]) -> None:
        """
        Bind a record onto the statement and add it to the current batch.

        Executes the batch once `batch_size` records are pending.

        Args:
            record: Positional field values; None binds a typed SQL NULL

        Raises:
            WriteFailure: If the writer is not open, or binding, queueing
                or batch execution fails. The writer stays open.
        """
        statement = self._statement
        if self._state is not WriterState.ACTIVE or statement is None:
            raise WriteFailure(f"write() called on a writer that is {self._state.value}")

        column_types = self._config.column_types
        if column_types is not None and len(column_types) != len(record):
            self._log.warning(
                f"Column SQL types array doesn't match arity of passed record! "
                f"Check the passed array... (types={len(column_types)}, arity={len(record)})"
            )

        try:
            if column_types is None:
                for index, value in enumerate(record, start=1):
                    self._bind_untyped(statement, index, value)
            else:
                self._bind_typed(statement, record, column_types)
            statement.add_batch()
        except Exception as e:
            self._metrics.write_errors += 1
            raise WriteFailure(f"write() failed: {e}") from e

        self._pending_count += 1
        self._metrics.records_written += 1

        if self._pending_count >= self._config.batch_size:
            try:
                self._execute_batch(statement)
            except BatchExecutionError as e:
                self._metrics.write_errors += 1
                raise WriteFailure(f"write() failed: {e.message}", details=e.details) from e

    def _bind_untyped(self, statement: PreparedStatement, index: int, value: Any) -> None:
        self._log.warning(
            f"Unknown column type for column {index}. "
            f"Best effort approach to set its value: {value!r}."
        )
        self._metrics.best_effort_binds += 1
        statement.set_object(index, value)

    def _bind_typed(
        self,
        statement: PreparedStatement,
        record: Sequence[Any],
        column_types: Sequence[TypeTag],
    ) -> None:
        for index, value in enumerate(record, start=1):
            if index > len(column_types):
                self._bind_untyped(statement, index, value)
                continue

            tag = column_types[index - 1]
            if value is None or tag == SQLTypeTag.NULL:
                statement.set_null(index, tag)
                continue

            setter = setter_for(tag)
            if setter is None:
                statement.set_object(index, value)
                self._metrics.best_effort_binds += 1
                self._log.warning(
                    f"Unmanaged sql type ({tag_name(tag)}) for column {index}. "
                    f"Best effort approach to set its value: {value!r}."
                )
                continue

            try:
                getattr(statement, setter)(index, value)
            except (TypeError, ValueError) as e:
                raise BindTypeMismatchError(
                    f"Cannot bind {type(value).__name__} value to column {index} "
                    f"declared as {tag_name(tag)}: {e}",
                    details={"column": index, "sql_type": tag_name(tag)},
                ) from e

    def _execute_batch(self, statement: PreparedStatement) -> None:
        rows = self._pending_count
        try:
            statement.execute_batch()
        except Exception as e:
            raise BatchExecutionError(
                f"Batch execution failed: {e}",
                details={"rows": rows},
            ) from e
        finally:
            # Rows are discarded by the driver on failure too.
            self._pending_count = 0

        self._metrics.record_flush(rows)
        self._log.debug(f"Executed batch of {rows} records")

    def flush(self) -> None:
        """
        Execute the pending batch now.

        Does nothing when the writer is not open or nothing is pending.

        Raises:
            WriteFailure: If the database rejects the batch
        """
        if self._statement is None or self._pending_count == 0:
            return

        try:
            self._execute_batch(self._statement)
        except BatchExecutionError as e:
            self._metrics.write_errors += 1
            raise WriteFailure(f"flush() failed: {e.message}", details=e.details) from e

    def close(self) -> list[Exception]:
        """
        Execute pending records and release the statement and connection.

        Never raises. Failures are logged as warnings and returned so
        callers can inspect them. Calling close() again is a no-op.

        Returns:
            Errors suppressed while closing
        """
        if self._state is WriterState.CLOSED:
            return []

        suppressed: list[Exception] = []

        statement = self._statement
        if statement is not None:
            try:
                if self._pending_count > 0:
                    self._execute_batch(statement)
            except Exception as e:
                self._log.warning(f"Pending batch couldn't be executed on close - {e}")
                suppressed.append(e)
            try:
                statement.close()
            except Exception as e:
                self._log.warning(f"Statement couldn't be closed - {e}")
                suppressed.append(e)
            finally:
                self._statement = None
                self._pending_count = 0

        connection = self._connection
        if connection is not None:
            try:
                connection.close()
            except Exception as e:
                self._log.warning(f"Connection couldn't be closed - {e}")
                suppressed.append(e)
            finally:
                self._connection = None

        was_open = self._state is WriterState.ACTIVE
        self._state = WriterState.CLOSED
        self._pending_count = 0
        self._metrics.close_errors += len(suppressed)
        self._suppressed_errors = suppressed

        if was_open:
            self._log.info(
                f"Batch writer closed (records={self._metrics.records_written}, "
                f"batches={self._metrics.batches_executed}, errors={len(suppressed)})"
            )
        return suppressed

    def health_check(self) -> dict[str, Any]:
        """Return health status information."""
        return {
            "type": "BatchWriter",
            "status": "ok" if self._state is WriterState.ACTIVE else self._state.value,
            "driver": self._config.driver,
            "instance_index": self._instance_index,
            "total_instances": self._total_instances,
            "batch_size": self._config.batch_size,
            "pending_count": self._pending_count,
            **self._metrics.to_dict(),
        }
