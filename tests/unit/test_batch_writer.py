"""Unit tests for BatchWriter against a mocked driver."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock, call

import pytest

from dbsink.runtime.errors import (
    BatchExecutionError,
    BindTypeMismatchError,
    ConnectionError,
    DriverLoadError,
    OpenFailure,
    StatementPrepareError,
    WriteFailure,
)
from dbsink.sinks.batch_writer import WriterState
from dbsink.sql.types import SQLTypeTag


def _warnings(caplog: Any) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]


class TestOpen:
    """Tests for BatchWriter.open."""

    def test_open_prepares_statement(
        self, make_writer: Any, mock_driver: MagicMock, mock_connection: MagicMock
    ) -> None:
        """Test that open connects and prepares the configured query."""
        writer = make_writer()
        assert writer.state is WriterState.UNOPENED

        writer.open(0, 1)

        mock_driver.connect.assert_called_once_with("jdbc:test")
        mock_connection.prepare.assert_called_once_with("INSERT INTO t VALUES (?,?)")
        assert writer.state is WriterState.ACTIVE
        assert writer.is_open
        assert writer.pending_count == 0

    def test_open_with_credentials(self, make_writer: Any, mock_driver: MagicMock) -> None:
        """Test that credentials are passed when a username is configured."""
        writer = make_writer(username="scott", password="tiger")
        writer.open()

        mock_driver.connect.assert_called_once_with("jdbc:test", "scott", "tiger")

    def test_driver_load_failure(self, make_writer: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a driver resolution failure surfaces as OpenFailure."""

        def fail(identifier: str) -> None:
            raise DriverLoadError(f"Database driver not found: {identifier}")

        monkeypatch.setattr("dbsink.sinks.batch_writer.load_driver", fail)
        writer = make_writer()

        with pytest.raises(OpenFailure) as exc_info:
            writer.open()

        assert isinstance(exc_info.value.__cause__, DriverLoadError)
        assert writer.state is WriterState.UNOPENED

    def test_connection_failure(self, make_writer: Any, mock_driver: MagicMock) -> None:
        """Test that a connect failure surfaces as OpenFailure caused by ConnectionError."""
        mock_driver.connect.side_effect = RuntimeError("refused")
        writer = make_writer()

        with pytest.raises(OpenFailure, match="refused") as exc_info:
            writer.open()

        cause = exc_info.value.__cause__
        assert isinstance(cause, ConnectionError)
        assert isinstance(cause.__cause__, RuntimeError)

    def test_prepare_failure_releases_connection(
        self, make_writer: Any, mock_connection: MagicMock
    ) -> None:
        """Test that a prepare failure closes the new connection."""
        mock_connection.prepare.side_effect = RuntimeError("syntax error")
        writer = make_writer()

        with pytest.raises(OpenFailure) as exc_info:
            writer.open()

        assert isinstance(exc_info.value.__cause__, StatementPrepareError)
        mock_connection.close.assert_called_once()
        assert not writer.is_open

    def test_open_after_close_fails(self, make_writer: Any) -> None:
        """Test that a closed writer cannot be reopened."""
        writer = make_writer()
        writer.open()
        writer.close()

        with pytest.raises(OpenFailure, match="closed"):
            writer.open()

    def test_open_twice_fails(self, make_writer: Any) -> None:
        """Test that opening an active writer fails."""
        writer = make_writer()
        writer.open()

        with pytest.raises(OpenFailure, match="already open"):
            writer.open()


class TestWriteBatching:
    """Tests for batch accumulation and flushing."""

    def test_scenario_three_records_batch_of_two(
        self, make_writer: Any, mock_statement: MagicMock
    ) -> None:
        """Test one automatic flush after two records and a final flush on close."""
        writer = make_writer()
        writer.open()

        writer.write((1, "a"))
        assert mock_statement.execute_batch.call_count == 0
        assert writer.pending_count == 1

        writer.write((2, "b"))
        assert mock_statement.execute_batch.call_count == 1
        assert writer.pending_count == 0

        writer.write((3, "c"))
        assert mock_statement.execute_batch.call_count == 1
        assert writer.pending_count == 1

        assert writer.close() == []
        assert mock_statement.execute_batch.call_count == 2
        assert mock_statement.set_int.call_args_list == [call(1, 1), call(1, 2), call(1, 3)]
        assert mock_statement.set_string.call_args_list == [
            call(2, "a"),
            call(2, "b"),
            call(2, "c"),
        ]
        assert mock_statement.add_batch.call_count == 3

    @pytest.mark.parametrize(
        ("records", "batch_size"),
        [(0, 3), (1, 1), (5, 1), (6, 3), (7, 3), (10, 4), (4, 5000)],
    )
    def test_execute_batch_count(
        self,
        make_writer: Any,
        mock_statement: MagicMock,
        records: int,
        batch_size: int,
    ) -> None:
        """Test floor(N/B) executions during writes plus one on close for a remainder."""
        writer = make_writer(batch_size=batch_size)
        writer.open()

        for i in range(records):
            writer.write((i, str(i)))

        assert mock_statement.execute_batch.call_count == records // batch_size
        writer.close()

        expected = records // batch_size + (1 if records % batch_size else 0)
        assert mock_statement.execute_batch.call_count == expected
        assert mock_statement.add_batch.call_count == records
        assert writer.metrics.records_written == records

    def test_explicit_flush(self, make_writer: Any, mock_statement: MagicMock) -> None:
        """Test that flush executes pending records and is a no-op when empty."""
        writer = make_writer(batch_size=100)
        writer.open()

        writer.flush()
        assert mock_statement.execute_batch.call_count == 0

        writer.write((1, "a"))
        writer.flush()
        assert mock_statement.execute_batch.call_count == 1
        assert writer.pending_count == 0

        writer.close()
        assert mock_statement.execute_batch.call_count == 1

    def test_batch_failure_raises_write_failure(
        self, make_writer: Any, mock_statement: MagicMock
    ) -> None:
        """Test that a rejected batch surfaces as WriteFailure and resets the counter."""
        mock_statement.execute_batch.side_effect = RuntimeError("unique violation")
        writer = make_writer()
        writer.open()
        writer.write((1, "a"))

        with pytest.raises(WriteFailure) as exc_info:
            writer.write((2, "b"))

        cause = exc_info.value.__cause__
        assert isinstance(cause, BatchExecutionError)
        assert cause.details == {"rows": 2}
        assert writer.pending_count == 0
        assert writer.is_open
        assert writer.metrics.write_errors == 1

    def test_write_before_open(self, make_writer: Any) -> None:
        """Test that writing to an unopened writer fails."""
        writer = make_writer()
        with pytest.raises(WriteFailure, match="unopened"):
            writer.write((1, "a"))

    def test_write_after_close(self, make_writer: Any) -> None:
        """Test that writing to a closed writer fails."""
        writer = make_writer()
        writer.open()
        writer.close()
        with pytest.raises(WriteFailure, match="closed"):
            writer.write((1, "a"))


class TestBinding:
    """Tests for typed and best-effort binding."""

    def test_null_value_binds_typed_null(
        self, make_writer: Any, mock_statement: MagicMock
    ) -> None:
        """Test that a None field with VARCHAR binds a typed null at position 2."""
        writer = make_writer()
        writer.open()

        writer.write((1, None))

        mock_statement.set_null.assert_called_once_with(2, SQLTypeTag.VARCHAR)
        mock_statement.set_string.assert_not_called()
        mock_statement.set_object.assert_not_called()

    def test_null_tag_always_binds_null(
        self, make_writer: Any, mock_statement: MagicMock
    ) -> None:
        """Test that a NULL tag binds a typed null even for a non-null value."""
        writer = make_writer(column_types=["NULL", "VARCHAR"])
        writer.open()

        writer.write(("ignored", "x"))

        mock_statement.set_null.assert_called_once_with(1, SQLTypeTag.NULL)
        mock_statement.set_object.assert_not_called()

    @pytest.mark.parametrize(
        ("tag", "value", "setter"),
        [
            ("BOOLEAN", True, "set_boolean"),
            ("BIT", False, "set_boolean"),
            ("CHAR", "x", "set_string"),
            ("LONGNVARCHAR", "x", "set_string"),
            ("TINYINT", 1, "set_byte"),
            ("SMALLINT", 1, "set_short"),
            ("BIGINT", 1, "set_long"),
            ("REAL", 1.5, "set_float"),
            ("FLOAT", 1.5, "set_double"),
            ("DOUBLE", 1.5, "set_double"),
            ("NUMERIC", 1, "set_decimal"),
            ("DATE", "2024-01-15", "set_date"),
            ("TIME", "12:00", "set_time"),
            ("TIMESTAMP", "2024-01-15T12:00:00", "set_timestamp"),
            ("VARBINARY", b"\x00", "set_bytes"),
        ],
    )
    def test_typed_dispatch(
        self,
        make_writer: Any,
        mock_statement: MagicMock,
        tag: str,
        value: Any,
        setter: str,
    ) -> None:
        """Test that each managed tag dispatches to its typed setter."""
        writer = make_writer(column_types=[tag])
        writer.open()

        writer.write((value,))

        getattr(mock_statement, setter).assert_called_once_with(1, value)
        mock_statement.set_object.assert_not_called()

    @pytest.mark.parametrize("tag", ["CLOB", "ARRAY", 9999])
    def test_unmanaged_tag_falls_back(
        self,
        make_writer: Any,
        mock_statement: MagicMock,
        caplog: Any,
        tag: Any,
    ) -> None:
        """Test that an unmanaged tag binds generically, warns, and still adds the row."""
        writer = make_writer(column_types=["INTEGER", tag])
        writer.open()

        writer.write((1, "payload"))

        mock_statement.set_object.assert_called_once_with(2, "payload")
        mock_statement.add_batch.assert_called_once()
        assert writer.pending_count == 1
        messages = _warnings(caplog)
        assert any("Unmanaged sql type" in m and "column 2" in m for m in messages)
        assert writer.metrics.best_effort_binds == 1

    def test_no_types_binds_generically(
        self, make_writer: Any, mock_statement: MagicMock, caplog: Any
    ) -> None:
        """Test best-effort binding with a warning per field when types are absent."""
        writer = make_writer(column_types=None)
        writer.open()

        writer.write((1, "a", None))

        assert mock_statement.set_object.call_args_list == [
            call(1, 1),
            call(2, "a"),
            call(3, None),
        ]
        mock_statement.set_null.assert_not_called()
        messages = [m for m in _warnings(caplog) if "Unknown column type" in m]
        assert len(messages) == 3
        assert messages[1].endswith("column 2. Best effort approach to set its value: 'a'.")

    def test_arity_mismatch_warns_and_proceeds(
        self, make_writer: Any, mock_statement: MagicMock, caplog: Any
    ) -> None:
        """Test that a record longer than the type list warns but is still written."""
        writer = make_writer()
        writer.open()

        writer.write((1, "a", "extra"))

        assert any(
            "doesn't match arity" in m and "(types=2, arity=3)" in m for m in _warnings(caplog)
        )
        mock_statement.set_object.assert_called_once_with(3, "extra")
        mock_statement.add_batch.assert_called_once()

    def test_matching_arity_does_not_warn(self, make_writer: Any, caplog: Any) -> None:
        """Test that a record matching the type list produces no warnings."""
        writer = make_writer()
        writer.open()

        writer.write((1, "a"))

        assert _warnings(caplog) == []

    def test_type_mismatch(self, make_writer: Any, mock_statement: MagicMock) -> None:
        """Test that a setter rejecting the value surfaces as BindTypeMismatchError."""
        mock_statement.set_int.side_effect = TypeError("INTEGER parameter requires int, got str")
        writer = make_writer()
        writer.open()

        with pytest.raises(WriteFailure) as exc_info:
            writer.write(("one", "a"))

        cause = exc_info.value.__cause__
        assert isinstance(cause, BindTypeMismatchError)
        assert cause.details == {"column": 1, "sql_type": "INTEGER"}
        assert isinstance(cause.__cause__, TypeError)
        mock_statement.add_batch.assert_not_called()
        assert writer.pending_count == 0
        assert writer.is_open

    def test_add_batch_failure(self, make_writer: Any, mock_statement: MagicMock) -> None:
        """Test that a driver error while queueing the row surfaces as WriteFailure."""
        mock_statement.add_batch.side_effect = RuntimeError("parameter 2 not set")
        writer = make_writer()
        writer.open()

        with pytest.raises(WriteFailure, match="parameter 2 not set"):
            writer.write((1, "a"))

        assert writer.pending_count == 0


class TestClose:
    """Tests for BatchWriter.close."""

    def test_close_twice(
        self,
        make_writer: Any,
        mock_statement: MagicMock,
        mock_connection: MagicMock,
    ) -> None:
        """Test that a second close is a silent no-op."""
        writer = make_writer()
        writer.open()
        writer.write((1, "a"))

        assert writer.close() == []
        assert writer.close() == []

        assert writer.state is WriterState.CLOSED
        assert writer.pending_count == 0
        mock_statement.close.assert_called_once()
        mock_connection.close.assert_called_once()
        assert mock_statement.execute_batch.call_count == 1

    def test_close_unopened(self, make_writer: Any) -> None:
        """Test that closing a writer that was never opened is harmless."""
        writer = make_writer()
        assert writer.close() == []
        assert writer.state is WriterState.CLOSED

    def test_close_collects_errors(
        self,
        make_writer: Any,
        mock_statement: MagicMock,
        mock_connection: MagicMock,
        caplog: Any,
    ) -> None:
        """Test that shutdown failures are logged and returned instead of raised."""
        flush_error = RuntimeError("flush failed")
        conn_error = RuntimeError("connection reset")
        mock_statement.execute_batch.side_effect = flush_error
        mock_connection.close.side_effect = conn_error

        writer = make_writer(batch_size=10)
        writer.open()
        writer.write((1, "a"))

        suppressed = writer.close()

        assert len(suppressed) == 2
        assert isinstance(suppressed[0], BatchExecutionError)
        assert suppressed[0].__cause__ is flush_error
        assert suppressed[1] is conn_error
        assert writer.suppressed_errors == suppressed
        mock_statement.close.assert_called_once()
        assert writer.pending_count == 0
        assert writer.state is WriterState.CLOSED
        assert writer.metrics.close_errors == 2
        assert len([m for m in _warnings(caplog) if "couldn't be" in m]) == 2

    def test_close_after_failed_flush(
        self, make_writer: Any, mock_statement: MagicMock, mock_connection: MagicMock
    ) -> None:
        """Test that resources are still released after a failed flush during write."""
        mock_statement.execute_batch.side_effect = [RuntimeError("boom"), 0]
        writer = make_writer(batch_size=1)
        writer.open()

        with pytest.raises(WriteFailure):
            writer.write((1, "a"))

        assert writer.close() == []
        mock_statement.close.assert_called_once()
        mock_connection.close.assert_called_once()

    def test_statement_close_failure_still_closes_connection(
        self, make_writer: Any, mock_statement: MagicMock, mock_connection: MagicMock
    ) -> None:
        """Test that a failing statement close does not skip the connection."""
        mock_statement.close.side_effect = RuntimeError("cursor gone")
        writer = make_writer()
        writer.open()

        suppressed = writer.close()

        assert [str(e) for e in suppressed] == ["cursor gone"]
        mock_connection.close.assert_called_once()


class TestLifecycleHelpers:
    """Tests for the context manager, builder shortcut and health check."""

    def test_context_manager(self, make_writer: Any, mock_statement: MagicMock) -> None:
        """Test that the context manager opens and closes the writer."""
        writer = make_writer(batch_size=10)

        with writer:
            writer.write((1, "a"))
            assert writer.is_open

        assert writer.state is WriterState.CLOSED
        assert mock_statement.execute_batch.call_count == 1

    def test_health_check(self, make_writer: Any) -> None:
        """Test health check contents."""
        writer = make_writer()
        writer.open(2, 4)
        writer.write((1, "a"))

        health = writer.health_check()
        assert health["type"] == "BatchWriter"
        assert health["status"] == "ok"
        assert health["instance_index"] == 2
        assert health["total_instances"] == 4
        assert health["pending_count"] == 1
        assert health["records_written"] == 1

        writer.close()
        assert writer.health_check()["status"] == "closed"

    def test_builder_shortcut(self) -> None:
        """Test that BatchWriter.builder returns a fresh builder."""
        from dbsink.sinks.batch_writer import BatchWriter
        from dbsink.sinks.builder import SinkBuilder

        first = BatchWriter.builder()
        assert isinstance(first, SinkBuilder)
        assert first is not BatchWriter.builder()
