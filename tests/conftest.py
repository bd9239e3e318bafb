"""Pytest configuration and shared fixtures for dbsink tests."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from dbsink.runtime.config import SinkConfig
from dbsink.sinks.batch_writer import BatchWriter
from tests.fixtures.fake_driver import RecordingDriver


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    """Undo root logger changes made by setup_logging during a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Return a sample sink configuration dictionary."""
    return {
        "driver": "sqlite3",
        "url": ":memory:",
        "query": "INSERT INTO t VALUES (?, ?)",
        "batch_size": 2,
        "column_types": ["INTEGER", "VARCHAR"],
    }


@pytest.fixture
def mock_statement() -> MagicMock:
    """Return a mock prepared statement."""
    return MagicMock(name="statement")


@pytest.fixture
def mock_connection(mock_statement: MagicMock) -> MagicMock:
    """Return a mock connection that prepares `mock_statement`."""
    connection = MagicMock(name="connection")
    connection.prepare.return_value = mock_statement
    return connection


@pytest.fixture
def mock_driver(mock_connection: MagicMock, monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Return a mock driver and make the writer resolve every identifier to it."""
    driver = MagicMock(name="driver")
    driver.connect.return_value = mock_connection
    monkeypatch.setattr("dbsink.sinks.batch_writer.load_driver", lambda identifier: driver)
    return driver


@pytest.fixture
def make_writer(mock_driver: MagicMock) -> Any:
    """Return a factory for writers wired to the mock driver."""

    def _make(**overrides: Any) -> BatchWriter:
        settings: dict[str, Any] = {
            "driver": "mock",
            "url": "jdbc:test",
            "query": "INSERT INTO t VALUES (?,?)",
            "batch_size": 2,
            "column_types": ["INTEGER", "VARCHAR"],
        }
        settings.update(overrides)
        return BatchWriter(SinkConfig(**settings))

    return _make


@pytest.fixture
def recording_driver() -> Iterator[type[RecordingDriver]]:
    """Return the RecordingDriver class with a clean connection registry."""
    RecordingDriver.connections = []
    yield RecordingDriver
    RecordingDriver.connections = []


@pytest.fixture
def sqlite_db(tmp_path: Path) -> str:
    """Return the path of a SQLite database with an `events` table."""
    path = tmp_path / "events.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE events (id INTEGER, name TEXT, score REAL, payload BLOB)")
    conn.commit()
    conn.close()
    return str(path)
