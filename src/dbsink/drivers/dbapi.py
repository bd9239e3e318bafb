"""Adapter exposing any DB-API 2.0 (PEP 249) module as a dbsink driver."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from types import ModuleType
from typing import Any

from dbsink.drivers.base import Connection, Driver, PreparedStatement
from dbsink.sql.types import TypeTag

logger = logging.getLogger(__name__)

PARAMSTYLES = {"qmark", "format", "numeric", "named", "pyformat"}


def translate_placeholders(statement: str, paramstyle: str) -> tuple[str, int]:
    """
    Rewrite ``?`` placeholders into the given DB-API paramstyle.

    Placeholders inside single- or double-quoted literals are left alone.
    For the ``format`` and ``pyformat`` styles every literal ``%`` is
    doubled, since those drivers interpret ``%`` anywhere in the query.

    Args:
        statement: SQL text using ``?`` positional placeholders
        paramstyle: Target paramstyle

    Returns:
        Tuple of (rewritten SQL, number of placeholders)

    Raises:
        ValueError: If the paramstyle is not a DB-API paramstyle
    """
    if paramstyle not in PARAMSTYLES:
        raise ValueError(f"Unsupported paramstyle: {paramstyle!r}")

    percent_escape = paramstyle in ("format", "pyformat")
    out: list[str] = []
    quote: str | None = None
    count = 0

    for char in statement:
        if quote is not None:
            if char == quote:
                quote = None
            out.append("%%" if percent_escape and char == "%" else char)
            continue
        if char in ("'", '"'):
            quote = char
            out.append(char)
        elif char == "?":
            count += 1
            out.append(_placeholder(paramstyle, count))
        elif char == "%" and percent_escape:
            out.append("%%")
        else:
            out.append(char)

    return "".join(out), count


def _placeholder(paramstyle: str, position: int) -> str:
    if paramstyle == "qmark":
        return "?"
    if paramstyle == "format":
        return "%s"
    if paramstyle == "numeric":
        return f":{position}"
    if paramstyle == "named":
        return f":p{position}"
    return f"%(p{position})s"


def _check_type(value: Any, expected: type | tuple[type, ...], kind: str) -> None:
    if isinstance(value, bool) and expected is not bool:
        raise TypeError(f"{kind} parameter does not accept bool")
    if not isinstance(value, expected):
        raise TypeError(
            f"{kind} parameter requires {_type_names(expected)}, "
            f"got {type(value).__name__}"
        )


def _type_names(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _check_int(value: Any, bits: int, kind: str) -> int:
    _check_type(value, int, kind)
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise ValueError(f"{value} is out of range for {kind} ({bits}-bit signed)")
    return int(value)


def _check_float(value: Any, kind: str) -> float:
    _check_type(value, (float, int), kind)
    try:
        return float(value)
    except OverflowError as e:
        raise ValueError(f"{value} is out of range for {kind}") from e


class DBAPIStatement(PreparedStatement):
    """
    Batch of parameter rows for a DB-API cursor.

    Rows are collected in memory and submitted with
    ``cursor.executemany()`` followed by ``connection.commit()``.
    """

    def __init__(
        self,
        connection: Any,
        cursor: Any,
        sql: str,
        parameter_count: int,
        paramstyle: str,
    ) -> None:
        self._connection = connection
        self._cursor = cursor
        self._sql = sql
        self._parameter_count = parameter_count
        self._named = paramstyle in ("named", "pyformat")
        self._current: dict[int, Any] = {}
        self._rows: list[Any] = []

    @property
    def sql(self) -> str:
        """The statement text as sent to the driver."""
        return self._sql

    @property
    def parameter_count(self) -> int:
        return self._parameter_count

    @property
    def queued_rows(self) -> int:
        return len(self._rows)

    def _set(self, index: int, value: Any) -> None:
        if not 1 <= index <= self._parameter_count:
            raise IndexError(
                f"Parameter index {index} out of range (1..{self._parameter_count})"
            )
        self._current[index] = value

    def set_null(self, index: int, tag: TypeTag) -> None:
        self._set(index, None)

    def set_object(self, index: int, value: Any) -> None:
        self._set(index, value)

    def set_boolean(self, index: int, value: bool) -> None:
        _check_type(value, bool, "BOOLEAN")
        self._set(index, value)

    def set_string(self, index: int, value: str) -> None:
        _check_type(value, str, "VARCHAR")
        self._set(index, value)

    def set_byte(self, index: int, value: int) -> None:
        self._set(index, _check_int(value, 8, "TINYINT"))

    def set_short(self, index: int, value: int) -> None:
        self._set(index, _check_int(value, 16, "SMALLINT"))

    def set_int(self, index: int, value: int) -> None:
        self._set(index, _check_int(value, 32, "INTEGER"))

    def set_long(self, index: int, value: int) -> None:
        self._set(index, _check_int(value, 64, "BIGINT"))

    def set_float(self, index: int, value: float) -> None:
        self._set(index, _check_float(value, "REAL"))

    def set_double(self, index: int, value: float) -> None:
        self._set(index, _check_float(value, "DOUBLE"))

    def set_decimal(self, index: int, value: Decimal) -> None:
        _check_type(value, Decimal, "DECIMAL")
        self._set(index, value)

    def set_date(self, index: int, value: date) -> None:
        if isinstance(value, datetime):
            raise TypeError("DATE parameter requires date, got datetime")
        _check_type(value, date, "DATE")
        self._set(index, value)

    def set_time(self, index: int, value: time) -> None:
        _check_type(value, time, "TIME")
        self._set(index, value)

    def set_timestamp(self, index: int, value: datetime) -> None:
        _check_type(value, datetime, "TIMESTAMP")
        self._set(index, value)

    def set_bytes(self, index: int, value: bytes) -> None:
        _check_type(value, (bytes, bytearray, memoryview), "VARBINARY")
        self._set(index, bytes(value))

    def add_batch(self) -> None:
        missing = [i for i in range(1, self._parameter_count + 1) if i not in self._current]
        if missing:
            raise ValueError(f"No value specified for parameter(s) {missing}")

        if self._named:
            row: Any = {f"p{i}": self._current[i] for i in range(1, self._parameter_count + 1)}
        else:
            row = tuple(self._current[i] for i in range(1, self._parameter_count + 1))
        self._rows.append(row)
        self._current = {}

    def execute_batch(self) -> int:
        rows, self._rows = self._rows, []
        if not rows:
            return 0
        self._cursor.executemany(self._sql, rows)
        self._connection.commit()
        logger.debug(f"Executed batch of {len(rows)} rows")
        return len(rows)

    def close(self) -> None:
        self._current = {}
        self._rows = []
        self._cursor.close()


class DBAPIConnection(Connection):
    """Wraps a DB-API connection object."""

    def __init__(self, raw: Any, paramstyle: str) -> None:
        self._raw = raw
        self._paramstyle = paramstyle

    @property
    def raw(self) -> Any:
        """The underlying DB-API connection."""
        return self._raw

    def prepare(self, statement: str) -> DBAPIStatement:
        sql, count = translate_placeholders(statement, self._paramstyle)
        cursor = self._raw.cursor()
        return DBAPIStatement(self._raw, cursor, sql, count, self._paramstyle)

    def close(self) -> None:
        self._raw.close()


class DBAPIDriver(Driver):
    """
    Driver backed by a DB-API 2.0 module such as ``sqlite3`` or ``psycopg2``.

    Credentials are passed as the ``user`` and ``password`` keyword
    arguments suggested by PEP 249.
    """

    def __init__(self, module: ModuleType) -> None:
        if not callable(getattr(module, "connect", None)):
            raise TypeError(f"Module '{module.__name__}' has no connect() function")
        paramstyle = getattr(module, "paramstyle", "qmark")
        if paramstyle not in PARAMSTYLES:
            raise TypeError(
                f"Module '{module.__name__}' declares unsupported paramstyle {paramstyle!r}"
            )
        self._module = module
        self.paramstyle: str = paramstyle

    @property
    def module(self) -> ModuleType:
        return self._module

    def connect(
        self,
        url: str,
        username: str | None = None,
        password: str | None = None,
    ) -> DBAPIConnection:
        if username is None:
            raw = self._module.connect(url)
        else:
            raw = self._module.connect(url, user=username, password=password)
        return DBAPIConnection(raw, self.paramstyle)
