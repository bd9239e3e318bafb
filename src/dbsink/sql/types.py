"""SQL type tags and the typed-bind table used by the batch writer."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Union


class SQLTypeTag(IntEnum):
    """
    SQL column type codes.

    Values are the standard JDBC ``java.sql.Types`` codes so that type
    metadata exported from other tools can be used as-is. Codes that have
    no member here are still accepted as plain integers and bound with
    the best-effort fallback.
    """

    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    NULL = 0
    OTHER = 1111
    JAVA_OBJECT = 2000
    DISTINCT = 2001
    STRUCT = 2002
    ARRAY = 2003
    BLOB = 2004
    CLOB = 2005
    REF = 2006
    DATALINK = 70
    BOOLEAN = 16
    ROWID = -8
    NCHAR = -15
    NVARCHAR = -9
    LONGNVARCHAR = -16
    NCLOB = 2011
    SQLXML = 2009
    REF_CURSOR = 2012
    TIME_WITH_TIMEZONE = 2013
    TIMESTAMP_WITH_TIMEZONE = 2014

    @classmethod
    def parse(cls, value: Any) -> TypeTag:
        """
        Convert a tag name or integer code into a type tag.

        Names are matched case-insensitively. Integer codes without a
        member are returned unchanged so that they reach the fallback
        binding path.

        Raises:
            ValueError: If a name is not a known tag
            TypeError: If the value is neither a string nor an integer
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise TypeError(f"Invalid SQL type tag: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return value
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls.__members__[name]
            if name.lstrip("-").isdigit():
                return cls.parse(int(name))
            raise ValueError(f"Unknown SQL type tag: {value!r}")
        raise TypeError(f"Invalid SQL type tag: {value!r}")


TypeTag = Union[SQLTypeTag, int]

# Tag -> PreparedStatement setter. Tags missing here are unmanaged.
BIND_SETTERS: dict[SQLTypeTag, str] = {
    SQLTypeTag.BOOLEAN: "set_boolean",
    SQLTypeTag.BIT: "set_boolean",
    SQLTypeTag.CHAR: "set_string",
    SQLTypeTag.NCHAR: "set_string",
    SQLTypeTag.VARCHAR: "set_string",
    SQLTypeTag.NVARCHAR: "set_string",
    SQLTypeTag.LONGVARCHAR: "set_string",
    SQLTypeTag.LONGNVARCHAR: "set_string",
    SQLTypeTag.TINYINT: "set_byte",
    SQLTypeTag.SMALLINT: "set_short",
    SQLTypeTag.INTEGER: "set_int",
    SQLTypeTag.BIGINT: "set_long",
    SQLTypeTag.REAL: "set_float",
    SQLTypeTag.FLOAT: "set_double",
    SQLTypeTag.DOUBLE: "set_double",
    SQLTypeTag.DECIMAL: "set_decimal",
    SQLTypeTag.NUMERIC: "set_decimal",
    SQLTypeTag.DATE: "set_date",
    SQLTypeTag.TIME: "set_time",
    SQLTypeTag.TIMESTAMP: "set_timestamp",
    SQLTypeTag.BINARY: "set_bytes",
    SQLTypeTag.VARBINARY: "set_bytes",
    SQLTypeTag.LONGVARBINARY: "set_bytes",
}


def setter_for(tag: TypeTag) -> str | None:
    """Return the typed setter name for a tag, or None if it is unmanaged."""
    known = _as_member(tag)
    if known is None:
        return None
    return BIND_SETTERS.get(known)


def tag_name(tag: TypeTag) -> str:
    """Readable name for a tag, including unknown integer codes."""
    known = _as_member(tag)
    return known.name if known is not None else str(tag)


def _as_member(tag: TypeTag) -> SQLTypeTag | None:
    if isinstance(tag, SQLTypeTag):
        return tag
    try:
        return SQLTypeTag(tag)
    except ValueError:
        return None
