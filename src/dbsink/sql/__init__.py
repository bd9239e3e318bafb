"""SQL type metadata for dbsink."""

from dbsink.sql.types import BIND_SETTERS, SQLTypeTag, TypeTag, setter_for, tag_name

__all__ = ["SQLTypeTag", "TypeTag", "BIND_SETTERS", "setter_for", "tag_name"]
