"""Database driver layer for dbsink."""

from dbsink.drivers.base import Connection, Driver, PreparedStatement
from dbsink.drivers.dbapi import DBAPIConnection, DBAPIDriver, DBAPIStatement
from dbsink.drivers.loader import DRIVER_ENTRY_POINT_GROUP, load_driver

__all__ = [
    "Driver",
    "Connection",
    "PreparedStatement",
    "DBAPIDriver",
    "DBAPIConnection",
    "DBAPIStatement",
    "DRIVER_ENTRY_POINT_GROUP",
    "load_driver",
]
