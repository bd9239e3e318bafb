"""Driver resolution for dbsink."""

from __future__ import annotations

import logging
from importlib.metadata import entry_points

from dbsink.drivers.base import Driver
from dbsink.drivers.dbapi import DBAPIDriver
from dbsink.runtime.errors import DriverLoadError
from dbsink.utils.importlib import load_class, load_module

logger = logging.getLogger(__name__)

DRIVER_ENTRY_POINT_GROUP = "dbsink.drivers"


def load_driver(identifier: str) -> Driver:
    """
    Resolve a driver identifier to a driver instance.

    Resolution order:
    1. ``package.module:ClassName`` - a `Driver` subclass, instantiated
       without arguments
    2. A name registered in the ``dbsink.drivers`` entry-point group
    3. A DB-API 2.0 module name such as ``sqlite3`` or ``psycopg2``

    Args:
        identifier: Driver identifier from the sink configuration

    Returns:
        A ready-to-connect driver

    Raises:
        DriverLoadError: If the identifier cannot be resolved
    """
    if not identifier:
        raise DriverLoadError("No driver identifier supplied")

    logger.debug(f"Resolving driver: {identifier}")

    try:
        if ":" in identifier:
            return _instantiate(load_class(identifier), identifier)

        for ep in entry_points(group=DRIVER_ENTRY_POINT_GROUP):
            if ep.name == identifier:
                return _instantiate(ep.load(), identifier)

        return DBAPIDriver(load_module(identifier))
    except DriverLoadError:
        raise
    except Exception as e:
        raise DriverLoadError(
            f"Database driver not found: {identifier}",
            details={"driver": identifier, "error": str(e)},
        ) from e


def _instantiate(cls: object, identifier: str) -> Driver:
    if not isinstance(cls, type) or not issubclass(cls, Driver):
        raise DriverLoadError(
            f"'{identifier}' does not refer to a Driver subclass",
            details={"driver": identifier},
        )
    return cls()
