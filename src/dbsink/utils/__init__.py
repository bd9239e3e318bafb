"""Utility functions for dbsink."""

from dbsink.utils.importlib import load_class, load_module
from dbsink.utils.time import parse_iso8601, utc_now

__all__ = ["utc_now", "parse_iso8601", "load_class", "load_module"]
