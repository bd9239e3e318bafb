"""Builder assembling a validated SinkConfig and an unopened BatchWriter."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from dbsink.runtime.config import DEFAULT_BATCH_SIZE, SinkConfig
from dbsink.runtime.errors import ConfigurationError

if TYPE_CHECKING:
    from dbsink.sinks.batch_writer import BatchWriter

logger = logging.getLogger(__name__)


class SinkBuilder:
    """
    Collects sink settings through chained setters.

    Setters only store values. Validation happens in `build_config()`,
    which `finish()` calls before creating the writer.

    Example:
        writer = (
            SinkBuilder()
            .set_driver("sqlite3")
            .set_url("events.db")
            .set_query("INSERT INTO events VALUES (?, ?)")
            .set_batch_size(500)
            .set_column_types(["INTEGER", "VARCHAR"])
            .finish()
        )
    """

    def __init__(self) -> None:
        self._driver: str | None = None
        self._url: str | None = None
        self._username: str | None = None
        self._password: str | None = None
        self._query: str | None = None
        self._batch_size: int = DEFAULT_BATCH_SIZE
        self._column_types: Iterable[Any] | None = None

    @classmethod
    def from_mapping(cls, settings: Mapping[str, Any]) -> SinkBuilder:
        """
        Create a builder from a mapping keyed by SinkConfig field names.

        Raises:
            ConfigurationError: If the mapping contains unknown keys
        """
        setters = {
            "driver": cls.set_driver,
            "url": cls.set_url,
            "username": cls.set_username,
            "password": cls.set_password,
            "query": cls.set_query,
            "batch_size": cls.set_batch_size,
            "column_types": cls.set_column_types,
        }
        unknown = sorted(set(settings) - set(setters))
        if unknown:
            raise ConfigurationError(
                f"Unknown sink configuration keys: {unknown}",
                details={"allowed": sorted(setters)},
            )

        builder = cls()
        for key, value in settings.items():
            setters[key](builder, value)
        return builder

    def set_driver(self, driver: str) -> SinkBuilder:
        self._driver = driver
        return self

    def set_url(self, url: str) -> SinkBuilder:
        self._url = url
        return self

    def set_username(self, username: str | None) -> SinkBuilder:
        self._username = username
        return self

    def set_password(self, password: str | None) -> SinkBuilder:
        self._password = password
        return self

    def set_query(self, query: str) -> SinkBuilder:
        self._query = query
        return self

    def set_batch_size(self, batch_size: int) -> SinkBuilder:
        self._batch_size = batch_size
        return self

    def set_column_types(self, column_types: Iterable[Any] | None) -> SinkBuilder:
        # Snapshot the values; tags are parsed by build_config().
        if isinstance(column_types, Iterable) and not isinstance(column_types, (str, bytes)):
            column_types = tuple(column_types)
        self._column_types = column_types
        return self

    def build_config(self) -> SinkConfig:
        """
        Validate the collected settings and freeze them into a SinkConfig.

        Missing credentials are reported at INFO level only.

        Raises:
            ConfigurationError: If url, query or driver is missing,
                or any value is invalid
        """
        if self._username is None:
            logger.info("Username was not supplied separately.")
        if self._password is None:
            logger.info("Password was not supplied separately.")
        if not self._url:
            raise ConfigurationError("No database URL supplied.")
        if not self._query:
            raise ConfigurationError("No query supplied.")
        if not self._driver:
            raise ConfigurationError("No driver supplied.")

        try:
            return SinkConfig(
                driver=self._driver,
                url=self._url,
                username=self._username,
                password=self._password,
                query=self._query,
                batch_size=self._batch_size,
                column_types=self._column_types,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Sink configuration validation failed: {e}") from e

    def finish(self) -> BatchWriter:
        """
        Build the configuration and return an unopened writer for it.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        from dbsink.sinks.batch_writer import BatchWriter

        return BatchWriter(self.build_config())
