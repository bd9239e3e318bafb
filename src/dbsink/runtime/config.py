"""Configuration schema for dbsink using Pydantic."""

from __future__ import annotations

import os
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dbsink.sql.types import SQLTypeTag, TypeTag

DEFAULT_BATCH_SIZE = 5000


class SinkConfig(BaseModel):
    """
    Immutable configuration of one batch writer.

    Instances are produced by `SinkBuilder.build_config()`; `load_config()`
    goes through the builder as well.
    """

    model_config = ConfigDict(frozen=True)

    driver: str = Field(min_length=1)
    url: str = Field(min_length=1)
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    query: str = Field(min_length=1)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    column_types: tuple[SQLTypeTag | int, ...] | None = None

    @field_validator("column_types", mode="before")
    @classmethod
    def parse_column_types(cls, v: Any) -> tuple[TypeTag, ...] | None:
        """Accept tag names, integer codes or SQLTypeTag members."""
        if v is None:
            return None
        if isinstance(v, (str, bytes)) or not hasattr(v, "__iter__"):
            raise ValueError("column_types must be a sequence of type tags")
        try:
            return tuple(SQLTypeTag.parse(item) for item in v)
        except TypeError as e:
            raise ValueError(str(e)) from e

    @property
    def has_credentials(self) -> bool:
        return self.username is not None


def load_config(config_path: str) -> SinkConfig:
    """
    Load and validate sink configuration from a YAML file.

    The sink settings may sit at the top level of the file or under
    a ``sink:`` key.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated SinkConfig instance

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    import yaml

    from dbsink.runtime.errors import ConfigurationError
    from dbsink.sinks.builder import SinkBuilder

    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping, got {type(raw_config).__name__}"
        )
    if isinstance(raw_config.get("sink"), dict):
        raw_config = raw_config["sink"]

    # Recursively expand environment variables in all string values
    raw_config = _expand_env_vars_recursive(raw_config)

    raw_config = _apply_env_overrides(raw_config)

    return SinkBuilder.from_mapping(raw_config).build_config()


def _expand_env_vars_recursive(obj: Any) -> Any:
    """
    Recursively expand environment variable references in all string values.

    Supports ${VAR_NAME} and ${VAR_NAME:-default} syntax.
    """
    if isinstance(obj, str):
        return resolve_env_vars_in_string(obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars_recursive(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars_recursive(item) for item in obj]
    return obj


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply DBSINK_* environment variable overrides to configuration."""
    env_map = {
        "DBSINK_DRIVER": "driver",
        "DBSINK_URL": "url",
        "DBSINK_USERNAME": "username",
        "DBSINK_PASSWORD": "password",
        "DBSINK_BATCH_SIZE": "batch_size",
    }

    for env_var, key in env_map.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value

    return config


def resolve_env_vars_in_string(value: str) -> str:
    """
    Resolve environment variable references in a string.

    Supports ${VAR_NAME} and ${VAR_NAME:-default} syntax.
    """
    pattern = r"\$\{([^}]+)\}"

    def replace(match: re.Match[str]) -> str:
        var_expr = match.group(1)
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.environ.get(var_name, default)
        return os.environ.get(var_expr, match.group(0))

    return re.sub(pattern, replace, value)
