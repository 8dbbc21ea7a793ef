# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
FlowGraph Configuration

Process configuration read from FLOWGRAPH_* environment variables.

Example:
    from flowgraph.config import get_config, set_config, Config

    cfg = get_config()
    set_config(Config(root_scope="model"))
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError

DEFAULT_OPS_SCHEMA = str(Path(__file__).parent / "ops" / "ops.json")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Config:
    """
    Settings shared by the builder, scope and logging layers.

    Attributes:
        root_scope: Name scope prepended to every operation name
        ops_schema_path: Path of the JSON operation schema document
        verbosity: Logger verbosity (0=SILENT .. 4=DEBUG)
        json_logs: Emit log entries as JSON lines
    """

    root_scope: str = ""
    ops_schema_path: str = DEFAULT_OPS_SCHEMA
    verbosity: int = 3
    json_logs: bool = False

    def __post_init__(self):
        if not 0 <= self.verbosity <= 4:
            raise ConfigurationError(
                "verbosity must be between 0 and 4",
                config_key="verbosity",
                config_value=str(self.verbosity),
            )
        if self.root_scope.startswith("/"):
            raise ConfigurationError(
                "root scope must not start with '/'",
                config_key="root_scope",
                config_value=self.root_scope,
            )

    @classmethod
    def from_env(cls) -> "Config":
        """Build a config from FLOWGRAPH_* environment variables."""
        kwargs = {}

        root_scope = os.environ.get("FLOWGRAPH_ROOT_SCOPE")
        if root_scope is not None:
            kwargs["root_scope"] = root_scope

        schema_path = os.environ.get("FLOWGRAPH_OPS_SCHEMA")
        if schema_path:
            kwargs["ops_schema_path"] = schema_path

        verbosity = os.environ.get("FLOWGRAPH_VERBOSITY")
        if verbosity is not None:
            try:
                kwargs["verbosity"] = int(verbosity)
            except ValueError:
                raise ConfigurationError(
                    "FLOWGRAPH_VERBOSITY must be an integer",
                    config_key="FLOWGRAPH_VERBOSITY",
                    config_value=verbosity,
                ) from None

        json_logs = os.environ.get("FLOWGRAPH_JSON_LOGS")
        if json_logs is not None:
            kwargs["json_logs"] = _parse_bool("FLOWGRAPH_JSON_LOGS", json_logs)

        return cls(**kwargs)

    def with_overrides(self, **changes) -> "Config":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        "expected a boolean value", config_key=key, config_value=value
    )


_config: Optional[Config] = None


def get_config() -> Config:
    """Get the process configuration (read from the environment on first use)."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def set_config(config: Config) -> None:
    """Replace the process configuration."""
    global _config
    if not isinstance(config, Config):
        raise ConfigurationError(
            f"expected a Config, got {type(config).__name__}",
        )
    _config = config


def reset_config() -> None:
    """Drop the cached configuration (for testing)."""
    global _config
    _config = None
