"""
geofill configuration

Configuration for the command-line layer. The validation and fill core never
reads configuration directly; it receives a ``ResolutionContext`` built by
``GeoFillConfig.to_context()``.

Configuration sources (in order of precedence):
    1. Command-line overrides (--log-level, --log-format)
    2. Environment variables (GEOFILL_*)
    3. Values set at runtime or loaded from a YAML file (--config)
    4. Default values

Copyright (c) 2024 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Optional, TypeVar, Union

import yaml

from geofill.context import DEFAULT_LOCK_SAMPLE_SIZE, DEFAULT_ROOT_GEO_CODE, ResolutionContext
from geofill.core import load_yaml

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration error."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding and validation.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _override: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self._override is not None:
            return self._override
        if self.env_var and self.env_var in os.environ:
            value = self._coerce(os.environ[self.env_var])
            self._check(value)
            return value
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        self._check(value)
        self._value = value

    def override(self, value: T) -> None:
        """Set a value that takes precedence over the environment."""
        self._check(value)
        self._override = value

    def _check(self, value: T) -> None:
        if self.validator and not self.validator(value):
            raise ConfigError(f"Invalid value for config ({self.env_var or self.description}): {value!r}")

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            try:
                return int(value)  # type: ignore
            except ValueError as e:
                raise ConfigError(f"{self.env_var} must be an integer, got {value!r}") from e
        else:
            return value  # type: ignore


@dataclass
class DocumentsConfig:
    """Where the three reference documents live."""
    config_dir: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="public",
        env_var="GEOFILL_CONFIG_DIR",
        description="Directory holding the geo reference documents",
        validator=lambda x: bool(x),
    ))
    accept_lists_file: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="geo_accept_lists_v1.json",
        env_var="GEOFILL_ACCEPT_LISTS_FILE",
        description="Accept-lists + duoarea mapping document",
        validator=lambda x: bool(x),
    ))
    display_names_file: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="geo_display_names_v1.json",
        env_var="GEOFILL_DISPLAY_NAMES_FILE",
        description="Display names document",
        validator=lambda x: bool(x),
    ))
    fallback_map_file: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="geo_fallback_map_v1.json",
        env_var="GEOFILL_FALLBACK_MAP_FILE",
        description="Fallback chains document",
        validator=lambda x: bool(x),
    ))


@dataclass
class ResolutionConfig:
    """Settings copied into the ResolutionContext."""
    root_geo_code: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=DEFAULT_ROOT_GEO_CODE,
        env_var="GEOFILL_ROOT_GEO",
        description="Root geo code every fallback chain ends with",
        validator=lambda x: isinstance(x, str) and bool(x),
    ))
    lock_sample_size: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=DEFAULT_LOCK_SAMPLE_SIZE,
        env_var="GEOFILL_LOCK_SAMPLE_SIZE",
        description="Canonical lines recorded in expected_sorted_first_items",
        validator=lambda x: isinstance(x, int) and x >= 0,
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for logging."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="GEOFILL_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="text",
        env_var="GEOFILL_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class GeoFillConfig:
    """Root configuration."""
    documents: DocumentsConfig = field(default_factory=DocumentsConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)

    def to_context(self) -> ResolutionContext:
        return ResolutionContext(
            root_geo_code=self.resolution.root_geo_code.get(),
            lock_sample_size=self.resolution.lock_sample_size.get(),
        )

    def file_names(self) -> Dict[str, str]:
        """Document file names keyed by document kind."""
        return {
            "geo_accept_lists_v1": self.documents.accept_lists_file.get(),
            "geo_display_names_v1": self.documents.display_names_file.get(),
            "geo_fallback_map_v1": self.documents.fallback_map_file.get(),
        }

    def _value_at(self, path: str) -> ConfigValue:
        obj: Any = self
        parts = path.split(".")
        for part in parts[:-1]:
            if not hasattr(obj, part):
                raise ConfigError(f"Unknown config section: {part}")
            obj = getattr(obj, part)
        attr = getattr(obj, parts[-1], None)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Unknown config key: {path}")
        return attr

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by dotted path.

        Example: config.set("resolution.root_geo_code", "US")
        """
        self._value_at(path).set(value)

    def override(self, path: str, value: Any) -> None:
        """Set a value by dotted path that wins over its environment variable."""
        self._value_at(path).override(value)

    def apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply nested dictionary values; unknown keys are rejected."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                attr = getattr(config_obj, key, None)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{prefix}{key}.")
                else:
                    raise ConfigError(f"Unknown config key: {prefix}{key}")

        apply_to_config(self, data, "")


def load_config(path: Optional[Union[str, Path]] = None) -> GeoFillConfig:
    """Build a configuration from defaults, an optional YAML file and the environment."""
    config = GeoFillConfig()
    if path is None:
        return config

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    data = load_yaml(path)

    if data:
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {path}")
        config.apply_dict(data)
    return config
