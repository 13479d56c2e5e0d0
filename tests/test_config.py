"""Tests for configuration loading and logging setup."""

import importlib
import io
import json
import logging

import pytest

from geofill.config import ConfigError, ConfigValue, GeoFillConfig, load_config
from geofill.context import DEFAULT_CONTEXT, ResolutionContext
from geofill.observability import LogEvent, StructuredHandler, configure_logging


class TestResolutionContext:
    """Immutable resolution context."""

    def test_defaults(self):
        """Default root is US with a sample size of 10."""
        assert DEFAULT_CONTEXT.root_geo_code == "US"
        assert DEFAULT_CONTEXT.lock_sample_size == 10

    def test_invalid_root(self):
        """An empty root geo code is rejected."""
        with pytest.raises(ValueError):
            ResolutionContext(root_geo_code="")

    def test_invalid_sample_size(self):
        """A negative sample size is rejected."""
        with pytest.raises(ValueError):
            ResolutionContext(lock_sample_size=-1)

    def test_frozen(self):
        """Context fields cannot be reassigned."""
        with pytest.raises(Exception):
            DEFAULT_CONTEXT.root_geo_code = "CA"


class TestConfigValue:
    """Single configuration values."""

    def test_env_overrides(self, monkeypatch):
        """The environment wins over a runtime value."""
        v = ConfigValue(default=10, env_var="GEOFILL_TEST_INT")
        v.set(5)
        monkeypatch.setenv("GEOFILL_TEST_INT", "7")
        assert v.get() == 7

    def test_override_beats_env(self, monkeypatch):
        """An explicit override wins over the environment."""
        v = ConfigValue(default=10, env_var="GEOFILL_TEST_INT")
        monkeypatch.setenv("GEOFILL_TEST_INT", "7")
        v.override(3)
        assert v.get() == 3

    def test_bad_env_integer(self, monkeypatch):
        """A non-numeric integer in the environment is a config error."""
        v = ConfigValue(default=10, env_var="GEOFILL_TEST_INT")
        monkeypatch.setenv("GEOFILL_TEST_INT", "seven")
        with pytest.raises(ConfigError):
            v.get()

    def test_validator(self):
        """Values failing the validator are rejected."""
        v = ConfigValue(default="text", validator=lambda x: x in ("json", "text"))
        with pytest.raises(ConfigError):
            v.set("xml")
        with pytest.raises(ConfigError):
            v.override("xml")


class TestGeoFillConfig:
    """Sectioned configuration."""

    def test_defaults(self, monkeypatch):
        """Defaults match the default resolution context and file names."""
        for name in ("GEOFILL_ROOT_GEO", "GEOFILL_LOCK_SAMPLE_SIZE", "GEOFILL_CONFIG_DIR"):
            monkeypatch.delenv(name, raising=False)
        config = GeoFillConfig()
        assert config.to_context() == ResolutionContext()
        assert config.documents.config_dir.get() == "public"
        assert config.file_names()["geo_fallback_map_v1"] == "geo_fallback_map_v1.json"

    def test_env_root(self, monkeypatch):
        """Environment variables feed the resolution context."""
        monkeypatch.setenv("GEOFILL_ROOT_GEO", "CA")
        monkeypatch.setenv("GEOFILL_LOCK_SAMPLE_SIZE", "3")
        ctx = GeoFillConfig().to_context()
        assert ctx.root_geo_code == "CA"
        assert ctx.lock_sample_size == 3

    def test_set_by_path(self, monkeypatch):
        """Dotted paths set values; unknown keys are rejected."""
        monkeypatch.delenv("GEOFILL_LOCK_SAMPLE_SIZE", raising=False)
        config = GeoFillConfig()
        config.set("resolution.lock_sample_size", 4)
        assert config.to_context().lock_sample_size == 4
        with pytest.raises(ConfigError):
            config.set("resolution.nope", 1)

    def test_override_by_path(self, monkeypatch):
        """Dotted-path overrides win over the environment."""
        monkeypatch.setenv("GEOFILL_LOG_LEVEL", "debug")
        config = GeoFillConfig()
        config.override("observability.log_level", "error")
        assert config.observability.log_level.get() == "error"
        with pytest.raises(ConfigError):
            config.override("nope.log_level", "error")

    def test_load_yaml(self, tmp_path, monkeypatch):
        """A YAML file sets section values."""
        monkeypatch.delenv("GEOFILL_ROOT_GEO", raising=False)
        monkeypatch.delenv("GEOFILL_LOG_FORMAT", raising=False)
        p = tmp_path / "geofill.yaml"
        p.write_text("resolution:\n  root_geo_code: CA\nobservability:\n  log_format: json\n", encoding="utf-8")
        config = load_config(p)
        assert config.to_context().root_geo_code == "CA"
        assert config.to_dict()["observability"]["log_format"] == "json"
        assert "root_geo_code: CA" in config.to_yaml()

    def test_load_unknown_key(self, tmp_path):
        """Unknown YAML keys are rejected."""
        p = tmp_path / "geofill.yaml"
        p.write_text("resolution:\n  root: CA\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(p)

    def test_load_missing_file(self, tmp_path):
        """A missing config file is a config error."""
        with pytest.raises(ConfigError):
            load_config(tmp_path / "absent.yaml")


class TestLogging:
    """Logging setup and the structured handler."""

    def test_modules_import(self):
        """Every module that defines or uses log events imports cleanly."""
        for name in ("geofill.observability", "geofill.validators", "geofill.cli"):
            importlib.import_module(name)

    def test_log_event_defaults(self):
        """A log event built from required fields has empty extras."""
        event = LogEvent(timestamp="t", level="info", logger="geofill", message="m")
        assert event.context == {}
        assert event.field_name == ""
        assert event.to_dict() == {"timestamp": "t", "level": "info", "logger": "geofill", "message": "m"}

    def test_structured_handler_emits_json(self):
        """Records become one JSON object per line with only set extras."""
        stream = io.StringIO()
        logger = logging.getLogger("geofill.test_structured")
        handler = StructuredHandler(stream)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            logger.warning("drift on %s", "geo_display_names", extra={"document": "geo_display_names_v1"})
        finally:
            logger.removeHandler(handler)
        event = json.loads(stream.getvalue().strip())
        assert event["level"] == "warning"
        assert event["message"] == "drift on geo_display_names"
        assert event["document"] == "geo_display_names_v1"
        assert "field_name" not in event

    def test_structured_handler_emits_field_name(self):
        """The field_name and error_kind extras are carried through."""
        stream = io.StringIO()
        logger = logging.getLogger("geofill.test_structured_field")
        handler = StructuredHandler(stream)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            logger.error("bad", extra={"field_name": "geo_display_names", "error_kind": "drift"})
        finally:
            logger.removeHandler(handler)
        event = json.loads(stream.getvalue().strip())
        assert event["field_name"] == "geo_display_names"
        assert event["error_kind"] == "drift"

    def test_configure_logging_replaces_handler(self):
        """Reconfiguring keeps a single handler and updates the level."""
        stream = io.StringIO()
        configure_logging("info", "json", stream)
        root = configure_logging("debug", "json", stream)
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        logging.getLogger("geofill.some.module").debug("hello")
        assert json.loads(stream.getvalue().strip())["logger"] == "geofill.some.module"

    def test_configure_logging_rejects_unknown(self):
        """Unknown levels and formats raise ValueError."""
        with pytest.raises(ValueError):
            configure_logging("loud", "text")
        with pytest.raises(ValueError):
            configure_logging("info", "xml")
