"""
Tests for Configuration Loading and Logging Setup
"""

from __future__ import annotations

import logging

import pytest

from magcancel.config import (
    DEFAULT_CONFIG_PATH,
    get_config_path,
    get_default_config,
    load_config,
    load_config_safe,
    save_config,
)
from magcancel.errors import ConfigError
from magcancel.filtering import AdaptiveFilterConfig
from magcancel.log import PACKAGE_LOGGER, configure_logging


class TestLoadConfig:
    """Tests for YAML loading with fallback to defaults."""

    def test_default_file_matches_defaults(self):
        """Test configs/default.yaml agrees with the hardcoded defaults."""
        config, messages = load_config_safe()

        assert messages == []
        assert config == get_default_config()

    def test_missing_file_falls_back(self, tmp_path):
        """Test a missing file returns defaults and a message."""
        config, messages = load_config_safe(tmp_path / "missing.yaml")

        assert config == get_default_config()
        assert "not found" in messages[0]

    def test_load_config_never_raises(self, tmp_path):
        """Test load_config swallows parse errors into defaults."""
        path = tmp_path / "bad.yaml"
        path.write_text("adaptive_filter: [unclosed\n")

        assert load_config(path) == get_default_config()

    def test_partial_file_is_merged(self, tmp_path):
        """Test keys absent from the file keep their default values."""
        path = tmp_path / "partial.yaml"
        path.write_text("adaptive_filter:\n  algorithm: LMS\n  mu: 0.002\n")

        config = load_config(path)

        assert config["adaptive_filter"]["algorithm"] == "LMS"
        assert config["adaptive_filter"]["mu"] == 0.002
        assert config["adaptive_filter"]["lambda"] == 0.995
        assert config["evaluation"]["convergence_window"] == 480

    def test_non_mapping_file(self, tmp_path):
        """Test a scalar YAML document is reported and ignored."""
        path = tmp_path / "scalar.yaml"
        path.write_text("42\n")

        config, messages = load_config_safe(path)

        assert config == get_default_config()
        assert "not a mapping" in messages[0]

    def test_save_and_reload(self, tmp_path):
        """Test save_config output is read back unchanged."""
        config = get_default_config()
        config["adaptive_filter"]["filter_order"] = 16
        path = tmp_path / "nested" / "saved.yaml"

        save_config(config, path)

        assert load_config(path) == config

    def test_get_config_path(self):
        """Test the .yaml suffix is optional."""
        assert get_config_path("default") == DEFAULT_CONFIG_PATH
        assert get_config_path("default.yaml") == DEFAULT_CONFIG_PATH


class TestAdaptiveFilterConfigFromFile:
    """Tests for AdaptiveFilterConfig.from_config."""

    def test_default_path(self):
        """Test the shipped config selects RLS."""
        config = AdaptiveFilterConfig.from_config()

        assert config.algorithm == "RLS"
        assert config.rls.lambda_ == 0.995

    def test_lenient_missing_file(self, tmp_path):
        """Test a missing file gives the default configuration."""
        assert AdaptiveFilterConfig.from_config(tmp_path / "none.yaml") == AdaptiveFilterConfig()

    def test_strict_rejects_bad_file(self, tmp_path):
        """Test strict loading raises ConfigError on parse failures."""
        path = tmp_path / "bad.yaml"
        path.write_text("adaptive_filter: [unclosed\n")

        with pytest.raises(ConfigError, match="YAML PARSE ERROR"):
            AdaptiveFilterConfig.from_config(path, strict=True)

    def test_strict_rejects_range_warning(self, tmp_path):
        """Test strict loading treats out-of-range values as errors."""
        path = tmp_path / "range.yaml"
        path.write_text("adaptive_filter:\n  algorithm: LMS\n  mu: 5.0\n")

        with pytest.raises(ConfigError, match="RANGE"):
            AdaptiveFilterConfig.from_config(path, strict=True)

    def test_invalid_value_raises_typed_error(self, tmp_path):
        """Test lenient loading still validates the selected parameters."""
        path = tmp_path / "lambda.yaml"
        path.write_text("adaptive_filter:\n  lambda: 0.5\n")

        with pytest.raises(ValueError):
            AdaptiveFilterConfig.from_config(path)

    @pytest.mark.parametrize("body", ["adaptive_filter: [1, 2]\n", "adaptive_filter: 7\n"])
    def test_lenient_non_mapping_section(self, tmp_path, body):
        """Test a list or scalar adaptive_filter section raises ConfigError naming it."""
        path = tmp_path / "section.yaml"
        path.write_text(body)

        with pytest.raises(ConfigError, match="adaptive_filter"):
            AdaptiveFilterConfig.from_config(path)


class TestConfigureLogging:
    """Tests for the package logging setup."""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger(PACKAGE_LOGGER)
        handlers = list(logger.handlers)
        level = logger.level
        yield
        logger.handlers = handlers
        logger.setLevel(level)

    def test_single_stream_handler(self):
        """Test repeated calls do not stack handlers."""
        configure_logging("DEBUG")
        logger = configure_logging("WARNING", show_timestamps=False)

        streams = [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]
        assert len(streams) == 1
        assert logger.level == logging.WARNING

    def test_unknown_level_defaults_to_info(self):
        """Test an unrecognised level name falls back to INFO."""
        logger = configure_logging("chatty")

        assert logger.level == logging.INFO
