"""Tests for configuration and presets."""

import math

import pytest

from tracevec.config import PRESETS, Config
from tracevec.types import ColorMode, ConfigError, PathSimplifyMode


class TestConverterConfig:
    """Test cases for unit derivation."""

    def test_defaults(self):
        """Default user settings map to engine units."""
        cc = Config().into_converter_config()

        assert cc.filter_speckle_area == 16
        assert cc.color_precision_loss == 2
        assert cc.layer_difference == 16
        assert cc.corner_threshold == pytest.approx(math.radians(60))
        assert cc.splice_threshold == pytest.approx(math.radians(45))
        assert cc.mode == PathSimplifyMode.SPLINE
        assert cc.path_precision == 2

    def test_full_precision(self):
        """Eight significant bits means no quantization."""
        cc = Config(color_precision=8, filter_speckle=0).into_converter_config()

        assert cc.color_precision_loss == 0
        assert cc.filter_speckle_area == 0


class TestValidation:
    """Test cases for range checks."""

    @pytest.mark.parametrize("kwargs", [
        {"color_precision": 0},
        {"color_precision": 9},
        {"filter_speckle": -1},
        {"layer_difference": -1},
        {"length_threshold": 3.0},
        {"length_threshold": 12.0},
        {"max_iterations": -1},
        {"path_precision": -1},
        {"max_error": 0.0},
    ])
    def test_out_of_range(self, kwargs):
        """Out of range values raise ConfigError."""
        with pytest.raises(ConfigError):
            Config(**kwargs).validate()

    def test_valid_returns_self(self):
        """validate() returns the config for chaining."""
        config = Config()
        assert config.validate() is config

    def test_derivation_validates(self):
        """into_converter_config refuses invalid settings."""
        with pytest.raises(ConfigError):
            Config(color_precision=12).into_converter_config()


class TestPresets:
    """Test cases for named presets."""

    def test_known_presets(self):
        """bw, poster and photo are available."""
        assert set(PRESETS) == {"bw", "poster", "photo"}

    def test_bw_is_binary(self):
        assert Config.from_preset("bw").color_mode == ColorMode.BINARY

    def test_photo(self):
        """The photo preset favours larger, smoother regions."""
        config = Config.from_preset("photo")

        assert config.filter_speckle == 10
        assert config.layer_difference == 48
        assert config.corner_threshold == 180

    def test_preset_is_a_copy(self):
        """Changing a loaded preset does not alter the registry."""
        config = Config.from_preset("poster")
        config.filter_speckle = 99
        assert PRESETS["poster"].filter_speckle == 4

    def test_unknown_preset(self):
        with pytest.raises(ConfigError, match="Unknown preset"):
            Config.from_preset("sketch")
