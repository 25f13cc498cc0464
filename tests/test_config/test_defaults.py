"""Tests for configuration defaults functionality.

Tests the preset configurations, validation function, and lattice memory
estimation.
"""

import pytest

from edit_transducer.config.defaults import (
    DefaultConfig,
    DEFAULT_CONFIG,
    BASELINE_CONFIG,
    QUICK_CONFIG,
    PRESET_CONFIGS,
    MODEL_TYPES,
    LATTICE_MEMORY_LIMIT_MB,
    get_memory_estimate,
    validate_config
)


class TestDefaultConfig:
    """Test suite for the DefaultConfig dataclass."""

    def test_default_values(self):
        """Defaults reproduce the standard backoff model."""
        config = DefaultConfig()
        assert config.model_type == "backoff"
        assert config.smoothing_strength == 3.0
        assert config.initial_edit_probs == (0.1, 0.1, 0.6, 0.2)
        assert config.initial_stay_prob == 0.9
        assert config.min_iterations == 25
        assert config.max_iterations == 50
        assert config.convergence_threshold == 1e-4
        assert config.check_invariants is True

    def test_export_formats_not_shared(self):
        """Mutable defaults are not shared between instances."""
        first, second = DefaultConfig(), DefaultConfig()
        first.export_formats.append("svg")
        assert second.export_formats == ["pdf", "png"]


class TestPresetConfigurations:
    """Test suite for preset configurations."""

    def test_preset_registry(self):
        assert PRESET_CONFIGS == {
            "default": DEFAULT_CONFIG,
            "baseline": BASELINE_CONFIG,
            "quick": QUICK_CONFIG
        }

    def test_baseline_preset(self):
        assert BASELINE_CONFIG.baseline is True
        assert BASELINE_CONFIG.smoothing_strength == 1e10
        assert BASELINE_CONFIG.max_iterations == 1

    def test_quick_preset(self):
        assert QUICK_CONFIG.max_iterations < DEFAULT_CONFIG.max_iterations
        assert QUICK_CONFIG.export_formats == ["png"]

    @pytest.mark.parametrize("name", ["default", "baseline", "quick"])
    def test_presets_validate_cleanly(self, name):
        assert validate_config(PRESET_CONFIGS[name]) == []

    def test_model_types(self):
        assert MODEL_TYPES == ["backoff"]


class TestValidateConfig:
    """Test suite for validate_config."""

    @pytest.mark.parametrize("overrides,fragment", [
        ({'model_type': "loglinear"}, "not recognized"),
        ({'smoothing_strength': 0.0}, "Smoothing strength"),
        ({'initial_edit_probs': (0.5, 0.5, 0.5, 0.5)}, "do not sum to 1"),
        ({'initial_stay_prob': 1.0}, "stay probability"),
        ({'min_iterations': 10, 'max_iterations': 5}, "exceeds max_iterations"),
        ({'min_name_length': 0}, "empty names"),
        ({'max_string_length': 2000}, "lattice memory"),
    ])
    def test_warnings(self, overrides, fragment):
        messages = validate_config(DefaultConfig(**overrides))
        assert len(messages) == 1
        assert fragment in messages[0]

    def test_multiple_warnings(self):
        config = DefaultConfig(model_type="other", min_iterations=99)
        assert len(validate_config(config)) == 2


class TestMemoryEstimate:
    """Test suite for get_memory_estimate."""

    def test_default_is_small(self):
        estimate = get_memory_estimate(DEFAULT_CONFIG)
        assert 0 < estimate < LATTICE_MEMORY_LIMIT_MB

    def test_grows_quadratically(self):
        short = get_memory_estimate(DefaultConfig(max_string_length=98))
        long = get_memory_estimate(DefaultConfig(max_string_length=198))
        assert long == pytest.approx(4 * short)
