"""Tests for configuration settings functionality.

Tests the Settings dataclass, preset loading, TOML/YAML/JSON file handling,
and global configuration management.
"""

import json
import warnings

import pytest
import yaml

from edit_transducer.config import settings as settings_module
from edit_transducer.config.settings import Settings, get_config, set_config
from edit_transducer.config.random_state import get_global_seed


@pytest.fixture(autouse=True)
def clear_global_config(monkeypatch):
    """Isolate tests from the process-wide configuration."""
    monkeypatch.setattr(settings_module, '_GLOBAL_CONFIG', None)


class TestSettingsCreation:
    """Test suite for Settings construction."""

    def test_defaults(self):
        settings = Settings()
        assert settings.model_type == "backoff"
        assert settings.initial_edit_probs == (0.1, 0.1, 0.6, 0.2)
        assert settings.random_seed is None
        assert settings.output_dir == "output"

    def test_resolve_output(self, tmp_path):
        settings = Settings(output_dir=str(tmp_path / "runs"))
        assert settings.resolve_output("model.npz") == tmp_path / "runs" / "model.npz"
        assert settings.resolve_output(tmp_path / "model.npz") == tmp_path / "model.npz"

    def test_edit_probs_become_float_tuple(self):
        settings = Settings(initial_edit_probs=[0, 0, 1, 0])
        assert settings.initial_edit_probs == (0.0, 0.0, 1.0, 0.0)

    def test_invalid_values_warn(self):
        with pytest.warns(UserWarning, match="Configuration warning"):
            Settings(min_iterations=100, max_iterations=10)

    def test_valid_values_do_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            Settings(smoothing_strength=5.0)

    def test_update_returns_new_settings(self):
        settings = Settings()
        updated = settings.update(flip=True, smoothing_strength=1.5)
        assert updated.flip and updated.smoothing_strength == 1.5
        assert not settings.flip


class TestPresets:
    """Test suite for preset loading."""

    @pytest.mark.parametrize("name", ["default", "baseline", "quick"])
    def test_from_preset(self, name):
        assert isinstance(Settings.from_preset(name), Settings)

    def test_baseline_preset(self):
        settings = Settings.from_preset("baseline")
        assert settings.baseline
        assert settings.smoothing_strength == 1e10

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown preset"):
            Settings.from_preset("nonexistent")


class TestFileLoading:
    """Test suite for configuration files."""

    def test_toml_round_trip(self, tmp_path):
        path = tmp_path / "config.toml"
        original = Settings(smoothing_strength=2.5, flip=True, random_seed=7,
                            export_formats=["svg"])
        original.to_toml(path)

        loaded = Settings.from_toml(path)
        assert loaded == original

    def test_toml_without_seed(self, tmp_path):
        path = tmp_path / "config.toml"
        Settings().to_toml(path)
        assert Settings.from_file(path).random_seed is None

    def test_yaml_sections(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            'model': {'smoothing_strength': 4.0},
            'training': {'max_iterations': 7},
            'flip': True
        }))
        loaded = Settings.from_file(path)
        assert loaded.smoothing_strength == 4.0
        assert loaded.max_iterations == 7
        assert loaded.flip

    def test_json_flat(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'use_all_aliases': True, 'min_name_length': 2}))
        loaded = Settings.from_file(path)
        assert loaded.use_all_aliases
        assert loaded.min_name_length == 2

    def test_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            Settings.from_dict({'model': {'markov_order': 2}})

    def test_unsupported_suffix(self, tmp_path):
        with pytest.raises(ValueError, match="Unsupported configuration format"):
            Settings.from_file(tmp_path / "config.ini")

    @pytest.mark.parametrize("name", ["missing.toml", "missing.yaml", "missing.json"])
    def test_missing_file(self, tmp_path, name):
        with pytest.raises(FileNotFoundError):
            Settings.from_file(tmp_path / name)


class TestGlobalConfig:
    """Test suite for get_config and set_config."""

    def test_preset_fallback(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        config = get_config(preset="quick")
        assert config.max_iterations == 5
        assert get_config() is config

    def test_explicit_path_and_reload(self, tmp_path):
        path = tmp_path / "config.toml"
        Settings(max_iterations=9).to_toml(path)
        assert get_config(config_path=path).max_iterations == 9
        Settings(max_iterations=11).to_toml(path)
        assert get_config(config_path=path).max_iterations == 9
        assert get_config(config_path=path, reload=True).max_iterations == 11

    def test_set_config_seeds(self):
        set_config(Settings(random_seed=1234))
        assert get_global_seed() == 1234
        assert get_config().random_seed == 1234
