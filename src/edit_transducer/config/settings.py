"""Main configuration settings with TOML, YAML and JSON loading support."""

from dataclasses import dataclass, field, asdict, fields
from typing import List, Tuple, Optional, Dict, Any, Union
from pathlib import Path
import json
import warnings

import yaml

try:
    import tomllib  # Python 3.11+
except ImportError:
    try:
        import tomli as tomllib  # Fallback for older Python
    except ImportError:
        tomllib = None

try:
    import tomli_w
except ImportError:
    tomli_w = None

from .defaults import DefaultConfig, PRESET_CONFIGS, validate_config

# Top-level tables of a nested configuration file
_SECTIONS = ('model', 'training', 'corpus', 'visualization', 'advanced')

@dataclass
class Settings:
    """Main configuration settings for Edit Transducer.

    Can be loaded from TOML, YAML or JSON files for user customization while
    providing sensible defaults for different training scenarios.
    """

    # Model parameters
    model_type: str = "backoff"
    smoothing_strength: float = 3.0
    initial_edit_probs: Tuple[float, float, float, float] = (0.1, 0.1, 0.6, 0.2)
    initial_stay_prob: float = 0.9
    baseline: bool = False

    # Training parameters
    min_iterations: int = 25
    max_iterations: int = 50
    convergence_threshold: float = 1e-4
    tolerance: float = 1e-8
    check_invariants: bool = True

    # Corpus parameters
    min_name_length: int = 3
    drop_non_ascii: bool = True
    flip: bool = False
    use_all_aliases: bool = False
    max_string_length: int = 64

    # Visualization parameters
    figure_dpi: int = 300
    export_formats: List[str] = field(default_factory=lambda: ["pdf", "png"])
    output_dir: str = "output"

    # Reproducibility
    random_seed: Optional[int] = None

    def __post_init__(self):
        """Validate settings after initialization."""
        self.initial_edit_probs = tuple(float(p) for p in self.initial_edit_probs)

        config_fields = {f.name for f in fields(DefaultConfig)}
        temp_config = DefaultConfig(**{k: v for k, v in asdict(self).items() if k in config_fields})

        for message in validate_config(temp_config):
            warnings.warn(f"Configuration warning: {message}")

    @classmethod
    def from_preset(cls, preset: str) -> 'Settings':
        """Create settings from a preset configuration.

        Parameters
        ----------
        preset : str
            Preset name ('default', 'baseline', 'quick')

        Returns
        -------
        Settings
            Settings object with preset values
        """
        if preset not in PRESET_CONFIGS:
            raise ValueError(f"Unknown preset '{preset}'. Available: {list(PRESET_CONFIGS.keys())}")

        config = asdict(PRESET_CONFIGS[preset])
        config['export_formats'] = list(config['export_formats'])
        return cls(**config)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> 'Settings':
        """Build settings from a nested or flat mapping.

        Keys may sit at top level or inside the ``[model]``, ``[training]``,
        ``[corpus]``, ``[visualization]`` and ``[advanced]`` sections.

        Raises
        ------
        ValueError
            If a key does not name a settings field
        """
        settings_data = {}

        # Handle nested configuration structure
        for section in _SECTIONS:
            if section in config_data:
                settings_data.update(config_data[section])

        # Also handle flat structure
        for key, value in config_data.items():
            if not isinstance(value, dict):
                settings_data[key] = value

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(settings_data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")

        return cls(**settings_data)

    @classmethod
    def from_toml(cls, toml_path: Union[str, Path]) -> 'Settings':
        """Load settings from TOML file.

        Parameters
        ----------
        toml_path : Union[str, Path]
            Path to TOML configuration file

        Returns
        -------
        Settings
            Settings object with values from TOML file

        Raises
        ------
        ImportError
            If tomllib is not available
        FileNotFoundError
            If TOML file doesn't exist
        """
        if tomllib is None:
            raise ImportError("tomllib not available. Install tomli for Python < 3.11")

        toml_path = Path(toml_path)
        if not toml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {toml_path}")

        with open(toml_path, 'rb') as f:
            config_data = tomllib.load(f)

        return cls.from_dict(config_data)

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> 'Settings':
        """Load settings from a YAML file with the same layout as the TOML one."""
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        return cls.from_dict(config_data)

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'Settings':
        """Load settings from a ``.toml``, ``.yml``/``.yaml`` or ``.json`` file."""
        config_path = Path(config_path)
        suffix = config_path.suffix.lower()

        if suffix == '.toml':
            return cls.from_toml(config_path)
        if suffix in ('.yml', '.yaml'):
            return cls.from_yaml(config_path)
        if suffix == '.json':
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            with open(config_path, 'r') as f:
                return cls.from_dict(json.load(f))

        raise ValueError(f"Unsupported configuration format: {config_path.suffix}")

    def to_toml(self, toml_path: Union[str, Path]) -> None:
        """Save settings to TOML file.

        Parameters
        ----------
        toml_path : Union[str, Path]
            Path where to save TOML configuration file

        Raises
        ------
        ImportError
            If tomli_w is not available
        """
        if tomli_w is None:
            raise ImportError("tomli_w not available. Install tomli-w for TOML writing")

        # Organize settings into logical sections
        config_data = {
            'model': {
                'model_type': self.model_type,
                'smoothing_strength': self.smoothing_strength,
                'initial_edit_probs': list(self.initial_edit_probs),
                'initial_stay_prob': self.initial_stay_prob,
                'baseline': self.baseline
            },
            'training': {
                'min_iterations': self.min_iterations,
                'max_iterations': self.max_iterations,
                'convergence_threshold': self.convergence_threshold,
                'tolerance': self.tolerance,
                'check_invariants': self.check_invariants
            },
            'corpus': {
                'min_name_length': self.min_name_length,
                'drop_non_ascii': self.drop_non_ascii,
                'flip': self.flip,
                'use_all_aliases': self.use_all_aliases,
                'max_string_length': self.max_string_length
            },
            'visualization': {
                'figure_dpi': self.figure_dpi,
                'export_formats': self.export_formats,
                'output_dir': self.output_dir
            },
            'advanced': {}
        }
        # TOML has no null
        if self.random_seed is not None:
            config_data['advanced']['random_seed'] = self.random_seed

        toml_path = Path(toml_path)
        with open(toml_path, 'wb') as f:
            tomli_w.dump(config_data, f)

    def resolve_output(self, path: Union[str, Path]) -> Path:
        """Place a relative output path under ``output_dir``; absolute paths are kept."""
        path = Path(path)
        if path.is_absolute():
            return path
        return Path(self.output_dir) / path

    def update(self, **kwargs) -> 'Settings':
        """Create new Settings with updated values.

        Parameters
        ----------
        **kwargs
            Settings fields to update

        Returns
        -------
        Settings
            New Settings object with updated values
        """
        current_dict = asdict(self)
        current_dict.update(kwargs)
        return Settings(**current_dict)


# Global configuration instance
_GLOBAL_CONFIG: Optional[Settings] = None

def get_config(config_path: Optional[Union[str, Path]] = None,
               preset: Optional[str] = None,
               reload: bool = False) -> Settings:
    """Get global configuration settings.

    Parameters
    ----------
    config_path : Optional[Union[str, Path]]
        Path to a configuration file. If None, looks for default locations.
    preset : Optional[str]
        Preset configuration name ('default', 'baseline', 'quick').
        Ignored if config_path is provided.
    reload : bool
        Force reload configuration even if already loaded

    Returns
    -------
    Settings
        Global configuration settings
    """
    global _GLOBAL_CONFIG

    if _GLOBAL_CONFIG is not None and not reload:
        return _GLOBAL_CONFIG

    if config_path is not None:
        _GLOBAL_CONFIG = Settings.from_file(config_path)
    else:
        # Look for default configuration files
        default_paths = [
            'edit_transducer.toml',
            Path.home() / '.edit_transducer.toml',
            Path.cwd() / 'config' / 'edit_transducer.toml'
        ]

        config_loaded = False
        for path in default_paths:
            if Path(path).exists():
                try:
                    _GLOBAL_CONFIG = Settings.from_toml(path)
                    config_loaded = True
                    break
                except (OSError, ValueError, TypeError) as e:
                    if preset is None:  # Only warn if not using preset fallback
                        warnings.warn(f"Could not load config from {path}: {e}")
                    continue

        # Fall back to preset or defaults
        if not config_loaded:
            _GLOBAL_CONFIG = Settings.from_preset(preset or 'default')

    # Set random seed if specified
    if _GLOBAL_CONFIG.random_seed is not None:
        from .random_state import set_global_seed
        set_global_seed(_GLOBAL_CONFIG.random_seed)

    return _GLOBAL_CONFIG

def set_config(settings: Settings) -> None:
    """Set global configuration settings.

    Parameters
    ----------
    settings : Settings
        Settings object to use as global configuration
    """
    global _GLOBAL_CONFIG
    _GLOBAL_CONFIG = settings

    # Set random seed if specified
    if settings.random_seed is not None:
        from .random_state import set_global_seed
        set_global_seed(settings.random_seed)
