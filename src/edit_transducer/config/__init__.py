"""Configuration management for Edit Transducer.

Provides global configuration and random seed management for reproducible training runs.
"""

from .settings import get_config, set_config, Settings
from .random_state import set_global_seed, get_global_seed, get_random_state, reset_random_state
from .defaults import (
    DEFAULT_CONFIG,
    BASELINE_CONFIG,
    QUICK_CONFIG,
    PRESET_CONFIGS,
    MODEL_TYPES,
    DefaultConfig,
    validate_config
)
from .validate import check_environment, get_dependency_versions, print_environment_info

__all__ = [
    'get_config',
    'set_config',
    'Settings',
    'set_global_seed',
    'get_global_seed',
    'get_random_state',
    'reset_random_state',
    'DEFAULT_CONFIG',
    'BASELINE_CONFIG',
    'QUICK_CONFIG',
    'PRESET_CONFIGS',
    'MODEL_TYPES',
    'DefaultConfig',
    'validate_config',
    'check_environment',
    'get_dependency_versions',
    'print_environment_info'
]
