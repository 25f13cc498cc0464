"""Default configuration parameters for edit transducer training scenarios."""

from dataclasses import dataclass, field
from typing import List, Tuple

@dataclass
class DefaultConfig:
    """Base configuration structure for training and scoring edit transducers."""

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


# Standard model: learned regions, lambda = 3
DEFAULT_CONFIG = DefaultConfig()

# Near-uniform reference model: always EDIT, edit probabilities pinned to backoff
BASELINE_CONFIG = DefaultConfig(
    smoothing_strength=1e10,
    baseline=True,
    min_iterations=1,
    max_iterations=1
)

# Small runs for smoke tests and interactive exploration
QUICK_CONFIG = DefaultConfig(
    min_iterations=2,
    max_iterations=5,
    convergence_threshold=1e-3,
    use_all_aliases=True,
    figure_dpi=150,
    export_formats=["png"]
)

PRESET_CONFIGS = {
    "default": DEFAULT_CONFIG,
    "baseline": BASELINE_CONFIG,
    "quick": QUICK_CONFIG
}

# Model families the CLI can build
MODEL_TYPES = ["backoff"]

# Smoothing strength guidelines
MIN_SMOOTHING_STRENGTH = 1e-3
MAX_SMOOTHING_STRENGTH = 1e12

# Memory guideline for one pair's alpha and beta tables
LATTICE_MEMORY_LIMIT_MB = 64.0

def get_memory_estimate(config: DefaultConfig) -> float:
    """Estimate memory in MB held by the alpha and beta tables of the longest pair."""
    side = config.max_string_length + 2
    return 2 * 4 * side * side * 8 / 1024 ** 2

def validate_config(config: DefaultConfig) -> List[str]:
    """Validate configuration parameters and return list of warnings."""
    warnings = []

    if config.model_type not in MODEL_TYPES:
        warnings.append(f"Model type '{config.model_type}' not recognized")

    if not MIN_SMOOTHING_STRENGTH <= config.smoothing_strength <= MAX_SMOOTHING_STRENGTH:
        warnings.append(f"Smoothing strength {config.smoothing_strength} is outside "
                        f"[{MIN_SMOOTHING_STRENGTH}, {MAX_SMOOTHING_STRENGTH}]")

    if len(config.initial_edit_probs) != 4 or abs(sum(config.initial_edit_probs) - 1.0) > 1e-8:
        warnings.append(f"Initial edit probabilities {tuple(config.initial_edit_probs)} do not sum to 1")

    if not 0.0 < config.initial_stay_prob < 1.0:
        warnings.append(f"Initial stay probability {config.initial_stay_prob} blocks one region transition")

    if config.min_iterations > config.max_iterations:
        warnings.append(f"min_iterations {config.min_iterations} exceeds "
                        f"max_iterations {config.max_iterations}")

    if config.min_name_length < 1:
        warnings.append(f"Minimum name length {config.min_name_length} keeps empty names")

    estimated_memory = get_memory_estimate(config)
    if estimated_memory > LATTICE_MEMORY_LIMIT_MB:
        warnings.append(f"Estimated lattice memory {estimated_memory:.1f}MB exceeds "
                        f"limit {LATTICE_MEMORY_LIMIT_MB}MB")

    return warnings
