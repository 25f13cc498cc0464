"""Core algorithms of the edit transducer.

This module contains the model components:
- Lattice labels and end-of-string sentinel resolution
- EDIT / NOEDIT region model
- Backoff-smoothed edit operation model
- Forward-backward EM engine and scoring
- Model persistence
"""

from .lattice import (
    LatticeState,
    LATTICE_INDEX,
    CharPair,
    eos_code,
    eos_prime_code,
    new_lattice,
    estimate_lattice_bytes
)
from .region_model import RegionState, StateRegionModel
from .edit_model import EditOp, EditOperationModel, DEFAULT_EDIT_PROBS
from .transducer import EditTransducer, StringEditModel, EMStatistics, TrainingResults
from .persistence import save_model, load_model

__all__ = [
    # Lattice
    'LatticeState',
    'LATTICE_INDEX',
    'CharPair',
    'eos_code',
    'eos_prime_code',
    'new_lattice',
    'estimate_lattice_bytes',

    # Sub-models
    'RegionState',
    'StateRegionModel',
    'EditOp',
    'EditOperationModel',
    'DEFAULT_EDIT_PROBS',

    # Engine
    'EditTransducer',
    'StringEditModel',
    'EMStatistics',
    'TrainingResults',

    # Persistence
    'save_model',
    'load_model'
]
