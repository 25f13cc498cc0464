"""Global random seed management.

Only corpus construction draws random numbers (one alias per entity), so the
global NumPy and ``random`` states are all that needs seeding. The seed can be
set explicitly, through Settings.random_seed, or with the
``EDIT_TRANSDUCER_SEED`` environment variable.
"""

import random
import numpy as np
from typing import Optional, Dict, Any
import os
import hashlib

SEED_ENV_VAR = 'EDIT_TRANSDUCER_SEED'
DEFAULT_SEED = 42

# Global random state storage
_GLOBAL_SEED: Optional[int] = None
_RNG_STATE: Optional[Dict[str, Any]] = None

def set_global_seed(seed: int) -> None:
    """Seed Python's ``random`` and NumPy's global generator, and remember the state.

    Parameters
    ----------
    seed : int
        Random seed value

    Examples
    --------
    >>> set_global_seed(7)
    >>> get_global_seed()
    7
    """
    global _GLOBAL_SEED, _RNG_STATE

    _GLOBAL_SEED = int(seed)
    random.seed(_GLOBAL_SEED)
    np.random.seed(_GLOBAL_SEED)

    _RNG_STATE = {
        'seed': _GLOBAL_SEED,
        'python_state': random.getstate(),
        'numpy_state': np.random.get_state()
    }

def get_global_seed() -> Optional[int]:
    """Current global seed, or None if never set."""
    return _GLOBAL_SEED

def get_random_state() -> Optional[Dict[str, Any]]:
    """Generator states captured by the last ``set_global_seed`` call."""
    return _RNG_STATE

def create_deterministic_seed(base_string: str) -> int:
    """Derive a seed from a string, e.g. a corpus file name.

    Parameters
    ----------
    base_string : str
        String to hash

    Returns
    -------
    int
        Seed in ``[0, 2**31 - 1)``
    """
    digest = hashlib.sha256(base_string.encode('utf-8')).hexdigest()
    return int(digest[:8], 16) % (2**31 - 1)

def reset_random_state() -> None:
    """Rewind both generators to the state right after ``set_global_seed``.

    Raises
    ------
    RuntimeError
        If no seed has been set
    """
    if _RNG_STATE is None:
        raise RuntimeError("Random state not initialized. Call set_global_seed() first.")

    random.setstate(_RNG_STATE['python_state'])
    np.random.set_state(_RNG_STATE['numpy_state'])

def get_environment_seed() -> int:
    """Seed from ``EDIT_TRANSDUCER_SEED``; non-integer values are hashed, unset gives 42."""
    env_seed = os.environ.get(SEED_ENV_VAR)
    if env_seed is None:
        return DEFAULT_SEED
    try:
        return int(env_seed)
    except ValueError:
        return create_deterministic_seed(env_seed)

def ensure_reproducibility() -> int:
    """Seed from the environment unless a seed is already set; return the active seed."""
    if _GLOBAL_SEED is None:
        set_global_seed(get_environment_seed())
    return _GLOBAL_SEED

# Seed on import unless the environment variable is set to an empty string
if os.environ.get(SEED_ENV_VAR) != '':
    ensure_reproducibility()
