"""
Edit Transducer - learned stochastic edit distance for name matching.

This package trains a conditional model p(output string | input string) over
character edit sequences with EM, and scores whether two name strings are
likely to denote the same entity.
"""

__version__ = "0.1.0"

from .errors import (
    EditTransducerError,
    UnknownSymbol,
    ZeroProbabilityPair,
    NumericalInconsistency,
    DictionaryLoadFailure
)
from .data import CharacterAlphabet, AlignedString, IdentityAligner
from .core import EditTransducer, EditOp, RegionState

__all__ = [
    'EditTransducerError',
    'UnknownSymbol',
    'ZeroProbabilityPair',
    'NumericalInconsistency',
    'DictionaryLoadFailure',
    'CharacterAlphabet',
    'AlignedString',
    'IdentityAligner',
    'EditTransducer',
    'EditOp',
    'RegionState'
]
