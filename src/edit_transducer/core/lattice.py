"""Lattice labels and boundary-sentinel resolution for the edit transducer.

The forward-backward lattice for a pair (x, y) has one cell per (i, j), where
i counts consumed input characters and j consumed output characters, plus one
row and column of slack for the end-of-string sentinels. Each cell carries
four labels: the settled states NOEDIT and EDIT, and the transient decision
states PRENOEDIT and PREEDIT entered before the next action.
"""

from enum import Enum
from dataclasses import dataclass
import numpy as np
from typing import Optional

from ..data.aligned_string import AlignedString


class LatticeState(Enum):
    """Labels of a lattice cell."""
    NOEDIT = "noedit"
    EDIT = "edit"
    PRENOEDIT = "prenoedit"
    PREEDIT = "preedit"


# Row of each label in an alpha/beta table
LATTICE_INDEX = {
    LatticeState.NOEDIT: 0,
    LatticeState.EDIT: 1,
    LatticeState.PRENOEDIT: 2,
    LatticeState.PREEDIT: 3,
}

N_LATTICE_STATES = len(LATTICE_INDEX)


def eos_code(alphabet_size: int) -> int:
    """Sentinel code for a present but exhausted string."""
    return alphabet_size


def eos_prime_code(alphabet_size: int) -> int:
    """Sentinel code for an absent input string."""
    return alphabet_size + 1


@dataclass(frozen=True)
class CharPair:
    """Effective input/output codes at one lattice cell.

    Attributes
    ----------
    x : int
        Input code: a glyph, EOS (input exhausted) or EOS' (input absent)
    y : int
        Output code: a glyph, or the matching sentinel once y is exhausted
    equal : bool
        Whether the two codes count as equal, i.e. COPY is legal here
    """
    x: int
    y: int
    equal: bool

    @classmethod
    def resolve(cls,
                strx: Optional[AlignedString],
                stry: AlignedString,
                i: int,
                j: int,
                input_size: int,
                output_size: int) -> 'CharPair':
        """Resolve the codes at cell (i, j).

        Parameters
        ----------
        strx : Optional[AlignedString]
            Input string, or None when the input is absent
        stry : AlignedString
            Output string
        i, j : int
            Number of consumed input and output characters
        input_size, output_size : int
            Sizes of the input and output alphabets (sentinels follow them)
        """
        y_done = j >= len(stry)
        if strx is None:
            x = eos_prime_code(input_size)
            if y_done:
                return cls(x, eos_prime_code(output_size), True)
            return cls(x, stry.glyph_at(j), False)
        if i >= len(strx):
            x = eos_code(input_size)
            if y_done:
                return cls(x, eos_code(output_size), True)
            return cls(x, stry.glyph_at(j), False)
        x = strx.glyph_at(i)
        if y_done:
            return cls(x, eos_code(output_size), False)
        y = stry.glyph_at(j)
        return cls(x, y, x == y)


def input_length(x: Optional[AlignedString]) -> int:
    """Length of an input string, not counting EOS / EOS'; absent input has length 0."""
    return 0 if x is None else len(x)


def new_lattice(x_len: int, y_len: int) -> np.ndarray:
    """Zeroed alpha/beta table with room for the sentinel row and column."""
    return np.zeros((N_LATTICE_STATES, x_len + 2, y_len + 2), dtype=np.float64)


def estimate_lattice_bytes(x_len: int, y_len: int) -> int:
    """Memory held by one alpha or beta table for a pair of the given lengths."""
    return N_LATTICE_STATES * (x_len + 2) * (y_len + 2) * np.dtype(np.float64).itemsize
