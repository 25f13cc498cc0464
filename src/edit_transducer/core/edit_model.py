"""Backoff-smoothed model of edit operations.

Models p(op | x) * p(y | op, x) where x is the lookahead input character and y
the output character produced by INSERT or SUBSTITUTE. Every estimate is
smoothed toward a more general parent distribution:

- p(op | x) backs off to the global p(op)
- p(y | SUB, x) backs off to p(y | SUB)
- p(y | INS) and p(y | SUB) back off to p(y | INS or SUB)
- p(y | INS or SUB) backs off to the uniform distribution over regular outputs

Input codes ``n_in`` and ``n_in + 1`` are the EOS and EOS' sentinels; at either
one INSERT is the only available operation. Output sentinels are never valid
INSERT or SUBSTITUTE targets.
"""

from enum import Enum
import numpy as np
from scipy.stats import entropy
from typing import Dict, Any, Optional, Sequence

from ..errors import NumericalInconsistency


class EditOp(Enum):
    """Atomic actions turning input into output."""
    SUBSTITUTE = "substitute"
    INSERT = "insert"
    COPY = "copy"
    DELETE = "delete"


# Table rows; nothing outside this module relies on the order
_SUB, _INS, _COPY, _DEL = 0, 1, 2, 3
_OP_INDEX = {
    EditOp.SUBSTITUTE: _SUB,
    EditOp.INSERT: _INS,
    EditOp.COPY: _COPY,
    EditOp.DELETE: _DEL,
}
N_OPS = len(_OP_INDEX)

DEFAULT_EDIT_PROBS = (0.1, 0.1, 0.6, 0.2)


class EditOperationModel:
    """p(output char, op | input char) with hierarchical backoff smoothing.

    Parameters
    ----------
    input_size : int
        Number of regular input characters
    output_size : int
        Number of regular output characters
    smoothing_strength : float, default=3.0
        Backoff strength lambda, not trained
    initial_edit_probs : Sequence[float], default=(0.1, 0.1, 0.6, 0.2)
        Initial global p(op) in the order SUBSTITUTE, INSERT, COPY, DELETE
    check_invariants : bool, default=True
        Verify normalization after every reestimate

    Notes
    -----
    The constructor runs one ``reestimate()`` on empty counts, so the initial
    probabilities are fully backed off: p(COPY | x) equals the initial global
    COPY probability for every regular x.
    """

    def __init__(self,
                 input_size: int,
                 output_size: int,
                 smoothing_strength: float = 3.0,
                 initial_edit_probs: Sequence[float] = DEFAULT_EDIT_PROBS,
                 check_invariants: bool = True):
        if input_size < 1 or output_size < 1:
            raise ValueError(f"Alphabet sizes must be positive, got {input_size} and {output_size}")
        if smoothing_strength <= 0:
            raise ValueError(f"smoothing_strength must be positive, got {smoothing_strength}")
        edit_backoff = np.asarray(initial_edit_probs, dtype=np.float64)
        if edit_backoff.shape != (N_OPS,):
            raise ValueError(f"initial_edit_probs needs {N_OPS} entries, got {edit_backoff.shape}")
        if np.any(edit_backoff < 0) or abs(edit_backoff.sum() - 1.0) > 1e-8:
            raise ValueError(f"initial_edit_probs must be a distribution, got {initial_edit_probs}")

        self.input_size = input_size
        self.output_size = output_size
        self.smoothing_strength = float(smoothing_strength)
        self.check_invariants = check_invariants

        n_x, n_y = input_size + 2, output_size + 2
        self.p_edit = np.zeros((N_OPS, n_x))            # p(op | x)
        self.p_edit_backoff = edit_backoff.copy()       # p(op)
        self.p_char_ins = np.zeros(n_y)                 # p(y | INS)
        self.p_char_sub = np.zeros((n_y, n_x))          # p(y | SUB, x)
        self.p_char_sub_backoff = np.zeros(n_y)         # p(y | SUB)
        self.p_char_backoff = np.zeros(n_y)             # p(y | INS or SUB)

        self.reset_counts()
        self.reestimate()

    def reset_counts(self) -> None:
        """Zero all accumulated counts."""
        n_x, n_y = self.input_size + 2, self.output_size + 2
        self.c_edit = np.zeros((N_OPS, n_x))
        self.c_char_ins = np.zeros(n_y)
        self.c_char_sub = np.zeros((n_y, n_x))

    def prob(self, output_char: Optional[int], op: EditOp, input_char: int) -> float:
        """p(output_char, op | input_char).

        ``output_char`` is ignored (conventionally None) for COPY and DELETE.
        """
        row = _OP_INDEX[op]
        if row == _INS:
            return float(self.p_edit[_INS, input_char] * self.p_char_ins[output_char])
        if row == _SUB:
            return float(self.p_edit[_SUB, input_char] * self.p_char_sub[output_char, input_char])
        return float(self.p_edit[row, input_char])

    def op_prob(self, op: EditOp, input_char: int) -> float:
        """p(op | input_char), summed over output characters."""
        return float(self.p_edit[_OP_INDEX[op], input_char])

    def op_distribution(self, input_char: int) -> Dict[EditOp, float]:
        return {op: float(self.p_edit[row, input_char]) for op, row in _OP_INDEX.items()}

    def op_entropy(self) -> np.ndarray:
        """Entropy (nats) of p(op | x) for every input code, sentinels included."""
        return entropy(self.p_edit, axis=0)

    def accumulate(self, output_char: Optional[int], op: EditOp, input_char: int, weight: float) -> None:
        """Count an expected edit for the next ``reestimate()``."""
        row = _OP_INDEX[op]
        self.c_edit[row, input_char] += weight
        if row == _INS:
            self.c_char_ins[output_char] += weight
        elif row == _SUB:
            self.c_char_sub[output_char, input_char] += weight

    def op_count(self, op: EditOp, input_char: int) -> float:
        """Expected count of op at input_char accumulated since the last reestimate."""
        return float(self.c_edit[_OP_INDEX[op], input_char])

    def add_counts(self, other: 'EditOperationModel') -> None:
        """Merge another model's accumulated counts into this one."""
        if (other.input_size, other.output_size) != (self.input_size, self.output_size):
            raise ValueError("Cannot merge counts of models over different alphabets")
        self.c_edit += other.c_edit
        self.c_char_ins += other.c_char_ins
        self.c_char_sub += other.c_char_sub

    def reestimate(self) -> None:
        """Update all probabilities from counts, then clear the counts.

        Raises
        ------
        NumericalInconsistency
            If invariant checking is on and some input code's distribution
            over (op, output char) does not sum to 1
        """
        n_in, n_out = self.input_size, self.output_size
        lam = self.smoothing_strength

        # Marginals. At EOS / EOS' INSERT is forced, so those columns do not
        # inform the op backoff.
        c_edit_regular = self.c_edit[:, :n_in]
        c_edit_denom = c_edit_regular.sum(axis=0)
        c_edit_backoff = c_edit_regular.sum(axis=1)
        c_edit_backoff_denom = c_edit_backoff.sum()

        c_char_ins_denom = self.c_char_ins.sum()
        c_char_sub_denom = self.c_char_sub.sum(axis=0)
        c_char_sub_backoff = self.c_char_sub.sum(axis=1)
        c_char_sub_backoff_denom = c_char_sub_backoff.sum()
        c_char_backoff = self.c_char_ins + c_char_sub_backoff
        c_char_backoff_denom = c_char_backoff.sum()

        # Smoothed toward the previous estimate so an empty corpus keeps it
        self.p_edit_backoff = (c_edit_backoff + self.p_edit_backoff) / (c_edit_backoff_denom + 1.0)
        self.p_edit[:, :n_in] = ((c_edit_regular + lam * self.p_edit_backoff[:, None])
                                 / (c_edit_denom + lam))
        self.p_edit[:, n_in:] = 0.0
        self.p_edit[_INS, n_in:] = 1.0

        regular = slice(0, n_out)
        self.p_char_backoff[regular] = ((c_char_backoff[regular] + lam / n_out)
                                        / (c_char_backoff_denom + lam))
        self.p_char_ins[regular] = ((self.c_char_ins[regular] + lam * self.p_char_backoff[regular])
                                    / (c_char_ins_denom + lam))
        self.p_char_sub_backoff[regular] = ((c_char_sub_backoff[regular]
                                             + lam * self.p_char_backoff[regular])
                                            / (c_char_sub_backoff_denom + lam))
        self.p_char_sub[regular, :] = ((self.c_char_sub[regular, :]
                                        + lam * self.p_char_sub_backoff[regular, None])
                                       / (c_char_sub_denom + lam))
        # Output sentinels can never be inserted or substituted
        self.p_char_ins[n_out:] = 0.0
        self.p_char_sub[n_out:, :] = 0.0
        self.p_char_sub_backoff[n_out:] = 0.0
        self.p_char_backoff[n_out:] = 0.0

        if self.check_invariants:
            self.check_normalization()
        self.reset_counts()

    def total_mass(self) -> np.ndarray:
        """Total probability of all (op, output char) choices for each input code."""
        return (self.p_edit[_DEL] + self.p_edit[_COPY]
                + self.p_edit[_INS] * self.p_char_ins.sum()
                + self.p_edit[_SUB] * self.p_char_sub.sum(axis=0))

    def check_normalization(self, tolerance: float = 1e-8) -> None:
        """Raise NumericalInconsistency unless every input code's mass is 1."""
        mass = self.total_mass()
        bad = np.flatnonzero(np.abs(mass - 1.0) >= tolerance)
        if bad.size:
            code = int(bad[0])
            raise NumericalInconsistency(
                f"Probabilities for input code {code} sum to {mass[code]!r} rather than 1"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Flat numeric tables plus the scalar settings needed to rebuild the model."""
        return {
            'input_size': self.input_size,
            'output_size': self.output_size,
            'smoothing_strength': self.smoothing_strength,
            'p_edit': self.p_edit.copy(),
            'p_edit_backoff': self.p_edit_backoff.copy(),
            'p_char_ins': self.p_char_ins.copy(),
            'p_char_sub': self.p_char_sub.copy(),
            'p_char_sub_backoff': self.p_char_sub_backoff.copy(),
            'p_char_backoff': self.p_char_backoff.copy(),
        }

    def load_tables(self, data: Dict[str, Any]) -> None:
        """Overwrite the probability tables with ``to_dict`` output of matching shape."""
        for name in ('p_edit', 'p_edit_backoff', 'p_char_ins', 'p_char_sub',
                     'p_char_sub_backoff', 'p_char_backoff'):
            table = np.asarray(data[name], dtype=np.float64)
            current = getattr(self, name)
            if table.shape != current.shape:
                raise ValueError(f"{name} has shape {table.shape}, expected {current.shape}")
            setattr(self, name, table.copy())

    @classmethod
    def from_dict(cls, data: Dict[str, Any], check_invariants: bool = True) -> 'EditOperationModel':
        model = cls(int(data['input_size']), int(data['output_size']),
                    smoothing_strength=float(data['smoothing_strength']),
                    check_invariants=check_invariants)
        model.load_tables(data)
        if check_invariants:
            model.check_normalization()
        return model

    def __repr__(self) -> str:
        return (f"EditOperationModel(input_size={self.input_size}, output_size={self.output_size}, "
                f"smoothing_strength={self.smoothing_strength:g})")
