"""Two-state EDIT / NOEDIT region model.

Before each action the transducer decides whether it belongs to an edit region
or a no-edit (mandatory copy) region, conditioned only on the previous
region. The learned transition probabilities effectively model the lengths of
the two kinds of region as geometric distributions.
"""

from enum import Enum
import numpy as np
from typing import Dict, Any


class RegionState(Enum):
    """Region of the previous (or next) action."""
    NOEDIT = "noedit"
    EDIT = "edit"


_REGION_INDEX = {
    RegionState.NOEDIT: 0,
    RegionState.EDIT: 1,
}


class StateRegionModel:
    """Transition probabilities p(new region | old region).

    Parameters
    ----------
    initial_stay_prob : float, default=0.9
        Initial p(NOEDIT|NOEDIT) = p(EDIT|EDIT); the cross terms get the rest

    Notes
    -----
    Tables are indexed ``[new][old]`` so that each column is a distribution.
    Counts are cleared by every ``reestimate()``.
    """

    def __init__(self, initial_stay_prob: float = 0.9):
        if not 0.0 <= initial_stay_prob <= 1.0:
            raise ValueError(f"initial_stay_prob must be in [0, 1], got {initial_stay_prob}")
        stay, switch = initial_stay_prob, 1.0 - initial_stay_prob
        self._p = np.array([[stay, switch],
                            [switch, stay]], dtype=np.float64)
        self._c = np.zeros((2, 2), dtype=np.float64)

    @property
    def probabilities(self) -> np.ndarray:
        view = self._p.view()
        view.setflags(write=False)
        return view

    @property
    def counts(self) -> np.ndarray:
        view = self._c.view()
        view.setflags(write=False)
        return view

    def transition_prob(self, new_state: RegionState, old_state: RegionState) -> float:
        """p(new_state | old_state). Note the argument order: new before old."""
        return float(self._p[_REGION_INDEX[new_state], _REGION_INDEX[old_state]])

    def set_transition_prob(self, new_state: RegionState, old_state: RegionState, prob: float) -> None:
        """Overwrite one transition probability; the caller keeps columns normalized."""
        self._p[_REGION_INDEX[new_state], _REGION_INDEX[old_state]] = prob

    def accumulate(self, new_state: RegionState, old_state: RegionState, weight: float) -> None:
        """Count an expected transition for the next ``reestimate()``."""
        self._c[_REGION_INDEX[new_state], _REGION_INDEX[old_state]] += weight

    def add_counts(self, other: 'StateRegionModel') -> None:
        """Merge another model's accumulated counts into this one."""
        self._c += other._c

    def reset_counts(self) -> None:
        self._c[:] = 0.0

    def reestimate(self) -> None:
        """Update probabilities from counts, then clear the counts.

        Each column is the MLE smoothed toward the previous estimate with a
        pseudo-count of 1, so a column with no counts keeps its value.
        """
        denom = self._c.sum(axis=0)
        self._p = (self._c + self._p) / (denom + 1.0)
        self.reset_counts()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize parameters (counts are transient and not included)."""
        return {'transition_probs': self._p.copy()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StateRegionModel':
        model = cls()
        probs = np.asarray(data['transition_probs'], dtype=np.float64)
        if probs.shape != (2, 2):
            raise ValueError(f"transition_probs must be (2, 2), got {probs.shape}")
        model._p = probs.copy()
        return model

    def __repr__(self) -> str:
        return (f"StateRegionModel(p(NOEDIT|NOEDIT)={self._p[0, 0]:.4f}, "
                f"p(EDIT|EDIT)={self._p[1, 1]:.4f})")
