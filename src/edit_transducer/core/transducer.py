"""Conditional string edit transducer trained with forward-backward EM.

Models p(y | x) as the total probability of all edit sequences turning the
input x into the output y. Each action is preceded by a choice between an
EDIT region (COPY, SUBSTITUTE, INSERT, DELETE) and a NOEDIT region (mandatory
copy), conditioned only on the previous region; the run starts in NOEDIT and
must end with a NOEDIT copy of the end-of-string sentinel pair.

The input may be None ("absent"), in which case the model acts as a language
model over y whose insertion statistics are tied to, but learned separately
from, insertions after the end of a real input (EOS' vs EOS lookahead).

Notes
-----
The region choice has no lookahead to the upcoming sentinel, so a strong
preference for staying in EDIT also favors trailing insertions. This is kept
as is.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import numpy as np
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

from .lattice import (
    CharPair,
    LATTICE_INDEX,
    LatticeState,
    input_length,
    new_lattice,
)
from .region_model import RegionState, StateRegionModel
from .edit_model import DEFAULT_EDIT_PROBS, EditOp, EditOperationModel
from ..data.alphabet import CharacterAlphabet
from ..data.aligned_string import AlignedString
from ..errors import NumericalInconsistency, UnknownSymbol, ZeroProbabilityPair

if TYPE_CHECKING:
    from ..config.settings import Settings

logger = logging.getLogger(__name__)

_NOEDIT = LATTICE_INDEX[LatticeState.NOEDIT]
_EDIT = LATTICE_INDEX[LatticeState.EDIT]
_PRENOEDIT = LATTICE_INDEX[LatticeState.PRENOEDIT]
_PREEDIT = LATTICE_INDEX[LatticeState.PREEDIT]

BASELINE_SWITCH_PROB = 1e-5
BASELINE_SMOOTHING_STRENGTH = 1e10


@dataclass
class EMStatistics:
    """Per-iteration record of EM training.

    Attributes
    ----------
    iteration : int
        EM iteration number, from 0
    log_likelihood : float
        Weighted training log-likelihood under the pre-update parameters
    log_likelihood_change : float
        Change from the previous iteration (inf on the first one)
    n_skipped : int
        Training pairs the model assigned probability 0
    dev_log_likelihood : Optional[float]
        Development-set log-likelihood after the update, if a dev set was given
    converged : bool
        Whether this iteration met the stopping criterion
    """
    iteration: int
    log_likelihood: float
    log_likelihood_change: float
    n_skipped: int = 0
    dev_log_likelihood: Optional[float] = None
    converged: bool = False


@dataclass
class TrainingResults:
    """Outcome of ``EditTransducer.train``.

    Attributes
    ----------
    n_iterations : int
        Number of EM steps taken
    converged : bool
        False when training stopped only because of the iteration cap
    final_log_likelihood : float
        Training log-likelihood reported by the last EM step
    best_iteration : int
        Iteration whose parameters the model holds on return (dev training
        with ``restore_best``), otherwise the last iteration
    best_dev_log_likelihood : Optional[float]
        Highest dev log-likelihood seen, if a dev set was given
    statistics_history : List[EMStatistics]
        One record per iteration
    """
    n_iterations: int
    converged: bool
    final_log_likelihood: float
    best_iteration: int
    best_dev_log_likelihood: Optional[float] = None
    statistics_history: List[EMStatistics] = field(default_factory=list)

    @property
    def log_likelihoods(self) -> np.ndarray:
        return np.array([s.log_likelihood for s in self.statistics_history])

    @property
    def dev_log_likelihoods(self) -> np.ndarray:
        return np.array([np.nan if s.dev_log_likelihood is None else s.dev_log_likelihood
                         for s in self.statistics_history])


class StringEditModel(ABC):
    """Trainable conditional model p(output string | input string)."""

    @abstractmethod
    def train(self, inputs, outputs, weights=None, **kwargs) -> Any:
        ...

    @abstractmethod
    def em_step(self, inputs, outputs, weights=None) -> float:
        ...

    @abstractmethod
    def logp(self, x: Optional[AlignedString], y: AlignedString) -> float:
        ...

    @abstractmethod
    def calc_ll(self, inputs, outputs, weights=None) -> float:
        ...

    @abstractmethod
    def sample(self, x: Optional[AlignedString]) -> AlignedString:
        ...


class EditTransducer(StringEditModel):
    """Edit-distance transducer with EDIT/NOEDIT regions and backoff smoothing.

    Parameters
    ----------
    alphabet : CharacterAlphabet
        Shared input/output alphabet. Its size is captured here; strings with
        glyph codes added later are rejected with UnknownSymbol.
    smoothing_strength : float, default=3.0
        Backoff strength for the edit model
    initial_edit_probs : Sequence[float], default=(0.1, 0.1, 0.6, 0.2)
        Initial global p(op) for SUBSTITUTE, INSERT, COPY, DELETE
    initial_stay_prob : float, default=0.9
        Initial p(NOEDIT|NOEDIT) = p(EDIT|EDIT)
    min_iterations : int, default=25
        EM steps taken before convergence may stop training
    max_iterations : int, default=50
        Hard cap on EM steps
    convergence_threshold : float, default=1e-4
        Relative log-likelihood improvement below which training has converged
    tolerance : float, default=1e-8
        Allowed forward/backward partition mismatch and normalization error
    check_invariants : bool, default=True
        Verify forward/backward agreement and normalization
    baseline : bool, default=False
        Near-uniform baseline: almost always EDIT, edit probabilities pinned
        to their global backoff

    Examples
    --------
    >>> alphabet = CharacterAlphabet("ab")
    >>> model = EditTransducer(alphabet)
    >>> a, b = AlignedString("a", alphabet), AlignedString("b", alphabet)
    >>> model.logp(a, a) > model.logp(a, b)
    True
    """

    def __init__(self,
                 alphabet: CharacterAlphabet,
                 smoothing_strength: float = 3.0,
                 initial_edit_probs: Sequence[float] = DEFAULT_EDIT_PROBS,
                 initial_stay_prob: float = 0.9,
                 min_iterations: int = 25,
                 max_iterations: int = 50,
                 convergence_threshold: float = 1e-4,
                 tolerance: float = 1e-8,
                 check_invariants: bool = True,
                 baseline: bool = False):
        if len(alphabet) == 0:
            raise ValueError("Cannot build an edit model over an empty alphabet")
        if min_iterations < 0 or max_iterations < 1:
            raise ValueError(f"Invalid iteration limits: min={min_iterations}, max={max_iterations}")

        self.alphabet = alphabet
        self.input_size = len(alphabet)
        self.output_size = len(alphabet)
        self.min_iterations = min_iterations
        self.max_iterations = max_iterations
        self.convergence_threshold = convergence_threshold
        self.tolerance = tolerance
        self.check_invariants = check_invariants
        self.baseline = baseline

        if baseline:
            smoothing_strength = BASELINE_SMOOTHING_STRENGTH
        self.region_model = StateRegionModel(initial_stay_prob)
        self.edit_model = EditOperationModel(self.input_size, self.output_size,
                                             smoothing_strength=smoothing_strength,
                                             initial_edit_probs=initial_edit_probs,
                                             check_invariants=check_invariants)
        if baseline:
            logger.info("Using baseline edit model")
            for old in RegionState:
                self.region_model.set_transition_prob(RegionState.NOEDIT, old, BASELINE_SWITCH_PROB)
                self.region_model.set_transition_prob(RegionState.EDIT, old, 1.0 - BASELINE_SWITCH_PROB)

        self.last_skipped = 0
        self.statistics_history: List[EMStatistics] = []

    @classmethod
    def from_settings(cls, alphabet: CharacterAlphabet, settings: 'Settings') -> 'EditTransducer':
        """Build a transducer from the model and training fields of a Settings object."""
        if settings.model_type != 'backoff':
            raise ValueError(f"Unknown model type: {settings.model_type!r}")
        return cls(alphabet,
                   smoothing_strength=settings.smoothing_strength,
                   initial_edit_probs=tuple(settings.initial_edit_probs),
                   initial_stay_prob=settings.initial_stay_prob,
                   min_iterations=settings.min_iterations,
                   max_iterations=settings.max_iterations,
                   convergence_threshold=settings.convergence_threshold,
                   tolerance=settings.tolerance,
                   check_invariants=settings.check_invariants,
                   baseline=settings.baseline)

    @property
    def smoothing_strength(self) -> float:
        return self.edit_model.smoothing_strength

    # ------------------------------------------------------------------
    # Lattice passes
    # ------------------------------------------------------------------

    def _check_string(self, s: Optional[AlignedString]) -> None:
        if s is None or len(s) == 0:
            return
        top = int(s.glyphs.max())
        if top >= self.input_size:
            raise UnknownSymbol(top, f"Glyph code {top} in {s.text!r} is beyond the model's "
                                     f"alphabet of size {self.input_size}")

    def _char_pair(self, x: Optional[AlignedString], y: AlignedString, i: int, j: int) -> CharPair:
        return CharPair.resolve(x, y, i, j, self.input_size, self.output_size)

    def forward_pass(self, x: Optional[AlignedString], y: AlignedString) -> np.ndarray:
        """Forward probabilities, shape (4, |x| + 2, |y| + 2).

        The partition function p(y | x) is ``alpha[NOEDIT, |x| + 1, |y| + 1]``.
        """
        self._check_string(x)
        self._check_string(y)
        x_len, y_len = input_length(x), len(y)
        alpha = new_lattice(x_len, y_len)
        p_region = self.region_model.probabilities
        edits = self.edit_model

        alpha[_NOEDIT, 0, 0] = 1.0
        for i in range(x_len + 1):
            for j in range(y_len + 1):
                cp = self._char_pair(x, y, i, j)
                a_noedit, a_edit = alpha[_NOEDIT, i, j], alpha[_EDIT, i, j]
                alpha[_PRENOEDIT, i, j] += a_noedit * p_region[0, 0] + a_edit * p_region[0, 1]
                alpha[_PREEDIT, i, j] += a_noedit * p_region[1, 0] + a_edit * p_region[1, 1]
                pre_noedit, pre_edit = alpha[_PRENOEDIT, i, j], alpha[_PREEDIT, i, j]

                if cp.equal:
                    alpha[_NOEDIT, i + 1, j + 1] += pre_noedit
                    alpha[_EDIT, i + 1, j + 1] += pre_edit * edits.prob(None, EditOp.COPY, cp.x)
                alpha[_EDIT, i + 1, j + 1] += pre_edit * edits.prob(cp.y, EditOp.SUBSTITUTE, cp.x)
                alpha[_EDIT, i, j + 1] += pre_edit * edits.prob(cp.y, EditOp.INSERT, cp.x)
                alpha[_EDIT, i + 1, j] += pre_edit * edits.prob(None, EditOp.DELETE, cp.x)
        return alpha

    def backward_pass(self,
                      x: Optional[AlignedString],
                      y: AlignedString,
                      alpha: np.ndarray,
                      scale: float) -> np.ndarray:
        """Backward probabilities, accumulating expected counts during the sweep.

        Every action at cell (i, j) contributes
        ``alpha[decision] * p(action) * beta[result] * scale`` to the counts
        of the region and edit models.

        Parameters
        ----------
        x, y : AlignedString
            The pair; x may be None
        alpha : np.ndarray
            Output of ``forward_pass(x, y)``
        scale : float
            Pair weight divided by the partition function

        Returns
        -------
        np.ndarray
            Backward table of the same shape as alpha
        """
        x_len, y_len = input_length(x), len(y)
        beta = new_lattice(x_len, y_len)
        region = self.region_model
        p_region = region.probabilities
        edits = self.edit_model

        beta[_NOEDIT, x_len + 1, y_len + 1] = 1.0
        for i in range(x_len, -1, -1):
            for j in range(y_len, -1, -1):
                cp = self._char_pair(x, y, i, j)
                a_pre_edit = alpha[_PREEDIT, i, j]

                if cp.equal:
                    beta[_PRENOEDIT, i, j] += beta[_NOEDIT, i + 1, j + 1]
                    p_copy = edits.prob(None, EditOp.COPY, cp.x)
                    beta[_PREEDIT, i, j] += p_copy * beta[_EDIT, i + 1, j + 1]
                    edits.accumulate(None, EditOp.COPY, cp.x,
                                     a_pre_edit * p_copy * beta[_EDIT, i + 1, j + 1] * scale)

                p_sub = edits.prob(cp.y, EditOp.SUBSTITUTE, cp.x)
                p_ins = edits.prob(cp.y, EditOp.INSERT, cp.x)
                p_del = edits.prob(None, EditOp.DELETE, cp.x)
                beta[_PREEDIT, i, j] += p_sub * beta[_EDIT, i + 1, j + 1]
                beta[_PREEDIT, i, j] += p_ins * beta[_EDIT, i, j + 1]
                beta[_PREEDIT, i, j] += p_del * beta[_EDIT, i + 1, j]
                edits.accumulate(cp.y, EditOp.SUBSTITUTE, cp.x,
                                 a_pre_edit * p_sub * beta[_EDIT, i + 1, j + 1] * scale)
                edits.accumulate(cp.y, EditOp.INSERT, cp.x,
                                 a_pre_edit * p_ins * beta[_EDIT, i, j + 1] * scale)
                edits.accumulate(None, EditOp.DELETE, cp.x,
                                 a_pre_edit * p_del * beta[_EDIT, i + 1, j] * scale)

                b_pre_noedit, b_pre_edit = beta[_PRENOEDIT, i, j], beta[_PREEDIT, i, j]
                beta[_NOEDIT, i, j] += p_region[0, 0] * b_pre_noedit + p_region[1, 0] * b_pre_edit
                beta[_EDIT, i, j] += p_region[0, 1] * b_pre_noedit + p_region[1, 1] * b_pre_edit

                a_noedit, a_edit = alpha[_NOEDIT, i, j], alpha[_EDIT, i, j]
                region.accumulate(RegionState.NOEDIT, RegionState.NOEDIT,
                                  a_noedit * p_region[0, 0] * b_pre_noedit * scale)
                region.accumulate(RegionState.NOEDIT, RegionState.EDIT,
                                  a_edit * p_region[0, 1] * b_pre_noedit * scale)
                region.accumulate(RegionState.EDIT, RegionState.NOEDIT,
                                  a_noedit * p_region[1, 0] * b_pre_edit * scale)
                region.accumulate(RegionState.EDIT, RegionState.EDIT,
                                  a_edit * p_region[1, 1] * b_pre_edit * scale)
        return beta

    def partition(self, x: Optional[AlignedString], y: AlignedString) -> float:
        """p(y | x) from a forward pass; no side effects."""
        alpha = self.forward_pass(x, y)
        return float(alpha[_NOEDIT, input_length(x) + 1, len(y) + 1])

    def accumulate_pair(self,
                        x: Optional[AlignedString],
                        y: AlignedString,
                        weight: float = 1.0,
                        strict: bool = False,
                        pair_index: int = 0) -> Optional[float]:
        """Run forward-backward on one pair and add its expected counts.

        Returns
        -------
        Optional[float]
            log p(y | x), or None when the pair has probability 0 and was
            skipped without touching any counts

        Raises
        ------
        ZeroProbabilityPair
            If ``strict`` and the pair has probability 0
        NumericalInconsistency
            If the forward and backward partition functions disagree
        """
        alpha = self.forward_pass(x, y)
        z = float(alpha[_NOEDIT, input_length(x) + 1, len(y) + 1])
        if z == 0.0:
            error = ZeroProbabilityPair(pair_index, None if x is None else x.text, y.text)
            if strict:
                raise error
            logger.warning("%s; skipping", error)
            return None

        beta = self.backward_pass(x, y, alpha, weight / z)
        if self.check_invariants:
            z_reverse = float(beta[_NOEDIT, 0, 0])
            if abs(z - z_reverse) >= self.tolerance:
                raise NumericalInconsistency(
                    f"Forward probability != backward probability ({z!r} != {z_reverse!r})"
                )
        return float(np.log(z))

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    @staticmethod
    def _check_corpus(inputs: Sequence[Optional[AlignedString]],
                      outputs: Sequence[AlignedString],
                      weights: Optional[Sequence[float]]) -> np.ndarray:
        if len(inputs) != len(outputs):
            raise ValueError(f"Got {len(inputs)} inputs but {len(outputs)} outputs")
        if weights is None:
            return np.ones(len(outputs))
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (len(outputs),):
            raise ValueError(f"Got {weights.shape[0] if weights.ndim else 1} weights "
                             f"for {len(outputs)} pairs")
        return weights

    def em_step(self,
                inputs: Sequence[Optional[AlignedString]],
                outputs: Sequence[AlignedString],
                weights: Optional[Sequence[float]] = None) -> float:
        """One EM iteration over a weighted corpus.

        Expected counts from every pair are accumulated first; both sub-models
        are reestimated exactly once afterwards.

        Returns
        -------
        float
            Weighted log-likelihood of the corpus under the parameters before
            the update, excluding skipped pairs
        """
        weights = self._check_corpus(inputs, outputs, weights)
        corpus_ll = 0.0
        skipped = 0
        for k, (x, y, w) in enumerate(zip(inputs, outputs, weights)):
            log_z = self.accumulate_pair(x, y, float(w), pair_index=k)
            if log_z is None:
                skipped += 1
                continue
            corpus_ll += w * log_z

        self.region_model.reestimate()
        self.edit_model.reestimate()
        self.last_skipped = skipped
        return float(corpus_ll)

    def _has_converged(self, ll: float, prev_ll: float) -> bool:
        if not np.isfinite(prev_ll):
            return False
        if prev_ll == 0.0:
            return ll == 0.0
        return (ll - prev_ll) / abs(prev_ll) < self.convergence_threshold

    def train(self,
              inputs: Sequence[Optional[AlignedString]],
              outputs: Sequence[AlignedString],
              weights: Optional[Sequence[float]] = None,
              dev_inputs: Optional[Sequence[Optional[AlignedString]]] = None,
              dev_outputs: Optional[Sequence[AlignedString]] = None,
              dev_weights: Optional[Sequence[float]] = None,
              restore_best: bool = True) -> TrainingResults:
        """Run EM until convergence or the iteration cap.

        Without a development set, training takes at least ``min_iterations``
        steps and stops once the relative log-likelihood improvement falls
        below ``convergence_threshold``. With one, it stops as soon as the
        development log-likelihood fails to increase. An iteration whose
        development log-likelihood is not finite falls back to the training test.

        Parameters
        ----------
        inputs, outputs : Sequence
            Training pairs; inputs may contain None
        weights : Optional[Sequence[float]]
            Pair weights, default 1
        dev_inputs, dev_outputs, dev_weights : Optional[Sequence]
            Held-out pairs for early stopping
        restore_best : bool, default=True
            With a development set, restore the parameters that scored best on it

        Returns
        -------
        TrainingResults
            Iteration history and stopping information
        """
        weights = self._check_corpus(inputs, outputs, weights)
        use_dev = dev_inputs is not None or dev_outputs is not None
        if use_dev:
            if dev_inputs is None or dev_outputs is None:
                raise ValueError("dev_inputs and dev_outputs must be given together")
            dev_weights = self._check_corpus(dev_inputs, dev_outputs, dev_weights)

        logger.info("Running EM on %d pairs (alphabet size %d)", len(outputs), self.input_size)
        self.statistics_history = []
        prev_ll = -np.inf
        best_dev_ll = -np.inf
        best_iteration = -1
        best_params = None
        converged = False
        ll = -np.inf

        for iteration in range(self.max_iterations):
            ll = self.em_step(inputs, outputs, weights)
            stats = EMStatistics(iteration=iteration,
                                 log_likelihood=ll,
                                 log_likelihood_change=ll - prev_ll,
                                 n_skipped=self.last_skipped)

            if use_dev:
                dev_ll = self.calc_ll(dev_inputs, dev_outputs, dev_weights)
                stats.dev_log_likelihood = dev_ll
                if not np.isfinite(dev_ll):
                    # A zero-probability dev pair gives no stopping signal
                    logger.warning("DEV_LL is %s at iter %d; using the training convergence test",
                                   dev_ll, iteration)
                    stats.converged = (iteration + 1 >= self.min_iterations
                                       and self._has_converged(ll, prev_ll))
                elif dev_ll > best_dev_ll:
                    best_dev_ll = dev_ll
                    best_iteration = iteration
                    if restore_best:
                        best_params = self.get_parameters()
                else:
                    stats.converged = True
                logger.info("EM iter %d: LL=%.4f DEV_LL=%.4f skipped=%d",
                            iteration, ll, dev_ll, self.last_skipped)
            else:
                stats.converged = (iteration + 1 >= self.min_iterations
                                   and self._has_converged(ll, prev_ll))
                logger.info("EM iter %d: LL=%.4f skipped=%d", iteration, ll, self.last_skipped)

            self.statistics_history.append(stats)
            prev_ll = ll
            if stats.converged:
                converged = True
                break
        else:
            logger.info("Reached maximum iterations (%d)", self.max_iterations)

        n_iterations = len(self.statistics_history)
        if use_dev and restore_best and best_params is not None:
            self.set_parameters(best_params)
            logger.info("Restored parameters from iteration %d (DEV_LL=%.4f)",
                        best_iteration, best_dev_ll)
        else:
            best_iteration = n_iterations - 1

        return TrainingResults(
            n_iterations=n_iterations,
            converged=converged,
            final_log_likelihood=ll,
            best_iteration=best_iteration,
            best_dev_log_likelihood=best_dev_ll if use_dev else None,
            statistics_history=list(self.statistics_history)
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def p(self, x: Optional[AlignedString], y: AlignedString) -> float:
        """p(y | x)."""
        return self.partition(x, y)

    def logp(self, x: Optional[AlignedString], y: AlignedString) -> float:
        """log p(y | x); ``-inf`` when the model cannot explain the pair."""
        z = self.partition(x, y)
        if z == 0.0:
            return -np.inf
        return float(np.log(z))

    def logp_batch(self,
                   inputs: Sequence[Optional[AlignedString]],
                   outputs: Sequence[AlignedString]) -> np.ndarray:
        """log p(y | x) for each aligned pair of inputs and outputs."""
        if len(inputs) != len(outputs):
            raise ValueError(f"Got {len(inputs)} inputs but {len(outputs)} outputs")
        return np.array([self.logp(x, y) for x, y in zip(inputs, outputs)], dtype=np.float64)

    def calc_ll(self,
                inputs: Sequence[Optional[AlignedString]],
                outputs: Sequence[AlignedString],
                weights: Optional[Sequence[float]] = None) -> float:
        """Weighted corpus log-likelihood under the current parameters."""
        weights = self._check_corpus(inputs, outputs, weights)
        return float(np.dot(weights, self.logp_batch(inputs, outputs)))

    def sample(self, x: Optional[AlignedString]) -> AlignedString:
        raise NotImplementedError("Sampling outputs from an EditTransducer is not supported")

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def get_parameters(self) -> Dict[str, Any]:
        """Snapshot of all probability tables (copies)."""
        params = {'region_' + k: v for k, v in self.region_model.to_dict().items()}
        params.update({'edit_' + k: v for k, v in self.edit_model.to_dict().items()})
        return params

    def set_parameters(self, params: Dict[str, Any]) -> None:
        """Restore tables from ``get_parameters`` output."""
        self.region_model = StateRegionModel.from_dict(
            {k[len('region_'):]: v for k, v in params.items() if k.startswith('region_')}
        )
        edit_tables = {k[len('edit_'):]: v for k, v in params.items() if k.startswith('edit_')}
        if (int(edit_tables['input_size']), int(edit_tables['output_size'])) != \
                (self.input_size, self.output_size):
            raise ValueError("Parameters were saved for a different alphabet size")
        self.edit_model.smoothing_strength = float(edit_tables['smoothing_strength'])
        self.edit_model.load_tables(edit_tables)
        self.edit_model.reset_counts()

    def __repr__(self) -> str:
        return (f"EditTransducer(alphabet_size={self.input_size}, "
                f"smoothing_strength={self.smoothing_strength:g}, baseline={self.baseline})")
