"""Tests for the backoff-smoothed edit operation model."""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from edit_transducer.core.edit_model import (
    EditOp,
    EditOperationModel,
    DEFAULT_EDIT_PROBS
)
from edit_transducer.errors import NumericalInconsistency

N_IN = N_OUT = 4
EOS, EOS_PRIME = N_IN, N_IN + 1


def _mass(model, x):
    """Sum of prob() over every (op, output char) choice for input code x."""
    total = model.prob(None, EditOp.COPY, x) + model.prob(None, EditOp.DELETE, x)
    for y in range(N_OUT + 2):
        total += model.prob(y, EditOp.INSERT, x)
        total += model.prob(y, EditOp.SUBSTITUTE, x)
    return total


class TestInitialModel:
    """Test suite for a freshly constructed model."""

    def test_fully_backed_off(self):
        model = EditOperationModel(N_IN, N_OUT)
        for x in range(N_IN):
            assert model.op_prob(EditOp.COPY, x) == pytest.approx(0.6)
            assert model.op_prob(EditOp.DELETE, x) == pytest.approx(0.2)
        # Uniform output distribution over regular characters
        assert model.prob(0, EditOp.INSERT, 1) == pytest.approx(0.1 / N_OUT)

    def test_normalized_for_every_input_code(self):
        model = EditOperationModel(N_IN, N_OUT)
        for x in range(N_IN + 2):
            assert _mass(model, x) == pytest.approx(1.0, abs=1e-8)
        assert_allclose(model.total_mass(), 1.0, atol=1e-8)

    @pytest.mark.parametrize("sentinel", [EOS, EOS_PRIME])
    def test_insert_forced_at_input_sentinels(self, sentinel):
        model = EditOperationModel(N_IN, N_OUT)
        dist = model.op_distribution(sentinel)
        assert dist[EditOp.INSERT] == 1.0
        assert dist[EditOp.COPY] == dist[EditOp.DELETE] == dist[EditOp.SUBSTITUTE] == 0.0

    def test_output_sentinels_never_produced(self):
        model = EditOperationModel(N_IN, N_OUT)
        for x in range(N_IN + 2):
            for y in (EOS, EOS_PRIME):
                assert model.prob(y, EditOp.INSERT, x) == 0.0
                assert model.prob(y, EditOp.SUBSTITUTE, x) == 0.0

    @pytest.mark.parametrize("kwargs", [
        {'input_size': 0, 'output_size': 4},
        {'input_size': 4, 'output_size': 4, 'smoothing_strength': 0.0},
        {'input_size': 4, 'output_size': 4, 'initial_edit_probs': (0.5, 0.5)},
        {'input_size': 4, 'output_size': 4, 'initial_edit_probs': (0.5, 0.5, 0.5, 0.5)},
    ])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            EditOperationModel(**kwargs)


class TestReestimate:
    """Test suite for count accumulation and reestimation."""

    def test_copy_counts_raise_copy_probability(self):
        model = EditOperationModel(N_IN, N_OUT)
        model.accumulate(None, EditOp.COPY, 0, 5.0)
        assert model.op_count(EditOp.COPY, 0) == 5.0
        model.reestimate()

        assert model.op_prob(EditOp.COPY, 0) > 0.6
        # Other characters only move through the global backoff
        assert model.op_prob(EditOp.COPY, 1) > 0.6
        assert model.op_prob(EditOp.COPY, 0) > model.op_prob(EditOp.COPY, 1)
        assert model.op_count(EditOp.COPY, 0) == 0.0

    def test_insert_counts_shift_output_distribution(self):
        model = EditOperationModel(N_IN, N_OUT)
        model.accumulate(2, EditOp.INSERT, EOS_PRIME, 10.0)
        model.reestimate()
        assert model.prob(2, EditOp.INSERT, EOS_PRIME) > model.prob(3, EditOp.INSERT, EOS_PRIME)
        # Sentinel columns do not feed the op backoff
        assert model.op_prob(EditOp.INSERT, 0) == pytest.approx(0.1)

    def test_substitute_counts_are_input_specific(self):
        model = EditOperationModel(N_IN, N_OUT)
        model.accumulate(1, EditOp.SUBSTITUTE, 0, 4.0)
        model.reestimate()
        p_from_0 = model.prob(1, EditOp.SUBSTITUTE, 0) / model.op_prob(EditOp.SUBSTITUTE, 0)
        p_from_2 = model.prob(1, EditOp.SUBSTITUTE, 2) / model.op_prob(EditOp.SUBSTITUTE, 2)
        assert p_from_0 > p_from_2 > 1.0 / N_OUT

    def test_normalized_after_training_counts(self):
        model = EditOperationModel(N_IN, N_OUT)
        rng = np.random.RandomState(0)
        for _ in range(3):
            for _ in range(50):
                op = list(EditOp)[rng.randint(4)]
                x = rng.randint(N_IN + 2) if op is EditOp.INSERT else rng.randint(N_IN)
                model.accumulate(rng.randint(N_OUT), op, x, rng.rand())
            model.reestimate()
            for x in range(N_IN + 2):
                assert _mass(model, x) == pytest.approx(1.0, abs=1e-8)

    def test_empty_reestimate_is_stable(self):
        model = EditOperationModel(N_IN, N_OUT)
        before = model.to_dict()
        model.reestimate()
        after = model.to_dict()
        for name in ('p_edit', 'p_char_ins', 'p_char_sub'):
            assert_allclose(after[name], before[name])

    def test_add_counts_merges_accumulators(self):
        merged, single = EditOperationModel(N_IN, N_OUT), EditOperationModel(N_IN, N_OUT)
        part = EditOperationModel(N_IN, N_OUT)
        merged.accumulate(1, EditOp.SUBSTITUTE, 0, 0.5)
        part.accumulate(None, EditOp.DELETE, 2, 1.5)
        single.accumulate(1, EditOp.SUBSTITUTE, 0, 0.5)
        single.accumulate(None, EditOp.DELETE, 2, 1.5)
        merged.add_counts(part)
        merged.reestimate()
        single.reestimate()
        assert_allclose(merged.to_dict()['p_edit'], single.to_dict()['p_edit'])

    def test_add_counts_rejects_other_alphabet(self):
        with pytest.raises(ValueError):
            EditOperationModel(N_IN, N_OUT).add_counts(EditOperationModel(N_IN + 1, N_OUT))

    def test_broken_tables_are_detected(self):
        model = EditOperationModel(N_IN, N_OUT)
        model.p_edit[0, 0] += 0.01
        with pytest.raises(NumericalInconsistency):
            model.check_normalization()


class TestDiagnostics:
    """Test suite for entropy and serialization helpers."""

    def test_op_entropy(self):
        model = EditOperationModel(N_IN, N_OUT)
        ent = model.op_entropy()
        assert ent.shape == (N_IN + 2,)
        probs = np.array(DEFAULT_EDIT_PROBS)
        assert ent[0] == pytest.approx(-np.sum(probs * np.log(probs)))
        assert ent[EOS] == pytest.approx(0.0)

    def test_dict_round_trip(self):
        model = EditOperationModel(N_IN, N_OUT, smoothing_strength=2.0)
        model.accumulate(None, EditOp.COPY, 1, 3.0)
        model.reestimate()
        restored = EditOperationModel.from_dict(model.to_dict())
        assert restored.smoothing_strength == 2.0
        for x in range(N_IN + 2):
            assert restored.op_distribution(x) == pytest.approx(model.op_distribution(x))

    def test_load_tables_checks_shapes(self):
        small = EditOperationModel(N_IN, N_OUT)
        large = EditOperationModel(N_IN + 1, N_OUT + 1)
        with pytest.raises(ValueError):
            small.load_tables(large.to_dict())
