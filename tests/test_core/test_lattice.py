"""Tests for lattice labels and boundary-sentinel resolution."""

import pytest
import numpy as np

from edit_transducer.core.lattice import (
    CharPair,
    LatticeState,
    LATTICE_INDEX,
    N_LATTICE_STATES,
    eos_code,
    eos_prime_code,
    input_length,
    new_lattice,
    estimate_lattice_bytes
)


def test_lattice_index_covers_every_label():
    assert set(LATTICE_INDEX) == set(LatticeState)
    assert sorted(LATTICE_INDEX.values()) == list(range(N_LATTICE_STATES))


def test_sentinel_codes_follow_alphabet():
    assert eos_code(4) == 4
    assert eos_prime_code(4) == 5


class TestCharPairResolve:
    """Test suite for CharPair.resolve at every kind of cell."""

    def test_regular_characters(self, ab_alphabet, make_string):
        a, b = make_string("a", ab_alphabet), make_string("b", ab_alphabet)
        assert CharPair.resolve(a, a, 0, 0, 4, 4) == CharPair(0, 0, True)
        assert CharPair.resolve(a, b, 0, 0, 4, 4) == CharPair(0, 1, False)

    def test_exhausted_input(self, ab_alphabet, make_string):
        a = make_string("a", ab_alphabet)
        assert CharPair.resolve(a, a, 1, 0, 4, 4) == CharPair(4, 0, False)
        assert CharPair.resolve(a, a, 1, 1, 4, 4) == CharPair(4, 4, True)

    def test_exhausted_output(self, ab_alphabet, make_string):
        a = make_string("a", ab_alphabet)
        assert CharPair.resolve(a, a, 0, 1, 4, 4) == CharPair(0, 4, False)

    def test_absent_input(self, ab_alphabet, make_string):
        y = make_string("ab", ab_alphabet)
        assert CharPair.resolve(None, y, 0, 0, 4, 4) == CharPair(5, 0, False)
        assert CharPair.resolve(None, y, 0, 1, 4, 4) == CharPair(5, 1, False)
        assert CharPair.resolve(None, y, 0, 2, 4, 4) == CharPair(5, 5, True)

    def test_absent_and_empty_inputs_differ(self, ab_alphabet, make_string):
        empty = make_string("", ab_alphabet)
        y = make_string("a", ab_alphabet)
        assert CharPair.resolve(None, y, 0, 0, 4, 4).x != CharPair.resolve(empty, y, 0, 0, 4, 4).x


class TestLatticeTables:
    """Test suite for lattice allocation."""

    def test_input_length(self, ab_alphabet, make_string):
        assert input_length(None) == 0
        assert input_length(make_string("abba", ab_alphabet)) == 4

    def test_new_lattice_shape(self):
        table = new_lattice(3, 5)
        assert table.shape == (N_LATTICE_STATES, 5, 7)
        assert table.dtype == np.float64
        assert not table.any()

    def test_estimate_lattice_bytes(self):
        assert estimate_lattice_bytes(3, 5) == new_lattice(3, 5).nbytes
