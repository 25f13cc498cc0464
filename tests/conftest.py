"""
Pytest configuration and shared fixtures for the Edit Transducer test suite.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

# Add src to path for testing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from edit_transducer.config import set_global_seed
from edit_transducer.data import CharacterAlphabet, AlignedString


@pytest.fixture(scope="session")
def global_test_seed():
    """Set global random seed for all tests to ensure reproducibility."""
    seed = 42
    set_global_seed(seed)
    return seed


@pytest.fixture
def ab_alphabet():
    """Alphabet over {a, b} (their uppercase forms join on first use)."""
    return CharacterAlphabet("abAB")


@pytest.fixture
def word_alphabet():
    """Lowercase letters plus their uppercase forms and space."""
    letters = "abcdefghijklmnopqrstuvwxyz"
    return CharacterAlphabet(letters + letters.upper() + " ")


@pytest.fixture
def make_string():
    """Factory building AlignedStrings; None stays None (absent input)."""
    def _make(text, alphabet, aligner=None):
        if text is None:
            return None
        return AlignedString(text, alphabet, aligner)
    return _make


@pytest.fixture
def alias_lines():
    """Small alias file contents: canonical name first, tab-separated aliases."""
    return [
        "John Smith\tJon Smith\tJ. Smith",
        "Katherine Jones\tKathy Jones\tKate Jones",
        "Al\tBo",
        "Mohammed Ali\tMuhammad Ali",
        "Zoë Saldana\tZoe Saldana",
    ]


@pytest.fixture
def alias_file(tmp_path, alias_lines):
    """Alias file written to a temporary directory."""
    path = tmp_path / "aliases.tsv"
    path.write_text("\n".join(alias_lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def dictionary_file(tmp_path):
    """Tiny ARPAbet dictionary in word-count block format."""
    content = "\n".join([
        "SMITH 5",
        "S S",
        "M M",
        "I IH1",
        "T TH",
        "H EPS",
        "JONES 5",
        "J JH",
        "O OW1",
        "N N",
        "E EPS",
        "S Z",
        "ALI 3",
        "A AA1",
        "L L",
        "I IY0",
    ])
    path = tmp_path / "dict.txt"
    path.write_text(content + "\n", encoding="utf-8")
    return path


class PairFactory:
    """Helper class for building aligned training pairs."""

    @staticmethod
    def build(pairs, alphabet):
        inputs = [None if x is None else AlignedString(x, alphabet) for x, _ in pairs]
        outputs = [AlignedString(y, alphabet) for _, y in pairs]
        return inputs, outputs


@pytest.fixture
def pair_factory():
    """Pair factory fixture."""
    return PairFactory


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark integration tests."""
    for item in items:
        if "integration" in item.nodeid or "end_to_end" in item.nodeid:
            item.add_marker(pytest.mark.integration)
