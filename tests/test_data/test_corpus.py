"""Tests for alias corpora and training pair construction."""

import pytest

from edit_transducer.config import set_global_seed
from edit_transducer.data.alphabet import CharacterAlphabet
from edit_transducer.data.corpus import (
    AliasTable,
    PairCorpus,
    is_ascii_name,
    parse_alias_lines,
    read_alias_file,
    build_pairs,
    collect_tokens
)


def test_is_ascii_name():
    assert is_ascii_name("J. Smith")
    assert not is_ascii_name("Zoë")


class TestParseAliasLines:
    """Test suite for alias-line filtering."""

    def test_filtering(self, alias_lines):
        table = parse_alias_lines(alias_lines)
        assert table.canonical_names == ["John Smith", "Katherine Jones", "Mohammed Ali"]
        assert table.n_entities == 3
        assert table.n_skipped == 2
        assert table.aliases("John Smith") == ["Jon Smith", "J. Smith"]
        assert table.aliases("Nobody") == []

    def test_non_ascii_kept_when_allowed(self, alias_lines):
        table = parse_alias_lines(alias_lines, drop_non_ascii=False)
        assert "Zoë Saldana" in table.canonical_names
        assert table.aliases("Zoë Saldana") == ["Zoe Saldana"]

    def test_min_length(self):
        table = parse_alias_lines(["Al\tBo\tCy"], min_length=2)
        assert table.canonical_names == ["Al"]
        assert table.aliases("Al") == ["Bo", "Cy"]

    def test_repeated_canonical_name_merges_aliases(self):
        table = parse_alias_lines(["Ann Lee\tAnn Li", "Ann Lee\tAnne Lee\tAnn Li"])
        assert table.n_entities == 1
        assert table.aliases("Ann Lee") == ["Ann Li", "Anne Lee"]

    def test_unique_names(self, alias_lines):
        table = parse_alias_lines(alias_lines)
        assert "Kate Jones" in table.unique_names
        assert "Katherine Jones" in table.unique_names
        assert len(table.unique_names) == 8


class TestReadAliasFile:
    """Test suite for reading alias files."""

    def test_read(self, alias_file):
        table = read_alias_file(alias_file)
        assert isinstance(table, AliasTable)
        assert table.n_entities == 3

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_alias_file(tmp_path / "nope.tsv")


class TestBuildPairs:
    """Test suite for build_pairs."""

    def test_alias_is_input_by_default(self, alias_lines):
        table = parse_alias_lines(alias_lines)
        corpus = build_pairs(table, CharacterAlphabet(), use_all_aliases=True)
        assert isinstance(corpus, PairCorpus)
        assert len(corpus) == 5
        assert corpus.inputs[0].text == "Jon Smith"
        assert corpus.outputs[0].text == "John Smith"
        assert corpus.weights == [1.0] * 5

    def test_flip(self, alias_lines):
        table = parse_alias_lines(alias_lines)
        corpus = build_pairs(table, CharacterAlphabet(), flip=True, use_all_aliases=True)
        assert corpus.inputs[0].text == "John Smith"
        assert corpus.outputs[0].text == "Jon Smith"

    def test_one_random_alias_per_entity(self, alias_lines):
        table = parse_alias_lines(alias_lines)
        set_global_seed(3)
        first = build_pairs(table, CharacterAlphabet())
        set_global_seed(3)
        second = build_pairs(table, CharacterAlphabet())

        assert len(first) == table.n_entities
        assert [x.text for x in first.inputs] == [x.text for x in second.inputs]
        for x, y in zip(first.inputs, first.outputs):
            assert x.text in table.aliases(y.text)

    def test_long_names_dropped(self, alias_lines, caplog):
        table = parse_alias_lines(alias_lines)
        with caplog.at_level("WARNING"):
            corpus = build_pairs(table, CharacterAlphabet(), use_all_aliases=True, max_length=12)
        # Both "Katherine Jones" pairs exceed the limit
        assert len(corpus) == 3
        assert corpus.n_too_long == 2
        assert all(len(y.text) <= 12 for y in corpus.outputs)
        assert "Dropped 2 pairs" in caplog.text

    def test_strings_share_alphabet(self, alias_lines):
        table = parse_alias_lines(alias_lines)
        alphabet = CharacterAlphabet()
        corpus = build_pairs(table, alphabet, use_all_aliases=True)
        assert corpus.inputs[0].glyph_at(0) == alphabet.index_of('J')
        assert '.' in alphabet


class TestCollectTokens:
    """Test suite for collect_tokens."""

    def test_tokens_are_clean_uppercase(self, alias_lines):
        table = parse_alias_lines(alias_lines)
        tokens = collect_tokens(table)
        assert "SMITH" in tokens
        assert "KATHERINE" in tokens
        assert "ALI" in tokens
        # "J." is too short once the period is removed
        assert "J" not in tokens
        assert all(t == t.upper() and t.isalpha() for t in tokens)
