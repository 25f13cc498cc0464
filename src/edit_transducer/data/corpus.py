"""Alias-list corpora and training pair construction.

An alias file has one entity per line: tab-separated names, the first of which
is the entity's canonical name. Pairs are built as (alias -> canonical) or,
flipped, (canonical -> alias).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
import re
import numpy as np
from typing import Dict, List, Optional, Set, Union

from .alphabet import CharacterAlphabet
from .aligned_string import AlignedString, PhoneticAligner

logger = logging.getLogger(__name__)

_NON_LETTERS = re.compile(r"[^\w]|[\d_]", re.UNICODE)


def is_ascii_name(name: str) -> bool:
    """Whether every character of name is ASCII (letters, spaces, punctuation)."""
    return all(ord(ch) < 128 for ch in name)


@dataclass
class AliasTable:
    """Canonical names and their aliases read from an alias file.

    Attributes
    ----------
    canonical_names : List[str]
        Canonical name of each kept entity, in file order
    alias_map : Dict[str, List[str]]
        Aliases (excluding the canonical name) for each canonical name
    n_skipped : int
        Lines dropped because fewer than two names survived filtering
    """
    canonical_names: List[str] = field(default_factory=list)
    alias_map: Dict[str, List[str]] = field(default_factory=dict)
    n_skipped: int = 0

    @property
    def n_entities(self) -> int:
        return len(self.canonical_names)

    def aliases(self, canonical_name: str) -> List[str]:
        return self.alias_map.get(canonical_name, [])

    @property
    def unique_names(self) -> Set[str]:
        names = set(self.canonical_names)
        for aliases in self.alias_map.values():
            names.update(aliases)
        return names


@dataclass
class PairCorpus:
    """Parallel (input, output, weight) training data."""
    inputs: List[Optional[AlignedString]] = field(default_factory=list)
    outputs: List[AlignedString] = field(default_factory=list)
    weights: List[float] = field(default_factory=list)
    n_too_long: int = 0

    def __len__(self) -> int:
        return len(self.outputs)

    def append(self, x: Optional[AlignedString], y: AlignedString, weight: float = 1.0) -> None:
        self.inputs.append(x)
        self.outputs.append(y)
        self.weights.append(weight)


def parse_alias_lines(lines: List[str],
                      min_length: int = 3,
                      drop_non_ascii: bool = True) -> AliasTable:
    """Build an AliasTable from raw alias-file lines."""
    table = AliasTable()
    for line in lines:
        names = [name for name in line.rstrip("\n").split("\t") if len(name) >= min_length]
        if drop_non_ascii:
            names = [name for name in names if is_ascii_name(name)]
        if len(names) <= 1:
            table.n_skipped += 1
            continue

        canonical = names[0]
        if canonical not in table.alias_map:
            table.canonical_names.append(canonical)
            table.alias_map[canonical] = []
        for alias in names[1:]:
            if alias != canonical and alias not in table.alias_map[canonical]:
                table.alias_map[canonical].append(alias)
    return table


def read_alias_file(path: Union[str, Path],
                    min_length: int = 3,
                    drop_non_ascii: bool = True) -> AliasTable:
    """Read and filter an alias file.

    Parameters
    ----------
    path : Union[str, Path]
        Tab-separated alias file
    min_length : int, default=3
        Names shorter than this are dropped
    drop_non_ascii : bool, default=True
        Drop names containing non-ASCII characters
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Alias file not found: {path}")
    lines = path.read_text(encoding="utf-8").splitlines()
    logger.info("%d lines read from %s", len(lines), path)
    table = parse_alias_lines(lines, min_length=min_length, drop_non_ascii=drop_non_ascii)
    logger.info("Kept %d entities, skipped %d lines", table.n_entities, table.n_skipped)
    return table


def build_pairs(table: AliasTable,
                alphabet: CharacterAlphabet,
                aligner: Optional[PhoneticAligner] = None,
                flip: bool = False,
                use_all_aliases: bool = False,
                max_length: Optional[int] = None) -> PairCorpus:
    """Build training pairs from an alias table.

    Without ``flip`` each pair maps an alias (input) to its canonical name
    (output). Unless ``use_all_aliases``, one alias per entity is drawn from
    the global NumPy random state. Pairs with a name longer than
    ``max_length`` are dropped and counted in ``n_too_long``.
    """
    corpus = PairCorpus()
    for canonical in table.canonical_names:
        aliases = table.aliases(canonical)
        if not aliases:
            continue
        if not use_all_aliases:
            aliases = [aliases[np.random.randint(len(aliases))]]
        for alias in aliases:
            source, target = (canonical, alias) if flip else (alias, canonical)
            if max_length is not None and max(len(source), len(target)) > max_length:
                corpus.n_too_long += 1
                continue
            corpus.append(AlignedString(source, alphabet, aligner),
                          AlignedString(target, alphabet, aligner))
    if corpus.n_too_long:
        logger.warning("Dropped %d pairs with a name longer than %d characters",
                       corpus.n_too_long, max_length)
    return corpus


def collect_tokens(table: AliasTable, min_length: int = 3) -> Set[str]:
    """Uppercase, letter-only tokens of every name, for building phonetic dictionaries."""
    tokens = set()
    for name in table.unique_names:
        for token in name.split():
            cleaned = _NON_LETTERS.sub("", token).upper()
            if len(cleaned) >= min_length:
                tokens.add(cleaned)
    return tokens
