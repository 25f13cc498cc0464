"""Character alphabet management for string edit models.

Provides a growable, freezable bijection between characters and dense integer
codes. One alphabet is constructed per run and shared by reference between all
AlignedString instances and the models trained on them.
"""

import numpy as np
from typing import List, Dict, Optional, Iterable, Iterator, Any
import warnings

from ..errors import UnknownSymbol


def validate_symbols(symbols: List[str]) -> Dict[str, Any]:
    """
    Validate a symbol list and provide diagnostic information.

    Parameters
    ----------
    symbols : List[str]
        Candidate alphabet symbols in index order

    Returns
    -------
    dict
        Validation results with diagnostics
    """
    results = {
        'valid': True,
        'size': len(symbols),
        'errors': [],
        'warnings': []
    }

    if len(set(symbols)) != len(symbols):
        results['valid'] = False
        results['errors'].append("Alphabet contains duplicate symbols")

    for symbol in symbols:
        if not isinstance(symbol, str):
            results['valid'] = False
            results['errors'].append(f"Symbol {symbol!r} is not a string")
        elif len(symbol) == 0:
            results['valid'] = False
            results['errors'].append("Empty symbol found")
        elif len(symbol) > 1:
            results['warnings'].append(f"Symbol '{symbol}' is longer than one character")

    if len(symbols) > 1000:
        results['warnings'].append("Very large alphabet (>1000) makes edit tables quadratic in size")

    return results


class CharacterAlphabet:
    """Bidirectional symbol <-> index table, growable until frozen.

    Indices are dense from 0 and never change once assigned.

    Parameters
    ----------
    symbols : Optional[Iterable[str]]
        Initial symbols, assigned indices in iteration order
    frozen : bool, default=False
        Whether the alphabet starts frozen

    Examples
    --------
    >>> alphabet = CharacterAlphabet("ab")
    >>> alphabet.index_of('c')
    2
    >>> alphabet.freeze()
    >>> alphabet.index_of('d')
    Traceback (most recent call last):
        ...
    edit_transducer.errors.UnknownSymbol: Unknown symbol 'd' for frozen alphabet
    """

    def __init__(self, symbols: Optional[Iterable[str]] = None, frozen: bool = False):
        self._index: Dict[str, int] = {}
        self._symbols: List[str] = []
        self._frozen = False

        if symbols is not None:
            symbols = list(symbols)
            validation = validate_symbols(symbols)
            if not validation['valid']:
                raise ValueError(f"Invalid alphabet: {validation['errors']}")
            for warning in validation['warnings']:
                warnings.warn(warning)
            for symbol in symbols:
                self.index_of(symbol)

        self._frozen = frozen

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def symbols(self) -> List[str]:
        return list(self._symbols)

    def freeze(self) -> None:
        """Stop growth; later lookups of novel symbols raise UnknownSymbol."""
        self._frozen = True

    def index_of(self, symbol: str) -> int:
        """Return the index of symbol, inserting it if unseen and not frozen.

        Raises
        ------
        UnknownSymbol
            If the symbol is unseen and the alphabet is frozen
        """
        index = self._index.get(symbol)
        if index is not None:
            return index
        if self._frozen:
            raise UnknownSymbol(symbol)
        index = len(self._symbols)
        self._index[symbol] = index
        self._symbols.append(symbol)
        return index

    def symbol_of(self, index: int) -> str:
        """Return the symbol with the given index."""
        if index < 0 or index >= len(self._symbols):
            raise IndexError(f"Index {index} out of range for alphabet of size {len(self._symbols)}")
        return self._symbols[index]

    def encode(self, text: str) -> np.ndarray:
        """Map each character of text to its index."""
        return np.array([self.index_of(ch) for ch in text], dtype=np.int64)

    def decode(self, codes: Iterable[int]) -> str:
        """Map a sequence of indices back to a string."""
        return ''.join(self.symbol_of(int(code)) for code in codes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'symbols': self.symbols,
            'frozen': self._frozen
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CharacterAlphabet':
        """Rebuild an alphabet from ``to_dict`` output."""
        return cls(data['symbols'], frozen=data.get('frozen', False))

    def __repr__(self) -> str:
        return f"CharacterAlphabet(size={len(self)}, frozen={self._frozen})"

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._index

    def __getitem__(self, index: int) -> str:
        return self.symbol_of(index)

    def __iter__(self) -> Iterator[str]:
        return iter(self._symbols)
