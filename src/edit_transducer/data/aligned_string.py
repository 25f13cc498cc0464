"""Immutable per-string bundles of glyph and phone code arrays.

An AlignedString holds four parallel arrays of identical length (one entry per
character): glyph codes, uppercase glyph codes, phone codes and phone-class
codes. Phones come from a PhoneticAligner collaborator; without one, an
identity alignment is used.
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import List, Optional, Sequence, Tuple

from .alphabet import CharacterAlphabet

# Phone / phone-class code for characters with no dictionary alignment
OUT_OF_DICTIONARY = -1


class PhoneticAligner(ABC):
    """Interface for collaborators mapping a string to per-character phones."""

    @abstractmethod
    def alignment(self, text: str) -> Tuple[np.ndarray, np.ndarray]:
        """Return (phones, phone_classes), each of length ``len(text)``."""


class IdentityAligner(PhoneticAligner):
    """Fallback aligner: each character is its own phone, with no phone class.

    Parameters
    ----------
    alphabet : CharacterAlphabet
        Alphabet used to code characters as phones
    """

    def __init__(self, alphabet: CharacterAlphabet):
        self.alphabet = alphabet

    def alignment(self, text: str) -> Tuple[np.ndarray, np.ndarray]:
        phones = self.alphabet.encode(text)
        classes = np.full(len(text), OUT_OF_DICTIONARY, dtype=np.int64)
        return phones, classes


def _readonly(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=np.int64, copy=True)
    array.setflags(write=False)
    return array


class AlignedString:
    """Immutable bundle of equal-length glyph/phone code arrays for one string.

    Parameters
    ----------
    text : str
        The raw string
    alphabet : CharacterAlphabet
        Shared character alphabet; grows with novel characters unless frozen
    aligner : Optional[PhoneticAligner]
        Phonetic collaborator; ``IdentityAligner`` when None

    Raises
    ------
    UnknownSymbol
        If a character or its uppercase form is novel to a frozen alphabet
    ValueError
        If the aligner returns arrays of the wrong length
    """

    __slots__ = ('_text', '_glyphs', '_upper_glyphs', '_phones', '_phone_classes')

    def __init__(self,
                 text: str,
                 alphabet: CharacterAlphabet,
                 aligner: Optional[PhoneticAligner] = None):
        glyphs = alphabet.encode(text)
        upper_glyphs = np.array([alphabet.index_of(ch.upper()[0]) for ch in text], dtype=np.int64)

        if aligner is None:
            aligner = IdentityAligner(alphabet)
        phones, phone_classes = aligner.alignment(text)
        if len(phones) != len(text) or len(phone_classes) != len(text):
            raise ValueError(
                f"Aligner returned {len(phones)} phones and {len(phone_classes)} classes "
                f"for a string of length {len(text)}"
            )

        object.__setattr__(self, '_text', text)
        object.__setattr__(self, '_glyphs', _readonly(glyphs))
        object.__setattr__(self, '_upper_glyphs', _readonly(upper_glyphs))
        object.__setattr__(self, '_phones', _readonly(phones))
        object.__setattr__(self, '_phone_classes', _readonly(phone_classes))

    def __setattr__(self, name, value):
        raise AttributeError("AlignedString is immutable")

    @property
    def text(self) -> str:
        return self._text

    @property
    def glyphs(self) -> np.ndarray:
        return self._glyphs

    @property
    def upper_glyphs(self) -> np.ndarray:
        return self._upper_glyphs

    @property
    def phones(self) -> np.ndarray:
        return self._phones

    @property
    def phone_classes(self) -> np.ndarray:
        return self._phone_classes

    def glyph_at(self, pos: int) -> int:
        return int(self._glyphs[pos])

    def __len__(self) -> int:
        return len(self._text)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlignedString):
            return NotImplemented
        return self._text == other._text and np.array_equal(self._glyphs, other._glyphs)

    def __hash__(self) -> int:
        return hash(self._text)

    def __repr__(self) -> str:
        return f"AlignedString({self._text!r})"


def encode_strings(texts: Sequence[Optional[str]],
                   alphabet: CharacterAlphabet,
                   aligner: Optional[PhoneticAligner] = None) -> List[Optional[AlignedString]]:
    """Build AlignedStrings for a batch of texts; ``None`` stays ``None`` (absent input)."""
    return [None if text is None else AlignedString(text, alphabet, aligner) for text in texts]
