"""ARPAbet phonetic dictionary used as an optional alignment collaborator.

The dictionary file is a sequence of blocks, one per word::

    SMITH 5
    S S
    M M
    I IH1
    T TH
    H EPS

A header line gives the word and the number of alignment lines that follow;
each alignment line pairs a grapheme (or ``EPS``) with a phone. Vowel stress
digits are stripped from phones.
"""

import logging
import re
from pathlib import Path
import numpy as np
from typing import Dict, List, Tuple, Union

from .aligned_string import PhoneticAligner
from ..errors import DictionaryLoadFailure

logger = logging.getLogger(__name__)

VOWEL_CLASS = "V"
CONSONANT_CLASS = "C"
NO_CLASS = "NONE"

EPSILON_PHONE = "EPS"
OUT_OF_DICTIONARY_PHONE = "OOD"

ARPABET_CLASSES = {
    # Monophthongs
    "AO": VOWEL_CLASS, "AA": VOWEL_CLASS, "IY": VOWEL_CLASS, "UW": VOWEL_CLASS,
    "EH": VOWEL_CLASS, "IH": VOWEL_CLASS, "UH": VOWEL_CLASS, "AH": VOWEL_CLASS,
    "AX": VOWEL_CLASS, "AE": VOWEL_CLASS,
    # Diphthongs
    "EY": VOWEL_CLASS, "AY": VOWEL_CLASS, "OW": VOWEL_CLASS, "AW": VOWEL_CLASS,
    "OY": VOWEL_CLASS,
    # R-colored vowels
    "ER": VOWEL_CLASS, "AXR": VOWEL_CLASS, "EH R": VOWEL_CLASS, "UH R": VOWEL_CLASS,
    "AA R": VOWEL_CLASS, "IH R": VOWEL_CLASS, "IY R": VOWEL_CLASS, "AW R": VOWEL_CLASS,
    # Stops
    "P": CONSONANT_CLASS, "B": CONSONANT_CLASS, "T": CONSONANT_CLASS,
    "D": CONSONANT_CLASS, "K": CONSONANT_CLASS, "G": CONSONANT_CLASS,
    # Affricates
    "CH": CONSONANT_CLASS, "JH": CONSONANT_CLASS,
    # Fricatives
    "F": CONSONANT_CLASS, "V": CONSONANT_CLASS, "TH": CONSONANT_CLASS,
    "DH": CONSONANT_CLASS, "S": CONSONANT_CLASS, "Z": CONSONANT_CLASS,
    "SH": CONSONANT_CLASS, "ZH": CONSONANT_CLASS, "HH": CONSONANT_CLASS,
    # Nasals
    "M": CONSONANT_CLASS, "EM": CONSONANT_CLASS, "N": CONSONANT_CLASS,
    "EN": CONSONANT_CLASS, "NG": CONSONANT_CLASS, "ENG": CONSONANT_CLASS,
    # Liquids
    "L": CONSONANT_CLASS, "EL": CONSONANT_CLASS, "R": CONSONANT_CLASS,
    "DX": CONSONANT_CLASS, "NX": CONSONANT_CLASS,
    # Semi-vowels
    "Y": CONSONANT_CLASS, "W": CONSONANT_CLASS, "Q": CONSONANT_CLASS,
    # Epsilon and not-in-dictionary
    EPSILON_PHONE: NO_CLASS,
    OUT_OF_DICTIONARY_PHONE: NO_CLASS,
}

MIN_TOKEN_LENGTH = 3

_NON_LETTERS = re.compile(r"[^\w]|[\d_]", re.UNICODE)


def strip_stress(phone: str) -> str:
    """Remove a trailing stress digit (``AH0`` -> ``AH``)."""
    if phone and phone[-1].isdigit():
        return phone[:-1]
    return phone


class ArpabetPhoneticDictionary(PhoneticAligner):
    """Word -> per-letter ARPAbet phone alignments.

    Parameters
    ----------
    ignore_vowel_stress : bool, default=True
        Strip stress digits from phones when loading
    """

    def __init__(self, ignore_vowel_stress: bool = True):
        self.ignore_vowel_stress = ignore_vowel_stress

        self._phone_index: Dict[str, int] = {}
        self._phone_names: List[str] = []
        self._class_index: Dict[str, int] = {}
        self._class_names: List[str] = []
        self._phone_class: Dict[int, int] = {}

        # word -> (phones, classes), one entry per letter
        self._entries: Dict[str, Tuple[np.ndarray, np.ndarray]] = {}
        self._loaded = False

        for phone, phone_class in ARPABET_CLASSES.items():
            self._add_phone_class(phone, phone_class)

    def _add_phone_class(self, phone: str, phone_class: str) -> None:
        self._phone_class[self.phone_index(phone)] = self.class_index(phone_class)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def n_phones(self) -> int:
        return len(self._phone_names)

    @property
    def n_classes(self) -> int:
        return len(self._class_names)

    def phone_index(self, phone: str) -> int:
        """Index of phone, registering it if unseen."""
        index = self._phone_index.get(phone)
        if index is None:
            index = len(self._phone_names)
            self._phone_index[phone] = index
            self._phone_names.append(phone)
        return index

    def phone_name(self, index: int) -> str:
        return self._phone_names[index]

    def class_index(self, phone_class: str) -> int:
        """Index of a phone class, registering it if unseen."""
        index = self._class_index.get(phone_class)
        if index is None:
            index = len(self._class_names)
            self._class_index[phone_class] = index
            self._class_names.append(phone_class)
        return index

    def class_name(self, index: int) -> str:
        return self._class_names[index]

    def phone_class(self, phone: Union[str, int]) -> int:
        """Class index of a phone given by name or index."""
        if isinstance(phone, str):
            phone = self.phone_index(phone)
        return self._phone_class[phone]

    def load(self, path: Union[str, Path]) -> int:
        """Load dictionary entries from a file.

        Entries are parsed into a scratch table and only committed once the
        whole file has been read, so a failure leaves the dictionary as it was.

        Returns
        -------
        int
            Number of words loaded

        Raises
        ------
        DictionaryLoadFailure
            If the file cannot be read or is malformed
        """
        path = Path(path)
        logger.info("Loading phonetic dictionary from: %s", path)
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            raise DictionaryLoadFailure(f"Unable to read phonetic dictionary {path}: {exc}") from exc

        # New phones are only registered on commit
        parsed: Dict[str, List[str]] = {}
        line_no = 0
        n_lines = len(lines)
        while line_no < n_lines:
            header = lines[line_no].split()
            line_no += 1
            if not header:
                continue
            if len(header) != 2 or not header[1].isdigit():
                raise DictionaryLoadFailure(
                    f"{path}:{line_no}: expected 'WORD COUNT' header, got {lines[line_no - 1]!r}"
                )
            word, count = header[0].upper(), int(header[1])
            if count == 0:
                raise DictionaryLoadFailure(f"{path}:{line_no}: empty alignment for {word!r}")
            if line_no + count > n_lines:
                raise DictionaryLoadFailure(
                    f"{path}:{line_no}: alignment for {word!r} truncated "
                    f"({n_lines - line_no} of {count} lines)"
                )

            phones = []
            for offset in range(count):
                tokens = lines[line_no + offset].split()
                if len(tokens) < 2:
                    raise DictionaryLoadFailure(
                        f"{path}:{line_no + offset + 1}: expected 'GRAPHEME PHONE', "
                        f"got {lines[line_no + offset]!r}"
                    )
                grapheme, phone = tokens[0], ' '.join(tokens[1:])
                if self.ignore_vowel_stress:
                    phone = strip_stress(phone)
                if grapheme == EPSILON_PHONE:
                    # Phone with no letter; per-letter arrays skip it
                    continue
                phones.append(phone)
            line_no += count
            parsed[word] = phones

        for word, phones in parsed.items():
            for phone in phones:
                if phone not in self._phone_index:
                    self._add_phone_class(phone, NO_CLASS)
            phone_codes = np.array([self.phone_index(p) for p in phones], dtype=np.int64)
            class_codes = np.array([self.phone_class(int(p)) for p in phone_codes], dtype=np.int64)
            self._entries[word] = (phone_codes, class_codes)

        self._loaded = True
        logger.info("Loaded %d dictionary entries", len(parsed))
        return len(parsed)

    def alignment(self, text: str) -> Tuple[np.ndarray, np.ndarray]:
        """Per-character phones and phone classes for a (multi-token) string.

        Characters outside dictionary tokens, and tokens shorter than three
        letters, keep the out-of-dictionary phone.
        """
        ood = self.phone_index(OUT_OF_DICTIONARY_PHONE)
        phones = np.full(len(text), ood, dtype=np.int64)
        classes = np.full(len(text), self.phone_class(ood), dtype=np.int64)

        upper = text.upper()
        if len(upper) != len(text):
            # Uppercasing changed the length; spans would not line up
            return phones, classes

        for match in re.finditer(r"\S+", upper):
            token = _NON_LETTERS.sub("", match.group())
            if len(token) < MIN_TOKEN_LENGTH:
                continue
            start = upper.find(token, match.start())
            if start < 0 or token not in self._entries:
                continue
            token_phones, token_classes = self._entries[token]
            span = min(len(token), len(token_phones))
            phones[start:start + span] = token_phones[:span]
            classes[start:start + span] = token_classes[:span]

        return phones, classes

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.upper() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ArpabetPhoneticDictionary(words={len(self)}, phones={self.n_phones})"
