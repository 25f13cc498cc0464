"""String data handling for the edit transducer.

Key Components
--------------
- Alphabet: growable, freezable character <-> index table
- Aligned strings: immutable glyph/phone code bundles, one per string
- Phonetic dictionary: optional ARPAbet alignment collaborator
- Corpus: alias-file reading and training pair construction

Examples
--------
>>> from edit_transducer.data import CharacterAlphabet, AlignedString
>>> alphabet = CharacterAlphabet()
>>> name = AlignedString("smith", alphabet)
>>> len(name), len(alphabet)
(5, 10)
"""

from .alphabet import CharacterAlphabet, validate_symbols
from .aligned_string import (
    AlignedString,
    PhoneticAligner,
    IdentityAligner,
    OUT_OF_DICTIONARY,
    encode_strings
)
from .phonetic_dictionary import ArpabetPhoneticDictionary, strip_stress
from .corpus import (
    AliasTable,
    PairCorpus,
    parse_alias_lines,
    read_alias_file,
    build_pairs,
    collect_tokens
)

__all__ = [
    'CharacterAlphabet',
    'validate_symbols',
    'AlignedString',
    'PhoneticAligner',
    'IdentityAligner',
    'OUT_OF_DICTIONARY',
    'encode_strings',
    'ArpabetPhoneticDictionary',
    'strip_stress',
    'AliasTable',
    'PairCorpus',
    'parse_alias_lines',
    'read_alias_file',
    'build_pairs',
    'collect_tokens'
]
