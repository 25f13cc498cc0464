"""
Data handling tests for the Edit Transducer.

Tests for:
- Character alphabets
- Aligned strings and aligners
- Phonetic dictionary loading
- Alias corpora and pair construction
"""
