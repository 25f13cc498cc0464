"""Error types raised by the edit transducer.

Per-pair conditions (``ZeroProbabilityPair``) are recovered inside the EM
driver; the others propagate to the caller.
"""

from typing import Any, Optional


class EditTransducerError(Exception):
    """Base class for all errors raised by this package."""


class UnknownSymbol(EditTransducerError, KeyError):
    """A symbol is not in a frozen alphabet (or is beyond a model's alphabet).

    Parameters
    ----------
    symbol : Any
        The offending symbol or code
    message : Optional[str]
        Override for the default message
    """

    def __init__(self, symbol: Any, message: Optional[str] = None):
        self.symbol = symbol
        super().__init__(message or f"Unknown symbol {symbol!r} for frozen alphabet")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class ZeroProbabilityPair(EditTransducerError):
    """The model assigns probability 0 to a training pair."""

    def __init__(self, pair_index: int, input_text: Optional[str], output_text: str):
        self.pair_index = pair_index
        self.input_text = input_text
        self.output_text = output_text
        super().__init__(
            f"Model was unable to explain pair {pair_index} "
            f"({input_text!r} -> {output_text!r}): forward probability is 0"
        )


class NumericalInconsistency(EditTransducerError, ArithmeticError):
    """A numerical invariant of the model or lattice was violated."""


class DictionaryLoadFailure(EditTransducerError, IOError):
    """A phonetic dictionary file could not be read or parsed."""
