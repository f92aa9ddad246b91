"""Error types raised by spanalgebra.

All errors derive from ``ValueError`` so callers that only care about bad input
can keep catching that.
"""


class IntervalError(ValueError):
    """Base class for every contract violation raised by spanalgebra."""


class InvalidIntervalError(IntervalError):
    """An interval would end before it starts."""


class LengthMismatchError(IntervalError):
    """A vector argument is not aligned with the interval set."""


class EmptySetError(IntervalError):
    """An operation needs a non-empty domain and none was available."""


__all__ = [
    "IntervalError",
    "InvalidIntervalError",
    "LengthMismatchError",
    "EmptySetError",
]
