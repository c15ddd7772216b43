"""Exception types raised by the numeric routines.

All errors derive from :class:`ValueError` so callers that already guard
against bad numeric input keep working.
"""


class AnalysisError(ValueError):
    """Base class for failures of a reduction step."""


class InvalidArgumentError(AnalysisError):
    """An argument is outside its allowed domain (e.g. ``delta <= 0``)."""


class ShapeMismatchError(InvalidArgumentError):
    """Parallel sequences do not have the same length."""


class InsufficientDataError(AnalysisError):
    """Too few samples to compute the requested quantity."""


class EmptyInputError(InsufficientDataError):
    """No rows or samples were supplied at all."""


class DegenerateInputError(AnalysisError):
    """Input is mathematically degenerate (e.g. all x values identical)."""


__all__ = [
    "AnalysisError",
    "InvalidArgumentError",
    "ShapeMismatchError",
    "InsufficientDataError",
    "EmptyInputError",
    "DegenerateInputError",
]
