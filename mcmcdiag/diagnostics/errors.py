"""
Typed failures raised by the chain diagnostics.

All errors derive from ValueError so callers that already guard the
diagnostics with ``except ValueError`` keep working.
"""


class DiagnosticsError(ValueError):
    """Base class for diagnostic input errors."""


class InsufficientDataError(DiagnosticsError):
    """Chain is too short for the requested computation."""


class InvalidProbabilityError(DiagnosticsError):
    """Interval probability outside the open interval (0, 1)."""


class InsufficientChainsError(DiagnosticsError):
    """Not enough independent chains for a between-chain comparison."""


class IndexOutOfRangeError(DiagnosticsError, IndexError):
    """Parameter index (or name) does not exist in the chain."""


class DimensionMismatchError(DiagnosticsError):
    """Chains in a set do not share the same number of parameters."""


class NonFiniteSampleError(DiagnosticsError):
    """Chain contains NaN or infinite values."""
