"""
Exception types raised by the PCA engine.

All errors derive from ValueError so callers that already guard numeric
code with ``except ValueError`` keep working.
"""


class PCAError(ValueError):
    """Base class for all PCA engine errors."""


class InvalidInputError(PCAError):
    """Malformed, empty, non-numeric or entirely missing input."""


class DegenerateInputError(PCAError):
    """A column has zero variance where scaling by it is required."""


class NumericalInstabilityError(PCAError):
    """The dispersion matrix is not positive semi-definite within tolerance."""


class ThresholdUnreachableError(PCAError):
    """A cumulative variance threshold above 1.0 was requested."""
