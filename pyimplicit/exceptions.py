"""
Exception types.

Every error the package raises on purpose derives from PyImplicitError.
"""


class PyImplicitError(Exception):
    """Base class for pyimplicit errors."""


class ConfigurationError(PyImplicitError, ValueError):
    """Invalid transfer, family, learning-rate or solver configuration."""


class DimensionMismatch(PyImplicitError, ValueError):
    """Vector or matrix shapes disagree with the experiment dimension."""


class NumericalFailure(PyImplicitError, ArithmeticError):
    """Root finder failed to converge, or an update produced NaN/Inf."""


__all__ = [
    "PyImplicitError",
    "ConfigurationError",
    "DimensionMismatch",
    "NumericalFailure",
]
