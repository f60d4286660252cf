"""
Root-finder configuration.

Controls the tolerance and iteration cap used when solving the implicit
update equation.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_solver_options`.
    2. The ``PYIMPLICIT_XTOL`` / ``PYIMPLICIT_MAXITER`` environment variables.
    3. Built-in defaults (``xtol=1e-12``, ``maxiter=100``).

Examples
--------
>>> import pyimplicit
>>> pyimplicit.set_solver_options(xtol=1e-10, maxiter=50)
>>> pyimplicit.get_solver_options()
SolverOptions(xtol=1e-10, maxiter=50)
>>> pyimplicit.reset_solver_options()
"""

import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_XTOL = 1e-12
DEFAULT_MAXITER = 100

XTOL_ENV = "PYIMPLICIT_XTOL"
MAXITER_ENV = "PYIMPLICIT_MAXITER"


@dataclass(frozen=True)
class SolverOptions:
    """Tolerance and iteration cap for the implicit root finder."""
    xtol: float
    maxiter: int


# None means "no programmatic override"
_xtol_override: Optional[float] = None
_maxiter_override: Optional[int] = None


def _check_xtol(value) -> float:
    try:
        xtol = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"xtol must be a number, got {value!r}") from None
    if not xtol > 0:
        raise ConfigurationError(f"xtol must be positive, got {xtol}")
    return xtol


def _check_maxiter(value) -> int:
    try:
        maxiter = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"maxiter must be an integer, got {value!r}") from None
    if maxiter < 1:
        raise ConfigurationError(f"maxiter must be at least 1, got {maxiter}")
    return maxiter


def get_solver_options(xtol: Optional[float] = None,
                       maxiter: Optional[int] = None) -> SolverOptions:
    """
    Return the active solver options.

    Parameters
    ----------
    xtol : float, optional
        Explicit tolerance; takes precedence over every other source.
    maxiter : int, optional
        Explicit iteration cap; takes precedence over every other source.

    Returns
    -------
    SolverOptions
    """
    if xtol is None:
        if _xtol_override is not None:
            xtol = _xtol_override
        else:
            xtol = os.environ.get(XTOL_ENV, "").strip() or DEFAULT_XTOL

    if maxiter is None:
        if _maxiter_override is not None:
            maxiter = _maxiter_override
        else:
            maxiter = os.environ.get(MAXITER_ENV, "").strip() or DEFAULT_MAXITER

    return SolverOptions(xtol=_check_xtol(xtol), maxiter=_check_maxiter(maxiter))


def set_solver_options(xtol: Optional[float] = None,
                       maxiter: Optional[int] = None) -> None:
    """
    Override solver options for the whole process.

    Arguments left as None keep their current override.

    Raises
    ------
    ConfigurationError
        If a value is not positive.
    """
    global _xtol_override, _maxiter_override
    if xtol is not None:
        _xtol_override = _check_xtol(xtol)
    if maxiter is not None:
        _maxiter_override = _check_maxiter(maxiter)


def reset_solver_options() -> None:
    """Drop programmatic overrides and restore the default resolution order."""
    global _xtol_override, _maxiter_override
    _xtol_override = None
    _maxiter_override = None


def print_solver_info():
    """Print the active solver configuration (diagnostic)."""
    opts = get_solver_options()
    print("pyimplicit Solver Configuration")
    print("=" * 50)
    print(f"  xtol:    {opts.xtol:g}")
    print(f"  maxiter: {opts.maxiter}")
    print("\nOverrides:")
    print(f"  programmatic: xtol={_xtol_override}, maxiter={_maxiter_override}")
    print(f"  {XTOL_ENV}={os.environ.get(XTOL_ENV, '')!r}")
    print(f"  {MAXITER_ENV}={os.environ.get(MAXITER_ENV, '')!r}")


__all__ = [
    "SolverOptions",
    "get_solver_options",
    "set_solver_options",
    "reset_solver_options",
    "print_solver_info",
]
