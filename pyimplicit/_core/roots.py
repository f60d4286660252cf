"""
Third-order root finding.

Halley iteration on a function returning (f, f', f''), safeguarded by a
bracketing fallback. Knows nothing about experiments or data points.
"""

import logging
import warnings
from typing import Callable, Optional, Tuple

import numpy as np
from scipy.optimize import root_scalar

from ..exceptions import NumericalFailure

logger = logging.getLogger(__name__)

Triple = Tuple[float, float, float]


def halley_root(
    fn: Callable[[float], Triple],
    x0: float,
    bracket: Optional[Tuple[float, float]] = None,
    xtol: float = 1e-12,
    maxiter: int = 100,
) -> float:
    """
    Find a root of fn with Halley's method.

    Parameters
    ----------
    fn : callable
        fn(u) -> (value, first derivative, second derivative)
    x0 : float
        Initial guess
    bracket : (float, float), optional
        Interval known to contain the root. When Halley fails or leaves
        the interval, Brent's method is run on it instead.
    xtol : float
        Absolute tolerance on the root
    maxiter : int
        Iteration cap (applies to each method separately)

    Returns
    -------
    float
        The root

    Raises
    ------
    NumericalFailure
        If no finite root is found within maxiter iterations.
    """
    if bracket is not None:
        lower, upper = float(min(bracket)), float(max(bracket))
        if lower == upper:
            return lower
    else:
        lower, upper = -np.inf, np.inf

    root, converged = np.nan, False
    with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
        with warnings.catch_warnings():
            # zero derivative is reported through `converged`
            warnings.simplefilter('ignore', RuntimeWarning)
            try:
                sol = root_scalar(fn, x0=x0, fprime=True, fprime2=True,
                                  method='halley', xtol=xtol, maxiter=maxiter)
                root, converged = sol.root, sol.converged
            except (ArithmeticError, ValueError, RuntimeError) as e:
                logger.debug("Halley iteration raised %s", e)

    inside = lower - xtol <= root <= upper + xtol
    if converged and np.isfinite(root) and inside:
        return float(root)

    if bracket is None:
        raise NumericalFailure(
            f"Halley iteration did not converge from x0={x0} within {maxiter} iterations"
        )

    logger.debug("Halley failed (root=%r, converged=%s); bisecting on [%g, %g]",
                 root, converged, lower, upper)

    def value(u):
        return fn(u)[0]

    with np.errstate(over='ignore', invalid='ignore'):
        try:
            sol = root_scalar(value, bracket=[lower, upper], method='brentq',
                              xtol=xtol, maxiter=maxiter)
        except (ArithmeticError, ValueError, RuntimeError) as e:
            raise NumericalFailure(
                f"Root finding failed on [{lower}, {upper}]: {e}"
            ) from e

    if not sol.converged or not np.isfinite(sol.root):
        raise NumericalFailure(
            f"Brent's method did not converge on [{lower}, {upper}] within {maxiter} iterations"
        )
    return float(sol.root)


__all__ = ["halley_root"]
