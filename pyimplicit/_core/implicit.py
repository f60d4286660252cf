"""
Implicit and explicit SGD updates.

The implicit update writes θ_new = θ_old + (ξ/a)·A x and solves the scalar
equation

    ξ = a · g(ξ),   g(ξ) = y - h(x·θ_old + ‖x‖²·ξ)

where A is the learning-rate matrix and a = x'Ax / ‖x‖² is the rate along x.
For A = aI this is the usual θ_new = θ_old + ξ·x, and in general
θ_new = θ_old + A x (y - h(x·θ_new)).
"""

from typing import Optional, Tuple

import numpy as np

from .._config import get_solver_options
from ..exceptions import NumericalFailure
from .data import DataPoint
from .experiment import Experiment
from .roots import halley_root


class ScoreCoefficient:
    """
    Response residual g(ξ) and the derivatives of the fitted mean in ξ.

    ``first_derivative`` and ``second_derivative`` differentiate
    h(x·θ_old + ‖x‖²·ξ), so they equal -g'(ξ) and -g''(ξ).

    Parameters
    ----------
    experiment : Experiment
        Supplies h, h', h''
    data_point : DataPoint
        Observation (x, y)
    theta_old : ndarray, shape (p,)
        Estimate before the update
    normx : float
        Squared norm of x
    """

    def __init__(self, experiment: Experiment, data_point: DataPoint,
                 theta_old: np.ndarray, normx: float):
        self.experiment = experiment
        self.data_point = data_point
        self.theta_old = theta_old
        self.normx = float(normx)
        self._eta = float(np.dot(theta_old, data_point.x))

    def __call__(self, ksi: float) -> float:
        return self.data_point.y - self.experiment.h_transfer(self._eta + self.normx * ksi)

    def first_derivative(self, ksi: float) -> float:
        return self.experiment.h_first_derivative(self._eta + self.normx * ksi) * self.normx

    def second_derivative(self, ksi: float) -> float:
        return (self.experiment.h_second_derivative(self._eta + self.normx * ksi)
                * self.normx * self.normx)


class ImplicitFunction:
    """
    f(ξ) = ξ - a·g(ξ) with its first two derivatives, for Halley's method.

    f'(ξ) = 1 + a·h'·‖x‖² >= 1 for nondecreasing h, so the Newton part of
    each step never divides by zero.
    """

    def __init__(self, at: float, score_coeff: ScoreCoefficient):
        self.at = float(at)
        self.g = score_coeff

    def __call__(self, u: float) -> Tuple[float, float, float]:
        value = u - self.at * self.g(u)
        first = 1 + self.at * self.g.first_derivative(u)
        second = self.at * self.g.second_derivative(u)
        return value, first, second


def implicit_bounds(at: float, score_coeff: ScoreCoefficient) -> Tuple[float, float]:
    """
    Interval containing the root of ξ = a·g(ξ).

    With r = a·g(0), the root lies between 0 and r for any nondecreasing
    transfer and a >= 0.
    """
    r = at * score_coeff(0.)
    if not np.isfinite(r):
        raise NumericalFailure(f"Non-finite residual at the current estimate: a*g(0) = {r}")
    return min(0., r), max(0., r)


def solve_implicit(at: float, score_coeff: ScoreCoefficient,
                   xtol: Optional[float] = None,
                   maxiter: Optional[int] = None) -> float:
    """Solve ξ = a·g(ξ) for ξ."""
    opts = get_solver_options(xtol, maxiter)
    lower, upper = implicit_bounds(at, score_coeff)
    return halley_root(ImplicitFunction(at, score_coeff),
                       x0=0.5 * (lower + upper),
                       bracket=(lower, upper),
                       xtol=opts.xtol,
                       maxiter=opts.maxiter)


def implicit_update(
    experiment: Experiment,
    data_point: DataPoint,
    theta_old: np.ndarray,
    t: int,
    xtol: Optional[float] = None,
    maxiter: Optional[int] = None,
) -> np.ndarray:
    """
    One implicit SGD step.

    Parameters
    ----------
    experiment : Experiment
        Bound transfer and learning rate
    data_point : DataPoint
        Observation to process
    theta_old : ndarray, shape (p,)
        Current estimate (not modified)
    t : int
        Iteration index
    xtol, maxiter : optional
        Root-finder options; default to get_solver_options()

    Returns
    -------
    theta_new : ndarray, shape (p,)

    Raises
    ------
    NumericalFailure
        If the root finder fails or the new estimate is not finite.
    """
    theta_old = experiment.check_theta(theta_old)
    experiment.check_data_point(data_point)
    x = data_point.x

    A = experiment.learning_rate(theta_old, data_point, t)
    normx = float(np.dot(x, x))
    if normx == 0.:
        return theta_old.copy()

    Ax = A @ x
    at = float(np.dot(x, Ax)) / normx
    if at == 0.:
        return theta_old.copy()

    g = ScoreCoefficient(experiment, data_point, theta_old, normx)
    ksi = solve_implicit(at, g, xtol=xtol, maxiter=maxiter)

    theta_new = theta_old + (ksi / at) * Ax
    if not np.all(np.isfinite(theta_new)):
        raise NumericalFailure(f"Implicit update produced a non-finite estimate at t={t}")
    return theta_new


def explicit_update(
    experiment: Experiment,
    data_point: DataPoint,
    theta_old: np.ndarray,
    t: int,
) -> np.ndarray:
    """One explicit SGD step: θ_old + A·score(θ_old)."""
    theta_old = experiment.check_theta(theta_old)
    A = experiment.learning_rate(theta_old, data_point, t)
    with np.errstate(over='ignore', invalid='ignore'):
        theta_new = theta_old + A @ experiment.score_function(theta_old, data_point)
    if not np.all(np.isfinite(theta_new)):
        raise NumericalFailure(f"Explicit update produced a non-finite estimate at t={t}")
    return theta_new


__all__ = [
    "ScoreCoefficient",
    "ImplicitFunction",
    "implicit_bounds",
    "solve_implicit",
    "implicit_update",
    "explicit_update",
]
