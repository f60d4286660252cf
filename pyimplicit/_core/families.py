"""
GLM family definitions.

Variance and deviance functions, used for post-hoc evaluation of a fit.
The update path never consults the family.
"""

import numpy as np
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Union

from scipy.special import xlogy

from ..exceptions import ConfigurationError, DimensionMismatch


class FamilyName(str, Enum):
    GAUSSIAN = "gaussian"
    POISSON = "poisson"
    BINOMIAL = "binomial"


def _prepare(y, mu, wt):
    y = np.atleast_1d(np.asarray(y, dtype=np.float64)).ravel()
    mu = np.atleast_1d(np.asarray(mu, dtype=np.float64)).ravel()
    if wt is None:
        wt = np.ones_like(y)
    else:
        wt = np.atleast_1d(np.asarray(wt, dtype=np.float64)).ravel()
    if not (y.shape == mu.shape == wt.shape):
        raise DimensionMismatch(
            f"y, mu and wt must have the same length, got "
            f"{y.size}, {mu.size} and {wt.size}"
        )
    return y, mu, wt


def _y_log_y(y: np.ndarray, mu: np.ndarray) -> np.ndarray:
    """y*log(y/mu), defined as 0 where y == 0."""
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(y != 0, xlogy(y, y / mu), 0.0)


class Family(ABC):
    """Base class for GLM families."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Family name."""
        pass

    @abstractmethod
    def variance(self, mu):
        """Variance function: V(μ)"""
        pass

    @abstractmethod
    def dev_resids(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: np.ndarray
    ) -> np.ndarray:
        """Per-observation deviance contributions."""
        pass

    def deviance(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: Optional[np.ndarray] = None
    ) -> float:
        """
        Total weighted deviance.

        Parameters
        ----------
        y : array_like, shape (n,)
            Observed responses
        mu : array_like, shape (n,)
            Fitted means
        wt : array_like, shape (n,), optional
            Prior weights (default: ones)
        """
        y, mu, wt = _prepare(y, mu, wt)
        return float(np.sum(self.dev_resids(y, mu, wt)))

    def __repr__(self):
        return f"{type(self).__name__}()"


class Gaussian(Family):
    """Gaussian family."""

    @property
    def name(self) -> str:
        return FamilyName.GAUSSIAN.value

    def variance(self, mu):
        if np.ndim(mu) == 0:
            return 1.
        return np.ones_like(mu, dtype=np.float64)

    def dev_resids(self, y, mu, wt):
        y, mu, wt = _prepare(y, mu, wt)
        return wt * (y - mu) ** 2


class Poisson(Family):
    """Poisson family."""

    @property
    def name(self) -> str:
        return FamilyName.POISSON.value

    def variance(self, mu):
        if np.ndim(mu) == 0:
            return float(mu)
        return np.asarray(mu, dtype=np.float64)

    def dev_resids(self, y, mu, wt):
        y, mu, wt = _prepare(y, mu, wt)
        # y*log(y/mu) only contributes for positive counts
        with np.errstate(divide='ignore', invalid='ignore'):
            ylog = np.where(y > 0, xlogy(y, y / mu), 0.0)
        return 2. * wt * (ylog - (y - mu))


class Binomial(Family):
    """
    Binomial family.

    Deviance residuals follow the usual GLM definition,
    2w[y log(y/μ) + (1-y) log((1-y)/(1-μ))], with 0 log 0 = 0.
    """

    @property
    def name(self) -> str:
        return FamilyName.BINOMIAL.value

    def variance(self, mu):
        if np.ndim(mu) == 0:
            return float(mu) * (1. - float(mu))
        mu = np.asarray(mu, dtype=np.float64)
        return mu * (1 - mu)

    def dev_resids(self, y, mu, wt):
        y, mu, wt = _prepare(y, mu, wt)
        return 2. * wt * (_y_log_y(y, mu) + _y_log_y(1. - y, 1. - mu))


_FAMILIES = {
    FamilyName.GAUSSIAN: Gaussian,
    FamilyName.POISSON: Poisson,
    FamilyName.BINOMIAL: Binomial,
}


def get_family(name: Union[str, FamilyName, Family]) -> Family:
    """
    Resolve a family tag to a family instance.

    Raises
    ------
    ConfigurationError
        If the tag is not recognised.
    """
    if isinstance(name, Family):
        return name
    try:
        key = FamilyName(name)
    except ValueError:
        raise ConfigurationError(
            f"Unknown family: {name!r}\n"
            f"Valid options: {[f.value for f in FamilyName]}"
        ) from None
    return _FAMILIES[key]()


__all__ = [
    "FamilyName",
    "Family",
    "Gaussian",
    "Poisson",
    "Binomial",
    "get_family",
]
