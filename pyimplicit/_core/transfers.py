"""
Transfer functions.

A transfer function h maps the linear predictor η = x·θ to the conditional
mean μ = h(η). Each one exposes h, h' and h''; every method accepts a scalar
(returning a float) or an array (applied elementwise).
"""

import numpy as np
from abc import ABC, abstractmethod
from enum import Enum
from typing import Union

from scipy.special import expit

from ..exceptions import ConfigurationError

ArrayOrScalar = Union[float, np.ndarray]


def _as_output(value, u):
    """Return a float for scalar input, an array of the same shape otherwise."""
    if np.ndim(u) == 0:
        return float(value)
    return np.asarray(value, dtype=np.float64)


class TransferName(str, Enum):
    IDENTITY = "identity"
    EXP = "exp"
    LOGISTIC = "logistic"


class TransferFunction(ABC):
    """Base class for transfer functions."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Transfer name."""
        pass

    @abstractmethod
    def transfer(self, u: ArrayOrScalar) -> ArrayOrScalar:
        """Transfer: μ = h(η)"""
        pass

    @abstractmethod
    def first_derivative(self, u: ArrayOrScalar) -> ArrayOrScalar:
        """Derivative: dμ/dη"""
        pass

    @abstractmethod
    def second_derivative(self, u: ArrayOrScalar) -> ArrayOrScalar:
        """Second derivative: d²μ/dη²"""
        pass

    def __repr__(self):
        return f"{type(self).__name__}()"


class IdentityTransfer(TransferFunction):
    """Identity transfer (Gaussian regression)."""

    @property
    def name(self) -> str:
        return TransferName.IDENTITY.value

    def transfer(self, u):
        return _as_output(np.asarray(u, dtype=np.float64), u)

    def first_derivative(self, u):
        return _as_output(np.ones_like(u, dtype=np.float64), u)

    def second_derivative(self, u):
        return _as_output(np.zeros_like(u, dtype=np.float64), u)


class ExponentialTransfer(TransferFunction):
    """
    Exponential transfer (Poisson regression).

    Not clamped: large arguments overflow to inf, which the update
    path reports as a NumericalFailure.
    """

    @property
    def name(self) -> str:
        return TransferName.EXP.value

    def transfer(self, u):
        with np.errstate(over='ignore'):
            return _as_output(np.exp(u), u)

    def first_derivative(self, u):
        return self.transfer(u)

    def second_derivative(self, u):
        return self.transfer(u)


class LogisticTransfer(TransferFunction):
    """Logistic transfer: σ(η) = 1/(1 + exp(-η))"""

    @property
    def name(self) -> str:
        return TransferName.LOGISTIC.value

    def transfer(self, u):
        # expit never overflows for large |u|
        return _as_output(expit(u), u)

    def first_derivative(self, u):
        sig = expit(u)
        return _as_output(sig * (1. - sig), u)

    def second_derivative(self, u):
        sig = expit(u)
        return _as_output(2 * sig ** 3 - 3 * sig ** 2 + 2 * sig, u)


_TRANSFERS = {
    TransferName.IDENTITY: IdentityTransfer,
    TransferName.EXP: ExponentialTransfer,
    TransferName.LOGISTIC: LogisticTransfer,
}


def get_transfer(name: Union[str, TransferName, TransferFunction]) -> TransferFunction:
    """
    Resolve a transfer tag to a transfer function instance.

    Parameters
    ----------
    name : str, TransferName or TransferFunction
        'identity', 'exp' or 'logistic'. Instances pass through unchanged.

    Raises
    ------
    ConfigurationError
        If the tag is not recognised.
    """
    if isinstance(name, TransferFunction):
        return name
    try:
        key = TransferName(name)
    except ValueError:
        raise ConfigurationError(
            f"Unknown transfer function: {name!r}\n"
            f"Valid options: {[t.value for t in TransferName]}"
        ) from None
    return _TRANSFERS[key]()


__all__ = [
    "TransferName",
    "TransferFunction",
    "IdentityTransfer",
    "ExponentialTransfer",
    "LogisticTransfer",
    "get_transfer",
]
