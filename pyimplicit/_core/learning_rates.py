"""
Learning-rate schedules.

Every schedule maps (theta_old, data_point, t, p) to a p × p step-size
matrix, so the experiment can call whichever one is bound the same way.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

import numpy as np

from ..exceptions import ConfigurationError, DimensionMismatch, NumericalFailure
from .data import DataPoint

# Diagonal entries at or below this magnitude are not inverted
DIAGONAL_EPS = 1e-8

ScoreFunction = Callable[[np.ndarray, DataPoint], np.ndarray]


class LearningRateName(str, Enum):
    UNIFORM = "uniform"
    DIAGONAL = "diagonal"


class LearningRate(ABC):
    """Base class for learning-rate schedules."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def learning_rate(
        self,
        theta_old: np.ndarray,
        data_point: DataPoint,
        t: int,
        p: int
    ) -> np.ndarray:
        """
        Step-size matrix for iteration t.

        Parameters
        ----------
        theta_old : ndarray, shape (p,)
            Current estimate
        data_point : DataPoint
            Observation being processed
        t : int
            Iteration index (0 for the first observation)
        p : int
            Dimension

        Returns
        -------
        ndarray, shape (p, p)
        """
        pass


class UniformLearningRate(LearningRate):
    """
    Scalar decaying rate: scale * gamma * (1 + alpha*gamma*t)^(-c) times I_p.

    All four parameters must be finite and non-negative, so the base
    1 + alpha*gamma*t is at least 1 and the rate is real and non-increasing
    in t.
    """

    def __init__(self, gamma: float = 1., alpha: float = 1.,
                 c: float = 2. / 3., scale: float = 1.):
        params = dict(gamma=gamma, alpha=alpha, c=c, scale=scale)
        for key, value in params.items():
            value = float(value)
            if not np.isfinite(value) or value < 0:
                raise ConfigurationError(
                    f"Uniform learning rate needs a finite, non-negative {key}, got {params[key]!r}"
                )
            setattr(self, key, value)

    @property
    def name(self) -> str:
        return LearningRateName.UNIFORM.value

    def rate(self, t: int) -> float:
        """Scalar rate at iteration t."""
        return self.scale * self.gamma * (1 + self.alpha * self.gamma * t) ** (-self.c)

    def learning_rate(self, theta_old, data_point, t, p):
        return np.eye(p) * self.rate(t)

    def __repr__(self):
        return (f"UniformLearningRate(gamma={self.gamma}, alpha={self.alpha}, "
                f"c={self.c}, scale={self.scale})")


class DiagonalLearningRate(LearningRate):
    """
    Per-parameter rate from the current score.

    Builds I_p + diag(G G') with G = score_function(theta_old, data_point)
    and inverts every diagonal entry whose magnitude exceeds DIAGONAL_EPS,
    so each entry is 1 / (1 + G_i²), in (0, 1]. Since 1 + G_i² >= 1 the
    pass-through branch for entries at or below DIAGONAL_EPS never fires
    here; it is kept as a guard on the inversion. G is recomputed on every
    call; nothing accumulates between calls.
    """

    def __init__(self, score_function: ScoreFunction):
        self.score_function = score_function

    @property
    def name(self) -> str:
        return LearningRateName.DIAGONAL.value

    def learning_rate(self, theta_old, data_point, t, p):
        G = np.asarray(self.score_function(theta_old, data_point), dtype=np.float64).ravel()
        if G.shape[0] != p:
            raise DimensionMismatch(f"Score has length {G.shape[0]}, expected {p}")
        if not np.all(np.isfinite(G)):
            raise NumericalFailure(f"Non-finite score at t={t}: {G}")
        diag = 1. + G * G
        invert = np.abs(diag) > DIAGONAL_EPS
        with np.errstate(divide='ignore'):
            diag = np.where(invert, 1. / diag, diag)
        return np.diag(diag)

    def __repr__(self):
        return "DiagonalLearningRate()"


__all__ = [
    "DIAGONAL_EPS",
    "LearningRateName",
    "LearningRate",
    "UniformLearningRate",
    "DiagonalLearningRate",
]
