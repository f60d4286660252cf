"""
Estimation context.

An Experiment binds one transfer function and one learning-rate schedule
for a single estimation run, and exposes the score function and the
transfer derivatives the implicit update needs.
"""

import logging
from enum import Enum
from typing import Optional, Union

import numpy as np

from .._utils import check_vector
from ..exceptions import ConfigurationError, DimensionMismatch
from .data import DataPoint
from .families import Family, FamilyName, get_family
from .learning_rates import (
    DiagonalLearningRate,
    LearningRate,
    LearningRateName,
    UniformLearningRate,
)
from .transfers import TransferFunction, TransferName, get_transfer

logger = logging.getLogger(__name__)


class ExperimentState(str, Enum):
    INIT = "init"
    RATE_BOUND = "rate_bound"
    STREAMING = "streaming"
    DONE = "done"


class Experiment:
    """
    Estimation context for one run.

    The transfer function is fixed at construction. A learning-rate
    schedule is bound afterwards and may be swapped until streaming starts.

    Parameters
    ----------
    transfer : str, TransferName or TransferFunction
        'identity', 'exp' or 'logistic'
    p : int
        Dimension of θ and of every design row
    n_iters : int, default=0
        Iteration budget (informational)
    model_name : str, default='gaussian'
        Family tag; metadata only, not used by the update

    Examples
    --------
    >>> experiment = Experiment('logistic', p=3)
    >>> experiment.init_uniform_learning_rate(gamma=1., alpha=1., c=2/3, scale=1.)
    >>> experiment.learning_rate(np.zeros(3), DataPoint([1., 0., 2.], 1.), t=0)
    """

    def __init__(
        self,
        transfer: Union[str, TransferName, TransferFunction],
        p: int,
        n_iters: int = 0,
        model_name: Union[str, FamilyName, Family] = "gaussian",
    ):
        if int(p) < 1:
            raise DimensionMismatch(f"p must be at least 1, got {p}")
        self.p = int(p)
        self.n_iters = int(n_iters)
        self._transfer = get_transfer(transfer)
        self._family = get_family(model_name)
        self.model_name = self._family.name
        self._lr: Optional[LearningRate] = None
        self._state = ExperimentState.INIT
        logger.debug("Experiment(p=%d, transfer=%s, family=%s)",
                     self.p, self._transfer.name, self.model_name)

    @property
    def transfer(self) -> TransferFunction:
        return self._transfer

    @property
    def family(self) -> Family:
        return self._family

    @property
    def lr(self) -> Optional[LearningRate]:
        """Active learning-rate schedule, or None before one is bound."""
        return self._lr

    @property
    def state(self) -> ExperimentState:
        return self._state

    # ------------------------------------------------------------------
    # Learning-rate binding
    # ------------------------------------------------------------------

    def _bind_learning_rate(self, lr: LearningRate) -> None:
        if self._state in (ExperimentState.STREAMING, ExperimentState.DONE):
            raise ConfigurationError(
                f"Cannot change the learning rate once the experiment is {self._state.value}"
            )
        self._lr = lr
        self._state = ExperimentState.RATE_BOUND
        logger.debug("Bound learning rate %r", lr)

    def init_uniform_learning_rate(self, gamma: float, alpha: float,
                                   c: float, scale: float) -> None:
        """Bind the scalar schedule scale*gamma*(1 + alpha*gamma*t)^(-c)."""
        self._bind_learning_rate(UniformLearningRate(gamma, alpha, c, scale))

    def init_diagonal_learning_rate(self) -> None:
        """Bind the per-parameter schedule driven by this experiment's score."""
        self._bind_learning_rate(DiagonalLearningRate(self.score_function))

    def init_learning_rate(self, name: Union[str, LearningRateName], **params) -> None:
        """
        Bind a schedule by tag.

        Parameters
        ----------
        name : str
            'uniform' (accepts gamma, alpha, c, scale) or 'diagonal'
        **params
            Schedule parameters
        """
        try:
            key = LearningRateName(name)
        except ValueError:
            raise ConfigurationError(
                f"Unknown learning rate: {name!r}\n"
                f"Valid options: {[n.value for n in LearningRateName]}"
            ) from None

        if key is LearningRateName.UNIFORM:
            try:
                lr = UniformLearningRate(**params)
            except TypeError as e:
                raise ConfigurationError(f"Invalid uniform learning-rate parameters: {e}") from None
            self._bind_learning_rate(lr)
        else:
            if params:
                raise ConfigurationError(
                    f"Diagonal learning rate takes no parameters, got {sorted(params)}"
                )
            self.init_diagonal_learning_rate()

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def start_streaming(self) -> None:
        """Freeze the schedule; further rebinding raises ConfigurationError."""
        if self._state is ExperimentState.STREAMING:
            return
        if self._state is not ExperimentState.RATE_BOUND:
            raise ConfigurationError(
                f"Cannot start streaming from state {self._state.value!r}; "
                f"bind a learning rate first"
            )
        self._state = ExperimentState.STREAMING
        logger.debug("Experiment streaming")

    def finish(self) -> None:
        """Mark the run as complete."""
        self._state = ExperimentState.DONE
        logger.debug("Experiment done")

    # ------------------------------------------------------------------
    # Model quantities
    # ------------------------------------------------------------------

    def check_theta(self, theta: np.ndarray) -> np.ndarray:
        return check_vector(theta, name='theta', length=self.p)

    def check_data_point(self, data_point: DataPoint) -> DataPoint:
        if data_point.p != self.p:
            raise DimensionMismatch(f"x has length {data_point.p}, expected {self.p}")
        return data_point

    def learning_rate(self, theta_old: np.ndarray, data_point: DataPoint,
                      t: int) -> np.ndarray:
        """Step-size matrix (p × p) from the bound schedule."""
        if self._lr is None:
            raise ConfigurationError("No learning rate bound; call init_*_learning_rate first")
        return self._lr.learning_rate(theta_old, data_point, t, self.p)

    def score_function(self, theta_old: np.ndarray, data_point: DataPoint) -> np.ndarray:
        """Score (y - h(x·θ))·x, shape (p,)."""
        theta_old = self.check_theta(theta_old)
        self.check_data_point(data_point)
        eta = float(np.dot(data_point.x, theta_old))
        return (data_point.y - self.h_transfer(eta)) * data_point.x

    def h_transfer(self, u):
        return self._transfer.transfer(u)

    def h_first_derivative(self, u):
        return self._transfer.first_derivative(u)

    def h_second_derivative(self, u):
        return self._transfer.second_derivative(u)

    def __repr__(self):
        return (f"Experiment(transfer={self._transfer.name!r}, p={self.p}, "
                f"n_iters={self.n_iters}, model_name={self.model_name!r}, "
                f"state={self._state.value!r})")


__all__ = ["ExperimentState", "Experiment"]
