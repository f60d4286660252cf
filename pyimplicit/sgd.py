"""
Streaming GLM estimation via stochastic gradient descent.

Main user-facing interface: feeds observations one at a time through an
Experiment and records every intermediate estimate.
"""

import logging
import numpy as np
import pandas as pd
from typing import List, Optional
from dataclasses import dataclass

from ._utils import check_array, check_vector
from .exceptions import ConfigurationError, PyImplicitError
from ._core.data import DataPoint, Dataset, OnlineOutput
from ._core.experiment import Experiment, ExperimentState
from ._core.families import get_family
from ._core.implicit import explicit_update, implicit_update
from ._core.learning_rates import LearningRateName, UniformLearningRate
from ._core.transfers import get_transfer

logger = logging.getLogger(__name__)

METHODS = ("implicit", "explicit")


@dataclass
class SGDResult:
    """Results from one pass of streaming SGD."""
    coef: np.ndarray               # Final estimate (last trajectory column)
    estimates: np.ndarray          # Trajectory, shape (p, n)
    fitted_values: np.ndarray      # Fitted values (μ)
    linear_predictors: np.ndarray  # Linear predictors (η)
    residuals: np.ndarray          # Residuals (response scale)

    deviance: float                # Deviance under the family
    family: str                    # Family name
    transfer: str                  # Transfer name
    method: str                    # 'implicit' or 'explicit'
    n_iter: int                    # Observations processed


class ImplicitSGD:
    """
    Online GLM estimator using implicit (or explicit) SGD.

    Parameters
    ----------
    transfer : str, default='identity'
        Transfer function: 'identity', 'exp' or 'logistic'
    family : str, default='gaussian'
        Family used for the reported deviance: 'gaussian', 'poisson',
        'binomial'
    lr : str, default='uniform'
        Learning-rate schedule: 'uniform' or 'diagonal'
    lr_params : dict, optional
        Parameters of the uniform schedule (gamma, alpha, c, scale).
        Defaults to gamma=1, alpha=1, c=2/3, scale=1.
    method : str, default='implicit'
        'implicit' solves the fixed-point equation per observation,
        'explicit' takes a plain gradient step
    theta0 : array_like, optional
        Starting estimate (default: zeros)
    xtol, maxiter : optional
        Root-finder options; default to get_solver_options()

    Examples
    --------
    >>> model = ImplicitSGD(transfer='logistic', family='binomial')
    >>> model.fit(X, y)
    >>> model.coef_                  # final estimate
    >>> model.trajectory_.estimates  # every intermediate estimate
    """

    def __init__(
        self,
        transfer: str = 'identity',
        family: str = 'gaussian',
        lr: str = 'uniform',
        lr_params: Optional[dict] = None,
        method: str = 'implicit',
        theta0: Optional[np.ndarray] = None,
        xtol: Optional[float] = None,
        maxiter: Optional[int] = None,
    ):
        get_transfer(transfer)
        get_family(family)
        try:
            lr_name = LearningRateName(lr)
        except ValueError:
            raise ConfigurationError(
                f"Unknown learning rate: {lr!r}\n"
                f"Valid options: {[n.value for n in LearningRateName]}"
            ) from None
        if method not in METHODS:
            raise ConfigurationError(
                f"Unknown method: {method!r}\n"
                f"Valid options: {list(METHODS)}"
            )
        if lr_name is LearningRateName.DIAGONAL and lr_params:
            raise ConfigurationError("Diagonal learning rate takes no parameters")

        self.transfer = transfer
        self.family = family
        self.lr = lr_name.value
        self.lr_params = dict(lr_params) if lr_params else {}
        self.method = method
        self.theta0 = theta0
        self.xtol = xtol
        self.maxiter = maxiter

        self.experiment_: Optional[Experiment] = None
        self.trajectory_: Optional[OnlineOutput] = None
        self.result_: Optional[SGDResult] = None
        self.feature_names_: Optional[List[str]] = None
        self.t_ = 0
        self._theta: Optional[np.ndarray] = None

        if self.lr == LearningRateName.UNIFORM.value:
            try:
                UniformLearningRate(**self._lr_kwargs())
            except TypeError as e:
                raise ConfigurationError(f"Invalid uniform learning-rate parameters: {e}") from None

    def _lr_kwargs(self) -> dict:
        if self.lr == LearningRateName.UNIFORM.value:
            params = dict(gamma=1., alpha=1., c=2. / 3., scale=1.)
            params.update(self.lr_params)
            return params
        return {}

    def _start(self, p: int, n_iters: int = 0) -> None:
        """Set up a fresh experiment and an empty trajectory."""
        experiment = Experiment(self.transfer, p, n_iters=n_iters, model_name=self.family)
        experiment.init_learning_rate(self.lr, **self._lr_kwargs())

        if self.theta0 is None:
            theta = np.zeros(p)
        else:
            theta = experiment.check_theta(self.theta0).copy()

        experiment.start_streaming()
        self.experiment_ = experiment
        self.trajectory_ = OnlineOutput(p, capacity=n_iters)
        self.result_ = None
        self.t_ = 0
        self._theta = theta
        logger.debug("Started %s SGD run: p=%d, n_iters=%d, lr=%s",
                     self.method, p, n_iters, self.lr)

    def update(self, data_point: DataPoint) -> np.ndarray:
        """
        Process one observation in the current run.

        The trajectory gains one column only if the update succeeds. A failed
        update ends the run; the trajectory keeps its last valid state and
        the next partial_fit() starts a fresh run.
        """
        if self.experiment_ is None or self.experiment_.state is not ExperimentState.STREAMING:
            raise ConfigurationError("No active run; call fit() or partial_fit()")

        try:
            if self.method == 'implicit':
                theta_new = implicit_update(self.experiment_, data_point, self._theta, self.t_,
                                            xtol=self.xtol, maxiter=self.maxiter)
            else:
                theta_new = explicit_update(self.experiment_, data_point, self._theta, self.t_)
            self.trajectory_.append(theta_new)
        except PyImplicitError:
            logger.debug("Update failed at t=%d; ending run", self.t_)
            self.experiment_.finish()
            raise

        self._theta = theta_new
        self.t_ += 1
        return theta_new

    def partial_fit(self, x, y: float) -> "ImplicitSGD":
        """
        Stream a single observation.

        Continues the current run, or starts one if none is active.
        """
        point = DataPoint(x, y)
        if self.experiment_ is None or self.experiment_.state is not ExperimentState.STREAMING:
            self._start(point.p)
        self.update(point)
        return self

    def finish(self) -> None:
        """End the current run."""
        if self.experiment_ is not None:
            self.experiment_.finish()
            logger.debug("Finished SGD run after %d observations", self.t_)

    def fit(self, X, y=None, weights: Optional[np.ndarray] = None) -> "ImplicitSGD":
        """
        One pass of streaming SGD over the rows of X, in order.

        Parameters
        ----------
        X : ndarray, shape (n, p), or Dataset
            Design matrix
        y : ndarray, shape (n,)
            Responses (omit when X is a Dataset)
        weights : ndarray, shape (n,), optional
            Prior weights for the reported deviance only

        Returns
        -------
        self
        """
        if isinstance(X, Dataset):
            data = X
        else:
            if y is None:
                raise ValueError("y is required unless X is a Dataset")
            data = Dataset(check_array(X), check_vector(y))
        self.feature_names_ = list(data.feature_names) if data.feature_names else None

        self._start(data.p, data.n)
        for point in data:
            self.update(point)
        self.finish()

        self.result_ = self._summarize(data, weights)
        return self

    def _summarize(self, data: Dataset, weights: Optional[np.ndarray]) -> SGDResult:
        experiment = self.experiment_
        coef = self.coef_
        with np.errstate(over='ignore'):
            eta = data.X @ coef
            mu = np.asarray(experiment.h_transfer(eta))
        if weights is not None:
            weights = check_vector(weights, name='weights', length=data.n)
        return SGDResult(
            coef=coef,
            estimates=self.trajectory_.estimates.copy(),
            fitted_values=mu,
            linear_predictors=eta,
            residuals=data.Y - mu,
            deviance=experiment.family.deviance(data.Y, mu, weights),
            family=experiment.model_name,
            transfer=experiment.transfer.name,
            method=self.method,
            n_iter=self.t_,
        )

    @property
    def coef_(self) -> np.ndarray:
        """Latest estimate (theta0 if nothing has been processed)."""
        if self.trajectory_ is None:
            raise ConfigurationError("Model has not been fitted")
        if self.trajectory_.n_estimates == 0:
            return self._theta.copy()
        return self.trajectory_.last_estimate()

    @property
    def coef(self) -> pd.Series:
        """Named coefficients (pandas Series)."""
        coef = self.coef_
        names = self.feature_names_ or [f'x{i}' for i in range(coef.shape[0])]
        return pd.Series(coef, index=names)

    def predict(self, X) -> np.ndarray:
        """Predicted means h(X θ) for new rows."""
        coef = self.coef_
        X = check_array(np.atleast_2d(X), n_cols=coef.shape[0])
        return np.asarray(self.experiment_.h_transfer(X @ coef))

    def __repr__(self):
        return (f"ImplicitSGD(transfer={self.transfer!r}, family={self.family!r}, "
                f"lr={self.lr!r}, method={self.method!r}, n={self.t_})")


def sgd(y, X, data: Optional[pd.DataFrame] = None, **kwargs) -> ImplicitSGD:
    """
    Fit a GLM by streaming SGD (convenience function).

    Parameters
    ----------
    y : str or array
        Response variable
        - If string: column name in data
        - If array: numeric values
    X : list of str or array
        Predictor variables, used as given (no intercept is added)
        - If list of strings: column names in data
        - If array: numeric matrix (n × p)
    data : DataFrame, optional
        Dataset containing y and X variables
    **kwargs
        Passed to ImplicitSGD

    Returns
    -------
    ImplicitSGD
        Fitted estimator

    Examples
    --------
    >>> model = sgd(y='count', X=['const', 'dose'], data=df,
    ...             transfer='exp', family='poisson')
    >>> model.coef
    """
    if isinstance(y, str) or (isinstance(X, list) and all(isinstance(x, str) for x in X)):
        if data is None:
            raise ValueError("Must provide data when y or X are column names")
        if not isinstance(y, str) or not isinstance(X, list):
            raise ValueError("y and X must both be column names when using data")
        dataset = Dataset.from_frame(data, y, X)
    else:
        dataset = Dataset(check_array(X), check_vector(np.asarray(y, dtype=np.float64).ravel()))

    weights = kwargs.pop('weights', None)
    return ImplicitSGD(**kwargs).fit(dataset, weights=weights)


__all__ = ["SGDResult", "ImplicitSGD", "sgd"]
