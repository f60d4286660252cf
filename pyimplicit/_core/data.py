"""
Data containers for streaming estimation.

DataPoint is one observation, Dataset the host-owned design matrix and
responses, OnlineOutput the append-only trajectory of estimates.
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from ..exceptions import DimensionMismatch, NumericalFailure


@dataclass(frozen=True)
class Size:
    """Sample count and dimension."""
    nsamples: int = 0
    p: int = 0


@dataclass(frozen=True, eq=False)
class DataPoint:
    """A single observation: design row x (length p) and response y."""
    x: np.ndarray
    y: float

    def __post_init__(self):
        x = np.array(self.x, dtype=np.float64).ravel()
        x.setflags(write=False)
        object.__setattr__(self, 'x', x)
        object.__setattr__(self, 'y', float(self.y))

    @property
    def p(self) -> int:
        return self.x.shape[0]


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Design matrix X (n × p) and responses Y (n,).

    Read-only once built; the estimator iterates it row by row.
    """
    X: np.ndarray
    Y: np.ndarray
    feature_names: Optional[List[str]] = None

    def __post_init__(self):
        X = np.array(self.X, dtype=np.float64)
        if X.ndim == 1:
            X = X[:, np.newaxis]
        if X.ndim != 2:
            raise DimensionMismatch(f"X must be 2-dimensional, got {X.ndim} dimensions")
        Y = np.array(self.Y, dtype=np.float64)
        if Y.ndim == 2 and Y.shape[1] == 1:
            Y = Y[:, 0]
        if Y.ndim != 1:
            raise DimensionMismatch("Y must be a vector or a single-column matrix")
        if X.shape[0] != Y.shape[0]:
            raise DimensionMismatch(
                f"X has {X.shape[0]} rows but Y has {Y.shape[0]} entries"
            )
        if self.feature_names is not None and len(self.feature_names) != X.shape[1]:
            raise DimensionMismatch(
                f"{len(self.feature_names)} feature names for {X.shape[1]} columns"
            )
        X.setflags(write=False)
        Y.setflags(write=False)
        object.__setattr__(self, 'X', X)
        object.__setattr__(self, 'Y', Y)

    @classmethod
    def from_frame(cls, data: pd.DataFrame, y: str, X: Sequence[str]) -> "Dataset":
        """
        Build a dataset from DataFrame columns.

        Parameters
        ----------
        data : DataFrame
            Source data
        y : str
            Response column
        X : list of str
            Predictor columns, in design order
        """
        X = list(X)
        return cls(data[X].to_numpy(dtype=np.float64),
                   data[y].to_numpy(dtype=np.float64),
                   feature_names=X)

    @property
    def n(self) -> int:
        return self.X.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    @property
    def size(self) -> Size:
        return Size(nsamples=self.n, p=self.p)

    def covariance(self) -> np.ndarray:
        """Sample covariance (p × p) of the columns of X."""
        return np.atleast_2d(np.cov(self.X, rowvar=False))

    def __len__(self) -> int:
        return self.n

    def __getitem__(self, i: int) -> DataPoint:
        return DataPoint(self.X[i], self.Y[i])

    def __iter__(self) -> Iterator[DataPoint]:
        for i in range(self.n):
            yield self[i]


class OnlineOutput:
    """
    Trajectory of parameter estimates, one column per processed observation.

    Columns are only ever appended; ``estimates`` is a read-only view of the
    columns written so far.
    """

    def __init__(self, p: int, capacity: int = 0):
        if p < 1:
            raise DimensionMismatch(f"p must be at least 1, got {p}")
        self.p = int(p)
        self._buffer = np.empty((self.p, max(int(capacity), 1)), dtype=np.float64)
        self._count = 0

    @classmethod
    def for_dataset(cls, data: Dataset) -> "OnlineOutput":
        """Trajectory pre-sized for one pass over ``data``."""
        return cls(data.p, capacity=data.n)

    @property
    def n_estimates(self) -> int:
        return self._count

    @property
    def estimates(self) -> np.ndarray:
        """Estimates so far, shape (p, n_estimates)."""
        view = self._buffer[:, :self._count]
        view.setflags(write=False)
        return view

    def append(self, theta: np.ndarray) -> None:
        """
        Append one estimate as the newest column.

        Raises
        ------
        DimensionMismatch
            If ``theta`` does not have length p.
        NumericalFailure
            If ``theta`` contains NaN or Inf; nothing is appended.
        """
        theta = np.asarray(theta, dtype=np.float64).ravel()
        if theta.shape[0] != self.p:
            raise DimensionMismatch(
                f"Estimate has length {theta.shape[0]}, expected {self.p}"
            )
        if not np.all(np.isfinite(theta)):
            raise NumericalFailure(
                f"Non-finite estimate at step {self._count}: {theta}"
            )
        if self._count == self._buffer.shape[1]:
            grown = np.empty((self.p, 2 * self._buffer.shape[1]), dtype=np.float64)
            grown[:, :self._count] = self._buffer[:, :self._count]
            self._buffer = grown
        self._buffer[:, self._count] = theta
        self._count += 1

    def last_estimate(self) -> np.ndarray:
        """Most recently appended column."""
        if self._count == 0:
            raise IndexError("No estimates have been recorded yet")
        return self._buffer[:, self._count - 1].copy()

    def to_frame(self, names: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Estimates as a DataFrame: one row per parameter, one column per step."""
        if names is None:
            names = [f'x{i}' for i in range(self.p)]
        return pd.DataFrame(self.estimates.copy(), index=list(names),
                            columns=pd.RangeIndex(self._count, name='step'))

    def __len__(self) -> int:
        return self._count

    def __repr__(self):
        return f"OnlineOutput(p={self.p}, n_estimates={self._count})"


__all__ = [
    "Size",
    "DataPoint",
    "Dataset",
    "OnlineOutput",
]
