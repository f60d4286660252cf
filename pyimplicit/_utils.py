"""
Input validation helpers.
"""

from typing import Optional

import numpy as np

from .exceptions import DimensionMismatch


def check_array(X, name='X', n_cols: Optional[int] = None, dtype=np.float64):
    """Validate a finite 2-D array, optionally with a fixed column count."""
    X = np.asarray(X, dtype=dtype)
    if X.ndim != 2:
        raise DimensionMismatch(f"{name} must be 2-dimensional, got {X.ndim} dimensions")
    if n_cols is not None and X.shape[1] != n_cols:
        raise DimensionMismatch(f"{name} has {X.shape[1]} columns, expected {n_cols}")
    if not np.all(np.isfinite(X)):
        raise ValueError(f"{name} contains NaN or Inf")
    return X


def check_vector(y, name='y', length: Optional[int] = None, dtype=np.float64):
    """Validate a finite vector; column vectors are flattened."""
    y = np.asarray(y, dtype=dtype)
    if y.ndim == 2 and 1 in y.shape:
        y = y.ravel()
    if y.ndim != 1:
        raise DimensionMismatch(f"{name} must be 1-dimensional")
    if length is not None and y.shape[0] != length:
        raise DimensionMismatch(f"{name} has length {y.shape[0]}, expected {length}")
    if not np.all(np.isfinite(y)):
        raise ValueError(f"{name} contains NaN or Inf")
    return y
