"""
pyimplicit: online GLM estimation with implicit stochastic gradient descent.

Copyright (C) 2024 SGCX
Licensed under GPL-3.0
"""

__version__ = "1.0.0"

# Import main user-facing API
from .sgd import sgd, ImplicitSGD, SGDResult

# Import core building blocks (for advanced users)
from ._core import (
    DataPoint,
    Dataset,
    OnlineOutput,
    Size,
    Experiment,
    ExperimentState,
    get_transfer,
    get_family,
    implicit_update,
    explicit_update,
    halley_root,
)
from ._config import (
    get_solver_options,
    set_solver_options,
    reset_solver_options,
    print_solver_info,
)
from .exceptions import (
    PyImplicitError,
    ConfigurationError,
    DimensionMismatch,
    NumericalFailure,
)

__all__ = [
    'sgd',
    'ImplicitSGD',
    'SGDResult',
    'DataPoint',
    'Dataset',
    'OnlineOutput',
    'Size',
    'Experiment',
    'ExperimentState',
    'get_transfer',
    'get_family',
    'implicit_update',
    'explicit_update',
    'halley_root',
    'get_solver_options',
    'set_solver_options',
    'reset_solver_options',
    'print_solver_info',
    'PyImplicitError',
    'ConfigurationError',
    'DimensionMismatch',
    'NumericalFailure',
]
