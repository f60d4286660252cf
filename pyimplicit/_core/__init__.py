"""
Core algorithms: transfers, families, learning rates and the update step.
"""

from .data import DataPoint, Dataset, OnlineOutput, Size
from .experiment import Experiment, ExperimentState
from .families import Binomial, Family, FamilyName, Gaussian, Poisson, get_family
from .implicit import (
    ImplicitFunction,
    ScoreCoefficient,
    explicit_update,
    implicit_bounds,
    implicit_update,
    solve_implicit,
)
from .learning_rates import (
    DiagonalLearningRate,
    LearningRate,
    LearningRateName,
    UniformLearningRate,
)
from .roots import halley_root
from .transfers import (
    ExponentialTransfer,
    IdentityTransfer,
    LogisticTransfer,
    TransferFunction,
    TransferName,
    get_transfer,
)

__all__ = [
    "DataPoint",
    "Dataset",
    "OnlineOutput",
    "Size",
    "Experiment",
    "ExperimentState",
    "Family",
    "FamilyName",
    "Gaussian",
    "Poisson",
    "Binomial",
    "get_family",
    "ScoreCoefficient",
    "ImplicitFunction",
    "implicit_bounds",
    "solve_implicit",
    "implicit_update",
    "explicit_update",
    "LearningRate",
    "LearningRateName",
    "UniformLearningRate",
    "DiagonalLearningRate",
    "halley_root",
    "TransferFunction",
    "TransferName",
    "IdentityTransfer",
    "ExponentialTransfer",
    "LogisticTransfer",
    "get_transfer",
]
