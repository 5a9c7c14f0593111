"""
Nonlinear least-squares estimators.

Available components:
    - estimate_jacobian: Forward / central finite-difference Jacobians
    - LevenbergMarquardt, levenberg_marquardt: Damped Gauss-Newton minimizer
    - LMOptions, LMResultInfo: Call options and result record
    - Error types: DimensionMismatchError, InvalidArgumentError,
      SingularMatrixError
"""

from lmopt.estimators.errors import (
    DimensionMismatchError,
    InvalidArgumentError,
    LevenbergMarquardtError,
    SingularMatrixError,
)
from lmopt.estimators.jacobian import estimate_jacobian
from lmopt.estimators.levenberg_marquardt import (
    LevenbergMarquardt,
    levenberg_marquardt,
)
from lmopt.estimators.types import LMOptions, LMResultInfo

__all__ = [
    # Jacobian estimation
    "estimate_jacobian",
    # Optimizer
    "LevenbergMarquardt",
    "levenberg_marquardt",
    "LMOptions",
    "LMResultInfo",
    # Errors
    "LevenbergMarquardtError",
    "DimensionMismatchError",
    "InvalidArgumentError",
    "SingularMatrixError",
]
