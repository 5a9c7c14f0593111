"""Exceptions raised by the least-squares estimators."""

import numpy as np


class LevenbergMarquardtError(Exception):
    """Base class for structural failures of an optimization run."""


class DimensionMismatchError(LevenbergMarquardtError, ValueError):
    """Vector sizes are inconsistent (x0 vs. increments, residual sizes, ...)."""


class InvalidArgumentError(LevenbergMarquardtError, ValueError):
    """An argument is outside its valid range (zero increment, max_iter < 1, ...)."""


class SingularMatrixError(LevenbergMarquardtError, np.linalg.LinAlgError):
    """The damped Hessian H + λI could not be Cholesky-factorized."""
