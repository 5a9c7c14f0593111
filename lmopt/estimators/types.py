"""Data types for the Levenberg-Marquardt optimizer.

This module defines the call options and the result record of an
optimization run.

Key types:
    - LMOptions: Iteration limits, damping seed and convergence tolerances
    - LMResultInfo: Everything the optimizer reports back to the caller
    - EvalFunction / IncrementAdder / JacobianFunction: Callable signatures
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import numpy as np

from .errors import InvalidArgumentError


# Residual function f(x, user_param) -> residual vector (M,)
EvalFunction = Callable[[np.ndarray, Any], np.ndarray]
# Increment adder (x_old, x_incr, user_param) -> x_new (N,)
IncrementAdder = Callable[[np.ndarray, np.ndarray, Any], np.ndarray]
# Analytic Jacobian (x, user_param) -> J (M, N)
JacobianFunction = Callable[[np.ndarray, Any], np.ndarray]

JACOBIAN_METHODS = ("forward", "central")


@dataclass(frozen=True)
class LMOptions:
    """Options controlling one Levenberg-Marquardt run.

    Attributes:
        max_iter: Maximum number of damped iterations (>= 1).
        tau: Seed of the initial damping, λ₀ = tau · max(diag(JᵀJ)).
        e1: Gradient tolerance, stop when ‖Jᵀf‖_∞ <= e1.
        e2: Step tolerance, stop when ‖h‖ < e2 · (‖x‖ + e2).
        return_path: Record the [x, F(x)] row of every iteration.
        jacobian_method: Finite-difference scheme, "forward" or "central".

    Example:
        >>> opts = LMOptions(max_iter=50, tau=1e-2)
        >>> opts.e1
        1e-08
    """

    max_iter: int = 200
    tau: float = 1e-3
    e1: float = 1e-8
    e2: float = 1e-8
    return_path: bool = True
    jacobian_method: str = "forward"

    def __post_init__(self) -> None:
        """Validate the option values."""
        if isinstance(self.max_iter, bool) or not isinstance(
            self.max_iter, (int, np.integer)
        ):
            raise InvalidArgumentError(
                f"max_iter must be an integer, got {type(self.max_iter)}"
            )
        if self.max_iter < 1:
            raise InvalidArgumentError(f"max_iter must be >= 1, got {self.max_iter}")

        for name in ("tau", "e1", "e2"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(
                value, (float, int, np.floating, np.integer)
            ):
                raise InvalidArgumentError(
                    f"{name} must be numeric, got {type(value)}"
                )
            if not math.isfinite(value) or value <= 0:
                raise InvalidArgumentError(
                    f"{name} must be a positive finite number, got {value}"
                )

        if self.jacobian_method not in JACOBIAN_METHODS:
            raise InvalidArgumentError(
                f"Unknown jacobian_method: {self.jacobian_method}. "
                f"Use one of {JACOBIAN_METHODS}."
            )


@dataclass
class LMResultInfo:
    """Result record of a Levenberg-Marquardt run.

    Attributes:
        final_sqr_err: Squared error ‖f(x*)‖² at the returned point.
        initial_sqr_err: Squared error ‖f(x0)‖² at the starting point.
        iterations_executed: Damped iterations whose candidate was evaluated.
        last_err_vector: Residual vector f(x*) (M,).
        path: One row [x, F(x)] per iteration, shape
            (iterations_executed + 1, N + 1); row 0 is the start point.
            Empty (0, N + 1) when the path was not requested.
        H: Approximate Hessian JᵀJ (N × N) at x*. An estimate of the
            parameter covariance is COV = H · M · Hᵀ for an observation
            covariance M.
        damping: Damping λ used by each executed iteration.
        converged: False when the run stopped on max_iter.
        stop_reason: "gradient", "step_size" or "max_iter".
        num_function_evals: Number of calls to the residual function.
    """

    final_sqr_err: float = 0.0
    initial_sqr_err: float = 0.0
    iterations_executed: int = 0
    last_err_vector: np.ndarray = field(default_factory=lambda: np.zeros(0))
    path: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    H: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    damping: np.ndarray = field(default_factory=lambda: np.zeros(0))
    converged: bool = False
    stop_reason: Optional[str] = None
    num_function_evals: int = 0
