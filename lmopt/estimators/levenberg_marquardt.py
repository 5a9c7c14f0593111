"""
Levenberg-Marquardt optimizer with finite-difference Jacobians.

Minimizes the squared error F(x) = ‖f(x)‖² of a user residual function
f(x, user_param) without requiring analytic derivatives.

Mathematical Formulation:
    Approximate Hessian and gradient at the current point:
        H = JᵀJ,   g = Jᵀf(x)

    Damped normal equations (step h):
        (H + λI) h = -g

    Gain ratio between actual and predicted reduction:
        ℓ = (F(x) - F(x + h)) / hᵀ(λh - g)

    Adaptive damping (Nielsen):
        ℓ > 0:  x ← x + h,  λ ← λ · max(1/3, 1 - (2ℓ - 1)³),  ν ← 2
        ℓ <= 0: λ ← λ · ν,  ν ← 2ν

    Stopping tests:
        ‖g‖_∞ <= e1                  (gradient)
        ‖h‖ < e2 · (‖x‖ + e2)        (step size)
        iterations == max_iter

The Euclidean update x + h may be replaced by a caller supplied increment
adder for parameters living on a manifold (e.g. SE(2) poses).
"""

import dataclasses
import logging
from typing import Any, Optional, Tuple

import numpy as np
from scipy.linalg import cho_factor, cho_solve

from .errors import DimensionMismatchError, InvalidArgumentError, SingularMatrixError
from .jacobian import estimate_jacobian, evaluate_residual, validate_increments
from .types import (
    EvalFunction,
    IncrementAdder,
    JacobianFunction,
    LMOptions,
    LMResultInfo,
)

logger = logging.getLogger(__name__)


class LevenbergMarquardt:
    """
    Levenberg-Marquardt least-squares minimizer.

    An instance only stores default options and a verbosity level; all
    iteration state belongs to a single ``execute`` call, so one instance
    can be reused for any number of problems.

    Attributes:
        options: Default LMOptions for ``execute``.
        verbosity: Minimum logging level of the messages this instance emits.

    Example:
        >>> def f(x, _):
        ...     return np.array([10.0 * (x[1] - x[0] ** 2), 1.0 - x[0]])
        >>> lm = LevenbergMarquardt()
        >>> x, info = lm.execute(np.array([-1.2, 1.0]), f, np.array([1e-7, 1e-7]))
        >>> np.allclose(x, [1.0, 1.0], atol=1e-4)
        True
    """

    def __init__(
        self, options: Optional[LMOptions] = None, verbosity: int = logging.INFO
    ):
        self.options = options or LMOptions()
        self.verbosity = verbosity

    def _log(self, level: int, msg: str, *args) -> None:
        if level >= self.verbosity:
            logger.log(level, msg, *args)

    def execute(
        self,
        x0: np.ndarray,
        functor: EvalFunction,
        increments: np.ndarray,
        user_param: Any = None,
        x_increment_adder: Optional[IncrementAdder] = None,
        jacobian: Optional[JacobianFunction] = None,
        **overrides,
    ) -> Tuple[np.ndarray, LMResultInfo]:
        """
        Run the optimizer from ``x0``.

        Args:
            x0: Initial guess (n,).
            functor: Residual function f(x, user_param) -> (m,). Its output
                size must not change between calls.
            increments: Finite-difference step per dimension (n,), all > 0.
            user_param: Opaque value passed unchanged to every callback.
            x_increment_adder: Optional (x, h, user_param) -> x_new used
                instead of x + h.
            jacobian: Optional analytic Jacobian (x, user_param) -> (m, n)
                replacing the finite-difference estimate.
            **overrides: Any LMOptions field (max_iter, tau, e1, e2,
                return_path, jacobian_method) for this call only.

        Returns:
            Tuple (x_opt, info) with the final point and the LMResultInfo.
            Reaching max_iter is not an error; check ``info.converged``.

        Raises:
            DimensionMismatchError: x0/increments sizes differ, or a callback
                returns a vector of the wrong size.
            InvalidArgumentError: Non-positive increments or invalid options.
            SingularMatrixError: H + λI is not positive definite.
        """
        x0 = np.asarray(x0, dtype=np.float64)
        if x0.ndim != 1:
            raise DimensionMismatchError(f"x0 must be 1D array, got shape {x0.shape}")
        increments = np.asarray(increments, dtype=np.float64)
        if increments.ndim != 1 or increments.size != x0.size:
            raise DimensionMismatchError(
                f"increments shape {increments.shape} does not match x0 shape {x0.shape}"
            )
        if x0.size == 0:
            raise InvalidArgumentError("x0 must have at least one element")

        try:
            opts = dataclasses.replace(self.options, **overrides)
        except TypeError as exc:
            raise InvalidArgumentError(str(exc)) from exc

        increments = validate_increments(x0, increments)
        if np.any(increments < 0):
            raise InvalidArgumentError(f"increments must be positive, got {increments}")

        n = x0.size
        num_evals = 0

        def evaluate(x: np.ndarray, expected: Optional[int]) -> np.ndarray:
            nonlocal num_evals
            num_evals += 1
            return evaluate_residual(functor, x, user_param, expected)

        def counted(x: np.ndarray, param: Any) -> np.ndarray:
            nonlocal num_evals
            num_evals += 1
            return functor(x, param)

        def linearize(x: np.ndarray, fx: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
            if jacobian is not None:
                J = np.asarray(jacobian(x.copy(), user_param), dtype=np.float64)
                if J.shape != (fx.size, n):
                    raise DimensionMismatchError(
                        f"Jacobian shape {J.shape}, expected ({fx.size}, {n})"
                    )
            else:
                J = estimate_jacobian(
                    x, counted, increments, user_param, opts.jacobian_method, f_x=fx
                )
                if J.shape[0] != fx.size:
                    raise DimensionMismatchError(
                        f"Residual function returned {J.shape[0]} elements, "
                        f"expected {fx.size}"
                    )
            return J.T @ J, J.T @ fx

        # Init
        x = x0.copy()
        f_x = evaluate(x.copy(), None)
        m = f_x.size
        H, g = linearize(x, f_x)
        F_x = float(f_x @ f_x)
        initial_sqr_err = F_x

        lam = opts.tau * float(np.max(np.diag(H)))
        v = 2.0
        iteration = 0
        damping = []
        stop_reason = None

        path = None
        if opts.return_path:
            path = np.zeros((opts.max_iter + 1, n + 1))
            path[0, :n] = x
            path[0, n] = F_x

        g_inf = float(np.max(np.abs(g)))
        if g_inf <= opts.e1:
            stop_reason = "gradient"
            self._log(logging.INFO, "End condition: norm_inf(g) <= e1: %e", g_inf)

        while stop_reason is None and iteration < opts.max_iter:
            # h = -(H + λI)⁻¹ g
            if np.isposinf(lam):
                # Damping overflowed after repeated rejections: the step vanishes
                h = np.zeros(n)
            else:
                H_damped = H + lam * np.eye(n)
                try:
                    factor = cho_factor(H_damped)
                except (np.linalg.LinAlgError, ValueError) as exc:
                    raise SingularMatrixError(
                        f"Damped Hessian is not positive definite at iteration "
                        f"{iteration} (lambda={lam:g})"
                    ) from exc
                h = -cho_solve(factor, g)

            h_norm = float(np.linalg.norm(h))
            x_norm = float(np.linalg.norm(x))
            self._log(logging.DEBUG, "Iter: %d x=%s lambda=%g", iteration, x, lam)

            if h_norm < opts.e2 * (x_norm + opts.e2):
                stop_reason = "step_size"
                self._log(
                    logging.INFO,
                    "End condition: %e < %e",
                    h_norm,
                    opts.e2 * (x_norm + opts.e2),
                )
                break

            damping.append(lam)

            if x_increment_adder is None:
                x_new = x + h
            else:
                x_new = np.asarray(
                    x_increment_adder(x.copy(), h, user_param), dtype=np.float64
                )
                if x_new.shape != (n,):
                    raise DimensionMismatchError(
                        f"Increment adder returned shape {x_new.shape}, expected ({n},)"
                    )

            f_new = evaluate(x_new.copy(), m)
            F_new = float(f_new @ f_new)

            # Predicted reduction hᵀ(λh - g); zero or NaN once h underflows
            denom = float(h @ (lam * h - g)) if np.any(h) else 0.0
            gain = (F_x - F_new) / denom if denom > 0 else 0.0
            self._log(
                logging.DEBUG,
                "Iter: %d F=%g F_new=%g gain=%g",
                iteration,
                F_x,
                F_new,
                gain,
            )

            if gain > 0:
                x = x_new
                f_x = f_new
                F_x = F_new
                H, g = linearize(x, f_x)

                g_inf = float(np.max(np.abs(g)))
                if g_inf <= opts.e1:
                    stop_reason = "gradient"
                    self._log(
                        logging.INFO, "End condition: norm_inf(g) <= e1: %e", g_inf
                    )

                lam *= max(1.0 / 3.0, 1.0 - (2.0 * gain - 1.0) ** 3)
                v = 2.0
            else:
                lam *= v
                v *= 2.0

            iteration += 1
            if path is not None:
                path[iteration, :n] = x
                path[iteration, n] = F_x

        if stop_reason is None:
            stop_reason = "max_iter"
            self._log(
                logging.WARNING,
                "Reached max_iter=%d without convergence (F=%e)",
                opts.max_iter,
                F_x,
            )

        info = LMResultInfo(
            final_sqr_err=F_x,
            initial_sqr_err=initial_sqr_err,
            iterations_executed=iteration,
            last_err_vector=f_x,
            path=path[: iteration + 1] if path is not None else np.zeros((0, n + 1)),
            H=H,
            damping=np.asarray(damping, dtype=np.float64),
            converged=stop_reason != "max_iter",
            stop_reason=stop_reason,
            num_function_evals=num_evals,
        )
        return x, info


def levenberg_marquardt(
    x0: np.ndarray,
    functor: EvalFunction,
    increments: np.ndarray,
    user_param: Any = None,
    max_iter: int = 200,
    tau: float = 1e-3,
    e1: float = 1e-8,
    e2: float = 1e-8,
    return_path: bool = True,
    x_increment_adder: Optional[IncrementAdder] = None,
    jacobian: Optional[JacobianFunction] = None,
    jacobian_method: str = "forward",
    verbosity: int = logging.INFO,
) -> Tuple[np.ndarray, LMResultInfo]:
    """
    Minimize ‖f(x)‖² with the Levenberg-Marquardt method.

    Convenience wrapper around ``LevenbergMarquardt(...).execute(...)``.

    Args:
        x0: Initial guess (n,).
        functor: Residual function f(x, user_param) -> (m,).
        increments: Finite-difference step per dimension (n,).
        user_param: Opaque value passed to every callback.
        max_iter: Maximum number of damped iterations.
        tau: Initial damping seed, λ₀ = tau · max(diag(JᵀJ)).
        e1: Gradient tolerance on ‖Jᵀf‖_∞.
        e2: Relative step-size tolerance.
        return_path: Record [x, F(x)] for every iteration.
        x_increment_adder: Optional replacement for x + h.
        jacobian: Optional analytic Jacobian function.
        jacobian_method: "forward" or "central" finite differences.
        verbosity: Minimum logging level for progress messages.

    Returns:
        Tuple (x_opt, info).

    Example:
        >>> import numpy as np
        >>> A = np.array([[1.0, 0.0], [0.0, 2.0], [1.0, 1.0]])
        >>> b = np.array([1.0, 2.0, 3.0])
        >>> x, info = levenberg_marquardt(
        ...     np.zeros(2), lambda x, _: A @ x - b, np.full(2, 1e-6))
        >>> info.final_sqr_err <= info.initial_sqr_err
        True
    """
    options = LMOptions(
        max_iter=max_iter,
        tau=tau,
        e1=e1,
        e2=e2,
        return_path=return_path,
        jacobian_method=jacobian_method,
    )
    optimizer = LevenbergMarquardt(options, verbosity=verbosity)
    return optimizer.execute(
        x0,
        functor,
        increments,
        user_param,
        x_increment_adder=x_increment_adder,
        jacobian=jacobian,
    )
