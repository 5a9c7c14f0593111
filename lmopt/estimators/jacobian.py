"""
Finite-difference Jacobian estimation.

Given a residual function f: R^n → R^m and a point x, builds the m × n
Jacobian J = ∂f/∂x one column at a time by perturbing a single parameter.

Schemes:
    - forward (default):
        J[:, i] = (f(x + δᵢ eᵢ) - f(x)) / δᵢ          O(δ) error, n + 1 calls
    - central:
        J[:, i] = (f(x + δᵢ eᵢ) - f(x - δᵢ eᵢ)) / 2δᵢ    O(δ²) error, 2n calls

The per-dimension step δᵢ is taken from the ``increments`` vector, so
parameters with very different scales can each get a suitable step.
"""

from typing import Any, Optional

import numpy as np

from .errors import DimensionMismatchError, InvalidArgumentError
from .types import JACOBIAN_METHODS, EvalFunction


def evaluate_residual(
    functor: EvalFunction,
    x: np.ndarray,
    user_param: Any = None,
    expected_size: Optional[int] = None,
) -> np.ndarray:
    """
    Call the residual function and check the shape of its output.

    Args:
        functor: Residual function f(x, user_param).
        x: Point to evaluate (n,).
        user_param: Opaque value forwarded to the functor unchanged.
        expected_size: Residual size m fixed by a previous call, if any.

    Returns:
        Residual vector as a 1D float64 array.

    Raises:
        DimensionMismatchError: If the output is not 1D or its size differs
            from ``expected_size``.
    """
    fx = np.asarray(functor(x, user_param), dtype=np.float64)
    if fx.ndim == 0:
        fx = fx.reshape(1)
    if fx.ndim != 1:
        raise DimensionMismatchError(
            f"Residual function must return a 1D vector, got shape {fx.shape}"
        )
    if expected_size is not None and fx.size != expected_size:
        raise DimensionMismatchError(
            f"Residual function returned {fx.size} elements, expected {expected_size}"
        )
    return fx


def validate_increments(x: np.ndarray, increments: np.ndarray) -> np.ndarray:
    """Check that ``increments`` is usable as per-dimension steps for ``x``."""
    increments = np.asarray(increments, dtype=np.float64)
    if increments.ndim != 1:
        raise DimensionMismatchError(
            f"increments must be 1D array, got shape {increments.shape}"
        )
    if increments.size != x.size:
        raise DimensionMismatchError(
            f"increments has {increments.size} elements, expected {x.size}"
        )
    if not np.all(np.isfinite(increments)):
        raise InvalidArgumentError("increments must be finite")
    if np.any(increments == 0):
        raise InvalidArgumentError(f"increments must be non-zero, got {increments}")
    return increments


def estimate_jacobian(
    x: np.ndarray,
    functor: EvalFunction,
    increments: np.ndarray,
    user_param: Any = None,
    method: str = "forward",
    f_x: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Estimate the Jacobian of a residual function by finite differences.

    Args:
        x: Point at which to differentiate (n,). Not modified.
        functor: Residual function f(x, user_param) -> (m,).
        increments: Step δᵢ for each dimension (n,), all non-zero.
        user_param: Opaque value forwarded to every functor call.
        method: "forward" (one-sided) or "central" differences.
        f_x: Optional f(x) already computed by the caller. Only used by the
            forward scheme, where it saves one evaluation.

    Returns:
        Jacobian matrix J of shape (m, n).

    Raises:
        DimensionMismatchError: If x is not 1D, increments has the wrong
            size, or the functor returns vectors of varying size.
        InvalidArgumentError: If an increment is zero or not finite, or
            the method is unknown.

    Example:
        >>> def f(x, _):
        ...     return np.array([x[0] ** 2, 3.0 * x[1]])
        >>> J = estimate_jacobian(np.array([1.0, 2.0]), f, np.array([1e-6, 1e-6]))
        >>> np.allclose(J, [[2.0, 0.0], [0.0, 3.0]], atol=1e-5)
        True
    """
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 1:
        raise DimensionMismatchError(f"x must be 1D array, got shape {x.shape}")
    increments = validate_increments(x, increments)
    if method not in JACOBIAN_METHODS:
        raise InvalidArgumentError(
            f"Unknown method: {method}. Use one of {JACOBIAN_METHODS}."
        )

    n = x.size
    m = None
    if method == "forward":
        if f_x is None:
            f_x = evaluate_residual(functor, x.copy(), user_param)
        else:
            f_x = np.asarray(f_x, dtype=np.float64)
        m = f_x.size

    columns = []
    for i in range(n):
        x_plus = x.copy()
        x_plus[i] += increments[i]
        f_plus = evaluate_residual(functor, x_plus, user_param, m)
        m = f_plus.size

        if method == "forward":
            columns.append((f_plus - f_x) / increments[i])
        else:
            x_minus = x.copy()
            x_minus[i] -= increments[i]
            f_minus = evaluate_residual(functor, x_minus, user_param, m)
            columns.append((f_plus - f_minus) / (2.0 * increments[i]))

    if n == 0:
        return np.zeros((0 if m is None else m, 0))
    return np.column_stack(columns)
