"""SE(2) helpers for on-manifold least-squares optimization.

Poses are NumPy arrays [x, y, yaw] of shape (3,). Optimizing a pose with
plain vector addition lets the heading drift out of [-π, π] when the
estimate crosses the ±π seam; ``se2_increment_adder`` keeps the heading
on the circle while updating the Levenberg-Marquardt estimate:

    x_new = [x + dx, y + dy, wrap(yaw + dyaw)]

Key functions:
    - wrap_angle: Normalize angle to [-π, π]
    - se2_compose: Compose two poses (p1 ⊕ p2)
    - se2_inverse: Invert a pose (p⁻¹)
    - se2_apply: Transform 2D points by a pose
    - se2_increment_adder: Increment adder for LevenbergMarquardt.execute
"""

from typing import Any

import numpy as np


def wrap_angle(theta: float) -> float:
    """
    Normalize angle to the range [-π, π].

    Examples:
        >>> float(wrap_angle(0.0))
        0.0
        >>> bool(np.isclose(wrap_angle(3 * np.pi), np.pi))
        True
    """
    return np.arctan2(np.sin(theta), np.cos(theta))


def _as_pose(p: np.ndarray, name: str) -> np.ndarray:
    p = np.asarray(p, dtype=np.float64)
    if p.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {p.shape}")
    return p


def se2_compose(p1: np.ndarray, p2: np.ndarray) -> np.ndarray:
    """
    Compose two SE(2) poses: p_result = p1 ⊕ p2.

    The composition formula for SE(2):
        x_result = x1 + x2*cos(yaw1) - y2*sin(yaw1)
        y_result = y1 + x2*sin(yaw1) + y2*cos(yaw1)
        yaw_result = yaw1 + yaw2  (wrapped to [-π, π])

    Args:
        p1: First pose [x1, y1, yaw1].
        p2: Second pose [x2, y2, yaw2], expressed in the frame of p1.

    Returns:
        Composed pose [x, y, yaw] of shape (3,).

    Raises:
        ValueError: If poses do not have shape (3,).

    Examples:
        >>> p1 = np.array([0.0, 0.0, np.pi / 2])  # 90° rotation
        >>> p2 = np.array([1.0, 0.0, 0.0])  # 1m forward
        >>> np.allclose(se2_compose(p1, p2), [0, 1, np.pi / 2], atol=1e-10)
        True
    """
    x1, y1, yaw1 = _as_pose(p1, "p1")
    x2, y2, yaw2 = _as_pose(p2, "p2")

    cos_yaw1 = np.cos(yaw1)
    sin_yaw1 = np.sin(yaw1)

    return np.array(
        [
            x1 + x2 * cos_yaw1 - y2 * sin_yaw1,
            y1 + x2 * sin_yaw1 + y2 * cos_yaw1,
            wrap_angle(yaw1 + yaw2),
        ],
        dtype=np.float64,
    )


def se2_inverse(p: np.ndarray) -> np.ndarray:
    """
    Compute the inverse of an SE(2) pose so that p ⊕ p⁻¹ = identity.

    Raises:
        ValueError: If pose does not have shape (3,).
    """
    x, y, yaw = _as_pose(p, "p")

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)

    return np.array(
        [
            -(x * cos_yaw + y * sin_yaw),
            -(-x * sin_yaw + y * cos_yaw),
            wrap_angle(-yaw),
        ],
        dtype=np.float64,
    )


def se2_apply(p: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    Transform 2D points by an SE(2) pose: R(yaw) · points + [x, y].

    Args:
        p: Pose [x, y, yaw].
        points: Points of shape (N, 2).

    Returns:
        Transformed points of shape (N, 2).

    Raises:
        ValueError: If points does not have shape (N, 2).
    """
    x, y, yaw = _as_pose(p, "p")
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(f"points must have shape (N, 2), got {points.shape}")

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)
    R = np.array([[cos_yaw, -sin_yaw], [sin_yaw, cos_yaw]])

    return points @ R.T + np.array([x, y])


def se2_increment_adder(
    x_old: np.ndarray, x_incr: np.ndarray, user_param: Any = None
) -> np.ndarray:
    """
    Apply a pose increment with the heading kept on the circle.

    The translation part is added in the world frame and the heading is
    composed on SO(2):
        x_new = [x + dx, y + dy, wrap(yaw + dyaw)]

    To first order this equals plain addition, so it stays consistent with
    Jacobians estimated by perturbing each pose component independently.
    Matches the increment-adder signature of LevenbergMarquardt.execute;
    ``user_param`` is accepted and ignored.

    Example:
        >>> x = np.array([1.0, 0.0, 3.0])
        >>> h = np.array([0.5, -1.0, 0.5])
        >>> np.allclose(se2_increment_adder(x, h), [1.5, -1.0, 3.5 - 2 * np.pi])
        True
    """
    x_old = _as_pose(x_old, "x_old")
    x_incr = _as_pose(x_incr, "x_incr")

    x_new = x_old + x_incr
    x_new[2] = wrap_angle(x_new[2])
    return x_new
