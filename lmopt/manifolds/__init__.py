"""Manifold helpers for on-manifold optimization.

Provides SE(2) group operations and the matching increment adder for
``LevenbergMarquardt.execute``.
"""

from .se2 import (
    se2_apply,
    se2_compose,
    se2_increment_adder,
    se2_inverse,
    wrap_angle,
)

__all__ = [
    "wrap_angle",
    "se2_compose",
    "se2_inverse",
    "se2_apply",
    "se2_increment_adder",
]
