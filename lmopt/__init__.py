"""Nonlinear least-squares optimization core.

This package contains the reusable pieces of a derivative-free
Levenberg-Marquardt minimizer:
- estimators: finite-difference Jacobians and the LM optimizer
- manifolds: SE(2) helpers for on-manifold increments
"""

__version__ = "0.1.0"
