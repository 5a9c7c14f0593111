"""
Unit tests for finite-difference Jacobian estimation.

Checks both schemes against analytic Jacobians and the argument
validation of estimate_jacobian.

Run with: python -m pytest tests/estimators/test_jacobian.py -v
"""

import numpy as np
import pytest

from lmopt.estimators import (
    DimensionMismatchError,
    InvalidArgumentError,
    estimate_jacobian,
)
from lmopt.estimators.jacobian import evaluate_residual


def range_residuals(x, anchors):
    """Ranges from position x to each anchor."""
    return np.linalg.norm(anchors - x, axis=1)


def range_jacobian(x, anchors):
    diff = x - anchors
    return diff / np.linalg.norm(diff, axis=1, keepdims=True)


ANCHORS = np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 10.0], [10.0, 10.0]])


class TestForwardDifference:
    """Forward (one-sided) scheme, the default."""

    def test_linear_function_is_exact(self):
        A = np.array([[1.0, 2.0], [3.0, -1.0], [0.5, 4.0]])

        def f(x, _):
            return A @ x

        J = estimate_jacobian(np.array([0.3, -0.7]), f, np.array([1e-4, 1e-4]))

        assert J.shape == (3, 2)
        np.testing.assert_allclose(J, A, rtol=1e-8, atol=1e-8)

    def test_matches_analytic_range_jacobian(self):
        x = np.array([3.0, 4.0])
        J = estimate_jacobian(x, range_residuals, np.full(2, 1e-7), ANCHORS)

        np.testing.assert_allclose(J, range_jacobian(x, ANCHORS), rtol=1e-5, atol=1e-6)

    def test_error_is_first_order_in_step(self):
        """Forward difference of x² at x=1 with step δ gives 2 + δ."""

        def f(x, _):
            return np.array([x[0] ** 2])

        J = estimate_jacobian(np.array([1.0]), f, np.array([1e-2]))

        assert J[0, 0] == pytest.approx(2.01, abs=1e-10)

    def test_uses_n_plus_one_evaluations(self):
        calls = []

        def f(x, _):
            calls.append(x.copy())
            return np.array([x.sum(), x.prod()])

        estimate_jacobian(np.array([1.0, 2.0, 3.0]), f, np.full(3, 1e-6))

        assert len(calls) == 4

    def test_precomputed_residual_saves_one_evaluation(self):
        calls = []

        def f(x, _):
            calls.append(x.copy())
            return np.array([x.sum()])

        x = np.array([1.0, 2.0])
        estimate_jacobian(x, f, np.full(2, 1e-6), f_x=np.array([3.0]))

        assert len(calls) == 2

    def test_per_dimension_increments(self):
        """Each column is perturbed by its own increment only."""
        seen = []

        def f(x, _):
            seen.append(x.copy())
            return np.array([x[0] + x[1]])

        x = np.array([1.0, 1.0])
        estimate_jacobian(x, f, np.array([0.1, 0.5]))

        np.testing.assert_allclose(seen[1], [1.1, 1.0])
        np.testing.assert_allclose(seen[2], [1.0, 1.5])


class TestCentralDifference:
    """Central scheme, second-order accurate."""

    def test_error_is_second_order_in_step(self):
        """Central difference of x² is exact; of x³ at 1 it gives 3 + δ²."""

        def f(x, _):
            return np.array([x[0] ** 2, x[0] ** 3])

        J = estimate_jacobian(np.array([1.0]), f, np.array([1e-2]), method="central")

        assert J[0, 0] == pytest.approx(2.0, abs=1e-10)
        assert J[1, 0] == pytest.approx(3.0001, abs=1e-10)

    def test_matches_analytic_range_jacobian(self):
        x = np.array([7.0, 2.5])
        J = estimate_jacobian(
            x, range_residuals, np.full(2, 1e-5), ANCHORS, method="central"
        )

        np.testing.assert_allclose(J, range_jacobian(x, ANCHORS), rtol=1e-8, atol=1e-9)

    def test_uses_two_n_evaluations(self):
        calls = []

        def f(x, _):
            calls.append(1)
            return np.array([x.sum()])

        estimate_jacobian(np.zeros(3), f, np.full(3, 1e-3), method="central")

        assert len(calls) == 6


class TestInputsAreNotMutated:

    def test_x_and_user_param_unchanged(self):
        x = np.array([1.0, 2.0])
        user_param = {"scale": np.array([2.0, 3.0])}

        def f(x_, param):
            return param["scale"] * x_

        estimate_jacobian(x, f, np.full(2, 1e-3), user_param)

        np.testing.assert_array_equal(x, [1.0, 2.0])
        np.testing.assert_array_equal(user_param["scale"], [2.0, 3.0])

    def test_functor_cannot_corrupt_x_through_mutation(self):
        x = np.array([1.0, 2.0])

        def f(x_, _):
            out = x_.copy()
            x_[:] = 99.0
            return out

        estimate_jacobian(x, f, np.full(2, 1e-3))

        np.testing.assert_array_equal(x, [1.0, 2.0])


class TestValidation:

    def test_zero_increment_raises(self):
        with pytest.raises(InvalidArgumentError):
            estimate_jacobian(np.zeros(2), lambda x, _: x, np.array([1e-6, 0.0]))

    def test_non_finite_increment_raises(self):
        with pytest.raises(InvalidArgumentError):
            estimate_jacobian(np.zeros(2), lambda x, _: x, np.array([np.nan, 1.0]))

    def test_increment_size_mismatch_raises(self):
        with pytest.raises(DimensionMismatchError):
            estimate_jacobian(np.zeros(3), lambda x, _: x, np.full(2, 1e-6))

    def test_x_must_be_1d(self):
        with pytest.raises(DimensionMismatchError):
            estimate_jacobian(np.zeros((2, 2)), lambda x, _: x, np.full(2, 1e-6))

    def test_unknown_method_raises(self):
        with pytest.raises(InvalidArgumentError):
            estimate_jacobian(np.zeros(2), lambda x, _: x, np.full(2, 1e-6), method="backward")

    def test_inconsistent_residual_size_raises(self):
        def f(x, _):
            return np.zeros(2) if x[0] == 0.0 else np.zeros(3)

        with pytest.raises(DimensionMismatchError):
            estimate_jacobian(np.zeros(2), f, np.full(2, 1e-3))

    def test_errors_are_value_errors(self):
        """Argument errors stay catchable as ValueError."""
        with pytest.raises(ValueError):
            estimate_jacobian(np.zeros(2), lambda x, _: x, np.zeros(2))


class TestEvaluateResidual:

    def test_scalar_output_becomes_vector(self):
        fx = evaluate_residual(lambda x, _: 2.0, np.zeros(1))
        assert fx.shape == (1,)

    def test_matrix_output_rejected(self):
        with pytest.raises(DimensionMismatchError):
            evaluate_residual(lambda x, _: np.zeros((2, 2)), np.zeros(1))

    def test_functor_errors_propagate(self):
        def f(x, _):
            raise KeyError("missing measurement")

        with pytest.raises(KeyError):
            evaluate_residual(f, np.zeros(1))
