"""Unit tests for LMOptions validation and LMResultInfo defaults."""

import dataclasses

import numpy as np
import pytest

from lmopt.estimators import InvalidArgumentError, LMOptions, LMResultInfo


class TestLMOptions:

    def test_defaults(self):
        opts = LMOptions()

        assert opts.max_iter == 200
        assert opts.tau == 1e-3
        assert opts.e1 == 1e-8
        assert opts.e2 == 1e-8
        assert opts.return_path is True
        assert opts.jacobian_method == "forward"

    def test_is_frozen(self):
        opts = LMOptions()
        with pytest.raises(dataclasses.FrozenInstanceError):
            opts.max_iter = 10

    def test_numpy_scalars_accepted(self):
        opts = LMOptions(max_iter=np.int64(5), tau=np.float64(1e-2))
        assert opts.max_iter == 5

    @pytest.mark.parametrize("max_iter", [0, -3])
    def test_max_iter_must_be_positive(self, max_iter):
        with pytest.raises(InvalidArgumentError):
            LMOptions(max_iter=max_iter)

    @pytest.mark.parametrize("max_iter", [2.5, True, "10"])
    def test_max_iter_must_be_integer(self, max_iter):
        with pytest.raises(InvalidArgumentError):
            LMOptions(max_iter=max_iter)

    @pytest.mark.parametrize("name", ["tau", "e1", "e2"])
    @pytest.mark.parametrize("value", [0.0, -1e-6, np.nan, np.inf])
    def test_tolerances_must_be_positive_and_finite(self, name, value):
        with pytest.raises(InvalidArgumentError):
            LMOptions(**{name: value})

    @pytest.mark.parametrize("name", ["tau", "e1", "e2"])
    def test_tolerance_rejects_bool(self, name):
        with pytest.raises(InvalidArgumentError):
            LMOptions(**{name: True})

    def test_tolerance_must_be_numeric(self):
        with pytest.raises(InvalidArgumentError):
            LMOptions(tau="small")

    def test_unknown_jacobian_method(self):
        with pytest.raises(InvalidArgumentError, match="jacobian_method"):
            LMOptions(jacobian_method="complex-step")

    def test_replace_revalidates(self):
        with pytest.raises(InvalidArgumentError):
            dataclasses.replace(LMOptions(), e2=0.0)


class TestLMResultInfo:

    def test_empty_record(self):
        info = LMResultInfo()

        assert info.iterations_executed == 0
        assert info.stop_reason is None
        assert info.path.shape == (0, 0)
        assert not info.converged

    def test_default_arrays_not_shared(self):
        a, b = LMResultInfo(), LMResultInfo()
        assert a.last_err_vector is not b.last_err_vector
