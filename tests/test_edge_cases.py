"""
Tests for singular curvature and degenerate models.
"""

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from mnlogit import (
    CollectingReporter,
    HessianError,
    SingularHessianError,
    UtilityFunctionSet,
    compute_vcov,
    multinomial_logit,
    simulate_choices,
)
from mnlogit.estimation import invert_hessian


class FixedHessian:
    """Stand-in objective returning a given Hessian."""

    def __init__(self, hessian):
        self._hessian = np.asarray(hessian, dtype=np.float64)

    def hessian(self, params):
        return self._hessian


def collinear_data(N=1000, seed=42):
    rng = np.random.default_rng(seed)
    data = pd.DataFrame({"x": rng.normal(size=N)})
    generating = UtilityFunctionSet.from_named(
        {"no": lambda b, r: 0.0, "yes": lambda b, r: b["beta"] * r["x"]},
        starting_values={"beta": 0.0},
    )
    data["chosen"] = simulate_choices(generating, data, [0.8], seed=seed)
    return data


class TestSingularHessian:
    """Test graceful degradation when the Hessian cannot be inverted."""

    def test_collinear_coefficients(self):
        """Perfectly collinear coefficients give NaN standard errors, not an error."""
        data = collinear_data()
        utility = UtilityFunctionSet.from_named(
            {
                "no": lambda b, r: 0.0,
                "yes": lambda b, r: b["beta_1"] * r["x"] + b["beta_2"] * r["x"],
            },
            starting_values={"beta_1": 0.0, "beta_2": 0.0},
        )
        reporter = CollectingReporter()

        with pytest.warns(RuntimeWarning, match="Hessian is singular"):
            model = multinomial_logit(utility, "chosen", data, reporter=reporter)

        assert np.all(np.isfinite(model.coefs))
        assert model.coefs[0] + model.coefs[1] == pytest.approx(0.8, abs=0.2)
        assert np.all(np.isnan(model.vcov))
        assert np.all(np.isnan(model.stderror()))
        assert "singular_hessian" in reporter.kinds()

    def test_zero_hessian(self):
        with pytest.warns(RuntimeWarning, match="Hessian is singular"):
            vcov = compute_vcov(FixedHessian(np.zeros((2, 2))), np.zeros(2), n_fixed=1)

        assert vcov.shape == (3, 3)
        assert np.all(np.isnan(vcov))

    def test_rank_deficient_hessian(self):
        with pytest.raises(SingularHessianError):
            invert_hessian(np.array([[2.0, 2.0], [2.0, 2.0]]))

    def test_non_finite_hessian_is_fatal(self):
        with pytest.raises(HessianError, match="non-finite"):
            compute_vcov(FixedHessian([[1.0, np.nan], [np.nan, 1.0]]), np.zeros(2))

    def test_other_inversion_failure_propagates(self):
        with patch("numpy.linalg.inv", side_effect=np.linalg.LinAlgError("Internal failure")):
            with pytest.raises(np.linalg.LinAlgError, match="Internal failure"):
                compute_vcov(FixedHessian(np.eye(2)), np.zeros(2))


class TestCovarianceLayout:
    """Test embedding of the free block into the full covariance matrix."""

    def test_free_block_top_left(self):
        hessian = np.array([[4.0, 1.0], [1.0, 2.0]])
        vcov = compute_vcov(FixedHessian(hessian), np.zeros(2), n_fixed=2)

        assert vcov.shape == (4, 4)
        np.testing.assert_allclose(vcov[:2, :2], np.linalg.inv(hessian))
        assert np.all(np.isnan(vcov[2:, :]))
        assert np.all(np.isnan(vcov[:, 2:]))

    def test_asymmetry_is_symmetrized(self):
        hessian = np.array([[4.0, 1.0 + 1e-12], [1.0, 2.0]])
        vcov = compute_vcov(FixedHessian(hessian), np.zeros(2))
        np.testing.assert_array_equal(vcov, vcov.T)

    def test_no_free_coefficients(self):
        vcov = compute_vcov(FixedHessian(np.zeros((0, 0))), np.zeros(0), n_fixed=2)
        assert vcov.shape == (2, 2)
        assert np.all(np.isnan(vcov))


class TestDegenerateModels:
    """Test models that carry no information."""

    def test_single_alternative(self):
        """One always-available alternative has a log-likelihood of exactly 0."""
        rng = np.random.default_rng(0)
        data = pd.DataFrame({"x": rng.normal(size=200), "chosen": "only"})
        utility = UtilityFunctionSet.from_named(
            {"only": lambda b, r: b["beta"] * r["x"]},
            starting_values={"beta": 0.3},
        )
        model = multinomial_logit(utility, "chosen", data, se=False)

        assert model.init_ll == 0.0
        assert model.final_ll == pytest.approx(0.0, abs=1e-9)
        assert np.isnan(model.mcfadden_r2)

    def test_quasi_separation(self):
        """
        A very strong predictor drives the coefficient large but finite.
        """
        rng = np.random.default_rng(1)
        x = rng.normal(size=300)
        noisy = x + rng.normal(scale=0.3, size=300)
        data = pd.DataFrame({"x": x, "chosen": np.where(noisy > 0, "b", "a")})
        utility = UtilityFunctionSet.from_named(
            {"a": lambda b, r: 0.0, "b": lambda b, r: b["beta"] * r["x"]},
            starting_values={"beta": 0.0},
        )
        model = multinomial_logit(utility, "chosen", data)

        assert np.all(np.isfinite(model.coefs))
        assert model.coefs[0] > 3
