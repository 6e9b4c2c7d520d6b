"""Tests for the estimation result object."""

import dataclasses

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from mnlogit import MultinomialLogitModel


def make_model(**overrides):
    fields = dict(
        coefnames=("beta_price", "beta_quality", "asc_bus"),
        coefs=[-0.6, 0.4, 0.0],
        vcov=[[0.04, 0.01, np.nan], [0.01, 0.01, np.nan], [np.nan, np.nan, np.nan]],
        init_ll=-100.0,
        final_ll=-75.0,
        nobs=200,
        n_fixed=1,
        iterations=6,
        method="trust-exact",
    )
    fields.update(overrides)
    return MultinomialLogitModel(**fields)


class TestImmutability:
    """Test that results cannot be modified after construction."""

    def test_attributes_are_frozen(self):
        model = make_model()
        with pytest.raises(dataclasses.FrozenInstanceError):
            model.final_ll = 0.0

    def test_arrays_are_read_only(self):
        model = make_model()
        with pytest.raises(ValueError):
            model.coefs[0] = 1.0
        with pytest.raises(ValueError):
            model.vcov[0, 0] = 1.0

    def test_input_arrays_are_copied(self):
        coefs = np.array([-0.6, 0.4, 0.0])
        model = make_model(coefs=coefs)
        coefs[0] = 5.0
        assert model.coefs[0] == -0.6

    def test_coefnames_become_tuple(self):
        model = make_model(coefnames=["a", "b", "c"])
        assert model.coefnames == ("a", "b", "c")


class TestValidation:
    """Test shape validation at construction."""

    def test_coefs_size_mismatch(self):
        with pytest.raises(ValueError, match="coefs must have size 3"):
            make_model(coefs=[1.0, 2.0])

    def test_vcov_shape_mismatch(self):
        with pytest.raises(ValueError, match="vcov must have shape"):
            make_model(vcov=np.eye(2))

    def test_n_fixed_out_of_range(self):
        with pytest.raises(ValueError, match="n_fixed must be in"):
            make_model(n_fixed=4)


class TestStatistics:
    """Test derived statistics."""

    def test_stderror(self):
        model = make_model()
        se = model.stderror()
        assert se[:2] == pytest.approx([0.2, 0.1])
        assert np.isnan(se[2])

    def test_negative_variance_is_nan(self):
        model = make_model(vcov=np.diag([-0.04, 0.01, np.nan]))
        se = model.stderror()
        assert np.isnan(se[0])
        assert se[1] == pytest.approx(0.1)

    def test_zstat_and_pvalues(self):
        model = make_model()
        z = model.zstat()
        assert z[:2] == pytest.approx([-3.0, 4.0])
        p = model.pvalues()
        assert p[0] == pytest.approx(2 * stats.norm.sf(3.0))
        assert p[1] == pytest.approx(2 * stats.norm.sf(4.0))
        assert np.isnan(p[2])

    def test_mcfadden_r2(self):
        assert make_model().mcfadden_r2 == pytest.approx(0.25)

    def test_mcfadden_r2_zero_initial_ll(self):
        assert np.isnan(make_model(init_ll=0.0).mcfadden_r2)

    def test_information_criteria_count_free_coefficients(self):
        model = make_model()
        assert model.n_free == 2
        assert model.aic == pytest.approx(2 * 2 + 150.0)
        assert model.bic == pytest.approx(np.log(200) * 2 + 150.0)

    def test_bic_without_observations(self):
        assert np.isnan(make_model(nobs=0).bic)


class TestTables:
    """Test tabular and text output."""

    def test_to_frame(self):
        frame = make_model().to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["Coef", "Std. Err.", "Z-stat", "P>|z|"]
        assert list(frame.index) == ["beta_price", "beta_quality", "asc_bus"]
        assert frame.index.name == "coefficient"
        assert frame.loc["beta_quality", "Coef"] == pytest.approx(0.4)

    def test_summary_contents(self):
        text = make_model().summary()
        assert text.startswith("Multinomial logit model\n")
        assert "Observations: 200" in text
        assert "Initial log-likelihood (at starting values): -100.0" in text
        assert "Final log-likelihood: -75.0" in text
        assert "McFadden's pseudo-R2 (relative to starting values): 0.25" in text
        assert "-0.60000" in text
        for name in ("beta_price", "beta_quality", "asc_bus"):
            assert name in text

    def test_str_is_summary(self):
        model = make_model()
        assert str(model) == model.summary()
