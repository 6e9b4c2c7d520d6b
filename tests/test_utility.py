"""Tests for UtilityFunctionSet construction."""

import jax.numpy as jnp
import numpy as np
import pytest

from mnlogit import SpecificationError, UtilityFunctionSet
from mnlogit.utility import CoefficientView


def make_utility(**kwargs):
    return UtilityFunctionSet.from_named(
        {
            "walk": lambda b, r: b["asc_walk"],
            "car": lambda b, r: b["asc_car"] + b["b_time"] * r["time_car"],
        },
        starting_values={"b_time": 0.0, "asc_car": 0.5},
        fixed_coefs={"asc_walk": 0.0},
        **kwargs,
    )


class TestFromNamed:
    """Test building a set from name-based utility functions."""

    def test_coefficient_order_and_alternatives(self):
        """Free coefficients keep the order of starting_values."""
        utility = make_utility()
        assert utility.coefnames == ("b_time", "asc_car")
        assert utility.alternatives == ("walk", "car")
        assert utility.n_alternatives == 2
        assert utility.n_free == 2
        assert utility.n_fixed == 1
        np.testing.assert_array_equal(utility.starting_values, [0.0, 0.5])

    def test_free_and_fixed_coefficients_resolve(self):
        """Free names read the parameter vector, fixed names read constants."""
        utility = UtilityFunctionSet.from_named(
            {
                "walk": lambda b, r: b["asc_walk"],
                "car": lambda b, r: b["asc_car"] + b["b_time"] * r["time_car"],
            },
            starting_values={"b_time": 0.0, "asc_car": 0.0},
            fixed_coefs={"asc_walk": 1.25},
        )
        params = jnp.array([-0.5, 2.0])
        record = {"time_car": jnp.asarray(3.0)}
        walk, car = utility.wrapped()

        assert float(walk(params, record)) == 1.25
        assert float(car(params, record)) == pytest.approx(2.0 - 0.5 * 3.0)

    def test_positions(self):
        utility = make_utility()
        assert utility.positions() == {"walk": 0, "car": 1}

    def test_columnnames_stored_as_tuple(self):
        utility = make_utility(columnnames=["time_car"])
        assert utility.columnnames == ("time_car",)


class TestCoefficientView:
    """Test name lookups."""

    def test_unknown_name_raises(self):
        view = CoefficientView(jnp.zeros(1), {"a": 0}, {"b": 1.0})
        with pytest.raises(KeyError, match="Unknown coefficient 'c'"):
            view["c"]

    def test_contains(self):
        view = CoefficientView(jnp.zeros(1), {"a": 0}, {"b": 1.0})
        assert "a" in view
        assert "b" in view
        assert "c" not in view


class TestValidation:
    """Test UtilityFunctionSet invariants."""

    def test_default_alternatives_are_positions(self):
        utility = UtilityFunctionSet(
            utility_functions=(lambda p, r: 0.0, lambda p, r: p[0]),
            coefnames=("a",),
            starting_values=np.zeros(1),
        )
        assert utility.alternatives == (0, 1)

    def test_requires_a_utility_function(self):
        with pytest.raises(SpecificationError, match="At least one utility function"):
            UtilityFunctionSet((), (), np.zeros(0))

    def test_alternative_count_mismatch(self):
        with pytest.raises(SpecificationError, match="2 utility functions but 3"):
            UtilityFunctionSet(
                (lambda p, r: 0.0, lambda p, r: p[0]),
                ("a",),
                np.zeros(1),
                alternatives=("x", "y", "z"),
            )

    def test_duplicate_alternatives(self):
        with pytest.raises(SpecificationError, match="unique"):
            UtilityFunctionSet(
                (lambda p, r: 0.0, lambda p, r: p[0]),
                ("a",),
                np.zeros(1),
                alternatives=("x", "x"),
            )

    def test_starting_values_size(self):
        with pytest.raises(SpecificationError, match="starting_values must have size 2"):
            UtilityFunctionSet((lambda p, r: 0.0,), ("a", "b"), np.zeros(3))

    def test_duplicate_coefficient_names(self):
        with pytest.raises(SpecificationError, match="names must be unique"):
            UtilityFunctionSet((lambda p, r: 0.0,), ("a", "a"), np.zeros(2))

    def test_free_and_fixed_overlap(self):
        with pytest.raises(SpecificationError, match="both free and fixed"):
            UtilityFunctionSet(
                (lambda p, r: 0.0,), ("a",), np.zeros(1), fixed_coefs={"a": 1.0}
            )

    def test_non_callable(self):
        with pytest.raises(SpecificationError, match="callable"):
            UtilityFunctionSet((1.0,), (), np.zeros(0))

    def test_starting_values_read_only(self):
        utility = make_utility()
        with pytest.raises(ValueError):
            utility.starting_values[0] = 10.0


class TestWrapped:
    """Test the uniform scalar return contract."""

    def test_constant_utility_becomes_float_array(self):
        utility = UtilityFunctionSet((lambda p, r: 0,), ("a",), np.zeros(1))
        (wrapped,) = utility.wrapped()
        value = wrapped(jnp.zeros(1), {})
        assert value.shape == ()
        assert value.dtype == jnp.float64

    def test_non_scalar_utility_raises(self):
        utility = UtilityFunctionSet(
            (lambda p, r: jnp.ones(2) * p[0],), ("a",), np.zeros(1)
        )
        (wrapped,) = utility.wrapped()
        with pytest.raises(TypeError, match="must return a scalar"):
            wrapped(jnp.zeros(1), {})
