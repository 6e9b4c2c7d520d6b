"""
Multinomial logit log-likelihood and its negation as an optimization objective.

The per-record contribution is written for a single record and vectorized over
all records with ``jax.vmap``; the resulting sum is JIT-compiled together with
its exact gradient and Hessian.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

import jax
import jax.numpy as jnp
import numpy as np
import numpy.typing as npt

from .data import Availability, PreparedData, prepare_data
from .utility import UtilityFunction, UtilityFunctionSet

LogLikelihood = Callable[[jax.Array], jax.Array]


def _blank_record(record: Mapping[str, jax.Array], keep: jax.Array) -> dict:
    # Zero every field unless ``keep``; unavailable alternatives read this copy
    return {
        name: jnp.where(keep, value, jnp.zeros_like(value))
        for name, value in record.items()
    }


def row_log_likelihood(
    params: jax.Array,
    record: Mapping[str, jax.Array],
    utility_functions: Sequence[UtilityFunction],
    chosen: jax.Array,
    availability: Optional[jax.Array] = None,
    stabilize: bool = False,
) -> jax.Array:
    """
    Log-probability of the chosen alternative for one record.

    Computes ``log(exp(u_chosen) / sum_{i available} exp(u_i))``. Unavailable
    alternatives contribute exactly zero to the denominator and to every
    derivative: their utilities are evaluated on an all-zero copy of the record
    and replaced by a constant before exponentiation, so sentinel or missing
    attribute values never reach the result. If the chosen alternative itself
    is unavailable the result is -inf.

    Args:
        params: Free parameter vector.
        record: Mapping of field name to scalar value.
        utility_functions: One callable per alternative.
        chosen: 0-based position of the chosen alternative.
        availability: Optional boolean vector of length N.
        stabilize: Subtract the largest available utility before exponentiating.
            Off by default, so large utilities can overflow.
    """
    if availability is None:
        utilities = jnp.stack([ufunc(params, record) for ufunc in utility_functions])
    else:
        utilities = jnp.stack(
            [
                ufunc(params, _blank_record(record, availability[j]))
                for j, ufunc in enumerate(utility_functions)
            ]
        )
        utilities = jnp.where(availability, utilities, 0.0)

    if stabilize:
        if availability is None:
            shift = jnp.max(utilities)
        else:
            shift = jnp.max(jnp.where(availability, utilities, -jnp.inf))
        utilities = utilities - jax.lax.stop_gradient(shift)

    if availability is None:
        exp_util = jnp.exp(utilities)
    else:
        exp_util = jnp.where(
            availability, jnp.exp(jnp.where(availability, utilities, 0.0)), 0.0
        )

    return jnp.log(exp_util[chosen] / jnp.sum(exp_util))


def _chunk(tree: Any, nobs: int, chunk_size: int) -> tuple[Any, jax.Array]:
    # Pad with copies of the first record and reshape to (n_chunks, chunk_size, ...)
    n_chunks = math.ceil(nobs / chunk_size)
    pad = n_chunks * chunk_size - nobs

    def reshape(leaf):
        if pad:
            leaf = jnp.concatenate([leaf, jnp.repeat(leaf[:1], pad, axis=0)])
        return leaf.reshape((n_chunks, chunk_size) + leaf.shape[1:])

    valid = (jnp.arange(n_chunks * chunk_size) < nobs).reshape(n_chunks, chunk_size)
    return jax.tree_util.tree_map(reshape, tree), valid


def make_log_likelihood(
    utility: UtilityFunctionSet,
    data: PreparedData,
    stabilize: bool = False,
    chunk_size: Optional[int] = None,
) -> LogLikelihood:
    """
    Close over the data and return ``params -> sum of row log-likelihoods``.

    Records are always visited in the same order. With ``chunk_size`` the
    records are summed in fixed-size chunks and the chunk totals are summed
    afterwards, which bounds the memory used by the Hessian on large data.
    """
    ufuncs = utility.wrapped()

    if data.availability is None:

        def row(params, record, chosen):
            return row_log_likelihood(params, record, ufuncs, chosen, None, stabilize)

        rows = jax.vmap(row, in_axes=(None, 0, 0))
        args = (data.columns, data.chosen)
    else:

        def row(params, record, chosen, availability):
            return row_log_likelihood(
                params, record, ufuncs, chosen, availability, stabilize
            )

        rows = jax.vmap(row, in_axes=(None, 0, 0, 0))
        args = (data.columns, data.chosen, data.availability)

    if chunk_size is None:

        def loglik(params: jax.Array) -> jax.Array:
            return jnp.sum(rows(params, *args))

        return loglik

    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    chunked, valid = _chunk(args, data.nobs, chunk_size)

    def loglik(params: jax.Array) -> jax.Array:
        def chunk_total(chunk):
            chunk_args, chunk_valid = chunk
            return jnp.sum(jnp.where(chunk_valid, rows(params, *chunk_args), 0.0))

        return jnp.sum(jax.lax.map(chunk_total, (chunked, valid)))

    return loglik


def log_likelihood(
    utility: UtilityFunctionSet,
    chosen: str,
    data: Any,
    params: npt.ArrayLike,
    availability: Optional[Availability] = None,
    stabilize: bool = False,
) -> float:
    """One-shot aggregate log-likelihood of ``data`` at ``params``."""
    prepared = prepare_data(data, chosen, utility, availability)
    loglik = make_log_likelihood(utility, prepared, stabilize=stabilize)
    return float(loglik(jnp.asarray(params, dtype=jnp.float64)))


def log_likelihood_contributions(
    utility: UtilityFunctionSet,
    data: PreparedData,
    params: npt.ArrayLike,
    stabilize: bool = False,
) -> npt.NDArray[np.float64]:
    """Per-record log-likelihood contributions, shape (n,)."""
    ufuncs = utility.wrapped()
    params = jnp.asarray(params, dtype=jnp.float64)
    if data.availability is None:
        contrib = jax.vmap(
            lambda r, c: row_log_likelihood(params, r, ufuncs, c, None, stabilize)
        )(data.columns, data.chosen)
    else:
        contrib = jax.vmap(
            lambda r, c, a: row_log_likelihood(params, r, ufuncs, c, a, stabilize)
        )(data.columns, data.chosen, data.availability)
    return np.asarray(contrib, dtype=np.float64)


class Objective:
    """
    Negated log-likelihood with exact derivatives for a minimizer.

    All methods accept and return NumPy float64 values so the object can be
    handed straight to ``scipy.optimize.minimize``.
    """

    def __init__(self, loglik: LogLikelihood) -> None:
        def negated(params):
            return -loglik(params)

        self.loglik = loglik
        self._value = jax.jit(negated)
        self._value_and_grad = jax.jit(jax.value_and_grad(negated))
        self._grad = jax.jit(jax.grad(negated))
        self._hessian = jax.jit(jax.hessian(negated))

    @staticmethod
    def _params(params: npt.ArrayLike) -> jax.Array:
        return jnp.asarray(params, dtype=jnp.float64)

    def value(self, params: npt.ArrayLike) -> float:
        return float(self._value(self._params(params)))

    def gradient(self, params: npt.ArrayLike) -> npt.NDArray[np.float64]:
        return np.array(self._grad(self._params(params)), dtype=np.float64)

    def value_and_gradient(
        self, params: npt.ArrayLike
    ) -> tuple[float, npt.NDArray[np.float64]]:
        value, grad = self._value_and_grad(self._params(params))
        return float(value), np.array(grad, dtype=np.float64)

    def hessian(self, params: npt.ArrayLike) -> npt.NDArray[np.float64]:
        return np.array(self._hessian(self._params(params)), dtype=np.float64)

    def log_likelihood(self, params: npt.ArrayLike) -> float:
        """Log-likelihood (not negated) at ``params``."""
        return -self.value(params)
