"""
Utility function sets.

A utility function set is the compiled form of a model specification: one
callable per alternative, each mapping ``(params, record)`` to a scalar
utility, together with the names of the free coefficients (aligned with
positions in ``params``), the fixed coefficients and the starting values.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

import jax
import jax.numpy as jnp
import numpy as np
import numpy.typing as npt

from .errors import SpecificationError

UtilityFunction = Callable[[jax.Array, Mapping[str, jax.Array]], Any]


class CoefficientView:
    """Resolve coefficient names to parameter slots or fixed constants."""

    def __init__(
        self,
        params: jax.Array,
        index: Mapping[str, int],
        fixed: Mapping[str, float],
    ) -> None:
        self._params = params
        self._index = index
        self._fixed = fixed

    def __getitem__(self, name: str) -> Any:
        if name in self._index:
            return self._params[self._index[name]]
        if name in self._fixed:
            return self._fixed[name]
        raise KeyError(f"Unknown coefficient {name!r}")

    def __contains__(self, name: object) -> bool:
        return name in self._index or name in self._fixed


def _scalar_utility(func: UtilityFunction, position: int) -> UtilityFunction:
    # Every utility returns a 0-d array of the parameter dtype
    def wrapped(params: jax.Array, record: Mapping[str, jax.Array]) -> jax.Array:
        value = jnp.asarray(func(params, record), dtype=params.dtype)
        if value.ndim != 0:
            raise TypeError(
                f"Utility function for alternative {position} must return a scalar, "
                f"got shape {value.shape}"
            )
        return value

    return wrapped


@dataclass(frozen=True, eq=False)
class UtilityFunctionSet:
    """
    Ordered per-alternative utility functions and their coefficients.

    Attributes:
        utility_functions (tuple): One callable ``(params, record) -> scalar``
            per alternative.
        coefnames (tuple[str, ...]): Free coefficient names, position i of the
            parameter vector belongs to ``coefnames[i]``.
        starting_values (np.ndarray): Starting parameter vector.
        fixed_coefs (dict[str, float]): Coefficients held constant.
        alternatives (tuple): Observed values of the chosen column, in the same
            order as ``utility_functions``.
        columnnames (tuple[str, ...] | None): Record fields the utilities read.
            If None, every numeric column of the data is passed through.
    """

    utility_functions: tuple[UtilityFunction, ...]
    coefnames: tuple[str, ...]
    starting_values: npt.NDArray[np.float64]
    fixed_coefs: dict[str, float] = field(default_factory=dict)
    alternatives: tuple[Hashable, ...] = ()
    columnnames: Optional[tuple[str, ...]] = None

    def __post_init__(self) -> None:
        funcs = tuple(self.utility_functions)
        coefnames = tuple(self.coefnames)
        alternatives = tuple(self.alternatives) or tuple(range(len(funcs)))
        starting = np.array(self.starting_values, dtype=np.float64).reshape(-1)
        starting.setflags(write=False)

        if len(funcs) < 1:
            raise SpecificationError("At least one utility function is required")
        if not all(callable(f) for f in funcs):
            raise SpecificationError("Every utility function must be callable")
        if len(alternatives) != len(funcs):
            raise SpecificationError(
                f"Got {len(funcs)} utility functions but {len(alternatives)} alternatives"
            )
        if len(set(alternatives)) != len(alternatives):
            raise SpecificationError("Alternatives must be unique")
        if starting.size != len(coefnames):
            raise SpecificationError(
                f"starting_values must have size {len(coefnames)}, got {starting.size}"
            )
        if len(set(coefnames)) != len(coefnames):
            raise SpecificationError("Coefficient names must be unique")
        overlap = set(coefnames) & set(self.fixed_coefs)
        if overlap:
            raise SpecificationError(
                f"Coefficients cannot be both free and fixed: {sorted(overlap)}"
            )

        object.__setattr__(self, "utility_functions", funcs)
        object.__setattr__(self, "coefnames", coefnames)
        object.__setattr__(self, "alternatives", alternatives)
        object.__setattr__(self, "starting_values", starting)
        object.__setattr__(
            self, "fixed_coefs", {k: float(v) for k, v in self.fixed_coefs.items()}
        )
        if self.columnnames is not None:
            object.__setattr__(self, "columnnames", tuple(self.columnnames))

    @classmethod
    def from_named(
        cls,
        utilities: Mapping[Hashable, Callable[[CoefficientView, Any], Any]],
        starting_values: Mapping[str, float],
        fixed_coefs: Optional[Mapping[str, float]] = None,
        columnnames: Optional[Sequence[str]] = None,
    ) -> "UtilityFunctionSet":
        """
        Build a set from functions that look coefficients up by name.

        Each function receives ``(coefs, record)`` where ``coefs[name]`` is the
        parameter entry of a free coefficient or the constant value of a fixed
        one.

        Example:
            >>> utility = UtilityFunctionSet.from_named(
            ...     {
            ...         "walk": lambda b, r: b["asc_walk"],
            ...         "car": lambda b, r: b["b_time"] * r["time_car"],
            ...     },
            ...     starting_values={"b_time": 0.0},
            ...     fixed_coefs={"asc_walk": 0.0},
            ... )
        """
        fixed = dict(fixed_coefs or {})
        coefnames = tuple(starting_values)
        index = {name: i for i, name in enumerate(coefnames)}

        def positional(func):
            def utility(params, record):
                return func(CoefficientView(params, index, fixed), record)

            return utility

        return cls(
            utility_functions=tuple(positional(f) for f in utilities.values()),
            coefnames=coefnames,
            starting_values=np.array([starting_values[n] for n in coefnames]),
            fixed_coefs=fixed,
            alternatives=tuple(utilities),
            columnnames=None if columnnames is None else tuple(columnnames),
        )

    @property
    def n_alternatives(self) -> int:
        return len(self.utility_functions)

    @property
    def n_free(self) -> int:
        return len(self.coefnames)

    @property
    def n_fixed(self) -> int:
        return len(self.fixed_coefs)

    def positions(self) -> dict[Hashable, int]:
        """Map each alternative to its position in ``utility_functions``."""
        return {alt: i for i, alt in enumerate(self.alternatives)}

    def wrapped(self) -> tuple[UtilityFunction, ...]:
        """Return the utility functions with a uniform scalar return type."""
        return tuple(
            _scalar_utility(f, i) for i, f in enumerate(self.utility_functions)
        )
