"""
Data preparation for estimation.

Column lookups are resolved once, before the optimizer starts: every record
field the utilities read becomes one contiguous JAX array, the chosen column
becomes an array of alternative positions and availability becomes a boolean
matrix. The likelihood then only ever indexes into these arrays.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Union

import jax
import jax.numpy as jnp
import numpy as np
import numpy.typing as npt
import pandas as pd

from .errors import DataValidationError, SpecificationError
from .reporting import Reporter, emit
from .utility import UtilityFunctionSet

logger = logging.getLogger(__name__)

Availability = Union[Sequence[Optional[str]], Mapping[Hashable, Optional[str]]]


@dataclass(frozen=True, eq=False)
class PreparedData:
    """
    Device-resident arrays consumed by the likelihood.

    Attributes:
        columns (dict[str, jax.Array]): Record fields, each of shape (n,).
        chosen (jax.Array): Position of the chosen alternative, shape (n,).
        availability (jax.Array | None): Boolean matrix (n, N), or None when
            every alternative is always available.
    """

    columns: dict[str, jax.Array]
    chosen: jax.Array
    availability: Optional[jax.Array]

    @property
    def nobs(self) -> int:
        return int(self.chosen.shape[0])


def as_frame(data: Any) -> pd.DataFrame:
    """Accept a DataFrame or any iterable of mappings with one schema."""
    if isinstance(data, pd.DataFrame):
        return data
    if isinstance(data, Mapping):
        return pd.DataFrame(data)
    if isinstance(data, Iterable):
        return pd.DataFrame.from_records(list(data))
    raise TypeError(f"Unsupported data source type {type(data).__name__}")


def _is_numeric(series: pd.Series) -> bool:
    return pd.api.types.is_bool_dtype(series) or pd.api.types.is_numeric_dtype(
        series
    )


def extract_columns(
    frame: pd.DataFrame,
    columnnames: Optional[Sequence[str]] = None,
    allow_missing: bool = False,
) -> dict[str, jax.Array]:
    """
    Convert record fields to JAX arrays.

    With explicit ``columnnames`` every listed column must exist, be numeric or
    boolean and contain no missing values. Without them every numeric or boolean
    column is passed through and other columns are skipped.

    ``allow_missing`` accepts NaN in declared columns. It is used when an
    availability mask is given, since attributes of unavailable alternatives
    are never read; a NaN that an available alternative does read makes the
    log-likelihood non-finite.
    """
    if columnnames is None:
        names = [c for c in frame.columns if _is_numeric(frame[c])]
    else:
        missing = [c for c in columnnames if c not in frame.columns]
        if missing:
            raise DataValidationError(f"Columns not found in data: {missing}")
        names = list(columnnames)
        for name in names:
            if not _is_numeric(frame[name]):
                raise DataValidationError(
                    f"Column {name!r} has dtype {frame[name].dtype}; utilities can only "
                    f"read numeric or boolean columns (dummy-code categorical values first)"
                )
            if not allow_missing and frame[name].isna().any():
                raise DataValidationError(f"Column {name!r} contains missing values")

    columns = {}
    for name in names:
        series = frame[name]
        if pd.api.types.is_bool_dtype(series):
            columns[str(name)] = jnp.asarray(series.to_numpy(dtype=bool))
        else:
            columns[str(name)] = jnp.asarray(series.to_numpy(dtype=np.float64))
    return columns


def chosen_positions(
    frame: pd.DataFrame, chosen: str, alternatives: Sequence[Hashable]
) -> npt.NDArray[np.int32]:
    """Map the chosen column to 0-based positions in ``alternatives``."""
    if chosen not in frame.columns:
        raise DataValidationError(f"Chosen column {chosen!r} not found in data")

    positions = {alt: i for i, alt in enumerate(alternatives)}
    codes = frame[chosen].map(positions)
    unknown = codes.isna().to_numpy()
    if unknown.any():
        values = pd.unique(frame.loc[unknown, chosen])
        raise DataValidationError(
            f"Chosen column {chosen!r} has values with no utility function: "
            f"{list(values[:10])}" + ("..." if len(values) > 10 else "")
        )
    return codes.to_numpy(dtype=np.int32)


def resolve_availability(
    availability: Optional[Availability], alternatives: Sequence[Hashable]
) -> Optional[list[Optional[str]]]:
    """Normalize availability input to one column name (or None) per alternative."""
    if availability is None:
        return None

    if isinstance(availability, Mapping):
        unknown = [alt for alt in availability if alt not in alternatives]
        if unknown:
            raise SpecificationError(
                f"Availability given for unknown alternatives: {unknown}"
            )
        return [availability.get(alt) for alt in alternatives]

    if isinstance(availability, str):
        raise SpecificationError(
            "availability must be a sequence of column names, not a single string"
        )
    names = list(availability)
    if len(names) != len(alternatives):
        raise SpecificationError(
            f"availability must name {len(alternatives)} columns, got {len(names)}"
        )
    return names


def availability_matrix(
    frame: pd.DataFrame,
    availability: Optional[Availability],
    alternatives: Sequence[Hashable],
) -> Optional[npt.NDArray[np.bool_]]:
    """Build the (n, N) availability matrix, or None if no mask was given."""
    names = resolve_availability(availability, alternatives)
    if names is None:
        return None

    n = len(frame)
    mask = np.ones((n, len(names)), dtype=bool)
    for j, name in enumerate(names):
        if name is None:
            continue
        if name not in frame.columns:
            raise DataValidationError(f"Availability column {name!r} not found in data")
        if frame[name].isna().any():
            raise DataValidationError(
                f"Availability column {name!r} contains missing values"
            )
        mask[:, j] = frame[name].astype(bool).to_numpy()
    return mask


def prepare_data(
    data: Any,
    chosen: str,
    utility: UtilityFunctionSet,
    availability: Optional[Availability] = None,
) -> PreparedData:
    """
    Validate the data against the utility set and move it to device arrays.

    Args:
        data: DataFrame or iterable of record mappings.
        chosen: Name of the column holding the chosen alternative.
        utility: The utility function set.
        availability: Optional availability columns, one per alternative.

    Returns:
        PreparedData ready for the likelihood.

    Raises:
        DataValidationError: If the data is empty, the chosen column has values
            with no utility function, a referenced column is missing or
            non-numeric, or some record chose an unavailable alternative.
    """
    frame = as_frame(data)
    if len(frame) == 0:
        raise DataValidationError("Data has no records")

    codes = chosen_positions(frame, chosen, utility.alternatives)
    mask = availability_matrix(frame, availability, utility.alternatives)

    if mask is not None:
        chose_unavailable = ~mask[np.arange(len(frame)), codes]
        if chose_unavailable.any():
            invalid = np.flatnonzero(chose_unavailable)
            raise DataValidationError(
                f"{invalid.size} records chose an unavailable alternative. "
                f"Record positions: {invalid[:10].tolist()}"
                + ("..." if invalid.size > 10 else "")
            )

    columns = extract_columns(
        frame, utility.columnnames, allow_missing=mask is not None
    )
    logger.debug("Prepared %d records with %d columns", len(frame), len(columns))

    return PreparedData(
        columns=columns,
        chosen=jnp.asarray(codes),
        availability=None if mask is None else jnp.asarray(mask),
    )


def check_perfect_prediction(
    data: Any,
    chosen: str,
    columns: Sequence[str],
    reporter: Optional[Reporter] = None,
    min_records: int = 2,
) -> list[tuple[str, Any, Any]]:
    """
    Find discrete columns with a value that always leads to the same choice.

    When every record with ``column == value`` chose the same alternative the
    coefficients attached to that column diverge during estimation. Only
    boolean and integer columns are checked, and a value must occur on at
    least ``min_records`` records to be reported.

    Returns:
        List of (column, value, alternative) triples, one per offending value.
    """
    frame = as_frame(data)
    found = []
    for column in columns:
        if column not in frame.columns or column == chosen:
            continue
        series = frame[column]
        if not (
            pd.api.types.is_bool_dtype(series) or pd.api.types.is_integer_dtype(series)
        ):
            continue

        grouped = frame.groupby(column)[chosen]
        n_choices = grouped.nunique()
        n_records = grouped.size()
        predicting = n_choices.index[(n_choices == 1) & (n_records >= min_records)]
        for value in predicting:
            alternative = grouped.get_group(value).iloc[0]
            found.append((column, value, alternative))
            emit(
                reporter,
                "perfect_prediction",
                f"Variable {column} perfectly predicts choice {alternative!r} "
                f"when {column} == {value!r} ({n_records[value]} records)",
                level=logging.WARNING,
                column=column,
                value=value,
                alternative=alternative,
                n_records=int(n_records[value]),
            )
    return found
