"""
Data Simulation for Multinomial Logit Models

Generates synthetic choices following the Random Utility Maximization (RUM)
principle: every alternative's utility is perturbed with i.i.d. Gumbel noise and
each decision-maker picks the available alternative with the highest realized
utility.
"""

from __future__ import annotations

from typing import Any, Optional

import jax
import jax.numpy as jnp
import numpy as np
import numpy.typing as npt
import pandas as pd

from .data import Availability, as_frame, availability_matrix, extract_columns
from .utility import UtilityFunctionSet

ALTERNATIVES = ("bus", "car", "train")
TRUE_COEFS = {"beta_price": -0.6, "beta_quality": 0.4}


def systematic_utilities(
    utility: UtilityFunctionSet,
    data: Any,
    params: npt.ArrayLike,
    allow_missing: bool = False,
) -> npt.NDArray[np.float64]:
    """
    Evaluate every utility function for every record.

    With ``allow_missing`` declared columns may hold NaN, which yields NaN
    utilities wherever they are read.

    Returns:
        np.ndarray: Deterministic utilities of shape (n, N).
    """
    frame = as_frame(data)
    columns = extract_columns(frame, utility.columnnames, allow_missing=allow_missing)
    ufuncs = utility.wrapped()
    params = jnp.asarray(params, dtype=jnp.float64)

    def row(record):
        return jnp.stack([ufunc(params, record) for ufunc in ufuncs])

    if columns:
        V = jax.vmap(row)(columns)
    else:
        # Utilities read no columns; broadcast one row to every record
        V = jnp.broadcast_to(row({}), (len(frame), utility.n_alternatives))
    return np.asarray(V, dtype=np.float64)


def simulate_choices(
    utility: UtilityFunctionSet,
    data: Any,
    params: npt.ArrayLike,
    availability: Optional[Availability] = None,
    seed: Optional[int] = 42,
    rng: Optional[np.random.Generator] = None,
) -> pd.Series:
    """
    Draw one choice per record from the logit model at ``params``.

    Args:
        utility: Utility function set.
        data: DataFrame or iterable of records.
        params: Free parameter vector used to compute utilities.
        availability: Optional availability columns; unavailable alternatives
            are never chosen.
        seed: Random seed for reproducibility. Ignored if rng is provided.
        rng: Use an existing RNG instead of seed.

    Returns:
        pd.Series: Chosen alternative labels, aligned with the data's index.

    Raises:
        ValueError: If some record has no available alternative.
    """
    frame = as_frame(data)
    rng = rng or np.random.default_rng(seed)

    mask = availability_matrix(frame, availability, utility.alternatives)
    V = systematic_utilities(utility, frame, params, allow_missing=mask is not None)
    U = V + rng.gumbel(loc=0, scale=1, size=V.shape)

    if mask is not None:
        if not mask.any(axis=1).all():
            raise ValueError("Every record needs at least one available alternative")
        U = np.where(mask, U, -np.inf)

    best = np.argmax(U, axis=1)
    labels = np.empty(len(frame), dtype=object)
    labels[:] = [utility.alternatives[j] for j in best]
    return pd.Series(labels, index=frame.index, name="chosen")


def _generic_utility(alt: str):
    def utility(b, r):
        return b["beta_price"] * r[f"price_{alt}"] + b["beta_quality"] * r[
            f"quality_{alt}"
        ]

    return utility


def simulate_data(
    N: int = 5000,
    true_coefs: Optional[dict[str, float]] = None,
    scale: float = 1.5,
    with_availability: bool = False,
    seed: Optional[int] = 42,
    rng: Optional[np.random.Generator] = None,
) -> tuple[pd.DataFrame, UtilityFunctionSet, dict[str, float]]:
    """
    Generate a synthetic mode-choice dataset with known coefficients.

    The simulation process:
    1. Draws price and quality attributes ~ N(0, scale^2) for each of the
       alternatives 'bus', 'car' and 'train'
    2. Computes utilities U_j = beta_price * price_j + beta_quality * quality_j
    3. Adds Gumbel noise and records the best available alternative

    Args:
        N (int): Number of records.
        true_coefs (dict, optional): Values for 'beta_price' and 'beta_quality'.
                                     Default is {'beta_price': -0.6, 'beta_quality': 0.4}.
        scale (float): Standard deviation of the attributes.
        with_availability (bool): Add 'avail_*' columns; car is unavailable
                                  for about 10% of records and train for 20%.
        seed (int | None): Random seed for reproducibility. Ignored if rng is provided.
        rng (np.random.Generator, optional): Use an existing RNG instead of seed.

    Returns:
        tuple: (data, utility, true_coefs)
            - data (pd.DataFrame): Attributes, optional availability columns
              and the 'chosen' column
            - utility (UtilityFunctionSet): The generating model with zero
              starting values
            - true_coefs (dict): Coefficients used in simulation

    Raises:
        ValueError: If N < 1 or true_coefs has the wrong keys.
    """
    if N < 1:
        raise ValueError(f"N must be >= 1, got {N}")
    true_coefs = dict(TRUE_COEFS if true_coefs is None else true_coefs)
    if set(true_coefs) != set(TRUE_COEFS):
        raise ValueError(
            f"true_coefs must have keys {sorted(TRUE_COEFS)}, got {sorted(true_coefs)}"
        )

    rng = rng or np.random.default_rng(seed)

    columns: dict[str, Any] = {}
    for alt in ALTERNATIVES:
        columns[f"price_{alt}"] = rng.normal(scale=scale, size=N)
        columns[f"quality_{alt}"] = rng.normal(scale=scale, size=N)
    data = pd.DataFrame(columns)

    availability = None
    if with_availability:
        data["avail_bus"] = True
        data["avail_car"] = rng.uniform(size=N) >= 0.1
        data["avail_train"] = rng.uniform(size=N) >= 0.2
        availability = [f"avail_{alt}" for alt in ALTERNATIVES]

    utility = UtilityFunctionSet.from_named(
        {alt: _generic_utility(alt) for alt in ALTERNATIVES},
        starting_values={name: 0.0 for name in TRUE_COEFS},
        columnnames=list(columns),
    )

    params = np.array([true_coefs[name] for name in utility.coefnames])
    data["chosen"] = simulate_choices(
        utility, data, params, availability=availability, rng=rng
    )
    return data, utility, true_coefs
