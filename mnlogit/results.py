"""
Estimation results.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import pandas as pd
from scipy import stats


def _readonly(values: npt.ArrayLike) -> npt.NDArray[np.float64]:
    arr = np.array(values, dtype=np.float64)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class MultinomialLogitModel:
    """
    Immutable result of a multinomial logit estimation.

    Coefficients are ordered free first, then fixed. Rows and columns of
    ``vcov`` belonging to fixed coefficients are NaN, as is the whole matrix
    when the Hessian was singular or standard errors were not requested.

    Attributes:
        coefnames (tuple[str, ...]): Coefficient names.
        coefs (np.ndarray): Coefficient values.
        vcov (np.ndarray): Covariance matrix of the coefficients.
        init_ll (float): Log-likelihood at the starting values.
        final_ll (float): Log-likelihood at the optimum.
        nobs (int): Number of records used.
        n_fixed (int): Number of fixed coefficients at the end of ``coefnames``.
        iterations (int): Optimizer iterations.
        method (str): Optimizer method.
    """

    coefnames: tuple[str, ...]
    coefs: npt.NDArray[np.float64]
    vcov: npt.NDArray[np.float64]
    init_ll: float
    final_ll: float
    nobs: int = 0
    n_fixed: int = 0
    iterations: int = 0
    method: str = ""

    def __post_init__(self) -> None:
        coefnames = tuple(self.coefnames)
        coefs = _readonly(self.coefs).reshape(-1)
        vcov = _readonly(self.vcov)
        k = len(coefnames)

        if coefs.shape != (k,):
            raise ValueError(f"coefs must have size {k}, got {coefs.size}")
        if vcov.shape != (k, k):
            raise ValueError(f"vcov must have shape ({k}, {k}), got {vcov.shape}")
        if not 0 <= self.n_fixed <= k:
            raise ValueError(f"n_fixed must be in [0, {k}], got {self.n_fixed}")

        object.__setattr__(self, "coefnames", coefnames)
        object.__setattr__(self, "coefs", coefs)
        object.__setattr__(self, "vcov", vcov)
        object.__setattr__(self, "init_ll", float(self.init_ll))
        object.__setattr__(self, "final_ll", float(self.final_ll))

    @property
    def n_free(self) -> int:
        return len(self.coefnames) - self.n_fixed

    def coef(self) -> npt.NDArray[np.float64]:
        return self.coefs

    def stderror(self) -> npt.NDArray[np.float64]:
        """Square roots of the covariance diagonal; NaN where undefined."""
        diag = np.diag(self.vcov)
        return np.sqrt(np.where(diag >= 0, diag, np.nan))

    def zstat(self) -> npt.NDArray[np.float64]:
        return self.coefs / self.stderror()

    def pvalues(self) -> npt.NDArray[np.float64]:
        """Two-sided p-values of the z-statistics."""
        return 2 * stats.norm.sf(np.abs(self.zstat()))

    @property
    def mcfadden_r2(self) -> float:
        """McFadden's pseudo-R2 relative to the starting values."""
        if self.init_ll == 0:
            return float("nan")
        return 1 - self.final_ll / self.init_ll

    @property
    def aic(self) -> float:
        return 2 * self.n_free - 2 * self.final_ll

    @property
    def bic(self) -> float:
        if self.nobs < 1:
            return float("nan")
        return np.log(self.nobs) * self.n_free - 2 * self.final_ll

    def to_frame(self) -> pd.DataFrame:
        """Coefficient table indexed by coefficient name."""
        return pd.DataFrame(
            {
                "Coef": self.coefs,
                "Std. Err.": self.stderror(),
                "Z-stat": self.zstat(),
                "P>|z|": self.pvalues(),
            },
            index=pd.Index(self.coefnames, name="coefficient"),
        )

    def summary(self) -> str:
        header = (
            "Multinomial logit model\n"
            f"Observations: {self.nobs}\n"
            f"Initial log-likelihood (at starting values): {self.init_ll}\n"
            f"Final log-likelihood: {self.final_ll}\n"
            f"McFadden's pseudo-R2 (relative to starting values): {self.mcfadden_r2}\n"
        )
        table = self.to_frame().to_string(float_format=lambda v: f"{v:.5f}")
        return header + table + "\n"

    def __str__(self) -> str:
        return self.summary()
