"""
Maximum likelihood estimation of multinomial logit models.

The optimizer is ``scipy.optimize.minimize``; by default the trust-region
Newton method ``trust-exact`` driven by the exact gradient and Hessian of the
negated log-likelihood.
"""

from __future__ import annotations

import itertools
import logging
import warnings
from typing import Any, Optional

import numpy as np
import numpy.typing as npt
from scipy.optimize import OptimizeResult, minimize

from .data import Availability, as_frame, check_perfect_prediction, prepare_data
from .errors import (
    ConvergenceError,
    HessianError,
    NonFiniteLikelihoodError,
    SingularHessianError,
)
from .likelihood import Objective, make_log_likelihood
from .reporting import LoggingReporter, Reporter, check_verbosity, emit
from .results import MultinomialLogitModel
from .utility import UtilityFunctionSet

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "trust-exact"
DEFAULT_OPTIONS = {"gtol": 1e-5, "maxiter": 1000}
SINGULAR_RCOND = 1e-12  # Smallest/largest singular value below this is singular

# scipy.optimize.minimize methods that accept a Hessian callable
HESSIAN_METHODS = frozenset(
    {"newton-cg", "dogleg", "trust-ncg", "trust-krylov", "trust-exact", "trust-constr"}
)


def optimize(
    objective: Objective,
    x0: npt.NDArray[np.float64],
    method: str = DEFAULT_METHOD,
    options: Optional[dict[str, Any]] = None,
    reporter: Optional[Reporter] = None,
    trace: bool = False,
) -> OptimizeResult:
    """
    Minimize the objective from ``x0``.

    Args:
        objective: Negated log-likelihood.
        x0: Starting parameter vector; not modified.
        method: Any derivative-based ``scipy.optimize.minimize`` method.
        options: Optimizer options. Default is {'gtol': 1e-5, 'maxiter': 1000}.
        reporter: Receives progress events.
        trace: Report the objective after every iteration.

    Returns:
        The converged OptimizeResult.

    Raises:
        ConvergenceError: If the optimizer stops without converging.
    """
    if options is None:
        options = dict(DEFAULT_OPTIONS)

    hess = objective.hessian if method.lower() in HESSIAN_METHODS else None

    callback = None
    if trace:
        counter = itertools.count(1)

        def callback(xk, *args):
            iteration = next(counter)
            value = objective.value(xk)
            emit(
                reporter,
                "iteration",
                f"Iteration {iteration}: objective {value:.6f}",
                level=logging.DEBUG,
                iteration=iteration,
                objective=value,
            )

    result = minimize(
        fun=objective.value_and_gradient,
        x0=np.array(x0, dtype=np.float64),
        jac=True,
        hess=hess,
        method=method,
        options=options,
        callback=callback,
    )

    iterations = int(result.get("nit", 0))
    if not result.success:
        raise ConvergenceError(iterations, float(result.fun), str(result.message))

    emit(
        reporter,
        "converged",
        f"Optimization converged successfully after {iterations} iterations\n"
        f"Using method {method}, {result.get('nfev', 0)} function evaluations, "
        f"{result.get('njev', 0)} gradient evaluations",
        iterations=iterations,
        nfev=int(result.get("nfev", 0)),
        njev=int(result.get("njev", 0)),
    )
    return result


def invert_hessian(hessian: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """
    Invert a Hessian, treating it as symmetric.

    Raises:
        SingularHessianError: If the Hessian is numerically singular.
        HessianError: If the Hessian contains non-finite values.
    """
    if not np.all(np.isfinite(hessian)):
        raise HessianError("Hessian contains non-finite values")

    hessian = 0.5 * (hessian + hessian.T)
    singular_values = np.linalg.svd(hessian, compute_uv=False)
    if singular_values[-1] <= SINGULAR_RCOND * singular_values[0]:
        raise SingularHessianError(
            f"Hessian is singular (singular values range from "
            f"{singular_values[-1]:.3g} to {singular_values[0]:.3g})"
        )
    try:
        inv_hess = np.linalg.inv(hessian)
    except np.linalg.LinAlgError as e:
        if "singular" not in str(e).lower():
            raise
        raise SingularHessianError(str(e)) from e
    return 0.5 * (inv_hess + inv_hess.T)


def compute_vcov(
    objective: Objective,
    params: npt.NDArray[np.float64],
    n_fixed: int = 0,
    reporter: Optional[Reporter] = None,
) -> npt.NDArray[np.float64]:
    """
    Asymptotic covariance of the coefficients from the inverse Hessian.

    The free-coefficient block fills the top-left corner of a square matrix
    covering free and fixed coefficients; cells touching a fixed coefficient
    are NaN. A singular Hessian is not an error: a RuntimeWarning is issued and
    the whole matrix is NaN.
    """
    n_free = len(params)
    vcov = np.full((n_free + n_fixed, n_free + n_fixed), np.nan)
    if n_free == 0:
        return vcov

    emit(reporter, "hessian", "Calculating and inverting Hessian")
    hessian = objective.hessian(params)

    try:
        inv_hess = invert_hessian(hessian)
    except SingularHessianError:
        message = (
            "Hessian is singular. Not reporting standard errors, and you should "
            "probably be suspicious of point estimates."
        )
        warnings.warn(message, RuntimeWarning, stacklevel=2)
        emit(reporter, "singular_hessian", message, level=logging.WARNING)
        return vcov

    vcov[:n_free, :n_free] = inv_hess
    return vcov


def multinomial_logit(
    utility: UtilityFunctionSet,
    chosen: str,
    data: Any,
    availability: Optional[Availability] = None,
    method: str = DEFAULT_METHOD,
    se: bool = True,
    verbose: str = "silent",
    options: Optional[dict[str, Any]] = None,
    stabilize: bool = False,
    chunk_size: Optional[int] = None,
    reporter: Optional[Reporter] = None,
    check_prediction: bool = True,
) -> MultinomialLogitModel:
    """
    Estimate a multinomial logit model by maximum likelihood.

    Args:
        utility: Utility function set with one function per alternative.
        chosen: Column holding the chosen alternative; its values must match
            ``utility.alternatives``.
        data: DataFrame or iterable of record mappings, fully loaded in memory.
        availability: Optional availability column per alternative (sequence of
            N names or None, or a mapping alternative -> column).
        method: ``scipy.optimize.minimize`` method. Default 'trust-exact'.
        se: Compute standard errors from the inverse Hessian.
        verbose: One of 'silent', 'summary' or 'trace'.
        options: Optimizer options. Default is {'gtol': 1e-5, 'maxiter': 1000}.
        stabilize: Subtract the per-record maximum utility before exponentiating.
        chunk_size: Sum the likelihood over chunks of this many records.
        reporter: Event callback; defaults to logging filtered by ``verbose``.
        check_prediction: Warn about discrete columns that perfectly predict the
            choice (only when ``utility.columnnames`` is set).

    Returns:
        MultinomialLogitModel: Free coefficients first, then fixed ones.

    Raises:
        DataValidationError: If the data is inconsistent with the model.
        NonFiniteLikelihoodError: If the log-likelihood at the starting values
            is not finite.
        ConvergenceError: If the optimizer does not converge.

    Example:
        >>> from mnlogit import multinomial_logit, simulate_data
        >>> data, utility, true_coefs = simulate_data(N=5000, seed=42)
        >>> model = multinomial_logit(utility, "chosen", data)
        >>> print(model.summary())
    """
    check_verbosity(verbose)
    if reporter is None:
        reporter = LoggingReporter(verbose)

    frame = as_frame(data)
    if check_prediction and utility.columnnames:
        check_perfect_prediction(frame, chosen, utility.columnnames, reporter)

    prepared = prepare_data(frame, chosen, utility, availability)
    objective = Objective(
        make_log_likelihood(utility, prepared, stabilize=stabilize, chunk_size=chunk_size)
    )

    start = np.array(utility.starting_values, dtype=np.float64)
    init_ll = objective.log_likelihood(start)
    if not np.isfinite(init_ll):
        raise NonFiniteLikelihoodError(
            f"Log-likelihood at starting values is {init_ll}. Utilities may be "
            f"overflowing or reading missing values; try stabilize=True, rescale "
            f"the data or fill attributes of available alternatives."
        )
    emit(
        reporter,
        "start",
        f"Log-likelihood at starting values {init_ll}",
        init_ll=init_ll,
        nobs=prepared.nobs,
    )

    if utility.n_free == 0:
        params = start
        final_ll = init_ll
        iterations = 0
    else:
        result = optimize(
            objective,
            start,
            method=method,
            options=options,
            reporter=reporter,
            trace=verbose == "trace",
        )
        params = np.asarray(result.x, dtype=np.float64)
        final_ll = -float(result.fun)
        iterations = int(result.get("nit", 0))

    if se:
        vcov = compute_vcov(objective, params, utility.n_fixed, reporter)
    else:
        vcov = np.full((len(params) + utility.n_fixed,) * 2, np.nan)

    return MultinomialLogitModel(
        coefnames=utility.coefnames + tuple(utility.fixed_coefs),
        coefs=np.concatenate([params, list(utility.fixed_coefs.values())]),
        vcov=vcov,
        init_ll=init_ll,
        final_ll=final_ll,
        nobs=prepared.nobs,
        n_fixed=utility.n_fixed,
        iterations=iterations,
        method=method if utility.n_free else "",
    )
