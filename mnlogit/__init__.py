"""
mnlogit: Multinomial Logit Estimation

A Python library for estimating multinomial logit discrete choice models by
maximum likelihood, with exact derivatives from JAX.
"""

import jax

jax.config.update("jax_enable_x64", True)

from .data import PreparedData, check_perfect_prediction, prepare_data  # noqa: E402
from .errors import (  # noqa: E402
    ConvergenceError,
    DataValidationError,
    HessianError,
    MnlogitError,
    NonFiniteLikelihoodError,
    SingularHessianError,
    SpecificationError,
)
from .estimation import compute_vcov, multinomial_logit, optimize  # noqa: E402
from .likelihood import (  # noqa: E402
    Objective,
    log_likelihood,
    log_likelihood_contributions,
    make_log_likelihood,
    row_log_likelihood,
)
from .reporting import CollectingReporter, EstimationEvent, LoggingReporter  # noqa: E402
from .results import MultinomialLogitModel  # noqa: E402
from .simulate import simulate_choices, simulate_data  # noqa: E402
from .utility import UtilityFunctionSet  # noqa: E402

__all__ = [
    "CollectingReporter",
    "ConvergenceError",
    "DataValidationError",
    "EstimationEvent",
    "HessianError",
    "LoggingReporter",
    "MnlogitError",
    "MultinomialLogitModel",
    "NonFiniteLikelihoodError",
    "Objective",
    "PreparedData",
    "SingularHessianError",
    "SpecificationError",
    "UtilityFunctionSet",
    "check_perfect_prediction",
    "compute_vcov",
    "log_likelihood",
    "log_likelihood_contributions",
    "make_log_likelihood",
    "multinomial_logit",
    "optimize",
    "prepare_data",
    "row_log_likelihood",
    "simulate_choices",
    "simulate_data",
]
