"""Exception types raised by mnlogit."""

from __future__ import annotations


class MnlogitError(Exception):
    """Base class for all mnlogit errors."""


class SpecificationError(MnlogitError, ValueError):
    """The utility function set is inconsistent with itself or with the data."""


class DataValidationError(MnlogitError, ValueError):
    """The data cannot be used for estimation as given."""


class NonFiniteLikelihoodError(MnlogitError, ValueError):
    """The log-likelihood is not finite at the starting values."""


class HessianError(MnlogitError, ArithmeticError):
    """The Hessian could not be used to compute a covariance matrix."""


class ConvergenceError(MnlogitError, RuntimeError):
    """
    Raised when the optimizer exhausts its budget without converging.

    Attributes:
        iterations (int): Number of iterations performed.
        objective_value (float): Negated log-likelihood at the last iterate.
    """

    def __init__(
        self, iterations: int, objective_value: float, message: str = ""
    ) -> None:
        self.iterations = iterations
        self.objective_value = objective_value
        self.message = message
        super().__init__(
            f"Optimization failed to converge after {iterations} iterations "
            f"(objective {objective_value:.6f}): {message}"
        )


class SingularHessianError(HessianError):
    """The Hessian is numerically singular and cannot be inverted."""
