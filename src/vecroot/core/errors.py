"""Exception hierarchy shared by the linear algebra layer and the root finders."""
from __future__ import annotations

from typing import Any, Optional


class RootFindingError(Exception):
    """Base class for every failure raised by the root-finding engine."""

    def __init__(self, message: str, x: Any = None, result: Optional[Any] = None):
        super().__init__(message)
        self.x = x
        self.result = result


class InvalidInputError(RootFindingError, ValueError):
    """Raised when arguments handed to a public entry point are unusable."""


class FunctionEvaluationError(InvalidInputError):
    """Raised when the vector function itself fails at a point."""


class SingularJacobianError(RootFindingError):
    """Raised when the Jacobian estimate cannot be inverted."""


class SingularMatrixError(SingularJacobianError):
    """Raised by the decompositions when a matrix is numerically singular."""

    def __init__(self, message: str, condition: float = float("inf")):
        super().__init__(message)
        self.condition = condition


class ConvergenceError(RootFindingError):
    """Raised when iteration stops without reaching the tolerance."""


class DivergenceError(ConvergenceError):
    """Raised when step shrinking fails to find an acceptable point."""


class MaxIterationsExceededError(ConvergenceError):
    """Raised when the iteration budget is exhausted."""


__all__ = [
    "ConvergenceError",
    "DivergenceError",
    "FunctionEvaluationError",
    "InvalidInputError",
    "MaxIterationsExceededError",
    "RootFindingError",
    "SingularJacobianError",
    "SingularMatrixError",
]
