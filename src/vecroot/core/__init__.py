"""Core numerical infrastructure: errors, linear algebra and settings schemas."""

from . import errors, math
from .errors import (
    ConvergenceError,
    DivergenceError,
    FunctionEvaluationError,
    InvalidInputError,
    MaxIterationsExceededError,
    RootFindingError,
    SingularJacobianError,
    SingularMatrixError,
)

__all__ = [
    "ConvergenceError",
    "DivergenceError",
    "FunctionEvaluationError",
    "InvalidInputError",
    "MaxIterationsExceededError",
    "RootFindingError",
    "SingularJacobianError",
    "SingularMatrixError",
    "errors",
    "math",
]
