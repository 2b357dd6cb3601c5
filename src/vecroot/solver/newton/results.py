"""Result container returned by the Newton vector root finders."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import jax.numpy as jnp

from vecroot.core.errors import (
    ConvergenceError,
    DivergenceError,
    InvalidInputError,
    MaxIterationsExceededError,
    RootFindingError,
    SingularJacobianError,
    SingularMatrixError,
)

Array = jnp.ndarray


class RootFindingStatus(Enum):
    """Terminal state of a single solve."""

    CONVERGED = "converged"
    DIVERGED = "diverged"
    MAX_ITERATIONS_EXCEEDED = "max_iterations_exceeded"
    SINGULAR_JACOBIAN = "singular_jacobian"


_STATUS_ERRORS = {
    RootFindingStatus.DIVERGED: DivergenceError,
    RootFindingStatus.MAX_ITERATIONS_EXCEEDED: MaxIterationsExceededError,
    RootFindingStatus.SINGULAR_JACOBIAN: SingularJacobianError,
}


@dataclass(frozen=True)
class RootFindingResult:
    """Outcome of a solve.

    ``x`` is the solution when ``status`` is ``CONVERGED``. For
    ``MAX_ITERATIONS_EXCEEDED`` it is the iterate with the lowest residual
    norm seen during the run, otherwise the last valid iterate.

    ``jacobian`` holds the Jacobian estimate at the returned ``x``, or its
    inverse for the Sherman-Morrison finder (flagged by ``jacobian_is_inverse``). Callers can
    reuse it as a cheap derivative in sensitivity calculations.
    """

    status: RootFindingStatus
    x: Array
    residual: Array
    residual_norm: float
    iterations: int
    jacobian: Optional[Array] = None
    jacobian_is_inverse: bool = False
    function_evaluations: int = 0
    jacobian_evaluations: int = 0
    message: str = ""

    @property
    def converged(self) -> bool:
        return self.status is RootFindingStatus.CONVERGED

    def unwrap(self) -> Array:
        """Return ``x`` or raise the error matching the failure status."""

        if self.converged:
            return self.x
        error_cls = _STATUS_ERRORS[self.status]
        message = self.message or f"Root finding ended in state {self.status.value}"
        raise error_cls(message, x=self.x, result=self)


__all__ = [
    "ConvergenceError",
    "DivergenceError",
    "InvalidInputError",
    "MaxIterationsExceededError",
    "RootFindingError",
    "RootFindingResult",
    "RootFindingStatus",
    "SingularJacobianError",
    "SingularMatrixError",
]
