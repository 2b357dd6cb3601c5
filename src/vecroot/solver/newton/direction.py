"""Newton step directions computed from a Jacobian estimate or its inverse."""
from __future__ import annotations

from typing import Union

import jax.numpy as jnp

from vecroot.core.errors import InvalidInputError, SingularMatrixError
from vecroot.core.math.linalg import (
    DEFAULT_SINGULAR_TOL,
    Array,
    Decomposition,
    get_decomposition,
    is_finite,
)


class JacobianDirectionFunction:
    """Solve ``J dx = -y`` with the configured decomposition."""

    def __init__(
        self,
        decomposition: Union[str, Decomposition] = Decomposition.LU,
        singular_tol: float = DEFAULT_SINGULAR_TOL,
    ):
        self.decomposition = get_decomposition(decomposition, singular_tol)

    def get_direction(self, matrix: Array, y: Array) -> Array:
        if matrix.shape[1] != y.shape[0]:
            raise InvalidInputError(
                f"Jacobian shape {matrix.shape} does not match residual length {y.shape[0]}"
            )
        return self.decomposition.decompose(matrix).solve(-y)


class InverseJacobianDirectionFunction:
    """Multiply ``-H y`` where ``H`` already approximates the inverse Jacobian."""

    def get_direction(self, matrix: Array, y: Array) -> Array:
        if matrix.shape[1] != y.shape[0]:
            raise InvalidInputError(
                f"Inverse Jacobian shape {matrix.shape} does not match residual length {y.shape[0]}"
            )
        direction = -(matrix @ y)
        if not is_finite(direction):
            raise SingularMatrixError("Inverse Jacobian estimate produced non-finite step")
        return jnp.asarray(direction)


__all__ = ["InverseJacobianDirectionFunction", "JacobianDirectionFunction"]
