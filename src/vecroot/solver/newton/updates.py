"""
Jacobian update strategies applied between Newton iterations.

Every updater shares the signature::

    get_updated_matrix(jacobian_fn, x, delta_x, delta_y, matrix, y=None) -> matrix

where ``x`` is the new iterate, ``delta_x = x_new - x_old``,
``delta_y = F(x_new) - F(x_old)`` and ``y = F(x_new)`` when already known. Instances hold no per-solve state and can
be shared between concurrent solves.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import jax.numpy as jnp

from vecroot.core.errors import InvalidInputError, SingularMatrixError
from vecroot.core.math.linalg import Array, as_matrix, as_vector, outer
from vecroot.solver.newton.initialization import (
    JacobianEstimateInitialization,
    JacobianFunction,
    VectorFunction,
)

# Denominators below this make the updated inverse singular.
_TINY = 1e-300


def _validate(delta_x: Optional[Array], delta_y: Optional[Array], matrix: Optional[Array]):
    if delta_x is None:
        raise InvalidInputError("delta_x must not be None")
    if delta_y is None:
        raise InvalidInputError("delta_y must not be None")
    if matrix is None:
        raise InvalidInputError("matrix must not be None")
    delta_x = as_vector(delta_x, "delta_x")
    delta_y = as_vector(delta_y, "delta_y")
    matrix = as_matrix(matrix)
    if float(jnp.dot(delta_x, delta_x)) == 0.0:
        raise InvalidInputError("delta_x must be non-zero")
    return delta_x, delta_y, matrix


class MatrixUpdateFunction(ABC):
    """Strategy interface invoked by the iteration core after every step."""

    # Secant updates need a non-zero delta_y; the core keeps the matrix otherwise.
    uses_secant = True

    def bind(self, function: VectorFunction) -> "MatrixUpdateFunction":
        """Return an updater usable for a solve of ``function``."""
        return self

    @abstractmethod
    def get_updated_matrix(
        self,
        jacobian_fn: Optional[JacobianFunction],
        x: Optional[Array],
        delta_x: Optional[Array],
        delta_y: Optional[Array],
        matrix: Optional[Array],
        y: Optional[Array] = None,
    ) -> Array:
        """Return the Jacobian estimate for the new iterate ``x``."""


class BroydenMatrixUpdate(MatrixUpdateFunction):
    """Rank-1 secant update of the Jacobian.

    ``J_new = J + ((dy - J dx) outer dx) / (dx . dx)``

    The result satisfies ``J_new dx == dy`` and is the closest matrix to
    ``J`` in Frobenius norm that does.
    """

    def get_updated_matrix(self, jacobian_fn, x, delta_x, delta_y, matrix, y=None):
        delta_x, delta_y, matrix = _validate(delta_x, delta_y, matrix)
        if matrix.shape != (delta_y.shape[0], delta_x.shape[0]):
            raise InvalidInputError(
                f"Matrix shape {matrix.shape} incompatible with delta_y {delta_y.shape[0]} "
                f"and delta_x {delta_x.shape[0]}"
            )
        residual = delta_y - matrix @ delta_x
        return matrix + outer(residual, delta_x) / jnp.dot(delta_x, delta_x)


class ShermanMorrisonMatrixUpdate(MatrixUpdateFunction):
    """Broyden update applied directly to the inverse Jacobian ``H``.

    ``H_new = H + ((dx - H dy) outer (dx^T H)) / (dx^T H dy)``

    Skips the linear solve on the next iteration, but errors in ``H``
    accumulate faster when the Jacobian is poorly conditioned.
    """

    def get_updated_matrix(self, jacobian_fn, x, delta_x, delta_y, matrix, y=None):
        delta_x, delta_y, matrix = _validate(delta_x, delta_y, matrix)
        n = delta_x.shape[0]
        if matrix.shape != (n, n) or delta_y.shape[0] != n:
            raise InvalidInputError(
                f"Inverse update needs a {n}x{n} matrix, got {matrix.shape} and delta_y {delta_y.shape[0]}"
            )
        h_dy = matrix @ delta_y
        dx_h = delta_x @ matrix
        denominator = float(jnp.dot(delta_x, h_dy))
        if abs(denominator) < _TINY:
            raise SingularMatrixError("Sherman-Morrison update is degenerate: dx^T H dy == 0")
        return matrix + outer(delta_x - h_dy, dx_h) / denominator


class ExactJacobianUpdate(MatrixUpdateFunction):
    """Re-evaluate the Jacobian at the new point instead of updating it.

    Uses the exact Jacobian function when given, otherwise finite
    differences of the bound vector function.
    """

    uses_secant = False

    def __init__(
        self,
        function: Optional[VectorFunction] = None,
        initialization: Optional[JacobianEstimateInitialization] = None,
    ):
        self.function = function
        self.initialization = initialization or JacobianEstimateInitialization()

    def bind(self, function: VectorFunction) -> "ExactJacobianUpdate":
        return ExactJacobianUpdate(function, self.initialization)

    def get_updated_matrix(self, jacobian_fn, x, delta_x, delta_y, matrix, y=None):
        if x is None:
            raise InvalidInputError("x must not be None")
        if jacobian_fn is None and self.function is None:
            raise InvalidInputError("Exact update needs a Jacobian function or a bound vector function")
        return self.initialization.get_initialized_matrix(jacobian_fn, x, self.function, y)


_UPDATERS = {
    "broyden": BroydenMatrixUpdate,
    "sherman_morrison": ShermanMorrisonMatrixUpdate,
    "exact": ExactJacobianUpdate,
}


def get_update_function(name: str) -> MatrixUpdateFunction:
    """Return a new updater instance by name (``broyden``, ``sherman_morrison``, ``exact``)."""
    try:
        return _UPDATERS[name.lower()]()
    except KeyError as exc:
        raise InvalidInputError(
            f"Unknown Jacobian updater {name!r}; expected one of {sorted(_UPDATERS)}"
        ) from exc


__all__ = [
    "BroydenMatrixUpdate",
    "ExactJacobianUpdate",
    "MatrixUpdateFunction",
    "ShermanMorrisonMatrixUpdate",
    "get_update_function",
]
