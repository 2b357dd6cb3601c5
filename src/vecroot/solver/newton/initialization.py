"""
Initial Jacobian estimates for the Newton iteration.

The estimate is taken from a caller-supplied exact Jacobian when one is
available, otherwise it is approximated by bump-and-revalue finite
differences:

- Forward:  (F(x + h e_i) - F(x)) / h           n + 1 evaluations, O(h)
- Backward: (F(x) - F(x - h e_i)) / h           n + 1 evaluations, O(h)
- Central:  (F(x + h e_i) - F(x - h e_i)) / 2h  2n evaluations, O(h^2)

The bump for coordinate ``i`` is relative: ``h_i = step * max(|x_i|, 1)``.
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Union

import jax
import jax.numpy as jnp

from vecroot.core.errors import FunctionEvaluationError, InvalidInputError, SingularMatrixError
from vecroot.core.math.linalg import (
    DEFAULT_SINGULAR_TOL,
    Array,
    Decomposition,
    as_vector,
    get_decomposition,
)

VectorFunction = Callable[[Array], Array]
JacobianFunction = Callable[[Array], Array]

DEFAULT_FD_STEP = 1e-6


class FiniteDifferenceScheme(Enum):
    """Finite difference scheme."""

    FORWARD = "forward"
    CENTRAL = "central"
    BACKWARD = "backward"


def evaluate_function(function: VectorFunction, x: Array, expected_length: Optional[int] = None) -> Array:
    """Evaluate ``function`` at ``x`` and validate the returned vector."""
    try:
        raw = function(x)
    except Exception as exc:
        raise FunctionEvaluationError(f"Function evaluation failed at x={x}: {exc}") from exc
    y = as_vector(raw, "function value")
    if expected_length is not None and y.shape[0] != expected_length:
        raise InvalidInputError(
            f"Function returned a vector of length {y.shape[0]}, expected {expected_length}"
        )
    return y


def evaluate_jacobian(jacobian_fn: JacobianFunction, x: Array, rows: Optional[int] = None) -> Array:
    """Evaluate an exact Jacobian function and validate its shape."""
    try:
        raw = jacobian_fn(x)
    except Exception as exc:
        raise InvalidInputError(f"Jacobian evaluation failed at x={x}: {exc}") from exc
    if raw is None:
        raise InvalidInputError("Jacobian function returned None")
    matrix = jnp.asarray(raw, dtype=jnp.float64)
    if matrix.ndim != 2:
        raise InvalidInputError(f"Jacobian must be two-dimensional, got shape {matrix.shape}")
    expected = (rows if rows is not None else matrix.shape[0], x.shape[0])
    if matrix.shape != expected:
        raise InvalidInputError(f"Jacobian has shape {matrix.shape}, expected {expected}")
    return matrix


def finite_difference_jacobian(
    function: VectorFunction,
    x: Array,
    scheme: Union[str, FiniteDifferenceScheme] = FiniteDifferenceScheme.FORWARD,
    step: float = DEFAULT_FD_STEP,
    y: Optional[Array] = None,
) -> Array:
    """Approximate the Jacobian of ``function`` at ``x`` column by column.

    Args:
        function: Vector function to differentiate
        x: Point of evaluation
        scheme: Finite difference scheme
        step: Relative bump size
        y: ``function(x)`` if already known, saving one evaluation

    Returns:
        Matrix of shape ``(len(function(x)), len(x))``

    Example:
        >>> f = lambda v: jnp.array([v[0] ** 2, v[0] * v[1]])
        >>> jac = finite_difference_jacobian(f, jnp.array([1.0, 2.0]), scheme="central")
    """
    if function is None:
        raise InvalidInputError("Function must not be None")
    if step <= 0:
        raise InvalidInputError("Finite difference step must be positive")
    if not isinstance(scheme, FiniteDifferenceScheme):
        try:
            scheme = FiniteDifferenceScheme(str(scheme).lower())
        except ValueError as exc:
            raise InvalidInputError(f"Unknown finite difference scheme {scheme!r}") from exc

    x = as_vector(x, "x")
    if y is None and scheme is not FiniteDifferenceScheme.CENTRAL:
        y = evaluate_function(function, x)
    rows = y.shape[0] if y is not None else None

    columns = []
    for i in range(x.shape[0]):
        h = step * max(abs(float(x[i])), 1.0)
        if scheme is FiniteDifferenceScheme.CENTRAL:
            up = evaluate_function(function, x.at[i].add(h), rows)
            down = evaluate_function(function, x.at[i].add(-h), up.shape[0])
            rows = up.shape[0]
            column = (up - down) / (2.0 * h)
        elif scheme is FiniteDifferenceScheme.FORWARD:
            column = (evaluate_function(function, x.at[i].add(h), rows) - y) / h
        else:
            column = (y - evaluate_function(function, x.at[i].add(-h), rows)) / h
        columns.append(column)
    return jnp.stack(columns, axis=1)


def autodiff_jacobian(function: VectorFunction) -> JacobianFunction:
    """Return a forward-mode JAX Jacobian of a traceable ``function``."""
    if function is None:
        raise InvalidInputError("Function must not be None")
    return jax.jacfwd(function)


class JacobianEstimateInitialization:
    """Initial Jacobian from the exact function or finite differences."""

    def __init__(
        self,
        scheme: Union[str, FiniteDifferenceScheme] = FiniteDifferenceScheme.FORWARD,
        step: float = DEFAULT_FD_STEP,
    ):
        self.scheme = FiniteDifferenceScheme(scheme) if isinstance(scheme, str) else scheme
        self.step = float(step)

    def get_initialized_matrix(
        self,
        jacobian_fn: Optional[JacobianFunction],
        x: Array,
        function: Optional[VectorFunction] = None,
        y: Optional[Array] = None,
    ) -> Array:
        x = as_vector(x, "x")
        if jacobian_fn is not None:
            return evaluate_jacobian(jacobian_fn, x, None if y is None else y.shape[0])
        if function is None:
            raise InvalidInputError("Either a Jacobian function or the vector function is required")
        return finite_difference_jacobian(function, x, self.scheme, self.step, y)

    def evaluations(self, dimension: int, exact: bool) -> int:
        """Number of function (or Jacobian) calls one initialisation costs when ``F(x)`` is known."""
        if exact:
            return 1
        if self.scheme is FiniteDifferenceScheme.CENTRAL:
            return 2 * dimension
        return dimension


class InverseJacobianEstimateInitialization(JacobianEstimateInitialization):
    """Inverse of the initial Jacobian, for finders iterating on ``J^-1``."""

    def __init__(
        self,
        scheme: Union[str, FiniteDifferenceScheme] = FiniteDifferenceScheme.FORWARD,
        step: float = DEFAULT_FD_STEP,
        decomposition: Union[str, Decomposition] = Decomposition.LU,
        singular_tol: float = DEFAULT_SINGULAR_TOL,
    ):
        super().__init__(scheme, step)
        self.decomposition = get_decomposition(decomposition, singular_tol)

    def get_initialized_matrix(
        self,
        jacobian_fn: Optional[JacobianFunction],
        x: Array,
        function: Optional[VectorFunction] = None,
        y: Optional[Array] = None,
    ) -> Array:
        matrix = super().get_initialized_matrix(jacobian_fn, x, function, y)
        if matrix.shape[0] != matrix.shape[1]:
            raise SingularMatrixError(f"Cannot invert non-square Jacobian of shape {matrix.shape}")
        return self.decomposition.decompose(matrix).inverse()


__all__ = [
    "DEFAULT_FD_STEP",
    "FiniteDifferenceScheme",
    "InverseJacobianEstimateInitialization",
    "JacobianEstimateInitialization",
    "JacobianFunction",
    "VectorFunction",
    "autodiff_jacobian",
    "evaluate_function",
    "evaluate_jacobian",
    "finite_difference_jacobian",
]
