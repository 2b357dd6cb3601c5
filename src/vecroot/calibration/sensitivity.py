"""Sensitivities that reuse the Jacobian left behind by a calibration solve.

A calibration solves ``F(x, q) = model(x) - q = 0`` for curve parameters
``x`` given quotes ``q``. By the implicit function theorem

    dx/dq = -J^-1 dF/dq

with ``J = dF/dx`` at the solution. The root finder already holds an
estimate of ``J`` (or of ``J^-1``), so no bump-and-recalibrate is needed.
"""
from __future__ import annotations

from typing import Optional, Union

import jax.numpy as jnp

from vecroot.core.errors import InvalidInputError
from vecroot.core.math.linalg import (
    Array,
    ArrayLike,
    Decomposition,
    as_matrix,
    as_vector,
    get_decomposition,
)
from vecroot.solver.newton.results import RootFindingResult


def parameter_sensitivity(
    jacobian: ArrayLike,
    quote_jacobian: Optional[ArrayLike] = None,
    is_inverse: bool = False,
    decomposition: Union[str, Decomposition] = Decomposition.LU,
) -> Array:
    """Return ``dx/dq`` with shape ``(n_parameters, n_quotes)``.

    Args:
        jacobian: ``dF/dx`` at the solution, or its inverse if ``is_inverse``
        quote_jacobian: ``dF/dq``; defaults to ``-I`` (residual = model - quote)
        is_inverse: Whether ``jacobian`` already holds ``J^-1``
        decomposition: Decomposition used to apply ``J^-1``

    Raises:
        InvalidInputError: On shape mismatches
        SingularMatrixError: If ``jacobian`` cannot be inverted
    """
    if jacobian is None:
        raise InvalidInputError("jacobian must not be None")
    matrix = as_matrix(jacobian, "jacobian")
    n = matrix.shape[0]
    if matrix.shape[1] != n:
        raise InvalidInputError(f"jacobian must be square, got shape {matrix.shape}")

    if quote_jacobian is None:
        rhs = jnp.eye(n, dtype=jnp.float64)
    else:
        rhs = -as_matrix(quote_jacobian, "quote_jacobian")
        if rhs.shape[0] != n:
            raise InvalidInputError(
                f"quote_jacobian has {rhs.shape[0]} rows, expected {n}"
            )

    if is_inverse:
        return matrix @ rhs
    factorised = get_decomposition(decomposition).decompose(matrix)
    return jnp.stack([factorised.solve(rhs[:, j]) for j in range(rhs.shape[1])], axis=1)


def quote_sensitivity(
    result: RootFindingResult,
    quote_jacobian: Optional[ArrayLike] = None,
) -> Array:
    """``dx/dq`` from a converged :class:`RootFindingResult`."""
    if result is None or result.jacobian is None:
        raise InvalidInputError("result must carry a final Jacobian estimate")
    if not result.converged:
        raise InvalidInputError(f"Cannot compute sensitivities from a {result.status.value} solve")
    return parameter_sensitivity(result.jacobian, quote_jacobian, result.jacobian_is_inverse)


def bucketed_sensitivity(
    value_gradient: ArrayLike,
    result: RootFindingResult,
    quote_jacobian: Optional[ArrayLike] = None,
    bump: float = 1e-4,
) -> Array:
    """Change in a value per ``bump`` move in each calibration quote.

    ``value_gradient`` is ``dV/dx`` for the instrument being risked. With the
    default ``bump`` of one basis point this is the bucketed PV01/CS01 ladder.
    """
    gradient = as_vector(value_gradient, "value_gradient")
    dx_dq = quote_sensitivity(result, quote_jacobian)
    if gradient.shape[0] != dx_dq.shape[0]:
        raise InvalidInputError(
            f"value_gradient has length {gradient.shape[0]}, expected {dx_dq.shape[0]}"
        )
    return (gradient @ dx_dq) * bump


__all__ = ["bucketed_sensitivity", "parameter_sensitivity", "quote_sensitivity"]
