"""
Dense vector and matrix primitives used by the root finders.

This module provides:
- Conversion helpers producing float64 JAX arrays with shape validation
- Euclidean and max-abs norms, outer products and tolerance comparisons
- LU and singular-value decompositions with explicit singularity detection

All decompositions raise :class:`~vecroot.core.errors.SingularMatrixError`
rather than returning NaN or infinite solutions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

import jax
import jax.numpy as jnp
import jax.scipy.linalg as jsl
import numpy as np

from vecroot.core.errors import InvalidInputError, SingularMatrixError

jax.config.update("jax_enable_x64", True)

Array = jnp.ndarray
ArrayLike = Union[Array, np.ndarray, Sequence[float], Sequence[Sequence[float]]]

DEFAULT_SINGULAR_TOL = 1e-12


class NormType(Enum):
    """Vector norm used for residual and step tests."""

    EUCLIDEAN = "euclidean"
    MAX_ABS = "max_abs"


class Decomposition(Enum):
    """Matrix decomposition used to solve the Newton system."""

    LU = "lu"
    SV = "sv"


def as_vector(values: ArrayLike, name: str = "vector") -> Array:
    """Convert ``values`` to a non-empty 1D float64 array."""
    if values is None:
        raise InvalidInputError(f"{name} must not be None")
    arr = jnp.asarray(values, dtype=jnp.float64)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    if arr.ndim != 1:
        raise InvalidInputError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if arr.shape[0] == 0:
        raise InvalidInputError(f"{name} must not be empty")
    return arr


def as_matrix(values: ArrayLike, name: str = "matrix") -> Array:
    """Convert ``values`` to a 2D float64 array."""
    if values is None:
        raise InvalidInputError(f"{name} must not be None")
    arr = jnp.asarray(values, dtype=jnp.float64)
    if arr.ndim != 2:
        raise InvalidInputError(f"{name} must be two-dimensional, got shape {arr.shape}")
    if arr.size == 0:
        raise InvalidInputError(f"{name} must not be empty")
    return arr


def as_norm_type(norm: Union[str, NormType]) -> NormType:
    if isinstance(norm, NormType):
        return norm
    try:
        return NormType(str(norm).lower())
    except ValueError as exc:
        raise InvalidInputError(f"Unknown norm {norm!r}") from exc


def as_decomposition(decomposition: Union[str, Decomposition]) -> Decomposition:
    if isinstance(decomposition, Decomposition):
        return decomposition
    try:
        return Decomposition(str(decomposition).lower())
    except ValueError as exc:
        raise InvalidInputError(f"Unknown decomposition {decomposition!r}") from exc


def norm(vector: Array, kind: Union[str, NormType] = NormType.EUCLIDEAN) -> float:
    """Return the norm of ``vector`` as a Python float."""
    kind = as_norm_type(kind)
    if kind is NormType.MAX_ABS:
        return float(jnp.max(jnp.abs(vector)))
    return float(jnp.linalg.norm(vector))


def outer(a: Array, b: Array) -> Array:
    return jnp.outer(a, b)


def allclose(a: ArrayLike, b: ArrayLike, atol: float = 1e-9, rtol: float = 0.0) -> bool:
    """Elementwise equality within tolerance; shapes must agree."""
    a = jnp.asarray(a)
    b = jnp.asarray(b)
    if a.shape != b.shape:
        return False
    return bool(jnp.allclose(a, b, atol=atol, rtol=rtol))


def is_finite(values: Array) -> bool:
    return bool(np.all(np.isfinite(np.asarray(values))))


def check_square(matrix: Array, name: str = "matrix") -> None:
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise InvalidInputError(f"{name} must be square, got shape {matrix.shape}")


@dataclass(frozen=True)
class DecompositionResult:
    """Factorised matrix that can solve ``A x = b`` for many right-hand sides."""

    kind: Decomposition
    factors: tuple
    size: int
    condition: float

    def solve(self, rhs: ArrayLike) -> Array:
        b = as_vector(rhs, "right-hand side")
        if b.shape[0] != self.size:
            raise InvalidInputError(
                f"Right-hand side has length {b.shape[0]}, expected {self.size}"
            )
        if self.kind is Decomposition.LU:
            x = jsl.lu_solve(self.factors, b)
        else:
            u, inv_s, vt = self.factors
            x = vt.T @ (inv_s * (u.T @ b))
        if not is_finite(x):
            raise SingularMatrixError("Linear solve produced non-finite values", self.condition)
        return x

    def inverse(self) -> Array:
        """Return the matrix inverse (pseudo-inverse for truncated SVD)."""
        if self.kind is Decomposition.LU:
            return jsl.lu_solve(self.factors, jnp.eye(self.size, dtype=jnp.float64))
        u, inv_s, vt = self.factors
        return (vt.T * inv_s) @ u.T


class LUDecomposition:
    """LU factorisation with partial pivoting.

    A matrix is reported singular when its smallest pivot is below
    ``singular_tol`` times the largest pivot, or when any entry is not finite.
    """

    kind = Decomposition.LU

    def __init__(self, singular_tol: float = DEFAULT_SINGULAR_TOL):
        if singular_tol <= 0:
            raise InvalidInputError("singular_tol must be positive")
        self.singular_tol = float(singular_tol)

    def decompose(self, matrix: ArrayLike) -> DecompositionResult:
        a = as_matrix(matrix)
        check_square(a)
        if not is_finite(a):
            raise SingularMatrixError("Matrix contains non-finite entries")
        lu, piv = jsl.lu_factor(a)
        pivots = np.abs(np.asarray(jnp.diag(lu)))
        largest = float(pivots.max())
        smallest = float(pivots.min())
        if largest == 0.0 or smallest <= self.singular_tol * largest or not np.isfinite(smallest):
            condition = float("inf") if smallest == 0.0 else largest / smallest
            raise SingularMatrixError(
                f"Matrix is singular: pivot ratio {smallest / largest if largest else 0.0:.3e}",
                condition,
            )
        return DecompositionResult(Decomposition.LU, (lu, piv), a.shape[0], largest / smallest)


class SVDecomposition:
    """Singular value decomposition.

    With ``truncate=False`` a reciprocal condition number below
    ``singular_tol`` is reported as singular. With ``truncate=True`` the
    small singular values are dropped and the pseudo-inverse solution is
    returned, which tolerates rank deficiency.
    """

    kind = Decomposition.SV

    def __init__(self, singular_tol: float = DEFAULT_SINGULAR_TOL, truncate: bool = False):
        if singular_tol <= 0:
            raise InvalidInputError("singular_tol must be positive")
        self.singular_tol = float(singular_tol)
        self.truncate = truncate

    def decompose(self, matrix: ArrayLike) -> DecompositionResult:
        a = as_matrix(matrix)
        check_square(a)
        if not is_finite(a):
            raise SingularMatrixError("Matrix contains non-finite entries")
        u, s, vt = jnp.linalg.svd(a)
        s_max = float(s[0])
        s_min = float(s[-1])
        if s_max == 0.0:
            raise SingularMatrixError("Matrix is identically zero")
        keep = s > self.singular_tol * s_max
        if not self.truncate and not bool(jnp.all(keep)):
            raise SingularMatrixError(
                f"Matrix is singular: reciprocal condition {s_min / s_max:.3e}",
                float("inf") if s_min == 0.0 else s_max / s_min,
            )
        inv_s = jnp.where(keep, 1.0 / jnp.where(keep, s, 1.0), 0.0)
        condition = float("inf") if s_min == 0.0 else s_max / s_min
        return DecompositionResult(Decomposition.SV, (u, inv_s, vt), a.shape[0], condition)


def get_decomposition(
    decomposition: Union[str, Decomposition] = Decomposition.LU,
    singular_tol: float = DEFAULT_SINGULAR_TOL,
):
    """Return a decomposition instance for ``decomposition``."""
    kind = as_decomposition(decomposition)
    if kind is Decomposition.LU:
        return LUDecomposition(singular_tol)
    return SVDecomposition(singular_tol)


def solve_linear_system(
    matrix: ArrayLike,
    rhs: ArrayLike,
    decomposition: Union[str, Decomposition] = Decomposition.LU,
    singular_tol: float = DEFAULT_SINGULAR_TOL,
) -> Array:
    """Solve ``matrix @ x = rhs``.

    Raises:
        InvalidInputError: On shape mismatch between ``matrix`` and ``rhs``
        SingularMatrixError: If ``matrix`` is numerically singular

    Example:
        >>> x = solve_linear_system([[3.0, 4.0], [5.0, 6.0]], [1.0, 2.0])
        >>> allclose(x, [1.0, -0.5])
        True
    """
    return get_decomposition(decomposition, singular_tol).decompose(matrix).solve(rhs)


__all__ = [
    "Array",
    "ArrayLike",
    "DEFAULT_SINGULAR_TOL",
    "Decomposition",
    "DecompositionResult",
    "LUDecomposition",
    "NormType",
    "SVDecomposition",
    "allclose",
    "as_decomposition",
    "as_matrix",
    "as_norm_type",
    "as_vector",
    "check_square",
    "get_decomposition",
    "is_finite",
    "norm",
    "outer",
    "solve_linear_system",
]
