"""Linear algebra primitives for the root finders."""

from .linalg import (
    Decomposition,
    LUDecomposition,
    NormType,
    SVDecomposition,
    allclose,
    as_matrix,
    as_vector,
    norm,
    solve_linear_system,
)

__all__ = [
    "Decomposition",
    "LUDecomposition",
    "NormType",
    "SVDecomposition",
    "allclose",
    "as_matrix",
    "as_vector",
    "norm",
    "solve_linear_system",
]
