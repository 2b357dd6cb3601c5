"""Tests for vector/matrix primitives and linear solvers."""

import jax.numpy as jnp
import numpy as np
import pytest

from vecroot.core.errors import InvalidInputError, SingularMatrixError
from vecroot.core.math.linalg import (
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

A = jnp.array([[3.0, 4.0], [5.0, 6.0]])
B = jnp.array([1.0, 2.0])


class TestPrimitives:
    """Tests for conversions, norms and tolerance comparisons."""

    def test_as_vector_promotes_scalar(self):
        v = as_vector(2.5)
        assert v.shape == (1,)
        assert v.dtype == jnp.float64

    def test_as_vector_rejects_empty(self):
        with pytest.raises(InvalidInputError, match="empty"):
            as_vector([])

    def test_as_vector_rejects_none(self):
        with pytest.raises(InvalidInputError):
            as_vector(None)

    def test_as_matrix_rejects_vector(self):
        with pytest.raises(InvalidInputError, match="two-dimensional"):
            as_matrix([1.0, 2.0])

    def test_norms(self):
        v = jnp.array([3.0, -4.0])
        assert norm(v) == pytest.approx(5.0)
        assert norm(v, NormType.MAX_ABS) == pytest.approx(4.0)
        assert norm(v, "max_abs") == pytest.approx(4.0)

    def test_unknown_norm(self):
        with pytest.raises(InvalidInputError):
            norm(jnp.ones(2), "manhattan")

    def test_allclose_checks_shape(self):
        assert allclose([1.0, 2.0], [1.0, 2.0 + 1e-12])
        assert not allclose([1.0, 2.0], [1.0, 2.0, 3.0])
        assert not allclose([1.0], [1.1])


class TestLinearSolve:
    """Tests for LU and SV solves."""

    @pytest.mark.parametrize("decomposition", ["lu", "sv", Decomposition.LU, Decomposition.SV])
    def test_solves_two_by_two(self, decomposition):
        x = solve_linear_system(A, B, decomposition)
        assert allclose(x, [1.0, -0.5], atol=1e-12)
        assert allclose(A @ x, B, atol=1e-12)

    def test_matches_numpy(self):
        rng = np.random.default_rng(3)
        matrix = rng.normal(size=(5, 5)) + 5.0 * np.eye(5)
        rhs = rng.normal(size=5)
        x = solve_linear_system(matrix, rhs)
        np.testing.assert_allclose(np.asarray(x), np.linalg.solve(matrix, rhs), atol=1e-10)

    @pytest.mark.parametrize("decomposer", [LUDecomposition(), SVDecomposition()])
    def test_zero_row_is_singular(self, decomposer):
        singular = jnp.array([[1.0, 2.0], [0.0, 0.0]])
        with pytest.raises(SingularMatrixError):
            decomposer.decompose(singular)

    def test_rank_deficient_is_singular(self):
        singular = jnp.array([[1.0, 2.0], [2.0, 4.0]])
        with pytest.raises(SingularMatrixError):
            solve_linear_system(singular, B)

    def test_nan_matrix_is_singular(self):
        with pytest.raises(SingularMatrixError):
            solve_linear_system(jnp.array([[jnp.nan, 0.0], [0.0, 1.0]]), B)

    def test_truncated_svd_returns_minimum_norm_solution(self):
        singular = jnp.array([[1.0, 0.0], [0.0, 0.0]])
        result = SVDecomposition(truncate=True).decompose(singular)
        x = result.solve(jnp.array([2.0, 0.0]))
        assert allclose(x, [2.0, 0.0], atol=1e-12)

    def test_rhs_length_mismatch(self):
        with pytest.raises(InvalidInputError):
            solve_linear_system(A, jnp.ones(3))

    def test_non_square(self):
        with pytest.raises(InvalidInputError, match="square"):
            solve_linear_system(jnp.ones((2, 3)), B)

    def test_inverse(self):
        inverse = LUDecomposition().decompose(A).inverse()
        assert allclose(inverse @ A, jnp.eye(2), atol=1e-12)

    def test_condition_number_reported(self):
        result = SVDecomposition().decompose(jnp.diag(jnp.array([10.0, 0.1])))
        assert result.condition == pytest.approx(100.0)

    def test_invalid_singular_tolerance(self):
        with pytest.raises(InvalidInputError):
            LUDecomposition(singular_tol=0.0)
