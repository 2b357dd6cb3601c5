"""Tests for the initial Jacobian estimates."""

import jax.numpy as jnp
import numpy as np
import pytest

from vecroot.core.errors import InvalidInputError, SingularMatrixError
from vecroot.solver.newton.initialization import (
    FiniteDifferenceScheme,
    InverseJacobianEstimateInitialization,
    JacobianEstimateInitialization,
    autodiff_jacobian,
    finite_difference_jacobian,
)

X = jnp.array([1.0, 2.0])


def function(v):
    return jnp.array([v[0] ** 3 / 3.0, v[0] ** 2 * v[1] / 2.0 - v[1] ** 3 / 3.0])


def jacobian(v):
    return jnp.array([[v[0] * v[0], 0.0], [v[0] * v[1], v[0] ** 2 / 2.0 - v[1] * v[1]]])


def matrix_fn(v):
    return jnp.array([[v[0] * v[0], v[0] * v[1]], [v[0] - v[1], v[1] * v[1]]])


class TestJacobianEstimateInitialization:
    """Tests for the exact/finite-difference initializer."""

    def test_exact_function_returned_unchanged(self):
        m = JacobianEstimateInitialization().get_initialized_matrix(matrix_fn, X)
        np.testing.assert_allclose(np.asarray(m), np.asarray(matrix_fn(X)), atol=1e-9)

    def test_exact_initialization_is_idempotent(self):
        init = JacobianEstimateInitialization()
        first = init.get_initialized_matrix(matrix_fn, X)
        second = init.get_initialized_matrix(matrix_fn, X)
        assert np.array_equal(np.asarray(first), np.asarray(second))

    def test_missing_function_and_jacobian(self):
        with pytest.raises(InvalidInputError):
            JacobianEstimateInitialization().get_initialized_matrix(None, X)

    def test_missing_vector(self):
        with pytest.raises(InvalidInputError):
            JacobianEstimateInitialization().get_initialized_matrix(matrix_fn, None)

    def test_empty_vector(self):
        with pytest.raises(InvalidInputError):
            JacobianEstimateInitialization().get_initialized_matrix(matrix_fn, jnp.array([]))

    def test_raising_jacobian_is_invalid_input(self):
        def broken(v):
            raise ZeroDivisionError("boom")

        with pytest.raises(InvalidInputError, match="Jacobian evaluation failed"):
            JacobianEstimateInitialization().get_initialized_matrix(broken, X)

    def test_wrong_jacobian_shape(self):
        with pytest.raises(InvalidInputError, match="shape"):
            JacobianEstimateInitialization().get_initialized_matrix(lambda v: jnp.ones((2, 3)), X)

    @pytest.mark.parametrize("scheme", ["forward", "central", "backward"])
    def test_finite_difference_fallback(self, scheme):
        init = JacobianEstimateInitialization(scheme=scheme, step=1e-6)
        estimate = init.get_initialized_matrix(None, X, function)
        atol = 1e-7 if scheme == "central" else 1e-4
        np.testing.assert_allclose(np.asarray(estimate), np.asarray(jacobian(X)), atol=atol)

    def test_forward_difference_evaluation_count(self):
        calls = []

        def counted(v):
            calls.append(v)
            return function(v)

        finite_difference_jacobian(counted, X, FiniteDifferenceScheme.FORWARD)
        assert len(calls) == X.shape[0] + 1

    def test_known_residual_saves_an_evaluation(self):
        calls = []

        def counted(v):
            calls.append(v)
            return function(v)

        finite_difference_jacobian(counted, X, "forward", y=function(X))
        assert len(calls) == X.shape[0]

    def test_central_difference_evaluation_count(self):
        calls = []

        def counted(v):
            calls.append(v)
            return function(v)

        finite_difference_jacobian(counted, X, "central")
        assert len(calls) == 2 * X.shape[0]

    def test_non_positive_step(self):
        with pytest.raises(InvalidInputError):
            finite_difference_jacobian(function, X, step=0.0)

    def test_unknown_scheme(self):
        with pytest.raises(InvalidInputError):
            finite_difference_jacobian(function, X, scheme="sideways")

    def test_autodiff_matches_exact(self):
        np.testing.assert_allclose(
            np.asarray(autodiff_jacobian(function)(X)), np.asarray(jacobian(X)), atol=1e-12
        )


class TestInverseJacobianEstimateInitialization:
    """Tests for the inverse initializer."""

    def test_inverse_of_exact_jacobian(self):
        inverse = InverseJacobianEstimateInitialization().get_initialized_matrix(matrix_fn, X)
        np.testing.assert_allclose(
            np.asarray(inverse @ matrix_fn(X)), np.eye(2), atol=1e-10
        )

    def test_singular_jacobian(self):
        with pytest.raises(SingularMatrixError):
            InverseJacobianEstimateInitialization().get_initialized_matrix(
                lambda v: jnp.array([[1.0, 1.0], [1.0, 1.0]]), X
            )
