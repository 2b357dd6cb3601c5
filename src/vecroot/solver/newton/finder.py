"""
Newton-type root finders for systems of non-linear equations F(x) = 0.

Each iteration:

1. Tests the residual ``F(x)`` against the absolute tolerance
2. Solves ``J dx = -F(x)`` for the Newton direction
3. Steps to ``x + dx``, halving the step when the new point is unusable
4. Updates ``J`` with the configured strategy, or re-evaluates it every
   ``jacobian_refresh_interval`` iterations

Typical use is curve calibration, where ``F`` returns model value minus
market quote for each calibration instrument and ``x`` holds the curve
node parameters.

Example:
    >>> import jax.numpy as jnp
    >>> f = lambda v: jnp.array([v[0] ** 2 - 2.0, v[1] - 3.0])
    >>> jac = lambda v: jnp.array([[2.0 * v[0], 0.0], [0.0, 1.0]])
    >>> result = BroydenVectorRootFinder().solve(f, jnp.array([1.0, 1.0]), jac)
    >>> result.converged
    True
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import jax.numpy as jnp

from vecroot.core.config.schemas import SolverSettings
from vecroot.core.errors import FunctionEvaluationError, InvalidInputError, SingularJacobianError
from vecroot.core.math.linalg import (
    DEFAULT_SINGULAR_TOL,
    Array,
    ArrayLike,
    Decomposition,
    NormType,
    as_norm_type,
    as_vector,
    is_finite,
    norm,
)
from vecroot.solver.newton.direction import (
    InverseJacobianDirectionFunction,
    JacobianDirectionFunction,
)
from vecroot.solver.newton.initialization import (
    InverseJacobianEstimateInitialization,
    JacobianEstimateInitialization,
    JacobianFunction,
    VectorFunction,
    evaluate_function,
)
from vecroot.solver.newton.results import RootFindingResult, RootFindingStatus
from vecroot.solver.newton.updates import (
    BroydenMatrixUpdate,
    ExactJacobianUpdate,
    MatrixUpdateFunction,
    ShermanMorrisonMatrixUpdate,
)

logger = logging.getLogger(__name__)


@dataclass
class NewtonState:
    """Mutable state owned by a single solve."""

    x: Array
    y: Array
    matrix: Array
    residual_norm: float
    best_x: Array
    best_y: Array
    best_norm: float
    best_matrix: Optional[Array] = None
    iteration: int = 0
    function_evaluations: int = 1
    jacobian_evaluations: int = 0

    def record_best(self) -> None:
        if self.residual_norm < self.best_norm:
            self.best_x = self.x
            self.best_y = self.y
            self.best_norm = self.residual_norm
            self.best_matrix = self.matrix


class NewtonVectorRootFinder:
    """Base Newton iteration with pluggable Jacobian strategies.

    Args:
        absolute_tolerance: Residual norm at or below which the solve converges
        max_iterations: Maximum number of Newton steps
        norm: Residual norm, ``"euclidean"`` or ``"max_abs"``
        decomposition: ``"lu"`` or ``"sv"`` for the Newton linear system
        singular_tolerance: Relative pivot/singular value floor for singularity
        initialization: Builds the first Jacobian estimate
        update: Jacobian update strategy applied after each step
        direction: Computes the Newton step from the estimate and residual
        jacobian_refresh_interval: Re-initialise the Jacobian every k iterations
        line_search: Halve the step while the residual norm does not decrease
        max_backtracks: Maximum number of halvings per iteration
        min_step_scale: Smallest fraction of the full step that may be taken

    Failures during iteration are returned as :class:`RootFindingResult`
    values. Invalid arguments raise :class:`InvalidInputError` immediately.
    """

    def __init__(
        self,
        absolute_tolerance: float = 1e-9,
        max_iterations: int = 100,
        norm: Union[str, NormType] = NormType.EUCLIDEAN,
        decomposition: Union[str, Decomposition] = Decomposition.LU,
        singular_tolerance: float = DEFAULT_SINGULAR_TOL,
        initialization: Optional[JacobianEstimateInitialization] = None,
        update: Optional[MatrixUpdateFunction] = None,
        direction=None,
        jacobian_refresh_interval: Optional[int] = None,
        line_search: bool = False,
        max_backtracks: int = 20,
        min_step_scale: float = 1e-8,
    ):
        if not absolute_tolerance > 0:
            raise InvalidInputError(f"absolute_tolerance must be positive, got {absolute_tolerance}")
        if int(max_iterations) < 1:
            raise InvalidInputError(f"max_iterations must be at least 1, got {max_iterations}")
        if jacobian_refresh_interval is not None and int(jacobian_refresh_interval) < 1:
            raise InvalidInputError(
                f"jacobian_refresh_interval must be at least 1, got {jacobian_refresh_interval}"
            )
        if int(max_backtracks) < 0:
            raise InvalidInputError(f"max_backtracks must be non-negative, got {max_backtracks}")
        if not 0.0 < min_step_scale <= 1.0:
            raise InvalidInputError(f"min_step_scale must lie in (0, 1], got {min_step_scale}")

        self.absolute_tolerance = float(absolute_tolerance)
        self.max_iterations = int(max_iterations)
        self.norm = as_norm_type(norm)
        self.initialization = initialization or JacobianEstimateInitialization()
        self.update = update or BroydenMatrixUpdate()
        self.direction = direction or JacobianDirectionFunction(decomposition, singular_tolerance)
        self.jacobian_is_inverse = isinstance(self.direction, InverseJacobianDirectionFunction)
        self.jacobian_refresh_interval = (
            None if jacobian_refresh_interval is None else int(jacobian_refresh_interval)
        )
        self.line_search = bool(line_search)
        self.max_backtracks = int(max_backtracks)
        self.min_step_scale = float(min_step_scale)

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------
    def _is_feasible(self, x: Array) -> bool:
        """Whether the iteration may evaluate ``F`` at ``x``."""
        return True

    def _validate_start(self, x0: Array) -> None:
        """Reject starting points the iteration cannot use."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def solve(
        self,
        function: VectorFunction,
        x0: ArrayLike,
        jacobian_fn: Optional[JacobianFunction] = None,
    ) -> RootFindingResult:
        """Find ``x`` with ``function(x) == 0`` starting from ``x0``.

        Args:
            function: Vector function mapping ``R^n`` to ``R^n``
            x0: Starting point
            jacobian_fn: Exact Jacobian of ``function``; finite differences
                are used when omitted

        Returns:
            Result tagged with its terminal :class:`RootFindingStatus`

        Raises:
            InvalidInputError: If the inputs are unusable or ``function``
                returns a vector whose length differs from ``x0``
        """
        if function is None or not callable(function):
            raise InvalidInputError("function must be callable")
        if jacobian_fn is not None and not callable(jacobian_fn):
            raise InvalidInputError("jacobian_fn must be callable")
        x = as_vector(x0, "x0")
        self._validate_start(x)
        n = x.shape[0]
        update = self.update.bind(function)

        y = evaluate_function(function, x, n)
        residual_norm = norm(y, self.norm)
        try:
            matrix = self._initial_matrix(function, jacobian_fn, x, y)
        except SingularJacobianError as exc:
            logger.warning("Initial Jacobian is singular at x=%s: %s", x, exc)
            state = NewtonState(x, y, None, residual_norm, x, y, residual_norm)
            return self._result(state, RootFindingStatus.SINGULAR_JACOBIAN, f"Initial Jacobian is singular: {exc}")

        state = NewtonState(x, y, matrix, residual_norm, x, y, residual_norm, best_matrix=matrix)
        self._count_jacobian(state, jacobian_fn, n)

        while True:
            state.record_best()
            if state.residual_norm <= self.absolute_tolerance:
                logger.info(
                    "Converged after %d iterations, |F(x)|=%.3e", state.iteration, state.residual_norm
                )
                return self._result(state, RootFindingStatus.CONVERGED)
            if state.iteration >= self.max_iterations:
                logger.warning(
                    "No convergence after %d iterations, best |F(x)|=%.3e",
                    state.iteration,
                    state.best_norm,
                )
                return self._result(
                    state,
                    RootFindingStatus.MAX_ITERATIONS_EXCEEDED,
                    f"Failed to converge after {state.iteration} iterations; "
                    f"best residual norm {state.best_norm:.6e}",
                )

            try:
                delta_x = self.direction.get_direction(state.matrix, state.y)
            except SingularJacobianError as exc:
                logger.warning("Singular Jacobian at iteration %d: %s", state.iteration, exc)
                return self._result(
                    state,
                    RootFindingStatus.SINGULAR_JACOBIAN,
                    f"Jacobian estimate is singular at iteration {state.iteration}: {exc}",
                )

            step = self._take_step(function, state, delta_x)
            if step is None:
                logger.warning("Step control failed at iteration %d", state.iteration)
                return self._result(
                    state,
                    RootFindingStatus.DIVERGED,
                    f"Could not find an acceptable step at iteration {state.iteration}",
                )
            x_new, y_new, delta_x = step
            state.iteration += 1

            try:
                matrix = self._next_matrix(function, jacobian_fn, update, state, x_new, y_new, delta_x)
            except SingularJacobianError as exc:
                state.x, state.y, state.residual_norm = x_new, y_new, norm(y_new, self.norm)
                state.record_best()
                logger.warning("Jacobian update failed at iteration %d: %s", state.iteration, exc)
                return self._result(
                    state,
                    RootFindingStatus.SINGULAR_JACOBIAN,
                    f"Jacobian update is singular at iteration {state.iteration}: {exc}",
                )

            state.x, state.y, state.matrix = x_new, y_new, matrix
            state.residual_norm = norm(y_new, self.norm)
            logger.debug(
                "iteration=%d |F(x)|=%.6e |dx|=%.6e",
                state.iteration,
                state.residual_norm,
                norm(delta_x, self.norm),
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _initial_matrix(self, function, jacobian_fn, x, y) -> Array:
        return self.initialization.get_initialized_matrix(jacobian_fn, x, function, y)

    def _next_matrix(self, function, jacobian_fn, update, state, x_new, y_new, delta_x) -> Array:
        n = x_new.shape[0]
        refresh = self.jacobian_refresh_interval
        if refresh is not None and state.iteration % refresh == 0:
            matrix = self.initialization.get_initialized_matrix(jacobian_fn, x_new, function, y_new)
            self._count_jacobian(state, jacobian_fn, n)
            return matrix
        delta_y = y_new - state.y
        # A step lost to rounding, or a flat residual, carries no secant information
        if not bool(jnp.any(delta_x != 0.0)) or (update.uses_secant and not bool(jnp.any(delta_y != 0.0))):
            logger.debug("Keeping Jacobian estimate at iteration %d: no change in x or F(x)", state.iteration)
            return state.matrix
        matrix = update.get_updated_matrix(jacobian_fn, x_new, delta_x, delta_y, state.matrix, y_new)
        if not update.uses_secant:
            self._count_jacobian(state, jacobian_fn, n)
        return matrix

    def _count_jacobian(self, state: NewtonState, jacobian_fn, n: int) -> None:
        if jacobian_fn is not None:
            state.jacobian_evaluations += 1
            return
        state.function_evaluations += self.initialization.evaluations(n, exact=False)

    def _take_step(self, function, state: NewtonState, delta_x: Array):
        """Return ``(x_new, F(x_new), x_new - x)`` or ``None`` when no step is acceptable.

        The full step is tried first. It is halved while the candidate is
        infeasible, ``F`` raises or gives a non-finite residual there, or
        (with ``line_search``) the residual norm does not decrease.
        """
        n = state.x.shape[0]
        scale = 1.0
        halvings = 0
        while True:
            candidate = state.x + scale * delta_x
            if self._is_feasible(candidate):
                try:
                    y_new = evaluate_function(function, candidate, n)
                except FunctionEvaluationError as exc:
                    logger.debug("Function failed at trial point, iteration %d: %s", state.iteration, exc)
                    y_new = None
                state.function_evaluations += 1
                if (
                    y_new is not None
                    and is_finite(y_new)
                    and (not self.line_search or norm(y_new, self.norm) < state.residual_norm)
                ):
                    return candidate, y_new, candidate - state.x
            halvings += 1
            scale *= 0.5
            if halvings > self.max_backtracks or scale < self.min_step_scale:
                return None
            logger.debug("Halving step at iteration %d, scale=%.3e", state.iteration, scale)

    def _result(self, state: NewtonState, status: RootFindingStatus, message: str = "") -> RootFindingResult:
        if status is RootFindingStatus.MAX_ITERATIONS_EXCEEDED:
            x, y, residual_norm, matrix = state.best_x, state.best_y, state.best_norm, state.best_matrix
        else:
            x, y, residual_norm, matrix = state.x, state.y, state.residual_norm, state.matrix
        return RootFindingResult(
            status=status,
            x=x,
            residual=y,
            residual_norm=residual_norm,
            iterations=state.iteration,
            jacobian=matrix,
            jacobian_is_inverse=self.jacobian_is_inverse,
            function_evaluations=state.function_evaluations,
            jacobian_evaluations=state.jacobian_evaluations,
            message=message,
        )


class NewtonDefaultVectorRootFinder(NewtonVectorRootFinder):
    """Classic Newton: the Jacobian is re-evaluated at every iterate."""

    def __init__(self, **kwargs):
        kwargs.setdefault("update", ExactJacobianUpdate(initialization=kwargs.get("initialization")))
        super().__init__(**kwargs)


class BroydenVectorRootFinder(NewtonVectorRootFinder):
    """Quasi-Newton with the rank-1 Broyden update of the Jacobian."""

    def __init__(self, **kwargs):
        kwargs.setdefault("update", BroydenMatrixUpdate())
        super().__init__(**kwargs)


class ShermanMorrisonVectorRootFinder(NewtonVectorRootFinder):
    """Quasi-Newton iterating on the inverse Jacobian.

    The first estimate is inverted once; later iterations update the
    inverse with the Sherman-Morrison formula and never solve a linear
    system.
    """

    def __init__(self, **kwargs):
        decomposition = kwargs.pop("decomposition", Decomposition.LU)
        singular_tolerance = kwargs.pop("singular_tolerance", DEFAULT_SINGULAR_TOL)
        kwargs.setdefault(
            "initialization",
            InverseJacobianEstimateInitialization(
                decomposition=decomposition, singular_tol=singular_tolerance
            ),
        )
        kwargs.setdefault("update", ShermanMorrisonMatrixUpdate())
        kwargs.setdefault("direction", InverseJacobianDirectionFunction())
        super().__init__(**kwargs)


_FINDERS = {
    "broyden": BroydenVectorRootFinder,
    "sherman_morrison": ShermanMorrisonVectorRootFinder,
    "exact": NewtonDefaultVectorRootFinder,
}


def _strategies(settings: SolverSettings) -> dict:
    """Initialisation, update and direction objects for ``settings.updater``."""
    fd = settings.finite_difference
    if settings.updater == "sherman_morrison":
        return dict(
            initialization=InverseJacobianEstimateInitialization(
                fd.scheme, fd.step, settings.decomposition, settings.singular_tolerance
            ),
            update=ShermanMorrisonMatrixUpdate(),
            direction=InverseJacobianDirectionFunction(),
        )
    initialization = JacobianEstimateInitialization(fd.scheme, fd.step)
    if settings.updater == "exact":
        update = ExactJacobianUpdate(initialization=initialization)
    else:
        update = BroydenMatrixUpdate()
    return dict(
        initialization=initialization,
        update=update,
        direction=JacobianDirectionFunction(settings.decomposition, settings.singular_tolerance),
    )


def create_root_finder(
    settings: Optional[SolverSettings] = None,
    region=None,
    **overrides,
) -> NewtonVectorRootFinder:
    """Build a root finder from validated :class:`SolverSettings`.

    Keyword ``overrides`` are applied on top of ``settings`` and validated
    again, so ``create_root_finder(updater="exact", max_iterations=20)`` works
    without constructing the settings first. Passing a feasible ``region``
    returns a :class:`~vecroot.solver.newton.bounds.BoundedNewtonVectorRootFinder`.
    """
    if settings is None:
        settings = SolverSettings(**overrides)
    elif overrides:
        settings = SolverSettings.model_validate({**settings.model_dump(), **overrides})

    kwargs = dict(
        absolute_tolerance=settings.absolute_tolerance,
        max_iterations=settings.max_iterations,
        norm=settings.norm,
        jacobian_refresh_interval=settings.jacobian_refresh_interval,
        line_search=settings.line_search,
        max_backtracks=settings.max_backtracks,
        min_step_scale=settings.min_step_scale,
        **_strategies(settings),
    )
    if region is not None:
        from vecroot.solver.newton.bounds import BoundedNewtonVectorRootFinder

        return BoundedNewtonVectorRootFinder(region, **kwargs)
    return _FINDERS[settings.updater](**kwargs)


def find_root(
    function: VectorFunction,
    x0: ArrayLike,
    jacobian_fn: Optional[JacobianFunction] = None,
    settings: Optional[SolverSettings] = None,
    **overrides,
) -> Array:
    """Solve ``function(x) = 0`` and return ``x``, raising on failure.

    Raises:
        InvalidInputError: If the inputs are unusable
        SingularJacobianError: If the Jacobian estimate becomes singular
        DivergenceError: If no acceptable step could be found
        MaxIterationsExceededError: If the iteration budget is exhausted

    Example:
        >>> import jax.numpy as jnp
        >>> root = find_root(lambda v: v ** 2 - 4.0, jnp.array([1.0]), absolute_tolerance=1e-10)
        >>> bool(jnp.isclose(root[0], 2.0))
        True
    """
    finder = create_root_finder(settings, **overrides)
    return finder.solve(function, x0, jacobian_fn).unwrap()


__all__ = [
    "BroydenVectorRootFinder",
    "NewtonDefaultVectorRootFinder",
    "NewtonState",
    "NewtonVectorRootFinder",
    "ShermanMorrisonVectorRootFinder",
    "create_root_finder",
    "find_root",
]
