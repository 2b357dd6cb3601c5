"""Feasible regions and the bounded Newton root finder."""
from __future__ import annotations

from typing import Callable, Optional, Protocol

import jax.numpy as jnp
import numpy as np

from vecroot.core.errors import InvalidInputError
from vecroot.core.math.linalg import Array, ArrayLike, as_vector
from vecroot.solver.newton.finder import NewtonVectorRootFinder


class FeasibleRegion(Protocol):
    def contains(self, x: Array) -> bool:
        ...


class BoxRegion:
    """Elementwise box ``lower <= x <= upper``; either side may be omitted.

    Scalar bounds apply to every coordinate.
    """

    def __init__(self, lower: Optional[ArrayLike] = None, upper: Optional[ArrayLike] = None):
        if lower is None and upper is None:
            raise InvalidInputError("BoxRegion needs at least one of lower or upper")
        self.lower = None if lower is None else jnp.asarray(lower, dtype=jnp.float64)
        self.upper = None if upper is None else jnp.asarray(upper, dtype=jnp.float64)
        if self.lower is not None and self.upper is not None:
            if self.lower.shape != self.upper.shape:
                raise InvalidInputError("lower and upper bounds must have the same shape")
            if bool(jnp.any(self.lower > self.upper)):
                raise InvalidInputError("lower bound exceeds upper bound")

    def _check_shape(self, x: Array) -> None:
        for bound in (self.lower, self.upper):
            if bound is not None and bound.ndim == 1 and bound.shape[0] != x.shape[0]:
                raise InvalidInputError(
                    f"Bounds have length {bound.shape[0]} but x has length {x.shape[0]}"
                )

    def contains(self, x: Array) -> bool:
        self._check_shape(x)
        inside = True
        if self.lower is not None:
            inside = inside and bool(jnp.all(x >= self.lower))
        if self.upper is not None:
            inside = inside and bool(jnp.all(x <= self.upper))
        return inside


class InequalityRegion:
    """Region where every component of ``constraint(x)`` is non-negative."""

    def __init__(self, constraint: Callable[[Array], ArrayLike]):
        if constraint is None or not callable(constraint):
            raise InvalidInputError("constraint must be callable")
        self.constraint = constraint

    def contains(self, x: Array) -> bool:
        values = np.asarray(self.constraint(x), dtype=float)
        return bool(np.all(np.isfinite(values)) and np.all(values >= 0.0))


class BoundedNewtonVectorRootFinder(NewtonVectorRootFinder):
    """Newton iteration that never leaves a feasible region.

    Infeasible steps are halved until feasible, within the same budget as
    backtracking (``max_backtracks`` and ``min_step_scale``); when the budget
    runs out the solve ends as ``DIVERGED``. The starting point has to be
    feasible.

    Example:
        >>> finder = BoundedNewtonVectorRootFinder(BoxRegion(lower=0.0))
        >>> result = finder.solve(lambda v: v ** 2 - 4.0, [3.0])
    """

    def __init__(self, region: FeasibleRegion, **kwargs):
        if region is None or not hasattr(region, "contains"):
            raise InvalidInputError("region must provide contains(x)")
        super().__init__(**kwargs)
        self.region = region

    def _is_feasible(self, x: Array) -> bool:
        return self.region.contains(x)

    def _validate_start(self, x0: Array) -> None:
        if not self.region.contains(as_vector(x0, "x0")):
            raise InvalidInputError(f"Starting point {x0} lies outside the feasible region")


__all__ = [
    "BoundedNewtonVectorRootFinder",
    "BoxRegion",
    "FeasibleRegion",
    "InequalityRegion",
]
