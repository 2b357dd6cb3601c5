"""Hazard-rate curves and CDS bootstrap built on the Newton vector root finder."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import jax.numpy as jnp

from vecroot.core.config.schemas import CalibrationSettings, SolverSettings
from vecroot.core.errors import InvalidInputError
from vecroot.solver.newton.bounds import BoxRegion
from vecroot.solver.newton.finder import create_root_finder
from vecroot.solver.newton.initialization import autodiff_jacobian
from vecroot.solver.newton.results import RootFindingResult, RootFindingStatus

ArrayLike = jnp.ndarray

logger = logging.getLogger(__name__)


def _integrated_hazard(maturities: ArrayLike, intensities: ArrayLike, t: ArrayLike) -> ArrayLike:
    """Traceable ``int_0^t lambda(s) ds`` for a piecewise-constant curve."""
    starts = jnp.concatenate([jnp.zeros(1, dtype=maturities.dtype), maturities[:-1]])
    t = jnp.asarray(t)
    lengths = jnp.clip(t[..., None] - starts, 0.0, maturities - starts)
    base = jnp.sum(intensities * lengths, axis=-1)
    tail = intensities[-1] * jnp.maximum(t - maturities[-1], 0.0)
    return base + tail


@dataclass
class HazardRateCurve:
    """Piecewise-constant hazard rate term structure.

    Parameters
    ----------
    maturities: Sequence[float]
        Increasing maturities (in years) marking the end of each hazard interval.
    intensities: Sequence[float]
        Default intensities (per year) assumed constant over each interval.
    """

    maturities: ArrayLike
    intensities: ArrayLike

    def __post_init__(self) -> None:
        maturities = jnp.asarray(self.maturities, dtype=jnp.float64)
        intensities = jnp.asarray(self.intensities, dtype=jnp.float64)
        if maturities.ndim != 1:
            raise ValueError("Maturities must be a 1D array.")
        if intensities.ndim != 1:
            raise ValueError("Intensities must be a 1D array.")
        if maturities.shape[0] != intensities.shape[0]:
            raise ValueError("Maturities and intensities must have the same length.")
        if maturities.shape[0] == 0:
            raise ValueError("At least one maturity is required.")
        if not bool(jnp.all(maturities[1:] >= maturities[:-1])):
            raise ValueError("Maturities must be non-decreasing.")
        if bool(jnp.any(intensities < 0)):
            raise ValueError("Hazard intensities must be non-negative.")
        self.maturities = maturities
        self.intensities = intensities

    def value(self, t: ArrayLike) -> ArrayLike:
        """Return hazard intensity at ``t``.

        Node ``i`` applies on ``(t_{i-1}, t_i]``, so the step function is
        left-continuous at the maturities.
        """

        t_arr = jnp.asarray(t)
        index = jnp.clip(
            jnp.searchsorted(self.maturities, t_arr, side="left"), 0, self.maturities.shape[0] - 1
        )
        return self.intensities[index]

    def __call__(self, t: ArrayLike) -> ArrayLike:
        return self.value(t)

    def integrated_hazard(self, t: ArrayLike) -> ArrayLike:
        r"""Compute the integrated hazard :math:`\int_0^t \lambda(s) ds`.

        Values beyond the final maturity assume the last hazard intensity
        persists.
        """

        return _integrated_hazard(self.maturities, self.intensities, t)

    def survival_probability(self, t: ArrayLike) -> ArrayLike:
        """Return survival probability :math:`P(\tau > t)` for times ``t``."""

        return jnp.exp(-self.integrated_hazard(t))

    def default_probability(self, t: ArrayLike) -> ArrayLike:
        r"""Return default probability :math:`P(\tau \le t)` for times ``t``."""

        return 1.0 - self.survival_probability(t)


def _ensure_array(values: Iterable[float]) -> jnp.ndarray:
    arr = jnp.asarray(values if hasattr(values, "shape") else list(values), dtype=jnp.float64)
    if arr.ndim != 1:
        raise ValueError("Input must be one-dimensional.")
    return arr


def cds_premium_leg(
    spread: float,
    discount_factors: Sequence[float],
    survival_prob: Sequence[float],
    accrual_fractions: Sequence[float],
) -> jnp.ndarray:
    """Present value of the CDS premium leg."""

    return spread * jnp.sum(
        jnp.asarray(discount_factors) * jnp.asarray(survival_prob) * jnp.asarray(accrual_fractions)
    )


def cds_protection_leg(
    discount_factors: Sequence[float],
    survival_prob: Sequence[float],
    recovery: float,
) -> jnp.ndarray:
    """Present value of the CDS protection leg."""

    survival_prob = jnp.asarray(survival_prob)
    survival_prev = jnp.concatenate([jnp.ones(1, dtype=survival_prob.dtype), survival_prob[:-1]])
    default_probs = survival_prev - survival_prob
    return (1.0 - recovery) * jnp.sum(jnp.asarray(discount_factors) * default_probs)


def _accruals(payment_times: jnp.ndarray, accrual_fractions: Optional[Sequence[float]]) -> jnp.ndarray:
    if accrual_fractions is None:
        return jnp.diff(jnp.concatenate([jnp.zeros(1), payment_times]))
    return _ensure_array(accrual_fractions)


def cds_par_spread(
    payment_times: Sequence[float],
    discount_factors: Sequence[float],
    hazard_curve: HazardRateCurve,
    recovery: float = 0.4,
    accrual_fractions: Sequence[float] | None = None,
) -> jnp.ndarray:
    """Compute the par spread that sets CDS PV to zero."""

    payment_times = _ensure_array(payment_times)
    discount_factors = _ensure_array(discount_factors)
    accrual_fractions = _accruals(payment_times, accrual_fractions)

    survival = hazard_curve.survival_probability(payment_times)
    annuity = cds_premium_leg(1.0, discount_factors, survival, accrual_fractions)
    protection = cds_protection_leg(discount_factors, survival, recovery)
    return jnp.where(annuity > 0, protection / annuity, 0.0)


@dataclass(frozen=True)
class HazardCalibrationResult:
    """Calibrated curve together with the solver outcome.

    ``result.jacobian`` is d(pricing error)/d(intensity) at the solution and
    can be handed to :mod:`vecroot.calibration.sensitivity`.
    """

    curve: HazardRateCurve
    result: RootFindingResult

    @property
    def jacobian(self) -> ArrayLike:
        return self.result.jacobian


def cds_pricing_errors(
    payment_times: Sequence[float],
    discount_factors: Sequence[float],
    market_spreads: Sequence[float],
    recovery: float = 0.4,
    accrual_fractions: Sequence[float] | None = None,
):
    """Return ``F(intensities)``: premium minus protection leg for each CDS.

    CDS ``i`` pays on ``payment_times[: i + 1]`` at ``market_spreads[i]``.
    The returned function is pure and JAX-traceable.
    """

    payment_times = _ensure_array(payment_times)
    discount_factors = _ensure_array(discount_factors)
    market_spreads = _ensure_array(market_spreads)
    accrual_fractions = _accruals(payment_times, accrual_fractions)

    n = payment_times.shape[0]
    if not (discount_factors.shape[0] == n and market_spreads.shape[0] == n and accrual_fractions.shape[0] == n):
        raise InvalidInputError("Input arrays must have identical length.")

    # mask[i, j] == 1 when payment j belongs to CDS i
    mask = jnp.tril(jnp.ones((n, n)))

    def pricing_errors(intensities: ArrayLike) -> ArrayLike:
        survival = jnp.exp(-_integrated_hazard(payment_times, intensities, payment_times))
        survival_prev = jnp.concatenate([jnp.ones(1, dtype=survival.dtype), survival[:-1]])
        annuity = mask @ (discount_factors * survival * accrual_fractions)
        protection = (1.0 - recovery) * (mask @ (discount_factors * (survival_prev - survival)))
        return market_spreads * annuity - protection

    return pricing_errors


def calibrate_piecewise_hazard(
    payment_times: Sequence[float],
    discount_factors: Sequence[float],
    market_spreads: Sequence[float],
    recovery: float = 0.4,
    accrual_fractions: Sequence[float] | None = None,
    hazard_bounds: tuple[float, float] = (0.0, 5.0),
    settings: Optional[SolverSettings] = None,
    initial_hazard: float = 0.01,
    use_autodiff: bool = True,
    accept_residual: Optional[float] = None,
) -> HazardCalibrationResult:
    """Calibrate a piecewise-constant hazard curve from CDS par spreads.

    All node intensities are solved simultaneously so that every CDS prices
    at par. The Newton step is kept inside ``hazard_bounds``.

    Parameters
    ----------
    payment_times:
        CDS payment times in years.
    discount_factors:
        Discount factors for each payment time.
    market_spreads:
        Observed market par spreads quoted as decimal (e.g. 0.01 for 100 bps).
    recovery:
        Assumed recovery rate.
    accrual_fractions:
        Accrual fractions for each interval. When ``None`` they are inferred
        from successive payment times.
    hazard_bounds:
        Feasible interval for every intensity.
    settings:
        Root finder settings; defaults to a tight absolute tolerance.
    initial_hazard:
        Starting intensity for every node.
    use_autodiff:
        Use the forward-mode JAX Jacobian of the pricing errors instead of
        finite differences.
    accept_residual:
        Accept a run that hit the iteration limit if its best residual norm
        is at most this value.

    Raises
    ------
    RootFindingError
        When the solve does not converge and is not accepted.
    """

    pricing_errors = cds_pricing_errors(
        payment_times, discount_factors, market_spreads, recovery, accrual_fractions
    )
    maturities = _ensure_array(payment_times)
    n = maturities.shape[0]

    lower, upper = hazard_bounds
    if not 0.0 <= lower < upper:
        raise InvalidInputError(f"Invalid hazard bounds {hazard_bounds}")
    if not lower <= initial_hazard <= upper:
        raise InvalidInputError("initial_hazard must lie inside hazard_bounds")

    if settings is None:
        settings = SolverSettings(absolute_tolerance=1e-12, max_iterations=50)
    finder = create_root_finder(settings, region=BoxRegion(lower=jnp.full(n, lower), upper=jnp.full(n, upper)))

    jacobian_fn = autodiff_jacobian(pricing_errors) if use_autodiff else None
    result = finder.solve(pricing_errors, jnp.full(n, initial_hazard), jacobian_fn)

    if not result.converged:
        accepted = (
            result.status is RootFindingStatus.MAX_ITERATIONS_EXCEEDED
            and accept_residual is not None
            and result.residual_norm <= accept_residual
        )
        if not accepted:
            result.unwrap()
        logger.warning(
            "Accepting hazard calibration with residual %.3e after %d iterations",
            result.residual_norm,
            result.iterations,
        )

    logger.info("Calibrated %d hazard nodes in %d iterations", n, result.iterations)
    return HazardCalibrationResult(HazardRateCurve(maturities, result.x), result)


def calibrate_from_settings(
    payment_times: Sequence[float],
    discount_factors: Sequence[float],
    market_spreads: Sequence[float],
    calibration: Optional[CalibrationSettings] = None,
    solver: Optional[SolverSettings] = None,
) -> HazardCalibrationResult:
    """Run :func:`calibrate_piecewise_hazard` from validated settings objects."""

    calibration = calibration or CalibrationSettings()
    return calibrate_piecewise_hazard(
        payment_times,
        discount_factors,
        market_spreads,
        recovery=calibration.recovery,
        hazard_bounds=(0.0, calibration.max_hazard),
        settings=solver,
        initial_hazard=calibration.initial_hazard,
    )


__all__ = [
    "HazardCalibrationResult",
    "HazardRateCurve",
    "calibrate_from_settings",
    "calibrate_piecewise_hazard",
    "cds_par_spread",
    "cds_premium_leg",
    "cds_pricing_errors",
    "cds_protection_leg",
]
