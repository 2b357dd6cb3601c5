"""Credit curves: piecewise hazard rates and CDS bootstrapping."""

from .hazard import (
    HazardCalibrationResult,
    HazardRateCurve,
    calibrate_from_settings,
    calibrate_piecewise_hazard,
    cds_par_spread,
    cds_premium_leg,
    cds_pricing_errors,
    cds_protection_leg,
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
