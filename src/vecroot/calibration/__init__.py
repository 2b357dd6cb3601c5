"""Calibration helpers built on the root finder outputs."""

from .sensitivity import bucketed_sensitivity, parameter_sensitivity, quote_sensitivity

__all__ = ["bucketed_sensitivity", "parameter_sensitivity", "quote_sensitivity"]
