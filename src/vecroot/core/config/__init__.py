"""Validated settings schemas."""

from .schemas import (
    AppConfig,
    CalibrationSettings,
    ConfigValidationError,
    FiniteDifferenceSettings,
    SolverSettings,
    collect_and_validate,
    discover_config_files,
    load_config,
    load_solver_settings,
)

__all__ = [
    "AppConfig",
    "CalibrationSettings",
    "ConfigValidationError",
    "FiniteDifferenceSettings",
    "SolverSettings",
    "collect_and_validate",
    "discover_config_files",
    "load_config",
    "load_solver_settings",
]
