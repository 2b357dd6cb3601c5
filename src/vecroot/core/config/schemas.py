"""Pydantic-based configuration schemas and helpers."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Literal, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


class FiniteDifferenceSettings(BaseModel):
    """Bump settings used when no exact Jacobian is supplied."""

    model_config = ConfigDict(extra="forbid")

    scheme: Literal["forward", "central", "backward"] = Field(
        default="forward", description="Finite difference scheme"
    )
    step: float = Field(default=1e-6, gt=0.0, description="Relative bump size")


class SolverSettings(BaseModel):
    """Newton vector root finder configuration."""

    model_config = ConfigDict(extra="forbid")

    absolute_tolerance: float = Field(default=1e-9, gt=0.0, description="Residual norm treated as converged")
    max_iterations: int = Field(default=100, ge=1, description="Maximum number of Newton steps")
    norm: Literal["euclidean", "max_abs"] = Field(default="euclidean", description="Residual norm")
    updater: Literal["broyden", "sherman_morrison", "exact"] = Field(
        default="broyden", description="Jacobian update strategy"
    )
    jacobian_refresh_interval: Optional[int] = Field(
        default=None, ge=1, description="Re-evaluate the full Jacobian every k iterations"
    )
    decomposition: Literal["lu", "sv"] = Field(default="lu", description="Linear solver decomposition")
    singular_tolerance: float = Field(default=1e-12, gt=0.0, lt=1.0, description="Relative pivot/singular value floor")
    line_search: bool = Field(default=False, description="Backtrack when the residual norm increases")
    max_backtracks: int = Field(default=20, ge=0, description="Maximum number of step halvings")
    min_step_scale: float = Field(default=1e-8, gt=0.0, le=1.0, description="Smallest allowed step fraction")
    finite_difference: FiniteDifferenceSettings = Field(default_factory=FiniteDifferenceSettings)

    @field_validator("norm", "updater", "decomposition", mode="before")
    @classmethod
    def normalise_choice(cls, value):
        if isinstance(value, str):
            return value.lower().replace("-", "_")
        return value

    @model_validator(mode="after")
    def validate_refresh_interval(self) -> "SolverSettings":
        if self.updater == "exact" and self.jacobian_refresh_interval is not None:
            raise ValueError("jacobian_refresh_interval cannot be combined with the exact updater")
        return self


class CalibrationSettings(BaseModel):
    """Hazard curve bootstrap configuration."""

    model_config = ConfigDict(extra="forbid")

    recovery: float = Field(default=0.4, ge=0.0, lt=1.0, description="Assumed recovery rate")
    initial_hazard: float = Field(default=0.01, gt=0.0, description="Starting intensity for every node")
    max_hazard: float = Field(default=5.0, gt=0.0, description="Upper bound on calibrated intensities")


class AppConfig(BaseModel):
    """Top-level configuration container for runs."""

    model_config = ConfigDict(extra="forbid")

    seed: int = Field(default=0, ge=0, description="Seed for PRNG initialisation")
    solver: SolverSettings = Field(default_factory=SolverSettings)
    calibration: CalibrationSettings = Field(default_factory=CalibrationSettings)


class ConfigValidationError(RuntimeError):
    """Raised when one or more configuration files fail validation."""

    def __init__(self, errors: list[tuple[Path, ValidationError]]):
        message_lines = ["Configuration validation failed:"]
        for path, error in errors:
            message_lines.append(f"- {path}: {error}")
        super().__init__("\n".join(message_lines))
        self.errors = errors


def _load_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration at {path} must contain a mapping")
    return data


def load_config(path: Path | str) -> AppConfig:
    """Load a configuration file into an :class:`AppConfig`."""
    target = Path(path)
    payload = _load_yaml(target)
    return AppConfig.model_validate(payload)


def load_solver_settings(path: Path | str) -> SolverSettings:
    """Load only the ``solver`` section of a configuration file."""
    payload = _load_yaml(Path(path))
    return SolverSettings.model_validate(payload.get("solver", payload))


def discover_config_files(paths: Iterable[Path | str]) -> list[Path]:
    """Discover YAML configuration files from provided paths."""
    discovered: list[Path] = []
    seen = set()
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_file() and path.suffix in {".yml", ".yaml"}:
            resolved = path.resolve()
            if resolved not in seen:
                discovered.append(resolved)
                seen.add(resolved)
        elif path.is_dir():
            for pattern in ("*.yml", "*.yaml"):
                for candidate in sorted(path.rglob(pattern)):
                    resolved = candidate.resolve()
                    if resolved not in seen:
                        discovered.append(resolved)
                        seen.add(resolved)
    return discovered


def collect_and_validate(paths: Iterable[Path | str]) -> list[AppConfig]:
    """Validate all configuration files under the given paths."""
    files = discover_config_files(paths)
    errors: list[tuple[Path, ValidationError]] = []
    configs: list[AppConfig] = []
    for file in files:
        try:
            configs.append(load_config(file))
        except ValidationError as error:
            errors.append((file, error))
    if errors:
        raise ConfigValidationError(errors)
    return configs


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
