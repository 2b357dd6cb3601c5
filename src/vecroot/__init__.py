"""vecroot: Newton-type vector root finding for curve calibration."""

from __future__ import annotations

import importlib
from typing import Dict

from vecroot.core.errors import (
    ConvergenceError,
    DivergenceError,
    InvalidInputError,
    MaxIterationsExceededError,
    RootFindingError,
    SingularJacobianError,
)
from vecroot.solver.newton import (
    BoundedNewtonVectorRootFinder,
    BroydenVectorRootFinder,
    NewtonDefaultVectorRootFinder,
    RootFindingResult,
    RootFindingStatus,
    ShermanMorrisonVectorRootFinder,
    create_root_finder,
    find_root,
)

__all__ = [
    "BoundedNewtonVectorRootFinder",
    "BroydenVectorRootFinder",
    "ConvergenceError",
    "DivergenceError",
    "InvalidInputError",
    "MaxIterationsExceededError",
    "NewtonDefaultVectorRootFinder",
    "RootFindingError",
    "RootFindingResult",
    "RootFindingStatus",
    "ShermanMorrisonVectorRootFinder",
    "SingularJacobianError",
    "calibration",
    "config",
    "core",
    "credit",
    "create_root_finder",
    "find_root",
    "market",
    "solver",
]

_MODULE_ALIASES: Dict[str, str] = {
    "calibration": "vecroot.calibration",
    "config": "vecroot.config",
    "core": "vecroot.core",
    "credit": "vecroot.market.credit",
    "market": "vecroot.market",
    "solver": "vecroot.solver",
}


def __getattr__(name: str):
    if name in _MODULE_ALIASES:
        module = importlib.import_module(_MODULE_ALIASES[name])
        globals()[name] = module
        return module
    raise AttributeError(f"module 'vecroot' has no attribute '{name}'")


def __dir__():
    return sorted(set(globals().keys()) | set(__all__))


__version__ = "0.1.0"
