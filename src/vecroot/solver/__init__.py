"""Solver utilities exposing the vector root finders."""

from . import newton
from .newton import (
    BoundedNewtonVectorRootFinder,
    BroydenVectorRootFinder,
    NewtonDefaultVectorRootFinder,
    NewtonVectorRootFinder,
    RootFindingResult,
    RootFindingStatus,
    ShermanMorrisonVectorRootFinder,
    create_root_finder,
    find_root,
)

__all__ = [
    "BoundedNewtonVectorRootFinder",
    "BroydenVectorRootFinder",
    "NewtonDefaultVectorRootFinder",
    "NewtonVectorRootFinder",
    "RootFindingResult",
    "RootFindingStatus",
    "ShermanMorrisonVectorRootFinder",
    "create_root_finder",
    "find_root",
    "newton",
]
