"""Newton vector root finders with pluggable Jacobian strategies."""

from .bounds import BoundedNewtonVectorRootFinder, BoxRegion, FeasibleRegion, InequalityRegion
from .direction import InverseJacobianDirectionFunction, JacobianDirectionFunction
from .finder import (
    BroydenVectorRootFinder,
    NewtonDefaultVectorRootFinder,
    NewtonState,
    NewtonVectorRootFinder,
    ShermanMorrisonVectorRootFinder,
    create_root_finder,
    find_root,
)
from .initialization import (
    FiniteDifferenceScheme,
    InverseJacobianEstimateInitialization,
    JacobianEstimateInitialization,
    autodiff_jacobian,
    finite_difference_jacobian,
)
from .results import RootFindingResult, RootFindingStatus
from .updates import (
    BroydenMatrixUpdate,
    ExactJacobianUpdate,
    MatrixUpdateFunction,
    ShermanMorrisonMatrixUpdate,
    get_update_function,
)

__all__ = [
    "BoundedNewtonVectorRootFinder",
    "BoxRegion",
    "BroydenMatrixUpdate",
    "BroydenVectorRootFinder",
    "ExactJacobianUpdate",
    "FeasibleRegion",
    "FiniteDifferenceScheme",
    "InequalityRegion",
    "InverseJacobianDirectionFunction",
    "InverseJacobianEstimateInitialization",
    "JacobianDirectionFunction",
    "JacobianEstimateInitialization",
    "MatrixUpdateFunction",
    "NewtonDefaultVectorRootFinder",
    "NewtonState",
    "NewtonVectorRootFinder",
    "RootFindingResult",
    "RootFindingStatus",
    "ShermanMorrisonMatrixUpdate",
    "ShermanMorrisonVectorRootFinder",
    "autodiff_jacobian",
    "create_root_finder",
    "finite_difference_jacobian",
    "find_root",
    "get_update_function",
]
