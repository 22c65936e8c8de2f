"""频率相关广义本征问题求解模块。"""

from .deflation import (
    append_current_direction,
    orthogonalize_basis,
    orthogonalize_eigenvector,
    orthonormalize_column,
    project_stiffness,
)
from .jacobi_davidson import (
    IterationRecord,
    JacobiDavidsonConfig,
    JacobiDavidsonSolver,
    NonlinearEigenResult,
    solve_nonlinear_eigen,
)
from .linear import CorrectionSolve, LinearSolverConfig, solve_correction
from .reference import solve_reference

__all__ = [
    "orthonormalize_column",
    "orthogonalize_basis",
    "append_current_direction",
    "orthogonalize_eigenvector",
    "project_stiffness",
    "LinearSolverConfig",
    "CorrectionSolve",
    "solve_correction",
    "JacobiDavidsonConfig",
    "JacobiDavidsonSolver",
    "IterationRecord",
    "NonlinearEigenResult",
    "solve_nonlinear_eigen",
    "solve_reference",
]
