"""数值验证工具。"""

from .checks import (
    ModalValidator,
    ValidationReport,
    compare_with_reference,
    deflation_orthogonality,
    eigen_residuals,
    mass_normalization_errors,
    ordering_violations,
)
from .convergence import convergence_order

__all__ = [
    "ModalValidator",
    "ValidationReport",
    "mass_normalization_errors",
    "deflation_orthogonality",
    "eigen_residuals",
    "ordering_violations",
    "compare_with_reference",
    "convergence_order",
]
