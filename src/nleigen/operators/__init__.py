"""频率相关刚度/质量算子模块。"""

from .forms import bilinear_form, quadratic_form
from .polynomial import (
    MatrixPolynomial,
    effective_stiffness,
    freq_dependent_mass,
    freq_dependent_stiffness,
    generalized_mass,
)

__all__ = [
    "MatrixPolynomial",
    "effective_stiffness",
    "freq_dependent_stiffness",
    "freq_dependent_mass",
    "generalized_mass",
    "quadratic_form",
    "bilinear_form",
]
