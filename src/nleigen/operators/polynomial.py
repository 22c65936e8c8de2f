"""Frequency-dependent stiffness and mass operators.

The structure is described by a base stiffness ``K0`` and an ordered list
of mass coefficients ``M[0..m-1]``.  With ``lam`` the eigenvalue estimate
(the squared circular frequency) the operators are

    Keff(lam)    = K0 - sum_{j=0}^{m-1} lam^(j+1) M[j]
    Kn(lam)      = K0 + sum_{j=1}^{m-1} j lam^(j+1) M[j]
    Mn(lam)      = M[0] + sum_{j=1}^{m-1} (j+1) lam^j M[j]
    Mlrls(lr,ls) = sum_{j=0}^{m-1} sum_{k=0}^{j} lr^k ls^(j-k) M[j]

``Mn`` is ``-dKeff/dlam`` and ``Kn = Keff + lam Mn``, so ``Kn``/``Mn``
give the Newton update of the Rayleigh functional rather than the same
polynomial as ``Keff``.  ``Mlrls(lam, lam)`` equals ``Mn(lam)``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

SYMMETRY_RTOL = 1e-10


def effective_stiffness(K0: np.ndarray, mass_terms: Sequence[np.ndarray], omega: float) -> np.ndarray:
    """``K0 - sum_j omega^(j+1) M[j]``."""
    Keff = np.array(K0, dtype=float, copy=True)
    for jj, M in enumerate(mass_terms):
        Keff -= omega ** (jj + 1) * M
    return Keff


def freq_dependent_stiffness(K0: np.ndarray, mass_terms: Sequence[np.ndarray], omega: float) -> np.ndarray:
    """``K0 + sum_{j>=1} j omega^(j+1) M[j]``, the Rayleigh quotient numerator."""
    Kn = np.array(K0, dtype=float, copy=True)
    for jj in range(1, len(mass_terms)):
        Kn += jj * omega ** (jj + 1) * mass_terms[jj]
    return Kn


def freq_dependent_mass(mass_terms: Sequence[np.ndarray], omega: float) -> np.ndarray:
    """``M[0] + sum_{j>=1} (j+1) omega^j M[j]``, the Rayleigh quotient denominator."""
    Mn = np.array(mass_terms[0], dtype=float, copy=True)
    for jj in range(1, len(mass_terms)):
        Mn += (jj + 1) * omega ** jj * mass_terms[jj]
    return Mn


def generalized_mass(mass_terms: Sequence[np.ndarray], lr: float, ls: float) -> np.ndarray:
    """Two-frequency mass form relating eigenvalue ``lr`` to eigenvalue ``ls``."""
    Mlrls = np.zeros_like(mass_terms[0], dtype=float)
    for jj, M in enumerate(mass_terms):
        # sum_{k=0}^{j} lr^k ls^(j-k); 0.0 ** 0 is 1.0
        coefficient = sum(lr ** kk * ls ** (jj - kk) for kk in range(jj + 1))
        Mlrls += coefficient * M
    return Mlrls


@dataclass
class MatrixPolynomial:
    """Base stiffness plus polynomial mass coefficients of one structure."""

    stiffness: np.ndarray
    mass_terms: Tuple[np.ndarray, ...]

    def __post_init__(self) -> None:
        self.stiffness = np.asarray(self.stiffness, dtype=float)
        self.mass_terms = tuple(np.asarray(M, dtype=float)
                                for M in self.mass_terms)

        if self.stiffness.ndim != 2 or self.stiffness.shape[0] != self.stiffness.shape[1]:
            raise ValueError("K0 must be a square matrix.")
        if len(self.mass_terms) == 0:
            raise ValueError("At least one mass matrix is required.")

        _check_symmetric(self.stiffness, "K0")
        for jj, M in enumerate(self.mass_terms):
            if M.shape != self.stiffness.shape:
                raise ValueError(
                    f"M[{jj}] has shape {M.shape}, expected {self.stiffness.shape}.")
            _check_symmetric(M, f"M[{jj}]")

    @property
    def dimension(self) -> int:
        return int(self.stiffness.shape[0])

    @property
    def num_mass_terms(self) -> int:
        return len(self.mass_terms)

    def effective_stiffness(self, omega: float) -> np.ndarray:
        return effective_stiffness(self.stiffness, self.mass_terms, omega)

    def freq_dependent_stiffness(self, omega: float) -> np.ndarray:
        return freq_dependent_stiffness(self.stiffness, self.mass_terms, omega)

    def freq_dependent_mass(self, omega: float) -> np.ndarray:
        return freq_dependent_mass(self.mass_terms, omega)

    def generalized_mass(self, lr: float, ls: float) -> np.ndarray:
        return generalized_mass(self.mass_terms, lr, ls)


def _check_symmetric(matrix: np.ndarray, label: str) -> None:
    scale = float(np.max(np.abs(matrix))) if matrix.size else 0.0
    if scale == 0.0:
        return
    if not np.allclose(matrix, matrix.T, rtol=0.0, atol=SYMMETRY_RTOL * scale):
        raise ValueError(f"{label} must be symmetric.")
