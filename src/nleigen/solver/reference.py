"""Dense direct solution of the polynomial eigenproblem, for verification.

``m == 1`` is the symmetric-definite pencil ``K0 phi = lam M[0] phi``.  For
``m > 1`` the matrix polynomial ``P(lam) = K0 - sum_j lam^(j+1) M[j]`` is
linearized in block companion form and handed to the general QZ solver;
only real nonnegative eigenvalues are kept.
"""
from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
import scipy.linalg

from nleigen.operators.forms import quadratic_form
from nleigen.operators.polynomial import MatrixPolynomial


def solve_reference(
        polynomial: MatrixPolynomial,
        num_eigenvalues: Optional[int] = None,
        *,
        imag_tol: float = 1e-8,
) -> Tuple[np.ndarray, np.ndarray]:
    """返回升序本征值与按 ``phi^T Mn phi = 1`` 归一化的本征矢。"""

    if polynomial.num_mass_terms == 1:
        eigvals, eigvecs = scipy.linalg.eigh(
            polynomial.stiffness, polynomial.mass_terms[0])
    else:
        eigvals, eigvecs = _solve_companion(polynomial, imag_tol)

    order = np.argsort(eigvals)
    eigvals = eigvals[order]
    eigvecs = eigvecs[:, order]

    if num_eigenvalues is not None:
        eigvals = eigvals[:num_eigenvalues]
        eigvecs = eigvecs[:, :num_eigenvalues]

    for col, lam in enumerate(eigvals):
        Mn = polynomial.freq_dependent_mass(lam)
        norm = quadratic_form(eigvecs[:, col], Mn)
        if norm > 0.0:
            eigvecs[:, col] /= np.sqrt(norm)
    return eigvals, eigvecs


def companion_matrices(polynomial: MatrixPolynomial) -> Tuple[np.ndarray, np.ndarray]:
    """Pencil ``(A, B)`` with ``A z = lam B z`` equivalent to ``P(lam) x = 0``.

    ``z = [x, lam x, ..., lam^(m-1) x]``.
    """
    n = polynomial.dimension
    m = polynomial.num_mass_terms
    # P(lam) = sum_{k=0}^{m} lam^k C_k with C_0 = K0 and C_{j+1} = -M[j]
    coefficients = [polynomial.stiffness] + [-M for M in polynomial.mass_terms]

    A = np.zeros((m * n, m * n), dtype=float)
    B = np.eye(m * n, dtype=float)
    for block in range(m - 1):
        A[block * n:(block + 1) * n, (block + 1) * n:(block + 2) * n] = np.eye(n)
    for k in range(m):
        A[(m - 1) * n:, k * n:(k + 1) * n] = -coefficients[k]
    B[(m - 1) * n:, (m - 1) * n:] = coefficients[m]
    return A, B


def _solve_companion(polynomial: MatrixPolynomial, imag_tol: float) -> Tuple[np.ndarray, np.ndarray]:
    n = polynomial.dimension
    A, B = companion_matrices(polynomial)
    eigvals, eigvecs = scipy.linalg.eig(A, B)

    finite = np.isfinite(eigvals)
    scale = np.maximum(np.abs(eigvals), 1.0)
    real = finite & (np.abs(eigvals.imag) <= imag_tol * scale)
    keep = real & (eigvals.real >= -imag_tol * scale)

    values = eigvals.real[keep]
    vectors = np.zeros((n, values.size), dtype=float)
    # phase-align each complex vector before dropping the imaginary part
    for col, full in enumerate(eigvecs[:n, keep].T):
        pivot = full[np.argmax(np.abs(full))]
        vectors[:, col] = np.real(full / (pivot / abs(pivot))) if pivot != 0 else 0.0
    return values, vectors
