"""Deflation against accepted eigenvectors via oblique projection."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from nleigen.errors import DegenerateBasisError
from nleigen.operators.polynomial import MatrixPolynomial


def orthonormalize_column(
        column: np.ndarray,
        basis: np.ndarray,
        *,
        tolerance: float = 1e-12,
        label: str = "deflation vector",
) -> np.ndarray:
    """Gram-Schmidt ``column`` against the columns of ``basis`` and normalize.

    Projections are removed one basis column at a time, in column order.
    Raises :class:`DegenerateBasisError` when what is left has a 2-norm at
    or below ``tolerance`` times the norm of the incoming column.
    """
    vector = np.array(column, dtype=float, copy=True)
    reference = float(np.linalg.norm(vector))
    for el in range(basis.shape[1]):
        # b_s = b_s - b_el (b_el^T b_s)
        vector -= basis[:, el] * (basis[:, el] @ vector)

    norm = float(np.linalg.norm(vector))
    if not np.isfinite(norm) or reference == 0.0 or norm <= tolerance * reference:
        raise DegenerateBasisError(
            f"{label} is linearly dependent on the preceding deflation vectors "
            f"(norm {norm:.3e} of {reference:.3e})")
    return vector / norm


def orthogonalize_basis(
        polynomial: MatrixPolynomial,
        omegas: Sequence[float],
        phi: np.ndarray,
        index: int,
        *,
        tolerance: float = 1e-12,
) -> np.ndarray:
    """Build the deflation basis ``B_r[0..index-1]`` for eigenvalue ``index``.

    ``B_r[s] = Mlrls(omegas[index], omegas[s]) phi[:, s]`` orthonormalized
    against ``B_r[0..s-1]``; columns are built strictly for s = 0, 1, ...
    """
    n = polynomial.dimension
    basis = np.zeros((n, index), dtype=float)
    for s in range(index):
        Mlrls = polynomial.generalized_mass(omegas[index], omegas[s])
        basis[:, s] = orthonormalize_column(
            Mlrls @ phi[:, s], basis[:, :s],
            tolerance=tolerance, label=f"B_r[{s}]")
    return basis


def append_current_direction(
        polynomial: MatrixPolynomial,
        omega: float,
        vector: np.ndarray,
        basis: np.ndarray,
        *,
        tolerance: float = 1e-12,
) -> np.ndarray:
    """Return ``basis`` extended by the mass-weighted direction of ``vector``.

    The new column is ``Mlrls(omega, omega) vector`` (that is, ``Mn(omega)
    vector``) orthonormalized against the existing columns.
    """
    column = polynomial.generalized_mass(omega, omega) @ vector
    current = orthonormalize_column(
        column, basis, tolerance=tolerance, label=f"B_r[{basis.shape[1]}]")
    return np.column_stack([basis, current])


def orthogonalize_eigenvector(vector: np.ndarray, basis: np.ndarray) -> np.ndarray:
    """Remove from ``vector`` its projection onto every column of ``basis``."""
    result = np.array(vector, dtype=float, copy=True)
    for s in range(basis.shape[1]):
        result -= basis[:, s] * (basis[:, s] @ result)
    return result


def project_stiffness(Keff: np.ndarray, basis: np.ndarray) -> np.ndarray:
    """Make every basis column a fixed point of the effective stiffness.

    For each column ``b`` in order: ``Keff += (b - Keff b) b^T``.  With an
    orthonormal basis the result maps ``b`` to itself and agrees with
    ``Keff`` on the orthogonal complement of the basis.
    """
    projected = np.array(Keff, dtype=float, copy=True)
    for ii in range(basis.shape[1]):
        b = basis[:, ii]
        projected += np.outer(b - projected @ b, b)
    return projected
