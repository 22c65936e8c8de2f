from __future__ import annotations

import numpy as np
import pytest

from nleigen.errors import DegenerateBasisError, Severity
from nleigen.operators import MatrixPolynomial
from nleigen.solver import (
    append_current_direction,
    orthogonalize_basis,
    orthogonalize_eigenvector,
    orthonormalize_column,
    project_stiffness,
)


@pytest.fixture
def quadratic():
    rng = np.random.default_rng(3)
    A = rng.standard_normal((4, 4))
    K0 = A @ A.T + 4.0 * np.eye(4)
    M0 = np.diag([1.0, 2.0, 1.5, 1.0])
    M1 = 0.05 * np.eye(4)
    return MatrixPolynomial(K0, (M0, M1))


def test_orthonormalize_column_against_basis():
    basis = np.eye(3)[:, :1]
    column = np.array([3.0, 4.0, 0.0])
    result = orthonormalize_column(column, basis)
    np.testing.assert_allclose(result, [0.0, 1.0, 0.0])


def test_orthonormalize_column_rejects_dependent_vector():
    basis = np.eye(3)[:, :2]
    with pytest.raises(DegenerateBasisError) as info:
        orthonormalize_column(np.array([1.0, -2.0, 0.0]), basis)
    assert info.value.severity is Severity.FATAL


def test_orthonormalize_column_rejects_zero_vector():
    with pytest.raises(DegenerateBasisError):
        orthonormalize_column(np.zeros(3), np.zeros((3, 0)))


def test_orthogonalize_basis_builds_orthonormal_columns(quadratic):
    rng = np.random.default_rng(5)
    phi = rng.standard_normal((4, 3))
    omegas = np.array([0.7, 1.3, 2.1])
    basis = orthogonalize_basis(quadratic, omegas, phi, 2)

    assert basis.shape == (4, 2)
    np.testing.assert_allclose(basis.T @ basis, np.eye(2), atol=1e-12)

    # B_r[0] is the normalized Mlrls(omega_2, omega_0) phi_0
    first = quadratic.generalized_mass(omegas[2], omegas[0]) @ phi[:, 0]
    np.testing.assert_allclose(basis[:, 0], first / np.linalg.norm(first), atol=1e-12)

    # span{B_r[0], B_r[1]} contains Mlrls(omega_2, omega_1) phi_1
    second = quadratic.generalized_mass(omegas[2], omegas[1]) @ phi[:, 1]
    leftover = second - basis @ (basis.T @ second)
    assert np.linalg.norm(leftover) < 1e-10 * np.linalg.norm(second)


def test_orthogonalize_basis_for_first_index_is_empty(quadratic):
    basis = orthogonalize_basis(quadratic, np.zeros(2), np.ones((4, 2)), 0)
    assert basis.shape == (4, 0)


def test_append_current_direction_uses_frequency_dependent_mass(quadratic):
    vector = np.array([1.0, 0.5, -0.25, 2.0])
    basis = append_current_direction(quadratic, 1.1, vector, np.zeros((4, 0)))
    expected = quadratic.freq_dependent_mass(1.1) @ vector
    np.testing.assert_allclose(basis[:, 0], expected / np.linalg.norm(expected), atol=1e-12)


def test_orthogonalize_eigenvector_removes_basis_components():
    basis = np.column_stack([np.array([1.0, 1.0, 0.0]) / np.sqrt(2.0), [0.0, 0.0, 1.0]])
    vector = np.array([2.0, 0.0, 5.0])
    result = orthogonalize_eigenvector(vector, basis)
    np.testing.assert_allclose(basis.T @ result, 0.0, atol=1e-14)
    np.testing.assert_allclose(result, [1.0, -1.0, 0.0])
    np.testing.assert_array_equal(vector, [2.0, 0.0, 5.0])


def test_project_stiffness_makes_basis_fixed_points(quadratic):
    Keff = quadratic.effective_stiffness(1.4)
    rng = np.random.default_rng(9)
    Q, _ = np.linalg.qr(rng.standard_normal((4, 2)))
    projected = project_stiffness(Keff, Q)
    np.testing.assert_allclose(projected @ Q, Q, atol=1e-12)


def test_project_stiffness_matches_update_formula(quadratic):
    Keff = quadratic.effective_stiffness(0.9)
    b = np.array([0.0, 1.0, 0.0, 0.0])
    projected = project_stiffness(Keff, b.reshape(4, 1))
    np.testing.assert_allclose(projected, Keff + np.outer(b - Keff @ b, b))


def test_project_stiffness_keeps_action_on_complement(quadratic):
    Keff = quadratic.effective_stiffness(0.9)
    b = np.array([1.0, 0.0, 0.0, 0.0])
    x = np.array([0.0, 1.0, -2.0, 0.5])
    projected = project_stiffness(Keff, b.reshape(4, 1))
    np.testing.assert_allclose(projected @ x, Keff @ x)


def test_project_stiffness_without_basis_is_identity_map(quadratic):
    Keff = quadratic.effective_stiffness(0.5)
    projected = project_stiffness(Keff, np.zeros((4, 0)))
    np.testing.assert_array_equal(projected, Keff)
    assert projected is not Keff
