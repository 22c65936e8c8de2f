from __future__ import annotations

import logging

import numpy as np
import pytest
import scipy.linalg

from nleigen.errors import IndefiniteMassError, Severity
from nleigen.operators import MatrixPolynomial
from nleigen.solver import (
    JacobiDavidsonConfig,
    JacobiDavidsonSolver,
    LinearSolverConfig,
    NonlinearEigenResult,
    solve_nonlinear_eigen,
    solve_reference,
)
from nleigen.validation import (
    deflation_orthogonality,
    eigen_residuals,
    mass_normalization_errors,
    ordering_violations,
)


def test_two_dof_identity_scenario(two_dof_identity):
    result = solve_nonlinear_eigen(two_dof_identity, 1)

    assert isinstance(result, NonlinearEigenResult)
    assert result.omegas.shape == (1,)
    assert result.phi.shape == (2, 1)
    assert result.omegas[0] == pytest.approx(2.0, abs=1e-9)
    assert np.linalg.norm(result.phi[:, 0]) == pytest.approx(1.0, abs=1e-9)
    np.testing.assert_allclose(
        two_dof_identity.stiffness @ result.phi[:, 0], 2.0 * result.phi[:, 0], atol=1e-9)
    assert result.converged.all()
    assert not result.diagnostics


def test_history_records_each_sweep(two_dof_identity):
    result = solve_nonlinear_eigen(two_dof_identity, 1)
    records = result.history_for(0)
    assert len(records) == result.iterations[0]
    assert [record.iteration for record in records] == list(range(len(records)))
    assert records[0].relative_error == pytest.approx(1.0)
    assert records[-1].relative_error <= 1e-12
    assert records[-1].theta == pytest.approx(result.omegas[0])


def test_linear_problem_matches_direct_solver(dense_linear):
    n = dense_linear.dimension
    result = solve_nonlinear_eigen(dense_linear, n)

    expected = scipy.linalg.eigh(dense_linear.stiffness, dense_linear.mass_terms[0],
                                 eigvals_only=True)
    np.testing.assert_allclose(np.sort(result.omegas), expected, rtol=1e-8)
    assert result.converged.all()

    M0 = dense_linear.mass_terms[0]
    np.testing.assert_allclose(result.phi.T @ M0 @ result.phi, np.eye(n), atol=1e-8)


def test_lowest_modes_found_in_order():
    poly = MatrixPolynomial(np.diag([1.0, 4.0, 9.0, 16.0]), (np.eye(4),))
    starts = np.eye(4)[:, :2] + 0.1
    result = solve_nonlinear_eigen(poly, 2, start_vectors=starts)

    np.testing.assert_allclose(result.omegas, [1.0, 4.0], rtol=1e-10)
    assert ordering_violations(result.omegas) == []
    np.testing.assert_allclose(np.abs(result.phi[:, 0]), [1.0, 0.0, 0.0, 0.0], atol=1e-8)
    np.testing.assert_allclose(np.abs(result.phi[:, 1]), [0.0, 1.0, 0.0, 0.0], atol=1e-8)


def test_diagonal_quadratic_problem(diagonal_quadratic):
    result = solve_nonlinear_eigen(diagonal_quadratic, 3)

    # 0.1 lam^2 + lam - k = 0, positive root
    k = np.array([1.0, 4.0, 9.0])
    expected = (-1.0 + np.sqrt(1.0 + 0.4 * k)) / 0.2
    np.testing.assert_allclose(np.sort(result.omegas), expected, rtol=1e-9)
    assert np.all(result.omegas >= 0.0)
    assert np.all(mass_normalization_errors(diagonal_quadratic, result.omegas, result.phi) < 1e-8)


def test_quadratic_problem_matches_companion_linearization(dense_quadratic):
    n = dense_quadratic.dimension
    result = solve_nonlinear_eigen(dense_quadratic, n)
    reference, _ = solve_reference(dense_quadratic)

    assert reference.size == n
    np.testing.assert_allclose(np.sort(result.omegas), reference, rtol=1e-8)
    assert result.converged.all()

    omegas, phi = result.omegas, result.phi
    assert np.max(mass_normalization_errors(dense_quadratic, omegas, phi)) < 1e-8
    assert np.max(deflation_orthogonality(dense_quadratic, omegas, phi)) < 1e-8
    assert np.max(eigen_residuals(dense_quadratic, omegas, phi)) < 1e-8


def test_zero_eigenvalues_requested(dense_linear):
    result = solve_nonlinear_eigen(dense_linear, 0)
    assert result.omegas.shape == (0,)
    assert result.phi.shape == (dense_linear.dimension, 0)
    assert result.history == []
    assert result.diagnostics == []


def test_repeated_runs_are_identical(dense_quadratic):
    config = JacobiDavidsonConfig(seed=42)
    first = solve_nonlinear_eigen(dense_quadratic, 2, config=config)
    second = solve_nonlinear_eigen(dense_quadratic, 2, config=config)
    np.testing.assert_array_equal(first.omegas, second.omegas)
    np.testing.assert_array_equal(first.phi, second.phi)


def test_num_eigenvalues_taken_from_config(dense_linear):
    solver = JacobiDavidsonSolver(dense_linear, JacobiDavidsonConfig(num_eigenvalues=2))
    assert solver.solve().num_eigenvalues == 2


def test_num_eigenvalues_required(dense_linear):
    with pytest.raises(ValueError):
        JacobiDavidsonSolver(dense_linear).solve()


def test_num_eigenvalues_above_dimension_rejected(dense_linear):
    with pytest.raises(ValueError):
        solve_nonlinear_eigen(dense_linear, dense_linear.dimension + 1)


def test_start_vectors_shape_checked(dense_linear):
    with pytest.raises(ValueError):
        solve_nonlinear_eigen(dense_linear, 2, start_vectors=np.ones((3, 2)))


def test_indefinite_mass_aborts(caplog):
    poly = MatrixPolynomial(np.eye(3), (-np.eye(3),))
    with caplog.at_level(logging.ERROR):
        with pytest.raises(IndefiniteMassError) as info:
            solve_nonlinear_eigen(poly, 1)
    assert info.value.index == 0
    assert info.value.value < 0.0
    assert info.value.severity is Severity.FATAL
    assert "Negative mass matrix" in caplog.text


def test_iteration_cap_is_recoverable(dense_linear, caplog):
    config = JacobiDavidsonConfig(max_iter=0)
    with caplog.at_level(logging.ERROR):
        result = solve_nonlinear_eigen(dense_linear, 2, config=config)

    assert result.num_eigenvalues == 2
    assert not result.converged.any()
    np.testing.assert_array_equal(result.iterations, [1, 1])
    codes = [(d.index, d.code) for d in result.diagnostics]
    assert (0, "max-iterations") in codes
    assert (1, "max-iterations") in codes
    assert all(d.severity is Severity.RECOVERABLE for d in result.recoverable_diagnostics)
    assert "max. number of iterations" in caplog.text


def test_out_of_order_eigenvalues_are_flagged(caplog):
    poly = MatrixPolynomial(np.diag([1.0, 4.0, 9.0]), (np.eye(3),))
    starts = np.array([[0.0, 1.0], [0.0, 0.1], [1.0, 0.0]])
    with caplog.at_level(logging.WARNING):
        result = solve_nonlinear_eigen(poly, 2, start_vectors=starts)

    np.testing.assert_allclose(result.omegas, [9.0, 1.0], rtol=1e-10)
    assert ordering_violations(result.omegas) == [1]
    assert "is below eigenvalue #0" in caplog.text


def test_progress_is_logged_to_injected_logger(two_dof_identity, caplog):
    logger = logging.getLogger("nleigen.tests.progress")
    with caplog.at_level(logging.INFO, logger="nleigen.tests.progress"):
        solve_nonlinear_eigen(two_dof_identity, 1, logger=logger)
    messages = [record.getMessage() for record in caplog.records
                if record.name == "nleigen.tests.progress"]
    assert "Eigenvalue #0:" in messages
    assert any(message.startswith("iter: 0") for message in messages)


@pytest.mark.parametrize("kwargs", [
    {"tol": 0.0},
    {"max_iter": -1},
    {"basis_tolerance": 0.0},
    {"num_eigenvalues": -1},
])
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        JacobiDavidsonConfig(**kwargs)


def test_inexact_inner_solves_are_recoverable(dense_linear, caplog):
    config = JacobiDavidsonConfig(
        max_iter=3,
        linear=LinearSolverConfig(maxiter=1, restart=1, tolerance=1e-14),
    )
    with caplog.at_level(logging.WARNING):
        result = solve_nonlinear_eigen(dense_linear, 2, config=config)

    assert result.num_eigenvalues == 2
    assert np.all(np.isfinite(result.omegas))
    assert np.all(np.isfinite(result.phi))
    inner = [d for d in result.diagnostics if d.code == "linear-solve-not-converged"]
    assert {d.index for d in inner} == {0, 1}
    assert all(d.severity is Severity.RECOVERABLE for d in inner)
    # the outer loop keeps going after an inexact correction
    assert len(result.history_for(0)) > 1
    assert not result.history[0].linear_converged
    assert "did not reach the tolerance" in caplog.text


def test_stiff_chain_converges_with_capped_inner_solves():
    n = 40
    K0 = 1e6 * (2.0 * np.eye(n) - np.eye(n, k=1) - np.eye(n, k=-1))
    poly = MatrixPolynomial(K0, (np.eye(n),))
    result = solve_nonlinear_eigen(poly, 2)

    assert result.converged.all()
    spectrum = scipy.linalg.eigh(K0, eigvals_only=True)
    for omega in result.omegas:
        assert np.min(np.abs(spectrum - omega)) / omega < 1e-8


def test_deflation_basis_matches_accepted_pairs(dense_linear):
    result = solve_nonlinear_eigen(dense_linear, 3)
    M0 = dense_linear.mass_terms[0]
    basis = result.deflation_basis

    first = M0 @ result.phi[:, 0]
    first /= np.linalg.norm(first)
    np.testing.assert_allclose(np.abs(basis[:, 0] @ first), 1.0, atol=1e-12)
    np.testing.assert_allclose(basis.T @ basis, np.eye(3), atol=1e-10)
