from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from nleigen.io import write_problem_file
from nleigen.operators import MatrixPolynomial


def spring_chain(n: int) -> np.ndarray:
    """Fixed-fixed spring chain stiffness, tridiag(-1, 2, -1)."""
    K = 2.0 * np.eye(n)
    K -= np.eye(n, k=1)
    K -= np.eye(n, k=-1)
    return K


def random_spd(rng: np.random.Generator, n: int, shift: float) -> np.ndarray:
    A = rng.standard_normal((n, n))
    return A @ A.T + shift * np.eye(n)


@pytest.fixture
def two_dof_identity() -> MatrixPolynomial:
    return MatrixPolynomial(2.0 * np.eye(2), (np.eye(2),))


@pytest.fixture
def diagonal_quadratic() -> MatrixPolynomial:
    """K0 = diag(1, 4, 9), M[0] = I, M[1] = 0.1 I."""
    return MatrixPolynomial(np.diag([1.0, 4.0, 9.0]), (np.eye(3), 0.1 * np.eye(3)))


@pytest.fixture
def dense_linear() -> MatrixPolynomial:
    rng = np.random.default_rng(7)
    K0 = random_spd(rng, 5, 5.0)
    M0 = random_spd(rng, 5, 5.0) / 5.0
    return MatrixPolynomial(K0, (M0,))


@pytest.fixture
def dense_quadratic() -> MatrixPolynomial:
    rng = np.random.default_rng(11)
    K0 = random_spd(rng, 4, 4.0)
    M0 = random_spd(rng, 4, 4.0) / 4.0
    M1 = random_spd(rng, 4, 1.0) / 50.0
    return MatrixPolynomial(K0, (M0, M1))


@pytest.fixture
def problem_file(tmp_path):
    """Write a problem file in a fresh directory and return its path."""

    def _write(stiffness, mass_terms, num_eigenvalues, name="problem.txt"):
        return write_problem_file(tmp_path / name, stiffness, mass_terms, num_eigenvalues)

    return _write
