"""Jacobi-Davidson iteration for the frequency-dependent eigenproblem.

Eigenpairs are computed one index at a time.  For index ``i`` the estimate
``Omega[i]`` is seeded from ``Omega[i-1]`` (zero for the first index) and
refined until the relative change of the Rayleigh functional drops below
``tol`` or ``max_iter`` is exceeded.  Each sweep

1. builds the deflation basis from the accepted eigenvectors and the
   mass-weighted direction of the current estimate,
2. solves the projected correction equation ``Keff' dU = -Keff phi``,
3. deflates ``dU``, updates ``phi`` and takes the Newton step
   ``theta = phi^T Kn phi / phi^T Mn phi``,
4. normalizes ``phi`` with ``phi^T Mn phi``.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from nleigen.errors import Diagnostic, IndefiniteMassError, Severity
from nleigen.operators.forms import quadratic_form
from nleigen.operators.polynomial import MatrixPolynomial
from nleigen.solver.deflation import (
    append_current_direction,
    orthogonalize_basis,
    orthogonalize_eigenvector,
    project_stiffness,
)
from nleigen.solver.linear import LinearSolverConfig, solve_correction

_LOGGER = logging.getLogger(__name__)


@dataclass
class JacobiDavidsonConfig:
    """Configuration for the outer eigenvalue iteration."""

    num_eigenvalues: Optional[int] = None
    tol: float = 1e-12
    max_iter: int = 20
    seed: int = 0
    basis_tolerance: float = 1e-12
    linear: LinearSolverConfig = field(default_factory=LinearSolverConfig)

    def __post_init__(self) -> None:
        if self.tol <= 0.0:
            raise ValueError("tol must be positive.")
        if self.max_iter < 0:
            raise ValueError("max_iter must be non-negative.")
        if self.basis_tolerance <= 0.0:
            raise ValueError("basis_tolerance must be positive.")
        if self.num_eigenvalues is not None and self.num_eigenvalues < 0:
            raise ValueError("num_eigenvalues must be non-negative.")


@dataclass
class IterationRecord:
    """One sweep of the outer iteration."""

    index: int
    iteration: int
    theta: float
    relative_error: float
    linear_converged: bool
    linear_residual: float


@dataclass
class NonlinearEigenResult:
    """Accepted eigenpairs and the record of how they were obtained.

    Column ``i`` of ``deflation_basis`` is ``Mn(omegas[i]) phi[:, i]``
    orthonormalized against the deflation vectors used for index ``i``.
    """

    omegas: np.ndarray
    phi: np.ndarray
    deflation_basis: np.ndarray
    iterations: np.ndarray
    converged: np.ndarray
    history: List[IterationRecord] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def num_eigenvalues(self) -> int:
        return int(self.omegas.size)

    def history_for(self, index: int) -> List[IterationRecord]:
        return [record for record in self.history if record.index == index]

    @property
    def recoverable_diagnostics(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.RECOVERABLE]


class JacobiDavidsonSolver:
    """Computes the lowest eigenpairs of ``Keff(lam) phi = 0`` one by one."""

    def __init__(
            self,
            polynomial: MatrixPolynomial,
            config: Optional[JacobiDavidsonConfig] = None,
            *,
            logger: Optional[logging.Logger] = None,
    ) -> None:
        self.polynomial = polynomial
        self.config = config if config is not None else JacobiDavidsonConfig()
        self.logger = logger if logger is not None else _LOGGER

    def solve(
            self,
            num_eigenvalues: Optional[int] = None,
            *,
            start_vectors: Optional[np.ndarray] = None,
    ) -> NonlinearEigenResult:
        n = self.polynomial.dimension
        if num_eigenvalues is None:
            num_eigenvalues = self.config.num_eigenvalues
        if num_eigenvalues is None:
            raise ValueError("num_eigenvalues must be given by the caller or the config.")
        if num_eigenvalues < 0 or num_eigenvalues > n:
            raise ValueError(
                f"num_eigenvalues must lie in [0, {n}], got {num_eigenvalues}.")

        p = num_eigenvalues
        starts = self._start_vectors(p, start_vectors)

        omegas = np.zeros(p, dtype=float)
        phi = np.zeros((n, p), dtype=float)
        basis = np.zeros((n, p), dtype=float)
        iterations = np.zeros(p, dtype=int)
        converged = np.zeros(p, dtype=bool)
        history: List[IterationRecord] = []
        diagnostics: List[Diagnostic] = []

        self.logger.info("Processing...")
        for ie in range(p):
            self.logger.info("Eigenvalue #%d:", ie)
            if ie > 0:
                omegas[ie] = omegas[ie - 1]
            phi[:, ie] = starts[:, ie]

            iters, done = self._solve_index(
                ie, omegas, phi, history, diagnostics)
            iterations[ie] = iters
            converged[ie] = done
            basis[:, ie] = self._accepted_direction(ie, omegas, phi)

            if ie > 0 and omegas[ie] < omegas[ie - 1]:
                self.logger.warning(
                    "Eigenvalue #%d (%.6e) is below eigenvalue #%d (%.6e).",
                    ie, omegas[ie], ie - 1, omegas[ie - 1])

        return NonlinearEigenResult(
            omegas=omegas,
            phi=phi,
            deflation_basis=basis,
            iterations=iterations,
            converged=converged,
            history=history,
            diagnostics=diagnostics,
        )

    def _solve_index(
            self,
            ie: int,
            omegas: np.ndarray,
            phi: np.ndarray,
            history: List[IterationRecord],
            diagnostics: List[Diagnostic],
    ):
        cfg = self.config
        poly = self.polynomial
        conv = 1.0
        iter_k = 0

        while abs(conv) > cfg.tol:
            # Orthogonalize phi_ie with respect to the preceding eigenvectors
            basis = orthogonalize_basis(
                poly, omegas, phi, ie, tolerance=cfg.basis_tolerance)
            phi[:, ie] = orthogonalize_eigenvector(phi[:, ie], basis)
            basis = append_current_direction(
                poly, omegas[ie], phi[:, ie], basis, tolerance=cfg.basis_tolerance)

            Keff = poly.effective_stiffness(omegas[ie])
            rk = -Keff @ phi[:, ie]
            Keff = project_stiffness(Keff, basis)

            solve = solve_correction(
                Keff, rk, config=cfg.linear, logger=self.logger)
            if not solve.converged:
                diagnostics.append(Diagnostic(
                    severity=Severity.RECOVERABLE,
                    code="linear-solve-not-converged",
                    message=(f"inner solve info={solve.info}, "
                             f"residual={solve.residual_norm:.3e}"),
                    index=ie,
                ))

            dUk = orthogonalize_eigenvector(solve.solution, basis)
            phi[:, ie] += dUk

            # Rayleigh functional Newton step
            Kn = poly.freq_dependent_stiffness(omegas[ie])
            Mn = poly.freq_dependent_mass(omegas[ie])
            PtMP = quadratic_form(phi[:, ie], Mn)
            PtKP = quadratic_form(phi[:, ie], Kn)
            if not PtMP > 0.0:
                self.logger.error("Error: Negative mass matrix!!!")
                raise IndefiniteMassError(ie, PtMP)
            theta = PtKP / PtMP

            phi[:, ie] /= math.sqrt(PtMP)

            conv = abs(theta - omegas[ie]) / max(abs(theta), np.finfo(float).tiny)
            self.logger.info("iter: %d    rel.error: %.6e", iter_k, conv)
            history.append(IterationRecord(
                index=ie,
                iteration=iter_k,
                theta=float(theta),
                relative_error=float(conv),
                linear_converged=solve.converged,
                linear_residual=solve.residual_norm,
            ))

            omegas[ie] = theta
            iter_k += 1

            if conv > cfg.tol and iter_k > cfg.max_iter:
                self.logger.error(
                    "Error: It has reached the max. number of iterations!!")
                diagnostics.append(Diagnostic(
                    severity=Severity.RECOVERABLE,
                    code="max-iterations",
                    message=(f"stopped after {iter_k} iterations with "
                             f"rel.error {conv:.3e}"),
                    index=ie,
                ))
                return iter_k, False

        return iter_k, True

    def _accepted_direction(self, ie: int, omegas: np.ndarray, phi: np.ndarray) -> np.ndarray:
        """B_r[ie] rebuilt from the accepted pair ``(omegas[ie], phi[:, ie])``."""
        tolerance = self.config.basis_tolerance
        basis = orthogonalize_basis(
            self.polynomial, omegas, phi, ie, tolerance=tolerance)
        basis = append_current_direction(
            self.polynomial, omegas[ie], phi[:, ie], basis, tolerance=tolerance)
        return basis[:, ie]

    def _start_vectors(self, p: int, start_vectors: Optional[np.ndarray]) -> np.ndarray:
        n = self.polynomial.dimension
        if start_vectors is not None:
            starts = np.asarray(start_vectors, dtype=float)
            if starts.ndim == 1:
                starts = starts.reshape(n, 1)
            if starts.shape[0] != n or starts.shape[1] < p:
                raise ValueError(
                    f"start_vectors must have shape ({n}, >= {p}), got {starts.shape}.")
            return starts[:, :p].copy()
        rng = np.random.default_rng(self.config.seed)
        starts = np.zeros((n, p), dtype=float)
        for ie in range(p):
            starts[:, ie] = rng.standard_normal(n)
        return starts


def solve_nonlinear_eigen(
        polynomial: MatrixPolynomial,
        num_eigenvalues: Optional[int] = None,
        *,
        config: Optional[JacobiDavidsonConfig] = None,
        logger: Optional[logging.Logger] = None,
        start_vectors: Optional[np.ndarray] = None,
) -> NonlinearEigenResult:
    """Solve ``K0 phi = sum_j lam^(j+1) M[j] phi`` for the lowest eigenpairs."""

    solver = JacobiDavidsonSolver(polynomial, config, logger=logger)
    return solver.solve(num_eigenvalues, start_vectors=start_vectors)
