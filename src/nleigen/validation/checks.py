"""Post-solve checks on accepted eigenpairs."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from nleigen.operators.forms import bilinear_form, quadratic_form
from nleigen.operators.polynomial import MatrixPolynomial
from nleigen.solver.jacobi_davidson import NonlinearEigenResult
from nleigen.solver.reference import solve_reference
from nleigen.validation.convergence import convergence_order

_LOGGER = logging.getLogger(__name__)


def mass_normalization_errors(polynomial: MatrixPolynomial, omegas: np.ndarray, phi: np.ndarray) -> np.ndarray:
    """``|phi_i^T Mn(Omega_i) phi_i - 1|`` for every accepted index."""
    errors = np.zeros(len(omegas), dtype=float)
    for ie, lam in enumerate(omegas):
        value = quadratic_form(phi[:, ie], polynomial.freq_dependent_mass(lam))
        errors[ie] = abs(value - 1.0)
    return errors


def deflation_orthogonality(polynomial: MatrixPolynomial, omegas: np.ndarray, phi: np.ndarray) -> np.ndarray:
    """``|phi_i^T Mlrls(Omega_i, Omega_s) phi_s|`` for i != s (zero diagonal)."""
    p = len(omegas)
    table = np.zeros((p, p), dtype=float)
    for ie in range(p):
        for s in range(p):
            if s == ie:
                continue
            Mlrls = polynomial.generalized_mass(omegas[ie], omegas[s])
            table[ie, s] = abs(bilinear_form(phi[:, ie], Mlrls, phi[:, s]))
    return table


def eigen_residuals(polynomial: MatrixPolynomial, omegas: np.ndarray, phi: np.ndarray) -> np.ndarray:
    """Relative residual ``||Keff(Omega_i) phi_i|| / (||Kn(Omega_i)|| ||phi_i||)``."""
    residuals = np.zeros(len(omegas), dtype=float)
    for ie, lam in enumerate(omegas):
        vector = phi[:, ie]
        scale = np.linalg.norm(polynomial.freq_dependent_stiffness(lam), 2) * np.linalg.norm(vector)
        residual = np.linalg.norm(polynomial.effective_stiffness(lam) @ vector)
        residuals[ie] = residual / scale if scale > 0.0 else residual
    return residuals


def ordering_violations(omegas: np.ndarray) -> List[int]:
    """Indices ``i`` with ``Omega[i] < Omega[i-1]``."""
    omegas = np.asarray(omegas, dtype=float)
    return [int(ie) for ie in range(1, omegas.size) if omegas[ie] < omegas[ie - 1]]


def compare_with_reference(polynomial: MatrixPolynomial, omegas: np.ndarray) -> np.ndarray:
    """Relative distance of each eigenvalue to the nearest direct-solver eigenvalue."""
    omegas = np.asarray(omegas, dtype=float)
    if omegas.size == 0:
        return np.zeros(0, dtype=float)
    reference, _ = solve_reference(polynomial)
    if reference.size == 0:
        return np.full(omegas.size, np.inf)
    gaps = np.abs(omegas[:, None] - reference[None, :]).min(axis=1)
    return gaps / np.maximum(np.abs(omegas), 1.0)


@dataclass
class ValidationReport:
    normalization_errors: np.ndarray
    orthogonality: np.ndarray
    residuals: np.ndarray
    ordering_violations: List[int]
    convergence_orders: List[float]
    reference_errors: Optional[np.ndarray] = None
    failures: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures


@dataclass
class ModalValidator:
    """Check accepted eigenpairs and log a PASS/WARN line per criterion."""

    tolerance: float = 1e-6
    compare_reference: bool = False
    logger: Optional[logging.Logger] = None

    def validate(self, polynomial: MatrixPolynomial, result: NonlinearEigenResult) -> ValidationReport:
        log = self.logger if self.logger is not None else _LOGGER
        omegas, phi = result.omegas, result.phi

        report = ValidationReport(
            normalization_errors=mass_normalization_errors(polynomial, omegas, phi),
            orthogonality=deflation_orthogonality(polynomial, omegas, phi),
            residuals=eigen_residuals(polynomial, omegas, phi),
            ordering_violations=ordering_violations(omegas),
            convergence_orders=[
                _last_order([r.relative_error for r in result.history_for(ie)])
                for ie in range(result.num_eigenvalues)
            ],
        )
        if self.compare_reference:
            report.reference_errors = compare_with_reference(polynomial, omegas)

        self._check(log, report, "Normalization", report.normalization_errors)
        self._check(log, report, "Deflation orthogonality", report.orthogonality)
        self._check(log, report, "Residual", report.residuals)
        if report.reference_errors is not None:
            self._check(log, report, "Reference eigenvalues", report.reference_errors)

        if report.ordering_violations:
            report.failures.append("ordering")
            log.warning("[WARN] Eigenvalues out of ascending order at indices %s",
                        report.ordering_violations)
        else:
            log.info("[PASS] Eigenvalues in ascending order")

        for ie, order in enumerate(report.convergence_orders):
            if np.isfinite(order):
                log.info("Eigenvalue #%d: observed convergence order %.2f", ie, order)
        return report

    def _check(self, log: logging.Logger, report: ValidationReport, label: str, values: np.ndarray) -> None:
        worst = float(np.max(values)) if values.size else 0.0
        if worst <= self.tolerance:
            log.info("[PASS] %s: max %.3e", label, worst)
        else:
            report.failures.append(label)
            log.warning("[WARN] %s: max %.3e exceeds %.1e", label, worst, self.tolerance)


def _last_order(errors: List[float]) -> float:
    try:
        orders = convergence_order(errors)
    except ValueError:
        return float("nan")
    finite = orders[np.isfinite(orders)]
    return float(finite[-1]) if finite.size else float("nan")
