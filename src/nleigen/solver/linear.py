"""Krylov solve of the Jacobi-Davidson correction equation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.sparse.linalg import LinearOperator, bicgstab, cg, gmres, minres

_METHODS = {"gmres", "bicgstab", "cg", "minres"}
_PRECONDITIONERS = {"jacobi", "none"}

_LOGGER = logging.getLogger(__name__)


@dataclass
class LinearSolverConfig:
    """Configuration for the inner iterative linear solve.

    ``maxiter`` caps the total number of Krylov iterations of one solve
    (for GMRES it is converted into restart cycles).  ``None`` means
    ``2 * n`` iterations, as Eigen's ConjugateGradient does by default.
    """

    method: str = "gmres"
    tolerance: float = 1e-12
    maxiter: Optional[int] = None
    preconditioner: str = "jacobi"
    restart: Optional[int] = None

    def __post_init__(self) -> None:
        self.method = self.method.lower()
        self.preconditioner = self.preconditioner.lower()
        if self.method not in _METHODS:
            raise ValueError(
                f"Unknown linear solver method {self.method!r}; expected one of {sorted(_METHODS)}.")
        if self.preconditioner not in _PRECONDITIONERS:
            raise ValueError(
                f"Unknown preconditioner {self.preconditioner!r}; expected one of {sorted(_PRECONDITIONERS)}.")
        if self.tolerance <= 0.0:
            raise ValueError("tolerance must be positive.")
        if self.maxiter is not None and self.maxiter <= 0:
            raise ValueError("maxiter must be a positive integer.")
        if self.restart is not None and self.restart <= 0:
            raise ValueError("restart must be a positive integer.")

    def iteration_cap(self, n: int) -> int:
        """Total Krylov iterations allowed for an ``n``-dimensional solve."""
        if self.maxiter is not None:
            return self.maxiter
        return max(2 * n, 1)


@dataclass
class CorrectionSolve:
    """Outcome of one correction solve.

    ``converged`` is True exactly when the Krylov method reported success
    (``info == 0``).
    """

    solution: np.ndarray
    converged: bool
    info: int
    iterations: int
    residual_norm: float


def jacobi_preconditioner(A: np.ndarray) -> LinearOperator:
    """Inverse of ``|diag(A)|``; zero diagonal entries are left unscaled."""
    diag = np.abs(np.diag(A)).astype(float)
    scale = float(np.max(diag)) if diag.size else 0.0
    diag = np.where(diag > 1e-14 * max(scale, 1.0), diag, 1.0)
    inv_diag = 1.0 / diag
    n = A.shape[0]
    return LinearOperator((n, n), matvec=lambda r: inv_diag * np.ravel(r), dtype=float)


def solve_correction(
        A: np.ndarray,
        b: np.ndarray,
        *,
        config: Optional[LinearSolverConfig] = None,
        logger: Optional[logging.Logger] = None,
) -> CorrectionSolve:
    """Solve ``A x = b`` iteratively with an absolute residual tolerance."""

    if config is None:
        config = LinearSolverConfig()
    log = logger if logger is not None else _LOGGER

    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    n = A.shape[0]
    if A.shape != (n, n) or b.shape != (n,):
        raise ValueError("A must be square and b must match its dimension.")

    M = jacobi_preconditioner(A) if config.preconditioner == "jacobi" else None
    counter = _IterationCounter()
    cap = config.iteration_cap(n)
    b_norm = float(np.linalg.norm(b))

    if config.method == "gmres":
        restart = config.restart if config.restart is not None else max(n, 1)
        x, info = gmres(A, b, rtol=0.0, atol=config.tolerance, restart=restart,
                        maxiter=max(1, cap // restart), M=M, callback=counter,
                        callback_type="pr_norm")
    elif config.method == "bicgstab":
        x, info = bicgstab(A, b, rtol=0.0, atol=config.tolerance,
                           maxiter=cap, M=M, callback=counter)
    elif config.method == "cg":
        x, info = cg(A, b, rtol=0.0, atol=config.tolerance,
                     maxiter=cap, M=M, callback=counter)
    else:
        # minres only takes a relative tolerance
        rtol = config.tolerance / b_norm if b_norm > 0.0 else config.tolerance
        x, info = minres(A, b, rtol=rtol, maxiter=cap,
                         M=M, callback=counter)

    x = np.asarray(x, dtype=float)
    residual_norm = float(np.linalg.norm(b - A @ x))
    converged = info == 0

    log.debug("#Iteration: %d   Estimated error: %.3e", counter.count, residual_norm)
    if not converged:
        log.warning(
            "The iterative linear solver (%s) did not reach the tolerance %.1e: "
            "info=%d, residual=%.3e", config.method, config.tolerance, info, residual_norm)

    return CorrectionSolve(
        solution=x,
        converged=converged,
        info=int(info),
        iterations=counter.count,
        residual_norm=residual_norm,
    )


class _IterationCounter:
    def __init__(self) -> None:
        self.count = 0

    def __call__(self, _state) -> None:
        self.count += 1
