"""Command-line driver: read a problem file, solve, write Phi.dat/Omega.dat."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from nleigen.diagnostics import configure_logging, get_logger
from nleigen.errors import NLEigenError
from nleigen.io import SolverResultCache, file_digest, read_problem_file, write_results
from nleigen.reporting import plot_convergence_history
from nleigen.solver import (
    JacobiDavidsonConfig,
    JacobiDavidsonSolver,
    LinearSolverConfig,
)
from nleigen.validation import ModalValidator

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_RECOVERABLE = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Solve the frequency-dependent eigenproblem K(w) phi = w^2 M(w) phi.")
    parser.add_argument("input", type=Path,
                        help="Problem definition file; results are written beside it.")
    parser.add_argument("--num-eigenvalues", type=int, default=None,
                        help="Override the number of eigenpairs requested in the file.")
    parser.add_argument("--tol", type=float, default=1e-12,
                        help="Relative eigenvalue change that ends the outer iteration.")
    parser.add_argument("--max-iter", type=int, default=20,
                        help="Outer iteration budget per eigenvalue.")
    parser.add_argument("--seed", type=int, default=0,
                        help="Seed of the start-vector generator.")
    parser.add_argument("--basis-tol", type=float, default=1e-12,
                        help="Relative norm below which a deflation vector counts as dependent.")
    parser.add_argument("--linear-method", choices=["gmres", "bicgstab", "cg", "minres"], default="gmres",
                        help="Krylov method for the correction equation.")
    parser.add_argument("--linear-tol", type=float, default=1e-12,
                        help="Absolute residual tolerance of the correction solve.")
    parser.add_argument("--linear-maxiter", type=int, default=None,
                        help="Total Krylov iterations per correction solve (default: 2 * n).")
    parser.add_argument("--preconditioner", choices=["jacobi", "none"], default="jacobi",
                        help="Preconditioner of the correction solve.")
    parser.add_argument("--strict", action="store_true",
                        help="Exit with status 2 when any eigenvalue or inner solve did not converge.")
    parser.add_argument("--validate", action="store_true",
                        help="Check normalization, orthogonality and residuals after the solve.")
    parser.add_argument("--reference-check", action="store_true",
                        help="Also compare against a dense direct solution (implies --validate).")
    parser.add_argument("--plot", type=Path, default=None,
                        help="Save the convergence history plot to this path.")
    parser.add_argument("--log-level", default="INFO",
                        help="Logging level (DEBUG, INFO, WARNING, ...).")
    parser.add_argument("--log-file", type=Path, default=None,
                        help="Also write the log to this file.")

    parser.add_argument("--use-cache", dest="use_cache", action="store_true",
                        default=False, help="Load/save cached eigenpairs when available.")
    parser.add_argument("--no-cache", dest="use_cache",
                        action="store_false", help="Disable cache usage for this run (default).")
    parser.add_argument("--refresh-cache", action="store_true",
                        help="Force recomputation even if cached data exist.")
    parser.add_argument("--cache-dir", type=Path, default=Path("cache"),
                        help="Directory used to store cached solver outputs.")
    parser.add_argument("--cache-key", default=None,
                        help="Cache subdirectory name (default: input file stem).")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> JacobiDavidsonConfig:
    linear = LinearSolverConfig(
        method=args.linear_method,
        tolerance=args.linear_tol,
        maxiter=args.linear_maxiter,
        preconditioner=args.preconditioner,
    )
    return JacobiDavidsonConfig(
        num_eigenvalues=args.num_eigenvalues,
        tol=args.tol,
        max_iter=args.max_iter,
        seed=args.seed,
        basis_tolerance=args.basis_tol,
        linear=linear,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        logger = configure_logging(args.log_level, args.log_file)
    except (ValueError, OSError) as exc:
        get_logger().critical("Cannot set up logging: %s", exc)
        return EXIT_FATAL

    try:
        config = build_config(args)
    except ValueError as exc:
        logger.critical("Invalid configuration: %s", exc)
        return EXIT_FATAL

    try:
        problem = read_problem_file(args.input, logger=logger)
    except NLEigenError as exc:
        logger.critical("%s", exc)
        return EXIT_FATAL

    num_eigenvalues = config.num_eigenvalues
    if num_eigenvalues is None:
        num_eigenvalues = problem.num_eigenvalues
    if not 0 <= num_eigenvalues <= problem.dimension:
        logger.critical("Number of eigenvalues must lie in [0, %d], got %d.",
                        problem.dimension, num_eigenvalues)
        return EXIT_FATAL

    metadata = {
        "input_sha256": file_digest(args.input),
        "num_eigenvalues": num_eigenvalues,
        "tol": config.tol,
        "max_iter": config.max_iter,
        "seed": config.seed,
        "basis_tolerance": config.basis_tolerance,
        "linear_method": config.linear.method,
        "linear_tol": config.linear.tolerance,
        "linear_maxiter": config.linear.maxiter,
        "preconditioner": config.linear.preconditioner,
    }
    cache = SolverResultCache(args.cache_dir)
    cache_key = args.cache_key or args.input.stem

    result = None
    if args.use_cache and not args.refresh_cache and cache.available(cache_key, metadata=metadata):
        logger.info("Loading cached eigenpairs '%s' from %s", cache_key, args.cache_dir)
        cached = cache.load(cache_key)
        omegas, phi = cached.omegas, cached.phi
    else:
        logger.info("Initialize the matrices...")
        solver = JacobiDavidsonSolver(problem.polynomial, config, logger=logger)
        try:
            result = solver.solve(num_eigenvalues)
        except NLEigenError as exc:
            logger.critical("%s", exc)
            return EXIT_FATAL
        omegas, phi = result.omegas, result.phi
        if args.use_cache:
            cache.save(cache_key, omegas=omegas, phi=phi,
                       deflation_basis=result.deflation_basis, metadata=metadata)

    try:
        write_results(problem.output_directory, omegas, phi, logger=logger)
    except NLEigenError as exc:
        logger.critical("%s", exc)
        return EXIT_FATAL

    for ie, omega in enumerate(omegas):
        logger.info("Omega[%d] = %.12e", ie, omega)

    if result is None:
        skipped = [flag for flag, given in (
            ("--validate", args.validate),
            ("--reference-check", args.reference_check),
            ("--plot", args.plot is not None),
            ("--strict", args.strict),
        ) if given]
        if skipped:
            logger.warning("Cached eigenpairs carry no iteration history; skipped %s. "
                           "Use --refresh-cache to solve again.", ", ".join(skipped))
        return EXIT_OK

    if args.validate or args.reference_check:
        validator = ModalValidator(compare_reference=args.reference_check, logger=logger)
        validator.validate(problem.polynomial, result)

    if args.plot is not None:
        plot_convergence_history(result.history, output_path=str(args.plot))
        logger.info("Convergence plot saved to %s", args.plot)

    recoverable = result.recoverable_diagnostics
    for diagnostic in recoverable:
        logger.warning("Eigenvalue #%s: %s (%s)", diagnostic.index,
                       diagnostic.code, diagnostic.message)
    if args.strict and recoverable:
        return EXIT_RECOVERABLE
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
