"""Phi.dat / Omega.dat output files."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from nleigen.errors import ProblemFormatError, ResultWriteError

_LOGGER = logging.getLogger(__name__)

PHI_FILENAME = "Phi.dat"
OMEGA_FILENAME = "Omega.dat"
VALUE_FORMAT = "%.12e"


def write_results(
        directory: Union[str, Path],
        omegas: np.ndarray,
        phi: np.ndarray,
        *,
        logger: Optional[logging.Logger] = None,
) -> Tuple[Path, Path]:
    """Write the eigenvectors and eigenvalues beside the input file.

    Both files are opened before anything is written, so an unwritable
    destination leaves no partial output from this call.
    """
    log = logger if logger is not None else _LOGGER
    directory = Path(directory)
    omegas = np.asarray(omegas, dtype=float).reshape(-1)
    phi = np.asarray(phi, dtype=float)
    if phi.ndim != 2 or phi.shape[1] != omegas.size:
        raise ValueError("phi must be an (n, p) matrix matching the eigenvalues.")
    n, p = phi.shape

    phi_path = directory / PHI_FILENAME
    omega_path = directory / OMEGA_FILENAME
    try:
        with phi_path.open("w", encoding="utf-8") as out1, \
                omega_path.open("w", encoding="utf-8") as out2:
            out1.write(f"{n} {p}\n")
            if p > 0:
                for row in phi:
                    out1.write(" ".join(VALUE_FORMAT % value for value in row) + "\n")

            out2.write(f"{p}\n")
            for value in omegas:
                out2.write(VALUE_FORMAT % value + "\n")
    except OSError as exc:
        raise ResultWriteError(f"ERROR: Error in opening the file: {exc}") from exc

    log.info("Results written to %s and %s", phi_path, omega_path)
    return phi_path, omega_path


def read_results(directory: Union[str, Path]) -> Tuple[np.ndarray, np.ndarray]:
    """Load ``(omegas, phi)`` written by :func:`write_results`."""

    directory = Path(directory)
    phi_lines = (directory / PHI_FILENAME).read_text(encoding="utf-8").split("\n")
    omega_lines = (directory / OMEGA_FILENAME).read_text(encoding="utf-8").split()

    try:
        n, p = (int(token) for token in phi_lines[0].split())
        count = int(omega_lines[0])
        phi_values = [float(token) for line in phi_lines[1:] for token in line.split()]
        omegas = np.asarray([float(token) for token in omega_lines[1:]], dtype=float)
    except ValueError as exc:
        raise ProblemFormatError(f"Malformed result files in {directory}.") from exc

    if count != p or omegas.size != p or len(phi_values) != n * p:
        raise ProblemFormatError(f"Inconsistent result files in {directory}.")
    phi = np.asarray(phi_values, dtype=float).reshape(n, p)
    return omegas, phi
