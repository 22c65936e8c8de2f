"""Reading and writing the whitespace-delimited problem definition file.

Layout::

    <ignored header line>
    <n> <m> <p>
    <K0 row 0: n values>
    ...
    <M[0] row 0: n values>
    ...                      (m mass matrices in total)

After the header the values form a single token stream; line breaks inside
the matrices carry no meaning.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from nleigen.errors import ProblemFileError, ProblemFormatError
from nleigen.operators.polynomial import MatrixPolynomial

_LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class ProblemDefinition:
    """Operators of one structure plus the number of eigenpairs requested."""

    polynomial: MatrixPolynomial
    num_eigenvalues: int
    source: Optional[Path] = None

    @property
    def dimension(self) -> int:
        return self.polynomial.dimension

    @property
    def num_mass_terms(self) -> int:
        return self.polynomial.num_mass_terms

    @property
    def output_directory(self) -> Path:
        """Directory the result files are written to (beside the input)."""
        if self.source is None:
            return Path(".")
        return self.source.parent


def read_problem_file(path: PathLike, *, logger: Optional[logging.Logger] = None) -> ProblemDefinition:
    """Read a problem definition, raising on unreadable or malformed files."""

    log = logger if logger is not None else _LOGGER
    path = Path(path)
    log.info("Reading filedata from %s", path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            text = handle.read()
    except OSError as exc:
        raise ProblemFileError(f"ERROR: Error in opening the file {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ProblemFormatError(f"{path} is not a UTF-8 text file: {exc}") from exc

    problem = parse_problem(text, source=path)
    log.info("n = %d, m = %d, p = %d", problem.dimension,
             problem.num_mass_terms, problem.num_eigenvalues)
    log.debug("Matrix K0 = \n %s", problem.polynomial.stiffness)
    return problem


def parse_problem(text: str, *, source: Optional[Path] = None) -> ProblemDefinition:
    """Parse the contents of a problem definition file.

    Everything after the header line is read as one whitespace-separated
    token stream, so matrix rows may be wrapped over several lines.
    """

    lines = text.splitlines()
    if not lines:
        raise ProblemFormatError("Problem file is empty.")

    # (line number, token) for every token after the header
    tokens: List[Tuple[int, str]] = [
        (number, token)
        for number, line in enumerate(lines[1:], start=2)
        for token in line.split()
    ]
    if len(tokens) < 3:
        raise ProblemFormatError(
            f"Missing the '<n> <m> <p>' values: found {len(tokens)} of 3.")

    try:
        n, m, p = (int(token) for _, token in tokens[:3])
    except ValueError as exc:
        raise ProblemFormatError(
            f"Line {tokens[0][0]}: '<n> <m> <p>' must be integers.") from exc

    if n < 1:
        raise ProblemFormatError(f"Number of degrees of freedom must be positive, got {n}.")
    if m < 1:
        raise ProblemFormatError(f"Number of mass matrices must be positive, got {m}.")
    if p < 0 or p > n:
        raise ProblemFormatError(
            f"Number of eigenvalues must lie in [0, {n}], got {p}.")

    data = tokens[3:]
    expected = n * n * (m + 1)
    if len(data) != expected:
        raise ProblemFormatError(
            f"Expected {expected} matrix values (K0 and {m} mass matrices of size "
            f"{n}x{n}), found {len(data)}.")

    values = np.empty(expected, dtype=float)
    for position, (number, token) in enumerate(data):
        try:
            values[position] = float(token)
        except ValueError as exc:
            raise ProblemFormatError(
                f"Line {number}: non-numeric value {token!r}.") from exc

    matrices = values.reshape(m + 1, n, n)
    try:
        polynomial = MatrixPolynomial(matrices[0], tuple(matrices[1:]))
    except ValueError as exc:
        raise ProblemFormatError(str(exc)) from exc
    return ProblemDefinition(polynomial=polynomial, num_eigenvalues=p, source=source)


def write_problem_file(
        path: PathLike,
        stiffness: np.ndarray,
        mass_terms: Sequence[np.ndarray],
        num_eigenvalues: int,
        *,
        header: str = "nleigen problem definition",
) -> Path:
    """Write matrices in the layout accepted by :func:`read_problem_file`."""

    path = Path(path)
    K0 = np.asarray(stiffness, dtype=float)
    n = K0.shape[0]
    with path.open("w", encoding="utf-8") as handle:
        handle.write(header.replace("\n", " ") + "\n")
        handle.write(f"{n} {len(mass_terms)} {num_eigenvalues}\n")
        for matrix in (K0, *mass_terms):
            for row in np.asarray(matrix, dtype=float):
                handle.write(" ".join(f"{value:.17g}" for value in row) + "\n")
    return path
