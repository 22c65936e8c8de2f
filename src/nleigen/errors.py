"""Error taxonomy shared by the solver, the problem reader and the CLI."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class Severity(enum.Enum):
    """Whether a condition must stop the run or can be tolerated."""

    FATAL = "fatal"
    RECOVERABLE = "recoverable"


class NLEigenError(Exception):
    """Base class for conditions raised by nleigen."""

    severity = Severity.FATAL


class ProblemFileError(NLEigenError, OSError):
    """The problem definition file cannot be opened."""


class ResultWriteError(NLEigenError, OSError):
    """An output file cannot be opened or written."""


class ProblemFormatError(NLEigenError, ValueError):
    """The problem definition is malformed."""


class IndefiniteMassError(NLEigenError, ArithmeticError):
    """The frequency-dependent mass quadratic form is not positive."""

    def __init__(self, index: int, value: float) -> None:
        super().__init__(
            f"Negative mass matrix: phi^T Mn phi = {value:.6e} for eigenvalue #{index}")
        self.index = index
        self.value = value


class DegenerateBasisError(NLEigenError, ArithmeticError):
    """A deflation vector became linearly dependent on the earlier ones."""


@dataclass
class Diagnostic:
    """A condition detected during a solve, tagged with its severity."""

    severity: Severity
    code: str
    message: str
    index: Optional[int] = None

    @property
    def fatal(self) -> bool:
        return self.severity is Severity.FATAL
