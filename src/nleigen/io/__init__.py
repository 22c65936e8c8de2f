"""问题文件读取与结果输出。"""

from .cache import CachedSolution, SolverResultCache, file_digest
from .problem_file import (
    ProblemDefinition,
    parse_problem,
    read_problem_file,
    write_problem_file,
)
from .results import read_results, write_results

__all__ = [
    "ProblemDefinition",
    "parse_problem",
    "read_problem_file",
    "write_problem_file",
    "write_results",
    "read_results",
    "SolverResultCache",
    "CachedSolution",
    "file_digest",
]
