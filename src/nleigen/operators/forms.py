"""Quadratic and bilinear forms of dense operators."""
from __future__ import annotations

import numpy as np


def quadratic_form(vector: np.ndarray, operator_matrix: np.ndarray) -> float:
    """计算 ``v^T A v``。"""

    op_vec = operator_matrix @ vector
    value = vector.conj().T @ op_vec
    return float(np.real_if_close(value))


def bilinear_form(left: np.ndarray, operator_matrix: np.ndarray, right: np.ndarray) -> float:
    """计算 ``u^T A v``。"""

    value = left.conj().T @ (operator_matrix @ right)
    return float(np.real_if_close(value))
