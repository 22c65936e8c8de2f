"""Observed convergence rate of the outer iteration."""
from __future__ import annotations

from typing import Sequence

import numpy as np


def convergence_order(errors: Sequence[float]) -> np.ndarray:
    """Estimate ``q`` in ``e_{k+1} ~ C e_k^q`` from successive relative errors.

    ``q_k = log(e_{k+1} / e_k) / log(e_k / e_{k-1})``; entries whose errors
    are zero or whose denominator vanishes are ``nan``.
    """
    errors = np.asarray(errors, dtype=float)
    if errors.size < 3:
        raise ValueError("At least 3 errors are needed to estimate a convergence order.")
    orders = []
    for idx in range(2, errors.size):
        e0, e1, e2 = errors[idx - 2], errors[idx - 1], errors[idx]
        if min(e0, e1, e2) <= 0.0:
            orders.append(np.nan)
            continue
        denominator = np.log(e1 / e0)
        if np.isclose(denominator, 0.0):
            orders.append(np.nan)
        else:
            orders.append(np.log(e2 / e1) / denominator)
    return np.asarray(orders, dtype=float)
