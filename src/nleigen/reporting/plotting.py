"""绘制外层迭代的收敛历史。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import matplotlib.pyplot as plt
import numpy as np

from nleigen.solver.jacobi_davidson import IterationRecord


@dataclass
class ConvergencePlotter:
    """Relative error against iteration, one line per eigenvalue index."""

    floor: float = 1e-18

    def plot(self, history: Iterable[IterationRecord], *, title: str = "Jacobi-Davidson convergence", output_path: str | None = None):
        records = list(history)
        fig, ax = plt.subplots(figsize=(8, 5))

        for index in sorted({record.index for record in records}):
            own = [record for record in records if record.index == index]
            iterations = np.asarray([record.iteration for record in own], dtype=float)
            errors = np.asarray([record.relative_error for record in own], dtype=float)
            ax.semilogy(iterations, np.maximum(errors, self.floor),
                        marker="o", lw=1.6, label=f"eigenvalue #{index}")

        ax.set_xlabel("iteration")
        ax.set_ylabel("relative error")
        ax.set_title(title)
        if records:
            ax.legend()
        ax.grid(True, linestyle="--", alpha=0.4)

        if output_path:
            fig.savefig(output_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return fig


def plot_convergence_history(history: Iterable[IterationRecord], *, title: str = "Jacobi-Davidson convergence", output_path: str | None = None):
    """便捷函数，内部调用 :class:`ConvergencePlotter`。"""
    plotter = ConvergencePlotter()
    return plotter.plot(history, title=title, output_path=output_path)
