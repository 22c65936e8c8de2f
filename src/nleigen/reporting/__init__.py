"""结果可视化。"""

from .plotting import ConvergencePlotter, plot_convergence_history

__all__ = ["ConvergencePlotter", "plot_convergence_history"]
