import logging

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)


def _plot_intervals(ax, results):
    """
    Draw one horizontal interval per comparison, with a reference line at zero.

    Parameters
    ----------
    ax : matplotlib.axes.Axes
        Axes object to plot on.
    results : list of ComparisonResult
        Comparisons to draw, top to bottom.
    """
    y = np.arange(len(results))[::-1]

    for pos, r in zip(y, results):
        color = "tab:red" if r.excludes_zero else "tab:blue"
        ax.errorbar(
            r.estimate,
            pos,
            xerr=[[r.estimate - r.lower_bound], [r.upper_bound - r.estimate]],
            fmt="o",
            color=color,
            capsize=3,
            linewidth=1.5,
        )

    ax.axvline(0, color="black", linestyle="--", linewidth=1)
    ax.set_yticks(y)
    ax.set_yticklabels([f"{r.comparison} - {r.base}" for r in results])
    ax.set_xlabel("Difference in coefficient (comparison - base)")
    ax.grid(True, axis="x", alpha=0.3)


def plot_comparisons(results, save_path: str = None, title: str = None):
    """
    Forest plot of pairwise coefficient comparisons.

    Intervals that exclude zero are highlighted in red.

    Parameters
    ----------
    results : iterable of ComparisonResult
        Comparisons to plot, in display order.
    save_path : str, optional
        Path to save the plot image. If None, displays the plot interactively.
    title : str, optional
        Plot title.

    Raises
    ------
    RuntimeError
        If there are no comparisons to plot.
    """
    results = list(results)
    if len(results) == 0:
        raise RuntimeError("No comparisons to plot")

    height = max(3, 0.35 * len(results) + 1)
    fig, ax = plt.subplots(figsize=(7, height))

    _plot_intervals(ax, results)
    ax.set_title(title or "Pairwise coefficient comparisons")

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        logger.info(f"Plot saved to {save_path}")
    else:
        plt.show()
