import logging

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)


def _plot_observations(ax, df, outcome, x, group=None):
    """Scatter the raw measurements, coloured by group if given."""
    if group is None:
        ax.scatter(df[x], df[outcome], alpha=0.5, s=15, color="tab:gray", label="Observed")
        return

    for level, sub in df.groupby(group, sort=True):
        ax.scatter(sub[x], sub[outcome], alpha=0.5, s=15, label=str(level))


def _plot_fitted_lines(ax, df, x, fitted, group=None):
    """
    Draw fitted values as lines ordered along ``x``.

    Parameters
    ----------
    ax : matplotlib.axes.Axes
        Axes object to plot on.
    df : pd.DataFrame
        Data the model was fitted on.
    x : str
        Column on the horizontal axis.
    fitted : np.ndarray
        Fitted value for each row of ``df``.
    group : str, optional
        Draw one line per level of this column.
    """
    df = df.assign(_fitted=fitted)

    if group is None:
        ordered = df.sort_values(x)
        ax.plot(ordered[x], ordered["_fitted"], "r-", linewidth=2, label="Fitted")
        return

    for _, sub in df.groupby(group, sort=True):
        ordered = sub.sort_values(x)
        ax.plot(ordered[x], ordered["_fitted"], "-", linewidth=1.5, alpha=0.8)


def plot_model_predictions(df, outcome: str, x: str, results, group: str = None, save_path: str = None):
    """
    Plot observations with the model's fitted values.

    For random-intercept fits with ``group`` given, one line per group is
    drawn from the fitted values, which include each group's intercept.

    Parameters
    ----------
    df : pd.DataFrame
        Data the model was fitted on.
    outcome : str
        Outcome column (vertical axis).
    x : str
        Predictor column (horizontal axis).
    results : statsmodels results
        Fitted model; its ``fittedvalues`` must align with ``df``.
    group : str, optional
        Grouping column for coloured points and per-group lines.
    save_path : str, optional
        Path to save the plot image. If None, displays the plot interactively.

    Raises
    ------
    ValueError
        If a column is missing or fitted values do not match the data.
    """
    columns = [outcome, x] + ([group] if group else [])
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}")

    fitted = np.asarray(results.fittedvalues)
    if len(fitted) != len(df):
        raise ValueError(
            f"Model has {len(fitted)} fitted values but data has {len(df)} rows; "
            "pass the data the model was fitted on"
        )

    fig, ax = plt.subplots(figsize=(7, 5))

    _plot_observations(ax, df, outcome, x, group=group)
    _plot_fitted_lines(ax, df, x, fitted, group=group)

    ax.set_xlabel(x)
    ax.set_ylabel(outcome)
    ax.set_title(f"Model predictions: {outcome} vs {x}")
    if group is None or df[group].nunique() <= 10:
        ax.legend(fontsize=8)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        logger.info(f"Plot saved to {save_path}")
    else:
        plt.show()
