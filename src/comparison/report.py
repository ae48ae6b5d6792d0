"""
Report generation for coefficient comparisons.

This module collects comparison results for one or more fitted models and
renders them as a single Markdown report.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pandas as pd

from src.comparison.comparator import comparisons_to_frame

logger = logging.getLogger(__name__)


@dataclass
class ModelReport:
    """Comparison results for a single fitted model."""

    model_id: str
    source: str
    formula: str = None
    kind: str = None
    aic: float = None
    coefficients: pd.DataFrame = None
    comparisons: list = field(default_factory=list)
    plot_path: str = None
    error: str = None

    @property
    def n_excluding_zero(self) -> int:
        return sum(1 for r in self.comparisons if r.excludes_zero)


class ReportCollector:
    """Collects comparison results from multiple models for report generation."""

    def __init__(self):
        self.results: list[ModelReport] = []

    def add_result(
        self,
        model_id: str,
        source: str,
        formula: str = None,
        kind: str = None,
        aic: float = None,
        summary=None,
        comparisons=None,
        plot_path: str = None,
        error: str = None,
    ):
        """
        Add comparison results for a model.

        Parameters
        ----------
        model_id : str
            Unique identifier for the model.
        source : str
            Data file or summary file the model came from.
        formula : str, optional
            Model formula.
        kind : str, optional
            Model kind ("ols" or "mixed").
        aic : float, optional
            Akaike Information Criterion of the fit.
        summary : FittedModelSummary, optional
            Fixed-effect coefficients of the model.
        comparisons : iterable of ComparisonResult, optional
            Output of compare_all().
        plot_path : str, optional
            Path to saved forest plot.
        error : str, optional
            Error message if the analysis failed.
        """
        result = ModelReport(
            model_id=model_id,
            source=source,
            formula=formula,
            kind=kind,
            aic=aic,
            error=error,
        )

        if not error:
            if summary is not None:
                result.coefficients = summary.to_frame()
            result.comparisons = list(comparisons or [])
            result.plot_path = plot_path

        self.results.append(result)

    def get_summary_stats(self) -> dict:
        """
        Calculate summary statistics across all models.

        Returns
        -------
        dict
            Counts of models, failures and comparisons.
        """
        successful = [r for r in self.results if r.error is None]
        n_comparisons = sum(len(r.comparisons) for r in successful)
        n_excluding_zero = sum(r.n_excluding_zero for r in successful)

        return {
            "total_models": len(self.results),
            "successful_analyses": len(successful),
            "failed_analyses": len(self.results) - len(successful),
            "total_comparisons": n_comparisons,
            "comparisons_excluding_zero": n_excluding_zero,
            "excluding_zero_rate": n_excluding_zero / n_comparisons if n_comparisons else 0,
        }


def _format_float(value, fmt=".4f"):
    return "-" if value is None else format(value, fmt)


def generate_markdown_report(collector: ReportCollector, output_path: str) -> str:
    """
    Generate a Markdown report from collected comparison results.

    Parameters
    ----------
    collector : ReportCollector
        Collector containing comparison results.
    output_path : str
        Path to save the Markdown report.

    Returns
    -------
    str
        Path to the generated report.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    stats = collector.get_summary_stats()
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    lines = []

    # Header
    lines.append("# Coefficient Comparison Report")
    lines.append("")
    lines.append(f"**Generated:** {timestamp}")
    lines.append("")

    # Summary section
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- **Models analyzed:** {stats['total_models']}")
    lines.append(f"- **Successful analyses:** {stats['successful_analyses']}")
    lines.append(f"- **Failed analyses:** {stats['failed_analyses']}")
    lines.append(f"- **Pairwise comparisons:** {stats['total_comparisons']}")
    lines.append(
        f"- **Intervals excluding zero:** {stats['comparisons_excluding_zero']} "
        f"({stats['excluding_zero_rate']:.1%})"
    )
    lines.append("")
    lines.append(
        "_Intervals pool standard errors assuming independent coefficient "
        "estimates; correlated estimates can make them too wide or too narrow._"
    )
    lines.append("")

    # Results table
    lines.append("## Results Overview")
    lines.append("")
    lines.append("| ID | Formula | Kind | AIC | Comparisons | Excluding zero | Status |")
    lines.append("|:---|:--------|:-----|:----|:------------|:---------------|:-------|")

    for r in collector.results:
        formula_display = r.formula or r.source
        if len(formula_display) > 40:
            formula_display = formula_display[:37] + "..."

        if r.error:
            lines.append(f"| {r.model_id} | {formula_display} | {r.kind or '-'} | - | - | - | Error |")
        else:
            lines.append(
                f"| {r.model_id} | {formula_display} | {r.kind or '-'} | "
                f"{_format_float(r.aic, '.2f')} | {len(r.comparisons)} | "
                f"{r.n_excluding_zero} | OK |"
            )

    lines.append("")

    # Detailed results section
    lines.append("## Detailed Results")
    lines.append("")

    for r in collector.results:
        lines.append(f"### Model {r.model_id}")
        lines.append("")
        lines.append(f"**Source:** {r.source}")
        lines.append("")
        if r.formula:
            lines.append(f"**Formula:** `{r.formula}`")
            lines.append("")

        if r.error:
            lines.append(f"**Error:** {r.error}")
            lines.append("")
            continue

        if r.coefficients is not None and not r.coefficients.empty:
            lines.append("**Fixed effects:**")
            lines.append("")
            lines.append("| Coefficient | Estimate | SE |")
            lines.append("|:------------|---------:|---:|")
            for name, row in r.coefficients.iterrows():
                lines.append(f"| {name} | {row['estimate']:.4f} | {row['se']:.4f} |")
            lines.append("")

        if r.comparisons:
            df = comparisons_to_frame(r.comparisons, sort_by="name")
            lines.append("**Pairwise comparisons (comparison - base):**")
            lines.append("")
            lines.append("| Base | Comparison | Estimate | Interval |")
            lines.append("|:-----|:-----------|---------:|:-------------|")
            for _, row in df.iterrows():
                marker = " *" if row["excludes_zero"] else ""
                lines.append(
                    f"| {row['base']} | {row['comparison']} | {row['estimate']:.4f}{marker} | "
                    f"[{row['lower_bound']:.4f}, {row['upper_bound']:.4f}] |"
                )
            lines.append("")

        # Plot
        if r.plot_path:
            # Use relative path from report location
            plot_rel_path = Path(r.plot_path).name
            lines.append(
                f'<img src="figures/{plot_rel_path}" alt="Comparisons for model {r.model_id}" height="300">'
            )
            lines.append("")

    # Write report
    report_content = "\n".join(lines)
    output_path.write_text(report_content)

    logger.info(f"Report generated: {output_path}")
    return str(output_path)
