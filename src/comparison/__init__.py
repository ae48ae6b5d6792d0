"""Pairwise comparison of fixed-effect coefficients from fitted models."""

from src.comparison.comparator import (
    Z_95,
    ComparisonResult,
    compare,
    compare_all,
    comparisons_to_frame,
    critical_value_for,
)
from src.comparison.errors import (
    ComparisonError,
    IdenticalCoefficientsError,
    InvalidStandardErrorError,
    MissingCoefficientError,
)
from src.comparison.plotting import plot_comparisons
from src.comparison.report import ReportCollector, generate_markdown_report
from src.comparison.summary import Coefficient, FittedModelSummary

__all__ = [
    # Summaries
    "Coefficient",
    "FittedModelSummary",
    # Comparator
    "ComparisonResult",
    "compare",
    "compare_all",
    "comparisons_to_frame",
    "critical_value_for",
    "Z_95",
    # Errors
    "ComparisonError",
    "IdenticalCoefficientsError",
    "InvalidStandardErrorError",
    "MissingCoefficientError",
    # Output
    "plot_comparisons",
    "ReportCollector",
    "generate_markdown_report",
]
