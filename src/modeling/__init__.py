"""Model fitting on measurement tables."""

from src.modeling.data import load_table, parse_formula_columns
from src.modeling.fitting import (
    KIND_MIXED,
    KIND_OLS,
    FitOutcome,
    VarianceDecomposition,
    compare_aic,
    fit_linear_model,
    fit_model,
    fit_random_intercept_model,
    model_aic,
    variance_decomposition,
)
from src.modeling.plotting import plot_model_predictions
from src.modeling.schema import CoefficientEntry, SummaryFile, load_summary_file

__all__ = [
    # Data loading
    "load_table",
    "parse_formula_columns",
    # Fitting
    "KIND_MIXED",
    "KIND_OLS",
    "FitOutcome",
    "VarianceDecomposition",
    "compare_aic",
    "fit_linear_model",
    "fit_model",
    "fit_random_intercept_model",
    "model_aic",
    "variance_decomposition",
    # Plotting
    "plot_model_predictions",
    # Summary files
    "CoefficientEntry",
    "SummaryFile",
    "load_summary_file",
]
