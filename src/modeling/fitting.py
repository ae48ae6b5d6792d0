import logging
import math
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from statsmodels.regression.mixed_linear_model import MixedLMResults
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from src.comparison.summary import FittedModelSummary

logger = logging.getLogger(__name__)

KIND_OLS = "ols"
KIND_MIXED = "mixed"


@dataclass
class FitOutcome:
    """A fitted model together with its fixed-effect summary."""

    kind: str
    formula: str
    group: str | None
    results: object
    summary: FittedModelSummary

    @property
    def aic(self) -> float:
        return model_aic(self.results)


@dataclass(frozen=True)
class VarianceDecomposition:
    """Split of outcome variance into between-group and residual parts."""

    group_variance: float
    residual_variance: float

    @property
    def icc(self) -> float:
        """Intraclass correlation: share of variance explained by group."""
        total = self.group_variance + self.residual_variance
        return self.group_variance / total if total > 0 else float("nan")


def fit_linear_model(df: pd.DataFrame, formula: str):
    """
    Fit an ordinary least squares model.

    Parameters
    ----------
    df : pd.DataFrame
        Measurement table.
    formula : str
        Patsy formula, e.g. ``"weight ~ height + C(sex)"``.

    Returns
    -------
    statsmodels.regression.linear_model.RegressionResultsWrapper
    """
    results = smf.ols(formula, data=df).fit()
    logger.info(
        f"Fitted OLS '{formula}' on {int(results.nobs)} observations: "
        f"R²={results.rsquared:.3f}, AIC={model_aic(results):.2f}"
    )
    return results


def fit_random_intercept_model(df: pd.DataFrame, formula: str, group: str, reml: bool = False):
    """
    Fit a linear mixed model with a random intercept per group.

    Parameters
    ----------
    df : pd.DataFrame
        Measurement table.
    formula : str
        Patsy formula for the fixed effects.
    group : str
        Column identifying the groups that get their own intercept.
    reml : bool, optional
        Fit by restricted maximum likelihood. Defaults to False, since AIC is
        only defined for maximum likelihood fits.

    Returns
    -------
    statsmodels.regression.mixed_linear_model.MixedLMResults

    Raises
    ------
    ValueError
        If ``group`` is not a column of ``df`` or has fewer than two levels.
    """
    if group not in df.columns:
        raise ValueError(f"Group column '{group}' not found in data")

    n_groups = df[group].nunique()
    if n_groups < 2:
        raise ValueError(f"Group column '{group}' needs at least 2 levels, found {n_groups}")

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        results = smf.mixedlm(formula, data=df, groups=df[group]).fit(reml=reml)

    for w in caught:
        if issubclass(w.category, ConvergenceWarning):
            logger.warning(f"Mixed model '{formula}' | {group}: {w.message}")
        else:
            warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)

    logger.info(
        f"Fitted random-intercept model '{formula}' with {n_groups} levels of '{group}' "
        f"({'REML' if reml else 'ML'}), converged={results.converged}"
    )
    return results


def fit_model(df: pd.DataFrame, formula: str, group: str = None, reml: bool = False) -> FitOutcome:
    """
    Fit a linear model, or a random-intercept model when ``group`` is given.

    Returns
    -------
    FitOutcome
        The fitted results and their fixed-effect summary.
    """
    if group:
        results = fit_random_intercept_model(df, formula, group, reml=reml)
        kind = KIND_MIXED
    else:
        results = fit_linear_model(df, formula)
        kind = KIND_OLS

    summary = FittedModelSummary.from_results(results)
    return FitOutcome(kind=kind, formula=formula, group=group, results=results, summary=summary)


def _is_mixed(results) -> bool:
    # statsmodels returns results behind a wrapper class
    return isinstance(getattr(results, "_results", results), MixedLMResults)


def variance_decomposition(results) -> VarianceDecomposition:
    """
    Decompose variance of a random-intercept fit.

    Raises
    ------
    TypeError
        If ``results`` is not a mixed model fit.
    """
    if isinstance(results, FitOutcome):
        results = results.results
    if not _is_mixed(results):
        raise TypeError(
            f"Variance decomposition needs a mixed model fit, got {type(results).__name__}"
        )

    group_variance = float(np.asarray(results.cov_re)[0, 0])
    residual_variance = float(results.scale)
    return VarianceDecomposition(group_variance=group_variance, residual_variance=residual_variance)


def _n_params(results) -> int:
    if _is_mixed(results):
        # fixed effects + random-effect covariance + residual variance
        return int(results.model.k_fe + results.model.k_re2 + 1)
    return len(results.params) + 1


def model_aic(results) -> float:
    """
    AIC as ``-2 * loglik + 2 * n_params``, counting the residual variance.

    statsmodels counts parameters differently for OLS and mixed fits, so the
    AIC is recomputed here to keep the two comparable.

    Raises
    ------
    ValueError
        If ``results`` is a REML fit, whose likelihood is not comparable.
    """
    if _is_mixed(results) and getattr(results, "method", "ML") == "REML":
        raise ValueError("AIC is undefined for REML fits; refit with reml=False")
    return float(-2 * results.llf + 2 * _n_params(results))


def compare_aic(fits) -> pd.DataFrame:
    """
    Rank fitted models by AIC.

    Parameters
    ----------
    fits : Mapping[str, results or FitOutcome]
        Fitted models keyed by a display label.

    Returns
    -------
    pd.DataFrame
        Indexed by label, with columns "aic", "delta_aic" (difference to the
        best model) and "n_params", sorted by ascending AIC.

    Raises
    ------
    ValueError
        If no fits are given, or a fit is REML or has a non-finite AIC.
    """
    if not fits:
        raise ValueError("No fitted models to compare")

    rows = []
    for label, results in fits.items():
        if isinstance(results, FitOutcome):
            results = results.results
        try:
            aic = model_aic(results)
        except ValueError as e:
            raise ValueError(f"Model '{label}': {e}") from e
        if not math.isfinite(aic):
            raise ValueError(f"Model '{label}' has no finite AIC")
        rows.append((label, aic, _n_params(results)))

    df = pd.DataFrame(rows, columns=["model", "aic", "n_params"]).set_index("model")
    df["delta_aic"] = df["aic"] - df["aic"].min()
    df = df.sort_values("aic", kind="stable")[["aic", "delta_aic", "n_params"]]

    logger.info(f"Best model by AIC: {df.index[0]} (AIC={df['aic'].iloc[0]:.2f})")
    return df
