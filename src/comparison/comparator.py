import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass
from itertools import permutations

import pandas as pd
from scipy.stats import norm

from src.comparison.errors import (
    ComparisonError,
    IdenticalCoefficientsError,
    MissingCoefficientError,
)
from src.comparison.summary import validate_coefficient

logger = logging.getLogger(__name__)

# Two-sided 95% normal critical value
Z_95 = 1.96


def critical_value_for(confidence: float) -> float:
    """Two-sided normal critical value for a confidence level in (0, 1)."""
    if not 0 < confidence < 1:
        raise ValueError(f"confidence must be between 0 and 1, got {confidence}")
    return float(norm.ppf(1 - (1 - confidence) / 2))


@dataclass(frozen=True)
class ComparisonResult:
    """Difference ``comparison - base`` between two coefficients with a Wald interval."""

    base: str
    comparison: str
    estimate: float
    lower_bound: float
    upper_bound: float
    pooled_se: float

    @property
    def half_width(self) -> float:
        return (self.upper_bound - self.lower_bound) / 2

    @property
    def excludes_zero(self) -> bool:
        return self.lower_bound > 0 or self.upper_bound < 0


def _lookup(summary, name):
    try:
        value = summary[name]
    except KeyError:
        raise MissingCoefficientError(name, list(summary)) from None
    return validate_coefficient(name, value)


def compare(summary, base_name, comparison_name, critical_value: float = Z_95):
    """
    Compare two fixed-effect coefficients from the same fitted model.

    The standard error of the difference is pooled as
    ``sqrt(se_base**2 + se_comparison**2)``, which treats the two estimators
    as independent. Fixed-effect estimates are usually correlated (strongly
    so for correlated predictors, or for an intercept and a slope), so the
    interval width can be misstated. The covariance term is not included.

    Parameters
    ----------
    summary : Mapping
        FittedModelSummary, or any mapping of name to (point, se).
    base_name : str
        Coefficient subtracted from the comparison coefficient.
    comparison_name : str
        Coefficient the base is subtracted from.
    critical_value : float, optional
        Normal critical value for the interval. Defaults to 1.96 (95%).

    Returns
    -------
    ComparisonResult

    Raises
    ------
    IdenticalCoefficientsError
        If both names are the same.
    MissingCoefficientError
        If either name is absent from ``summary``.
    InvalidStandardErrorError
        If a standard error is negative or not finite.
    """
    if base_name == comparison_name:
        raise IdenticalCoefficientsError(
            f"Cannot compare coefficient '{base_name}' with itself"
        )
    if not (math.isfinite(critical_value) and critical_value >= 0):
        raise ValueError(f"critical_value must be finite and non-negative, got {critical_value}")

    base = _lookup(summary, base_name)
    other = _lookup(summary, comparison_name)

    estimate = other.point - base.point
    pooled_se = math.sqrt(other.se**2 + base.se**2)
    margin = critical_value * pooled_se

    logger.debug(
        f"{comparison_name} - {base_name}: estimate={estimate:.4f}, "
        f"pooled_se={pooled_se:.4f} (independence assumed)"
    )

    return ComparisonResult(
        base=base_name,
        comparison=comparison_name,
        estimate=estimate,
        lower_bound=estimate - margin,
        upper_bound=estimate + margin,
        pooled_se=pooled_se,
    )


def compare_all(
    summary,
    names=None,
    on_error: str = "raise",
    critical_value: float = Z_95,
) -> Iterator[ComparisonResult]:
    """
    Lazily compare every ordered pair of distinct coefficients.

    N names yield N*(N-1) results. Enumeration order follows
    ``itertools.permutations`` and carries no meaning; sort the results
    explicitly for display.

    Parameters
    ----------
    summary : Mapping
        FittedModelSummary, or any mapping of name to (point, se).
    names : iterable of str, optional
        Coefficients to compare. Defaults to all names in ``summary``.
        Duplicates are ignored.
    on_error : {"raise", "skip"}, optional
        With "skip", a pair that fails is logged and left out while the
        remaining pairs are still produced.
    critical_value : float, optional
        Passed through to :func:`compare`.

    Yields
    ------
    ComparisonResult
    """
    if on_error not in ("raise", "skip"):
        raise ValueError(f"on_error must be 'raise' or 'skip', got {on_error!r}")

    names = list(summary) if names is None else list(dict.fromkeys(names))
    logger.warning(
        "Intervals pool standard errors assuming independent coefficient estimates; "
        "covariance between estimates is ignored"
    )

    for base_name, comparison_name in permutations(names, 2):
        try:
            yield compare(summary, base_name, comparison_name, critical_value=critical_value)
        except ComparisonError as e:
            if on_error == "raise":
                raise
            logger.warning(f"Skipping comparison {comparison_name} - {base_name}: {e}")


def comparisons_to_frame(results, sort_by: str = None) -> pd.DataFrame:
    """
    Tabulate comparison results.

    Parameters
    ----------
    results : iterable of ComparisonResult
    sort_by : {"estimate", "name"}, optional
        Sort rows by estimate (descending) or by (base, comparison) name.
        If None, input order is kept.

    Returns
    -------
    pd.DataFrame
        Columns: base, comparison, estimate, se, lower_bound, upper_bound,
        excludes_zero.
    """
    columns = ["base", "comparison", "estimate", "se", "lower_bound", "upper_bound", "excludes_zero"]
    rows = [
        (
            r.base,
            r.comparison,
            r.estimate,
            r.pooled_se,
            r.lower_bound,
            r.upper_bound,
            r.excludes_zero,
        )
        for r in results
    ]
    df = pd.DataFrame(rows, columns=columns)

    if sort_by is None:
        return df
    if sort_by == "estimate":
        return df.sort_values("estimate", ascending=False, kind="stable").reset_index(drop=True)
    if sort_by == "name":
        return df.sort_values(["base", "comparison"], kind="stable").reset_index(drop=True)
    raise ValueError(f"sort_by must be 'estimate', 'name' or None, got {sort_by!r}")
