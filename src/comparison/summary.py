"""
Fitted model summaries.

A summary is a read-only mapping from fixed-effect coefficient name to its
point estimate and standard error, as reported by a model-fitting library.
"""

import logging
import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import NamedTuple

import numpy as np
import pandas as pd

from src.comparison.errors import InvalidStandardErrorError, MissingCoefficientError

logger = logging.getLogger(__name__)


class Coefficient(NamedTuple):
    """Point estimate and standard error of a single coefficient."""

    point: float
    se: float


def validate_coefficient(name: str, value) -> Coefficient:
    """
    Coerce ``value`` into a Coefficient and check it.

    Parameters
    ----------
    name : str
        Coefficient name, used in error messages.
    value : Coefficient or tuple
        Pair of (point estimate, standard error).

    Returns
    -------
    Coefficient

    Raises
    ------
    InvalidStandardErrorError
        If the estimate is not finite, or the standard error is negative or
        not finite.
    """
    try:
        point, se = value
        point, se = float(point), float(se)
    except (TypeError, ValueError) as e:
        raise InvalidStandardErrorError(
            f"Coefficient '{name}' must be a (point, se) pair of numbers, got {value!r}"
        ) from e

    if not math.isfinite(point):
        raise InvalidStandardErrorError(f"Coefficient '{name}' has non-finite estimate {point}")
    if not math.isfinite(se):
        raise InvalidStandardErrorError(f"Coefficient '{name}' has non-finite standard error {se}")
    if se < 0:
        raise InvalidStandardErrorError(
            f"Coefficient '{name}' has negative standard error {se}; "
            "this indicates a problem with the model fit"
        )

    return Coefficient(point, se)


class FittedModelSummary(Mapping):
    """Immutable mapping of coefficient name to :class:`Coefficient`."""

    def __init__(self, coefficients):
        if isinstance(coefficients, FittedModelSummary):
            coefficients = coefficients._coefficients

        validated = {}
        for name, value in dict(coefficients).items():
            validated[str(name)] = validate_coefficient(str(name), value)

        self._coefficients = MappingProxyType(validated)

    def __getitem__(self, name):
        try:
            return self._coefficients[name]
        except KeyError:
            raise MissingCoefficientError(name, self._coefficients.keys()) from None

    def __iter__(self):
        return iter(self._coefficients)

    def __len__(self):
        return len(self._coefficients)

    def __repr__(self):
        return f"FittedModelSummary({dict(self._coefficients)!r})"

    @property
    def names(self) -> list[str]:
        return list(self._coefficients)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, estimate_col: str = "estimate", se_col: str = "se"):
        """
        Build a summary from a DataFrame indexed by coefficient name.

        Parameters
        ----------
        df : pd.DataFrame
            One row per coefficient.
        estimate_col : str, optional
            Column holding point estimates. Defaults to "estimate".
        se_col : str, optional
            Column holding standard errors. Defaults to "se".

        Raises
        ------
        ValueError
            If either column is missing.
        """
        missing = [c for c in (estimate_col, se_col) if c not in df.columns]
        if missing:
            raise ValueError(f"DataFrame is missing columns: {missing}")

        return cls(
            {name: (row[estimate_col], row[se_col]) for name, row in df.iterrows()}
        )

    @classmethod
    def from_results(cls, results):
        """
        Build a summary from a fitted statsmodels results object.

        Mixed models expose fixed effects separately (``fe_params`` /
        ``bse_fe``) from the variance parameters, so those are preferred
        when present.
        """
        if hasattr(results, "fe_params"):
            params = results.fe_params
            bse = results.bse_fe
        else:
            params = results.params
            bse = results.bse

        names = list(params.index)
        points = np.asarray(params, dtype=float)
        # bse_fe is not always a labelled Series, so match by position
        ses = np.asarray(bse, dtype=float)[: len(names)]

        logger.debug(f"Extracted {len(names)} fixed-effect coefficients from {type(results).__name__}")

        return cls({name: (p, s) for name, p, s in zip(names, points, ses)})

    @classmethod
    def from_dict(cls, data: dict):
        """Inverse of :meth:`to_dict`."""
        return cls({name: (entry["estimate"], entry["se"]) for name, entry in data.items()})

    def to_dict(self) -> dict:
        return {
            name: {"estimate": c.point, "se": c.se} for name, c in self._coefficients.items()
        }

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            [(name, c.point, c.se) for name, c in self._coefficients.items()],
            columns=["coefficient", "estimate", "se"],
        )
        return df.set_index("coefficient")
