import json
import logging
import pathlib

from pydantic import BaseModel, ConfigDict, Field

from src.comparison.summary import FittedModelSummary

logger = logging.getLogger(__name__)

# ---------- Coefficient ----------


class CoefficientEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    estimate: float = Field(allow_inf_nan=False)
    se: float = Field(ge=0, allow_inf_nan=False)


# ---------- Root Schema ----------


class SummaryFile(BaseModel):
    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    model: str | None = None
    formula: str | None = None
    coefficients: dict[str, CoefficientEntry] = Field(min_length=1)

    def to_summary(self) -> FittedModelSummary:
        return FittedModelSummary(
            {name: (c.estimate, c.se) for name, c in self.coefficients.items()}
        )


def load_summary_file(path):
    """
    Read and validate a fitted model summary stored as JSON.

    Expected layout::

        {
            "model": "ols",
            "formula": "weight ~ C(diet)",
            "coefficients": {"Intercept": {"estimate": 10.0, "se": 2.0}, ...}
        }

    Returns
    -------
    tuple of (SummaryFile, FittedModelSummary)

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    pydantic.ValidationError
        If the file does not match the schema.
    """
    path = pathlib.Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Summary file not found: {path}")

    with open(path) as f:
        data = json.load(f)

    parsed = SummaryFile.model_validate(data)
    logger.debug(f"Loaded {len(parsed.coefficients)} coefficients from {path.name}")
    return parsed, parsed.to_summary()
