import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Enum, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class FitStatus(enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


class ModelKind(enum.Enum):
    OLS = "ols"
    MIXED = "mixed"


class ModelFit(Base):
    __tablename__ = "model_fits"
    __table_args__ = (UniqueConstraint("source", "formula", "kind", name="uq_source_formula_kind"),)

    id = Column(Integer, primary_key=True)
    source = Column(Text, index=True, nullable=False)  # Data file the model was fitted on
    formula = Column(Text, nullable=False)
    kind = Column(Enum(ModelKind), nullable=False)
    group_column = Column(String)  # Random-intercept grouping (mixed only)
    status = Column(Enum(FitStatus), nullable=False)
    fitted_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    coefficients_json = Column(JSON)  # {name: {"estimate", "se"}} (null if failed)
    aic = Column(Float)
    error_msg = Column(Text)  # Error message if failed
