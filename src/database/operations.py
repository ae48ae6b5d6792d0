from datetime import datetime, timezone

from src.database.models import Base, FitStatus, ModelFit, ModelKind
from src.database.session import SessionLocal, engine


def init_db() -> None:
    """Initialize the database, creating tables if they don't exist."""
    Base.metadata.create_all(engine)


# ─────────────────────────────────────────────────────────────────────────────
# Model fit operations
# ─────────────────────────────────────────────────────────────────────────────


def get_model_fit_by_id(fit_id: int) -> ModelFit | None:
    """Look up a model fit by its database ID."""
    with SessionLocal() as session:
        return session.query(ModelFit).filter(ModelFit.id == fit_id).first()


def get_model_fit(source: str, formula: str, kind: ModelKind) -> ModelFit | None:
    """
    Look up a model fit by data source, formula and model kind.

    Args:
        source: Path to the data file
        formula: Model formula
        kind: ModelKind.OLS or ModelKind.MIXED

    Returns:
        ModelFit record if found, None otherwise
    """
    with SessionLocal() as session:
        return (
            session.query(ModelFit)
            .filter(ModelFit.source == source, ModelFit.formula == formula, ModelFit.kind == kind)
            .first()
        )


def get_all_model_fits(
    status: FitStatus | None = None,
    kind: ModelKind | None = None,
) -> list[ModelFit]:
    """
    Get all model fits, optionally filtered by status and/or kind.

    Args:
        status: Filter by fit status (SUCCESS or FAILED)
        kind: Filter by model kind

    Returns:
        List of ModelFit records, newest first
    """
    with SessionLocal() as session:
        query = session.query(ModelFit)
        if status is not None:
            query = query.filter(ModelFit.status == status)
        if kind is not None:
            query = query.filter(ModelFit.kind == kind)
        return query.order_by(ModelFit.fitted_at.desc()).all()


def add_model_fit(
    source: str,
    formula: str,
    kind: ModelKind,
    status: FitStatus,
    group_column: str | None = None,
    coefficients_json: dict | None = None,
    aic: float | None = None,
    error_msg: str | None = None,
) -> ModelFit:
    """
    Add or update a model fit record in the database.

    Args:
        source: Path to the data file
        formula: Model formula
        kind: ModelKind.OLS or ModelKind.MIXED
        status: FitStatus.SUCCESS or FitStatus.FAILED
        group_column: Grouping column of a random-intercept model
        coefficients_json: Fixed-effect summary (if successful)
        aic: Akaike Information Criterion (if available)
        error_msg: Error message (if failed)

    Returns:
        The created or updated ModelFit record
    """
    with SessionLocal() as session:
        existing = (
            session.query(ModelFit)
            .filter(ModelFit.source == source, ModelFit.formula == formula, ModelFit.kind == kind)
            .first()
        )

        if existing:
            existing.status = status
            existing.fitted_at = datetime.now(timezone.utc)
            existing.group_column = group_column
            existing.coefficients_json = coefficients_json
            existing.aic = aic
            existing.error_msg = error_msg
            session.commit()
            session.refresh(existing)
            return existing
        else:
            model_fit = ModelFit(
                source=source,
                formula=formula,
                kind=kind,
                status=status,
                group_column=group_column,
                fitted_at=datetime.now(timezone.utc),
                coefficients_json=coefficients_json,
                aic=aic,
                error_msg=error_msg,
            )
            session.add(model_fit)
            session.commit()
            session.refresh(model_fit)
            return model_fit
