from src.database.models import Base, FitStatus, ModelFit, ModelKind
from src.database.operations import (
    add_model_fit,
    get_all_model_fits,
    get_model_fit,
    get_model_fit_by_id,
    init_db,
)
from src.database.session import SessionLocal, engine

__all__ = [
    # Models
    "Base",
    "FitStatus",
    "ModelFit",
    "ModelKind",
    # Session
    "engine",
    "SessionLocal",
    # Model fit operations
    "add_model_fit",
    "get_all_model_fits",
    "get_model_fit",
    "get_model_fit_by_id",
    # Database init
    "init_db",
]
