"""Unit tests for database operations."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import src.database.operations as operations
from src.database.models import Base, FitStatus, ModelFit, ModelKind

COEFFICIENTS = {"Intercept": {"estimate": 10.0, "se": 2.0}, "x": {"estimate": 1.5, "se": 0.2}}


@pytest.fixture
def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    TestSession = sessionmaker(bind=engine, expire_on_commit=False)
    return TestSession


@pytest.fixture
def session(test_db):
    """Provide a database session for testing."""
    session = test_db()
    yield session
    session.close()


@pytest.fixture
def patched_operations(test_db, monkeypatch):
    """Point the operations module at the in-memory database."""
    monkeypatch.setattr(operations, "SessionLocal", test_db)
    return operations


class TestModelFitModel:
    """Tests for the ModelFit model."""

    def test_create_successful_fit(self, session):
        model_fit = ModelFit(
            source="/data/diet.csv",
            formula="weight ~ C(diet)",
            kind=ModelKind.OLS,
            status=FitStatus.SUCCESS,
            coefficients_json=COEFFICIENTS,
            aic=123.4,
        )
        session.add(model_fit)
        session.commit()

        result = session.query(ModelFit).first()
        assert result.source == "/data/diet.csv"
        assert result.status == FitStatus.SUCCESS
        assert result.coefficients_json["x"]["se"] == 0.2
        assert result.fitted_at is not None

    def test_create_failed_fit(self, session):
        model_fit = ModelFit(
            source="/data/diet.csv",
            formula="weight ~ C(diet)",
            kind=ModelKind.MIXED,
            group_column="site",
            status=FitStatus.FAILED,
            error_msg="Singular matrix",
        )
        session.add(model_fit)
        session.commit()

        result = session.query(ModelFit).first()
        assert result.status == FitStatus.FAILED
        assert result.coefficients_json is None
        assert "Singular" in result.error_msg


class TestOperations:
    """Tests for add/get operations against an in-memory database."""

    def test_add_and_get_by_id(self, patched_operations):
        record = patched_operations.add_model_fit(
            source="a.csv",
            formula="y ~ x",
            kind=ModelKind.OLS,
            status=FitStatus.SUCCESS,
            coefficients_json=COEFFICIENTS,
        )

        fetched = patched_operations.get_model_fit_by_id(record.id)
        assert fetched.formula == "y ~ x"
        assert fetched.coefficients_json == COEFFICIENTS

    def test_add_updates_existing(self, patched_operations):
        first = patched_operations.add_model_fit(
            source="a.csv",
            formula="y ~ x",
            kind=ModelKind.OLS,
            status=FitStatus.FAILED,
            error_msg="boom",
        )
        second = patched_operations.add_model_fit(
            source="a.csv",
            formula="y ~ x",
            kind=ModelKind.OLS,
            status=FitStatus.SUCCESS,
            coefficients_json=COEFFICIENTS,
            aic=10.0,
        )

        assert first.id == second.id
        assert len(patched_operations.get_all_model_fits()) == 1
        assert second.error_msg is None

    def test_same_formula_different_kind(self, patched_operations):
        for kind in (ModelKind.OLS, ModelKind.MIXED):
            patched_operations.add_model_fit(
                source="a.csv", formula="y ~ x", kind=kind, status=FitStatus.SUCCESS
            )

        assert patched_operations.get_model_fit("a.csv", "y ~ x", ModelKind.MIXED) is not None
        assert len(patched_operations.get_all_model_fits(kind=ModelKind.OLS)) == 1

    def test_filter_by_status(self, patched_operations):
        patched_operations.add_model_fit(
            source="a.csv", formula="y ~ x", kind=ModelKind.OLS, status=FitStatus.SUCCESS
        )
        patched_operations.add_model_fit(
            source="b.csv", formula="y ~ x", kind=ModelKind.OLS, status=FitStatus.FAILED
        )

        successes = patched_operations.get_all_model_fits(status=FitStatus.SUCCESS)
        assert len(successes) == 1
        assert successes[0].source == "a.csv"

    def test_unknown_id_returns_none(self, patched_operations):
        assert patched_operations.get_model_fit_by_id(999) is None


class TestEnums:
    """Tests for status and kind enums."""

    def test_create_from_value(self):
        assert FitStatus("success") == FitStatus.SUCCESS
        assert FitStatus("failed") == FitStatus.FAILED
        assert ModelKind("ols") == ModelKind.OLS
        assert ModelKind("mixed") == ModelKind.MIXED
