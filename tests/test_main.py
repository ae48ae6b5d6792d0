"""Unit tests for main.py CLI commands."""

import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import src.database.operations as operations
from main import main
from src.database.models import FitStatus, ModelKind
from tests.modeling.generate_synthetic_data import generate_synthetic_data


@pytest.fixture
def summary_file(tmp_path):
    path = tmp_path / "summary.json"
    path.write_text(
        json.dumps(
            {
                "model": "ols",
                "formula": "weight ~ C(diet)",
                "coefficients": {
                    "A": {"estimate": 10.0, "se": 2.0},
                    "B": {"estimate": 15.0, "se": 3.0},
                    "C": {"estimate": 30.0, "se": 1.0},
                },
            }
        )
    )
    return path


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "measurements.csv"
    generate_synthetic_data(seed=11, num_groups=6, per_group=15).to_csv(path, index=False)
    return path


class TestMainCli:
    """Tests for CLI argument parsing and file-based commands."""

    def test_no_command_prints_help(self, capsys):
        main([])
        captured = capsys.readouterr()
        assert "Coef Compare" in captured.out

    def test_compare_json_prints_all_pairs(self, capsys, summary_file):
        main(["compare", "--json", str(summary_file), "--sort", "name"])
        out = capsys.readouterr().out

        assert "weight ~ C(diet)" in out
        # 3 coefficients -> 6 ordered pairs, one table row each
        assert out.count("True") + out.count("False") == 6

    def test_compare_json_subset(self, capsys, summary_file):
        main(["compare", "--json", str(summary_file), "--names", "A", "C"])
        out = capsys.readouterr().out

        assert out.count("True") + out.count("False") == 2

    def test_compare_json_writes_report(self, tmp_path, summary_file):
        report_path = tmp_path / "out" / "report.md"
        main(
            [
                "compare",
                "--json",
                str(summary_file),
                "--report",
                str(report_path),
                "--report-plots",
            ]
        )

        content = report_path.read_text()
        assert "# Coefficient Comparison Report" in content
        assert (tmp_path / "out" / "figures" / "model_1_comparisons.png").exists()

    def test_compare_missing_path_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["compare", "--json", str(tmp_path / "missing.json")])

    def test_aic_ranks_formulas(self, capsys, data_file):
        main(
            [
                "aic",
                "--data",
                str(data_file),
                "--formula",
                "weight ~ height",
                "--formula",
                "weight ~ height + C(diet)",
            ]
        )
        out = capsys.readouterr().out

        lines = [line for line in out.splitlines() if line.startswith("weight")]
        assert lines[0].startswith("weight ~ height + C(diet)")

    def test_aic_rejects_non_csv(self, tmp_path, summary_file):
        with pytest.raises(SystemExit):
            main(["aic", "--data", str(summary_file), "--formula", "y ~ x"])

    def test_compare_invalid_confidence_exits(self, summary_file):
        with pytest.raises(SystemExit):
            main(["compare", "--json", str(summary_file), "--confidence", "95"])

    def test_compare_prints_independence_note(self, capsys, summary_file):
        main(["compare", "--json", str(summary_file)])
        assert "independent coefficient estimates" in capsys.readouterr().out

    def test_compare_id_and_json_are_exclusive(self, summary_file):
        with pytest.raises(SystemExit):
            main(["compare", "--id", "1", "--json", str(summary_file)])


@pytest.fixture
def fit_db(tmp_path, monkeypatch):
    """Point the database operations at a temporary SQLite file."""
    engine = create_engine(f"sqlite:///{tmp_path / 'fits.sqlite'}")
    TestSession = sessionmaker(bind=engine, expire_on_commit=False)
    monkeypatch.setattr(operations, "engine", engine)
    monkeypatch.setattr(operations, "SessionLocal", TestSession)
    yield operations
    engine.dispose()


class TestFitAndList:
    """Tests for the fit and list commands against a temporary database."""

    def test_fit_stores_success(self, capsys, fit_db, data_file):
        main(["fit", "--data", str(data_file), "--formula", "weight ~ height + C(diet)"])
        out = capsys.readouterr().out
        assert "C(diet)[T.B]" in out

        fits = fit_db.get_all_model_fits()
        assert len(fits) == 1
        assert fits[0].status == FitStatus.SUCCESS
        assert fits[0].kind == ModelKind.OLS
        assert fits[0].aic is not None
        assert "height" in fits[0].coefficients_json

    def test_fit_failure_is_stored(self, fit_db, data_file):
        main(["fit", "--data", str(data_file), "--formula", "weight ~ missing_column"])

        fits = fit_db.get_all_model_fits()
        assert len(fits) == 1
        assert fits[0].status == FitStatus.FAILED
        assert "missing_column" in fits[0].error_msg

    def test_existing_fit_is_skipped_without_force(self, capsys, fit_db, data_file):
        args = ["fit", "--data", str(data_file), "--formula", "weight ~ height"]
        main(args)
        first = fit_db.get_all_model_fits()[0]
        capsys.readouterr()

        main(args)
        assert capsys.readouterr().out == ""
        fits = fit_db.get_all_model_fits()
        assert len(fits) == 1
        assert fits[0].fitted_at == first.fitted_at

        main(args + ["--force"])
        assert "height" in capsys.readouterr().out
        assert len(fit_db.get_all_model_fits()) == 1

    def test_reml_flag_keeps_ols_aic(self, fit_db, data_file):
        main(["fit", "--data", str(data_file), "--formula", "weight ~ height", "--reml"])

        fits = fit_db.get_all_model_fits()
        assert fits[0].kind == ModelKind.OLS
        assert fits[0].aic is not None

    def test_reml_mixed_fit_has_no_aic(self, fit_db, data_file):
        main(
            [
                "fit",
                "--data",
                str(data_file),
                "--formula",
                "weight ~ height",
                "--group",
                "site",
                "--reml",
            ]
        )

        fits = fit_db.get_all_model_fits()
        assert fits[0].kind == ModelKind.MIXED
        assert fits[0].status == FitStatus.SUCCESS
        assert fits[0].aic is None

    def test_list_shows_stored_fits(self, capsys, fit_db, data_file):
        main(["fit", "--data", str(data_file), "--formula", "weight ~ height"])
        main(["fit", "--data", str(data_file), "--formula", "weight ~ missing_column"])
        capsys.readouterr()

        main(["list"])
        out = capsys.readouterr().out
        assert "success" in out
        assert "failed" in out
        assert "Total: 2 model fit(s)" in out

        main(["list", "--status", "failed"])
        out = capsys.readouterr().out
        assert "success" not in out
        assert "Total: 1 model fit(s)" in out

    def test_list_empty_database(self, capsys, fit_db):
        main(["list"])
        assert "No model fits found" in capsys.readouterr().out

    def test_compare_stored_fit_by_id(self, capsys, fit_db, data_file):
        main(["fit", "--data", str(data_file), "--formula", "weight ~ height + C(diet)"])
        fit_id = fit_db.get_all_model_fits()[0].id
        capsys.readouterr()

        main(["compare", "--id", str(fit_id), "--names", "C(diet)[T.B]", "C(diet)[T.C]"])
        out = capsys.readouterr().out
        assert f"Model {fit_id}: weight ~ height + C(diet)" in out
        assert out.count("True") + out.count("False") == 2
