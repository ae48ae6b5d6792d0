"""Tests for prediction plots."""

import matplotlib

matplotlib.use("Agg")

import pytest

from src.modeling.fitting import fit_model
from src.modeling.plotting import plot_model_predictions
from tests.modeling.generate_synthetic_data import generate_synthetic_data


@pytest.fixture(scope="module")
def data():
    return generate_synthetic_data(seed=3, num_groups=4, per_group=12)


@pytest.mark.parametrize("group", [None, "site"])
def test_plot_model_predictions_saves_figure(tmp_path, data, group):
    outcome = fit_model(data, "weight ~ height", group=group)

    save_path = tmp_path / "predictions.png"
    plot_model_predictions(
        data, "weight", "height", outcome.results, group=group, save_path=str(save_path)
    )

    assert save_path.exists()
    assert save_path.stat().st_size > 0


def test_missing_column_raises(data):
    outcome = fit_model(data, "weight ~ height")
    with pytest.raises(ValueError, match="age"):
        plot_model_predictions(data, "weight", "age", outcome.results)


def test_mismatched_data_raises(data):
    outcome = fit_model(data, "weight ~ height")
    with pytest.raises(ValueError, match="fitted values"):
        plot_model_predictions(data.head(5), "weight", "height", outcome.results)
