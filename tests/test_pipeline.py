import pandas as pd
import pytest
from dataclasses import replace

from conftest import make_separable_articles
from fakenews_ensemble.config import PipelineConfig
from fakenews_ensemble.preprocessing.data_loader import NewsDataLoader, split_dataset
from fakenews_ensemble.preprocessing.feature_pipeline import (
    fit_feature_params,
    load_feature_params,
    save_feature_params,
    transform_records,
)
from fakenews_ensemble.training.train_classical import main, run_pipeline
from fakenews_ensemble.utils.errors import (
    ConfigError,
    DegenerateFieldError,
    UnknownCategoryError,
)

CENTERED = PipelineConfig(degenerate_field_policy="center")


@pytest.fixture
def separable_records(separable_articles):
    return NewsDataLoader(verbose=False).prepare_records(separable_articles)


def test_separable_signal_is_learned_end_to_end(separable_records):
    result = run_pipeline(separable_records, CENTERED, verbose=False)

    labels = separable_records.loc[result.val_ids, "label"]
    assert sorted(labels.tolist()) == [0, 0, 1, 1]

    f1_scores = result.evaluator.f1_table()["f1"]
    expected = {
        "logistic_regression", "knn", "decision_tree", "naive_bayes",
        "ensemble_average", "ensemble_weighted_average",
        "ensemble_stacked", "ensemble_boosted",
    }
    assert set(f1_scores.index) == expected
    for name, score in f1_scores.items():
        assert score == 1.0, name


def test_constant_fields_fail_without_centering(separable_records):
    with pytest.raises(DegenerateFieldError):
        run_pipeline(separable_records, PipelineConfig(), verbose=False)


def test_split_matches_seed(separable_records):
    result = run_pipeline(separable_records, CENTERED, verbose=False)
    train, val = split_dataset(separable_records, 0.8, seed=123)

    assert result.train_ids.equals(train.index)
    assert result.val_ids.equals(val.index)
    assert len(result.train_ids) == 16 and len(result.val_ids) == 4


def test_feature_params_fit_on_training_split_only(records):
    result = run_pipeline(records, verbose=False)
    train = records.loc[result.train_ids]

    params = result.feature_params.normalization
    assert params.mean("trust_score") == pytest.approx(train["trust_score"].mean())
    assert params.mean("trust_score") != pytest.approx(records["trust_score"].mean())


def test_probabilities_cover_validation_records(records):
    result = run_pipeline(records, verbose=False)
    for proba in result.probabilities.values():
        assert proba.index.equals(result.val_ids)


def test_validation_features_use_frozen_params(records):
    train, val = split_dataset(records, 0.8, seed=123)
    params = fit_feature_params(train, verbose=False)

    first = transform_records(params, val)
    shifted = val.assign(trust_score=val["trust_score"] + 1000)
    transform_records(params, shifted)
    second = transform_records(params, val)

    pd.testing.assert_frame_equal(first, second)
    assert list(first.columns) == list(params.feature_columns)


def test_unseen_category_in_validation_gets_fallback(records):
    train, val = split_dataset(records, 0.8, seed=123)
    params = fit_feature_params(train, verbose=False)

    val = val.copy()
    val.iloc[0, val.columns.get_loc("source")] = "Brand New Outlet"
    features = transform_records(params, val)
    assert features["source"].iloc[0] == 0.0


def test_unseen_category_in_small_field(records):
    train, val = split_dataset(records, 0.8, seed=123)
    val = val.copy()
    val.iloc[0, val.columns.get_loc("category")] = "Science"

    lenient = fit_feature_params(train, unknown_policy="fallback", verbose=False)
    features = transform_records(lenient, val)
    assert features["category"].iloc[0] == -1.0
    assert features["category"].iloc[1:].ge(0).all()

    strict = fit_feature_params(train, unknown_policy="error", verbose=False)
    with pytest.raises(UnknownCategoryError) as excinfo:
        transform_records(strict, val)
    assert excinfo.value.field == "category"


def test_feature_params_save_and_load(records, tmp_path):
    train, val = split_dataset(records, 0.8, seed=123)
    params = fit_feature_params(train, verbose=False)

    path = save_feature_params(params, tmp_path / "params.joblib")
    loaded = load_feature_params(path)

    pd.testing.assert_frame_equal(
        transform_records(params, val), transform_records(loaded, val)
    )


def test_unknown_ensemble_member(records):
    config = replace(CENTERED, ensemble_members=("logistic_regression", "svm"))
    with pytest.raises(ConfigError):
        run_pipeline(records, config, verbose=False)


def test_unnormalized_weights_rejected_in_pipeline(records):
    config = replace(CENTERED, ensemble_weights={
        "logistic_regression": 0.5, "decision_tree": 0.3, "knn": 0.1
    })
    with pytest.raises(ConfigError):
        run_pipeline(records, config, verbose=False)


@pytest.mark.parametrize("changes", [
    {"train_fraction": 1.0},
    {"threshold": -0.1},
    {"stacking_holdout_fraction": 0.0},
    {"degenerate_field_policy": "ignore"},
    {"knn_k_grid": ()},
])
def test_invalid_config(records, changes):
    with pytest.raises(ConfigError):
        run_pipeline(records, replace(PipelineConfig(), **changes), verbose=False)


def test_cli_runs_and_saves(tmp_path, monkeypatch, capsys):
    from fakenews_ensemble import config
    from fakenews_ensemble.models import classical_models
    from fakenews_ensemble.preprocessing import feature_pipeline
    from fakenews_ensemble.training import train_classical

    monkeypatch.setattr(train_classical, "RESULTS_DIR", tmp_path / "results")
    monkeypatch.setattr(classical_models, "SAVED_MODELS_DIR", tmp_path / "models")
    monkeypatch.setattr(feature_pipeline, "SAVED_MODELS_DIR", tmp_path / "models")

    path = tmp_path / "articles.csv"
    make_separable_articles().to_csv(path, index=False)

    exit_code = main([
        "--data", str(path), "--center-constant-fields", "--save"
    ])

    assert exit_code == 0
    f1 = pd.read_csv(tmp_path / "results" / "f1_scores.csv", index_col=0)
    assert (f1["f1"] == 1.0).all()
    assert (tmp_path / "results" / "prediction_comparison.csv").exists()
    assert (tmp_path / "models" / "feature_params.joblib").exists()
    assert (tmp_path / "models" / "knn.joblib").exists()
    assert "Best model (by F1)" in capsys.readouterr().out
    assert config.RESULTS_DIR != tmp_path / "results"


def test_cli_reports_failing_stage(tmp_path, capsys):
    path = tmp_path / "articles.csv"
    make_separable_articles().to_csv(path, index=False)

    assert main(["--data", str(path)]) == 1
    assert "[normalizer] field=" in capsys.readouterr().out
