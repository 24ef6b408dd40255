import pandas as pd
import pytest

from fakenews_ensemble.evaluation.metrics import (
    ModelEvaluator,
    confusion_counts,
    f1_score_from_counts,
)
from fakenews_ensemble.utils.errors import DimensionMismatchError


def test_confusion_counts_real_is_positive():
    predicted = [1, 1, 0, 0, 1, 0]
    actual = [1, 0, 0, 1, 1, 0]
    counts = confusion_counts(predicted, actual)

    assert (counts.tp, counts.fp, counts.tn, counts.fn) == (2, 1, 2, 1)
    assert counts.total == 6


def test_confusion_counts_single_level_present():
    counts = confusion_counts([0, 0, 0], [0, 0, 0])
    assert (counts.tp, counts.fp, counts.tn, counts.fn) == (0, 0, 3, 0)


def test_confusion_counts_length_mismatch():
    with pytest.raises(DimensionMismatchError):
        confusion_counts([1, 0], [1])


def test_f1_with_few_true_positives():
    f1 = f1_score_from_counts(tp=3, fp=3, fn=394)
    assert f1 == pytest.approx(2 * 0.5 * (3 / 397) / (0.5 + 3 / 397))
    assert round(f1, 4) == 0.0149


def test_f1_is_zero_when_nothing_is_right():
    assert f1_score_from_counts(0, 0, 0) == 0.0
    assert f1_score_from_counts(0, 5, 7) == 0.0


def test_f1_perfect():
    assert f1_score_from_counts(4, 0, 0) == 1.0


@pytest.fixture
def evaluator():
    ids = ["a", "b", "c", "d"]
    actual = pd.Series([1, 0, 1, 0], index=ids)
    evaluator = ModelEvaluator()
    evaluator.evaluate_model("perfect", actual, actual.copy())
    evaluator.evaluate_model("always_real", actual, pd.Series(1, index=ids))
    # nested-holdout style: only part of the articles
    evaluator.evaluate_model("partial", actual, pd.Series([1, 1], index=["c", "d"]))
    return evaluator


def test_evaluate_model_metrics(evaluator):
    always_real = evaluator.results["always_real"]
    assert always_real["confusion_matrix"] == {"tp": 2, "fp": 2, "tn": 0, "fn": 0}
    assert always_real["metrics"]["precision"] == 0.5
    assert always_real["metrics"]["recall"] == 1.0
    assert always_real["metrics"]["f1"] == pytest.approx(2 / 3)
    assert evaluator.results["partial"]["n_samples"] == 2


def test_best_model_and_rankings(evaluator):
    assert evaluator.get_best_model("f1") == "perfect"
    assert evaluator.compare_models()["rankings"]["f1"][0] == "perfect"


def test_f1_table(evaluator):
    table = evaluator.f1_table()
    assert list(table.columns) == ["f1"]
    assert table.index[0] == "perfect"
    assert table.loc["perfect", "f1"] == 1.0


def test_comparison_table(evaluator):
    table = evaluator.comparison_table()

    assert table.index.name == "id"
    assert table["actual"].tolist() == [1, 0, 1, 0]
    assert table["always_real_correct"].tolist() == [True, False, True, False]
    assert table["perfect_pred"].tolist() == [1, 0, 1, 0]
    assert table["partial_pred"].isna().tolist() == [True, True, False, False]
    assert table.loc["d", "partial_correct"] == False  # noqa: E712


def test_predictions_for_unknown_articles(evaluator):
    actual = pd.Series([1, 0], index=["a", "b"])
    with pytest.raises(DimensionMismatchError):
        evaluator.evaluate_model("bad", actual, pd.Series([1], index=["z"]))


def test_to_dataframe_has_counts(evaluator):
    frame = evaluator.to_dataframe()
    assert {"accuracy", "precision", "recall", "f1", "tp", "fp", "tn", "fn"} <= set(frame.columns)


def test_evaluate_model_counts_once(monkeypatch):
    from fakenews_ensemble.evaluation import metrics

    calls = []
    original = metrics.confusion_counts

    def counting(predicted, actual):
        calls.append(len(predicted))
        return original(predicted, actual)

    monkeypatch.setattr(metrics, "confusion_counts", counting)
    actual = pd.Series([1, 0, 1], index=["a", "b", "c"])
    results = ModelEvaluator().evaluate_model("m", actual, pd.Series([1, 1, 1], index=actual.index))

    assert calls == [3]
    assert results["metrics"]["precision"] == pytest.approx(2 / 3)


def test_compute_metrics_matches_counts():
    evaluator = ModelEvaluator()
    counts = confusion_counts([1, 0, 0], [1, 1, 0])
    assert evaluator.compute_metrics([1, 1, 0], [1, 0, 0]) == evaluator.metrics_from_counts(counts)
