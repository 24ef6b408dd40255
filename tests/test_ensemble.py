import numpy as np
import pandas as pd
import pytest

from fakenews_ensemble.models.ensemble import (
    BoostedEnsemble,
    StackedEnsemble,
    align_probabilities,
    average_probabilities,
    decide,
    run_all_strategies,
    weighted_average_probabilities,
)
from fakenews_ensemble.utils.errors import (
    ConfigError,
    DimensionMismatchError,
    InsufficientDataError,
    NotFittedError,
)

THREE_MODELS = {
    "logistic_regression": [0.9, 0.2, 0.6],
    "decision_tree": [1.0, 0.0, 1.0],
    "knn": [1, 0, 1],
}


@pytest.fixture
def validation_probabilities():
    """Three models over 12 articles; knn is deliberately noisy."""
    ids = [f"v{i}" for i in range(12)]
    labels = pd.Series([1, 0] * 6, index=ids)
    lr = pd.Series(np.where(labels == 1, 0.8, 0.3), index=ids)
    tree = pd.Series(labels.astype(float), index=ids)
    knn = pd.Series([1.0, 1.0] * 6, index=ids)
    return {"logistic_regression": lr, "decision_tree": tree, "knn": knn}, labels


def test_unweighted_average_values():
    average = average_probabilities(THREE_MODELS)
    assert average.tolist() == pytest.approx([0.967, 0.067, 0.867], abs=5e-4)
    assert decide(average).tolist() == [1, 0, 1]


def test_weights_not_summing_to_one_are_rejected():
    with pytest.raises(ConfigError) as excinfo:
        weighted_average_probabilities(
            THREE_MODELS,
            {"logistic_regression": 0.5, "decision_tree": 0.3, "knn": 0.1}
        )
    assert "sum to 1.0" in str(excinfo.value)


def test_weighted_average_values():
    weighted = weighted_average_probabilities(
        THREE_MODELS,
        {"logistic_regression": 0.5, "decision_tree": 0.3, "knn": 0.2}
    )
    assert weighted.tolist() == pytest.approx([0.95, 0.1, 0.8])


@pytest.mark.parametrize("weights", [
    {"logistic_regression": 1.2, "decision_tree": -0.2, "knn": 0.0},
    {"logistic_regression": 0.5, "decision_tree": 0.5},
    {"logistic_regression": 0.4, "decision_tree": 0.3, "knn": 0.2, "naive_bayes": 0.1},
])
def test_invalid_weights(weights):
    with pytest.raises(ConfigError):
        weighted_average_probabilities(THREE_MODELS, weights)


def test_threshold_is_configurable():
    average = average_probabilities(THREE_MODELS)
    assert decide(average, threshold=0.9).tolist() == [1, 0, 0]
    with pytest.raises(ConfigError):
        decide(average, threshold=1.5)


def test_length_mismatch():
    with pytest.raises(DimensionMismatchError) as excinfo:
        average_probabilities({"a": [0.1, 0.2], "b": [0.3]})
    assert excinfo.value.field == "b"


def test_different_articles_mismatch():
    a = pd.Series([0.1, 0.2], index=["x", "y"])
    b = pd.Series([0.3, 0.4], index=["x", "z"])
    with pytest.raises(DimensionMismatchError):
        average_probabilities({"a": a, "b": b})


def test_duplicate_ids_mismatch():
    a = pd.Series([0.1, 0.2], index=["x", "x"])
    with pytest.raises(DimensionMismatchError):
        average_probabilities({"a": a})


def test_alignment_by_id_not_position():
    a = pd.Series([0.2, 0.8], index=["x", "y"])
    b = pd.Series([1.0, 0.0], index=["y", "x"])
    frame = align_probabilities({"a": a, "b": b})

    assert frame.loc["x"].tolist() == [0.2, 0.0]
    assert average_probabilities({"a": a, "b": b}).loc["y"] == pytest.approx(0.9)


def test_stacked_in_sample(validation_probabilities):
    probabilities, labels = validation_probabilities
    result = StackedEnsemble().fit_predict(probabilities, labels)

    assert result.probabilities.index.equals(labels.index)
    assert result.labels.tolist() == labels.tolist()


def test_stacked_nested_holdout_predicts_only_holdout(validation_probabilities):
    probabilities, labels = validation_probabilities
    result = StackedEnsemble(holdout_fraction=0.25, seed=1).fit_predict(
        probabilities, labels
    )
    # 12 records: 9 for meta-training, 3 held out
    assert len(result.labels) == 3
    assert set(result.labels.index) < set(labels.index)


def test_boosted_meta_learner(validation_probabilities):
    probabilities, labels = validation_probabilities
    model = BoostedEnsemble(n_rounds=150)
    result = model.fit_predict(probabilities, labels)

    assert len(model.model.estimators_) == 150
    assert ((result.probabilities > 0) & (result.probabilities < 1)).all()
    assert result.labels.tolist() == labels.tolist()


def test_meta_learner_needs_both_classes(validation_probabilities):
    probabilities, labels = validation_probabilities
    with pytest.raises(InsufficientDataError):
        StackedEnsemble().fit(probabilities, pd.Series(1, index=labels.index))


def test_meta_learner_predict_before_fit():
    with pytest.raises(NotFittedError):
        BoostedEnsemble().predict_probability(THREE_MODELS)


def test_meta_learner_labels_must_align(validation_probabilities):
    probabilities, labels = validation_probabilities
    with pytest.raises(DimensionMismatchError):
        StackedEnsemble().fit(probabilities, labels.iloc[:-1])


def test_bad_holdout_fraction():
    with pytest.raises(ConfigError):
        StackedEnsemble(holdout_fraction=1.0)


def test_run_all_strategies(validation_probabilities):
    probabilities, labels = validation_probabilities
    results = run_all_strategies(
        probabilities,
        labels,
        weights={"logistic_regression": 0.5, "decision_tree": 0.3, "knn": 0.2},
        verbose=False
    )
    assert set(results) == {"average", "weighted_average", "stacked", "boosted"}
    for result in results.values():
        assert result.labels.tolist() == labels.tolist()
