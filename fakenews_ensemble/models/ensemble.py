"""
Ensemble Strategies for Base-Model Probabilities

Combines the per-article P(REAL) vectors of several base models:
- Unweighted average
- Weighted average (static weights that must sum to 1)
- Stacked meta-learner (decision tree over model outputs)
- Boosted meta-learner (gradient boosting over model outputs)

Probability vectors are pandas Series indexed by article id and must
cover exactly the same articles.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingClassifier
from sklearn.tree import DecisionTreeClassifier

from fakenews_ensemble.config import (
    BOOSTING_LEARNING_RATE,
    BOOSTING_MAX_DEPTH,
    BOOSTING_ROUNDS,
    DECISION_THRESHOLD,
    POSITIVE_LABEL,
    RANDOM_SEED,
    STACKING_HOLDOUT_FRACTION,
    STACKING_MAX_DEPTH,
)
from fakenews_ensemble.preprocessing.data_loader import split_dataset
from fakenews_ensemble.utils.errors import (
    ConfigError,
    DimensionMismatchError,
    InsufficientDataError,
    NotFittedError,
)

WEIGHT_TOLERANCE = 1e-6


@dataclass
class EnsembleResult:
    """Output of one combination strategy."""
    name: str
    probabilities: pd.Series
    labels: pd.Series


def decide(probabilities: pd.Series, threshold: float = DECISION_THRESHOLD) -> pd.Series:
    """Label 1 (REAL) where probability >= threshold, else 0."""
    if not 0.0 <= threshold <= 1.0:
        raise ConfigError(f"threshold must be in [0, 1], got {threshold}",
                          field="threshold")
    return (probabilities >= threshold).astype(int)


def align_probabilities(probabilities: Mapping[str, Sequence]) -> pd.DataFrame:
    """
    Check that probability vectors line up one-to-one by article id.

    Plain lists and arrays are accepted and indexed by position.

    Args:
        probabilities: Mapping model name -> probability vector

    Returns:
        DataFrame with one column per model, rows in the order of the
        first model's index

    Raises:
        DimensionMismatchError: Lengths differ, ids repeat, or id sets differ
    """
    if not probabilities:
        raise DimensionMismatchError("No probability vectors supplied")

    series = {}
    for name, values in probabilities.items():
        if not isinstance(values, pd.Series):
            values = pd.Series(np.asarray(values, dtype=float))
        if values.index.has_duplicates:
            raise DimensionMismatchError(
                f"'{name}' has duplicate article ids",
                field=name
            )
        series[name] = values.astype(float)

    names = list(series)
    reference = series[names[0]]
    for name in names[1:]:
        current = series[name]
        if len(current) != len(reference):
            raise DimensionMismatchError(
                f"'{name}' has {len(current)} predictions, "
                f"'{names[0]}' has {len(reference)}",
                field=name
            )
        if not current.index.equals(reference.index):
            if set(current.index) != set(reference.index):
                raise DimensionMismatchError(
                    f"'{name}' and '{names[0]}' cover different articles",
                    field=name
                )
            series[name] = current.reindex(reference.index)

    return pd.DataFrame(series, index=reference.index)


def align_labels(labels: pd.Series, index: pd.Index) -> pd.Series:
    """Reorder true labels to match the prediction index."""
    if not isinstance(labels, pd.Series):
        labels = pd.Series(np.asarray(labels))
    if len(labels) != len(index) or set(labels.index) != set(index):
        raise DimensionMismatchError(
            f"Labels cover {len(labels)} articles, predictions cover {len(index)}",
            field="label"
        )
    return labels.reindex(index).astype(int)


def average_probabilities(probabilities: Mapping[str, Sequence]) -> pd.Series:
    """
    Unweighted mean of the supplied models' probabilities.

    Returns:
        Series of averaged probabilities indexed by article id
    """
    frame = align_probabilities(probabilities)
    return frame.mean(axis=1).rename("average")


def validate_weights(weights: Mapping[str, float], models: Sequence[str]):
    """
    Weights must be non-negative, name exactly the supplied models and
    sum to 1. Nothing is rescaled.

    Raises:
        ConfigError: On any violation
    """
    missing = [m for m in models if m not in weights]
    extra = [w for w in weights if w not in models]
    if missing or extra:
        raise ConfigError(
            f"Weights must cover exactly {list(models)}; "
            f"missing={missing}, unexpected={extra}",
            field="ensemble_weights"
        )

    negative = {m: w for m, w in weights.items() if w < 0}
    if negative:
        raise ConfigError(
            f"Weights must be non-negative: {negative}",
            field="ensemble_weights"
        )

    total = float(sum(weights.values()))
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigError(
            f"Weights must sum to 1.0, got {total:.6g}",
            field="ensemble_weights"
        )


def weighted_average_probabilities(
    probabilities: Mapping[str, Sequence],
    weights: Mapping[str, float]
) -> pd.Series:
    """
    Weighted mean of the supplied models' probabilities.

    Args:
        probabilities: Mapping model name -> probability vector
        weights: Mapping model name -> weight (non-negative, sum 1)

    Returns:
        Series of weighted probabilities indexed by article id
    """
    frame = align_probabilities(probabilities)
    validate_weights(weights, list(frame.columns))

    weight_vector = np.array([weights[name] for name in frame.columns])
    return pd.Series(
        frame.values @ weight_vector,
        index=frame.index,
        name="weighted_average"
    )


class MetaLearnerEnsemble:
    """
    Second-stage learner trained on base-model probabilities.

    With holdout_fraction=None the meta-learner is fit on every record it
    is later asked to predict (in-sample stacking, optimistic by
    construction). With a fraction in (0, 1), a seeded subset of records
    is set aside: the learner is fit on the rest and only the set-aside
    records are predicted.
    """

    name = "meta_learner"

    def __init__(
        self,
        holdout_fraction: Optional[float] = STACKING_HOLDOUT_FRACTION,
        threshold: float = DECISION_THRESHOLD,
        seed: int = RANDOM_SEED
    ):
        if holdout_fraction is not None and not 0.0 < holdout_fraction < 1.0:
            raise ConfigError(
                f"holdout_fraction must be in (0, 1), got {holdout_fraction}",
                field="stacking_holdout_fraction"
            )
        self.holdout_fraction = holdout_fraction
        self.threshold = threshold
        self.seed = seed
        self.model = None
        self.members = None

    def _make_estimator(self):
        raise NotImplementedError

    def split_meta(self, frame: pd.DataFrame):
        """(meta_train, meta_eval) row frames."""
        if self.holdout_fraction is None:
            return frame, frame
        return split_dataset(frame, 1.0 - self.holdout_fraction, self.seed)

    def fit(
        self,
        probabilities: Mapping[str, Sequence],
        labels: pd.Series
    ) -> "MetaLearnerEnsemble":
        """
        Fit on (the meta-train part of) the supplied predictions.

        Args:
            probabilities: Mapping model name -> probability vector
            labels: True 0/1 labels for the same articles
        """
        frame = align_probabilities(probabilities)
        y = align_labels(labels, frame.index)
        meta_train, _ = self.split_meta(frame)
        self._fit_frame(meta_train, y.loc[meta_train.index])
        return self

    def _fit_frame(self, frame: pd.DataFrame, labels: pd.Series):
        classes = np.unique(labels.values)
        if len(frame) == 0 or len(classes) < 2:
            raise InsufficientDataError(
                f"{self.name}: meta-training set needs both classes, "
                f"got {len(frame)} records with classes {classes.tolist()}",
                field=self.name,
                stage="ensemble"
            )
        self.members = list(frame.columns)
        self.model = self._make_estimator()
        self.model.fit(frame.values, labels.values)

    def predict_probability(self, probabilities: Mapping[str, Sequence]) -> pd.Series:
        """P(REAL) from the fitted meta-learner for every supplied record."""
        if self.model is None:
            raise NotFittedError(
                f"{self.name}: meta-learner not trained. Call fit() first.",
                field=self.name
            )
        frame = align_probabilities(probabilities)
        if list(frame.columns) != self.members:
            missing = [m for m in self.members if m not in frame.columns]
            if missing:
                raise DimensionMismatchError(
                    f"{self.name}: missing predictions from {missing}",
                    field=missing[0]
                )
            frame = frame.loc[:, self.members]

        proba = self.model.predict_proba(frame.values)
        column = list(self.model.classes_).index(POSITIVE_LABEL)
        return pd.Series(proba[:, column], index=frame.index, name=self.name)

    def fit_predict(
        self,
        probabilities: Mapping[str, Sequence],
        labels: pd.Series
    ) -> EnsembleResult:
        """
        Fit, then predict the evaluation records.

        Returns:
            EnsembleResult covering every record (in-sample) or only the
            held-out records
        """
        frame = align_probabilities(probabilities)
        y = align_labels(labels, frame.index)
        meta_train, meta_eval = self.split_meta(frame)
        self._fit_frame(meta_train, y.loc[meta_train.index])

        proba = self.predict_probability(
            {name: meta_eval[name] for name in meta_eval.columns}
        )
        return EnsembleResult(
            name=self.name,
            probabilities=proba,
            labels=decide(proba, self.threshold)
        )


class StackedEnsemble(MetaLearnerEnsemble):
    """Decision tree trained on {model outputs} -> label."""

    name = "stacked"

    def __init__(
        self,
        holdout_fraction: Optional[float] = STACKING_HOLDOUT_FRACTION,
        max_depth: Optional[int] = STACKING_MAX_DEPTH,
        threshold: float = DECISION_THRESHOLD,
        seed: int = RANDOM_SEED
    ):
        super().__init__(holdout_fraction, threshold, seed)
        self.max_depth = max_depth

    def _make_estimator(self):
        return DecisionTreeClassifier(
            criterion='gini',
            max_depth=self.max_depth,
            random_state=self.seed
        )


class BoostedEnsemble(MetaLearnerEnsemble):
    """
    Gradient boosting (log-loss) of shallow trees on model outputs.

    Each round fits the residual of the cumulative ensemble; the final
    probability is the sigmoid of the summed tree outputs.
    """

    name = "boosted"

    def __init__(
        self,
        n_rounds: int = BOOSTING_ROUNDS,
        learning_rate: float = BOOSTING_LEARNING_RATE,
        max_depth: int = BOOSTING_MAX_DEPTH,
        holdout_fraction: Optional[float] = STACKING_HOLDOUT_FRACTION,
        threshold: float = DECISION_THRESHOLD,
        seed: int = RANDOM_SEED
    ):
        super().__init__(holdout_fraction, threshold, seed)
        self.n_rounds = n_rounds
        self.learning_rate = learning_rate
        self.max_depth = max_depth

    def _make_estimator(self):
        return GradientBoostingClassifier(
            loss='log_loss',
            n_estimators=self.n_rounds,
            learning_rate=self.learning_rate,
            max_depth=self.max_depth,
            random_state=self.seed
        )


def run_all_strategies(
    probabilities: Mapping[str, Sequence],
    labels: pd.Series,
    weights: Mapping[str, float],
    threshold: float = DECISION_THRESHOLD,
    boosting_rounds: int = BOOSTING_ROUNDS,
    holdout_fraction: Optional[float] = STACKING_HOLDOUT_FRACTION,
    seed: int = RANDOM_SEED,
    verbose: bool = True
) -> Dict[str, EnsembleResult]:
    """
    Run all four combination strategies on the same base predictions.

    Args:
        probabilities: Mapping model name -> validation probabilities
        labels: True validation labels
        weights: Static weights for the weighted average
        threshold: Decision boundary for every strategy
        boosting_rounds: Rounds for the boosted meta-learner
        holdout_fraction: Nested holdout for the meta-learners
        seed: Seed for meta-learners and the nested holdout

    Returns:
        Dictionary mapping strategy name to EnsembleResult
    """
    results = {}

    if verbose:
        print(f"Combining models: {list(probabilities)}")

    average = average_probabilities(probabilities)
    results['average'] = EnsembleResult('average', average, decide(average, threshold))

    weighted = weighted_average_probabilities(probabilities, weights)
    results['weighted_average'] = EnsembleResult(
        'weighted_average', weighted, decide(weighted, threshold)
    )

    if verbose:
        mode = ("in-sample" if holdout_fraction is None
                else f"nested holdout {holdout_fraction:.0%}")
        print(f"Training meta-learners ({mode})...")

    stacked = StackedEnsemble(
        holdout_fraction=holdout_fraction, threshold=threshold, seed=seed
    )
    results['stacked'] = stacked.fit_predict(probabilities, labels)

    boosted = BoostedEnsemble(
        n_rounds=boosting_rounds,
        holdout_fraction=holdout_fraction,
        threshold=threshold,
        seed=seed
    )
    results['boosted'] = boosted.fit_predict(probabilities, labels)

    return results


# Testing
if __name__ == "__main__":
    print("Testing Ensemble Module")
    print("=" * 50)

    probabilities = {
        'logistic_regression': [0.9, 0.2, 0.6],
        'decision_tree': [1.0, 0.0, 1.0],
        'knn': [1, 0, 1],
    }
    average = average_probabilities(probabilities)
    print(f"   Average:  {average.round(3).tolist()}")
    print(f"   Labels:   {decide(average).tolist()}")

    try:
        weighted_average_probabilities(
            probabilities,
            {'logistic_regression': 0.5, 'decision_tree': 0.3, 'knn': 0.1}
        )
    except ConfigError as e:
        print(f"   Rejected weights: {e}")
