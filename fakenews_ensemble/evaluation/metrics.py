"""
Evaluation Metrics Module for Fake News Detection

This module computes evaluation metrics shared by base models and
ensembles:
- Confusion matrix counts (REAL = 1 is the positive class)
- Precision, Recall, F1-Score, Accuracy
- Model comparison tables (F1 per model, per-article correctness)

Degenerate cases are defined rather than left as NaN: precision is 0
when nothing was predicted REAL, recall is 0 when nothing is REAL, and
F1 is 0 when precision + recall is 0.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from fakenews_ensemble.config import CLASS_NAMES, ID_COLUMN, METRICS, POSITIVE_LABEL
from fakenews_ensemble.utils.errors import DimensionMismatchError

# Fixed level order for every confusion matrix: [FAKE, REAL]
LABEL_ORDER = [1 - POSITIVE_LABEL, POSITIVE_LABEL]


@dataclass(frozen=True)
class ConfusionCounts:
    tp: int
    fp: int
    tn: int
    fn: int

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.tn + self.fn


def confusion_counts(predicted: Sequence, actual: Sequence) -> ConfusionCounts:
    """
    Count TP/FP/TN/FN with label 1 (REAL) as the positive class.

    Args:
        predicted: Predicted 0/1 labels
        actual: True 0/1 labels, same length and order

    Returns:
        ConfusionCounts
    """
    predicted = np.asarray(predicted).astype(int)
    actual = np.asarray(actual).astype(int)
    if predicted.shape != actual.shape:
        raise DimensionMismatchError(
            f"{len(predicted)} predictions for {len(actual)} labels",
            stage="evaluator"
        )

    tn, fp, fn, tp = confusion_matrix(actual, predicted, labels=LABEL_ORDER).ravel()
    return ConfusionCounts(tp=int(tp), fp=int(fp), tn=int(tn), fn=int(fn))


def precision_from_counts(tp: int, fp: int) -> float:
    return tp / (tp + fp) if (tp + fp) > 0 else 0.0


def recall_from_counts(tp: int, fn: int) -> float:
    return tp / (tp + fn) if (tp + fn) > 0 else 0.0


def f1_score_from_counts(tp: int, fp: int, fn: int) -> float:
    """
    Harmonic mean of precision and recall.

    Returns 0.0 (not NaN) when precision + recall is 0.
    """
    precision = precision_from_counts(tp, fp)
    recall = recall_from_counts(tp, fn)
    if precision + recall == 0:
        return 0.0
    return 2 * precision * recall / (precision + recall)


class ModelEvaluator:
    """
    Model evaluation for fake news detection.

    Computes classification metrics and provides methods for comparison
    across base models and ensemble strategies.
    """

    def __init__(self, class_names: List[str] = None):
        """
        Initialize evaluator.

        Args:
            class_names: Names for classes (default: ['FAKE', 'REAL'])
        """
        self.class_names = class_names or CLASS_NAMES
        self.results = {}
        self.predictions = {}
        self.actual = None

    def compute_metrics(self, y_true: Sequence, y_pred: Sequence) -> Dict[str, float]:
        """
        Compute classification metrics from the confusion counts.

        Args:
            y_true: True labels
            y_pred: Predicted labels

        Returns:
            Dictionary of metric names to values
        """
        return self.metrics_from_counts(confusion_counts(y_pred, y_true))

    def metrics_from_counts(self, counts: ConfusionCounts) -> Dict[str, float]:
        """Accuracy, precision, recall and F1 from precomputed counts."""
        accuracy = (counts.tp + counts.tn) / counts.total if counts.total else 0.0
        return {
            'accuracy': float(accuracy),
            'precision': float(precision_from_counts(counts.tp, counts.fp)),
            'recall': float(recall_from_counts(counts.tp, counts.fn)),
            'f1': float(f1_score_from_counts(counts.tp, counts.fp, counts.fn)),
        }

    def evaluate_model(
        self,
        model_name: str,
        y_true: pd.Series,
        y_pred: pd.Series,
        y_proba: Optional[pd.Series] = None
    ) -> Dict[str, Any]:
        """
        Full evaluation of a single model or ensemble.

        Series inputs are aligned by article id; a prediction set covering
        only part of the articles (nested holdout) is scored on that part.

        Args:
            model_name: Name identifier for the model
            y_true: True labels
            y_pred: Predicted labels
            y_proba: P(REAL) per article (optional, kept for reporting)

        Returns:
            Complete evaluation results
        """
        if isinstance(y_true, pd.Series) and isinstance(y_pred, pd.Series):
            unknown = set(y_pred.index) - set(y_true.index)
            if unknown or y_pred.index.has_duplicates:
                raise DimensionMismatchError(
                    f"'{model_name}' predicts articles without labels",
                    field=model_name,
                    stage="evaluator"
                )
            y_true = y_true.loc[y_pred.index]

        counts = confusion_counts(y_pred, y_true)
        results = {
            'model_name': model_name,
            'n_samples': counts.total,
            'metrics': self.metrics_from_counts(counts),
            'confusion_matrix': asdict(counts),
        }
        if y_proba is not None:
            results['mean_probability'] = float(np.mean(np.asarray(y_proba)))

        # Store for comparison
        self.results[model_name] = results
        if isinstance(y_pred, pd.Series):
            self.predictions[model_name] = y_pred.astype(int)
            if isinstance(y_true, pd.Series) and (
                self.actual is None or len(y_true) > len(self.actual)
            ):
                self.actual = y_true.astype(int)

        return results

    def compare_models(self) -> Dict[str, Dict]:
        """
        Compare all evaluated models.

        Returns:
            Dictionary with per-metric values and rankings
        """
        if not self.results:
            return {}

        comparison = {
            'metrics': {},
            'rankings': {}
        }

        for metric in METRICS:
            comparison['metrics'][metric] = {
                model_name: results['metrics'].get(metric, 0)
                for model_name, results in self.results.items()
            }
            sorted_models = sorted(
                comparison['metrics'][metric].items(),
                key=lambda x: x[1],
                reverse=True
            )
            comparison['rankings'][metric] = [m[0] for m in sorted_models]

        return comparison

    def get_best_model(self, metric: str = 'f1') -> Optional[str]:
        """
        Get the name of the best performing model.

        Args:
            metric: Metric to use for comparison

        Returns:
            Name of the best model
        """
        if not self.results:
            return None

        best_model = None
        best_score = -1

        for model_name, results in self.results.items():
            score = results['metrics'].get(metric, 0)
            if score > best_score:
                best_score = score
                best_model = model_name

        return best_model

    def print_results(self, model_name: Optional[str] = None):
        """
        Print evaluation results.

        Args:
            model_name: Specific model to print (or None for all)
        """
        if model_name:
            models = {model_name: self.results.get(model_name)}
        else:
            models = self.results

        for name, results in models.items():
            if not results:
                continue

            print(f"\n{'='*50}")
            print(f"Model: {name}  (n={results['n_samples']})")
            print('='*50)

            metrics = results['metrics']
            print(f"Accuracy:  {metrics['accuracy']:.4f}")
            print(f"Precision: {metrics['precision']:.4f}")
            print(f"Recall:    {metrics['recall']:.4f}")
            print(f"F1-Score:  {metrics['f1']:.4f}")

            cm = results['confusion_matrix']
            print(f"\nConfusion Matrix ({self.class_names[1]} = positive):")
            print(f"  TN={cm['tn']}, FP={cm['fp']}")
            print(f"  FN={cm['fn']}, TP={cm['tp']}")

    def to_dataframe(self) -> pd.DataFrame:
        """
        Convert results to a DataFrame, one row per model.

        Returns:
            DataFrame with metrics and confusion counts for all models
        """
        data = []
        for model_name, results in self.results.items():
            row = {'model': model_name, 'n_samples': results['n_samples']}
            row.update(results['metrics'])
            row.update(results['confusion_matrix'])
            data.append(row)

        return pd.DataFrame(data).set_index('model')

    def f1_table(self) -> pd.DataFrame:
        """Model name -> F1 score, best first."""
        table = self.to_dataframe()[['f1']]
        return table.sort_values('f1', ascending=False, kind='mergesort')

    def comparison_table(self) -> pd.DataFrame:
        """
        Per-article comparison: actual label, each model's predicted label
        and whether it was correct. Models scored on a nested holdout leave
        the other rows empty.

        Returns:
            DataFrame indexed by article id
        """
        if self.actual is None:
            return pd.DataFrame()

        table = pd.DataFrame({'actual': self.actual})
        table.index.name = ID_COLUMN
        for model_name, predicted in self.predictions.items():
            aligned = predicted.reindex(table.index)
            table[f'{model_name}_pred'] = aligned.astype('Int64')
            correct = (aligned == table['actual']).astype('boolean')
            table[f'{model_name}_correct'] = correct.mask(aligned.isna())

        return table


# Testing
if __name__ == "__main__":
    print("Testing Evaluation Metrics Module")
    print("=" * 50)

    # The Naive Bayes case: 3 true positives, 3 false positives, 394 misses
    print(f"\nF1 (TP=3, FP=3, FN=394): {f1_score_from_counts(3, 3, 394):.4f}")

    np.random.seed(123)
    y_true = pd.Series(np.random.randint(0, 2, 100))
    y_pred = y_true.copy()
    flipped = np.random.choice(100, 10, replace=False)
    y_pred.iloc[flipped] = 1 - y_pred.iloc[flipped]

    evaluator = ModelEvaluator()
    evaluator.evaluate_model('test_model', y_true, y_pred)
    evaluator.print_results('test_model')
