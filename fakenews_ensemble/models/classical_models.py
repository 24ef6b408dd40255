"""
Classical Machine Learning Models for Fake News Detection

This module wraps heterogeneous scikit-learn classifiers behind one
capability: fit on a feature frame, then return P(REAL) per article.

- Logistic Regression
- k-Nearest-Neighbor (k tuned by cross-validation)
- Decision Tree (CART, optional cost-complexity pruning)
- Gaussian Naive Bayes
- Boosted Decision Tree (optional, AdaBoost over stumps)

The adapters share no base class; anything with `fit` and
`predict_probability` can take part in an ensemble.
"""

from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union

import joblib
import numpy as np
import pandas as pd
from sklearn.ensemble import AdaBoostClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier
from sklearn.tree import DecisionTreeClassifier

from fakenews_ensemble.config import (
    BOOSTED_TREE_MAX_DEPTH,
    BOOSTED_TREE_TRIALS,
    CV_FOLDS,
    DT_MIN_SAMPLES_LEAF,
    DT_PRUNE,
    KNN_K_GRID,
    LR_C,
    LR_MAX_ITER,
    POSITIVE_LABEL,
    RANDOM_SEED,
    SAVED_MODELS_DIR,
)
from fakenews_ensemble.utils.errors import (
    InsufficientDataError,
    NotFittedError,
    SchemaError,
)


class ProbabilityModel(Protocol):
    """Anything that can be trained and then score P(REAL)."""

    name: str

    def fit(self, features: pd.DataFrame, labels: pd.Series) -> "ProbabilityModel":
        """
        Train on the training split.

        Args:
            features: Feature frame (n_samples, n_features), id index
            labels: 0/1 labels aligned with `features`

        Returns:
            self

        Raises:
            InsufficientDataError: If the data is empty or holds one class
        """
        ...

    def predict_probability(self, features: pd.DataFrame) -> pd.Series:
        """
        Estimate P(REAL) for each record.

        Args:
            features: Feature frame with the columns seen at fit time

        Returns:
            Series of probabilities in [0, 1], indexed like `features`
        """
        ...


def check_training_data(name: str, features: pd.DataFrame, labels: pd.Series):
    """
    Reject training sets no classifier can learn from.

    Raises:
        InsufficientDataError: Empty set, length mismatch or a single class
    """
    if len(features) == 0 or len(labels) == 0:
        raise InsufficientDataError(
            f"{name}: training set is empty",
            field=name
        )
    if len(features) != len(labels):
        raise InsufficientDataError(
            f"{name}: {len(features)} feature rows but {len(labels)} labels",
            field=name
        )
    classes = np.unique(np.asarray(labels))
    if len(classes) < 2:
        raise InsufficientDataError(
            f"{name}: training labels contain a single class {classes.tolist()}",
            field=name
        )


def positive_probability(
    name: str,
    estimator,
    feature_columns: Optional[List[str]],
    features: pd.DataFrame
) -> pd.Series:
    """
    Score P(REAL) with a fitted scikit-learn estimator.

    Raises:
        NotFittedError: If the adapter was never fit
    """
    if estimator is None or feature_columns is None:
        raise NotFittedError(
            f"{name}: model not trained. Call fit() first.",
            field=name
        )

    missing = [c for c in feature_columns if c not in features.columns]
    if missing:
        raise SchemaError(
            f"{name}: features missing columns seen at fit time: {missing}",
            field=missing[0],
            stage="model"
        )

    proba = estimator.predict_proba(features.loc[:, feature_columns].values)
    column = list(estimator.classes_).index(POSITIVE_LABEL)
    return pd.Series(proba[:, column], index=features.index, name=name)


def _cv_splitter(
    labels: pd.Series,
    folds: int,
    seed: int
) -> Optional[StratifiedKFold]:
    """
    Stratified folds capped at the minority class size.

    Returns None when a class has fewer than two members, in which case
    no cross-validation is possible.
    """
    min_class_count = int(pd.Series(np.asarray(labels)).value_counts().min())
    n_splits = min(folds, min_class_count)
    if n_splits < 2:
        return None
    return StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=seed)


class LogisticRegressionModel:
    """
    Logistic Regression over all engineered features.

    predict_probability returns the sigmoid output directly.

    Why Logistic Regression:
    - Linear baseline with calibrated probabilities
    - Coefficients show which metadata pushes towards REAL or FAKE
    """

    def __init__(
        self,
        C: float = LR_C,
        max_iter: int = LR_MAX_ITER,
        seed: int = RANDOM_SEED,
        verbose: bool = True
    ):
        """
        Initialize Logistic Regression.

        Args:
            C: Inverse regularization strength
            max_iter: Solver iteration limit
            seed: Random seed
            verbose: Print training progress
        """
        self.name = "logistic_regression"
        self.C = C
        self.max_iter = max_iter
        self.seed = seed
        self.verbose = verbose
        self.model = None
        self.feature_columns = None

    def fit(self, features: pd.DataFrame, labels: pd.Series) -> "LogisticRegressionModel":
        """
        Fit the coefficients on the training split.

        Args:
            features: Feature frame (n_samples, n_features), id index
            labels: 0/1 labels aligned with `features`

        Returns:
            self

        Raises:
            InsufficientDataError: If the data is empty or holds one class
        """
        check_training_data(self.name, features, labels)
        if self.verbose:
            print(f"Training Logistic Regression (C={self.C})...")

        self.model = LogisticRegression(
            C=self.C,
            max_iter=self.max_iter,
            random_state=self.seed
        )
        self.model.fit(features.values, np.asarray(labels))
        self.feature_columns = list(features.columns)
        return self

    def predict_probability(self, features: pd.DataFrame) -> pd.Series:
        """
        Sigmoid of the linear score, per record.

        Args:
            features: Feature frame with the columns seen at fit time

        Returns:
            Series of probabilities in [0, 1], indexed like `features`
        """
        return positive_probability(
            self.name, self.model, self.feature_columns, features
        )

    def get_feature_importance(
        self,
        top_n: int = 10
    ) -> Tuple[List[Tuple[str, float]], List[Tuple[str, float]]]:
        """
        Features with the most negative (FAKE) and most positive (REAL)
        coefficients.

        Returns:
            Tuple of (fake_features, real_features)
        """
        if self.model is None:
            raise NotFittedError(f"{self.name}: model not trained.", field=self.name)

        coefficients = self.model.coef_[0]
        sorted_indices = np.argsort(coefficients)

        fake_features = [
            (self.feature_columns[i], float(coefficients[i]))
            for i in sorted_indices[:top_n]
        ]
        real_features = [
            (self.feature_columns[i], float(coefficients[i]))
            for i in sorted_indices[-top_n:][::-1]
        ]
        return fake_features, real_features


class KNearestNeighborsModel:
    """
    k-Nearest-Neighbor on Euclidean distance over the feature vector.

    k is chosen from an odd grid by 5-fold stratified cross-validation on
    the training set. P(REAL) is the fraction of the k neighbors that are
    REAL.

    Why k-NN:
    - No training assumptions about the decision boundary
    - Articles with similar metadata profiles share labels
    """

    def __init__(
        self,
        k_grid: Sequence[int] = KNN_K_GRID,
        cv_folds: int = CV_FOLDS,
        seed: int = RANDOM_SEED,
        verbose: bool = True
    ):
        """
        Initialize k-NN.

        Args:
            k_grid: Candidate k values (odd, to avoid tied votes)
            cv_folds: Cross-validation folds for choosing k
            seed: Seed for the fold shuffle
            verbose: Print training progress
        """
        self.name = "knn"
        self.k_grid = tuple(k_grid)
        self.cv_folds = cv_folds
        self.seed = seed
        self.verbose = verbose
        self.model = None
        self.feature_columns = None
        self.best_k = None
        self.cv_results = None

    def _usable_grid(self, n_samples: int, splitter) -> List[int]:
        # Every CV training fold must hold at least k points
        if splitter is None:
            largest = n_samples
        else:
            largest = n_samples - int(np.ceil(n_samples / splitter.get_n_splits()))
        grid = [k for k in sorted(self.k_grid) if k <= largest]
        return grid or [1]

    def fit(self, features: pd.DataFrame, labels: pd.Series) -> "KNearestNeighborsModel":
        """
        Pick k by cross-validation, then refit on the whole training split.

        Args:
            features: Feature frame (n_samples, n_features), id index
            labels: 0/1 labels aligned with `features`

        Returns:
            self

        Raises:
            InsufficientDataError: If the data is empty or holds one class
        """
        check_training_data(self.name, features, labels)
        X = features.values
        y = np.asarray(labels)

        splitter = _cv_splitter(labels, self.cv_folds, self.seed)
        grid = self._usable_grid(len(y), splitter)

        if splitter is None:
            self.best_k = grid[0]
            self.model = KNeighborsClassifier(n_neighbors=self.best_k)
            self.model.fit(X, y)
        else:
            search = GridSearchCV(
                KNeighborsClassifier(metric='euclidean'),
                param_grid={'n_neighbors': grid},
                scoring='accuracy',
                cv=splitter
            )
            search.fit(X, y)
            self.best_k = int(search.best_params_['n_neighbors'])
            self.cv_results = {
                int(k): float(score)
                for k, score in zip(
                    search.cv_results_['param_n_neighbors'],
                    search.cv_results_['mean_test_score']
                )
            }
            self.model = search.best_estimator_

        self.feature_columns = list(features.columns)
        if self.verbose:
            print(f"Training k-NN... selected k={self.best_k} from {grid}")
        return self

    def predict_probability(self, features: pd.DataFrame) -> pd.Series:
        """
        Share of REAL articles among the k nearest neighbors.

        Args:
            features: Feature frame with the columns seen at fit time

        Returns:
            Series of probabilities in [0, 1], indexed like `features`
        """
        return positive_probability(
            self.name, self.model, self.feature_columns, features
        )


class DecisionTreeModel:
    """
    CART decision tree (Gini impurity, axis-aligned splits).

    With pruning enabled, the cost-complexity path of the full tree is
    computed and the alpha with the best cross-validated accuracy is
    kept; ties go to the larger alpha (the smaller tree). P(REAL) is the
    REAL share of training examples in the leaf reached.

    Why Decision Tree:
    - Readable rules over trust and clickbait thresholds
    - Needs no feature scaling
    - Pruning keeps it from memorizing the training split
    """

    def __init__(
        self,
        prune: bool = DT_PRUNE,
        min_samples_leaf: int = DT_MIN_SAMPLES_LEAF,
        cv_folds: int = CV_FOLDS,
        seed: int = RANDOM_SEED,
        verbose: bool = True
    ):
        """
        Initialize Decision Tree.

        Args:
            prune: Choose ccp_alpha by cross-validation
            min_samples_leaf: Minimum training examples per leaf
            cv_folds: Cross-validation folds for pruning
            seed: Random seed
            verbose: Print training progress
        """
        self.name = "decision_tree"
        self.prune = prune
        self.min_samples_leaf = min_samples_leaf
        self.cv_folds = cv_folds
        self.seed = seed
        self.verbose = verbose
        self.model = None
        self.feature_columns = None
        self.ccp_alpha = 0.0

    def _base_tree(self, ccp_alpha: float = 0.0) -> DecisionTreeClassifier:
        return DecisionTreeClassifier(
            criterion='gini',
            min_samples_leaf=self.min_samples_leaf,
            ccp_alpha=ccp_alpha,
            random_state=self.seed
        )

    def fit(self, features: pd.DataFrame, labels: pd.Series) -> "DecisionTreeModel":
        """
        Grow the tree and, if enabled, prune it by cross-validated alpha.

        Args:
            features: Feature frame (n_samples, n_features), id index
            labels: 0/1 labels aligned with `features`

        Returns:
            self

        Raises:
            InsufficientDataError: If the data is empty or holds one class
        """
        check_training_data(self.name, features, labels)
        X = features.values
        y = np.asarray(labels)

        splitter = _cv_splitter(labels, self.cv_folds, self.seed)
        if self.prune and splitter is not None:
            path = self._base_tree().cost_complexity_pruning_path(X, y)
            alphas = np.unique(np.clip(path.ccp_alphas, 0.0, None))[::-1]

            search = GridSearchCV(
                self._base_tree(),
                param_grid={'ccp_alpha': alphas.tolist()},
                scoring='accuracy',
                cv=splitter
            )
            search.fit(X, y)
            self.ccp_alpha = float(search.best_params_['ccp_alpha'])
            self.model = search.best_estimator_
        else:
            self.model = self._base_tree()
            self.model.fit(X, y)

        self.feature_columns = list(features.columns)
        if self.verbose:
            print(f"Training Decision Tree... ccp_alpha={self.ccp_alpha:.4g}, "
                  f"leaves={self.model.get_n_leaves()}")
        return self

    def predict_probability(self, features: pd.DataFrame) -> pd.Series:
        """
        REAL share of the leaf each record falls into.

        Args:
            features: Feature frame with the columns seen at fit time

        Returns:
            Series of probabilities in [0, 1], indexed like `features`
        """
        return positive_probability(
            self.name, self.model, self.feature_columns, features
        )

    def get_feature_importance(self, top_n: int = 10) -> List[Tuple[str, float]]:
        """
        Most important features by Gini importance.

        Returns:
            List of (feature_name, importance) tuples
        """
        if self.model is None:
            raise NotFittedError(f"{self.name}: model not trained.", field=self.name)

        importances = self.model.feature_importances_
        sorted_indices = np.argsort(importances)[::-1][:top_n]
        return [
            (self.feature_columns[i], float(importances[i]))
            for i in sorted_indices
        ]


class NaiveBayesModel:
    """
    Gaussian Naive Bayes.

    Class priors come from training frequencies; P(REAL) is the
    normalized posterior.

    Why Naive Bayes:
    - Very fast, few parameters to estimate
    - A useful contrast to the discriminative models in the ensemble
    """

    def __init__(self, verbose: bool = True):
        self.name = "naive_bayes"
        self.verbose = verbose
        self.model = None
        self.feature_columns = None

    def fit(self, features: pd.DataFrame, labels: pd.Series) -> "NaiveBayesModel":
        """
        Estimate per-class feature means and variances.

        Args:
            features: Feature frame (n_samples, n_features), id index
            labels: 0/1 labels aligned with `features`

        Returns:
            self

        Raises:
            InsufficientDataError: If the data is empty or holds one class
        """
        check_training_data(self.name, features, labels)
        if self.verbose:
            print("Training Naive Bayes...")

        self.model = GaussianNB()
        self.model.fit(features.values, np.asarray(labels))
        self.feature_columns = list(features.columns)
        return self

    def predict_probability(self, features: pd.DataFrame) -> pd.Series:
        """
        Posterior P(REAL) per record.

        Args:
            features: Feature frame with the columns seen at fit time

        Returns:
            Series of probabilities in [0, 1], indexed like `features`
        """
        return positive_probability(
            self.name, self.model, self.feature_columns, features
        )


class BoostedTreeModel:
    """
    Boosted decision trees (AdaBoost over shallow CART trees).

    `trials` is the maximum number of boosting rounds; fitting stops
    early once the training data is fit perfectly.

    Why Boosted Trees:
    - Each round focuses on the articles earlier rounds got wrong
    - Stumps combine into a stronger non-linear classifier
    """

    def __init__(
        self,
        trials: int = BOOSTED_TREE_TRIALS,
        max_depth: int = BOOSTED_TREE_MAX_DEPTH,
        seed: int = RANDOM_SEED,
        verbose: bool = True
    ):
        """
        Initialize Boosted Tree.

        Args:
            trials: Maximum boosting rounds
            max_depth: Depth of each weak tree
            seed: Random seed
            verbose: Print training progress
        """
        self.name = "boosted_tree"
        self.trials = trials
        self.max_depth = max_depth
        self.seed = seed
        self.verbose = verbose
        self.model = None
        self.feature_columns = None

    def fit(self, features: pd.DataFrame, labels: pd.Series) -> "BoostedTreeModel":
        """
        Run up to `trials` boosting rounds over shallow trees.

        Args:
            features: Feature frame (n_samples, n_features), id index
            labels: 0/1 labels aligned with `features`

        Returns:
            self

        Raises:
            InsufficientDataError: If the data is empty or holds one class
        """
        check_training_data(self.name, features, labels)

        self.model = AdaBoostClassifier(
            estimator=DecisionTreeClassifier(
                max_depth=self.max_depth,
                random_state=self.seed
            ),
            n_estimators=self.trials,
            random_state=self.seed
        )
        self.model.fit(features.values, np.asarray(labels))
        self.feature_columns = list(features.columns)
        if self.verbose:
            print(f"Training Boosted Tree... rounds used: "
                  f"{len(self.model.estimators_)}/{self.trials}")
        return self

    def predict_probability(self, features: pd.DataFrame) -> pd.Series:
        """
        Weighted vote of the boosted trees, as P(REAL).

        Args:
            features: Feature frame with the columns seen at fit time

        Returns:
            Series of probabilities in [0, 1], indexed like `features`
        """
        return positive_probability(
            self.name, self.model, self.feature_columns, features
        )


def create_all_models(
    seed: int = RANDOM_SEED,
    k_grid: Sequence[int] = KNN_K_GRID,
    cv_folds: int = CV_FOLDS,
    prune_tree: bool = DT_PRUNE,
    include_boosted_tree: bool = False,
    boosted_tree_trials: int = BOOSTED_TREE_TRIALS,
    verbose: bool = True
) -> Dict[str, ProbabilityModel]:
    """
    Create instances of all base models.

    Returns:
        Dictionary mapping model names to unfitted adapters
    """
    models = {
        'logistic_regression': LogisticRegressionModel(seed=seed, verbose=verbose),
        'knn': KNearestNeighborsModel(
            k_grid=k_grid, cv_folds=cv_folds, seed=seed, verbose=verbose
        ),
        'decision_tree': DecisionTreeModel(
            prune=prune_tree, cv_folds=cv_folds, seed=seed, verbose=verbose
        ),
        'naive_bayes': NaiveBayesModel(verbose=verbose),
    }
    if include_boosted_tree:
        models['boosted_tree'] = BoostedTreeModel(
            trials=boosted_tree_trials, seed=seed, verbose=verbose
        )
    return models


def save_model(
    model: ProbabilityModel,
    path: Optional[Union[str, Path]] = None
) -> Path:
    """
    Save a fitted adapter to disk.

    Args:
        model: Fitted adapter
        path: Save path (default: saved_models/{name}.joblib)
    """
    if getattr(model, 'model', None) is None:
        raise NotFittedError(f"{model.name}: model not trained.", field=model.name)

    if path is None:
        SAVED_MODELS_DIR.mkdir(parents=True, exist_ok=True)
        path = SAVED_MODELS_DIR / f"{model.name}.joblib"

    joblib.dump(model, path)
    print(f"Saved {model.name} model to {path}")
    return Path(path)


def load_model(
    name: str,
    path: Optional[Union[str, Path]] = None
) -> ProbabilityModel:
    """
    Load an adapter saved by save_model.

    Args:
        name: Model name (used for the default path)
        path: Load path
    """
    if path is None:
        path = SAVED_MODELS_DIR / f"{name}.joblib"

    model = joblib.load(path)
    print(f"Loaded {model.name} model from {path}")
    return model


# Testing
if __name__ == "__main__":
    from sklearn.datasets import make_classification

    print("Testing Classical Models Module")
    print("=" * 50)

    X, y = make_classification(
        n_samples=200,
        n_features=8,
        n_informative=4,
        random_state=RANDOM_SEED
    )
    features = pd.DataFrame(X, columns=[f"feature_{i}" for i in range(8)])
    labels = pd.Series(y, index=features.index)

    for name, model in create_all_models(include_boosted_tree=True).items():
        model.fit(features.iloc[:160], labels.iloc[:160])
        proba = model.predict_probability(features.iloc[160:])
        accuracy = np.mean((proba >= 0.5).astype(int) == labels.iloc[160:])
        print(f"   {name}: accuracy={accuracy:.4f}")
