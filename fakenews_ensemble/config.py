"""
Fake News Metadata Classifier
Configuration Settings

Classifies news articles as REAL or FAKE from structured metadata
(source, political bias, fact-check rating, engagement and content scores).
Raw article text is not used. Several base models are trained and their
probabilities are combined by averaging, stacking and boosting.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from fakenews_ensemble.utils.errors import ConfigError

# =============================================================================
# PROJECT PATHS
# =============================================================================
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
RAW_DATA_DIR = DATA_DIR / "raw"
SAVED_MODELS_DIR = PROJECT_ROOT / "saved_models"
RESULTS_DIR = PROJECT_ROOT / "results"

DEFAULT_DATASET = RAW_DATA_DIR / "fake_news_dataset.csv"

# =============================================================================
# SCHEMA
# =============================================================================
ID_COLUMN = "id"
LABEL_COLUMN = "label"

CATEGORICAL_FIELDS = [
    "state",
    "source",
    "category",
    "political_bias",
    "fact_check_rating",
]

CONTINUOUS_FIELDS = [
    "sentiment_score",
    "word_count",
    "char_count",
    "readability_score",
    "num_shares",
    "num_comments",
    "trust_score",
    "clickbait_score",
    "plagiarism_score",
]

# Domain orderings for low-cardinality fields (never learned)
ORDINAL_ORDERINGS = {
    "political_bias": ("Left", "Center", "Right"),
    "fact_check_rating": ("FALSE", "Mixed", "TRUE"),
    LABEL_COLUMN: ("Fake", "Real"),
}

# Label 1 is the positive class throughout
POSITIVE_LABEL = 1
CLASS_NAMES = ["FAKE", "REAL"]

# =============================================================================
# DATA SETTINGS
# =============================================================================
# Train/Validation split ratio
TRAIN_RATIO = 0.80

# Random seed for reproducibility
RANDOM_SEED = 123

# =============================================================================
# FEATURE ENGINEERING SETTINGS
# =============================================================================
# Fields with more distinct values than this are frequency encoded
CARDINALITY_THRESHOLD = 5

# Code returned for a value never seen while fitting a frequency encoding
UNKNOWN_FREQUENCY = 0.0
# Code for values a learned ordinal map never saw
UNKNOWN_ORDINAL_CODE = -1.0

# "fallback" returns the unknown code, "error" raises UnknownCategoryError
UNKNOWN_CATEGORY_POLICY = "fallback"

# Standard deviations below this are treated as zero
NORMALIZER_EPSILON = 1e-8

# "raise" fails on constant fields, "center" only subtracts the mean
DEGENERATE_FIELD_POLICY = "raise"

# =============================================================================
# MODEL SETTINGS
# =============================================================================
# Logistic Regression
LR_MAX_ITER = 1000
LR_C = 1.0

# k-Nearest-Neighbor (odd k, tuned by cross-validation)
KNN_K_GRID = tuple(range(1, 20, 2))

# Decision Tree
DT_PRUNE = True
DT_MIN_SAMPLES_LEAF = 1

# Boosted tree base model ("trials")
BOOSTED_TREE_TRIALS = 50
BOOSTED_TREE_MAX_DEPTH = 1

# Cross-validation folds used for model tuning
CV_FOLDS = 5

# =============================================================================
# ENSEMBLE SETTINGS
# =============================================================================
ENSEMBLE_MEMBERS = ("logistic_regression", "decision_tree", "knn")

# Must be non-negative and sum to 1.0
ENSEMBLE_WEIGHTS = {
    "logistic_regression": 0.5,
    "decision_tree": 0.3,
    "knn": 0.2,
}

# Gradient-boosted meta-learner
BOOSTING_ROUNDS = 150
BOOSTING_LEARNING_RATE = 0.1
BOOSTING_MAX_DEPTH = 2

# Stacked meta-learner tree depth (None for unlimited)
STACKING_MAX_DEPTH = None

# None trains meta-learners on the same records they predict
STACKING_HOLDOUT_FRACTION = None

# Probability at or above which an article is labelled REAL
DECISION_THRESHOLD = 0.5

# =============================================================================
# EVALUATION SETTINGS
# =============================================================================
METRICS = ["accuracy", "precision", "recall", "f1"]


@dataclass(frozen=True)
class PipelineConfig:
    """Run-time settings for one training/evaluation pass."""

    seed: int = RANDOM_SEED
    train_fraction: float = TRAIN_RATIO
    cardinality_threshold: int = CARDINALITY_THRESHOLD
    unknown_category_policy: str = UNKNOWN_CATEGORY_POLICY
    degenerate_field_policy: str = DEGENERATE_FIELD_POLICY
    knn_k_grid: Tuple[int, ...] = KNN_K_GRID
    cv_folds: int = CV_FOLDS
    prune_tree: bool = DT_PRUNE
    include_boosted_tree: bool = False
    boosted_tree_trials: int = BOOSTED_TREE_TRIALS
    ensemble_members: Tuple[str, ...] = ENSEMBLE_MEMBERS
    ensemble_weights: Dict[str, float] = field(
        default_factory=lambda: dict(ENSEMBLE_WEIGHTS)
    )
    boosting_rounds: int = BOOSTING_ROUNDS
    stacking_holdout_fraction: Optional[float] = STACKING_HOLDOUT_FRACTION
    threshold: float = DECISION_THRESHOLD

    def validate(self) -> "PipelineConfig":
        """
        Check settings before any data is touched.

        Raises:
            ConfigError: If a setting is out of range

        Returns:
            self
        """
        if not 0.0 < self.train_fraction < 1.0:
            raise ConfigError(
                f"train_fraction must be in (0, 1), got {self.train_fraction}",
                field="train_fraction"
            )
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigError(
                f"threshold must be in [0, 1], got {self.threshold}",
                field="threshold"
            )
        if self.cardinality_threshold < 1:
            raise ConfigError(
                "cardinality_threshold must be at least 1",
                field="cardinality_threshold"
            )
        if not self.knn_k_grid or any(k < 1 for k in self.knn_k_grid):
            raise ConfigError(
                f"knn_k_grid must hold positive integers, got {self.knn_k_grid}",
                field="knn_k_grid"
            )
        if self.cv_folds < 2:
            raise ConfigError("cv_folds must be at least 2", field="cv_folds")
        if self.boosting_rounds < 1 or self.boosted_tree_trials < 1:
            raise ConfigError(
                "boosting rounds and trials must be positive",
                field="boosting_rounds"
            )
        if self.unknown_category_policy not in ("fallback", "error"):
            raise ConfigError(
                f"Unknown policy: {self.unknown_category_policy}",
                field="unknown_category_policy"
            )
        if self.degenerate_field_policy not in ("raise", "center"):
            raise ConfigError(
                f"Unknown policy: {self.degenerate_field_policy}",
                field="degenerate_field_policy"
            )
        holdout = self.stacking_holdout_fraction
        if holdout is not None and not 0.0 < holdout < 1.0:
            raise ConfigError(
                f"stacking_holdout_fraction must be in (0, 1), got {holdout}",
                field="stacking_holdout_fraction"
            )
        if not self.ensemble_members:
            raise ConfigError(
                "At least one ensemble member is required",
                field="ensemble_members"
            )
        return self
