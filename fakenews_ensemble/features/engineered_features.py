"""
Engineered Interaction Features

Four features derived from the normalized base fields. They carry no
fitted state and must be computed after normalization, identically for
every split.
"""

import numpy as np
import pandas as pd

from fakenews_ensemble.utils.errors import DegenerateFieldError, SchemaError

ENGINEERED_FEATURES = [
    "credibility_clickbait_gap",
    "engagement_total",
    "content_density",
    "readability_vs_sentiment",
]

REQUIRED_FIELDS = [
    "trust_score",
    "clickbait_score",
    "num_shares",
    "num_comments",
    "char_count",
    "word_count",
    "readability_score",
    "sentiment_score",
]


def credibility_clickbait_gap(records: pd.DataFrame) -> pd.Series:
    return records["trust_score"] - records["clickbait_score"]


def engagement_total(records: pd.DataFrame) -> pd.Series:
    return records["num_shares"] + records["num_comments"]


def content_density(records: pd.DataFrame) -> pd.Series:
    # +1 keeps the ratio finite when word_count is 0
    return records["char_count"] / (records["word_count"] + 1)


def readability_vs_sentiment(records: pd.DataFrame) -> pd.Series:
    return records["readability_score"] * records["sentiment_score"]


def add_engineered_features(records: pd.DataFrame) -> pd.DataFrame:
    """
    Append the four interaction features.

    Args:
        records: Normalized records (not modified)

    Returns:
        New DataFrame with ENGINEERED_FEATURES appended

    Raises:
        DegenerateFieldError: If a feature comes out infinite or NaN
    """
    missing = [f for f in REQUIRED_FIELDS if f not in records.columns]
    if missing:
        raise SchemaError(
            f"Cannot synthesize features, missing fields: {missing}",
            field=missing[0],
            stage="features"
        )

    features = records.copy()
    features["credibility_clickbait_gap"] = credibility_clickbait_gap(records)
    features["engagement_total"] = engagement_total(records)
    features["content_density"] = content_density(records)
    features["readability_vs_sentiment"] = readability_vs_sentiment(records)

    for name in ENGINEERED_FEATURES:
        if not np.isfinite(features[name]).all():
            raise DegenerateFieldError(
                f"Feature '{name}' is not finite for "
                f"{int((~np.isfinite(features[name])).sum())} record(s)",
                field=name,
                stage="features"
            )
    return features
