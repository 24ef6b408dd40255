"""
Data Loader Module for Fake News Metadata Classification

This module handles loading the article metadata table, selecting the
modelling schema, encoding the label, and splitting records into
train and validation sets.

Expected input: one row per article with an `id` column, the categorical
and continuous fields listed in config.py, and a `label` column holding
"Real"/"Fake" (or 1/0). Raw text columns such as title and text are
dropped here and never reach the models.
"""

import os
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd

from fakenews_ensemble.config import (
    CATEGORICAL_FIELDS,
    CONTINUOUS_FIELDS,
    DEFAULT_DATASET,
    ID_COLUMN,
    LABEL_COLUMN,
    ORDINAL_ORDERINGS,
    RANDOM_SEED,
    TRAIN_RATIO,
)
from fakenews_ensemble.preprocessing.encoders import encode_frame, fit_ordinal
from fakenews_ensemble.utils.deterministic import get_random_state
from fakenews_ensemble.utils.errors import ConfigError, SchemaError


class NewsDataLoader:
    """
    Data loader for article metadata datasets.

    Attributes:
        categorical_fields: Categorical columns kept for modelling
        continuous_fields: Continuous columns kept for modelling
    """

    def __init__(
        self,
        categorical_fields: Optional[list] = None,
        continuous_fields: Optional[list] = None,
        verbose: bool = True
    ):
        """
        Initialize the data loader.

        Args:
            categorical_fields: Override for CATEGORICAL_FIELDS
            continuous_fields: Override for CONTINUOUS_FIELDS
            verbose: Print progress messages
        """
        self.categorical_fields = list(categorical_fields or CATEGORICAL_FIELDS)
        self.continuous_fields = list(continuous_fields or CONTINUOUS_FIELDS)
        self.verbose = verbose
        self._label_encoding = fit_ordinal(
            LABEL_COLUMN, ORDINAL_ORDERINGS[LABEL_COLUMN]
        )
        self._inverse_label_mapping = {0: "FAKE", 1: "REAL"}

    @property
    def schema_columns(self):
        return (
            [ID_COLUMN]
            + self.categorical_fields
            + self.continuous_fields
            + [LABEL_COLUMN]
        )

    def _log(self, message: str):
        if self.verbose:
            print(message)

    def load_csv(self, path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        """
        Load the raw metadata table from a CSV file.

        Args:
            path: CSV path (default: data/raw/fake_news_dataset.csv)

        Returns:
            Raw DataFrame, all columns
        """
        if path is None:
            path = DEFAULT_DATASET

        if not os.path.exists(path):
            raise FileNotFoundError(
                f"Dataset file not found at {path}. Place the article "
                f"metadata CSV there or pass --data."
            )

        self._log(f"Loading dataset from {path}...")
        data = pd.read_csv(path)
        self._log(f"Loaded {len(data)} articles with {data.shape[1]} columns")
        return data

    def prepare_records(self, data: pd.DataFrame) -> pd.DataFrame:
        """
        Select the modelling schema and encode the label.

        Steps:
        1. Check every schema column is present
        2. Drop all other columns (title, text, dates, ...)
        3. Reject missing values and duplicate ids
        4. Map the label to Fake=0 / Real=1
        5. Index the frame by article id

        Args:
            data: Raw DataFrame

        Returns:
            Records indexed by id with a 0/1 label column
        """
        missing = [c for c in self.schema_columns if c not in data.columns]
        if missing:
            raise SchemaError(
                f"Missing required columns: {missing}",
                field=missing[0]
            )

        dropped = [c for c in data.columns if c not in self.schema_columns]
        if dropped:
            self._log(f"Dropping non-schema columns: {dropped}")

        records = data[self.schema_columns].copy()

        null_counts = records.isnull().sum()
        null_fields = null_counts[null_counts > 0]
        if len(null_fields) > 0:
            raise SchemaError(
                "Missing values are not supported (no imputation); "
                f"null counts: {null_fields.to_dict()}",
                field=null_fields.index[0]
            )

        if records[ID_COLUMN].duplicated().any():
            duplicate = records.loc[records[ID_COLUMN].duplicated(), ID_COLUMN].iloc[0]
            raise SchemaError(
                f"Duplicate article id {duplicate!r}",
                field=ID_COLUMN
            )

        records[LABEL_COLUMN] = self.encode_labels(records[LABEL_COLUMN])
        records = records.set_index(ID_COLUMN)

        self._log(f"Prepared {len(records)} records, "
                  f"class distribution: {self.get_class_distribution(records)}")
        return records

    def encode_labels(self, labels: pd.Series) -> pd.Series:
        """
        Map raw labels to 0/1.

        Numeric labels must already be 0/1; strings go through the
        fixed Fake=0 / Real=1 ordering.
        """
        if pd.api.types.is_numeric_dtype(labels):
            unexpected = set(labels.unique()) - {0, 1}
            if unexpected:
                raise SchemaError(
                    f"Numeric labels must be 0 or 1, found {sorted(unexpected)}",
                    field=LABEL_COLUMN
                )
            return labels.astype(int)

        frame = labels.to_frame(LABEL_COLUMN)
        encoded = encode_frame({LABEL_COLUMN: self._label_encoding}, frame)
        return encoded[LABEL_COLUMN].astype(int)

    def get_class_distribution(self, data: pd.DataFrame) -> Dict[str, int]:
        """
        Get the distribution of classes in the dataset.

        Args:
            data: DataFrame with 0/1 'label' column

        Returns:
            Dictionary with class counts
        """
        distribution = data[LABEL_COLUMN].value_counts().to_dict()
        return {
            self._inverse_label_mapping.get(k, k): int(v)
            for k, v in distribution.items()
        }

    def load_records(self, path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        """Convenience: load_csv followed by prepare_records."""
        return self.prepare_records(self.load_csv(path))


def split_dataset(
    records: pd.DataFrame,
    train_fraction: float = TRAIN_RATIO,
    seed: int = RANDOM_SEED
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split records into train and validation sets.

    A seeded permutation of row positions is taken; the first
    floor(train_fraction * n) positions become train, the rest
    validation. The result depends only on (seed, row order,
    train_fraction), never on record contents.

    Args:
        records: Full record table
        train_fraction: Share of records used for training
        seed: Random seed for the permutation

    Returns:
        Tuple of (train_df, val_df)
    """
    if not 0.0 < train_fraction < 1.0:
        raise ConfigError(
            f"train_fraction must be in (0, 1), got {train_fraction}",
            field="train_fraction",
            stage="splitter"
        )

    n_records = len(records)
    permutation = get_random_state(seed).permutation(n_records)
    n_train = int(np.floor(train_fraction * n_records))

    train = records.iloc[np.sort(permutation[:n_train])]
    val = records.iloc[np.sort(permutation[n_train:])]
    return train, val


# Testing
if __name__ == "__main__":
    print("Testing Data Loader...")
    print("=" * 50)

    sample_data = pd.DataFrame({
        'id': range(1, 11),
        'title': ['Some headline'] * 10,
        'state': ['Ohio', 'Texas'] * 5,
        'source': ['Reuters', 'Daily Buzz'] * 5,
        'category': ['Politics'] * 10,
        'political_bias': ['Left', 'Right'] * 5,
        'fact_check_rating': ['TRUE', 'FALSE'] * 5,
        'sentiment_score': np.linspace(-1, 1, 10),
        'word_count': np.arange(100, 1100, 100),
        'char_count': np.arange(600, 6600, 600),
        'readability_score': np.linspace(30, 80, 10),
        'num_shares': np.arange(10),
        'num_comments': np.arange(10),
        'trust_score': [90, 10] * 5,
        'clickbait_score': [0.1, 0.9] * 5,
        'plagiarism_score': np.linspace(0, 50, 10),
        'label': ['Real', 'Fake'] * 5,
    })

    loader = NewsDataLoader()
    records = loader.prepare_records(sample_data)
    train, val = split_dataset(records)
    print(f"Train: {len(train)} samples, Validation: {len(val)} samples")
