"""
Feature Preparation Pipeline

Chains encoding, normalization and feature synthesis. All fitted state
lives in a single frozen FeatureParams object that is fit on the
training split and passed explicitly to every transform call.
"""

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Union

import joblib
import pandas as pd

from fakenews_ensemble.config import (
    CARDINALITY_THRESHOLD,
    CATEGORICAL_FIELDS,
    CONTINUOUS_FIELDS,
    DEGENERATE_FIELD_POLICY,
    LABEL_COLUMN,
    SAVED_MODELS_DIR,
    UNKNOWN_CATEGORY_POLICY,
)
from fakenews_ensemble.features.engineered_features import (
    ENGINEERED_FEATURES,
    add_engineered_features,
)
from fakenews_ensemble.preprocessing.encoders import (
    Encoding,
    FrequencyEncoding,
    describe_encodings,
    encode_frame,
    fit_ordinal,
    plan_encodings,
)
from fakenews_ensemble.preprocessing.normalizer import (
    NormalizationParams,
    apply_normalizer,
    fit_normalizer,
)


@dataclass(frozen=True)
class FeatureParams:
    """Everything learned from the training split."""
    encodings: Mapping[str, Encoding]
    normalization: NormalizationParams
    feature_columns: tuple


def fit_feature_params(
    train: pd.DataFrame,
    categorical_fields: Optional[List[str]] = None,
    continuous_fields: Optional[List[str]] = None,
    threshold: int = CARDINALITY_THRESHOLD,
    unknown_policy: str = UNKNOWN_CATEGORY_POLICY,
    degenerate_policy: str = DEGENERATE_FIELD_POLICY,
    verbose: bool = True
) -> FeatureParams:
    """
    Fit encoders and normalizer on the training split only.

    Args:
        train: Training records (id index, raw categorical values)
        categorical_fields: Fields to encode (default: CATEGORICAL_FIELDS)
        continuous_fields: Fields to z-score (default: CONTINUOUS_FIELDS)
        threshold: Cardinality threshold for frequency encoding
        unknown_policy: 'fallback' or 'error' for unseen categories
        degenerate_policy: 'raise' or 'center' for constant fields
        verbose: Print the chosen encodings

    Returns:
        Frozen FeatureParams
    """
    categorical_fields = list(categorical_fields or CATEGORICAL_FIELDS)
    continuous_fields = list(continuous_fields or CONTINUOUS_FIELDS)

    encodings = plan_encodings(
        train,
        categorical_fields,
        threshold=threshold,
        on_unknown=unknown_policy
    )
    if verbose:
        print("Encodings:")
        for line in describe_encodings(encodings):
            print(f"  {line}")

    normalization = fit_normalizer(
        train,
        continuous_fields,
        degenerate=degenerate_policy
    )

    feature_columns = tuple(
        categorical_fields + continuous_fields + ENGINEERED_FEATURES
    )
    return FeatureParams(
        encodings=MappingProxyType(encodings),
        normalization=normalization,
        feature_columns=feature_columns
    )


def transform_records(
    params: FeatureParams,
    records: pd.DataFrame
) -> pd.DataFrame:
    """
    Apply frozen parameters: encode, normalize, then synthesize.

    Args:
        params: Output of fit_feature_params
        records: Records from any split

    Returns:
        Feature frame indexed like `records`, columns in
        params.feature_columns order (label excluded)
    """
    encoded = encode_frame(params.encodings, records)
    normalized = apply_normalizer(params.normalization, encoded)
    features = add_engineered_features(normalized)
    return features.loc[:, list(params.feature_columns)].astype(float)


def split_labels(records: pd.DataFrame) -> pd.Series:
    """Label column as an int Series indexed by id."""
    return records[LABEL_COLUMN].astype(int)


def save_feature_params(
    params: FeatureParams,
    path: Optional[Union[str, Path]] = None
) -> Path:
    """
    Save fitted feature parameters to disk.

    Args:
        params: Fitted parameters
        path: Save path (default: saved_models/feature_params.joblib)

    Returns:
        Path written
    """
    if path is None:
        SAVED_MODELS_DIR.mkdir(parents=True, exist_ok=True)
        path = SAVED_MODELS_DIR / "feature_params.joblib"

    # MappingProxyType does not pickle; store plain dicts
    joblib.dump({
        'encodings': {
            field: _encoding_state(encoding)
            for field, encoding in params.encodings.items()
        },
        'normalization': {
            'stats': dict(params.normalization.stats),
            'centered_only': sorted(params.normalization.centered_only),
            'epsilon': params.normalization.epsilon,
        },
        'feature_columns': list(params.feature_columns),
    }, path)
    print(f"Saved feature parameters to {path}")
    return Path(path)


def load_feature_params(path: Optional[Union[str, Path]] = None) -> FeatureParams:
    """
    Load feature parameters saved by save_feature_params.

    Args:
        path: Load path

    Returns:
        Frozen FeatureParams
    """
    if path is None:
        path = SAVED_MODELS_DIR / "feature_params.joblib"

    data = joblib.load(path)

    encodings = {}
    for field, state in data['encodings'].items():
        if state['kind'] == 'frequency':
            encodings[field] = FrequencyEncoding(
                field=field,
                frequencies=MappingProxyType(state['frequencies']),
                on_unknown=state['on_unknown'],
                fallback=state['fallback']
            )
        else:
            encodings[field] = fit_ordinal(
                field, state['categories'], state.get('on_unknown', 'error')
            )

    norm = data['normalization']
    normalization = NormalizationParams(
        stats=MappingProxyType(norm['stats']),
        centered_only=frozenset(norm['centered_only']),
        epsilon=norm['epsilon']
    )
    print(f"Loaded feature parameters from {path}")
    return FeatureParams(
        encodings=MappingProxyType(encodings),
        normalization=normalization,
        feature_columns=tuple(data['feature_columns'])
    )


def _encoding_state(encoding: Encoding) -> dict:
    if isinstance(encoding, FrequencyEncoding):
        return {
            'kind': 'frequency',
            'frequencies': dict(encoding.frequencies),
            'on_unknown': encoding.on_unknown,
            'fallback': encoding.fallback,
        }
    return {
        'kind': 'ordinal',
        'categories': list(encoding.categories),
        'on_unknown': encoding.on_unknown,
    }
