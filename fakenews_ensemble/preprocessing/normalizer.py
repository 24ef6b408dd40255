"""
Z-Score Normalization Module

Scales continuous metadata fields to zero mean and unit standard
deviation. Statistics are computed once on the training split and then
applied unchanged to every other split, so validation data never leaks
into the fitted parameters.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Tuple

import numpy as np
import pandas as pd

from fakenews_ensemble.config import DEGENERATE_FIELD_POLICY, NORMALIZER_EPSILON
from fakenews_ensemble.utils.errors import (
    ConfigError,
    DegenerateFieldError,
    SchemaError,
)


@dataclass(frozen=True)
class NormalizationParams:
    """
    Frozen per-field (mean, std) pairs.

    Attributes:
        stats: Read-only mapping field -> (mean, std)
        centered_only: Constant fields that are only mean-centered
        epsilon: Smallest usable standard deviation
    """
    stats: Mapping[str, Tuple[float, float]]
    centered_only: FrozenSet[str] = frozenset()
    epsilon: float = NORMALIZER_EPSILON

    @property
    def fields(self):
        return list(self.stats.keys())

    def mean(self, field: str) -> float:
        return self.stats[field][0]

    def std(self, field: str) -> float:
        return self.stats[field][1]


def fit_normalizer(
    records: pd.DataFrame,
    fields: Iterable[str],
    degenerate: str = DEGENERATE_FIELD_POLICY,
    epsilon: float = NORMALIZER_EPSILON
) -> NormalizationParams:
    """
    Compute mean and sample standard deviation (ddof=1) per field.

    Args:
        records: Reference records (the training split)
        fields: Continuous columns to scale
        degenerate: 'raise' to fail on constant fields, 'center' to
            subtract the mean only
        epsilon: Standard deviations below this count as zero

    Returns:
        Frozen NormalizationParams

    Raises:
        DegenerateFieldError: Constant field with degenerate='raise'
    """
    if degenerate not in ("raise", "center"):
        raise ConfigError(f"Unknown policy: {degenerate}", field="degenerate")

    stats = {}
    centered_only = set()
    for field in fields:
        if field not in records.columns:
            raise SchemaError(
                f"Field '{field}' is not in the record schema",
                field=field,
                stage="normalizer"
            )

        values = records[field].astype(float)
        mean = float(values.mean())
        std = float(values.std(ddof=1)) if len(values) > 1 else 0.0
        if np.isnan(std):
            std = 0.0

        if std < epsilon:
            if degenerate == "raise":
                raise DegenerateFieldError(
                    f"Field '{field}' has standard deviation {std:.3g}; "
                    "cannot z-score a constant field",
                    field=field
                )
            print(f"  Warning: '{field}' is constant, centering only")
            centered_only.add(field)

        stats[field] = (mean, std)

    return NormalizationParams(
        stats=MappingProxyType(stats),
        centered_only=frozenset(centered_only),
        epsilon=epsilon
    )


def apply_normalizer(
    params: NormalizationParams,
    records: pd.DataFrame
) -> pd.DataFrame:
    """
    Apply frozen parameters: v -> (v - mean) / std.

    Args:
        params: Output of fit_normalizer
        records: Records to transform (not modified)

    Returns:
        New DataFrame with scaled columns

    Raises:
        DegenerateFieldError: A field's std is below epsilon and it was
            not fit with the 'center' policy
    """
    scaled = records.copy()
    for field, (mean, std) in params.stats.items():
        if field not in records.columns:
            raise SchemaError(
                f"Field '{field}' is not in the record schema",
                field=field,
                stage="normalizer"
            )

        values = records[field].astype(float)
        if field in params.centered_only:
            scaled[field] = values - mean
            continue

        if std < params.epsilon:
            raise DegenerateFieldError(
                f"Field '{field}' has standard deviation {std:.3g}",
                field=field
            )
        scaled[field] = (values - mean) / std

    return scaled


# Testing
if __name__ == "__main__":
    print("Testing Normalizer Module")
    print("=" * 50)

    rng = np.random.RandomState(123)
    train = pd.DataFrame({
        'trust_score': rng.uniform(0, 100, 50),
        'num_shares': rng.randint(0, 5000, 50),
    })

    params = fit_normalizer(train, ['trust_score', 'num_shares'])
    scaled = apply_normalizer(params, train)

    for field in params.fields:
        print(f"   {field}: mean={scaled[field].mean():.4f}, "
              f"std={scaled[field].std():.4f}")
