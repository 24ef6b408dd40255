"""
Categorical Encoding Module

Turns categorical metadata fields into numbers:
- Frequency encoding for high-cardinality fields (state, source, ...)
- Ordinal mapping for small fields with a known domain order
  (political bias, fact-check rating, label)

Encodings are fit once and frozen. Applying them never changes them.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from fakenews_ensemble.config import (
    CARDINALITY_THRESHOLD,
    ORDINAL_ORDERINGS,
    UNKNOWN_CATEGORY_POLICY,
    UNKNOWN_FREQUENCY,
    UNKNOWN_ORDINAL_CODE,
)
from fakenews_ensemble.utils.errors import (
    ConfigError,
    SchemaError,
    UnknownCategoryError,
)


@dataclass(frozen=True)
class FrequencyEncoding:
    """
    Relative frequency of each value seen at fit time.

    Attributes:
        field: Column the encoding was fit on
        frequencies: Read-only mapping value -> count / total
        on_unknown: 'fallback' (return `fallback`) or 'error'
        fallback: Code used for unseen values
    """
    field: str
    frequencies: Mapping[str, float]
    on_unknown: str = UNKNOWN_CATEGORY_POLICY
    fallback: float = UNKNOWN_FREQUENCY

    def __len__(self) -> int:
        return len(self.frequencies)


@dataclass(frozen=True)
class OrdinalEncoding:
    """
    Fixed integer code per category, following a documented order.

    Lookups are case-insensitive on the raw string. Domain orderings raise
    UnknownCategoryError on unseen values; maps learned from observed
    values follow `on_unknown` like frequency encodings.
    """
    field: str
    categories: tuple
    codes: Mapping[str, int]
    on_unknown: str = "error"
    fallback: float = UNKNOWN_ORDINAL_CODE

    def __len__(self) -> int:
        return len(self.categories)


Encoding = Union[FrequencyEncoding, OrdinalEncoding]


def _require_field(records: pd.DataFrame, field: str):
    if field not in records.columns:
        raise SchemaError(
            f"Field '{field}' is not in the record schema",
            field=field
        )


def _ordinal_key(value) -> str:
    return str(value).strip().lower()


def fit_frequency(
    field: str,
    records: pd.DataFrame,
    on_unknown: str = UNKNOWN_CATEGORY_POLICY
) -> FrequencyEncoding:
    """
    Fit a frequency encoding for one categorical field.

    Args:
        field: Column to encode
        records: Reference records (the training split)
        on_unknown: 'fallback' or 'error' for values unseen at fit time

    Returns:
        Frozen FrequencyEncoding
    """
    _require_field(records, field)
    if on_unknown not in ("fallback", "error"):
        raise ConfigError(f"Unknown policy: {on_unknown}", field=field)

    counts = records[field].value_counts(sort=False)
    total = int(counts.sum())
    frequencies = {
        value: int(count) / total
        for value, count in counts.items()
    }
    return FrequencyEncoding(
        field=field,
        frequencies=MappingProxyType(frequencies),
        on_unknown=on_unknown
    )


def apply_frequency(encoding: FrequencyEncoding, value) -> float:
    """
    Look up the frequency code of a single value.

    Unseen values return `encoding.fallback` (0.0 by default) or raise
    UnknownCategoryError when the encoding was fit with on_unknown='error'.
    """
    try:
        return encoding.frequencies[value]
    except KeyError:
        if encoding.on_unknown == "error":
            raise UnknownCategoryError(
                f"Value {value!r} was not seen when fitting '{encoding.field}'",
                field=encoding.field
            )
        return encoding.fallback


def fit_ordinal(
    field: str,
    ordered_categories: Sequence,
    on_unknown: str = "error"
) -> OrdinalEncoding:
    """
    Build an ordinal map from an explicit category order.

    Args:
        field: Column the map applies to
        ordered_categories: Categories, lowest code first
        on_unknown: 'error' or 'fallback' (UNKNOWN_ORDINAL_CODE) for unseen values

    Returns:
        Frozen OrdinalEncoding (first category -> 0, second -> 1, ...)
    """
    if on_unknown not in ("fallback", "error"):
        raise ConfigError(f"Unknown policy: {on_unknown}", field=field)
    categories = tuple(ordered_categories)
    if not categories:
        raise ConfigError("An ordinal encoding needs categories", field=field)

    codes = {}
    for code, category in enumerate(categories):
        key = _ordinal_key(category)
        if key in codes:
            raise ConfigError(
                f"Duplicate category {category!r} in ordering",
                field=field
            )
        codes[key] = code

    return OrdinalEncoding(
        field=field,
        categories=categories,
        codes=MappingProxyType(codes),
        on_unknown=on_unknown
    )


def apply_ordinal(encoding: OrdinalEncoding, value) -> float:
    """Look up the ordinal code of a single value."""
    key = _ordinal_key(value)
    if key not in encoding.codes:
        if encoding.on_unknown == "fallback":
            return encoding.fallback
        raise UnknownCategoryError(
            f"Value {value!r} is not one of {list(encoding.categories)}",
            field=encoding.field
        )
    return encoding.codes[key]


def apply_encoding(encoding: Encoding, value) -> float:
    """Apply either kind of encoding to one value."""
    if isinstance(encoding, FrequencyEncoding):
        return apply_frequency(encoding, value)
    return apply_ordinal(encoding, value)


def plan_encodings(
    records: pd.DataFrame,
    fields: Iterable[str],
    threshold: int = CARDINALITY_THRESHOLD,
    orderings: Optional[Dict[str, Sequence]] = None,
    on_unknown: str = UNKNOWN_CATEGORY_POLICY
) -> Dict[str, Encoding]:
    """
    Fit one encoding per categorical field.

    Rules, in order:
    1. A field with a domain ordering gets that ordinal map.
    2. A field with more than `threshold` distinct values is frequency encoded.
    3. Any other field gets an ordinal map over its sorted observed values.
       Only this learned map follows `on_unknown`; domain orderings always
       raise on unseen values.

    Args:
        records: Reference records (the training split)
        fields: Categorical columns to encode
        threshold: Cardinality above which frequency encoding is used
        orderings: Domain orderings (default: ORDINAL_ORDERINGS)
        on_unknown: Unseen-value policy for learned encodings

    Returns:
        Dictionary mapping field name to its frozen encoding
    """
    if orderings is None:
        orderings = ORDINAL_ORDERINGS

    encodings = {}
    for field in fields:
        _require_field(records, field)

        if field in orderings:
            encodings[field] = fit_ordinal(field, orderings[field])
            continue

        cardinality = records[field].nunique()
        if cardinality > threshold:
            encodings[field] = fit_frequency(field, records, on_unknown)
        else:
            observed = sorted(records[field].astype(str).unique())
            encodings[field] = fit_ordinal(field, observed, on_unknown)

    return encodings


def encode_frame(
    encodings: Mapping[str, Encoding],
    records: pd.DataFrame
) -> pd.DataFrame:
    """
    Apply frozen encodings to every encoded column.

    Args:
        encodings: Output of plan_encodings
        records: Records to transform (not modified)

    Returns:
        New DataFrame with encoded columns replaced by numbers
    """
    encoded = records.copy()
    for field, encoding in encodings.items():
        _require_field(records, field)
        encoded[field] = records[field].map(
            lambda value, enc=encoding: apply_encoding(enc, value)
        ).astype(float)
    return encoded


def describe_encodings(encodings: Mapping[str, Encoding]) -> List[str]:
    """Human-readable summary lines, one per field."""
    lines = []
    for field, encoding in encodings.items():
        if isinstance(encoding, FrequencyEncoding):
            lines.append(f"{field}: frequency ({len(encoding)} values)")
        else:
            order = "/".join(
                f"{category}={code}"
                for code, category in enumerate(encoding.categories)
            )
            lines.append(f"{field}: ordinal ({order})")
    return lines


# Testing
if __name__ == "__main__":
    print("Testing Encoders Module")
    print("=" * 50)

    sample = pd.DataFrame({
        'source': ['A', 'B', 'A', 'C', 'A', 'D', 'E', 'F'],
        'political_bias': ['Left', 'Right', 'Center', 'Left',
                           'Right', 'Center', 'Left', 'Left'],
    })

    encodings = plan_encodings(sample, ['source', 'political_bias'])
    for line in describe_encodings(encodings):
        print(f"   {line}")

    print("\nEncoded sample:")
    print(encode_frame(encodings, sample))
    print(f"\nUnseen source -> {apply_frequency(encodings['source'], 'Z')}")
