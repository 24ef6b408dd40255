"""
Deterministic Execution Module

Seeds every random source the pipeline touches so that the same input
table and seed always give the same split, models and predictions.
scikit-learn estimators additionally receive the seed explicitly.
"""

import os
import random
from contextlib import contextmanager
from typing import Optional

import numpy as np

from fakenews_ensemble.config import RANDOM_SEED

# Global state tracking
_current_seed = None


def set_all_seeds(seed: int = RANDOM_SEED) -> None:
    """
    Set random seeds for Python and NumPy.

    Args:
        seed: Random seed value (default: RANDOM_SEED)
    """
    global _current_seed

    random.seed(seed)
    np.random.seed(seed)
    os.environ['PYTHONHASHSEED'] = str(seed)

    _current_seed = seed


def get_current_seed() -> Optional[int]:
    """Current global seed, or None if set_all_seeds was never called."""
    return _current_seed


def get_random_state(seed: Optional[int] = None) -> np.random.RandomState:
    """
    Get a NumPy RandomState object for reproducible randomness.

    Args:
        seed: Optional seed (uses the global seed if not provided)

    Returns:
        numpy.random.RandomState object
    """
    if seed is None:
        seed = _current_seed if _current_seed is not None else RANDOM_SEED
    return np.random.RandomState(seed)


@contextmanager
def ensure_reproducibility(seed: int = RANDOM_SEED):
    """
    Seed everything for the duration of a block, then restore the
    previous random states.

    Usage:
        with ensure_reproducibility(123):
            result = run_pipeline(records)
    """
    global _current_seed

    python_state = random.getstate()
    numpy_state = np.random.get_state()
    previous_seed = _current_seed

    try:
        set_all_seeds(seed)
        yield
    finally:
        random.setstate(python_state)
        np.random.set_state(numpy_state)
        _current_seed = previous_seed
