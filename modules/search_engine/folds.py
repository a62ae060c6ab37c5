from typing import List

import numpy as np
from sklearn.model_selection import KFold

from utils.exceptions import InvalidFoldCountError


def validate_fold_count(n_records: int, k) -> int:
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidFoldCountError(f"Fold count must be an integer, got {k!r}")
    if k < 2:
        raise InvalidFoldCountError(f"Fold count must be >= 2, got {k}")
    if k > n_records:
        raise InvalidFoldCountError(f"Fold count ({k}) exceeds the number of records ({n_records})")
    return int(k)


def make_folds(n_records: int, k: int, seed: int) -> List[np.ndarray]:
    """
    Partition ``range(n_records)`` into ``k`` held-out folds.

    Indices are shuffled with ``seed`` and then cut into contiguous slices, so
    fold sizes differ by at most one and the assignment is reproducible.
    """
    k = validate_fold_count(n_records, k)
    splitter = KFold(n_splits=k, shuffle=True, random_state=seed)
    return [test_idx for _, test_idx in splitter.split(np.zeros((n_records, 1)))]


def training_indices(folds: List[np.ndarray], fold_index: int) -> np.ndarray:
    """Every index outside the held-out fold."""
    return np.concatenate([f for i, f in enumerate(folds) if i != fold_index])
