"""
Immutable tabular dataset with a designated response column.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Sequence

import numpy as np
import pandas as pd

from utils.exceptions import DataValidationError


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Ordered records plus the name of the response field.

    The wrapped frame is copied on construction and on every ``take`` so that
    callers handed a subset can never mutate the records of another subset.
    """

    frame: pd.DataFrame
    response: str

    def __post_init__(self):
        if not isinstance(self.frame, pd.DataFrame):
            raise DataValidationError(f"Dataset expects a pandas DataFrame, got {type(self.frame).__name__}")
        if self.response not in self.frame.columns:
            raise DataValidationError(f"Response column '{self.response}' not found in dataset.")
        if self.frame.empty:
            raise DataValidationError("Dataset must contain at least one record.")
        object.__setattr__(self, 'frame', self.frame.copy())

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def feature_names(self) -> list:
        return [c for c in self.frame.columns if c != self.response]

    @property
    def features(self) -> pd.DataFrame:
        return self.frame[self.feature_names]

    @property
    def target(self) -> pd.Series:
        return self.frame[self.response]

    def take(self, indices: Sequence[int]) -> "Dataset":
        """Positional subset, preserving the order of ``indices``."""
        return Dataset(self.frame.iloc[np.asarray(indices, dtype=int)], self.response)

    def records(self) -> Iterator[Dict[str, Any]]:
        """Yield one feature mapping per record (response excluded)."""
        for record in self.features.to_dict(orient='records'):
            yield record
