import itertools
from collections.abc import Mapping
from typing import Any, Dict, List

import numpy as np

from utils.exceptions import InvalidGridError


def _candidate_values(name: str, values: Any) -> list:
    if isinstance(values, (str, bytes)) or isinstance(values, Mapping):
        raise InvalidGridError(f"Values for '{name}' must be a sequence, got {type(values).__name__}")
    if isinstance(values, np.ndarray):
        values = values.tolist()
    try:
        values = list(values)
    except TypeError:
        raise InvalidGridError(f"Values for '{name}' must be a sequence, got {type(values).__name__}") from None
    if not values:
        raise InvalidGridError(f"Parameter '{name}' has no candidate values.")
    return values


def validate_grid(grid: Mapping) -> Dict[str, list]:
    """Normalize a grid to ``{name: [values...]}`` keeping declaration order."""
    if not isinstance(grid, Mapping):
        raise InvalidGridError(f"Hyperparameter grid must be a mapping, got {type(grid).__name__}")
    if not grid:
        raise InvalidGridError("Hyperparameter grid must declare at least one parameter.")
    return {name: _candidate_values(name, values) for name, values in grid.items()}


def count_combinations(grid: Mapping) -> int:
    return int(np.prod([len(v) for v in validate_grid(grid).values()]))


def expand_grid(grid: Mapping) -> List[Dict[str, Any]]:
    """
    Cartesian product of the grid in declaration order: the leftmost
    parameter varies slowest, the rightmost fastest.
    """
    normalized = validate_grid(grid)
    names = list(normalized)
    return [dict(zip(names, combo)) for combo in itertools.product(*normalized.values())]
