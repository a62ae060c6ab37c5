"""
Search Engine
=============

Responsibility:
- Exhaustive grid search with k-fold cross-validation.
- Seeded, reproducible fold assignment.
- Best-candidate selection with a configurable tie-break.
- Optional refit of the winner on the full dataset.
"""

from .folds import make_folds, training_indices, validate_fold_count
from .grid import count_combinations, expand_grid, validate_grid
from .results import CandidateResult, SearchResult, select_best
from .search_engine import search

__all__ = [
    'search',
    'SearchResult',
    'CandidateResult',
    'select_best',
    'expand_grid',
    'count_combinations',
    'validate_grid',
    'make_folds',
    'training_indices',
    'validate_fold_count',
]
