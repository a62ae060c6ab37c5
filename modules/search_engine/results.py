"""Result containers returned by the cross-validated search."""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from utils.constants import DEFAULT_TIE_TOLERANCE


@dataclass(frozen=True)
class CandidateResult:
    """One hyperparameter combination with its cross-validated scores.

    Attributes:
        index: Position in grid-generation order.
        params: The combination, keyed by parameter name.
        fold_scores: Score on each held-out fold, fold 0 first.
        mean_score: Arithmetic mean of ``fold_scores``.
    """

    index: int
    params: Dict[str, Any] = field(hash=False)
    fold_scores: Tuple[float, ...]
    mean_score: float

    @property
    def std_score(self) -> float:
        return float(np.std(self.fold_scores))

    @property
    def label(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in self.params.items())


@dataclass
class SearchResult:
    """Outcome of one search.

    Attributes:
        candidates: Every combination, in grid-generation order (not by score).
        best: The selected combination.
        greater_is_better: Optimisation direction used for ``best`` and ``rank``.
        n_folds: Number of cross-validation folds.
        seed: Seed used for fold assignment and fitting.
        fold_sizes: Number of held-out records in each fold.
        best_model: ``best`` refit on the whole dataset, or None when refit was off.
        tie_tolerance: Absolute gap under which mean scores tied during selection.
    """

    candidates: Tuple[CandidateResult, ...]
    best: CandidateResult
    greater_is_better: bool
    n_folds: int
    seed: int
    fold_sizes: Tuple[int, ...]
    best_model: Optional[Any] = None
    tie_tolerance: float = DEFAULT_TIE_TOLERANCE

    @property
    def best_params(self) -> Dict[str, Any]:
        return dict(self.best.params)

    @property
    def best_score(self) -> float:
        return self.best.mean_score

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(self.candidates[0].params) if self.candidates else ()

    def to_frame(self) -> pd.DataFrame:
        """Score table with one row per candidate, in grid-generation order."""
        rows = []
        for c in self.candidates:
            row = {'candidate': c.index}
            row.update({f'param_{k}': v for k, v in c.params.items()})
            row['mean_score'] = c.mean_score
            row['std_score'] = c.std_score
            row.update({f'fold_{i + 1}': s for i, s in enumerate(c.fold_scores)})
            row['is_best'] = c.index == self.best.index
            rows.append(row)

        df = pd.DataFrame(rows)
        # Scores that tied with the optimum during selection share rank 1
        optimum = df['mean_score'].max() if self.greater_is_better else df['mean_score'].min()
        tied = (df['mean_score'] - optimum).abs() <= self.tie_tolerance
        ranked = df['mean_score'].mask(tied, optimum)
        df['rank'] = ranked.rank(method='min', ascending=not self.greater_is_better).astype(int)
        return df

    def score_curve(self, param: str) -> pd.Series:
        """
        Best mean score for each value of ``param`` (in first-seen order).
        With a single swept parameter this is the plain score-vs-value curve,
        e.g. CV error against tree size.
        """
        if param not in self.param_names:
            raise KeyError(f"Unknown parameter '{param}'. Grid parameters: {list(self.param_names)}")

        curve: Dict[Any, float] = {}
        for c in self.candidates:
            value = c.params[param]
            current = curve.get(value)
            if current is None or _improves(c.mean_score, current, self.greater_is_better):
                curve[value] = c.mean_score
        return pd.Series(curve, name='mean_score').rename_axis(param)


def _improves(score: float, incumbent: float, greater_is_better: bool) -> bool:
    return score > incumbent if greater_is_better else score < incumbent


def select_best(candidates: Sequence[CandidateResult], greater_is_better: bool = False,
                complexity: Union[None, str, Callable[[Dict[str, Any]], Any]] = None,
                tolerance: float = DEFAULT_TIE_TOLERANCE) -> CandidateResult:
    """
    Pick the optimal candidate.

    Candidates whose mean score is within ``tolerance`` of the optimum tie.
    With ``complexity`` (a parameter name or a ``params -> key`` callable) the
    tie goes to the smallest key; otherwise, or among equal keys, to the
    first candidate in grid order.
    """
    if not candidates:
        raise ValueError("No candidates to select from.")

    sign = -1.0 if greater_is_better else 1.0
    best_loss = min(sign * c.mean_score for c in candidates)
    tied = [c for c in candidates if sign * c.mean_score - best_loss <= tolerance]

    if complexity is None:
        return tied[0]
    if isinstance(complexity, str):
        name = complexity
        key = lambda params: params[name]
    else:
        key = complexity
    # min() keeps the first of equal keys
    return min(tied, key=lambda c: key(c.params))
