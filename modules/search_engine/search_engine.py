import logging
import math
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from joblib import Parallel, delayed

from modules.data_manager.dataset import Dataset
from modules.search_engine.folds import make_folds, training_indices
from modules.search_engine.grid import expand_grid
from modules.search_engine.results import CandidateResult, SearchResult, select_best
from utils.constants import DEFAULT_TIE_TOLERANCE
from utils.exceptions import CandidateEvaluationError, DataValidationError

_module_logger = logging.getLogger(__name__)

FitFn = Callable[[Dataset, Dict[str, Any], int], Any]
ScoreFn = Callable[[Any, Dataset], float]


def _as_score(value: Any) -> float:
    score = float(value)
    if not math.isfinite(score):
        raise ValueError(f"score function returned a non-finite value ({score})")
    return score


def _run_single_fold(dataset: Dataset, folds, fold_idx: int, params: Dict[str, Any],
                     fit_fn: FitFn, score_fn: ScoreFn, seed: int) -> float:
    """Train on every fold but ``fold_idx`` and score on ``fold_idx``."""
    try:
        train = dataset.take(training_indices(folds, fold_idx))
        validation = dataset.take(folds[fold_idx])
        model = fit_fn(train, dict(params), seed)
        return _as_score(score_fn(model, validation))
    except Exception as e:
        raise CandidateEvaluationError(params, fold_idx, f"{type(e).__name__}: {e}") from e


def _refit(dataset: Dataset, params: Dict[str, Any], fit_fn: FitFn, seed: int) -> Any:
    try:
        return fit_fn(dataset, dict(params), seed)
    except Exception as e:
        raise CandidateEvaluationError(params, None, f"{type(e).__name__}: {e}") from e


def _resolve_direction(score_fn: ScoreFn, greater_is_better: Optional[bool]) -> bool:
    if greater_is_better is not None:
        return bool(greater_is_better)
    return bool(getattr(score_fn, 'greater_is_better', False))


def search(dataset: Dataset, grid: Mapping[str, Any], fit_fn: FitFn, score_fn: ScoreFn,
           k: int, seed: int, *,
           greater_is_better: Optional[bool] = None,
           complexity: Union[None, str, Callable[[Dict[str, Any]], Any]] = None,
           tie_tolerance: float = DEFAULT_TIE_TOLERANCE,
           refit: bool = True,
           n_jobs: int = 1,
           logger: Optional[logging.Logger] = None) -> SearchResult:
    """
    Exhaustive k-fold cross-validated search over a hyperparameter grid.

    Args:
        dataset: Records to cross-validate on.
        grid: ``{name: [values...]}``; every combination of the Cartesian
            product is evaluated, leftmost parameter varying slowest.
        fit_fn: ``fit_fn(train, params, seed) -> model``.
        score_fn: ``score_fn(model, validation) -> float``.
        k: Number of folds, ``2 <= k <= len(dataset)``.
        seed: Drives fold assignment and is handed to every ``fit_fn`` call.
        greater_is_better: Optimisation direction. Defaults to
            ``score_fn.greater_is_better`` when present, else lower-is-better.
        complexity: Tie-break ordering (parameter name or callable); ties go
            to the smallest value. Without it ties go to the first candidate.
        tie_tolerance: Absolute difference under which mean scores tie.
        refit: Refit the winning combination on the full dataset.
        n_jobs: joblib workers for the combination x fold tasks.
        logger: Defaults to this module's logger.

    Returns:
        SearchResult with every candidate in grid-generation order.

    Raises:
        InvalidGridError: Empty grid or empty/non-sequence value list.
        InvalidFoldCountError: ``k`` is not an integer in ``[2, len(dataset)]``.
        CandidateEvaluationError: ``fit_fn`` or ``score_fn`` failed; the
            whole search is abandoned.
    """
    logger = logger or _module_logger

    if not isinstance(dataset, Dataset):
        raise DataValidationError(f"search expects a Dataset, got {type(dataset).__name__}")

    combinations = expand_grid(grid)
    folds = make_folds(len(dataset), k, seed)
    direction = _resolve_direction(score_fn, greater_is_better)

    n_tasks = len(combinations) * k
    logger.info(
        f"Cross-validated search: {len(combinations)} candidates x {k} folds "
        f"= {n_tasks} fits on {len(dataset)} records (seed={seed}, n_jobs={n_jobs})."
    )
    start_time = time.time()

    # Results come back in submission order regardless of worker scheduling
    scores: List[float] = Parallel(n_jobs=n_jobs)(
        delayed(_run_single_fold)(dataset, folds, fold_idx, params, fit_fn, score_fn, seed)
        for params in combinations
        for fold_idx in range(k)
    )

    candidates = []
    for i, params in enumerate(combinations):
        fold_scores = tuple(scores[i * k:(i + 1) * k])
        candidates.append(CandidateResult(
            index=i,
            params=params,
            fold_scores=fold_scores,
            mean_score=float(sum(fold_scores) / k),
        ))

    best = select_best(candidates, greater_is_better=direction,
                       complexity=complexity, tolerance=tie_tolerance)
    logger.info(
        f"Search finished in {time.time() - start_time:.2f}s. "
        f"Best: {best.label} (mean score {best.mean_score:.4f})"
    )

    best_model = None
    if refit:
        best_model = _refit(dataset, best.params, fit_fn, seed)
        logger.debug(f"Refit best candidate on all {len(dataset)} records.")

    return SearchResult(
        candidates=tuple(candidates),
        best=best,
        greater_is_better=direction,
        n_folds=k,
        seed=seed,
        fold_sizes=tuple(len(f) for f in folds),
        best_model=best_model,
        tie_tolerance=tie_tolerance,
    )
