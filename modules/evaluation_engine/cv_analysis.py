import numpy as np
import pandas as pd
from typing import Dict


def fold_consistency(result) -> pd.DataFrame:
    """
    Summarize fold-to-fold variation for every candidate of a SearchResult,
    in grid-generation order.
    """
    rows = []
    for candidate in result.candidates:
        scores = np.asarray(candidate.fold_scores, dtype=float)
        rows.append({
            "candidate": candidate.index,
            "params": candidate.label,
            "folds": len(scores),
            "mean": float(np.mean(scores)),
            "std": float(np.std(scores)),
            "min": float(np.min(scores)),
            "max": float(np.max(scores)),
            "range": float(np.max(scores) - np.min(scores)),
        })
    return pd.DataFrame(rows)


def generalization_gaps(train_scores: Dict[str, float], holdout_scores: Dict[str, float]) -> pd.DataFrame:
    """
    Gap between resubstitution and holdout scores for each shared metric.
    """
    rows = []
    for metric in sorted(set(train_scores.keys()) | set(holdout_scores.keys())):
        train_val = train_scores.get(metric)
        holdout_val = holdout_scores.get(metric)
        if train_val is None or holdout_val is None:
            continue
        rows.append({
            "metric": metric,
            "train": train_val,
            "holdout": holdout_val,
            "gap": holdout_val - train_val,
        })
    return pd.DataFrame(rows, columns=["metric", "train", "holdout", "gap"])
