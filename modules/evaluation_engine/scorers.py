"""
Named scoring functions for the search engine.

A Scorer is a ``score_fn(model, data) -> float`` that also declares its
optimisation direction, so the search can pick the winner without the
caller repeating ``greater_is_better``.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import numpy as np
from sklearn.metrics import accuracy_score, mean_squared_error


def misclassification_rate(y_true, y_pred) -> float:
    return 1.0 - accuracy_score(y_true, y_pred)


def sum_squared_error(y_true, y_pred) -> float:
    residuals = np.asarray(y_true, dtype=float) - np.asarray(y_pred, dtype=float)
    return float(np.sum(residuals ** 2))


@dataclass(frozen=True)
class Scorer:
    name: str
    metric: Callable[[Any, Any], float]
    greater_is_better: bool = False
    task: Optional[str] = None

    def __call__(self, model: Any, data) -> float:
        predict_many = getattr(model, 'predict_many', None)
        if predict_many is not None:
            predictions = predict_many(data.features)
        else:
            predictions = model.predict(data.features)
        return float(self.metric(data.target.to_numpy(), np.asarray(predictions)))


SCORERS: Dict[str, Scorer] = {
    'misclassification_rate': Scorer('misclassification_rate', misclassification_rate, False, 'classification'),
    'accuracy': Scorer('accuracy', accuracy_score, True, 'classification'),
    'mean_squared_error': Scorer('mean_squared_error', mean_squared_error, False, 'regression'),
    'sum_squared_error': Scorer('sum_squared_error', sum_squared_error, False, 'regression'),
}


def get_scorer(name: str) -> Scorer:
    if name not in SCORERS:
        raise ValueError(f"Unknown scorer: {name}. Available: {list(SCORERS)}")
    return SCORERS[name]
