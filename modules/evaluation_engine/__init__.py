from .scorers import Scorer, SCORERS, get_scorer, misclassification_rate, sum_squared_error
from .cv_analysis import fold_consistency, generalization_gaps

__all__ = [
    'Scorer',
    'SCORERS',
    'get_scorer',
    'misclassification_rate',
    'sum_squared_error',
    'fold_consistency',
    'generalization_gaps',
]
