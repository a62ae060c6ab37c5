"""
Custom exception hierarchy for the statistical-learning tuning lab.
"""

class StatLearnException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(StatLearnException):
    """Configuration validation failed."""
    pass

class DataValidationError(StatLearnException):
    """Data validation failed."""
    pass

class SearchError(StatLearnException):
    """Cross-validated hyperparameter search could not complete."""
    pass

class InvalidGridError(SearchError):
    """Malformed hyperparameter search space."""
    pass

class InvalidFoldCountError(SearchError):
    """Fold count outside [2, number of records]."""
    pass

class CandidateEvaluationError(SearchError):
    """
    Fitting or scoring failed for one hyperparameter combination.

    ``fold_index`` is the held-out fold being evaluated, or ``None`` when the
    failure happened while refitting the winner on the full dataset.
    """

    def __init__(self, params: dict, fold_index, reason: str):
        self.params = dict(params)
        self.fold_index = fold_index
        self.reason = reason
        where = "full-data refit" if fold_index is None else f"fold {fold_index}"
        super().__init__(f"Candidate {self.params} failed during {where}: {reason}")

    def __reduce__(self):
        # Keeps the structured fields intact across joblib worker processes.
        return (self.__class__, (self.params, self.fold_index, self.reason))
