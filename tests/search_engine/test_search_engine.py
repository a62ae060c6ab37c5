import pytest
import logging
import numpy as np
import pandas as pd
from collections import Counter
from unittest.mock import MagicMock
from joblib import parallel_backend
from sklearn.datasets import make_classification
from sklearn.dummy import DummyClassifier, DummyRegressor

from modules.data_manager import Dataset
from modules.evaluation_engine import get_scorer
from modules.model_factory import EstimatorFitter, TreeModel
from modules.pruning import PruningFitter
from modules.search_engine import search
from utils.exceptions import (
    CandidateEvaluationError,
    DataValidationError,
    InvalidFoldCountError,
    InvalidGridError,
)

# --- Fixtures ---

@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

def make_labeled(n_samples: int, seed: int = 0) -> Dataset:
    X, y = make_classification(
        n_samples=n_samples, n_features=5, n_informative=3, n_redundant=0,
        flip_y=0.1, random_state=seed,
    )
    df = pd.DataFrame(X, columns=[f"x{i + 1}" for i in range(X.shape[1])])
    df['High'] = np.where(y == 1, 'Yes', 'No')
    return Dataset(df, 'High')

@pytest.fixture
def labeled_400():
    return make_labeled(400, seed=0)

@pytest.fixture
def labeled_60():
    return make_labeled(60, seed=1)

def constant_fit(train, params, seed):
    return DummyClassifier(strategy='most_frequent').fit(train.features, train.target)

def zero_score(model, data):
    return 0.0

# --- Scenarios ---

class TestSearchScenarios:

    def test_pruning_emulation(self, labeled_400, mock_logger):
        """400 labeled records, size 2..20, 10 folds, seed 3."""
        sizes = list(range(2, 21))
        result = search(
            labeled_400, {'size': sizes}, PruningFitter('classification'),
            get_scorer('misclassification_rate'), 10, 3,
            complexity='size', logger=mock_logger,
        )

        assert len(result.candidates) == 19
        assert [c.params['size'] for c in result.candidates] == sizes
        for c in result.candidates:
            assert 0.0 <= c.mean_score <= 1.0
            assert len(c.fold_scores) == 10

        best_error = min(c.mean_score for c in result.candidates)
        expected_size = min(
            c.params['size'] for c in result.candidates if c.mean_score - best_error <= 1e-12
        )
        assert result.best.params['size'] == expected_size
        assert isinstance(result.best_model, TreeModel)

    def test_svm_grid_emulation(self, labeled_60):
        grid = {'cost': [0.1, 1, 10, 100, 1000], 'gamma': [0.5, 1, 2, 3, 4]}
        result = search(
            labeled_60, grid, EstimatorFitter('SVC', {'kernel': 'rbf'}),
            get_scorer('misclassification_rate'), 10, 1,
        )

        assert len(result.candidates) == 25
        assert all(len(c.fold_scores) == 10 for c in result.candidates)
        # Leftmost parameter varies slowest
        assert result.candidates[0].params == {'cost': 0.1, 'gamma': 0.5}
        assert result.candidates[1].params == {'cost': 0.1, 'gamma': 1}
        assert result.candidates[5].params == {'cost': 1, 'gamma': 0.5}
        assert result.best_model.explain()['C'] == result.best.params['cost']

# --- Properties ---

class TestSearchProperties:

    def test_determinism(self, labeled_60):
        grid = {'max_depth': [1, 3], 'n_estimators': [5, 10]}
        fit_fn = EstimatorFitter('RandomForestClassifier')
        scorer = get_scorer('misclassification_rate')

        first = search(labeled_60, grid, fit_fn, scorer, 5, 11, refit=False)
        second = search(labeled_60, grid, fit_fn, scorer, 5, 11, refit=False)

        assert first.candidates == second.candidates
        assert first.best == second.best

    def test_worker_scheduling_does_not_change_result(self, labeled_60):
        grid = {'max_depth': [1, 2, 4]}
        fit_fn = EstimatorFitter('DecisionTreeClassifier')
        scorer = get_scorer('misclassification_rate')

        sequential = search(labeled_60, grid, fit_fn, scorer, 4, 5, refit=False, n_jobs=1)
        with parallel_backend('threading'):
            threaded = search(labeled_60, grid, fit_fn, scorer, 4, 5, refit=False, n_jobs=3)

        assert sequential.candidates == threaded.candidates
        assert sequential.best == threaded.best

    def test_grid_coverage(self, labeled_60):
        calls = []

        def counting_fit(train, params, seed):
            calls.append(tuple(params.items()))
            return None

        result = search(labeled_60, {'a': [1, 2, 3], 'b': ['x', 'y']}, counting_fit, zero_score, 4, 0, refit=False)

        assert len(result.candidates) == 6
        assert len(calls) == 6 * 4
        assert set(Counter(calls).values()) == {4}

    def test_declared_parameter_order_is_kept(self, labeled_60):
        result = search(labeled_60, {'b': [1, 2], 'a': [10, 20]}, lambda t, p, s: None, zero_score, 2, 0, refit=False)

        assert [c.params for c in result.candidates] == [
            {'b': 1, 'a': 10}, {'b': 1, 'a': 20}, {'b': 2, 'a': 10}, {'b': 2, 'a': 20},
        ]
        assert list(result.candidates[0].params) == ['b', 'a']

    def test_constant_predictor_scores_identically(self, labeled_60):
        result = search(
            labeled_60, {'size': [2, 5, 9]}, constant_fit,
            get_scorer('misclassification_rate'), 5, 2,
        )
        means = [c.mean_score for c in result.candidates]
        assert np.allclose(means, means[0])
        # Ties without a complexity ordering go to the first candidate
        assert result.best.index == 0

    def test_constant_regression_predictor(self):
        rng = np.random.default_rng(0)
        df = pd.DataFrame({'x': rng.normal(size=50), 'y': rng.normal(size=50)})
        data = Dataset(df, 'y')

        def mean_fit(train, params, seed):
            return DummyRegressor(strategy='mean').fit(train.features, train.target)

        result = search(data, {'alpha': [0.1, 1.0, 10.0]}, mean_fit, get_scorer('mean_squared_error'), 5, 0)
        means = [c.mean_score for c in result.candidates]
        assert np.allclose(means, means[0])

    def test_training_and_validation_never_overlap(self, labeled_60):
        seen_validation = []

        def fit_fn(train, params, seed):
            return set(train.frame.index)

        def score_fn(train_ids, validation):
            ids = set(validation.frame.index)
            assert not (train_ids & ids)
            assert len(train_ids | ids) == 60
            seen_validation.append(ids)
            return 0.0

        search(labeled_60, {'p': [1]}, fit_fn, score_fn, 6, 9, refit=False)

        assert len(seen_validation) == 6
        assert set().union(*seen_validation) == set(range(60))

    def test_leave_one_out(self):
        df = pd.DataFrame({'x': np.arange(8, dtype=float), 'y': np.arange(8, dtype=float)})
        result = search(Dataset(df, 'y'), {'p': [1, 2]}, lambda t, p, s: None, zero_score, 8, 0, refit=False)

        assert result.fold_sizes == (1,) * 8
        assert all(len(c.fold_scores) == 8 for c in result.candidates)

    def test_seed_is_passed_to_fit_fn(self, labeled_60):
        seeds = set()

        def fit_fn(train, params, seed):
            seeds.add(seed)
            return None

        search(labeled_60, {'p': [1, 2]}, fit_fn, zero_score, 3, 77)
        assert seeds == {77}

    def test_direction_from_scorer(self, labeled_60):
        result = search(
            labeled_60, {'max_depth': [1, 5]}, EstimatorFitter('DecisionTreeClassifier'),
            get_scorer('accuracy'), 3, 0, refit=False,
        )
        assert result.greater_is_better is True
        assert result.best.mean_score == max(c.mean_score for c in result.candidates)

    def test_explicit_direction_overrides_scorer(self, labeled_60):
        scores = {1: 0.2, 2: 0.8}

        def score_fn(model, data):
            return scores[model]

        result = search(labeled_60, {'p': [1, 2]}, lambda t, p, s: p['p'], score_fn, 2, 0,
                        greater_is_better=True)
        assert result.best.params == {'p': 2}
        assert result.best_model == 2

# --- Failure modes ---

class TestSearchFailures:

    @pytest.mark.parametrize("k", [1, 0, -3, 61])
    def test_invalid_fold_count(self, labeled_60, k):
        with pytest.raises(InvalidFoldCountError):
            search(labeled_60, {'p': [1]}, lambda t, p, s: None, zero_score, k, 0)

    def test_non_integer_fold_count(self, labeled_60):
        with pytest.raises(InvalidFoldCountError, match="integer"):
            search(labeled_60, {'p': [1]}, lambda t, p, s: None, zero_score, 2.5, 0)

    @pytest.mark.parametrize("grid", [{}, {'p': []}, {'p': [1], 'q': ()}, {'p': 'abc'}, {'p': 3}])
    def test_invalid_grid(self, labeled_60, grid):
        with pytest.raises(InvalidGridError):
            search(labeled_60, grid, lambda t, p, s: None, zero_score, 2, 0)

    def test_dataset_type_is_checked(self):
        with pytest.raises(DataValidationError):
            search(pd.DataFrame({'x': [1, 2]}), {'p': [1]}, lambda t, p, s: None, zero_score, 2, 0)

    def test_fit_failure_identifies_candidate(self, labeled_60):
        def fit_fn(train, params, seed):
            if params['depth'] == 3:
                raise RuntimeError("cannot grow tree")
            return None

        with pytest.raises(CandidateEvaluationError) as excinfo:
            search(labeled_60, {'depth': [1, 3, 5]}, fit_fn, zero_score, 3, 0)

        err = excinfo.value
        assert err.params == {'depth': 3}
        assert err.fold_index == 0
        assert "cannot grow tree" in str(err)
        assert isinstance(err.__cause__, RuntimeError)

    def test_misspelled_grid_parameter_fails_the_search(self, labeled_60):
        with pytest.raises(CandidateEvaluationError) as excinfo:
            search(labeled_60, {'gama': [0.01, 1, 100]}, EstimatorFitter('SVC'),
                   get_scorer('misclassification_rate'), 5, 0)

        err = excinfo.value
        assert err.params == {'gama': 0.01}
        assert err.fold_index == 0
        assert "gama" in err.reason
        assert isinstance(err.__cause__, ValueError)

    def test_score_failure_aborts_search(self, labeled_60):
        def score_fn(model, data):
            raise ValueError("bad metric")

        with pytest.raises(CandidateEvaluationError, match="bad metric"):
            search(labeled_60, {'p': [1, 2]}, lambda t, p, s: None, score_fn, 2, 0)

    def test_non_finite_score_is_rejected(self, labeled_60):
        with pytest.raises(CandidateEvaluationError, match="non-finite"):
            search(labeled_60, {'p': [1]}, lambda t, p, s: None, lambda m, d: float('nan'), 2, 0)

    def test_refit_failure_has_no_fold(self, labeled_60):
        def fit_fn(train, params, seed):
            if len(train) == 60:
                raise MemoryError("full data too large")
            return None

        with pytest.raises(CandidateEvaluationError) as excinfo:
            search(labeled_60, {'p': [1]}, fit_fn, zero_score, 3, 0)

        assert excinfo.value.fold_index is None
        assert "full-data refit" in str(excinfo.value)
