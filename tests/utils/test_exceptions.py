import pickle

import pytest
from utils.exceptions import (
    CandidateEvaluationError,
    ConfigurationError,
    InvalidFoldCountError,
    InvalidGridError,
    SearchError,
    StatLearnException,
)

def test_exception_inheritance():
    err = ConfigurationError("Test error")
    assert isinstance(err, StatLearnException)
    assert isinstance(err, Exception)
    assert str(err) == "Test error"

@pytest.mark.parametrize("cls", [InvalidGridError, InvalidFoldCountError, CandidateEvaluationError])
def test_search_errors_share_a_base(cls):
    assert issubclass(cls, SearchError)
    assert issubclass(cls, StatLearnException)

def test_candidate_error_message():
    err = CandidateEvaluationError({'cost': 10, 'gamma': 2}, 3, "ValueError: bad")
    assert err.params == {'cost': 10, 'gamma': 2}
    assert err.fold_index == 3
    assert err.reason == "ValueError: bad"
    assert "fold 3" in str(err)

def test_candidate_error_during_refit():
    err = CandidateEvaluationError({'size': 4}, None, "boom")
    assert err.fold_index is None
    assert "full-data refit" in str(err)

def test_candidate_error_survives_pickling():
    err = CandidateEvaluationError({'size': 4}, 0, "boom")
    restored = pickle.loads(pickle.dumps(err))

    assert isinstance(restored, CandidateEvaluationError)
    assert restored.params == {'size': 4}
    assert restored.fold_index == 0
    assert str(restored) == str(err)
