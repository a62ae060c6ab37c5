import pytest
import pandas as pd

from modules.data_manager import Dataset
from utils.exceptions import DataValidationError


@pytest.fixture
def frame():
    return pd.DataFrame({'lstat': [4.9, 9.1, 4.0, 2.9], 'rm': [6.5, 6.4, 7.1, 7.0],
                         'medv': [24.0, 21.6, 34.7, 33.4]})


def test_features_and_target(frame):
    ds = Dataset(frame, 'medv')
    assert len(ds) == 4
    assert ds.feature_names == ['lstat', 'rm']
    assert list(ds.target) == [24.0, 21.6, 34.7, 33.4]


def test_frame_is_copied(frame):
    ds = Dataset(frame, 'medv')
    frame.loc[0, 'medv'] = -1.0
    assert ds.target.iloc[0] == 24.0


def test_take_preserves_order(frame):
    subset = Dataset(frame, 'medv').take([3, 1])
    assert list(subset.target) == [33.4, 21.6]
    assert subset.response == 'medv'


def test_records_exclude_response(frame):
    first = next(Dataset(frame, 'medv').records())
    assert first == {'lstat': 4.9, 'rm': 6.5}


def test_immutable(frame):
    ds = Dataset(frame, 'medv')
    with pytest.raises(AttributeError):
        ds.response = 'rm'


@pytest.mark.parametrize("bad_frame,response,message", [
    ("not a frame", 'medv', "DataFrame"),
    (pd.DataFrame({'x': [1]}), 'medv', "not found"),
    (pd.DataFrame({'medv': []}), 'medv', "at least one record"),
])
def test_invalid_construction(bad_frame, response, message):
    with pytest.raises(DataValidationError, match=message):
        Dataset(bad_frame, response)
