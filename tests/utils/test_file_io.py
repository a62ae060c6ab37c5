import json

import numpy as np
import pandas as pd
import pytest

from utils.file_io import NumpyEncoder, read_dataframe, save_dataframe, save_json


def test_numpy_encoder():
    payload = {'n': np.int64(3), 'x': np.float32(0.5), 'flag': np.bool_(True), 'arr': np.arange(3)}
    assert json.loads(json.dumps(payload, cls=NumpyEncoder)) == {
        'n': 3, 'x': 0.5, 'flag': True, 'arr': [0, 1, 2]
    }


def test_numpy_encoder_rejects_unknown_types():
    with pytest.raises(TypeError):
        json.dumps({'s': {1, 2}}, cls=NumpyEncoder)


def test_save_dataframe_creates_parents_and_excel_copy(tmp_path):
    df = pd.DataFrame({'size': [2, 3], 'mean_score': [0.3, 0.25]})
    path = save_dataframe(df, tmp_path / "nested" / "scores.parquet", excel_copy=True)

    assert path.exists()
    assert path.with_suffix(".xlsx").exists()
    pd.testing.assert_frame_equal(read_dataframe(path), df)


def test_read_csv(tmp_path):
    path = tmp_path / "Boston.csv"
    path.write_text("lstat,medv\n4.98,24.0\n")
    assert list(read_dataframe(path).columns) == ['lstat', 'medv']


def test_read_unsupported(tmp_path):
    with pytest.raises(ValueError, match="Unsupported file extension"):
        read_dataframe(tmp_path / "data.feather")


def test_save_json(tmp_path):
    path = save_json({'best': {'size': np.int64(4)}}, tmp_path / "out" / "best.json")
    assert json.loads(path.read_text()) == {'best': {'size': 4}}
