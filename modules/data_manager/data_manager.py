import pandas as pd
import numpy as np
import logging
from pathlib import Path
from typing import Dict, Any, Optional

from modules.data_manager.dataset import Dataset
from utils.exceptions import DataValidationError
from utils.file_io import read_dataframe, save_dataframe
from utils.error_handling import handle_engine_errors
from utils import constants

class DataManager:
    """
    Loads a named dataset from the configuration and prepares it for model fitting.

    Preparation follows the lab conventions: an optional recoding of a
    continuous variable into a two-class response, removal of incomplete
    records, and one-hot encoding of categorical predictors so that every
    scikit-learn family can consume the table.
    """

    SUPPORTED_EXTENSIONS = {'.csv', '.xlsx', '.xls', '.parquet'}

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        self.data: Optional[pd.DataFrame] = None
        self.base_dir = Path(self.config.get('outputs', {}).get('base_results_dir', 'results'))
        self.data_dir = Path(self.config.get('inputs', {}).get('data_dir', 'data/raw'))

    @handle_engine_errors("Data Management")
    def execute(self, dataset_name: str) -> Dataset:
        """
        Load, validate, recode and encode the dataset registered as ``dataset_name``.

        Returns:
            Dataset: Immutable prepared dataset.
        """
        entry = self._dataset_entry(dataset_name)
        self.logger.info(f"Preparing dataset '{dataset_name}'...")

        self.load_data(entry['file_path'])
        self.recode_response(entry.get('recode'))
        self.drop_columns(entry.get('drop_columns', []))
        self.validate_columns(entry['response'])
        stats_df = self.validate_nan_inf()

        if entry.get('dropna', True):
            self.drop_incomplete_rows()
        if entry.get('encode_categoricals', True):
            self.encode_categoricals(entry['response'])

        dataset = Dataset(self.data, entry['response'])

        if self.config.get('outputs', {}).get('save_prepared_data', True):
            output_dir = self.base_dir / constants.DATA_DIR / dataset_name
            excel_copy = self.config.get('outputs', {}).get('save_excel_copy', False)
            save_dataframe(dataset.frame, output_dir / constants.PREPARED_DATA_FILE, excel_copy=excel_copy)
            save_dataframe(stats_df, output_dir / constants.COLUMN_STATS_FILE, excel_copy=excel_copy)

        self.logger.info(
            f"Dataset '{dataset_name}' ready: {len(dataset)} records, "
            f"{len(dataset.feature_names)} features, response '{dataset.response}'."
        )
        return dataset

    def _dataset_entry(self, dataset_name: str) -> Dict[str, Any]:
        datasets = self.config.get('datasets', {})
        if dataset_name not in datasets:
            raise DataValidationError(f"Unknown dataset '{dataset_name}'. Available: {list(datasets)}")
        return datasets[dataset_name]

    def resolve_path(self, file_path_str: str) -> Path:
        """Absolute paths are used as-is; relative ones are anchored to the data directory."""
        file_path = Path(file_path_str)
        if not file_path.is_absolute():
            file_path = self.data_dir / file_path
        return file_path.resolve()

    def load_data(self, file_path_str: str) -> pd.DataFrame:
        """Load a CSV, Excel or Parquet table."""
        path = self.resolve_path(file_path_str)

        if not path.exists():
            raise DataValidationError(f"Data file not found: {path}")
        if path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
            raise DataValidationError(f"Unsupported file extension: {path.suffix}")

        self.logger.info(f"Loading data from {path}")
        try:
            self.data = read_dataframe(path)
        except Exception as e:
            raise DataValidationError(f"Failed to load data: {str(e)}") from e

        if self.data.empty:
            raise DataValidationError("Loaded dataframe is empty.")

        self.logger.info(f"Data loaded successfully. Shape: {self.data.shape}")
        return self.data

    def recode_response(self, recode: Optional[Dict[str, Any]]) -> None:
        """
        Binarize a continuous column: values ``<= threshold`` map to the first
        label, the rest to the second (e.g. High = No/Yes from Sales).
        """
        if not recode:
            return

        source = recode['source']
        if source not in self.data.columns:
            raise DataValidationError(f"Recode source column '{source}' not found.")

        low_label, high_label = recode.get('labels', ['No', 'Yes'])
        target = recode.get('target', f"{source}_class")
        values = self.data[source].to_numpy()
        recoded = pd.Series(
            np.where(values <= recode['threshold'], low_label, high_label),
            index=self.data.index,
            name=target,
        )
        # Rows with a missing source stay missing
        recoded[self.data[source].isna()] = None

        self.data = self.data.assign(**{target: recoded})
        if recode.get('drop_source', True):
            self.data = self.data.drop(columns=[source])

        counts = self.data[target].value_counts().to_dict()
        self.logger.info(f"Recoded '{source}' into '{target}' at threshold {recode['threshold']}: {counts}")

    def drop_columns(self, columns) -> None:
        if columns:
            self.data = self.data.drop(columns=list(columns), errors='ignore')

    def validate_columns(self, response: str) -> None:
        """Ensure the response exists and at least one predictor remains."""
        if self.data is None or self.data.empty:
            raise DataValidationError("Dataframe is empty or None.")
        if response not in self.data.columns:
            raise DataValidationError(f"Missing response column in dataset: {response}")
        if len(self.data.columns) < 2:
            raise DataValidationError("Dataset has no predictor columns besides the response.")

    def validate_nan_inf(self) -> pd.DataFrame:
        """Collect per-column NaN/Inf statistics. Infinite values are rejected."""
        stats = []
        for col in self.data.columns:
            nan_count = int(self.data[col].isna().sum())
            row = {'column': col, 'dtype': str(self.data[col].dtype), 'nan_count': nan_count}

            if pd.api.types.is_numeric_dtype(self.data[col]):
                inf_count = int(np.isinf(self.data[col]).sum())
                row.update({
                    'inf_count': inf_count,
                    'min': self.data[col].min(),
                    'max': self.data[col].max(),
                    'mean': self.data[col].mean(),
                })
                if inf_count > 0:
                    raise DataValidationError(f"Column '{col}' contains {inf_count} infinite values.")
            else:
                row['unique'] = int(self.data[col].nunique())

            if nan_count > 0:
                self.logger.warning(f"Column '{col}' contains {nan_count} NaNs.")
            stats.append(row)

        return pd.DataFrame(stats)

    def drop_incomplete_rows(self) -> None:
        before = len(self.data)
        self.data = self.data.dropna()
        dropped = before - len(self.data)
        if dropped:
            self.logger.warning(f"Dropped {dropped} incomplete rows ({before} -> {len(self.data)}).")
        if self.data.empty:
            raise DataValidationError("No complete rows left after dropping missing values.")

    def encode_categoricals(self, response: str) -> None:
        """One-hot encode non-numeric predictors; the response keeps its labels."""
        categorical = [
            c for c in self.data.columns
            if c != response and not pd.api.types.is_numeric_dtype(self.data[c])
        ]
        if not categorical:
            return
        self.data = pd.get_dummies(self.data, columns=categorical, dtype=float)
        self.logger.info(f"One-hot encoded categorical predictors: {categorical}")
