"""
SplitEngine for the tuning lab.

Optionally holds out a test partition before the cross-validated search, the
way the labs fit on ``train <- sample(1:nrow(df), n/2)`` and report error on
the remaining records. Classification splits are stratified on the response
when every class has enough members.
"""
import logging
from pathlib import Path
from typing import Optional, Tuple

from sklearn.model_selection import train_test_split

from modules.base.base_engine import BaseEngine
from modules.data_manager.dataset import Dataset
from utils.error_handling import handle_engine_errors
from utils.file_io import save_dataframe
from utils import constants

class SplitEngine(BaseEngine):
    """
    Splits a prepared Dataset into train and (optional) test Datasets.
    """

    def __init__(self, config: dict, logger: logging.Logger, dataset_name: str = "dataset"):
        self.dataset_name = dataset_name
        super().__init__(config, logger)
        self.split_config = self.config.get('splitting', {})

    def _get_engine_directory_name(self) -> str:
        return str(Path(constants.SPLITS_DIR) / self.dataset_name)

    @handle_engine_errors("Data Splitting")
    def execute(self, dataset: Dataset, task: str = 'classification') -> Tuple[Dataset, Optional[Dataset]]:
        """
        Returns:
            (train, test); ``test`` is None when no holdout is configured.
        """
        test_size = self.split_config.get('test_size')
        if not test_size:
            self.logger.info("No holdout configured. Using all records for the search.")
            return dataset, None

        seed = self.config.get('_internal_seeds', {}).get('split', self.split_config.get('seed', 42))
        stratify = None
        if task == 'classification' and self.split_config.get('stratify', True):
            stratify = dataset.target

        positions = list(range(len(dataset)))
        try:
            train_idx, test_idx = train_test_split(
                positions, test_size=test_size, random_state=seed, stratify=stratify
            )
        except ValueError as e:
            if stratify is None:
                raise
            self.logger.warning(f"Stratified split not feasible ({e}). Falling back to a plain shuffled split.")
            train_idx, test_idx = train_test_split(positions, test_size=test_size, random_state=seed)

        train, test = dataset.take(train_idx), dataset.take(test_idx)

        if self.config.get('outputs', {}).get('save_splits', True):
            save_dataframe(train.frame, self.output_dir / "train.parquet", excel_copy=self.excel_copy, index=True)
            save_dataframe(test.frame, self.output_dir / "test.parquet", excel_copy=self.excel_copy, index=True)

        self.logger.info(f"Holdout split (seed={seed}): Train={len(train)}, Test={len(test)}")
        return train, test
