import joblib
import logging
import pandas as pd
from pathlib import Path
from typing import Any, Dict, Optional

from modules.base.base_engine import BaseEngine
from modules.data_manager.dataset import Dataset
from modules.evaluation_engine import fold_consistency, generalization_gaps, get_scorer
from modules.evaluation_engine.scorers import Scorer
from modules.model_factory import EstimatorFitter, ModelFactory
from modules.pruning import PruningFitter
from modules.search_engine import SearchResult, search
from utils.error_handling import handle_engine_errors
from utils.exceptions import ConfigurationError
from utils.file_io import save_dataframe, save_json
from utils import constants

class TuningEngine(BaseEngine):
    """
    Runs one configured experiment through the cross-validated search.

    The experiment names a model family, a grid and a scorer; the engine turns
    them into the ``fit_fn``/``score_fn`` pair the search expects, runs it on
    the training records and persists:

    - ``search_results.parquet``: every candidate with per-fold scores.
    - ``fold_consistency.parquet``: fold-to-fold spread per candidate.
    - ``best_configuration.json``: winner, its description, holdout scores.
    - ``best_model.pkl``: the refit winner (joblib), when models are saved.
    """

    def __init__(self, config: dict, logger: logging.Logger, experiment: Dict[str, Any]):
        self.experiment = experiment
        self.name = experiment['name']
        super().__init__(config, logger)

    def _get_engine_directory_name(self) -> str:
        return str(Path(constants.TUNING_DIR) / self.name)

    @handle_engine_errors("Hyperparameter Search")
    def execute(self, train: Dataset, test: Optional[Dataset] = None) -> Dict[str, Any]:
        """
        Search the experiment's grid on ``train``; score the refit winner on
        ``test`` when a holdout is given.

        Returns:
            Dict summarising the best configuration.
        """
        exp = self.experiment
        task = self.task
        scorer = self.scorer
        k = exp.get('cv_folds', constants.DEFAULT_CV_FOLDS)
        seed = self.seed
        refit = exp.get('refit', True)

        self.logger.info(
            f"[{self.name}] {exp['model']} ({task}) scored by {scorer.name}, "
            f"{k}-fold CV, seed {seed}."
        )

        result = search(
            train,
            exp['grid'],
            self.build_fit_fn(),
            scorer,
            k,
            seed,
            greater_is_better=scorer.greater_is_better,
            complexity=self.complexity,
            tie_tolerance=exp.get('tie_tolerance', constants.DEFAULT_TIE_TOLERANCE),
            refit=refit,
            n_jobs=self.config.get('execution', {}).get('n_jobs', 1),
            logger=self.logger,
        )

        self._save_tables(result)
        summary = self._summarize(result, scorer, train, test)
        save_json(summary, self.output_dir / constants.BEST_CONFIG_FILE)

        if result.best_model is not None and self.config.get('outputs', {}).get('save_models', True):
            model_path = self.output_dir / constants.BEST_MODEL_FILE
            joblib.dump(result.best_model, model_path)
            self.logger.info(f"Model saved to {model_path}")

        self.logger.info(
            f"[{self.name}] Best {result.best.label} -> CV {scorer.name} {result.best_score:.4f}"
        )
        return summary

    @property
    def task(self) -> str:
        return self.experiment.get('task') or ModelFactory.task_of(self.experiment['model'])

    @property
    def seed(self) -> int:
        if 'seed' in self.experiment:
            return int(self.experiment['seed'])
        return int(self.config.get('_internal_seeds', {}).get('cv', 0))

    @property
    def scorer(self) -> Scorer:
        name = self.experiment.get('scorer') or constants.DEFAULT_SCORERS[self.task]
        return get_scorer(name)

    @property
    def complexity(self) -> Optional[str]:
        tie_break = self.experiment.get('tie_break') or {}
        policy = tie_break.get('policy', 'first')
        if policy == 'first':
            return None
        if policy == 'simplest':
            param = tie_break.get('complexity_param')
            if param not in self.experiment['grid']:
                raise ConfigurationError(
                    f"[{self.name}] tie_break.complexity_param '{param}' is not a grid parameter."
                )
            return param
        raise ConfigurationError(f"[{self.name}] Unknown tie-break policy '{policy}'.")

    def build_fit_fn(self):
        fixed = self.experiment.get('fixed_params', {})
        if self.experiment.get('prune', False):
            return PruningFitter(
                task=self.task,
                size_param=self.experiment.get('size_param', 'size'),
                fixed_params=fixed,
            )
        return EstimatorFitter(self.experiment['model'], fixed)

    def _save_tables(self, result: SearchResult) -> None:
        table = result.to_frame()
        # Mixed-type parameter columns (e.g. max_features None/'sqrt'/6) are stored as text
        for col in [c for c in table.columns if c.startswith('param_')]:
            if table[col].dtype == object:
                table[col] = table[col].map(str)
        save_dataframe(table, self.output_dir / constants.SEARCH_RESULTS_FILE, excel_copy=self.excel_copy)
        save_dataframe(fold_consistency(result), self.output_dir / constants.FOLD_CONSISTENCY_FILE,
                       excel_copy=self.excel_copy)

    def _summarize(self, result: SearchResult, scorer: Scorer,
                   train: Dataset, test: Optional[Dataset]) -> Dict[str, Any]:
        summary = {
            'experiment': self.name,
            'model': self.experiment['model'],
            'task': self.task,
            'scorer': scorer.name,
            'greater_is_better': result.greater_is_better,
            'n_candidates': len(result.candidates),
            'n_folds': result.n_folds,
            'fold_sizes': list(result.fold_sizes),
            'seed': result.seed,
            'params': result.best_params,
            'metrics': {
                'cv_mean': result.best_score,
                'cv_std': result.best.std_score,
                'cv_folds': list(result.best.fold_scores),
            },
        }

        model = result.best_model
        if model is None:
            return summary

        explain = getattr(model, 'explain', None)
        if explain is not None:
            summary['model_summary'] = explain()

        if test is not None:
            train_score = scorer(model, train)
            holdout_score = scorer(model, test)
            summary['metrics']['train'] = train_score
            summary['metrics']['holdout'] = holdout_score
            gaps = generalization_gaps({scorer.name: train_score}, {scorer.name: holdout_score})
            summary['generalization_gap'] = gaps.to_dict(orient='records')
            self.logger.info(
                f"[{self.name}] Holdout {scorer.name}: {holdout_score:.4f} (train {train_score:.4f})"
            )
        return summary
