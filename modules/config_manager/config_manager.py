import json
import os
import hashlib
import sys
import logging
import jsonschema
import psutil
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from modules.evaluation_engine.scorers import SCORERS
from modules.model_factory import ModelFactory
from modules.search_engine.grid import count_combinations
from utils.exceptions import ConfigurationError, InvalidGridError
from utils import constants

class ConfigurationManager:
    """
    Manages lab configuration loading, validation, and access.

    Validation happens in four passes: JSON schema (structure), logic
    (cross-references between datasets and experiments, known models and
    scorers, fold counts, tie-break policies), resources (total number of
    fits, memory) and finally seed propagation.
    """

    DEFAULT_MAX_FITS = 100000  # Candidates x folds across all experiments

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = "config/schema.json"):
        """
        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Path to the JSON schema definition.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Load config, validate schema/logic/resources, and propagate seeds.

        Returns:
            Dict[str, Any]: The fully validated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        self.config = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)

        self._validate_schema()
        self._validate_logic()
        self._validate_resources()
        self._propagate_seeds()

        return self.config

    def generate_run_id(self) -> str:
        """Timestamp-based run identifier (YYYYMMDD_HHMMSS)."""
        if not self.run_id:
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save configuration artifacts to the run directory for reproducibility:
        config_used.json, config_hash.txt and run_metadata.json.
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(config_dir / "config_used.json", 'w') as f:
            json.dump(self.config, f, indent=2)

        config_str = json.dumps(self.config, sort_keys=True)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()

        with open(config_dir / "config_hash.txt", 'w') as f:
            f.write(config_hash)

        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': sys.platform,
            'config_hash': config_hash,
            'working_directory': os.getcwd()
        }

        with open(config_dir / "run_metadata.json", 'w') as f:
            json.dump(metadata, f, indent=2)

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    def _validate_logic(self) -> None:
        """Cross-field validation the schema cannot express."""
        datasets = self.config.get('datasets', {})
        for name, entry in datasets.items():
            if not entry.get('file_path'):
                raise ConfigurationError(f"Dataset '{name}' must specify a non-empty file_path.")
            if not entry.get('response'):
                raise ConfigurationError(f"Dataset '{name}' must specify a response column.")
            recode = entry.get('recode')
            if recode:
                labels = recode.get('labels', ['No', 'Yes'])
                if len(labels) != 2 or labels[0] == labels[1]:
                    raise ConfigurationError(f"Dataset '{name}': recode.labels must be two distinct labels.")
                if recode.get('target', entry['response']) != entry['response']:
                    raise ConfigurationError(
                        f"Dataset '{name}': recode.target must match the response column '{entry['response']}'."
                    )

        experiments = self.config.get('experiments', [])
        if not experiments:
            raise ConfigurationError("At least one experiment must be configured.")

        seen = set()
        for exp in experiments:
            name = exp.get('name')
            if not name:
                raise ConfigurationError("Every experiment needs a non-empty 'name'.")
            if name in seen:
                raise ConfigurationError(f"Duplicate experiment name: {name}")
            seen.add(name)
            self._validate_experiment(exp, datasets)

        split = self.config.get('splitting', {})
        test_size = split.get('test_size')
        if test_size is not None and not (0.0 < test_size < 1.0):
            raise ConfigurationError(f"test_size must be between 0 and 1 (exclusive), got {test_size}")

        execution = self.config.get('execution', {})
        if execution.get('seed', 0) < 0:
            raise ConfigurationError("execution.seed must be non-negative.")
        if 'n_jobs' in execution:
            n_jobs = execution['n_jobs']
            if n_jobs == 0 or n_jobs < -1:
                raise ConfigurationError(f"execution.n_jobs must be -1 (all cores) or a positive integer, got {n_jobs}")

    def _validate_experiment(self, exp: Dict[str, Any], datasets: Dict[str, Any]) -> None:
        name = exp['name']

        if exp.get('dataset') not in datasets:
            raise ConfigurationError(f"Experiment '{name}' references unknown dataset '{exp.get('dataset')}'.")

        model = exp.get('model')
        if model not in ModelFactory.get_available_models():
            raise ConfigurationError(
                f"Experiment '{name}': unknown model '{model}'. Available: {ModelFactory.get_available_models()}"
            )
        task = exp.get('task') or ModelFactory.task_of(model)
        if task not in constants.TASKS:
            raise ConfigurationError(f"Experiment '{name}': task must be one of {constants.TASKS}, got '{task}'.")
        if ModelFactory.task_of(model) != task:
            raise ConfigurationError(f"Experiment '{name}': model '{model}' does not solve a {task} task.")

        if exp.get('prune', False):
            if not model.startswith('DecisionTree'):
                raise ConfigurationError(f"Experiment '{name}': pruning is only available for decision trees.")
            size_param = exp.get('size_param', 'size')
            if size_param not in exp.get('grid', {}):
                raise ConfigurationError(f"Experiment '{name}': pruning grid must sweep '{size_param}'.")

        try:
            count_combinations(exp.get('grid'))
        except InvalidGridError as e:
            raise ConfigurationError(f"Experiment '{name}': invalid grid: {e}")

        tuned = [p for p in exp['grid'] if not (exp.get('prune', False) and p == exp.get('size_param', 'size'))]
        for source, names in (('grid', tuned), ('fixed_params', list(exp.get('fixed_params', {})))):
            unknown = ModelFactory.unsupported_params(model, names)
            if unknown:
                raise ConfigurationError(
                    f"Experiment '{name}': {source} parameter(s) {unknown} are not accepted by {model}."
                )

        cv_folds = exp.get('cv_folds', constants.DEFAULT_CV_FOLDS)
        if isinstance(cv_folds, bool) or not isinstance(cv_folds, int) or cv_folds < 2:
            raise ConfigurationError(f"Experiment '{name}': cv_folds must be an integer >= 2, got {cv_folds}.")

        scorer = exp.get('scorer')
        if scorer is not None:
            if scorer not in SCORERS:
                raise ConfigurationError(f"Experiment '{name}': unknown scorer '{scorer}'. Available: {list(SCORERS)}")
            if SCORERS[scorer].task != task:
                raise ConfigurationError(f"Experiment '{name}': scorer '{scorer}' is not a {task} metric.")

        tie_break = exp.get('tie_break') or {}
        policy = tie_break.get('policy', 'first')
        if policy not in constants.TIE_BREAK_POLICIES:
            raise ConfigurationError(
                f"Experiment '{name}': tie_break.policy must be one of {constants.TIE_BREAK_POLICIES}, got '{policy}'."
            )
        if policy == 'simplest' and tie_break.get('complexity_param') not in exp.get('grid', {}):
            raise ConfigurationError(
                f"Experiment '{name}': tie_break.complexity_param must name a grid parameter."
            )

    def _validate_resources(self) -> None:
        """
        Guard against combinatorial explosions: the total number of model fits
        (candidates x folds, summed over experiments) must stay under
        resources.max_fits.
        """
        resources = self.config.get('resources', {})

        total_fits = 0
        for exp in self.config.get('experiments', []):
            total_fits += count_combinations(exp['grid']) * exp.get('cv_folds', constants.DEFAULT_CV_FOLDS)

        max_fits = resources.get('max_fits', self.DEFAULT_MAX_FITS)
        if total_fits > max_fits:
            raise ConfigurationError(
                f"Search Explosion Detected! Total fits ({total_fits}) exceeds safety limit ({max_fits}). "
                "Reduce the grids or fold counts, or increase 'resources.max_fits'."
            )
        logging.info(f"Search size validated: {total_fits} fits (Limit: {max_fits})")

        system_ram_mb = int(psutil.virtual_memory().total / (1024 * 1024))
        safe_ram_limit = int(system_ram_mb * 0.8)
        config_max_ram = resources.get('max_memory_mb', safe_ram_limit)

        if config_max_ram > system_ram_mb:
            logging.warning(
                f"Configured max_memory_mb ({config_max_ram}MB) exceeds physical system RAM ({system_ram_mb}MB). "
                "Parallel workers may exhaust memory."
            )

        self.config.setdefault('resources', {})
        self.config['resources']['max_memory_mb'] = config_max_ram

    def _propagate_seeds(self) -> None:
        """
        Derive per-component seeds from execution.seed so that the holdout
        split and the cross-validated search never share a stream. The search
        seed drives both fold assignment and every model fit.
        """
        master_seed = self.config.get('execution', {}).get('seed', 42)

        self.config['_internal_seeds'] = {
            component: master_seed + offset
            for component, offset in constants.SEED_OFFSETS.items()
        }
        logging.debug(f"Seeds propagated from master ({master_seed}): {self.config['_internal_seeds']}")
