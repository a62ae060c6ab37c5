#!/usr/bin/env python
"""
Statistical-Learning Tuning Lab - Main Entry Point
Runs every configured experiment: data preparation, optional holdout split,
and cross-validated hyperparameter search.
"""
import sys
import logging
import argparse
import traceback
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from modules.config_manager import ConfigurationManager
from modules.logging_config import LoggingConfigurator
from modules.data_manager import DataManager, Dataset
from modules.model_factory import ModelFactory
from modules.split_engine import SplitEngine
from modules.tuning_engine import TuningEngine
from utils.exceptions import StatLearnException, ConfigurationError


def parse_arguments(argv: Optional[List[str]] = None):
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Statistical-learning lab - cross-validated hyperparameter search",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--schema",
        type=str,
        default="config/schema.json",
        help="Path to the configuration JSON schema"
    )

    parser.add_argument(
        "--experiment",
        action="append",
        default=None,
        help="Run only the named experiment (repeatable)"
    )

    parser.add_argument(
        "--n-jobs",
        type=int,
        default=None,
        help="Override execution.n_jobs for the search workers"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration without running any experiment"
    )

    return parser.parse_args(argv)


def select_experiments(config: dict, names: Optional[List[str]]) -> List[dict]:
    experiments = config['experiments']
    if not names:
        return experiments

    known = {exp['name'] for exp in experiments}
    unknown = [n for n in names if n not in known]
    if unknown:
        raise ConfigurationError(f"Unknown experiment(s): {unknown}. Available: {sorted(known)}")
    return [exp for exp in experiments if exp['name'] in names]


def prepare_splits(config: dict, experiments: List[dict], logger: logging.Logger) -> Dict[str, Tuple[Dataset, Optional[Dataset]]]:
    """Load each referenced dataset once and split it once."""
    data_manager = DataManager(config, logger)
    splits = {}
    for exp in experiments:
        name = exp['dataset']
        if name in splits:
            continue
        dataset = data_manager.execute(name)
        task = exp.get('task') or ModelFactory.task_of(exp['model'])
        splits[name] = SplitEngine(config, logger, dataset_name=name).execute(dataset, task)
    return splits


def main(argv: Optional[List[str]] = None):
    """
    Main orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors, 130 when interrupted)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        print("\n" + "=" * 80)
        print("    STATISTICAL-LEARNING LAB: CROSS-VALIDATED HYPERPARAMETER SEARCH")
        print("=" * 80 + "\n")

        # ---------------------------------------------------------------
        # PHASE 0: CONFIGURATION & LOGGING
        # ---------------------------------------------------------------
        config_manager = ConfigurationManager(config_path=args.config, schema_path=args.schema)
        config = config_manager.load_and_validate()

        if args.verbose:
            config.setdefault('logging', {})['level'] = 'DEBUG'
        if args.n_jobs is not None:
            config.setdefault('execution', {})['n_jobs'] = args.n_jobs

        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('pipeline')
        logger.info(f"Configuration loaded from: {args.config}")

        experiments = select_experiments(config, args.experiment)

        run_id = config_manager.generate_run_id()
        run_dir = Path(config['outputs']['base_results_dir']).absolute() / run_id
        run_dir.mkdir(parents=True, exist_ok=True)
        config['outputs']['base_results_dir'] = str(run_dir)
        config_manager.save_artifacts(str(run_dir))

        logger.info(f"Run ID: {run_id}")
        logger.info(f"Output Directory: {run_dir}")

        if args.dry_run:
            logger.info("Dry run mode: validation complete. Exiting without running experiments.")
            print("\n[SUCCESS] Configuration validated successfully.")
            return 0

        # ---------------------------------------------------------------
        # PHASE 1: DATA PREPARATION & HOLDOUT
        # ---------------------------------------------------------------
        logger.info("=" * 60)
        logger.info("PHASE 1: DATA PREPARATION & HOLDOUT")
        logger.info("=" * 60)
        splits = prepare_splits(config, experiments, logger)

        # ---------------------------------------------------------------
        # PHASE 2: CROSS-VALIDATED SEARCH
        # ---------------------------------------------------------------
        logger.info("=" * 60)
        logger.info("PHASE 2: CROSS-VALIDATED SEARCH")
        logger.info("=" * 60)

        summaries = []
        for exp in experiments:
            train, test = splits[exp['dataset']]
            summaries.append(TuningEngine(config, logger, exp).execute(train, test))

        logger.info("-" * 60)
        for summary in summaries:
            metrics = summary['metrics']
            holdout = f", holdout {metrics['holdout']:.4f}" if 'holdout' in metrics else ""
            logger.info(
                f"{summary['experiment']}: {summary['params']} "
                f"CV {summary['scorer']} {metrics['cv_mean']:.4f}{holdout}"
            )
        logger.info("-" * 60)

        print(f"\n[SUCCESS] {len(summaries)} experiment(s) completed. Results saved to: {run_dir}")
        return 0

    except StatLearnException as e:
        msg = f"Pipeline Error: {str(e)}"
        print(f"\n[ERROR] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1

    except KeyboardInterrupt:
        print("\n[INTERRUPTED] Pipeline interrupted by user.")
        if logger:
            logger.warning("Pipeline interrupted by user (Ctrl+C)")
        return 130

    except Exception as e:
        msg = f"Unexpected Error: {str(e)}"
        print(f"\n[CRITICAL] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
