# utils/constants.py

# --- Top-Level Result Directories ---
# Sequentially numbered for proper sorting

CONFIG_DIR = "01_RunConfiguration"          # Run config, metadata, seeds
DATA_DIR = "02_PreparedDatasets"            # Loaded, recoded and encoded datasets
SPLITS_DIR = "03_HoldoutSplits"             # Train/test partitions per dataset
TUNING_DIR = "04_CrossValidatedSearch"      # One sub-directory per experiment

# --- Artifact File Names ---
SEARCH_RESULTS_FILE = "search_results.parquet"
FOLD_CONSISTENCY_FILE = "fold_consistency.parquet"
BEST_CONFIG_FILE = "best_configuration.json"
BEST_MODEL_FILE = "best_model.pkl"
PREPARED_DATA_FILE = "prepared_data.parquet"
COLUMN_STATS_FILE = "column_stats.parquet"

# --- Search Defaults ---
DEFAULT_CV_FOLDS = 10
DEFAULT_TIE_TOLERANCE = 1e-12
DEFAULT_SCORERS = {
    "classification": "misclassification_rate",
    "regression": "mean_squared_error",
}
TASKS = ("classification", "regression")
TIE_BREAK_POLICIES = ("first", "simplest")

# --- Seed Offsets (relative to execution.seed) ---
SEED_OFFSETS = {
    "split": 0,
    "cv": 1000,
}
