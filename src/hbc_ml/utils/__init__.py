"""Utility functions for HBC-ML."""

from hbc_ml.utils.logging import level_from_verbosity, log_section, setup_logger
from hbc_ml.utils.paths import (
    ensure_dir,
    get_explain_dir,
    get_model_bundle_path,
    get_preds_dir,
)
from hbc_ml.utils.random import apply_seed_global, get_cv_seed, set_random_seed
from hbc_ml.utils.serialization import (
    library_versions,
    load_joblib,
    load_json,
    save_joblib,
    save_json,
    to_native,
)

__all__ = [
    "setup_logger",
    "level_from_verbosity",
    "log_section",
    "ensure_dir",
    "get_model_bundle_path",
    "get_preds_dir",
    "get_explain_dir",
    "set_random_seed",
    "apply_seed_global",
    "get_cv_seed",
    "library_versions",
    "save_joblib",
    "load_joblib",
    "save_json",
    "load_json",
    "to_native",
]
