"""
Default configuration values.

This module is the single source of truth for default parameter values used
when no YAML file is given; they reproduce the original tuning workflow.
"""

from typing import Any

from hbc_ml.data.schema import VALID_MODELS

DEFAULT_CLEANING_CONFIG: dict[str, Any] = {
    "drop_duplicates": True,
    "drop_zero_guests": True,
    "min_adr": 0.0,
    "max_adr": 1000.0,
}

# initial_split(prop = 3/4, strata = is_canceled)
DEFAULT_SPLIT_CONFIG: dict[str, Any] = {
    "test_size": 0.25,
    "random_state": 0,
}

DEFAULT_RECIPE_CONFIG: dict[str, Any] = {
    "binarize_cutpoint": 0.0,
    "other_threshold": 100,
    "scale_indicators": False,
}

DEFAULT_CV_CONFIG: dict[str, Any] = {
    "folds": 5,
    "repeats": 3,
    "scoring": "roc_auc",
    "random_state": 0,
    "n_jobs": 1,
}

# lasso: tibble(penalty = 10^seq(-4, -1, length.out = 20))
DEFAULT_LASSO_CONFIG: dict[str, Any] = {
    "penalty_min": 1e-4,
    "penalty_max": 1e-1,
    "penalty_points": 20,
}

# decision tree: grid_regular(cost_complexity(), tree_depth(), levels = 4)
DEFAULT_DECISION_TREE_CONFIG: dict[str, Any] = {
    "cost_complexity_range": [1e-10, 1e-1],
    "tree_depth_range": [1, 15],
    "levels": 4,
}

# knn: data.frame(neighbors = c(10, 20, 30, 40, 50, 60))
DEFAULT_KNN_CONFIG: dict[str, Any] = {
    "neighbors_grid": [10, 20, 30, 40, 50, 60],
    "weights": "distance",
}

# random forest: grid_latin_hypercube(min_n(), mtry(range = c(4, 12)), trees(), size = 50)
DEFAULT_RANDOM_FOREST_CONFIG: dict[str, Any] = {
    "min_n_range": [2, 40],
    "mtry_range": [4, 12],
    "trees_range": [1, 2000],
    "size": 50,
    "final_override": None,
}

DEFAULT_EXPLAIN_CONFIG: dict[str, Any] = {
    "model": "random_forest",
    "n_reference": 100,
    "n_instances": 100,
    "perm_repeats": 5,
    "perm_scoring": "roc_auc",
    "random_state": 0,
}

DEFAULT_PIPELINE_CONFIG: dict[str, Any] = {
    "outdir": "results",
    "models": list(VALID_MODELS),
    "strictness": "warn",
    "cleaning": DEFAULT_CLEANING_CONFIG,
    "split": DEFAULT_SPLIT_CONFIG,
    "recipe": DEFAULT_RECIPE_CONFIG,
    "cv": DEFAULT_CV_CONFIG,
    "lasso": DEFAULT_LASSO_CONFIG,
    "decision_tree": DEFAULT_DECISION_TREE_CONFIG,
    "knn": DEFAULT_KNN_CONFIG,
    "random_forest": DEFAULT_RANDOM_FOREST_CONFIG,
    "explain": DEFAULT_EXPLAIN_CONFIG,
}
