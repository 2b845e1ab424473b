"""
Persistence of intermediate pipeline artifacts.

Bundles are plain dicts written with joblib and tagged with library versions:
- model data bundle: {train, test, fold_sets, recipe_spec, fitted_recipe, config}
- model bundle: {family, search_result, final_model, train_preds}
"""

import logging
from pathlib import Path
from typing import Any

from hbc_ml.utils.serialization import library_versions, load_joblib, save_joblib

logger = logging.getLogger(__name__)

MODEL_DATA_KEYS = ("train", "test", "fold_sets", "recipe_spec", "fitted_recipe")
MODEL_BUNDLE_KEYS = ("family", "search_result", "final_model", "train_preds")


def save_model_data(path: str | Path, **contents: Any) -> Path:
    """
    Save the training/test data, fold assignments and fitted recipe.

    Raises:
        ValueError: If a required key is missing
    """
    _check_keys(contents, MODEL_DATA_KEYS, "model data bundle")
    path = Path(path)
    save_joblib({**contents, "versions": library_versions()}, path)
    logger.info(f"Saved model data bundle: {path}")
    return path


def load_model_data(path: str | Path) -> dict[str, Any]:
    """Load a model data bundle written by save_model_data."""
    bundle = load_joblib(path)
    _check_keys(bundle, MODEL_DATA_KEYS, f"model data bundle {path}")
    return bundle


def save_model_bundle(path: str | Path, **contents: Any) -> Path:
    """
    Save one model family's search result, final model and training predictions.

    Raises:
        ValueError: If a required key is missing
    """
    _check_keys(contents, MODEL_BUNDLE_KEYS, "model bundle")
    path = Path(path)
    save_joblib({**contents, "versions": library_versions()}, path)
    logger.info(f"Saved {contents['family']} bundle: {path}")
    return path


def load_model_bundle(path: str | Path) -> dict[str, Any]:
    """Load a model bundle written by save_model_bundle."""
    bundle = load_joblib(path)
    _check_keys(bundle, MODEL_BUNDLE_KEYS, f"model bundle {path}")
    return bundle


def _check_keys(contents: dict[str, Any], required: tuple[str, ...], what: str):
    if not isinstance(contents, dict):
        raise ValueError(f"Invalid {what}: expected dict, got {type(contents).__name__}")
    missing = [k for k in required if k not in contents]
    if missing:
        raise ValueError(f"Invalid {what}: missing keys {missing}")
