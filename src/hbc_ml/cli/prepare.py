"""
CLI implementation for the prepare command.

Splits the cleaned bookings into train/test, builds the repeated stratified
folds over the training set, fits the recipe on the full training set for
inspection and saves everything as model_data.joblib.
"""

from pathlib import Path
from typing import Any

import pandas as pd

from hbc_ml.cli.common import resolve_config, save_stage_config, stage_logger
from hbc_ml.data.io import split_features_target, validate_required_columns
from hbc_ml.data.persistence import save_model_data
from hbc_ml.data.schema import TARGET_COL
from hbc_ml.data.splits import (
    fold_summary,
    make_folds,
    stratified_train_test_split,
    validate_fold_sets,
)
from hbc_ml.features.recipe import Recipe, RecipeSpec
from hbc_ml.utils.logging import log_section
from hbc_ml.utils.paths import CLEANED_FILE, MODEL_DATA_FILE, ensure_dir
from hbc_ml.utils.random import log_seed_plan


def run_prepare(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
) -> Path:
    """
    Run the split/fold/recipe preparation stage.

    Returns:
        Path of the model data bundle

    Raises:
        FileNotFoundError: If cleaned.csv is missing (run `hbc clean` first)
        RuntimeError: If the generated folds do not partition the training set
    """
    cli_args = cli_args or {}
    logger = stage_logger(verbose, cli_args.get("log_file"))
    log_section(logger, "HBC-ML Data Preparation")

    config = resolve_config(config_file, cli_args, overrides)
    outdir = ensure_dir(config.outdir)
    save_stage_config(config, "prepare")
    log_seed_plan(config, logger)

    cleaned_path = outdir / CLEANED_FILE
    if not cleaned_path.exists():
        raise FileNotFoundError(f"Cleaned data not found: {cleaned_path}. Run `hbc clean` first.")
    df = pd.read_csv(cleaned_path, low_memory=False)
    spec = RecipeSpec.from_config(config.recipe)
    validate_required_columns(df, [TARGET_COL, *spec.required_columns])

    train_df, test_df = stratified_train_test_split(
        df, test_size=config.split.test_size, random_state=config.split.random_state
    )
    X_train, y_train = split_features_target(train_df)

    fold_sets = make_folds(
        y_train, k=config.cv.folds, repeats=config.cv.repeats, seed=config.cv.random_state
    )
    ok, reason = validate_fold_sets(fold_sets, len(train_df))
    if not ok:
        raise RuntimeError(f"Invalid fold assignment: {reason}")

    summary = fold_summary(fold_sets, y_train)
    summary.to_csv(outdir / "folds.csv", index=False)
    logger.info(
        f"Fold positive rate range: {summary['pos_rate'].min():.3f}-{summary['pos_rate'].max():.3f}"
    )

    fitted = Recipe(spec).fit(X_train)

    out_path = save_model_data(
        outdir / MODEL_DATA_FILE,
        train=train_df,
        test=test_df,
        fold_sets=fold_sets,
        recipe_spec=spec,
        fitted_recipe=fitted,
        config=config.model_dump(mode="json"),
    )
    return out_path
