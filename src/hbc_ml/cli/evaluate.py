"""
CLI implementation for the evaluate command.

Scores every tuned family on the held-out test set and writes the
cross-family comparison table.
"""

from pathlib import Path
from typing import Any

import pandas as pd

from hbc_ml.cli.common import resolve_config, save_stage_config, stage_logger
from hbc_ml.data.io import split_features_target
from hbc_ml.data.persistence import load_model_bundle, load_model_data
from hbc_ml.evaluation.compare import compare_models
from hbc_ml.evaluation.predict import export_predictions, predict_frame
from hbc_ml.utils.logging import log_section
from hbc_ml.utils.paths import (
    COMPARISON_FILE,
    MODEL_DATA_FILE,
    get_model_bundle_path,
    get_preds_dir,
)


def run_evaluate(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
) -> pd.DataFrame:
    """
    Evaluate tuned families on the test set.

    Families listed in the config without a saved bundle are skipped with a warning.

    Returns:
        Comparison table (also written to comparison.csv)

    Raises:
        FileNotFoundError: If no configured family has a saved bundle
    """
    cli_args = cli_args or {}
    logger = stage_logger(verbose, cli_args.get("log_file"))
    log_section(logger, "HBC-ML Evaluation")

    config = resolve_config(config_file, cli_args, overrides)
    outdir = Path(config.outdir)
    save_stage_config(config, "evaluate")

    data = load_model_data(outdir / MODEL_DATA_FILE)
    X_test, y_test = split_features_target(data["test"])
    logger.info(f"Test set: {len(X_test):,} rows, {int(y_test.sum()):,} canceled")

    search_results = {}
    test_preds = {}
    final_models = {}
    for model_name in config.models:
        bundle_path = get_model_bundle_path(outdir, model_name)
        if not bundle_path.exists():
            logger.warning(f"No bundle for {model_name} ({bundle_path}); skipping")
            continue
        bundle = load_model_bundle(bundle_path)
        preds = predict_frame(bundle["final_model"], X_test, y_test, split="test")
        export_predictions(preds, get_preds_dir(outdir) / f"{model_name}_test_preds.csv")
        search_results[model_name] = bundle["search_result"]
        test_preds[model_name] = preds
        final_models[model_name] = bundle["final_model"]

    if not search_results:
        raise FileNotFoundError(
            f"No model bundles found under {outdir / 'models'}. Run `hbc tune` first."
        )

    comparison = compare_models(search_results, test_preds, final_models)
    out_path = outdir / COMPARISON_FILE
    comparison.to_csv(out_path, index=False)

    for _, row in comparison.iterrows():
        logger.info(
            f"  {row['rank']}. {row['model']:<14} cv={row['cv_mean']:.4f} "
            f"test AUROC={row['test_auroc']:.4f} PR-AUC={row['test_prauc']:.4f}"
        )
    logger.info(f"Saved comparison: {out_path}")
    return comparison
