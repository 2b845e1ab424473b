"""
CLI implementation for the explain command.

For one tree-based family: permutation importance on the training set,
impurity importance, and Shapley attribution for the first training rows
against a random reference sample.
"""

from pathlib import Path
from typing import Any

from hbc_ml.cli.common import resolve_config, save_stage_config, stage_logger
from hbc_ml.data.io import split_features_target
from hbc_ml.data.persistence import load_model_bundle, load_model_data
from hbc_ml.data.schema import TREE_MODELS
from hbc_ml.explain.importance import (
    aggregate_by_source,
    compute_impurity_importance,
    compute_permutation_importance,
)
from hbc_ml.explain.shapley import check_additivity, compute_shap_values
from hbc_ml.utils.logging import log_section
from hbc_ml.utils.paths import MODEL_DATA_FILE, get_explain_dir, get_model_bundle_path
from hbc_ml.utils.serialization import save_json


def run_explain(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
) -> Path:
    """
    Compute importance tables and Shapley values for explain.model.

    Returns:
        Explanation output directory

    Raises:
        ValueError: If explain.model is not a tree family
        FileNotFoundError: If the family has no saved bundle
    """
    cli_args = cli_args or {}
    logger = stage_logger(verbose, cli_args.get("log_file"))
    log_section(logger, "HBC-ML Explanation")

    config = resolve_config(config_file, cli_args, overrides)
    outdir = Path(config.outdir)
    save_stage_config(config, "explain")
    settings = config.explain

    if settings.model not in TREE_MODELS:
        raise ValueError(f"explain.model must be one of {TREE_MODELS}, got '{settings.model}'")

    data = load_model_data(outdir / MODEL_DATA_FILE)
    bundle = load_model_bundle(get_model_bundle_path(outdir, settings.model))
    final_model = bundle["final_model"]
    X_train, y_train = split_features_target(data["train"])
    explain_dir = get_explain_dir(outdir)

    perm = compute_permutation_importance(
        final_model,
        X_train,
        y_train,
        scoring=settings.perm_scoring,
        n_repeats=settings.perm_repeats,
        random_state=settings.random_state,
    )
    perm.to_csv(explain_dir / "importance_permutation.csv", index=False)
    aggregate_by_source(perm, "importance_mean").to_csv(
        explain_dir / "importance_permutation_by_feature.csv", index=False
    )
    logger.info(f"Top permutation features: {', '.join(perm['feature'].head(5))}")

    impurity = compute_impurity_importance(final_model)
    impurity.to_csv(explain_dir / "importance_impurity.csv", index=False)

    instances = X_train.head(settings.n_instances)
    reference = X_train.sample(
        n=min(settings.n_reference, len(X_train)), random_state=settings.random_state
    )
    shap_result = compute_shap_values(final_model, instances, reference)
    shap_result.to_frame().to_csv(explain_dir / "shap_values.csv", index=False)
    shap_result.mean_abs().to_csv(explain_dir / "shap_mean_abs.csv", index=False)

    ok, max_err = check_additivity(shap_result)
    save_json(
        {
            "model": settings.model,
            "baseline": shap_result.baseline,
            "n_instances": len(instances),
            "n_reference": shap_result.n_reference,
            "reference_seed": settings.random_state,
            "additivity_ok": ok,
            "additivity_max_error": max_err,
        },
        explain_dir / "shap_baseline.json",
    )
    logger.info(f"Saved explanation artifacts: {explain_dir}")
    return explain_dir
