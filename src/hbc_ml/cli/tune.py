"""
CLI implementation for the tune command.

For every requested family: cross-validated search over the family's space,
selection of the best configuration, refit on the full training set and a
saved model bundle.
"""

from pathlib import Path
from typing import Any

from hbc_ml.cli.common import resolve_config, save_stage_config, stage_logger
from hbc_ml.data.io import split_features_target
from hbc_ml.data.persistence import load_model_data, save_model_bundle
from hbc_ml.evaluation.predict import export_predictions, predict_frame
from hbc_ml.metrics.discrimination import get_metric
from hbc_ml.models.hyperparams import get_search_space
from hbc_ml.models.registry import get_family
from hbc_ml.models.search import refit, search, select_best
from hbc_ml.utils.logging import log_section
from hbc_ml.utils.paths import (
    MODEL_DATA_FILE,
    ensure_dir,
    get_model_bundle_path,
    get_preds_dir,
)
from hbc_ml.utils.random import log_seed_plan


def run_tune(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
) -> dict[str, Path]:
    """
    Run hyperparameter search and refit for every configured model family.

    Returns:
        Mapping family -> saved bundle path

    Raises:
        SearchExhaustedError: If every configuration of a family fails
    """
    cli_args = cli_args or {}
    logger = stage_logger(verbose, cli_args.get("log_file"))
    log_section(logger, "HBC-ML Tuning")

    config = resolve_config(config_file, cli_args, overrides)
    outdir = Path(config.outdir)
    save_stage_config(config, "tune")
    log_seed_plan(config, logger)

    data = load_model_data(outdir / MODEL_DATA_FILE)
    X_train, y_train = split_features_target(data["train"])
    spec = data["recipe_spec"]
    fold_sets = data["fold_sets"]
    metric = get_metric(config.cv.scoring)

    logger.info(
        f"Models: {', '.join(config.models)} | folds={fold_sets[0].k} x repeats={len(fold_sets)} "
        f"| train rows={len(X_train):,}"
    )

    saved = {}
    for model_name in config.models:
        log_section(logger, f"Model: {model_name}", char="-")
        family = get_family(model_name, config)
        space = get_search_space(model_name, config)

        result = search(
            spec,
            X_train,
            y_train,
            fold_sets,
            family,
            space,
            metric=metric,
            n_jobs=config.cv.n_jobs,
        )
        best = select_best(result.ranked, family)

        override = None
        if model_name == "random_forest":
            override = config.random_forest.final_override
        final_model = refit(spec, X_train, y_train, family, best, override=override)

        train_preds = predict_frame(final_model, X_train, y_train, split="train")
        export_predictions(train_preds, get_preds_dir(outdir) / f"{model_name}_train_preds.csv")

        bundle_path = get_model_bundle_path(outdir, model_name)
        summary_path = ensure_dir(bundle_path.parent) / f"{model_name}_search.csv"
        result.summary().to_csv(summary_path, index=False)
        saved[model_name] = save_model_bundle(
            bundle_path,
            family=model_name,
            search_result=result,
            final_model=final_model,
            train_preds=train_preds,
        )

    return saved
