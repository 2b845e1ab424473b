"""Cross-family model comparison."""

import logging
from collections.abc import Mapping

import numpy as np
import pandas as pd

from hbc_ml.data.schema import MODEL_DISPLAY_NAMES
from hbc_ml.metrics.discrimination import compute_discrimination_metrics
from hbc_ml.models.search import FinalModel, RankedConfig, SearchResult
from hbc_ml.utils.serialization import to_native

logger = logging.getLogger(__name__)


def _selected_entry(result: SearchResult, final_model: FinalModel | None) -> RankedConfig:
    """Ranked entry the final model was refit from (ranked[0] unless refit chose otherwise)."""
    if final_model is not None:
        for rc in result.ranked:
            if to_native(rc.configuration.params) == to_native(final_model.selected_params):
                return rc
        logger.warning(
            f"{result.family}: refit parameters {to_native(final_model.selected_params)} "
            "are not among the ranked configurations; reporting the top-ranked one"
        )
    return result.ranked[0]


def compare_models(
    search_results: Mapping[str, SearchResult],
    test_preds: Mapping[str, pd.DataFrame] | None = None,
    final_models: Mapping[str, FinalModel] | None = None,
) -> pd.DataFrame:
    """
    Rank model families by the cross-validated score of their selected configuration.

    Args:
        search_results: family -> SearchResult
        test_preds: family -> prediction table from predict_frame (optional);
            adds test AUROC, PR-AUC and Brier columns
        final_models: family -> FinalModel the test predictions came from
            (optional); final_params and overridden then describe that model

    Returns:
        One row per family, sorted by cv_mean descending. best_params is the
        search selection, final_params what was actually fit.
    """
    rows = []
    for family, result in search_results.items():
        final_model = (final_models or {}).get(family)
        best = _selected_entry(result, final_model)
        cv_scores = result.table.loc[
            result.table["config_id"] == best.configuration.config_id, "score"
        ]
        selected_json = best.configuration.params_json()
        row = {
            "model": family,
            "display_name": MODEL_DISPLAY_NAMES.get(family, family),
            "metric": result.metric,
            "cv_mean": best.mean_score,
            "cv_std": float(cv_scores.std(ddof=1)) if len(cv_scores) > 1 else np.nan,
            "n_configs": len(result.configurations),
            "n_failed_configs": result.n_failed_configs,
            "best_params": selected_json,
            "final_params": selected_json,
            "overridden": False,
        }
        if final_model is not None:
            row["final_params"] = final_model.params_json()
            row["overridden"] = final_model.override is not None

        if test_preds is not None and family in test_preds:
            preds = test_preds[family]
            metrics = compute_discrimination_metrics(preds["y_true"], preds["y_prob"])
            row.update(
                {
                    "test_auroc": metrics["AUROC"],
                    "test_prauc": metrics["PR_AUC"],
                    "test_brier": metrics["Brier"],
                    "test_accuracy": metrics["Accuracy"],
                }
            )
        rows.append(row)

    table = pd.DataFrame(rows)
    if table.empty:
        return table
    table = table.sort_values(["cv_mean", "model"], ascending=[False, True]).reset_index(drop=True)
    table.insert(0, "rank", np.arange(1, len(table) + 1))
    logger.info(f"Best family by CV: {table.loc[0, 'model']} ({table.loc[0, 'cv_mean']:.4f})")
    return table
