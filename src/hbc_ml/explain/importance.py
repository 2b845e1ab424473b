"""
Global feature importance for a refit model.

- Permutation importance on the transformed feature matrix (any family)
- Impurity importance from tree ensembles (feature_importances_)
- Aggregation of transformed-column importances back to input features
"""

import logging

import numpy as np
import pandas as pd
from sklearn.inspection import permutation_importance

from hbc_ml.models.search import FinalModel

logger = logging.getLogger(__name__)


def compute_permutation_importance(
    final_model: FinalModel,
    df: pd.DataFrame,
    y: np.ndarray | pd.Series,
    scoring: str = "roc_auc",
    n_repeats: int = 5,
    random_state: int = 0,
    n_jobs: int = 1,
) -> pd.DataFrame:
    """
    Drop in score when each transformed column is shuffled.

    Args:
        final_model: Refit model
        df: Raw records to evaluate on (typically the training set)
        y: True labels (0/1)
        scoring: scikit-learn scorer name
        n_repeats: Shuffles per column
        random_state: Permutation seed

    Returns:
        DataFrame with columns feature, source, importance_mean,
        importance_std, sorted by importance_mean descending
    """
    y = np.asarray(y).astype(int)
    X = final_model.transform(df)
    logger.info(
        f"[perm] {final_model.family}: {X.shape[1]} features x {n_repeats} repeats "
        f"on {X.shape[0]:,} rows (scoring={scoring}, seed={random_state})"
    )
    result = permutation_importance(
        final_model.estimator,
        X,
        y,
        scoring=scoring,
        n_repeats=n_repeats,
        random_state=random_state,
        n_jobs=n_jobs,
    )
    sources = final_model.recipe.column_sources
    table = pd.DataFrame(
        {
            "feature": final_model.feature_names,
            "source": [sources[c] for c in final_model.feature_names],
            "importance_mean": result.importances_mean,
            "importance_std": result.importances_std,
        }
    )
    return table.sort_values(
        ["importance_mean", "feature"], ascending=[False, True]
    ).reset_index(drop=True)


def compute_impurity_importance(final_model: FinalModel) -> pd.DataFrame:
    """
    Mean decrease in impurity from a fitted tree model.

    Raises:
        ValueError: If the estimator exposes no feature_importances_
    """
    estimator = final_model.estimator
    if not hasattr(estimator, "feature_importances_"):
        raise ValueError(
            f"{final_model.family} has no impurity importance (feature_importances_)"
        )
    sources = final_model.recipe.column_sources
    table = pd.DataFrame(
        {
            "feature": final_model.feature_names,
            "source": [sources[c] for c in final_model.feature_names],
            "importance": np.asarray(estimator.feature_importances_, dtype=float),
        }
    )
    return table.sort_values(["importance", "feature"], ascending=[False, True]).reset_index(
        drop=True
    )


def aggregate_by_source(importance: pd.DataFrame, value_col: str) -> pd.DataFrame:
    """Sum transformed-column importances per input feature (non-finite values skipped)."""
    finite = importance[np.isfinite(importance[value_col].to_numpy(dtype=float))]
    grouped = finite.groupby("source", sort=True)[value_col].sum().reset_index()
    grouped = grouped.rename(columns={"source": "feature"})
    return grouped.sort_values([value_col, "feature"], ascending=[False, True]).reset_index(
        drop=True
    )
