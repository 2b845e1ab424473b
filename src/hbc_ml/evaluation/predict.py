"""Prediction generation utilities for refit models.

This module handles:
- Generating P(canceled) for train/test sets from a FinalModel
- Prediction tables (row index, true label, probability)
- Prediction export to CSV
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from hbc_ml.data.schema import ROW_ID_COL
from hbc_ml.models.search import FinalModel

logger = logging.getLogger(__name__)


def generate_predictions(model: FinalModel, X: pd.DataFrame) -> np.ndarray:
    """Probability predictions for the positive class, clipped to [0, 1]."""
    return np.clip(model.predict_proba(X), 0.0, 1.0)


def predict_frame(
    model: FinalModel,
    X: pd.DataFrame,
    y: np.ndarray | pd.Series,
    split: str,
) -> pd.DataFrame:
    """
    Build a prediction table for one dataset.

    Args:
        model: Refit model
        X: Predictors (raw records)
        y: True labels (0/1)
        split: Dataset name written to the "split" column ("train", "test")

    Returns:
        DataFrame with columns row_index, y_true, y_prob, split, model.
        row_index is the row_id column when X carries one, else the index of X.
    """
    y = np.asarray(y).astype(int)
    if len(y) != len(X):
        raise ValueError(f"y has {len(y)} labels but X has {len(X)} rows")

    row_index = X[ROW_ID_COL].to_numpy() if ROW_ID_COL in X.columns else X.index.to_numpy()
    return pd.DataFrame(
        {
            "row_index": row_index,
            "y_true": y,
            "y_prob": generate_predictions(model, X),
            "split": split,
            "model": model.family,
        }
    )


def export_predictions(preds: pd.DataFrame, out_path: str | Path) -> Path:
    """Write a prediction table to CSV."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    preds.to_csv(out_path, index=False)
    logger.info(f"Saved {len(preds):,} predictions: {out_path}")
    return out_path
