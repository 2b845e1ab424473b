"""
Scores for P(canceled) predictions.

AUROC is the tuning objective; PR-AUC, Brier score and accuracy are reported
next to it. Ranking metrics are undefined for a single-class label vector:
they warn and return NaN so the search harness can count the unit as failed.
"""

import warnings
from collections.abc import Callable

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    average_precision_score,
    brier_score_loss,
    roc_auc_score,
)

from hbc_ml.data.schema import METRIC_AUROC, METRIC_BRIER, METRIC_PRAUC

MetricFn = Callable[[np.ndarray, np.ndarray], float]


def _as_arrays(y_true, y_prob) -> tuple[np.ndarray, np.ndarray]:
    y_true = np.asarray(y_true).astype(int)
    y_prob = np.asarray(y_prob).astype(float)
    if y_true.shape != y_prob.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape} vs y_prob {y_prob.shape}")
    return y_true, y_prob


def _has_both_classes(y_true: np.ndarray, name: str) -> bool:
    """Warn (and report False) when only one label value is present."""
    observed = np.unique(y_true)
    if observed.size >= 2:
        return True
    warnings.warn(
        f"{name} is undefined for a single class (found {observed.tolist()}); returning NaN.",
        UserWarning,
        stacklevel=3,
    )
    return False


def auroc(y_true: np.ndarray, y_prob: np.ndarray) -> float:
    """
    Area under the ROC curve.

    The probability that a random canceled booking is scored above a random
    kept one.

    Examples:
        >>> auroc(np.array([0, 0, 1, 1]), np.array([0.1, 0.4, 0.6, 0.9]))
        1.0
    """
    y_true, y_prob = _as_arrays(y_true, y_prob)
    if not _has_both_classes(y_true, "AUROC"):
        return np.nan
    return float(roc_auc_score(y_true, y_prob))


def prauc(y_true: np.ndarray, y_prob: np.ndarray) -> float:
    """Area under the precision-recall curve (average precision)."""
    y_true, y_prob = _as_arrays(y_true, y_prob)
    if not _has_both_classes(y_true, "PR-AUC"):
        return np.nan
    return float(average_precision_score(y_true, y_prob))


def compute_brier_score(y_true: np.ndarray, y_prob: np.ndarray) -> float:
    """Mean squared error of the probabilities (lower is better)."""
    y_true, y_prob = _as_arrays(y_true, y_prob)
    return float(brier_score_loss(y_true, y_prob))


def compute_discrimination_metrics(
    y_true: np.ndarray,
    y_prob: np.ndarray,
    threshold: float = 0.5,
) -> dict[str, float]:
    """
    Every reported score for one prediction table.

    Args:
        y_true: Labels (0/1)
        y_prob: P(canceled)
        threshold: Cutoff used for the accuracy column

    Returns:
        Dict with n, n_pos, Brier, Accuracy, AUROC and PR_AUC
        (the last two NaN for a single-class y_true)
    """
    y_true, y_prob = _as_arrays(y_true, y_prob)
    out = {
        "n": int(y_true.size),
        "n_pos": int(y_true.sum()),
        "Brier": float(brier_score_loss(y_true, y_prob)),
        "Accuracy": float(accuracy_score(y_true, (y_prob >= threshold).astype(int))),
        "AUROC": np.nan,
        "PR_AUC": np.nan,
    }
    if _has_both_classes(y_true, "AUROC/PR-AUC"):
        out["AUROC"] = float(roc_auc_score(y_true, y_prob))
        out["PR_AUC"] = float(average_precision_score(y_true, y_prob))
    return out


METRICS: dict[str, MetricFn] = {
    METRIC_AUROC: auroc,
    METRIC_PRAUC: prauc,
    METRIC_BRIER: compute_brier_score,
}


def get_metric(name: str) -> MetricFn:
    """Metric function for a config name ("roc_auc", "pr_auc", "brier_score")."""
    try:
        return METRICS[name]
    except KeyError:
        raise ValueError(f"Unknown metric: {name}. Valid: {sorted(METRICS)}") from None
