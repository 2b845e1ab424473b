"""Metrics module for model evaluation."""

from hbc_ml.metrics.discrimination import (
    METRICS,
    auroc,
    compute_brier_score,
    compute_discrimination_metrics,
    get_metric,
    prauc,
)

__all__ = [
    "METRICS",
    "auroc",
    "prauc",
    "compute_brier_score",
    "compute_discrimination_metrics",
    "get_metric",
]
