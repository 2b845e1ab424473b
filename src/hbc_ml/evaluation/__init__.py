"""Evaluation of refit models on train/test data."""

from hbc_ml.evaluation.compare import compare_models
from hbc_ml.evaluation.predict import export_predictions, generate_predictions, predict_frame

__all__ = [
    "compare_models",
    "export_predictions",
    "generate_predictions",
    "predict_frame",
]
