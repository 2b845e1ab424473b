"""Explanation layer: permutation/impurity importance and Shapley attribution."""

from hbc_ml.explain.importance import (
    aggregate_by_source,
    compute_impurity_importance,
    compute_permutation_importance,
)
from hbc_ml.explain.shapley import (
    ADDITIVITY_TOL,
    ShapleyResult,
    check_additivity,
    compute_shap_values,
)

__all__ = [
    "aggregate_by_source",
    "compute_impurity_importance",
    "compute_permutation_importance",
    "ADDITIVITY_TOL",
    "ShapleyResult",
    "check_additivity",
    "compute_shap_values",
]
