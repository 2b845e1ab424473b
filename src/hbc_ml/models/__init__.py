"""Model families, search spaces and the cross-validated search harness."""

from hbc_ml.models.hyperparams import (
    GridSpace,
    LatinHypercubeSpace,
    ParamRange,
    get_search_space,
)
from hbc_ml.models.registry import (
    SKLEARN_VER,
    TUNED_PARAMS,
    ModelFamily,
    build_decision_tree,
    build_knn,
    build_lasso,
    build_logistic_regression,
    build_random_forest,
    get_family,
    penalty_to_C,
)
from hbc_ml.models.search import (
    TIE_TOLERANCE,
    Configuration,
    FinalModel,
    RankedConfig,
    SearchResult,
    refit,
    search,
    select_best,
)

__all__ = [
    "GridSpace",
    "LatinHypercubeSpace",
    "ParamRange",
    "get_search_space",
    "SKLEARN_VER",
    "TUNED_PARAMS",
    "ModelFamily",
    "build_logistic_regression",
    "build_lasso",
    "build_decision_tree",
    "build_knn",
    "build_random_forest",
    "get_family",
    "penalty_to_C",
    "TIE_TOLERANCE",
    "Configuration",
    "RankedConfig",
    "SearchResult",
    "FinalModel",
    "search",
    "select_best",
    "refit",
]
