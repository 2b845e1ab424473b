"""Model family registry.

This module provides:
- Estimator builders for the five families (logistic, lasso, decision tree,
  k-nearest neighbors, random forest)
- ModelFamily: a named builder with bound fixed settings and a complexity
  key used to break ties between equally scored configurations
- sklearn version compatibility handling

Tuned hyperparameters use the names of the original tuning grids
(penalty, cost_complexity, tree_depth, neighbors, min_n, mtry, trees) and are
translated to scikit-learn arguments here.

References:
- scikit-learn 1.8+ deprecates penalty= in LogisticRegression (use l1_ratio= / C=inf)
"""

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import sklearn
from sklearn.base import BaseEstimator
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier
from sklearn.tree import DecisionTreeClassifier

from hbc_ml.config.schema import (
    DecisionTreeConfig,
    KNNConfig,
    LassoConfig,
    LogisticConfig,
    RandomForestConfig,
)
from hbc_ml.data.schema import MODEL_DISPLAY_NAMES, TREE_MODELS, VALID_MODELS

logger = logging.getLogger(__name__)


# ----------------------------
# sklearn version compatibility
# ----------------------------
def _sklearn_version_tuple(ver: str) -> tuple[int, int, int]:
    """Parse sklearn version string (robust to rc/dev suffixes)."""
    nums = re.findall(r"\d+", ver)
    nums = (nums + ["0", "0", "0"])[:3]
    return (int(nums[0]), int(nums[1]), int(nums[2]))


SKLEARN_VER = _sklearn_version_tuple(getattr(sklearn, "__version__", "0.0.0"))


# ----------------------------
# Model builders
# ----------------------------
def build_logistic_regression(max_iter: int = 1000) -> LogisticRegression:
    """Build an unpenalized logistic regression (glm equivalent)."""
    if SKLEARN_VER >= (1, 8, 0):
        return LogisticRegression(C=np.inf, solver="lbfgs", max_iter=int(max_iter))
    return LogisticRegression(penalty=None, solver="lbfgs", max_iter=int(max_iter))


def penalty_to_C(penalty: float, n_samples: int) -> float:
    """
    Convert a glmnet-style penalty (lambda) to scikit-learn's C.

    glmnet minimizes mean log-loss + lambda * ||w||_1; scikit-learn minimizes
    C * summed log-loss + ||w||_1, so C = 1 / (n_samples * lambda).
    """
    if penalty <= 0:
        raise ValueError(f"penalty must be > 0, got {penalty}")
    if n_samples < 1:
        raise ValueError(f"n_samples must be >= 1, got {n_samples}")
    return 1.0 / (n_samples * penalty)


def build_lasso(
    penalty: float,
    n_samples: int,
    solver: str = "saga",
    max_iter: int = 2000,
    random_state: int = 0,
) -> LogisticRegression:
    """Build an L1-penalized logistic regression (sklearn 1.8+ compatible).

    Args:
        penalty: glmnet lambda
        n_samples: Rows the estimator will be fit on
        solver: "saga" or "liblinear"
        max_iter: Maximum iterations
        random_state: Random seed

    Returns:
        Configured LogisticRegression estimator
    """
    lr_common = {
        "solver": solver,
        "C": penalty_to_C(float(penalty), int(n_samples)),
        "max_iter": int(max_iter),
        "random_state": int(random_state),
    }

    if SKLEARN_VER >= (1, 8, 0):
        return LogisticRegression(l1_ratio=1.0, **lr_common)
    return LogisticRegression(penalty="l1", **lr_common)


def build_decision_tree(
    cost_complexity: float,
    tree_depth: int,
    random_state: int = 0,
) -> DecisionTreeClassifier:
    """Build a CART tree with cost-complexity pruning and a depth cap."""
    return DecisionTreeClassifier(
        ccp_alpha=float(cost_complexity),
        max_depth=int(tree_depth),
        random_state=int(random_state),
    )


def build_knn(neighbors: int, weights: str = "distance") -> KNeighborsClassifier:
    """Build a k-nearest-neighbors classifier (distance weighting mirrors kknn)."""
    return KNeighborsClassifier(n_neighbors=int(neighbors), weights=weights)


def build_random_forest(
    min_n: int,
    mtry: int,
    trees: int,
    n_features: int,
    random_state: int = 0,
    n_jobs: int = 1,
) -> RandomForestClassifier:
    """Build Random Forest classifier.

    Args:
        min_n: Minimum node size to split (min_samples_split)
        mtry: Predictors sampled per split, clipped to n_features
        trees: Number of trees
        n_features: Width of the transformed feature matrix
        random_state: Random seed
        n_jobs: Parallel jobs

    Returns:
        Configured RandomForestClassifier
    """
    max_features = max(1, min(int(mtry), int(n_features)))
    if max_features != int(mtry):
        logger.debug(f"mtry={mtry} clipped to {max_features} (n_features={n_features})")
    return RandomForestClassifier(
        n_estimators=int(trees),
        min_samples_split=max(2, int(min_n)),
        max_features=max_features,
        random_state=int(random_state),
        n_jobs=int(max(1, n_jobs)),
    )


# ----------------------------
# Family definitions
# ----------------------------
def _build_logistic(params, settings, n_samples, n_features):
    return build_logistic_regression(max_iter=settings.get("max_iter", 1000))


def _build_lasso(params, settings, n_samples, n_features):
    return build_lasso(
        penalty=params["penalty"],
        n_samples=n_samples,
        solver=settings.get("solver", "saga"),
        max_iter=settings.get("max_iter", 2000),
        random_state=settings.get("random_state", 0),
    )


def _build_decision_tree(params, settings, n_samples, n_features):
    return build_decision_tree(
        cost_complexity=params["cost_complexity"],
        tree_depth=params["tree_depth"],
        random_state=settings.get("random_state", 0),
    )


def _build_knn(params, settings, n_samples, n_features):
    return build_knn(neighbors=params["neighbors"], weights=settings.get("weights", "distance"))


def _build_random_forest(params, settings, n_samples, n_features):
    return build_random_forest(
        min_n=params["min_n"],
        mtry=params["mtry"],
        trees=params["trees"],
        n_features=n_features,
        random_state=settings.get("random_state", 0),
        n_jobs=settings.get("n_jobs", 1),
    )


# Lower tuples are simpler models
def _complexity_logistic(params):
    return ()


def _complexity_lasso(params):
    return (-float(params["penalty"]),)


def _complexity_decision_tree(params):
    return (int(params["tree_depth"]), -float(params["cost_complexity"]))


def _complexity_knn(params):
    return (-int(params["neighbors"]),)


def _complexity_random_forest(params):
    return (int(params["trees"]), int(params["mtry"]), -int(params["min_n"]))


_BUILDERS: dict[str, Callable[..., BaseEstimator]] = {
    "logistic": _build_logistic,
    "lasso": _build_lasso,
    "decision_tree": _build_decision_tree,
    "knn": _build_knn,
    "random_forest": _build_random_forest,
}

_COMPLEXITY: dict[str, Callable[[Mapping[str, Any]], tuple]] = {
    "logistic": _complexity_logistic,
    "lasso": _complexity_lasso,
    "decision_tree": _complexity_decision_tree,
    "knn": _complexity_knn,
    "random_forest": _complexity_random_forest,
}

TUNED_PARAMS: dict[str, tuple[str, ...]] = {
    "logistic": (),
    "lasso": ("penalty",),
    "decision_tree": ("cost_complexity", "tree_depth"),
    "knn": ("neighbors",),
    "random_forest": ("min_n", "mtry", "trees"),
}

_CONFIG_CLASSES = {
    "logistic": LogisticConfig,
    "lasso": LassoConfig,
    "decision_tree": DecisionTreeConfig,
    "knn": KNNConfig,
    "random_forest": RandomForestConfig,
}

# Fixed (untuned) estimator settings taken from each family's config section
_SETTING_KEYS = {
    "logistic": ("max_iter",),
    "lasso": ("solver", "max_iter", "random_state"),
    "decision_tree": ("random_state",),
    "knn": ("weights",),
    "random_forest": ("random_state", "n_jobs"),
}


@dataclass(frozen=True)
class ModelFamily:
    """A model family with its fixed settings bound.

    Attributes:
        name: Registry key (e.g. "random_forest")
        settings: Untuned estimator options (seed, solver, n_jobs, ...)
    """

    name: str
    settings: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.name not in _BUILDERS:
            raise ValueError(f"Unknown model family: {self.name}. Valid: {VALID_MODELS}")

    @property
    def display_name(self) -> str:
        return MODEL_DISPLAY_NAMES[self.name]

    @property
    def tuned_params(self) -> tuple[str, ...]:
        return TUNED_PARAMS[self.name]

    @property
    def is_tree(self) -> bool:
        return self.name in TREE_MODELS

    def build(self, params: Mapping[str, Any], n_samples: int, n_features: int) -> BaseEstimator:
        """Instantiate an unfitted estimator for one configuration.

        Raises:
            ValueError: If params does not name exactly the tuned hyperparameters
        """
        missing = [p for p in self.tuned_params if p not in params]
        extra = [p for p in params if p not in self.tuned_params]
        if missing or extra:
            raise ValueError(
                f"{self.name}: bad hyperparameters (missing={missing}, unexpected={extra})"
            )
        return _BUILDERS[self.name](params, self.settings, n_samples, n_features)

    def complexity(self, params: Mapping[str, Any]) -> tuple:
        return _COMPLEXITY[self.name](params)


def get_family(name: str, config: Any = None) -> ModelFamily:
    """
    Look up a model family and bind its fixed settings.

    Args:
        name: Family key from VALID_MODELS
        config: PipelineConfig, the family's own config section, or None for defaults

    Returns:
        ModelFamily
    """
    if name not in _CONFIG_CLASSES:
        raise ValueError(f"Unknown model family: {name}. Valid: {VALID_MODELS}")

    section = config
    if section is not None and hasattr(section, name):
        section = getattr(section, name)
    if section is None:
        section = _CONFIG_CLASSES[name]()
    if not isinstance(section, _CONFIG_CLASSES[name]):
        raise TypeError(f"Expected {_CONFIG_CLASSES[name].__name__} for {name}")

    settings = {key: getattr(section, key) for key in _SETTING_KEYS[name]}
    return ModelFamily(name=name, settings=settings)
