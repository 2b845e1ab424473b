"""
Tests for the model family registry.
"""

import numpy as np
import pytest
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier
from sklearn.tree import DecisionTreeClassifier

from hbc_ml.config.schema import KNNConfig, PipelineConfig
from hbc_ml.data.schema import VALID_MODELS
from hbc_ml.models.registry import (
    SKLEARN_VER,
    TUNED_PARAMS,
    ModelFamily,
    _sklearn_version_tuple,
    build_lasso,
    build_logistic_regression,
    build_random_forest,
    get_family,
    penalty_to_C,
)


class TestSklearnVersion:
    """Test version parsing."""

    @pytest.mark.parametrize(
        "ver,expected",
        [("1.5.2", (1, 5, 2)), ("1.8.0rc1", (1, 8, 0)), ("1.6", (1, 6, 0)), ("1.7.dev0", (1, 7, 0))],
    )
    def test_parse(self, ver, expected):
        assert _sklearn_version_tuple(ver) == expected

    def test_current(self):
        assert len(SKLEARN_VER) == 3


class TestBuilders:
    """Test estimator builders."""

    def test_logistic_unpenalized(self):
        """Logistic regression carries no effective penalty."""
        est = build_logistic_regression(max_iter=500)
        assert isinstance(est, LogisticRegression)
        assert est.max_iter == 500
        if SKLEARN_VER >= (1, 8, 0):
            assert est.C == np.inf
        else:
            assert est.penalty is None

    def test_penalty_to_c(self):
        """C = 1 / (n * lambda)."""
        assert penalty_to_C(0.01, 100) == pytest.approx(1.0)
        assert penalty_to_C(1e-4, 1000) == pytest.approx(10.0)

    @pytest.mark.parametrize("penalty,n", [(0.0, 10), (-1.0, 10), (0.1, 0)])
    def test_penalty_to_c_invalid(self, penalty, n):
        with pytest.raises(ValueError):
            penalty_to_C(penalty, n)

    def test_lasso_is_l1(self):
        """Lasso uses a pure L1 penalty."""
        est = build_lasso(penalty=0.01, n_samples=200)
        assert est.C == pytest.approx(0.5)
        if SKLEARN_VER >= (1, 8, 0):
            assert est.l1_ratio == 1.0
        else:
            assert est.penalty == "l1"

    def test_random_forest_mtry_clipped(self):
        """mtry above the feature count is clipped."""
        est = build_random_forest(min_n=1, mtry=50, trees=10, n_features=8)
        assert est.max_features == 8
        assert est.min_samples_split == 2
        assert est.n_estimators == 10


class TestModelFamily:
    """Test ModelFamily."""

    def test_unknown_family(self):
        with pytest.raises(ValueError, match="Unknown model family"):
            ModelFamily("svm")

    @pytest.mark.parametrize(
        "name,params,cls",
        [
            ("logistic", {}, LogisticRegression),
            ("lasso", {"penalty": 0.01}, LogisticRegression),
            ("decision_tree", {"cost_complexity": 1e-4, "tree_depth": 6}, DecisionTreeClassifier),
            ("knn", {"neighbors": 10}, KNeighborsClassifier),
            ("random_forest", {"min_n": 5, "mtry": 4, "trees": 50}, RandomForestClassifier),
        ],
    )
    def test_build_each_family(self, name, params, cls):
        """Every family builds its estimator from its tuned parameters."""
        est = get_family(name).build(params, n_samples=100, n_features=10)
        assert isinstance(est, cls)

    def test_build_missing_param(self):
        with pytest.raises(ValueError, match="missing"):
            get_family("decision_tree").build({"tree_depth": 3}, n_samples=10, n_features=3)

    def test_build_unexpected_param(self):
        with pytest.raises(ValueError, match="unexpected"):
            get_family("knn").build({"neighbors": 3, "trees": 5}, n_samples=10, n_features=3)

    def test_tuned_params_match_registry(self):
        for name in VALID_MODELS:
            assert get_family(name).tuned_params == TUNED_PARAMS[name]

    def test_is_tree(self):
        assert get_family("random_forest").is_tree
        assert get_family("decision_tree").is_tree
        assert not get_family("knn").is_tree

    def test_display_name(self):
        assert get_family("knn").display_name == "K-Nearest Neighbors"

    def test_complexity_order(self):
        """Lower complexity keys are simpler models."""
        rf = get_family("random_forest")
        small = rf.complexity({"min_n": 20, "mtry": 4, "trees": 100})
        large = rf.complexity({"min_n": 2, "mtry": 8, "trees": 1000})
        assert small < large

        knn = get_family("knn")
        assert knn.complexity({"neighbors": 60}) < knn.complexity({"neighbors": 10})


class TestGetFamily:
    """Test binding fixed settings from configuration."""

    def test_defaults(self):
        family = get_family("knn")
        assert family.settings == {"weights": "distance"}

    def test_from_pipeline_config(self):
        config = PipelineConfig(random_forest={"n_jobs": 2, "random_state": 9})
        family = get_family("random_forest", config)
        assert family.settings == {"random_state": 9, "n_jobs": 2}

    def test_from_section(self):
        family = get_family("knn", KNNConfig(weights="uniform"))
        assert family.build({"neighbors": 3}, 10, 2).weights == "uniform"

    def test_wrong_section_type(self):
        with pytest.raises(TypeError):
            get_family("lasso", KNNConfig())

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_family("xgboost")
