"""
Tests for configuration loading, overrides and validation.
"""

from pathlib import Path

import pytest
import yaml

from hbc_ml.config.loader import (
    _parse_value,
    apply_overrides,
    format_config_summary,
    load_pipeline_config,
    load_yaml,
    save_config,
)
from hbc_ml.config.schema import (
    CleaningConfig,
    DecisionTreeConfig,
    PipelineConfig,
    RandomForestConfig,
    RecipeConfig,
)
from hbc_ml.config.validation import (
    ConfigValidationError,
    ConfigValidationWarning,
    validate_pipeline_config,
)
from hbc_ml.data.schema import VALID_MODELS


class TestDefaults:
    """Test default configuration values."""

    def test_defaults(self):
        config = load_pipeline_config()
        assert config.models == VALID_MODELS
        assert config.cv.folds == 5
        assert config.cv.repeats == 3
        assert config.split.test_size == 0.25
        assert config.recipe.other_threshold == 100
        assert config.random_forest.final_override is None
        assert config.explain.model == "random_forest"


class TestSchemaValidation:
    """Test field and model validators."""

    def test_unknown_model(self):
        with pytest.raises(ValueError, match="Unknown models"):
            PipelineConfig(models=["svm"])

    def test_empty_models(self):
        with pytest.raises(ValueError):
            PipelineConfig(models=[])

    def test_adr_bounds(self):
        with pytest.raises(ValueError, match="min_adr"):
            CleaningConfig(min_adr=10, max_adr=5)

    def test_recipe_overlapping_roles(self):
        with pytest.raises(ValueError, match="both"):
            RecipeConfig(numeric_cols=["a"], categorical_cols=["a"], binarize_col=None)

    def test_tree_range(self):
        with pytest.raises(ValueError):
            DecisionTreeConfig(tree_depth_range=[10, 1])

    def test_override_keys(self):
        with pytest.raises(ValueError, match="Unknown random forest override"):
            RandomForestConfig(final_override={"depth": 3})

    def test_folds_minimum(self):
        with pytest.raises(ValueError):
            load_pipeline_config(overrides=["cv.folds=1"])


class TestOverrides:
    """Test CLI override parsing."""

    def test_nested(self):
        config = load_pipeline_config(overrides=["cv.folds=10", "random_forest.size=7"])
        assert config.cv.folds == 10
        assert config.random_forest.size == 7

    def test_list_key(self):
        config = load_pipeline_config(overrides=["models=knn"])
        assert config.models == ["knn"]

    def test_comma_list(self):
        config = load_pipeline_config(overrides=["models=logistic,lasso"])
        assert config.models == ["logistic", "lasso"]

    def test_path_stays_string(self):
        d = apply_overrides({}, ["outdir=123"])
        assert d["outdir"] == "123"

    def test_bad_format(self):
        with pytest.raises(ValueError, match="Invalid override"):
            apply_overrides({}, ["cv.folds"])

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("no", False), ("none", None), ("3", 3), ("0.5", 0.5), ("abc", "abc")],
    )
    def test_parse_value(self, raw, expected):
        assert _parse_value(raw) == expected

    def test_final_override(self):
        config = load_pipeline_config(
            overrides=[
                "random_forest.final_override.trees=665",
                "random_forest.final_override.mtry=8",
            ]
        )
        assert config.random_forest.final_override == {"trees": 665, "mtry": 8}


class TestYaml:
    """Test YAML loading with _base inheritance."""

    def test_base_inheritance(self, tmp_path):
        (tmp_path / "base.yaml").write_text(yaml.safe_dump({"cv": {"folds": 4, "repeats": 2}}))
        (tmp_path / "child.yaml").write_text(
            yaml.safe_dump({"_base": "base.yaml", "cv": {"repeats": 1}})
        )
        merged = load_yaml(tmp_path / "child.yaml")
        assert merged["cv"] == {"folds": 4, "repeats": 1}

    def test_relative_paths(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text(yaml.safe_dump({"outdir": "out", "infile": "data.csv"}))
        config = load_pipeline_config(path)
        assert config.outdir == tmp_path.resolve() / "out"
        assert config.infile == tmp_path.resolve() / "data.csv"

    def test_overrides_win_over_file(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text(yaml.safe_dump({"cv": {"folds": 4}}))
        config = load_pipeline_config(path, overrides=["cv.folds=3"])
        assert config.cv.folds == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / "none.yaml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml(path)

    def test_save_round_trip(self, tmp_path):
        config = load_pipeline_config(overrides=["models=knn", "outdir=results_x"])
        path = tmp_path / "saved.yaml"
        save_config(config, path)
        reloaded = load_pipeline_config(path)
        assert reloaded.models == ["knn"]
        assert reloaded.knn == config.knn

    def test_summary(self):
        text = format_config_summary(PipelineConfig())
        assert "Configuration Summary" in text
        assert "folds: 5" in text


class TestValidatePipelineConfig:
    """Test cross-field validation."""

    def test_non_tree_explain_model_warns(self):
        config = PipelineConfig(explain={"model": "knn"})
        with pytest.warns(ConfigValidationWarning, match="not a tree model"):
            validate_pipeline_config(config)

    def test_strict_mode_raises(self):
        config = PipelineConfig(explain={"model": "knn"}, strictness="error")
        with pytest.raises(ConfigValidationError):
            validate_pipeline_config(config)

    def test_override_flagged(self):
        config = PipelineConfig(random_forest={"final_override": {"trees": 665}})
        with pytest.warns(ConfigValidationWarning, match="final_override"):
            validate_pipeline_config(config)

    def test_off_is_silent(self, recwarn):
        config = PipelineConfig(explain={"model": "knn"}, strictness="off")
        validate_pipeline_config(config)
        assert not [w for w in recwarn if issubclass(w.category, ConfigValidationWarning)]

    def test_default_config_clean(self, recwarn):
        validate_pipeline_config(PipelineConfig())
        assert not [w for w in recwarn if issubclass(w.category, ConfigValidationWarning)]


def test_path_type():
    assert isinstance(PipelineConfig(outdir="x").outdir, Path)
