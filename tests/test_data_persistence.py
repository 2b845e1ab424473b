"""
Tests for saving and loading pipeline bundles.
"""

import joblib
import pytest

from hbc_ml.data.persistence import (
    load_model_bundle,
    load_model_data,
    save_model_bundle,
    save_model_data,
)
from hbc_ml.data.schema import TARGET_COL
from hbc_ml.data.splits import make_folds
from hbc_ml.features.recipe import Recipe
from hbc_ml.utils.serialization import load_joblib


class TestModelData:
    """Test the model data bundle."""

    def test_round_trip(self, tmp_path, bookings, small_spec):
        fitted = Recipe(small_spec).fit(bookings)
        folds = make_folds(bookings[TARGET_COL], k=3, repeats=1)
        path = save_model_data(
            tmp_path / "model_data.joblib",
            train=bookings,
            test=bookings.head(10),
            fold_sets=folds,
            recipe_spec=small_spec,
            fitted_recipe=fitted,
            config={"seed": 0},
        )
        loaded = load_model_data(path)

        assert loaded["recipe_spec"] == small_spec
        assert loaded["fitted_recipe"] == fitted
        assert loaded["train"].equals(bookings)
        assert len(loaded["fold_sets"]) == 1
        assert "sklearn" in loaded["versions"]

    def test_missing_key(self, tmp_path, bookings):
        with pytest.raises(ValueError, match="missing keys"):
            save_model_data(tmp_path / "x.joblib", train=bookings)

    def test_load_invalid_bundle(self, tmp_path):
        path = tmp_path / "bad.joblib"
        joblib.dump({"train": None}, path)
        with pytest.raises(ValueError, match="missing keys"):
            load_model_data(path)


class TestModelBundle:
    def test_round_trip(self, tmp_path):
        path = save_model_bundle(
            tmp_path / "models" / "knn_model.joblib",
            family="knn",
            search_result=None,
            final_model=None,
            train_preds=None,
        )
        assert load_model_bundle(path)["family"] == "knn"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_model_bundle(tmp_path / "missing.joblib")


class TestVersionCheck:
    def test_mismatch_warns(self, tmp_path):
        path = tmp_path / "old.joblib"
        joblib.dump({"versions": {"sklearn": "0.0.1"}}, path)
        with pytest.warns(UserWarning, match="version mismatch"):
            load_joblib(path)
