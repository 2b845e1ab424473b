"""Tests for seed management, serialization and logging helpers."""

import importlib
import logging
import os
import warnings

import numpy as np
import pandas as pd
import pytest

import hbc_ml
from hbc_ml.config.schema import PipelineConfig
from hbc_ml.utils.logging import level_from_verbosity, setup_logger
from hbc_ml.utils.paths import get_explain_dir, get_model_bundle_path, get_preds_dir
from hbc_ml.utils.random import (
    apply_seed_global,
    get_cv_seed,
    log_seed_plan,
    seed_plan,
    set_random_seed,
)
from hbc_ml.utils.serialization import load_json, save_json, to_native


class TestSeeds:
    """Tests for set_random_seed and get_cv_seed."""

    def test_set_random_seed(self):
        """Same seed gives the same numpy draws."""
        set_random_seed(7)
        a = np.random.random(3)
        set_random_seed(7)
        np.testing.assert_array_equal(a, np.random.random(3))

    def test_cv_seed_repeats_are_spaced(self):
        """Each repeat shifts the seed by 1000."""
        assert get_cv_seed(5) == 5
        assert get_cv_seed(5, repeat_idx=2) == 2005
        assert get_cv_seed(5, repeat_idx=1, fold_idx=3) == 1008

    def test_seed_plan(self):
        """The plan lists the split seed and one seed per CV repeat."""
        config = PipelineConfig(split={"random_state": 3}, cv={"repeats": 2, "random_state": 1})
        plan = seed_plan(config)
        assert plan["split"] == 3
        assert plan["cv_repeat_0"] == 1
        assert plan["cv_repeat_1"] == 1001
        assert "cv_repeat_2" not in plan

    def test_log_seed_plan(self, caplog):
        with caplog.at_level(logging.INFO):
            log_seed_plan(PipelineConfig())
        assert "split=0" in caplog.text


class TestApplySeedGlobal:
    """Tests for the SEED_GLOBAL environment variable."""

    def setup_method(self):
        os.environ.pop("SEED_GLOBAL", None)

    def teardown_method(self):
        os.environ.pop("SEED_GLOBAL", None)

    def test_unset(self):
        assert apply_seed_global() is None

    @pytest.mark.parametrize("value", ["", "  ", "abc", "-1", str(2**32)])
    def test_invalid_values_ignored(self, value):
        os.environ["SEED_GLOBAL"] = value
        assert apply_seed_global() is None

    def test_valid(self):
        os.environ["SEED_GLOBAL"] = " 42 "
        assert apply_seed_global() == 42


class TestSerialization:
    """Tests for JSON helpers."""

    def test_to_native(self):
        converted = to_native({"a": np.int64(3), "b": [np.float32(0.5)], "c": np.arange(2)})
        assert converted == {"a": 3, "b": [0.5], "c": [0, 1]}
        assert type(converted["a"]) is int

    def test_json_round_trip(self, tmp_path):
        path = tmp_path / "sub" / "x.json"
        save_json({"baseline": 0.25, "ok": True}, path)
        assert load_json(path) == {"baseline": 0.25, "ok": True}


class TestLoggingAndPaths:
    def test_level_from_verbosity(self):
        assert level_from_verbosity(0) == logging.INFO
        assert level_from_verbosity(1) == logging.DEBUG
        assert level_from_verbosity(5) == logging.DEBUG

    def test_setup_logger_file(self, tmp_path):
        log_file = tmp_path / "run.log"
        logger = setup_logger("hbc_ml", log_file=log_file)
        logging.getLogger("hbc_ml.models.search").info("search started")
        for handler in logger.handlers:
            handler.flush()
        assert "search started" in log_file.read_text()
        assert len(logger.handlers) == 2

    def test_setup_logger_no_duplicate_handlers(self):
        setup_logger("hbc_ml")
        logger = setup_logger("hbc_ml")
        assert len(logger.handlers) == 1

    def test_artifact_paths(self, tmp_path):
        assert get_model_bundle_path(tmp_path, "knn") == tmp_path / "models" / "knn_model.joblib"
        assert get_preds_dir(tmp_path).is_dir()
        assert get_explain_dir(tmp_path).name == "explain"


PANDAS_MAJOR = int(pd.__version__.split(".")[0])


class TestPackageImport:
    """Tests for the pandas options set when the package is imported."""

    def test_import_emits_no_warnings(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            importlib.reload(hbc_ml)

    @pytest.mark.skipif(PANDAS_MAJOR >= 3, reason="Copy-on-Write is always on from pandas 3.0")
    def test_copy_on_write_enabled(self):
        assert pd.options.mode.copy_on_write is True
