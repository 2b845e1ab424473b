"""
Tests for the hbc command line interface.
"""

import json

import pandas as pd
import pytest
from click.testing import CliRunner

from hbc_ml import __version__
from hbc_ml.cli.main import cli
from hbc_ml.data.schema import ROW_ID_COL

FAST_OVERRIDES = [
    "cv.folds=2",
    "cv.repeats=1",
    "recipe.other_threshold=10",
    "decision_tree.levels=2",
    "explain.model=decision_tree",
    "explain.n_reference=20",
    "explain.n_instances=10",
    "explain.perm_repeats=2",
]


def _override_args(overrides):
    args = []
    for item in overrides:
        args.extend(["--override", item])
    return args


@pytest.fixture
def runner():
    return CliRunner()


class TestCliBasics:
    """Test help and version output."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("clean", "prepare", "tune", "evaluate", "explain", "run-pipeline"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_model_choice(self, runner):
        result = runner.invoke(cli, ["tune", "--models", "svm"])
        assert result.exit_code != 0


class TestStages:
    """Test individual stage commands."""

    def test_clean(self, runner, raw_bookings_csv, tmp_path):
        outdir = tmp_path / "out"
        result = runner.invoke(
            cli, ["clean", "--infile", str(raw_bookings_csv), "--outdir", str(outdir)]
        )
        assert result.exit_code == 0, result.output

        cleaned = pd.read_csv(outdir / "cleaned.csv")
        assert ROW_ID_COL in cleaned.columns
        assert "reservation_status" not in cleaned.columns
        assert (outdir / "configs" / "clean_config.yaml").exists()

    def test_clean_requires_infile(self, runner, tmp_path):
        result = runner.invoke(cli, ["clean", "--outdir", str(tmp_path)])
        assert result.exit_code != 0
        assert isinstance(result.exception, ValueError)

    def test_prepare_requires_cleaned(self, runner, tmp_path):
        result = runner.invoke(cli, ["prepare", "--outdir", str(tmp_path)])
        assert isinstance(result.exception, FileNotFoundError)

    def test_evaluate_requires_bundles(self, runner, raw_bookings_csv, tmp_path):
        outdir = str(tmp_path / "out")
        overrides = _override_args(FAST_OVERRIDES)
        runner.invoke(cli, ["clean", "--infile", str(raw_bookings_csv), "--outdir", outdir])
        runner.invoke(cli, ["prepare", "--outdir", outdir, *overrides])
        result = runner.invoke(cli, ["evaluate", "--outdir", outdir, *overrides])
        assert isinstance(result.exception, FileNotFoundError)

    def test_prepare_writes_folds(self, runner, raw_bookings_csv, tmp_path):
        outdir = tmp_path / "out"
        overrides = _override_args(FAST_OVERRIDES)
        runner.invoke(cli, ["clean", "--infile", str(raw_bookings_csv), "--outdir", str(outdir)])
        result = runner.invoke(cli, ["prepare", "--outdir", str(outdir), *overrides])
        assert result.exit_code == 0, result.output

        folds = pd.read_csv(outdir / "folds.csv")
        assert len(folds) == 2
        assert (outdir / "model_data.joblib").exists()


class TestRunPipeline:
    """End-to-end run on a small synthetic file."""

    def test_run_pipeline(self, runner, raw_bookings_csv, tmp_path):
        outdir = tmp_path / "results"
        result = runner.invoke(
            cli,
            [
                "run-pipeline",
                "--infile",
                str(raw_bookings_csv),
                "--outdir",
                str(outdir),
                "--models",
                "logistic",
                "--models",
                "decision_tree",
                *_override_args(FAST_OVERRIDES),
            ],
        )
        assert result.exit_code == 0, result.output

        comparison = pd.read_csv(outdir / "comparison.csv")
        assert set(comparison["model"]) == {"logistic", "decision_tree"}
        assert comparison["rank"].tolist() == [1, 2]
        assert comparison["test_auroc"].between(0, 1).all()
        assert not comparison["overridden"].any()
        assert (comparison["final_params"] == comparison["best_params"]).all()

        for model in ("logistic", "decision_tree"):
            assert (outdir / "models" / f"{model}_model.joblib").exists()
            assert (outdir / "models" / f"{model}_search.csv").exists()
            assert (outdir / "preds" / f"{model}_train_preds.csv").exists()
            assert (outdir / "preds" / f"{model}_test_preds.csv").exists()

        search = pd.read_csv(outdir / "models" / "decision_tree_search.csv")
        assert len(search) == 4

        explain_dir = outdir / "explain"
        for name in (
            "importance_permutation.csv",
            "importance_permutation_by_feature.csv",
            "importance_impurity.csv",
            "shap_values.csv",
            "shap_mean_abs.csv",
        ):
            assert (explain_dir / name).exists(), name

        shap_values = pd.read_csv(explain_dir / "shap_values.csv")
        assert len(shap_values) == 10
        with open(explain_dir / "shap_baseline.json") as f:
            baseline = json.load(f)
        assert baseline["model"] == "decision_tree"
        assert baseline["additivity_ok"] is True
        assert baseline["n_reference"] == 20

    def test_explain_non_tree_model(self, runner, raw_bookings_csv, tmp_path):
        outdir = str(tmp_path / "results")
        overrides = _override_args(FAST_OVERRIDES)
        runner.invoke(
            cli,
            [
                "run-pipeline",
                "--infile",
                str(raw_bookings_csv),
                "--outdir",
                outdir,
                "--models",
                "knn",
                *overrides,
            ],
        )
        result = runner.invoke(cli, ["explain", "--outdir", outdir, "--model", "knn", *overrides])
        assert isinstance(result.exception, ValueError)

    def test_log_file(self, runner, raw_bookings_csv, tmp_path):
        log_file = tmp_path / "logs" / "clean.log"
        result = runner.invoke(
            cli,
            [
                "--log-file",
                str(log_file),
                "clean",
                "--infile",
                str(raw_bookings_csv),
                "--outdir",
                str(tmp_path / "out"),
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Cleaning kept" in log_file.read_text()
