"""
Path utilities for standardized artifact locations.

Artifact layout under an output directory:
    outdir/
    ├── cleaned.csv
    ├── model_data.joblib          <- train/test, folds, fitted recipe
    ├── models/{family}_model.joblib
    ├── preds/{family}_train_preds.csv, {family}_test_preds.csv
    ├── comparison.csv
    └── explain/
"""

from pathlib import Path

CLEANED_FILE = "cleaned.csv"
MODEL_DATA_FILE = "model_data.joblib"
COMPARISON_FILE = "comparison.csv"


def ensure_dir(path: str | Path) -> Path:
    """Create directory if it doesn't exist, return Path object."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_model_bundle_path(outdir: str | Path, family: str) -> Path:
    """Path of the per-family bundle (search result + final model)."""
    return Path(outdir) / "models" / f"{family}_model.joblib"


def get_preds_dir(outdir: str | Path) -> Path:
    """Get predictions directory."""
    return ensure_dir(Path(outdir) / "preds")


def get_explain_dir(outdir: str | Path) -> Path:
    """Get explanation artifacts directory."""
    return ensure_dir(Path(outdir) / "explain")
