"""
Reading and writing pipeline artifacts.

Joblib holds fitted objects (recipe, folds, tuned models); JSON holds the
small summaries (best configuration, SHAP baseline). Bundles saved through
data.persistence carry a "versions" entry so a later load can flag an
environment change.
"""

import json
import logging
import warnings
from pathlib import Path
from typing import Any

import joblib
import numpy as np
import pandas as pd
import sklearn

logger = logging.getLogger(__name__)


def library_versions() -> dict[str, str]:
    return {"sklearn": sklearn.__version__, "pandas": pd.__version__, "numpy": np.__version__}


def _ensure_parent(path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def save_joblib(obj: Any, path: str | Path, compress: int = 3):
    joblib.dump(obj, _ensure_parent(path), compress=compress)
    logger.debug("Saved %s", path)


def _version_drift(saved: dict[str, str]) -> list[str]:
    current = library_versions()
    return [
        f"{lib}: saved={ver}, current={current[lib]}"
        for lib, ver in saved.items()
        if lib in current and current[lib] != ver
    ]


def load_joblib(path: str | Path, check_versions: bool = True) -> Any:
    """
    Load a joblib file.

    Args:
        path: File to load
        check_versions: For dict bundles with a "versions" entry, warn when the
            recorded sklearn/pandas/numpy versions differ from the installed ones

    Raises:
        FileNotFoundError: path does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Bundle not found: {path}")

    obj = joblib.load(path)
    if check_versions and isinstance(obj, dict) and "versions" in obj:
        drift = _version_drift(obj["versions"])
        if drift:
            details = "; ".join(drift)
            warnings.warn(
                f"Bundle version mismatch in {path.name} ({details}). "
                "Predictions may differ from the original run.",
                UserWarning,
                stacklevel=2,
            )
    return obj


def save_json(obj: Any, path: str | Path, indent: int = 2):
    """Write obj as JSON; numpy scalars and arrays are converted first."""
    _ensure_parent(path).write_text(json.dumps(to_native(obj), indent=indent, default=str))


def load_json(path: str | Path) -> Any:
    return json.loads(Path(path).read_text())


def to_native(obj: Any) -> Any:
    """Recursively replace numpy scalars/arrays with Python equivalents."""
    if isinstance(obj, dict):
        return {key: to_native(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_native(value) for value in obj]
    if isinstance(obj, np.ndarray):
        return to_native(obj.tolist())
    if isinstance(obj, np.generic):
        return obj.item()
    return obj
