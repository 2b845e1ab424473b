"""
Shapley attribution for tree-based final models.

Interventional Shapley values against a reference (background) set: the
baseline is the mean predicted probability over the reference rows, and for
every explained row the per-feature contributions sum to
(prediction - baseline).

Values are computed exactly from the fitted sklearn tree structure. For one
reference row r, a leaf is reached by the hybrid of x and r on coalition S
only when S holds every path feature x satisfies and r does not, and none of
the path features r satisfies and x does not. That leaf game has a closed-form
Shapley value, so a tree's attribution is a sum over leaves evaluated with
batched matrix products. Inputs are rounded to float32 before routing, exactly
as sklearn does at predict time.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
import shap
from scipy.special import comb

from hbc_ml.data.schema import ROW_ID_COL, TREE_MODELS
from hbc_ml.models.search import FinalModel

logger = logging.getLogger(__name__)

ADDITIVITY_TOL = 1e-6

# Upper bound on the cells of one batch of (leaves x rows x references) arrays
BLOCK_CELLS = 2_000_000


@dataclass
class ShapleyResult:
    """Per-instance contributions in probability units.

    Attributes:
        values: (n_rows, n_features) contributions
        baseline: Expected P(canceled) over the reference set
        predictions: Model P(canceled) for the explained rows
        feature_names: Transformed column names
        row_index: Identifier of each explained row
        data: Transformed feature matrix of the explained rows
    """

    values: np.ndarray
    baseline: float
    predictions: np.ndarray
    feature_names: list[str]
    row_index: np.ndarray
    n_reference: int
    data: np.ndarray | None = None

    def to_frame(self) -> pd.DataFrame:
        out = pd.DataFrame(self.values, columns=self.feature_names)
        out.insert(0, "row_index", self.row_index)
        out["prediction"] = self.predictions
        return out

    def mean_abs(self) -> pd.DataFrame:
        """Mean |contribution| per feature, largest first."""
        table = pd.DataFrame(
            {
                "feature": self.feature_names,
                "mean_abs_shap": np.mean(np.abs(self.values), axis=0),
            }
        )
        return table.sort_values(["mean_abs_shap", "feature"], ascending=[False, True]).reset_index(
            drop=True
        )

    def to_explanation(self) -> shap.Explanation:
        """Wrap as a shap.Explanation for the shap.plots functions."""
        return shap.Explanation(
            values=self.values,
            base_values=np.full(len(self.values), self.baseline),
            data=self.data,
            feature_names=list(self.feature_names),
        )


def _leaf_boxes(tree, n_features: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Leaf ids with the (lower, upper] feature interval that routes a row there.

    Features not split on along a leaf's path keep (-inf, inf].
    """
    t = tree.tree_
    lower = np.full((t.node_count, n_features), -np.inf)
    upper = np.full((t.node_count, n_features), np.inf)
    # sklearn numbers every child after its parent
    for node in range(t.node_count):
        left, right = t.children_left[node], t.children_right[node]
        if left < 0:
            continue
        feature, threshold = t.feature[node], t.threshold[node]
        lower[left], upper[left] = lower[node], upper[node]
        lower[right], upper[right] = lower[node], upper[node]
        upper[left, feature] = min(upper[node, feature], threshold)
        lower[right, feature] = max(lower[node, feature], threshold)
    leaves = np.flatnonzero(t.children_left < 0)
    return leaves, lower[leaves], upper[leaves]


def _leaf_probability(tree, leaves: np.ndarray, pos: int) -> np.ndarray:
    """Positive-class probability at each leaf, as the tree's predict_proba reports it."""
    counts = tree.tree_.value[leaves, 0, :]
    totals = counts.sum(axis=1)
    totals[totals == 0] = 1.0
    return counts[:, pos] / totals


def _coalition_weights(only_x: np.ndarray, only_r: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Shapley weights of a single-leaf game.

    With a features that only x satisfies and b that only r satisfies, each of
    the a features gains (a-1)! b! / (a+b)! of the leaf value and each of the b
    features loses a! (b-1)! / (a+b)!.
    """
    total = only_x + only_r
    with np.errstate(divide="ignore", invalid="ignore"):
        w_pos = np.where(only_x > 0, 1.0 / (only_x * comb(total, only_x)), 0.0)
        w_neg = np.where(only_r > 0, 1.0 / (only_r * comb(total, only_r)), 0.0)
    return w_pos, w_neg


def _tree_values(tree, X: np.ndarray, R: np.ndarray, pos: int) -> np.ndarray:
    """Interventional contributions of one tree, averaged over the reference rows."""
    n_rows, n_features = X.shape
    leaves, lower, upper = _leaf_boxes(tree, n_features)
    leaf_value = _leaf_probability(tree, leaves, pos)

    cells = n_rows * R.shape[0] + (n_rows + R.shape[0]) * n_features
    block = max(1, BLOCK_CELLS // cells)
    phi = np.zeros((n_rows, n_features))
    for start in range(0, len(leaves), block):
        sl = slice(start, start + block)
        in_x = ((X[None] > lower[sl, None]) & (X[None] <= upper[sl, None])).astype(float)
        in_r = ((R[None] > lower[sl, None]) & (R[None] <= upper[sl, None])).astype(float)
        out_x, out_r = 1.0 - in_x, 1.0 - in_r

        # (leaves, rows, references) feature counts per leaf path
        only_x = np.rint(np.matmul(in_x, out_r.transpose(0, 2, 1)))
        only_r = np.rint(np.matmul(out_x, in_r.transpose(0, 2, 1)))
        neither = np.matmul(out_x, out_r.transpose(0, 2, 1))

        w_pos, w_neg = _coalition_weights(only_x, only_r)
        live = (neither < 0.5) * leaf_value[sl, None, None]
        phi += (in_x * np.matmul(live * w_pos, out_r)).sum(axis=0)
        phi -= (out_x * np.matmul(live * w_neg, in_r)).sum(axis=0)
    return phi / R.shape[0]


def _interventional_values(estimator, X: np.ndarray, R: np.ndarray, pos: int) -> np.ndarray:
    """Contributions of a decision tree or the tree average of a random forest."""
    trees = getattr(estimator, "estimators_", [estimator])
    X = np.asarray(X, dtype=np.float32).astype(float)
    R = np.asarray(R, dtype=np.float32).astype(float)
    return sum(_tree_values(tree, X, R, pos) for tree in trees) / len(trees)


def compute_shap_values(
    final_model: FinalModel,
    df: pd.DataFrame,
    reference_df: pd.DataFrame,
) -> ShapleyResult:
    """
    Explain predictions for df against a reference (background) set.

    Args:
        final_model: Refit decision tree or random forest
        df: Raw records to explain
        reference_df: Raw records defining the baseline

    Returns:
        ShapleyResult

    Raises:
        ValueError: Non-tree family, empty df/reference_df, or contributions
            that do not add up to (prediction - baseline) within ADDITIVITY_TOL
    """
    if final_model.family not in TREE_MODELS:
        raise ValueError(
            f"Shapley attribution supports tree models {TREE_MODELS}, got '{final_model.family}'"
        )
    if len(df) == 0 or len(reference_df) == 0:
        raise ValueError("Shapley attribution needs at least one row and one reference row")

    X = final_model.transform(df)
    R = final_model.transform(reference_df)
    logger.info(
        f"[shap] {final_model.family}: explaining {X.shape[0]} rows against "
        f"{R.shape[0]} reference rows ({X.shape[1]} features)"
    )

    pos = final_model.positive_index
    values = _interventional_values(final_model.estimator, X, R, pos)
    baseline = float(np.mean(final_model.estimator.predict_proba(R)[:, pos]))

    row_index = df[ROW_ID_COL].to_numpy() if ROW_ID_COL in df.columns else df.index.to_numpy()
    result = ShapleyResult(
        values=values,
        baseline=baseline,
        predictions=final_model.estimator.predict_proba(X)[:, pos],
        feature_names=final_model.feature_names,
        row_index=row_index,
        n_reference=len(reference_df),
        data=np.asarray(X, dtype=float),
    )
    ok, max_err = check_additivity(result)
    if not ok:
        raise ValueError(
            f"Shapley contributions miss prediction - baseline by {max_err:.2e} "
            f"(tolerance {ADDITIVITY_TOL})"
        )
    logger.info(f"[shap] baseline={baseline:.4f}, additivity max error={max_err:.2e}")
    return result


def check_additivity(result: ShapleyResult, tol: float = ADDITIVITY_TOL) -> tuple[bool, float]:
    """
    Check baseline + sum(contributions) == prediction for every row.

    Returns:
        (all_within_tol, max_abs_error)
    """
    reconstructed = result.baseline + result.values.sum(axis=1)
    errors = np.abs(reconstructed - np.asarray(result.predictions, dtype=float))
    max_err = float(errors.max()) if errors.size else 0.0
    return bool(max_err <= tol), max_err
