"""
Split generation for the HBC-ML pipeline.

This module handles:
- Stratified train/test splitting of the cleaned bookings
- Repeated stratified k-fold assignments over the training set
- Validation of fold partition invariants
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold, train_test_split

from hbc_ml.data.schema import TARGET_COL
from hbc_ml.utils.random import get_cv_seed

logger = logging.getLogger(__name__)


# ============================================================================
# Train/Test Split
# ============================================================================


def stratified_train_test_split(
    df: pd.DataFrame,
    test_size: float = 0.25,
    random_state: int = 0,
    stratify_col: str = TARGET_COL,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split bookings into train and test sets stratified on the label.

    Args:
        df: Cleaned bookings DataFrame
        test_size: Fraction of rows held out for testing
        random_state: Random seed
        stratify_col: Column to stratify on

    Returns:
        (train_df, test_df), each with a fresh RangeIndex
    """
    if not 0.0 < test_size < 1.0:
        raise ValueError(f"test_size must be in (0, 1), got {test_size}")

    logger.info(
        f"Stratified train/test split: test_size={test_size}, seed={random_state}, "
        f"stratify={stratify_col}"
    )
    train_df, test_df = train_test_split(
        df,
        test_size=test_size,
        random_state=random_state,
        stratify=df[stratify_col],
    )
    train_df = train_df.sort_index().reset_index(drop=True)
    test_df = test_df.sort_index().reset_index(drop=True)
    logger.info(f"Train: {len(train_df):,} rows | Test: {len(test_df):,} rows")
    return train_df, test_df


# ============================================================================
# Repeated Stratified K-Fold
# ============================================================================


@dataclass(frozen=True)
class FoldSet:
    """One repeat of a k-fold partition.

    validation_groups[i] holds the row positions of group i; the training
    indices of split i are the union of every other group.
    """

    repeat: int
    seed: int
    n_samples: int
    validation_groups: tuple[np.ndarray, ...]

    @property
    def k(self) -> int:
        return len(self.validation_groups)

    def splits(self) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        """Yield (train_idx, val_idx) for each group."""
        all_idx = np.arange(self.n_samples)
        for val_idx in self.validation_groups:
            mask = np.ones(self.n_samples, dtype=bool)
            mask[val_idx] = False
            yield all_idx[mask], val_idx


def make_folds(
    y: np.ndarray | pd.Series,
    k: int = 5,
    repeats: int = 1,
    seed: int = 0,
) -> list[FoldSet]:
    """
    Build repeated stratified k-fold partitions.

    Each repeat shuffles with its own seed (derived from `seed` via get_cv_seed)
    so repeats are independent; identical arguments give identical partitions.

    Args:
        y: Stratification labels (typically the binary outcome), length N
        k: Number of groups per repeat
        repeats: Number of independent partitions
        seed: Base random seed

    Returns:
        List of `repeats` FoldSet objects

    Raises:
        ValueError: If k < 2, repeats < 1, or some class has fewer than k members
    """
    y = np.asarray(y)
    if k < 2:
        raise ValueError(f"k must be >= 2, got {k}")
    if repeats < 1:
        raise ValueError(f"repeats must be >= 1, got {repeats}")

    _, counts = np.unique(y, return_counts=True)
    if len(counts) and counts.min() < k:
        raise ValueError(
            f"Smallest class has {int(counts.min())} members; cannot stratify into {k} folds"
        )

    fold_sets = []
    placeholder = np.zeros(len(y))
    for r in range(repeats):
        repeat_seed = get_cv_seed(seed, repeat_idx=r)
        skf = StratifiedKFold(n_splits=k, shuffle=True, random_state=repeat_seed)
        groups = tuple(np.sort(val_idx) for _, val_idx in skf.split(placeholder, y))
        fold_sets.append(
            FoldSet(repeat=r, seed=repeat_seed, n_samples=len(y), validation_groups=groups)
        )

    logger.info(f"Generated {repeats} x {k}-fold stratified partitions (base seed={seed})")
    return fold_sets


def validate_fold_sets(fold_sets: list[FoldSet], n_samples: int) -> tuple[bool, str]:
    """
    Check that every repeat partitions [0, n_samples) exactly once.

    Returns:
        (is_valid, reason_message)
    """
    for fs in fold_sets:
        if fs.n_samples != n_samples:
            return False, f"repeat {fs.repeat}: n_samples={fs.n_samples}, expected {n_samples}"

        counts = np.zeros(n_samples, dtype=int)
        for val_idx in fs.validation_groups:
            if len(val_idx) and (val_idx.min() < 0 or val_idx.max() >= n_samples):
                return False, f"repeat {fs.repeat}: index out of bounds"
            np.add.at(counts, val_idx, 1)

        if (counts == 0).any():
            return False, f"repeat {fs.repeat}: {int((counts == 0).sum())} indices never validated"
        if (counts > 1).any():
            return False, f"repeat {fs.repeat}: {int((counts > 1).sum())} indices in several groups"

    return True, "ok"


def fold_summary(fold_sets: list[FoldSet], y: np.ndarray | pd.Series) -> pd.DataFrame:
    """Per-group size and positive rate, one row per (repeat, fold)."""
    y = np.asarray(y).astype(int)
    rows = []
    for fs in fold_sets:
        for i, val_idx in enumerate(fs.validation_groups):
            rows.append(
                {
                    "repeat": fs.repeat,
                    "fold": i,
                    "n": len(val_idx),
                    "n_pos": int(y[val_idx].sum()),
                    "pos_rate": float(y[val_idx].mean()) if len(val_idx) else np.nan,
                }
            )
    return pd.DataFrame(rows)
