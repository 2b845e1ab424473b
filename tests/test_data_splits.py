"""
Tests for train/test splitting and repeated stratified folds.
"""

import numpy as np
import pytest
from conftest import make_booking_frame

from hbc_ml.data.schema import TARGET_COL
from hbc_ml.data.splits import (
    FoldSet,
    fold_summary,
    make_folds,
    stratified_train_test_split,
    validate_fold_sets,
)


@pytest.fixture
def labels_30pct():
    """100 labels with exactly 30 positives, shuffled."""
    y = np.array([1] * 30 + [0] * 70)
    return np.random.default_rng(3).permutation(y)


class TestStratifiedTrainTestSplit:
    """Test stratified_train_test_split."""

    def test_sizes_and_stratification(self):
        """Both parts keep roughly the full-data cancellation rate."""
        df = make_booking_frame(n=400, seed=2)
        train, test = stratified_train_test_split(df, test_size=0.25, random_state=0)

        assert len(train) + len(test) == len(df)
        assert len(test) == 100
        full_rate = df[TARGET_COL].mean()
        assert abs(train[TARGET_COL].mean() - full_rate) < 0.02
        assert abs(test[TARGET_COL].mean() - full_rate) < 0.02

    def test_fresh_index(self, bookings):
        """Returned frames carry a RangeIndex."""
        train, test = stratified_train_test_split(bookings)
        assert list(train.index) == list(range(len(train)))
        assert list(test.index) == list(range(len(test)))

    def test_deterministic(self, bookings):
        """Same seed gives the same split."""
        a, _ = stratified_train_test_split(bookings, random_state=5)
        b, _ = stratified_train_test_split(bookings, random_state=5)
        assert a.equals(b)

    @pytest.mark.parametrize("test_size", [0.0, 1.0, 1.5])
    def test_invalid_test_size(self, bookings, test_size):
        """test_size outside (0, 1) raises ValueError."""
        with pytest.raises(ValueError, match="test_size"):
            stratified_train_test_split(bookings, test_size=test_size)


class TestMakeFolds:
    """Test make_folds."""

    def test_100_records_5_folds_3_repeats(self, labels_30pct):
        """3 partitions of 5 groups of 20, each with 5 to 7 positives."""
        fold_sets = make_folds(labels_30pct, k=5, repeats=3, seed=1)

        assert len(fold_sets) == 3
        for fs in fold_sets:
            assert fs.k == 5
            for val_idx in fs.validation_groups:
                assert len(val_idx) == 20
                assert labels_30pct[val_idx].sum() in {5, 6, 7}

    def test_partition_invariant(self, labels_30pct):
        """Every index is validated exactly once per repeat."""
        fold_sets = make_folds(labels_30pct, k=5, repeats=3, seed=1)
        ok, msg = validate_fold_sets(fold_sets, len(labels_30pct))
        assert ok, msg

        for fs in fold_sets:
            combined = np.concatenate(fs.validation_groups)
            assert sorted(combined.tolist()) == list(range(100))

    def test_splits_are_complements(self, labels_30pct):
        """Training indices are the complement of the validation group."""
        fs = make_folds(labels_30pct, k=4, repeats=1, seed=0)[0]
        for train_idx, val_idx in fs.splits():
            assert len(np.intersect1d(train_idx, val_idx)) == 0
            assert len(train_idx) + len(val_idx) == 100

    def test_deterministic(self, labels_30pct):
        """Identical arguments give identical partitions."""
        a = make_folds(labels_30pct, k=5, repeats=2, seed=7)
        b = make_folds(labels_30pct, k=5, repeats=2, seed=7)
        for fa, fb in zip(a, b):
            for ga, gb in zip(fa.validation_groups, fb.validation_groups):
                np.testing.assert_array_equal(ga, gb)

    def test_repeats_differ(self, labels_30pct):
        """Repeats use different shuffles."""
        fold_sets = make_folds(labels_30pct, k=5, repeats=2, seed=0)
        first = [g.tolist() for g in fold_sets[0].validation_groups]
        second = [g.tolist() for g in fold_sets[1].validation_groups]
        assert first != second
        assert fold_sets[0].seed != fold_sets[1].seed

    def test_k_too_small(self, labels_30pct):
        """k < 2 raises ValueError."""
        with pytest.raises(ValueError, match="k must be >= 2"):
            make_folds(labels_30pct, k=1)

    def test_repeats_too_small(self, labels_30pct):
        """repeats < 1 raises ValueError."""
        with pytest.raises(ValueError, match="repeats must be >= 1"):
            make_folds(labels_30pct, k=5, repeats=0)

    def test_class_smaller_than_k(self):
        """A class with fewer than k members cannot be stratified."""
        y = np.array([1, 1, 0, 0, 0, 0, 0, 0, 0, 0])
        with pytest.raises(ValueError, match="cannot stratify"):
            make_folds(y, k=5)


class TestValidateFoldSets:
    """Test validate_fold_sets on broken partitions."""

    def test_overlap_detected(self):
        """An index in two groups is reported."""
        fs = FoldSet(
            repeat=0,
            seed=0,
            n_samples=4,
            validation_groups=(np.array([0, 1]), np.array([1, 2, 3])),
        )
        ok, msg = validate_fold_sets([fs], 4)
        assert not ok
        assert "several groups" in msg

    def test_gap_detected(self):
        """An index never validated is reported."""
        fs = FoldSet(
            repeat=0, seed=0, n_samples=4, validation_groups=(np.array([0]), np.array([1, 2]))
        )
        ok, msg = validate_fold_sets([fs], 4)
        assert not ok
        assert "never validated" in msg

    def test_size_mismatch(self, labels_30pct):
        """Fold sets built for another length are rejected."""
        fold_sets = make_folds(labels_30pct, k=5)
        ok, _ = validate_fold_sets(fold_sets, 99)
        assert not ok


class TestFoldSummary:
    """Test fold_summary."""

    def test_one_row_per_group(self, labels_30pct):
        """Summary has repeats x k rows with sizes summing to N per repeat."""
        fold_sets = make_folds(labels_30pct, k=5, repeats=2, seed=0)
        summary = fold_summary(fold_sets, labels_30pct)

        assert len(summary) == 10
        assert summary.groupby("repeat")["n"].sum().tolist() == [100, 100]
        assert summary.groupby("repeat")["n_pos"].sum().tolist() == [30, 30]
