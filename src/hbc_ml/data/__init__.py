"""Data handling and schema definitions."""

from hbc_ml.data.cleaning import clean_bookings
from hbc_ml.data.io import read_bookings_csv, split_features_target, validate_required_columns
from hbc_ml.data.persistence import (
    load_model_bundle,
    load_model_data,
    save_model_bundle,
    save_model_data,
)
from hbc_ml.data.schema import (
    BINARIZE_COL,
    CATEGORICAL_COLS,
    NUMERIC_COLS,
    OTHER_LEVEL,
    TARGET_COL,
    VALID_MODELS,
)
from hbc_ml.data.splits import (
    FoldSet,
    fold_summary,
    make_folds,
    stratified_train_test_split,
    validate_fold_sets,
)

__all__ = [
    # Schema
    "TARGET_COL",
    "NUMERIC_COLS",
    "CATEGORICAL_COLS",
    "BINARIZE_COL",
    "OTHER_LEVEL",
    "VALID_MODELS",
    # I/O and cleaning
    "read_bookings_csv",
    "split_features_target",
    "validate_required_columns",
    "clean_bookings",
    # Splits
    "FoldSet",
    "make_folds",
    "fold_summary",
    "stratified_train_test_split",
    "validate_fold_sets",
    # Persistence
    "save_model_data",
    "load_model_data",
    "save_model_bundle",
    "load_model_bundle",
]
