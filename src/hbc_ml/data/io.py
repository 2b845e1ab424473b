"""
Data I/O utilities for the HBC-ML pipeline.

Reads hotel-bookings delimited files with schema validation.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from hbc_ml.data.schema import REQUIRED_RAW_COLS, TARGET_COL, label_to_int
from hbc_ml.exceptions import SchemaError

logger = logging.getLogger(__name__)


def read_bookings_csv(
    filepath: str | Path,
    *,
    sep: str = ",",
    required_cols: Iterable[str] | None = None,
    validate: bool = True,
) -> pd.DataFrame:
    """
    Read a hotel-bookings delimited file.

    Args:
        filepath: Path to CSV (or other delimited) file
        sep: Field delimiter
        required_cols: Columns that must be present (default: REQUIRED_RAW_COLS)
        validate: Whether to validate required columns after loading

    Returns:
        DataFrame with all columns of the file

    Raises:
        FileNotFoundError: If filepath does not exist
        SchemaError: If validate=True and required columns are missing

    Example:
        >>> df = read_bookings_csv("data/hotel_bookings.csv")
        >>> "is_canceled" in df.columns
        True
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    logger.info(f"Reading CSV: {filepath}")
    df = pd.read_csv(filepath, sep=sep, low_memory=False)
    logger.info(f"Loaded {len(df):,} rows × {len(df.columns):,} columns")

    if validate:
        validate_required_columns(df, required_cols)

    return df


def validate_required_columns(
    df: pd.DataFrame, required_cols: Iterable[str] | None = None
) -> None:
    """
    Validate that required columns are present in DataFrame.

    Raises:
        SchemaError: If any required column is missing
    """
    required = list(required_cols) if required_cols is not None else REQUIRED_RAW_COLS
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise SchemaError(f"Missing required columns: {missing}")


def split_features_target(df: pd.DataFrame) -> tuple[pd.DataFrame, pd.Series]:
    """
    Separate the label column from the predictors.

    Returns:
        (X, y) with y as 0/1 integers ("canceled"/"not canceled" are accepted)

    Raises:
        SchemaError: If the label column is missing or not binary
    """
    if TARGET_COL not in df.columns:
        raise SchemaError(f"Missing label column '{TARGET_COL}'")

    y = df[TARGET_COL]
    if y.isna().any():
        raise SchemaError(f"Label column '{TARGET_COL}' contains missing values")

    try:
        codes = label_to_int(y)
    except (TypeError, ValueError) as e:
        raise SchemaError(f"Label column '{TARGET_COL}' must be 0/1: {e}") from e

    return df.drop(columns=[TARGET_COL]), pd.Series(codes, index=y.index, name=TARGET_COL)
