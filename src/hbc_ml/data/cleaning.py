"""
Cleaning of the raw hotel-bookings file.

Steps, applied in order:
1. Drop outcome-leaking and mostly-empty columns; encode the label as 0/1
2. Impute missing values (children, country, agent) and normalize meal codes
3. Filter outliers (no guests, rate outside [min_adr, max_adr])
4. Remove exact duplicate bookings
5. Number the surviving rows (row_id)

Each step logs how many rows it removed.
"""

import logging
from typing import Any

import numpy as np
import pandas as pd

from hbc_ml.data.schema import ROW_ID_COL, TARGET_COL, label_to_int
from hbc_ml.exceptions import SchemaError

logger = logging.getLogger(__name__)

# Meal "Undefined" and "SC" both mean no meal package
MEAL_ALIASES = {"Undefined": "SC"}

NO_AGENT = "none"
UNKNOWN_COUNTRY = "Unknown"


def drop_columns(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """Drop the given columns when present."""
    present = [c for c in columns if c in df.columns]
    if present:
        logger.info(f"Dropping columns: {present}")
    return df.drop(columns=present)


def impute_missing(df: pd.DataFrame) -> pd.DataFrame:
    """
    Impute missing values in the raw bookings schema.

    - children: missing -> 0
    - country: missing -> "Unknown"
    - agent: missing -> "none"; ids become strings (agent is nominal)
    - meal: "Undefined" -> "SC"
    """
    out = df.copy()

    if "children" in out.columns:
        n = int(out["children"].isna().sum())
        out["children"] = out["children"].fillna(0).astype(int)
        logger.info(f"children: imputed {n:,} missing values with 0")

    if "country" in out.columns:
        n = int(out["country"].isna().sum())
        out["country"] = out["country"].fillna(UNKNOWN_COUNTRY).astype(str)
        logger.info(f"country: imputed {n:,} missing values with '{UNKNOWN_COUNTRY}'")

    if "agent" in out.columns:
        n = int(out["agent"].isna().sum())
        out["agent"] = out["agent"].map(_agent_code)
        logger.info(f"agent: imputed {n:,} missing values with '{NO_AGENT}'")

    if "meal" in out.columns:
        out["meal"] = out["meal"].replace(MEAL_ALIASES)

    return out


def _agent_code(value: Any) -> str:
    """Agent ids arrive as floats (9.0) or strings ('NULL'); normalize to str."""
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return NO_AGENT
    if isinstance(value, str):
        value = value.strip()
        if value.upper() in ("", "NULL", "NA"):
            return NO_AGENT
        try:
            value = float(value)
        except ValueError:
            return value
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def filter_outliers(
    df: pd.DataFrame,
    min_adr: float = 0.0,
    max_adr: float = 1000.0,
    drop_zero_guests: bool = True,
) -> pd.DataFrame:
    """
    Remove bookings with implausible values.

    Args:
        df: Bookings DataFrame
        min_adr: Minimum average daily rate kept (inclusive)
        max_adr: Maximum average daily rate kept (inclusive)
        drop_zero_guests: Remove bookings with no adults, children or babies

    Returns:
        Filtered DataFrame
    """
    out = df
    if drop_zero_guests:
        guest_cols = [c for c in ("adults", "children", "babies") if c in out.columns]
        if guest_cols:
            n_before = len(out)
            out = out[out[guest_cols].sum(axis=1) > 0]
            logger.info(f"Removed {n_before - len(out):,} bookings with zero guests")

    if "adr" in out.columns:
        n_before = len(out)
        out = out[(out["adr"] >= min_adr) & (out["adr"] <= max_adr)]
        logger.info(
            f"Removed {n_before - len(out):,} bookings with adr outside [{min_adr}, {max_adr}]"
        )

    return out


def drop_duplicate_bookings(df: pd.DataFrame) -> pd.DataFrame:
    """Remove exact duplicate rows (keeps the first occurrence)."""
    n_before = len(df)
    out = df.drop_duplicates(keep="first")
    logger.info(f"Removed {n_before - len(out):,} duplicate bookings")
    return out


def encode_label(df: pd.DataFrame) -> pd.DataFrame:
    """Rewrite the label column as 0/1 integers ("canceled"/"not canceled" accepted)."""
    try:
        codes = label_to_int(df[TARGET_COL])
    except (TypeError, ValueError) as e:
        raise SchemaError(f"Label column '{TARGET_COL}' must be 0/1: {e}") from e
    out = df.copy()
    out[TARGET_COL] = np.asarray(codes, dtype=int)
    return out


def clean_bookings(
    df: pd.DataFrame,
    drop_cols: list[str] | None = None,
    drop_duplicates: bool = True,
    drop_zero_guests: bool = True,
    min_adr: float = 0.0,
    max_adr: float = 1000.0,
) -> pd.DataFrame:
    """
    Run the full cleaning sequence.

    Args:
        df: Raw bookings DataFrame
        drop_cols: Columns to drop before anything else
        drop_duplicates: Remove exact duplicate bookings
        drop_zero_guests: Remove bookings with no guests
        min_adr: Minimum average daily rate kept
        max_adr: Maximum average daily rate kept

    Returns:
        Cleaned DataFrame with a fresh RangeIndex
    """
    n_start = len(df)
    out = drop_columns(df, drop_cols or [])
    if TARGET_COL in out.columns:
        out = encode_label(out)
    out = impute_missing(out)
    out = filter_outliers(
        out, min_adr=min_adr, max_adr=max_adr, drop_zero_guests=drop_zero_guests
    )
    if drop_duplicates:
        out = drop_duplicate_bookings(out)

    out = out.reset_index(drop=True)
    if ROW_ID_COL in out.columns:
        out = out.drop(columns=[ROW_ID_COL])
    out.insert(0, ROW_ID_COL, np.arange(len(out)))

    if TARGET_COL in out.columns and len(out):
        rate = float(out[TARGET_COL].mean())
        logger.info(f"Cancellation rate after cleaning: {rate:.3f}")
    logger.info(f"Cleaning kept {len(out):,} of {n_start:,} rows")
    return out
