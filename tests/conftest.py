"""
Shared pytest fixtures for HBC-ML tests.
"""

import logging
from itertools import product
from math import factorial

import numpy as np
import pandas as pd
import pytest

from hbc_ml.data.schema import BINARIZE_COL, TARGET_COL
from hbc_ml.features.recipe import RecipeSpec

MONTHS = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]


def make_booking_frame(n: int = 300, seed: int = 0, pos_rate: float = 0.35) -> pd.DataFrame:
    """
    Synthetic cleaned bookings with every column of the raw schema.

    Cancellation depends on lead_time, deposit_type and parking so that
    models have signal to find. No missing values.
    """
    rng = np.random.default_rng(seed)
    y = (rng.random(n) < pos_rate).astype(int)

    deposit = np.where(
        y == 1,
        rng.choice(["No Deposit", "Non Refund"], n, p=[0.6, 0.4]),
        rng.choice(["No Deposit", "Non Refund", "Refundable"], n, p=[0.9, 0.05, 0.05]),
    )
    parking = np.where(y == 1, 0, rng.choice([0, 1], n, p=[0.8, 0.2]))

    return pd.DataFrame(
        {
            TARGET_COL: y,
            "hotel": rng.choice(["City Hotel", "Resort Hotel"], n),
            "lead_time": rng.integers(0, 300, n) + 80 * y,
            "arrival_date_year": rng.choice([2015, 2016, 2017], n),
            "arrival_date_month": rng.choice(MONTHS, n),
            "arrival_date_week_number": rng.integers(1, 54, n),
            "arrival_date_day_of_month": rng.integers(1, 29, n),
            "stays_in_weekend_nights": rng.integers(0, 3, n),
            "stays_in_week_nights": rng.integers(0, 6, n),
            "adults": rng.integers(1, 4, n),
            "children": rng.choice([0, 0, 0, 1, 2], n),
            "babies": rng.choice([0, 0, 0, 0, 1], n),
            "meal": rng.choice(["BB", "HB", "SC", "FB"], n, p=[0.7, 0.15, 0.1, 0.05]),
            "country": rng.choice(["PRT", "GBR", "FRA", "ESP", "DEU", "CHE"], n),
            "market_segment": rng.choice(["Online TA", "Offline TA/TO", "Direct", "Groups"], n),
            "distribution_channel": rng.choice(["TA/TO", "Direct", "Corporate"], n),
            "is_repeated_guest": rng.choice([0, 1], n, p=[0.95, 0.05]),
            "previous_cancellations": rng.choice([0, 0, 0, 1], n) * y,
            "previous_bookings_not_canceled": rng.choice([0, 0, 1, 2], n),
            "reserved_room_type": rng.choice(["A", "D", "E"], n),
            "assigned_room_type": rng.choice(["A", "D", "E", "F"], n),
            "booking_changes": rng.choice([0, 0, 1, 2], n),
            "deposit_type": deposit,
            "agent": rng.choice(["9", "240", "none", "14"], n),
            "days_in_waiting_list": rng.choice([0, 0, 0, 0, 3], n),
            "customer_type": rng.choice(["Transient", "Contract", "Transient-Party"], n),
            "adr": np.round(rng.uniform(40, 250, n), 2),
            BINARIZE_COL: parking,
            "total_of_special_requests": rng.integers(0, 3, n) * (1 - y),
        }
    )


def make_raw_booking_frame(n: int = 300, seed: int = 0) -> pd.DataFrame:
    """Cleaned-style frame plus the raw-file quirks the cleaning stage handles."""
    df = make_booking_frame(n=n, seed=seed)
    df["children"] = df["children"].astype(float)
    df.loc[0, "children"] = np.nan
    df.loc[1, "country"] = np.nan
    df["agent"] = df["agent"].replace({"none": np.nan}).astype(float)
    df.loc[2, "meal"] = "Undefined"
    df["company"] = np.nan
    df["reservation_status"] = np.where(df[TARGET_COL] == 1, "Canceled", "Check-Out")
    df["reservation_status_date"] = "2016-01-01"
    return df


def brute_force_shapley(estimator, x: np.ndarray, R: np.ndarray, pos: int) -> np.ndarray:
    """Interventional Shapley values of one row by enumerating every coalition."""
    d = len(x)
    masks = np.array(list(product([False, True], repeat=d)))
    hybrids = np.where(masks[:, None, :], x[None, None, :], R[None, :, :])
    proba = estimator.predict_proba(hybrids.reshape(-1, d))[:, pos]
    worth = dict(zip(map(tuple, masks), proba.reshape(len(masks), -1).mean(axis=1)))

    phi = np.zeros(d)
    for mask in masks:
        size = int(mask.sum())
        weight = factorial(size) * factorial(d - size - 1) / factorial(d) if size < d else 0.0
        for i in np.flatnonzero(~mask):
            joined = mask.copy()
            joined[i] = True
            phi[i] += weight * (worth[tuple(joined)] - worth[tuple(mask)])
    return phi


@pytest.fixture(autouse=True)
def reset_package_logger():
    """CLI stages attach handlers and stop propagation; undo that for caplog."""
    yield
    pkg_logger = logging.getLogger("hbc_ml")
    for handler in list(pkg_logger.handlers):
        handler.close()
    pkg_logger.handlers.clear()
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)


@pytest.fixture
def bookings():
    """300 synthetic cleaned bookings."""
    return make_booking_frame(n=300, seed=0)


@pytest.fixture
def small_spec():
    """Recipe over a handful of columns (fast to fit)."""
    return RecipeSpec(
        numeric_cols=("lead_time", "adr", "adults"),
        categorical_cols=("hotel", "deposit_type", "country"),
        binarize_col=BINARIZE_COL,
        other_threshold=10,
    )


@pytest.fixture
def raw_bookings_csv(tmp_path):
    """Raw bookings CSV with leakage columns and missing values."""
    path = tmp_path / "hotel_bookings.csv"
    make_raw_booking_frame(n=300, seed=1).to_csv(path, index=False)
    return path
