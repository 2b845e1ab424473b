"""
Data schema definitions and constants.

Defines column names, labels, and model identifiers for the hotel-bookings
dataset used throughout the pipeline.
"""

# ============================================================================
# Column Names
# ============================================================================

# Target column (1 = canceled, 0 = not canceled)
TARGET_COL = "is_canceled"

# Row identifier added by the cleaning stage (position in the cleaned file)
ROW_ID_COL = "row_id"

# Columns that leak the outcome (written after cancellation) or are mostly empty
LEAKAGE_COLS = ["reservation_status", "reservation_status_date"]
SPARSE_COLS = ["company"]

# Count/continuous predictors
NUMERIC_COLS = [
    "lead_time",
    "arrival_date_year",
    "arrival_date_week_number",
    "arrival_date_day_of_month",
    "stays_in_weekend_nights",
    "stays_in_week_nights",
    "adults",
    "children",
    "babies",
    "previous_cancellations",
    "previous_bookings_not_canceled",
    "booking_changes",
    "days_in_waiting_list",
    "adr",
    "total_of_special_requests",
]

# Channel/segment/room-type codes and other nominal predictors
CATEGORICAL_COLS = [
    "hotel",
    "arrival_date_month",
    "meal",
    "country",
    "market_segment",
    "distribution_channel",
    "is_repeated_guest",
    "reserved_room_type",
    "assigned_room_type",
    "deposit_type",
    "agent",
    "customer_type",
]

# Count feature reduced to present/absent by the recipe
BINARIZE_COL = "required_car_parking_spaces"

# Columns the raw file must provide
REQUIRED_RAW_COLS = [TARGET_COL, *NUMERIC_COLS, *CATEGORICAL_COLS, BINARIZE_COL]

# ============================================================================
# Class Labels
# ============================================================================

POSITIVE_LABEL = "canceled"
NEGATIVE_LABEL = "not canceled"

# ============================================================================
# Recipe Levels
# ============================================================================

OTHER_LEVEL = "other"
PRESENT_LEVEL = "present"
ABSENT_LEVEL = "absent"

# ============================================================================
# Model Names
# ============================================================================

VALID_MODELS = [
    "logistic",
    "lasso",
    "decision_tree",
    "knn",
    "random_forest",
]

MODEL_DISPLAY_NAMES = {
    "logistic": "Logistic Regression",
    "lasso": "Lasso Logistic Regression",
    "decision_tree": "Decision Tree",
    "knn": "K-Nearest Neighbors",
    "random_forest": "Random Forest",
}

# Families the explanation layer accepts
TREE_MODELS = ["decision_tree", "random_forest"]

# ============================================================================
# Metric Names
# ============================================================================

METRIC_AUROC = "roc_auc"
METRIC_PRAUC = "pr_auc"
METRIC_BRIER = "brier_score"


def label_to_int(values) -> list[int]:
    """
    Coerce a label column to 0/1 integers.

    Accepts 0/1 integers, booleans, or the POSITIVE_LABEL/NEGATIVE_LABEL strings.

    Raises:
        ValueError: If any value cannot be interpreted as a binary label
    """
    out = []
    for v in values:
        if isinstance(v, str):
            key = v.strip().lower()
            if key == POSITIVE_LABEL:
                out.append(1)
                continue
            if key == NEGATIVE_LABEL:
                out.append(0)
                continue
            raise ValueError(f"Unrecognized label value: {v!r}")
        if v not in (0, 1):
            raise ValueError(f"Label must be 0/1, got {v!r}")
        out.append(int(v))
    return out
