"""
Seeds used by the pipeline.

Every random step takes an explicit seed from the configuration: the
train/test split, the per-repeat fold shuffles, the Latin hypercube design,
estimator random_state values and the permutation/reference sampling of the
explain stage. seed_plan() collects them so stages can log them together.

SEED_GLOBAL (environment) additionally seeds the Python and NumPy global
generators; it is meant for debugging single-threaded runs.
"""

import logging
import os
import random
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

SEED_ENV_VAR = "SEED_GLOBAL"
MAX_SEED = 2**32 - 1

# Seeds of consecutive repeats are this far apart
REPEAT_STRIDE = 1000


def set_random_seed(seed: int):
    """Seed the Python and NumPy global generators."""
    random.seed(seed)
    np.random.seed(seed)


def apply_seed_global() -> int | None:
    """
    Seed global generators from SEED_GLOBAL when it holds a usable integer.

    Returns:
        The applied seed, or None (unset, blank, non-integer or out of range)
    """
    raw = os.environ.get(SEED_ENV_VAR, "").strip()
    if not raw:
        return None

    try:
        seed = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; ignoring.", SEED_ENV_VAR, raw)
        return None

    if not 0 <= seed <= MAX_SEED:
        logger.warning("%s=%d outside [0, %d]; ignoring.", SEED_ENV_VAR, seed, MAX_SEED)
        return None

    set_random_seed(seed)
    logger.info("%s=%d applied to the global RNGs.", SEED_ENV_VAR, seed)
    return seed


def get_cv_seed(base_seed: int, repeat_idx: int = 0, fold_idx: int = 0) -> int:
    """Seed of one CV repeat (and optionally fold), derived from the base seed."""
    return base_seed + repeat_idx * REPEAT_STRIDE + fold_idx


def seed_plan(config: Any) -> dict[str, int]:
    """
    Every seed a pipeline run will use, keyed by where it is used.

    Args:
        config: PipelineConfig
    """
    plan = {
        "split": config.split.random_state,
        "cv_base": config.cv.random_state,
        "lasso": config.lasso.random_state,
        "decision_tree": config.decision_tree.random_state,
        "random_forest": config.random_forest.random_state,
        "explain": config.explain.random_state,
    }
    for r in range(config.cv.repeats):
        plan[f"cv_repeat_{r}"] = get_cv_seed(config.cv.random_state, repeat_idx=r)
    return plan


def log_seed_plan(config: Any, log: logging.Logger | None = None):
    """Log seed_plan(config) on one line."""
    plan = seed_plan(config)
    (log or logger).info("Seeds: " + ", ".join(f"{k}={v}" for k, v in plan.items()))
