"""
Hyperparameter search space definitions for all model families.

Provides:
- GridSpace: explicit list of configurations, or the Cartesian product of value lists
- LatinHypercubeSpace: space-filling random design over numeric ranges
- Per-family default spaces built from the pipeline configuration

Every space yields plain dicts keyed by the family's tuned parameter names,
in a deterministic order.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
from scipy.stats import qmc
from sklearn.model_selection import ParameterGrid

from hbc_ml.config.schema import (
    DecisionTreeConfig,
    KNNConfig,
    LassoConfig,
    RandomForestConfig,
)

logger = logging.getLogger(__name__)


def _make_logspace(low: float, high: float, points: int) -> list[float]:
    """Log-spaced grid from low to high inclusive."""
    if low <= 0 or high <= 0:
        raise ValueError(f"Log-spaced bounds must be > 0, got [{low}, {high}]")
    if points == 1:
        return [float(low)]
    return [float(v) for v in np.logspace(np.log10(low), np.log10(high), int(points))]


def _regular_levels(
    low: float, high: float, levels: int, kind: str = "float", log: bool = False
) -> list:
    """Evenly spaced levels over [low, high] (on log10 scale if log)."""
    if log:
        values = np.logspace(np.log10(low), np.log10(high), levels)
    else:
        values = np.linspace(low, high, levels)
    if kind == "int":
        out = []
        for v in np.round(values).astype(int):
            if int(v) not in out:
                out.append(int(v))
        return out
    return [float(v) for v in values]


class GridSpace:
    """Fixed set of configurations.

    Args:
        values: Mapping of parameter name -> list of values (Cartesian product),
            or a sequence of explicit configuration dicts
    """

    kind = "grid"

    def __init__(self, values: Mapping[str, Sequence[Any]] | Sequence[Mapping[str, Any]]):
        if isinstance(values, Mapping):
            if any(len(v) == 0 for v in values.values()):
                raise ValueError("GridSpace value lists must be non-empty")
            self._points = [dict(p) for p in ParameterGrid({k: list(v) for k, v in values.items()})]
        else:
            self._points = [dict(p) for p in values]
        if not self._points:
            raise ValueError("GridSpace has no configurations")

    @classmethod
    def single(cls) -> "GridSpace":
        """Space with one empty configuration (no tuned hyperparameters)."""
        return cls([{}])

    def configurations(self) -> list[dict[str, Any]]:
        return [dict(p) for p in self._points]

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"GridSpace(n={len(self)})"


@dataclass(frozen=True)
class ParamRange:
    """Closed numeric range for one hyperparameter."""

    name: str
    low: float
    high: float
    kind: Literal["int", "float"] = "float"
    log: bool = False

    def __post_init__(self):
        if self.low > self.high:
            raise ValueError(f"{self.name}: low ({self.low}) > high ({self.high})")
        if self.log and self.low <= 0:
            raise ValueError(f"{self.name}: log scale needs low > 0")

    def scale(self, u: np.ndarray) -> list:
        """Map unit-interval samples onto the range."""
        if self.kind == "int":
            span = int(self.high) - int(self.low) + 1
            values = np.floor(int(self.low) + u * span).astype(int)
            return [int(v) for v in np.clip(values, int(self.low), int(self.high))]
        if self.log:
            lo, hi = np.log10(self.low), np.log10(self.high)
            return [float(v) for v in 10 ** (lo + u * (hi - lo))]
        return [float(v) for v in self.low + u * (self.high - self.low)]


class LatinHypercubeSpace:
    """Latin hypercube design over independent parameter ranges.

    Args:
        ranges: One ParamRange per tuned hyperparameter
        size: Number of design points drawn before de-duplication
        seed: Seed for the design (same seed, same configurations)
    """

    kind = "latin_hypercube"

    def __init__(self, ranges: Sequence[ParamRange], size: int, seed: int = 0):
        if not ranges:
            raise ValueError("LatinHypercubeSpace needs at least one range")
        if size < 1:
            raise ValueError(f"size must be >= 1, got {size}")
        self.ranges = tuple(ranges)
        self.size = int(size)
        self.seed = int(seed)

    def configurations(self) -> list[dict[str, Any]]:
        sampler = qmc.LatinHypercube(d=len(self.ranges), rng=np.random.default_rng(self.seed))
        unit = sampler.random(n=self.size)
        columns = [r.scale(unit[:, j]) for j, r in enumerate(self.ranges)]

        points: list[dict[str, Any]] = []
        seen = set()
        for i in range(self.size):
            point = {r.name: columns[j][i] for j, r in enumerate(self.ranges)}
            key = tuple(point.values())
            if key in seen:
                continue
            seen.add(key)
            points.append(point)

        if len(points) < self.size:
            logger.debug(f"Latin hypercube: {self.size - len(points)} duplicate points dropped")
        return points

    def __len__(self) -> int:
        return len(self.configurations())

    def __repr__(self) -> str:
        return f"LatinHypercubeSpace(size={self.size}, seed={self.seed})"


# ----------------------------
# Per-family default spaces
# ----------------------------
def _get_lasso_space(config: LassoConfig) -> GridSpace:
    penalties = _make_logspace(config.penalty_min, config.penalty_max, config.penalty_points)
    return GridSpace({"penalty": penalties})


def _get_decision_tree_space(config: DecisionTreeConfig) -> GridSpace:
    cc_lo, cc_hi = config.cost_complexity_range
    depth_lo, depth_hi = config.tree_depth_range
    return GridSpace(
        {
            "cost_complexity": _regular_levels(cc_lo, cc_hi, config.levels, log=True),
            "tree_depth": _regular_levels(depth_lo, depth_hi, config.levels, kind="int"),
        }
    )


def _get_knn_space(config: KNNConfig) -> GridSpace:
    return GridSpace({"neighbors": sorted(set(config.neighbors_grid))})


def _get_random_forest_space(config: RandomForestConfig) -> LatinHypercubeSpace:
    ranges = [
        ParamRange("min_n", *config.min_n_range, kind="int"),
        ParamRange("mtry", *config.mtry_range, kind="int"),
        ParamRange("trees", *config.trees_range, kind="int"),
    ]
    return LatinHypercubeSpace(ranges, size=config.size, seed=config.random_state)


def get_search_space(model_name: str, config: Any = None) -> GridSpace | LatinHypercubeSpace:
    """
    Default search space for a family.

    Args:
        model_name: Family key
        config: PipelineConfig (or None for schema defaults)

    Returns:
        GridSpace or LatinHypercubeSpace
    """
    if model_name == "logistic":
        return GridSpace.single()
    if model_name == "lasso":
        return _get_lasso_space(config.lasso if config is not None else LassoConfig())
    if model_name == "decision_tree":
        section = config.decision_tree if config is not None else DecisionTreeConfig()
        return _get_decision_tree_space(section)
    if model_name == "knn":
        return _get_knn_space(config.knn if config is not None else KNNConfig())
    if model_name == "random_forest":
        section = config.random_forest if config is not None else RandomForestConfig()
        return _get_random_forest_space(section)
    raise ValueError(f"Unknown model family: {model_name}")
