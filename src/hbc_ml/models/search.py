"""
Cross-validated hyperparameter search, selection and final refit.

Every (configuration, repeat, fold) unit is independent: the recipe is fit on
the unit's training rows only, both subsets are transformed, the family's
estimator is fit and P(canceled) on the validation rows is scored. Units run
through joblib.Parallel and results are collected in submission order, so
the score table does not depend on n_jobs.

SchemaError (data not matching the recipe) is raised before any unit runs.
Any other exception in a unit (recipe, fit, predict) or an undefined score is
recorded as a FitFailure with a NaN score. A configuration with any failed
unit is left out of the ranking. If nothing survives, SearchExhaustedError.
"""

import json
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from hbc_ml.data.splits import FoldSet
from hbc_ml.exceptions import FitFailure, SchemaError, SearchExhaustedError
from hbc_ml.features.recipe import FittedRecipe, Recipe, RecipeSpec, validate_frame
from hbc_ml.metrics.discrimination import auroc
from hbc_ml.models.hyperparams import GridSpace, LatinHypercubeSpace
from hbc_ml.models.registry import ModelFamily
from hbc_ml.utils.serialization import to_native

logger = logging.getLogger(__name__)

# Mean scores closer than this are considered tied
TIE_TOLERANCE = 1e-12


@dataclass(frozen=True)
class Configuration:
    """One point of a search space."""

    config_id: int
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return f"config_{self.config_id:03d}"

    def params_json(self) -> str:
        return json.dumps(to_native(self.params), sort_keys=True)


class RankedConfig(NamedTuple):
    configuration: Configuration
    mean_score: float


@dataclass
class SearchResult:
    """Outcome of search().

    Attributes:
        family: Family key
        metric: Name of the scoring function
        configurations: Every evaluated configuration, in space order
        table: One row per (config_id, repeat, fold) with score and error
        ranked: Surviving configurations by mean score, best first
    """

    family: str
    metric: str
    configurations: list[Configuration]
    table: pd.DataFrame
    ranked: list[RankedConfig]
    elapsed_sec: float = 0.0

    @property
    def n_failed_configs(self) -> int:
        return len(self.configurations) - len(self.ranked)

    def summary(self) -> pd.DataFrame:
        """Per-configuration mean/std score and failure count."""
        grouped = self.table.groupby("config_id", sort=True)
        out = pd.DataFrame(
            {
                "mean_score": grouped["score"].mean(),
                "std_score": grouped["score"].std(ddof=1),
                "n_units": grouped["score"].size(),
                "n_failed": grouped["error"].apply(lambda s: int(s.notna().sum())),
            }
        ).reset_index()
        params = {c.config_id: c.params_json() for c in self.configurations}
        out["params"] = out["config_id"].map(params)
        ranks = {rc.configuration.config_id: i + 1 for i, rc in enumerate(self.ranked)}
        out["rank"] = out["config_id"].map(ranks)
        return out.sort_values(["rank", "config_id"], na_position="last").reset_index(drop=True)


def _as_recipe(recipe: Recipe | RecipeSpec) -> Recipe:
    return recipe if isinstance(recipe, Recipe) else Recipe(recipe)


def _evaluate_unit(
    recipe: Recipe,
    data: pd.DataFrame,
    y: np.ndarray,
    family: ModelFamily,
    params: dict[str, Any],
    train_idx: np.ndarray,
    val_idx: np.ndarray,
    metric: Callable[[np.ndarray, np.ndarray], float],
) -> tuple[float, str | None]:
    """Fit and score one (configuration, fold) unit; only SchemaError escapes."""
    try:
        train_df = data.iloc[train_idx]
        val_df = data.iloc[val_idx]
        fitted = recipe.fit(train_df)
        X_train = fitted.transform_array(train_df)
        X_val = fitted.transform_array(val_df)

        estimator = family.build(params, n_samples=len(train_idx), n_features=X_train.shape[1])
        estimator.fit(X_train, y[train_idx])
        classes = list(estimator.classes_)
        if 1 not in classes:
            raise FitFailure("estimator saw no positive class in training fold")
        proba = estimator.predict_proba(X_val)[:, classes.index(1)]

        score = float(metric(y[val_idx], proba))
        if not np.isfinite(score):
            raise FitFailure("metric undefined on validation fold")
        return score, None
    except SchemaError:
        raise
    except Exception as e:
        return np.nan, f"{type(e).__name__}: {e}"


def _rank(
    configurations: Sequence[Configuration], table: pd.DataFrame, family: ModelFamily
) -> list[RankedConfig]:
    """
    Surviving configurations, best first.

    Scores within TIE_TOLERANCE of a group's leading score form one tie group,
    ordered by _tie_key, so ranked[0] is always what select_best() returns.
    """
    failed = set(table.loc[table["error"].notna(), "config_id"])
    means = table.groupby("config_id")["score"].mean()
    survivors = [
        RankedConfig(cfg, float(means[cfg.config_id]))
        for cfg in configurations
        if cfg.config_id not in failed
    ]
    survivors.sort(key=lambda rc: -rc.mean_score)

    ranked: list[RankedConfig] = []
    while survivors:
        lead = survivors[0].mean_score
        n_tied = sum(1 for rc in survivors if lead - rc.mean_score <= TIE_TOLERANCE)
        ranked.extend(sorted(survivors[:n_tied], key=lambda rc: _tie_key(rc, family)))
        survivors = survivors[n_tied:]
    return ranked


def _tie_key(rc: RankedConfig, family: ModelFamily) -> tuple:
    return (family.complexity(rc.configuration.params), rc.configuration.config_id)


def search(
    recipe: Recipe | RecipeSpec,
    data: pd.DataFrame,
    y: np.ndarray | pd.Series,
    fold_sets: Sequence[FoldSet],
    family: ModelFamily,
    space: GridSpace | LatinHypercubeSpace | Sequence[Mapping[str, Any]],
    metric: Callable[[np.ndarray, np.ndarray], float] = auroc,
    n_jobs: int = 1,
) -> SearchResult:
    """
    Score every configuration on every fold of every repeat.

    Args:
        recipe: Unfitted recipe (refit inside each training fold)
        data: Training predictors, row positions matching the fold indices
        y: Binary labels (0/1), length len(data)
        fold_sets: Output of make_folds()
        family: Model family with fixed settings bound
        space: Search space, or an explicit list of parameter dicts
        metric: Score function (higher is better), default AUROC
        n_jobs: joblib workers

    Returns:
        SearchResult

    Raises:
        ValueError: Inconsistent inputs (lengths, empty folds or space)
        SchemaError: data does not match the recipe's declared columns
        SearchExhaustedError: Every configuration had a failed unit
    """
    recipe = _as_recipe(recipe)
    y = np.asarray(y).astype(int)
    if len(y) != len(data):
        raise ValueError(f"y has {len(y)} labels but data has {len(data)} rows")
    if not fold_sets:
        raise ValueError("search requires at least one fold set")
    for fs in fold_sets:
        if fs.n_samples != len(data):
            raise ValueError(
                f"Fold set repeat {fs.repeat} covers {fs.n_samples} rows, data has {len(data)}"
            )
    validate_frame(data, recipe.spec)

    points = space.configurations() if hasattr(space, "configurations") else list(space)
    if not points:
        raise ValueError("Search space has no configurations")
    configurations = [Configuration(i + 1, dict(p)) for i, p in enumerate(points)]

    units = []
    for cfg in configurations:
        for fs in fold_sets:
            for fold_idx, (train_idx, val_idx) in enumerate(fs.splits()):
                units.append((cfg, fs.repeat, fold_idx, train_idx, val_idx))

    metric_name = getattr(metric, "__name__", str(metric))
    logger.info(
        f"[search] {family.name}: {len(configurations)} configurations x "
        f"{len(units) // len(configurations)} folds = {len(units)} fits "
        f"(metric={metric_name}, n_jobs={n_jobs})"
    )

    t0 = time.perf_counter()
    outcomes = Parallel(n_jobs=n_jobs)(
        delayed(_evaluate_unit)(recipe, data, y, family, cfg.params, tr, va, metric)
        for cfg, _, _, tr, va in units
    )
    elapsed = time.perf_counter() - t0

    rows = []
    for (cfg, repeat, fold_idx, train_idx, val_idx), (score, error) in zip(units, outcomes):
        rows.append(
            {
                "config_id": cfg.config_id,
                "repeat": repeat,
                "fold": fold_idx,
                "n_train": len(train_idx),
                "n_val": len(val_idx),
                "score": score,
                "error": error,
                "params": cfg.params_json(),
            }
        )
    table = pd.DataFrame(rows)

    failed_configs = sorted(set(table.loc[table["error"].notna(), "config_id"]))
    for config_id in failed_configs:
        errors = table.loc[(table["config_id"] == config_id) & table["error"].notna(), "error"]
        logger.warning(
            f"[search] {family.name} config {config_id}: {len(errors)} failed units "
            f"(first: {errors.iloc[0]})"
        )

    ranked = _rank(configurations, table, family)
    logger.info(
        f"[search] {family.name}: {len(ranked)}/{len(configurations)} configurations ranked "
        f"in {elapsed:.1f}s"
    )
    if not ranked:
        raise SearchExhaustedError(
            f"All {len(configurations)} {family.name} configurations failed; "
            f"first error: {table['error'].dropna().iloc[0]}"
        )

    best = ranked[0]
    logger.info(
        f"[search] {family.name} best: {best.configuration.params_json()} "
        f"mean {metric_name}={best.mean_score:.4f}"
    )
    return SearchResult(
        family=family.name,
        metric=metric_name,
        configurations=configurations,
        table=table,
        ranked=ranked,
        elapsed_sec=elapsed,
    )


def select_best(ranked: Sequence[RankedConfig], family: ModelFamily) -> Configuration:
    """
    Pick the configuration with the highest mean score.

    Scores within TIE_TOLERANCE of the best are tied; ties go to the simplest
    model by the family's complexity key, then to the lowest config_id.

    Raises:
        SearchExhaustedError: If ranked is empty
    """
    if not ranked:
        raise SearchExhaustedError("No ranked configurations to select from")
    top = max(rc.mean_score for rc in ranked)
    tied = [rc for rc in ranked if top - rc.mean_score <= TIE_TOLERANCE]
    tied.sort(key=lambda rc: _tie_key(rc, family))
    if len(tied) > 1:
        logger.info(
            f"[select] {len(tied)} configurations tied at {top:.6f}; "
            f"chose config {tied[0].configuration.config_id} (simplest)"
        )
    return tied[0].configuration


@dataclass(frozen=True)
class FinalModel:
    """Recipe and estimator refit on the full training set.

    Attributes:
        family: Family key
        params: Hyperparameters the estimator was fit with
        selected_params: Hyperparameters chosen by the search (before override)
        override: Values that replaced the selection at refit, or None
        recipe: FittedRecipe learned on the full training set
        estimator: Fitted scikit-learn classifier
    """

    family: str
    params: dict[str, Any]
    selected_params: dict[str, Any]
    override: dict[str, Any] | None
    recipe: FittedRecipe
    estimator: Any
    n_train: int

    @property
    def feature_names(self) -> list[str]:
        return list(self.recipe.columns)

    @property
    def positive_index(self) -> int:
        return list(self.estimator.classes_).index(1)

    def params_json(self) -> str:
        return json.dumps(to_native(self.params), sort_keys=True)

    def transform(self, df: pd.DataFrame) -> np.ndarray:
        return self.recipe.transform_array(df)

    def predict_proba(self, df: pd.DataFrame) -> np.ndarray:
        """P(canceled) for raw records, shape (n_rows,)."""
        return self.estimator.predict_proba(self.transform(df))[:, self.positive_index]


def refit(
    recipe: Recipe | RecipeSpec,
    train_df: pd.DataFrame,
    y: np.ndarray | pd.Series,
    family: ModelFamily,
    best: Configuration | RankedConfig | Mapping[str, Any],
    override: Mapping[str, Any] | None = None,
) -> FinalModel:
    """
    Fit the recipe and the selected configuration on the full training set.

    Args:
        recipe: Unfitted recipe
        train_df: Full training predictors
        y: Training labels
        family: Model family
        best: Selected configuration (or a plain parameter mapping)
        override: Hyperparameter values replacing the selection; logged,
            and only ever applied when passed explicitly

    Returns:
        FinalModel

    Raises:
        ValueError: If override names a parameter the family does not tune
    """
    recipe = _as_recipe(recipe)
    y = np.asarray(y).astype(int)

    if isinstance(best, RankedConfig):
        best = best.configuration
    selected = dict(best.params) if isinstance(best, Configuration) else dict(best)

    params = dict(selected)
    if override:
        unknown = [k for k in override if k not in family.tuned_params]
        if unknown:
            raise ValueError(f"Override keys {unknown} are not tuned by {family.name}")
        logger.warning(
            f"[refit] {family.name}: overriding selected {to_native(selected)} "
            f"with {to_native(dict(override))}"
        )
        params.update(override)

    fitted = recipe.fit(train_df)
    X = fitted.transform_array(train_df)
    estimator = family.build(params, n_samples=X.shape[0], n_features=X.shape[1])
    t0 = time.perf_counter()
    estimator.fit(X, y)
    logger.info(
        f"[refit] {family.name} fit on {X.shape[0]:,} rows x {X.shape[1]} features "
        f"in {time.perf_counter() - t0:.1f}s: {json.dumps(to_native(params), sort_keys=True)}"
    )

    return FinalModel(
        family=family.name,
        params=params,
        selected_params=selected,
        override=dict(override) if override else None,
        recipe=fitted,
        estimator=estimator,
        n_train=int(X.shape[0]),
    )
