"""
Preprocessing recipe: raw booking records -> numeric feature matrix.

A RecipeSpec declares the feature roles. Recipe(spec).fit() learns everything
that depends on data from the training set only and returns an immutable
FittedRecipe. FittedRecipe.transform() is a pure function of the fitted
values and the new data, applying in order:

1. Collapse of rare categorical levels (and levels unseen at fit time) into "other"
2. Binarization of one count feature into "present"/"absent"
3. One-hot expansion of every categorical feature, column order fixed at fit time
4. Centering/scaling with the training mean and standard deviation

Zero-variance columns get a scale of 1.0, so their centered output is 0.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin

from hbc_ml.data.schema import ABSENT_LEVEL, OTHER_LEVEL, PRESENT_LEVEL
from hbc_ml.exceptions import DegenerateFeatureError, SchemaError

logger = logging.getLogger(__name__)

BINARY_LEVELS = (ABSENT_LEVEL, PRESENT_LEVEL)


def _as_level(value: Any) -> str:
    """Canonical string form of a categorical value (9.0 and 9 are the same level)."""
    if isinstance(value, float | np.floating) and float(value).is_integer():
        return str(int(value))
    return str(value)


def _levels(series: pd.Series) -> pd.Series:
    return series.astype(object).map(_as_level)


@dataclass(frozen=True)
class RecipeSpec:
    """Declared feature roles and recipe options.

    Args:
        numeric_cols: Columns centered and scaled as-is
        categorical_cols: Columns collapsed and one-hot encoded
        binarize_col: Count column turned into present/absent (optional)
        binarize_cutpoint: Values strictly above the cutpoint are "present"
        other_threshold: Minimum training count for a level to keep its own
            column; a float below 1 is a fraction of training rows
        scale_indicators: Also center/scale the one-hot indicator columns
    """

    numeric_cols: tuple[str, ...] = ()
    categorical_cols: tuple[str, ...] = ()
    binarize_col: str | None = None
    binarize_cutpoint: float = 0.0
    other_threshold: float = 100
    scale_indicators: bool = False

    def __post_init__(self):
        object.__setattr__(self, "numeric_cols", tuple(self.numeric_cols))
        object.__setattr__(self, "categorical_cols", tuple(self.categorical_cols))

        declared = list(self.required_columns)
        if not declared:
            raise ValueError("Recipe declares no feature columns")
        duplicated = sorted({c for c in declared if declared.count(c) > 1})
        if duplicated:
            raise ValueError(f"Columns declared with more than one role: {duplicated}")
        if not self.other_threshold > 0:
            raise ValueError(f"other_threshold must be > 0, got {self.other_threshold}")

    @classmethod
    def from_config(cls, config: Any) -> "RecipeSpec":
        """Build from a RecipeConfig (or a mapping with the same keys)."""
        if isinstance(config, Mapping):
            get = config.get
        else:

            def get(key, default=None):
                return getattr(config, key, default)

        return cls(
            numeric_cols=tuple(get("numeric_cols", ()) or ()),
            categorical_cols=tuple(get("categorical_cols", ()) or ()),
            binarize_col=get("binarize_col"),
            binarize_cutpoint=float(get("binarize_cutpoint", 0.0)),
            other_threshold=get("other_threshold", 100),
            scale_indicators=bool(get("scale_indicators", False)),
        )

    @property
    def required_columns(self) -> tuple[str, ...]:
        cols = self.numeric_cols + self.categorical_cols
        if self.binarize_col:
            cols = cols + (self.binarize_col,)
        return cols

    def min_level_count(self, n_rows: int) -> int:
        """Resolve other_threshold to a minimum occurrence count."""
        if self.other_threshold < 1:
            return max(1, math.ceil(self.other_threshold * n_rows))
        return int(self.other_threshold)


class Recipe:
    """Unfitted preprocessing recipe; fit() never mutates it."""

    def __init__(self, spec: RecipeSpec):
        self.spec = spec

    def __repr__(self) -> str:
        return f"Recipe({self.spec!r})"

    def fit(self, df: pd.DataFrame) -> "FittedRecipe":
        """
        Learn level vocabularies and scaling statistics from training data.

        Args:
            df: Training predictors (extra columns are ignored)

        Returns:
            FittedRecipe

        Raises:
            SchemaError: Missing column, unsupported dtype or missing values
            DegenerateFeatureError: Empty training set, non-finite numeric
                values, or a categorical feature with no level
        """
        spec = self.spec
        validate_frame(df, spec)
        if len(df) == 0:
            raise DegenerateFeatureError("Cannot fit recipe on an empty dataset")

        for col in spec.numeric_cols:
            if not np.isfinite(df[col].to_numpy(dtype=float)).all():
                raise DegenerateFeatureError(f"Numeric column '{col}' has non-finite values")

        min_count = spec.min_level_count(len(df))
        kept: list[tuple[str, tuple[str, ...]]] = []
        for col in spec.categorical_cols:
            counts = _levels(df[col]).value_counts()
            if counts.empty:
                raise DegenerateFeatureError(f"Categorical column '{col}' has no levels")
            keep = sorted(
                lvl for lvl, n in counts.items() if n >= min_count and lvl != OTHER_LEVEL
            )
            n_collapsed = len(counts) - len(keep)
            if n_collapsed:
                logger.debug(f"{col}: {n_collapsed} levels below {min_count} -> '{OTHER_LEVEL}'")
            kept.append((col, tuple(keep)))

        indicator_columns = []
        for col, keep in kept:
            indicator_columns.extend(f"{col}_{lvl}" for lvl in keep)
            indicator_columns.append(f"{col}_{OTHER_LEVEL}")
        if spec.binarize_col:
            indicator_columns.extend(f"{spec.binarize_col}_{lvl}" for lvl in BINARY_LEVELS)
        columns = list(spec.numeric_cols) + indicator_columns

        dupes = sorted({c for c in columns if columns.count(c) > 1})
        if dupes:
            raise SchemaError(f"Recipe produces duplicate output columns: {dupes}")

        unscaled = FittedRecipe(
            spec=spec,
            n_train=len(df),
            min_count=min_count,
            kept_levels=tuple(kept),
            columns=tuple(columns),
        )

        scaled = list(spec.numeric_cols)
        if spec.scale_indicators:
            scaled.extend(indicator_columns)
        matrix = unscaled.encode(df)[scaled].to_numpy(dtype=float)
        center = matrix.mean(axis=0)
        std = matrix.std(axis=0)
        scale = np.where(std > 0, std, 1.0)

        n_constant = int((std == 0).sum())
        if n_constant:
            logger.warning(f"{n_constant} zero-variance columns scaled by 1.0")

        logger.info(
            f"Recipe fit on {len(df):,} rows: {len(columns)} output columns "
            f"(min level count={min_count})"
        )
        return FittedRecipe(
            spec=spec,
            n_train=len(df),
            min_count=min_count,
            kept_levels=tuple(kept),
            columns=tuple(columns),
            scaled_columns=tuple(scaled),
            center=tuple(float(v) for v in center),
            scale=tuple(float(v) for v in scale),
        )


@dataclass(frozen=True)
class FittedRecipe:
    """Immutable result of Recipe.fit(); reapplied, never refit."""

    spec: RecipeSpec
    n_train: int
    min_count: int
    kept_levels: tuple[tuple[str, tuple[str, ...]], ...]
    columns: tuple[str, ...]
    scaled_columns: tuple[str, ...] = ()
    center: tuple[float, ...] = ()
    scale: tuple[float, ...] = ()

    @property
    def n_features(self) -> int:
        return len(self.columns)

    @property
    def levels(self) -> dict[str, tuple[str, ...]]:
        """Kept (non-collapsed) levels per categorical column."""
        return dict(self.kept_levels)

    @property
    def column_sources(self) -> dict[str, str]:
        """Output column -> declared input column it was derived from."""
        sources = {col: col for col in self.spec.numeric_cols}
        for col, keep in self.kept_levels:
            for lvl in keep + (OTHER_LEVEL,):
                sources[f"{col}_{lvl}"] = col
        if self.spec.binarize_col:
            for lvl in BINARY_LEVELS:
                sources[f"{self.spec.binarize_col}_{lvl}"] = self.spec.binarize_col
        return sources

    def collapse(self, df: pd.DataFrame) -> pd.DataFrame:
        """Map every categorical value to a kept level or OTHER_LEVEL."""
        out = {}
        for col, keep in self.kept_levels:
            lv = _levels(df[col])
            out[col] = lv.where(lv.isin(keep), OTHER_LEVEL)
        return pd.DataFrame(out, index=df.index)

    def binarize(self, df: pd.DataFrame) -> pd.Series | None:
        """Present/absent levels of the binarized count column."""
        col = self.spec.binarize_col
        if not col:
            return None
        values = df[col].to_numpy(dtype=float)
        labels = np.where(values > self.spec.binarize_cutpoint, PRESENT_LEVEL, ABSENT_LEVEL)
        return pd.Series(labels, index=df.index, name=col)

    def encode(self, df: pd.DataFrame) -> pd.DataFrame:
        """Collapse, binarize and one-hot without scaling."""
        blocks: dict[str, np.ndarray] = {}
        for col in self.spec.numeric_cols:
            blocks[col] = df[col].to_numpy(dtype=float)

        collapsed = self.collapse(df)
        for col, keep in self.kept_levels:
            values = collapsed[col].to_numpy()
            for lvl in keep + (OTHER_LEVEL,):
                blocks[f"{col}_{lvl}"] = (values == lvl).astype(float)

        binary = self.binarize(df)
        if binary is not None:
            values = binary.to_numpy()
            for lvl in BINARY_LEVELS:
                blocks[f"{self.spec.binarize_col}_{lvl}"] = (values == lvl).astype(float)

        encoded = pd.DataFrame(blocks, index=df.index)
        return encoded.reindex(columns=list(self.columns), fill_value=0.0)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Apply the fitted recipe to any dataset.

        Args:
            df: Predictors with every declared column (extra columns ignored)

        Returns:
            DataFrame with columns == self.columns and the index of df

        Raises:
            SchemaError: Missing column, unsupported dtype or missing/non-finite values
        """
        validate_frame(df, self.spec)
        for col in self.spec.numeric_cols:
            if not np.isfinite(df[col].to_numpy(dtype=float)).all():
                raise SchemaError(f"Numeric column '{col}' has non-finite values")

        encoded = self.encode(df)
        if self.scaled_columns:
            cols = list(self.scaled_columns)
            matrix = encoded[cols].to_numpy(dtype=float)
            encoded[cols] = (matrix - np.asarray(self.center)) / np.asarray(self.scale)
        return encoded

    def transform_array(self, df: pd.DataFrame) -> np.ndarray:
        """transform() as a float ndarray (estimator input)."""
        return self.transform(df).to_numpy(dtype=float)


def validate_frame(df: pd.DataFrame, spec: RecipeSpec) -> None:
    """
    Check columns, dtypes and missing values against the declared roles.

    Raises:
        SchemaError: On the first violation found
    """
    if not isinstance(df, pd.DataFrame):
        raise SchemaError(f"Expected a pandas DataFrame, got {type(df).__name__}")

    missing = [c for c in spec.required_columns if c not in df.columns]
    if missing:
        raise SchemaError(f"Missing required feature columns: {missing}")

    numeric_like = list(spec.numeric_cols)
    if spec.binarize_col:
        numeric_like.append(spec.binarize_col)
    for col in numeric_like:
        dtype = df[col].dtype
        if not pd.api.types.is_numeric_dtype(dtype) or pd.api.types.is_complex_dtype(dtype):
            raise SchemaError(f"Numeric column '{col}' has unsupported dtype {dtype}")

    for col in spec.categorical_cols:
        dtype = df[col].dtype
        if (
            pd.api.types.is_datetime64_any_dtype(dtype)
            or pd.api.types.is_timedelta64_dtype(dtype)
            or pd.api.types.is_complex_dtype(dtype)
        ):
            raise SchemaError(f"Categorical column '{col}' has unsupported dtype {dtype}")

    na_cols = [c for c in spec.required_columns if df[c].isna().any()]
    if na_cols:
        raise SchemaError(f"Missing values in columns {na_cols}; impute before the recipe")


class RecipeTransformer(TransformerMixin, BaseEstimator):
    """scikit-learn adapter so a recipe can sit inside a Pipeline.

    Args:
        spec: RecipeSpec fitted in fit()
    """

    def __init__(self, spec: RecipeSpec | None = None):
        self.spec = spec

    @classmethod
    def from_fitted(cls, fitted: FittedRecipe) -> "RecipeTransformer":
        transformer = cls(spec=fitted.spec)
        transformer.fitted_ = fitted
        return transformer

    def fit(self, X: pd.DataFrame, y: Iterable | None = None):
        if self.spec is None:
            raise ValueError("RecipeTransformer requires a RecipeSpec")
        self.fitted_ = Recipe(self.spec).fit(X)
        return self

    def transform(self, X: pd.DataFrame) -> np.ndarray:
        return self.fitted_.transform_array(X)

    def get_feature_names_out(self, input_features=None) -> np.ndarray:
        return np.asarray(self.fitted_.columns, dtype=object)
