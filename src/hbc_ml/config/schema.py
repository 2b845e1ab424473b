"""
Configuration schema for the HBC-ML pipeline.

Defines Pydantic models for every stage: cleaning, splitting, the
preprocessing recipe, cross-validation, per-family search spaces and the
explanation layer. Defaults reproduce the original tuning workflow.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from hbc_ml.data.schema import (
    BINARIZE_COL,
    CATEGORICAL_COLS,
    LEAKAGE_COLS,
    NUMERIC_COLS,
    SPARSE_COLS,
    VALID_MODELS,
)

# ============================================================================
# Data Preparation
# ============================================================================


class CleaningConfig(BaseModel):
    """Configuration for raw-file cleaning."""

    drop_columns: list[str] = Field(default_factory=lambda: LEAKAGE_COLS + SPARSE_COLS)
    drop_duplicates: bool = True
    drop_zero_guests: bool = True
    min_adr: float = 0.0
    max_adr: float = Field(default=1000.0, gt=0.0)

    @model_validator(mode="after")
    def validate_adr_bounds(self):
        """Validate that the rate window is not empty."""
        if self.min_adr >= self.max_adr:
            raise ValueError(f"min_adr ({self.min_adr}) must be < max_adr ({self.max_adr})")
        return self


class SplitConfig(BaseModel):
    """Configuration for the stratified train/test split."""

    test_size: float = Field(default=0.25, gt=0.0, lt=1.0)
    random_state: int = Field(default=0, ge=0)


class RecipeConfig(BaseModel):
    """Configuration for the shared preprocessing recipe.

    other_threshold is a minimum occurrence count (int >= 1) or, when a float
    below 1, a minimum fraction of training rows.
    """

    numeric_cols: list[str] = Field(default_factory=lambda: list(NUMERIC_COLS))
    categorical_cols: list[str] = Field(default_factory=lambda: list(CATEGORICAL_COLS))
    binarize_col: str | None = BINARIZE_COL
    binarize_cutpoint: float = 0.0
    other_threshold: float = Field(default=100, gt=0.0)
    scale_indicators: bool = False

    @model_validator(mode="after")
    def validate_disjoint_columns(self):
        """Each column may play exactly one role."""
        seen: dict[str, str] = {}
        roles = [("numeric", self.numeric_cols), ("categorical", self.categorical_cols)]
        if self.binarize_col:
            roles.append(("binarize", [self.binarize_col]))
        for role, cols in roles:
            for col in cols:
                if col in seen:
                    raise ValueError(f"Column '{col}' declared as both {seen[col]} and {role}")
                seen[col] = role
        if not seen:
            raise ValueError("Recipe declares no feature columns")
        return self


# ============================================================================
# Cross-Validation Configuration
# ============================================================================


class CVConfig(BaseModel):
    """Configuration for repeated stratified k-fold cross-validation."""

    folds: int = Field(default=5, ge=2)
    repeats: int = Field(default=3, ge=1)
    scoring: Literal["roc_auc", "pr_auc"] = "roc_auc"
    random_state: int = Field(default=0, ge=0)
    n_jobs: int = 1


# ============================================================================
# Model-Specific Search Spaces
# ============================================================================


class LogisticConfig(BaseModel):
    """Unpenalized logistic regression (no tuned hyperparameters)."""

    max_iter: int = Field(default=1000, ge=1)


class LassoConfig(BaseModel):
    """L1-penalized logistic regression.

    penalty_min/penalty_max/penalty_points define a log-spaced penalty grid
    (glmnet lambda scale).
    """

    penalty_min: float = Field(default=1e-4, gt=0.0)
    penalty_max: float = Field(default=1e-1, gt=0.0)
    penalty_points: int = Field(default=20, ge=1)
    solver: Literal["saga", "liblinear"] = "saga"
    max_iter: int = Field(default=2000, ge=1)
    random_state: int = 0

    @model_validator(mode="after")
    def validate_penalty_range(self):
        """Validate penalty bounds ordering."""
        if self.penalty_min > self.penalty_max:
            raise ValueError("penalty_min must be <= penalty_max")
        return self


class DecisionTreeConfig(BaseModel):
    """Decision tree regular grid (cost complexity x depth)."""

    cost_complexity_range: list[float] = Field(default_factory=lambda: [1e-10, 1e-1])
    tree_depth_range: list[int] = Field(default_factory=lambda: [1, 15])
    levels: int = Field(default=4, ge=1)
    random_state: int = 0

    @field_validator("cost_complexity_range", "tree_depth_range")
    @classmethod
    def validate_range(cls, v):
        if len(v) != 2 or v[0] > v[1]:
            raise ValueError(f"Expected [low, high] with low <= high, got {v}")
        return v


class KNNConfig(BaseModel):
    """K-nearest-neighbors grid."""

    neighbors_grid: list[int] = Field(default_factory=lambda: [10, 20, 30, 40, 50, 60])
    weights: Literal["uniform", "distance"] = "distance"

    @field_validator("neighbors_grid")
    @classmethod
    def validate_neighbors(cls, v):
        if not v or any(k < 1 for k in v):
            raise ValueError(f"neighbors_grid must be non-empty positive integers, got {v}")
        return v


class RandomForestConfig(BaseModel):
    """Random forest Latin-hypercube space.

    final_override replaces selected hyperparameters at refit time
    (e.g. {"mtry": 8, "min_n": 3, "trees": 665}); it is never applied unless set.
    """

    min_n_range: list[int] = Field(default_factory=lambda: [2, 40])
    mtry_range: list[int] = Field(default_factory=lambda: [4, 12])
    trees_range: list[int] = Field(default_factory=lambda: [1, 2000])
    size: int = Field(default=50, ge=1)
    n_jobs: int = 1
    random_state: int = 0
    final_override: dict[str, int | float] | None = None

    @field_validator("min_n_range", "mtry_range", "trees_range")
    @classmethod
    def validate_range(cls, v):
        if len(v) != 2 or v[0] > v[1] or v[0] < 1:
            raise ValueError(f"Expected [low, high] with 1 <= low <= high, got {v}")
        return v

    @field_validator("final_override")
    @classmethod
    def validate_override_keys(cls, v):
        if v is None:
            return v
        unknown = set(v) - {"min_n", "mtry", "trees"}
        if unknown:
            raise ValueError(f"Unknown random forest override keys: {sorted(unknown)}")
        return v


# ============================================================================
# Explanation Configuration
# ============================================================================


class ExplainConfig(BaseModel):
    """Configuration for permutation importance and Shapley attribution."""

    model: str = "random_forest"
    n_reference: int = Field(default=100, ge=1)
    n_instances: int = Field(default=100, ge=1)
    perm_repeats: int = Field(default=5, ge=1)
    perm_scoring: str = "roc_auc"
    random_state: int = 0


# ============================================================================
# Top-level Configuration
# ============================================================================


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""

    infile: Path | None = None
    outdir: Path = Field(default=Path("results"))
    models: list[str] = Field(default_factory=lambda: list(VALID_MODELS))
    strictness: Literal["off", "warn", "error"] = "warn"

    cleaning: CleaningConfig = Field(default_factory=CleaningConfig)
    split: SplitConfig = Field(default_factory=SplitConfig)
    recipe: RecipeConfig = Field(default_factory=RecipeConfig)
    cv: CVConfig = Field(default_factory=CVConfig)

    logistic: LogisticConfig = Field(default_factory=LogisticConfig)
    lasso: LassoConfig = Field(default_factory=LassoConfig)
    decision_tree: DecisionTreeConfig = Field(default_factory=DecisionTreeConfig)
    knn: KNNConfig = Field(default_factory=KNNConfig)
    random_forest: RandomForestConfig = Field(default_factory=RandomForestConfig)

    explain: ExplainConfig = Field(default_factory=ExplainConfig)

    @field_validator("models")
    @classmethod
    def validate_models(cls, v):
        unknown = [m for m in v if m not in VALID_MODELS]
        if unknown:
            raise ValueError(f"Unknown models: {unknown}. Valid: {VALID_MODELS}")
        if not v:
            raise ValueError("At least one model must be selected")
        return v
