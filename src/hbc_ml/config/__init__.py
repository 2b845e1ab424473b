"""Configuration management for HBC-ML."""

from hbc_ml.config.defaults import DEFAULT_PIPELINE_CONFIG
from hbc_ml.config.loader import (
    apply_overrides,
    format_config_summary,
    load_pipeline_config,
    load_yaml,
    save_config,
)
from hbc_ml.config.schema import (
    CleaningConfig,
    CVConfig,
    DecisionTreeConfig,
    ExplainConfig,
    KNNConfig,
    LassoConfig,
    LogisticConfig,
    PipelineConfig,
    RandomForestConfig,
    RecipeConfig,
    SplitConfig,
)
from hbc_ml.config.validation import ConfigValidationError, validate_pipeline_config

__all__ = [
    "DEFAULT_PIPELINE_CONFIG",
    "apply_overrides",
    "format_config_summary",
    "load_pipeline_config",
    "load_yaml",
    "save_config",
    "CleaningConfig",
    "CVConfig",
    "DecisionTreeConfig",
    "ExplainConfig",
    "KNNConfig",
    "LassoConfig",
    "LogisticConfig",
    "PipelineConfig",
    "RandomForestConfig",
    "RecipeConfig",
    "SplitConfig",
    "ConfigValidationError",
    "validate_pipeline_config",
]
