"""
Cross-field consistency checks on a resolved PipelineConfig.

Each check returns a list of human-readable problems. config.strictness
decides what happens to them: "warn" emits one ConfigValidationWarning,
"error" raises ConfigValidationError, "off" ignores them.
"""

import warnings

from hbc_ml.config.schema import PipelineConfig
from hbc_ml.data.schema import TREE_MODELS


class ConfigValidationError(Exception):
    """Configuration problems found with strictness="error"."""


class ConfigValidationWarning(UserWarning):
    """Configuration problems found with strictness="warn"."""


def _check_explain_model(config: PipelineConfig) -> list[str]:
    model = config.explain.model
    if model not in TREE_MODELS:
        return [f"explain.model='{model}' is not a tree model; Shapley attribution supports {TREE_MODELS}."]
    if model not in config.models:
        return [f"explain.model='{model}' is not among trained models {config.models}."]
    return []


def _check_forest_override(config: PipelineConfig) -> list[str]:
    override = config.random_forest.final_override
    if not override:
        return []
    return [
        "random_forest.final_override is set: the refit will replace the "
        f"search-selected values with {override}."
    ]


def _check_other_threshold(config: PipelineConfig) -> list[str]:
    threshold = config.recipe.other_threshold
    if threshold >= 1 and not float(threshold).is_integer():
        return [
            f"recipe.other_threshold={threshold} is >= 1 but not an integer; "
            "it is interpreted as a minimum count."
        ]
    return []


def _check_mtry_range(config: PipelineConfig) -> list[str]:
    upper = config.random_forest.mtry_range[1]
    n_raw = len(config.recipe.numeric_cols) + len(config.recipe.categorical_cols) + 1
    if upper > n_raw:
        return [
            f"random_forest.mtry_range upper bound ({upper}) exceeds the number of raw "
            "features; it is clipped to the transformed column count at fit time."
        ]
    return []


CHECKS = (_check_explain_model, _check_forest_override, _check_other_threshold, _check_mtry_range)


def validate_pipeline_config(config: PipelineConfig):
    """Run every check and report the problems according to config.strictness."""
    problems = [problem for check in CHECKS for problem in check(config)]
    if not problems or config.strictness == "off":
        return

    message = "Pipeline configuration issues:\n" + "\n".join(f"  - {p}" for p in problems)
    if config.strictness == "error":
        raise ConfigValidationError(message)
    warnings.warn(message, ConfigValidationWarning, stacklevel=2)
