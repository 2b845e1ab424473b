"""
Shared plumbing for CLI stages: logger setup and config resolution.
"""

import logging
from pathlib import Path
from typing import Any

from hbc_ml.config.loader import load_pipeline_config, save_config
from hbc_ml.config.schema import PipelineConfig
from hbc_ml.config.validation import validate_pipeline_config
from hbc_ml.utils.logging import level_from_verbosity, setup_logger

# CLI options that are not configuration keys
NON_CONFIG_ARGS = ("log_file",)


def stage_logger(verbose: int = 0, log_file: str | Path | None = None) -> logging.Logger:
    """Attach handlers to the package logger so every library module reports."""
    return setup_logger("hbc_ml", level=level_from_verbosity(verbose), log_file=log_file)


def resolve_config(
    config_file: str | Path | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
) -> PipelineConfig:
    """
    Merge defaults, YAML file, explicit CLI options and --override values.

    CLI options that were given (not None) become overrides; tuple values
    (repeatable options) become comma-separated lists.
    """
    all_overrides: list[str] = []
    if cli_args:
        for key, value in cli_args.items():
            if value is None or key in NON_CONFIG_ARGS:
                continue
            if isinstance(value, tuple | list):
                if not value:
                    continue
                value = ",".join(str(v) for v in value)
            all_overrides.append(f"{key}={value}")
    all_overrides.extend(overrides or [])

    config = load_pipeline_config(config_file=config_file, overrides=all_overrides)
    validate_pipeline_config(config)
    return config


def save_stage_config(config: PipelineConfig, stage: str) -> Path:
    """Write the resolved configuration next to the stage outputs."""
    path = Path(config.outdir) / "configs" / f"{stage}_config.yaml"
    save_config(config, path)
    return path
