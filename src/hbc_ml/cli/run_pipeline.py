"""
CLI implementation for the run-pipeline command.

Runs clean -> prepare -> tune -> evaluate -> explain with one resolved
configuration. The explain stage is skipped when explain.model was not tuned.
"""

import logging
import time
from pathlib import Path
from typing import Any

from hbc_ml.cli.clean import run_clean
from hbc_ml.cli.common import resolve_config
from hbc_ml.cli.evaluate import run_evaluate
from hbc_ml.cli.explain import run_explain
from hbc_ml.cli.prepare import run_prepare
from hbc_ml.cli.tune import run_tune
from hbc_ml.data.schema import TREE_MODELS

logger = logging.getLogger(__name__)


def run_pipeline(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
) -> Path:
    """
    Run every stage end to end.

    Returns:
        Output directory
    """
    stage_kwargs = {
        "config_file": config_file,
        "cli_args": cli_args,
        "overrides": overrides,
        "verbose": verbose,
    }
    t0 = time.perf_counter()

    run_clean(**stage_kwargs)
    run_prepare(**stage_kwargs)
    run_tune(**stage_kwargs)
    run_evaluate(**stage_kwargs)

    config = resolve_config(config_file, cli_args, overrides)
    if config.explain.model in config.models and config.explain.model in TREE_MODELS:
        run_explain(**stage_kwargs)
    else:
        logger.warning(
            f"Skipping explain: explain.model='{config.explain.model}' is not a tuned tree model"
        )

    logger.info(f"Pipeline finished in {time.perf_counter() - t0:.1f}s: {config.outdir}")
    return Path(config.outdir)
