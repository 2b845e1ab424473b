"""
CLI implementation for the clean command.

Reads the raw hotel-bookings file, applies the cleaning sequence and writes
cleaned.csv to the output directory.
"""

from pathlib import Path
from typing import Any

from hbc_ml.cli.common import resolve_config, save_stage_config, stage_logger
from hbc_ml.data.cleaning import clean_bookings
from hbc_ml.data.io import read_bookings_csv
from hbc_ml.utils.logging import log_section
from hbc_ml.utils.paths import CLEANED_FILE, ensure_dir


def run_clean(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
) -> Path:
    """
    Run the cleaning stage.

    Args:
        config_file: Path to YAML config file (optional)
        cli_args: Dictionary of CLI arguments (optional)
        overrides: List of config overrides (optional)
        verbose: Verbosity level (0=INFO, 1=DEBUG)

    Returns:
        Path of the cleaned CSV
    """
    cli_args = cli_args or {}
    logger = stage_logger(verbose, cli_args.get("log_file"))
    log_section(logger, "HBC-ML Cleaning")

    config = resolve_config(config_file, cli_args, overrides)
    if config.infile is None:
        raise ValueError("infile must be provided (--infile or infile: in the config)")

    outdir = ensure_dir(config.outdir)
    save_stage_config(config, "clean")

    raw = read_bookings_csv(config.infile)
    cleaning = config.cleaning
    cleaned = clean_bookings(
        raw,
        drop_cols=cleaning.drop_columns,
        drop_duplicates=cleaning.drop_duplicates,
        drop_zero_guests=cleaning.drop_zero_guests,
        min_adr=cleaning.min_adr,
        max_adr=cleaning.max_adr,
    )

    out_path = outdir / CLEANED_FILE
    cleaned.to_csv(out_path, index=False)
    logger.info(f"Saved cleaned data ({len(cleaned):,} rows): {out_path}")
    return out_path
