"""
Logger configuration for CLI stages.

Only CLI entry points attach handlers, and only to the package logger
("hbc_ml"). Library modules call logging.getLogger(__name__) and their records
reach those handlers through propagation.
"""

import logging
import sys
from pathlib import Path

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter):
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logger(
    name: str = "hbc_ml",
    level: int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Attach a stdout handler (and optionally an appending file handler).

    Calling it again replaces the previous handlers, so repeated stages in one
    process never duplicate output.

    Args:
        name: Logger to configure
        level: Level for the logger and its handlers
        log_file: Also append records here (parent directories are created)
        format_string: Record format (default DEFAULT_FORMAT)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    for old in list(logger.handlers):
        old.close()
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DATE_FORMAT)
    logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level, formatter))

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_handler(logging.FileHandler(log_file, mode="a"), level, formatter))

    return logger


def level_from_verbosity(verbose: int) -> int:
    """-v count to level: 0 is INFO, anything more is DEBUG."""
    return logging.DEBUG if verbose > 0 else logging.INFO


def log_section(logger: logging.Logger, title: str, width: int = 80, char: str = "="):
    """Banner separating pipeline stages in the log."""
    rule = char * width
    for line in (rule, title, rule):
        logger.info(line)
