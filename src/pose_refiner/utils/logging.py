"""Logging sink setup."""

from __future__ import annotations

import sys

from loguru import logger

from pose_refiner.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> int:
    """Replace loguru's default sink according to the logging section.

    `output` is "stdout", "stderr" or a file path. Returns the sink id.
    """
    logger.remove()
    if config.output == "stdout":
        sink = sys.stdout
    elif config.output == "stderr":
        sink = sys.stderr
    else:
        sink = config.output
    return logger.add(sink, level=config.level)
