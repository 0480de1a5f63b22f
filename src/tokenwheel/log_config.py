# tokenwheel/log_config.py
"""Logging configuration for the tokenwheel library using Loguru.

All tokenwheel modules import ``logger`` from here so that applications can
reconfigure output in one place with :func:`configure_logging`.
"""

import sys

from loguru import logger

__all__ = ["LOG_FORMAT", "configure_logging", "logger"]

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
"""Default line format: request logs are short-lived, so time-of-day is enough."""


def configure_logging(
    level: str = "INFO", sink=sys.stderr, *, fmt: str = LOG_FORMAT
) -> int:
    """Replaces all Loguru handlers with a single tokenwheel handler.

    Tracebacks never include local variables, since executor and refresher
    frames hold bearer and refresh tokens.

    Args:
        level: The minimum logging level (e.g., "DEBUG", "INFO", "WARNING").
        sink: The output sink (e.g., sys.stderr, "file.log").
        fmt: Loguru format string for each record.

    Returns:
        The id of the new handler, for a later ``logger.remove(handler_id)``.
    """
    level = level.upper()
    logger.remove()
    handler_id = logger.add(
        sink,
        level=level,
        format=fmt,
        colorize=sink is sys.stderr,
        backtrace=True,
        diagnose=False,
    )
    logger.debug(f"tokenwheel logging at {level}")
    return handler_id
