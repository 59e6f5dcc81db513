"""
Logging setup for magcancel.

Library modules log through ``logging.getLogger(__name__)`` and never touch
the root logger on import. Applications call ``configure_logging`` once.

Usage:
    from magcancel.log import configure_logging

    configure_logging("DEBUG")
"""

from __future__ import annotations

import logging
import sys

PACKAGE_LOGGER = "magcancel"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def configure_logging(
    level: str = "INFO",
    show_timestamps: bool = True,
) -> logging.Logger:
    """
    Attach a single stdout handler to the package logger.

    Args:
        level: Minimum log level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        show_timestamps: Include timestamps in output (default: True)

    Returns:
        The configured package logger.
    """
    fmt = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
    if not show_timestamps:
        fmt = "[%(levelname)s] %(name)s: %(message)s"
    formatter = logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(logger.handlers):
        if not isinstance(existing, logging.NullHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
