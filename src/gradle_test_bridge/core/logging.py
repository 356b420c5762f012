"""Logging helpers for gradle-test-bridge.

All modules obtain their logger through :func:`get_logger` so that every
record ends up under the ``gradle_test_bridge`` namespace.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "gradle_test_bridge"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger below the package root logger.

    Args:
        name: Module name, usually ``__name__``.

    Returns:
        Logger instance.
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> logging.Logger:
    """Configure the package root logger.

    Precedence is debug > verbose > quiet; the default level is WARNING.
    Calling this repeatedly replaces the previously installed handler.

    Args:
        debug: Enable debug logging.
        verbose: Enable info-level logging.
        quiet: Only log errors.

    Returns:
        The configured root logger of the package.
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_gradle_test_bridge", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._gradle_test_bridge = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False

    return logger
