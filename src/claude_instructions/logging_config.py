"""Logging setup shared by the installer and build entry points.

Modules log through ``logging.getLogger(__name__)``; user-facing output goes
through a rich ``Console`` instead. Level precedence:
``--verbose`` > ``CLAUDE_INSTRUCTIONS_LOG_LEVEL`` > WARNING.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "CLAUDE_INSTRUCTIONS_LOG_LEVEL"
PACKAGE_LOGGER = "claude_instructions"


def resolve_level(verbose: bool = False) -> int:
    """Pick the effective log level."""
    if verbose:
        return logging.DEBUG
    name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(verbose: bool = False) -> None:
    """Attach a single stderr RichHandler to the package logger."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(resolve_level(verbose))

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=verbose,
        markup=False,
    )
    logger.addHandler(handler)
    logger.propagate = False
