"""Verbosity-graded logging for the scheduling engines.

The engines never print; they log through one shared logger, and the CLI's
``-v`` option decides how much of it reaches stderr:

    0  errors and warnings (e.g. a cascade that did not settle)
    1  CHANGES: dates that move, items that cannot resolve, sync outcomes
    2  CHECKS: every propagation skip and applicability clause
    3  DEBUG: wave-by-wave resolution and cascade iterations
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

CHANGES_LEVEL = 25  # Between INFO and WARNING
CHECKS_LEVEL = 15  # Between DEBUG and INFO

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

_LEVELS_BY_VERBOSITY = {
    0: logging.WARNING,
    1: CHANGES_LEVEL,
    2: CHECKS_LEVEL,
    3: logging.DEBUG,
}


class AnchorschedLogger(logging.Logger):
    """Logger with one method per engine verbosity tier."""

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a date change, stuck item or sync outcome (verbosity 1)."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a per-instance or per-clause decision (verbosity 2)."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> AnchorschedLogger:
    """Get the shared "anchorsched" logger, creating it on first use."""
    logging.setLoggerClass(AnchorschedLogger)
    logger = logging.getLogger("anchorsched")
    assert isinstance(logger, AnchorschedLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Route engine logging to ``stream`` (stderr by default) at a verbosity.

    Safe to call repeatedly; each call replaces the previous handler.
    Verbosities above 3 are treated as 3.
    """
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(_LEVELS_BY_VERBOSITY[min(max(verbosity, 0), 3)])

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Drop handlers and return to the quiet default."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
