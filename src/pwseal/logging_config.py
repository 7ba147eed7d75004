"""Opt-in terminal logging for the pwseal logger hierarchy.

Only the ``pwseal`` logger is touched; the root logger and any handlers the
embedding application installed are left alone.
"""

import logging
import sys
from typing import Optional, TextIO


LOGGER_NAME = "pwseal"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> logging.Handler:
    """Attach a stream handler to the ``pwseal`` logger and return it.

    Calling again replaces the handler installed by the previous call instead
    of stacking duplicates.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        if getattr(existing, "_pwseal_console", False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    handler._pwseal_console = True
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler
