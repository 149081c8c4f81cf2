"""
Logging setup for the restock kernel.

Every module logs through `logging.getLogger(__name__)`, so all records land
under the `restock_kernel` namespace. Hosts that already configure logging
need do nothing; standalone hosts call `configure_logging()` once.
"""

import logging
import sys
from typing import Optional, TextIO

ROOT_LOGGER = "restock_kernel"

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Install a single stream handler on the restock_kernel logger."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)

    # Hosts route their own records; ours stay on this handler.
    logger.propagate = False
    return logger
