"""
Logging setup.

Every module logs through ``logging.getLogger(__name__)``; this module only
installs the root handler once at startup.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger. Safe to call more than once."""
    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # SQL echo is controlled by DEBUG, not by the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
