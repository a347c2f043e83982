"""
Logging configuration
"""

import logging
import sys
from core.config import settings


def setup_logging(verbose: bool = False):
    """Configure application logging"""

    # --verbose always wins over the configured level
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    if verbose:
        log_level = logging.DEBUG

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True
    )

    # Set HTTP client logging to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {logging.getLevelName(log_level)} level")
