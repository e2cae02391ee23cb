import os
import sys

from loguru import logger

LOG_LEVEL = os.getenv("MAILMAGIC_LOG_LEVEL", "INFO")

logger.remove()
logger.add(sys.stderr, level=LOG_LEVEL)

__all__ = ["logger"]
