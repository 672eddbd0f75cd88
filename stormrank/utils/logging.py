# stormrank/utils/logging.py

import sys
from typing import Optional

from loguru import logger

from ..config import settings


def setup_logging(level: Optional[str] = None):
    """
    Configure the loguru logger for a StormRank run.

    Logs go to stderr so that the ranking tables printed on stdout stay clean.
    The level defaults to settings.LOG_LEVEL.
    """
    level = (level or settings.LOG_LEVEL).upper()
    logger.remove()

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        colorize=True,
        format=log_format,
        level=level,
        backtrace=False,
        diagnose=False,
    )

    logger.debug(f"Logging initialized (level={level})")
    return logger
