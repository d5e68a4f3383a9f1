"""Utility functions for ipfs-sync."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure loguru for the CLI.

    Args:
        log_level: Minimum level written to stderr and the log file
        log_file: Optional path relative to the user's home directory
    """
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=log_level, format=LOG_FORMAT)

    if log_file:
        log_path = Path.home() / log_file
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path),
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )
