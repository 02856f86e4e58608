import sys
from typing import Optional

from loguru import logger

FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(level: Optional[str] = None, debug: bool = False) -> None:
    """Route loguru output to stderr at the configured level."""
    logger.remove()
    effective = (level or ("DEBUG" if debug else "INFO")).upper()
    logger.add(
        sys.stderr,
        format=FORMAT,
        level=effective,
        backtrace=debug,
        diagnose=debug,
    )
    logger.debug(f"Logging initialized with level: {effective}")
