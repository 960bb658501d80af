"""
Logging configuration
"""
import sys
from pathlib import Path

from loguru import logger

from order_sync.config import Settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> | {extra}"
)


def setup_logger(settings: Settings):
    """Configure logger with appropriate settings"""
    logger.remove()  # Remove default handler

    # Console logging
    if settings.log_json:
        logger.add(sys.stdout, serialize=True, level=settings.log_level)
    else:
        logger.add(
            sys.stdout,
            colorize=True,
            format=CONSOLE_FORMAT,
            level=settings.log_level
        )

    log_dir = Path(settings.log_dir)

    # File logging
    logger.add(
        str(log_dir / "order_sync_{time:YYYY-MM-DD}.log"),
        rotation="00:00",
        retention="30 days",
        compression="zip",
        level="INFO"
    )

    # Error file
    logger.add(
        str(log_dir / "errors_{time:YYYY-MM-DD}.log"),
        rotation="00:00",
        retention="90 days",
        level="ERROR"
    )

    return logger


# Shared logger; sinks are installed by setup_logger() at start-up
log = logger
