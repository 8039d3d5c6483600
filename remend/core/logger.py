"""Loguru configuration for Remend.

Decision logs pass their context as keyword arguments
(``logger.info("Plan saved", plan_id=3)``); both sinks print it through the
trailing ``{extra}`` field.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> <dim>{extra}</dim>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message} | {extra}"


def _file_handler(log_file: str, level: str, rotation: str, retention: str) -> dict:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return {
        "sink": path,
        "format": FILE_FORMAT,
        "level": level,
        "rotation": rotation,
        "retention": retention,
        "compression": "zip",
        "backtrace": True,
        "diagnose": False,
    }


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Replace loguru's handlers with a stderr sink and an optional rotating file.

    Args:
        level: Minimum level for every sink
        log_file: Rotating log file path; None keeps console output only
        rotation: When to rotate the file (size or interval)
        retention: How long rotated files are kept
    """
    level = level.upper()
    handlers: list[dict] = [{"sink": sys.stderr, "format": CONSOLE_FORMAT, "level": level, "colorize": True}]
    if log_file:
        handlers.append(_file_handler(log_file, level, rotation, retention))

    logger.configure(handlers=handlers)
    logger.info("Logger initialized", level=level, log_file=log_file)


def setup_logger_from_settings() -> None:
    from remend.config.settings import settings

    setup_logger(level=settings.log_level, log_file=settings.log_file)
