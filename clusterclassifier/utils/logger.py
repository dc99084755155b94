"""
Logging configuration for the cluster classifier
Uses loguru for formatting, rotation and bound context
"""

import sys
from loguru import logger
from pathlib import Path
from typing import Optional

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan> | <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} | {message}"

_configured = False


def configure(level: str = "INFO", log_file: Optional[str] = None):
    """
    (Re)configure the global loguru sinks

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging to file
    """
    global _configured

    # Remove default handler
    logger.remove()
    logger.configure(extra={"name": "classifier"})

    # Console handler with colors
    logger.add(
        sys.stderr,
        format=_CONSOLE_FORMAT,
        level=level,
        colorize=True
    )

    # File handler (if specified)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            format=_FILE_FORMAT,
            level=level,
            rotation="10 MB",  # Rotate when file reaches 10MB
            retention="7 days",  # Keep logs for 7 days
            compression="zip"  # Compress rotated logs
        )

    _configured = True


def get_logger(name: str = "Classifier", level: str = "INFO", log_file: Optional[str] = None):
    """
    Get a configured logger instance

    Sinks are installed on first use only; later calls just bind a new name,
    so importing a module never resets handlers set up by the application.

    Args:
        name: Logger name (will appear in log messages)
        level: Log level used if sinks are not configured yet
        log_file: Optional file path used if sinks are not configured yet

    Returns:
        Configured logger instance
    """
    if not _configured:
        configure(level=level, log_file=log_file)

    # Bind context (logger name)
    return logger.bind(name=name)
