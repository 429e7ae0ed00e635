### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Custom Logger Setup -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

# Standard Imports
import logging
import os
from datetime import datetime
from pathlib import Path


class CustomFormatter(logging.Formatter):
    """Formatter with 12-hour timestamps: HH:MM:SS AM/PM - name - LEVEL: message"""

    def format(self, record):
        timestamp = datetime.fromtimestamp(record.created).strftime("%I:%M:%S %p")

        formatted_msg = f"{timestamp} - {record.name} - {record.levelname}: {record.getMessage()}"

        if record.exc_info:
            formatted_msg += "\n" + self.formatException(record.exc_info)

        return formatted_msg


def _default_level() -> int:
    """Level from VETCORE_LOG_LEVEL, INFO when unset or unknown"""
    level = logging.getLevelName(os.environ.get("VETCORE_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(
    name: str,
    level: int | None = None,
    log_to_file: bool = True,
    log_to_console: bool = True,
) -> logging.Logger:
    """
    Set up a custom logger for VetPractice Core

    Args:
        name: Logger name (typically __name__)
        level: Logging level (default: VETCORE_LOG_LEVEL or INFO)
        log_to_file: Whether to log to a dated file under logs/ (default: True)
        log_to_console: Whether to log to console (default: True)

    Returns:
        Configured logger instance

    Example:
        logger = setup_logger("vetcore.tenancy")
        logger.info("Opened connection for tenant 'acme'")
    """
    if level is None:
        level = _default_level()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers if logger already exists
    if logger.handlers:
        return logger

    formatter = CustomFormatter()

    if log_to_file and os.environ.get("VETCORE_LOG_TO_FILE", "true").lower() != "false":
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        log_filename = f"vetcore_{datetime.now().strftime('%Y-%m-%d')}.log"
        file_handler = logging.FileHandler(logs_dir / log_filename, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get an existing logger or create a new one with default settings"""
    return setup_logger(name)
