"""
Utility module for VetPractice Core
"""

from .custom_logger import get_logger, setup_logger

__all__ = [
    "get_logger",
    "setup_logger",
]
