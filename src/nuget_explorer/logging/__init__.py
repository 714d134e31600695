"""
Logging system for the NuGet explorer.
"""

from .logger_config import (
    setup_logging, get_logger, set_log_level, get_logging_stats, close_logging,
    level_for_verbosity, LoggingManager
)
from .log_formatter import StructuredFormatter, ColoredFormatter
from .log_handler import RotatingFileHandler, ConsoleHandler

__all__ = [
    "setup_logging",
    "get_logger",
    "set_log_level",
    "get_logging_stats",
    "close_logging",
    "level_for_verbosity",
    "LoggingManager",
    "StructuredFormatter",
    "ColoredFormatter",
    "RotatingFileHandler",
    "ConsoleHandler"
]
