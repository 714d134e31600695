"""
Logger configuration and setup for the NuGet explorer.
"""

import logging
from typing import Optional, Dict, Any

from ..config import LoggingConfig, get_config
from .log_formatter import StructuredFormatter, ColoredFormatter
from .log_handler import RotatingFileHandler, ConsoleHandler

THIRD_PARTY_LOGGERS = ('urllib3', 'requests', 'charset_normalizer')

VERBOSITY_LEVELS = {
    0: "WARNING",
    1: "INFO",
}


def level_for_verbosity(verbose: int, quiet: bool = False) -> str:
    """Map a ``-v`` count to a log level name."""
    if quiet:
        return "ERROR"
    return VERBOSITY_LEVELS.get(verbose, "DEBUG")


class LoggingManager:
    """
    Configures the root logger for the NuGet explorer.

    Console output goes to stderr, optionally colored or as JSON; a rotating
    log file is added when ``logging.file`` is set.
    """

    def __init__(self):
        self._handlers: Dict[str, logging.Handler] = {}
        self._configured = False
        self.config: Optional[LoggingConfig] = None

    def setup_logging(
        self,
        config: Optional[LoggingConfig] = None,
        level: Optional[str] = None,
        force: bool = False
    ) -> None:
        """
        Set up logging.

        Args:
            config: Logging configuration (uses the app config if not provided)
            level: Level overriding the configured one
            force: Reconfigure even if logging was already set up
        """
        if self._configured and not force:
            return
        if self._configured:
            self.close_handlers()

        config = config or get_config().logging
        self.config = config
        log_level = self._get_log_level(level or config.level)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        root_logger.handlers.clear()

        console_handler = self._create_console_handler(config)
        console_handler.setLevel(log_level)
        root_logger.addHandler(console_handler)
        self._handlers['console'] = console_handler

        if config.file:
            file_handler = self._create_file_handler(config)
            file_handler.setLevel(log_level)
            root_logger.addHandler(file_handler)
            self._handlers['file'] = file_handler

        for logger_name in THIRD_PARTY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

        logging.getLogger(__name__).debug(f"Logging initialized at level {logging.getLevelName(log_level)}")
        self._configured = True

    def _create_console_handler(self, config: LoggingConfig) -> ConsoleHandler:
        handler = ConsoleHandler()

        if config.structured:
            handler.setFormatter(StructuredFormatter())
        elif handler.is_tty:
            handler.setFormatter(ColoredFormatter(config.format))
        else:
            handler.setFormatter(logging.Formatter(config.format))

        return handler

    def _create_file_handler(self, config: LoggingConfig) -> RotatingFileHandler:
        handler = RotatingFileHandler(
            filename=config.file,
            max_bytes=config.max_file_size * 1024 * 1024,
            backup_count=config.backup_count
        )

        if config.structured:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(logging.Formatter(config.format))

        return handler

    @staticmethod
    def _get_log_level(level_str: str) -> int:
        level = logging.getLevelName(str(level_str).upper())
        return level if isinstance(level, int) else logging.INFO

    def set_level(self, level: str) -> None:
        log_level = self._get_log_level(level)
        logging.getLogger().setLevel(log_level)
        for handler in self._handlers.values():
            handler.setLevel(log_level)

    def get_log_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "configured": self._configured,
            "handlers_active": len(self._handlers),
            "current_level": logging.getLevelName(logging.getLogger().level)
        }
        for name, handler in self._handlers.items():
            get_stats = getattr(handler, 'get_stats', None)
            if get_stats:
                stats[name] = get_stats()
        return stats

    def close_handlers(self) -> None:
        """Detach and close the handlers added by this manager."""
        root_logger = logging.getLogger()
        for handler in self._handlers.values():
            root_logger.removeHandler(handler)
            handler.close()

        self._handlers.clear()
        self._configured = False


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(config: Optional[LoggingConfig] = None, level: Optional[str] = None, force: bool = False) -> None:
    """Set up the global logging system."""
    _logging_manager.setup_logging(config, level, force)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_log_level(level: str) -> None:
    _logging_manager.set_level(level)


def get_logging_stats() -> Dict[str, Any]:
    return _logging_manager.get_log_stats()


def close_logging() -> None:
    _logging_manager.close_handlers()
