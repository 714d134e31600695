"""
Log formatters for structured and colored output.
"""

import json
import logging
from datetime import datetime
from typing import Dict, Any, Optional

_STANDARD_FIELDS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter producing one object per line.

    Values passed through ``extra=`` (package id, source name, ...) are
    nested under ``"extra"``.
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra = {
                key: value for key, value in record.__dict__.items()
                if key not in _STANDARD_FIELDS and not key.startswith('_')
            }
            if extra:
                log_entry["extra"] = extra

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that colors each line by level with ANSI codes.
    """

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        super().__init__(fmt, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        level_color = self.COLORS.get(record.levelname)
        if not level_color:
            return formatted

        bold_level = f"{self.BOLD}{record.levelname}{self.RESET}{level_color}"
        formatted = formatted.replace(record.levelname, bold_level, 1)
        return f"{level_color}{formatted}{self.RESET}"
