"""
Log handlers for the NuGet explorer.
"""

import logging
import logging.handlers
import sys
from collections import Counter
from pathlib import Path
from typing import Optional, TextIO, Dict, Any


class RotatingFileHandler(logging.handlers.RotatingFileHandler):
    """
    Rotating file handler that creates its directory and counts what it writes.
    """

    def __init__(
        self,
        filename: str,
        max_bytes: int = 0,
        backup_count: int = 0,
        encoding: Optional[str] = 'utf-8'
    ):
        """
        Initialize rotating file handler.

        Args:
            filename: Log file path
            max_bytes: Maximum file size before rotation
            backup_count: Number of rotated files to keep
            encoding: File encoding
        """
        Path(filename).parent.mkdir(parents=True, exist_ok=True)
        super().__init__(filename, maxBytes=max_bytes, backupCount=backup_count, encoding=encoding)

        self.records_written = 0
        self.rotations_performed = 0

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.records_written += 1

    def doRollover(self) -> None:
        super().doRollover()
        self.rotations_performed += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get handler statistics."""
        file_path = Path(self.baseFilename)
        return {
            'records_written': self.records_written,
            'rotations_performed': self.rotations_performed,
            'current_file': self.baseFilename,
            'current_file_size': file_path.stat().st_size if file_path.exists() else 0
        }


class ConsoleHandler(logging.StreamHandler):
    """
    Console handler writing to stderr by default.

    Standard output carries the JSON results of the CLI, so diagnostics
    stay off it.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        """
        Initialize console handler.

        Args:
            stream: Output stream (defaults to sys.stderr)
        """
        super().__init__(stream if stream is not None else sys.stderr)
        self.level_counts: Counter = Counter()

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.level_counts[record.levelname] += 1

    @property
    def is_tty(self) -> bool:
        isatty = getattr(self.stream, 'isatty', None)
        return bool(isatty and isatty())

    def get_stats(self) -> Dict[str, Any]:
        """Get handler statistics."""
        return {
            'records_written': sum(self.level_counts.values()),
            'by_level': dict(self.level_counts),
            'stream_name': getattr(self.stream, 'name', 'unknown')
        }
