"""
Ordered classifications shared by the analyzers.
"""

from enum import IntEnum
from typing import Optional


class VersionChangeType(IntEnum):
    """Magnitude of an available update, by semantic version component."""
    NONE = 0
    PATCH = 1    # 1.0.0 -> 1.0.1
    MINOR = 2    # 1.0.0 -> 1.1.0
    MAJOR = 3    # 1.0.0 -> 2.0.0

    @property
    def label(self) -> str:
        return self.name.capitalize()


class SeverityLevel(IntEnum):
    """
    Severity scale for vulnerabilities and license changes.

    ALL is only used as a filter threshold; findings are never ALL.
    """
    ALL = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: Optional[str], default: "SeverityLevel" = None) -> "SeverityLevel":
        """
        Parse a severity name case-insensitively.

        Unknown or empty values fall back to ``default`` (ALL unless given).
        """
        fallback = cls.ALL if default is None else default
        if not value:
            return fallback
        try:
            return cls[value.strip().upper()]
        except KeyError:
            return fallback
