"""
Per-package evaluators: updates and license changes.
"""

from .update_checker import UpdateChecker, determine_version_change_type, build_release_notes_url
from .license_analyzer import LicenseAnalyzer, normalize_license, determine_severity

__all__ = [
    "UpdateChecker",
    "determine_version_change_type",
    "build_release_notes_url",
    "LicenseAnalyzer",
    "normalize_license",
    "determine_severity"
]
