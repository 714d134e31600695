"""
Error types for the NuGet explorer.
"""

from .exceptions import (
    NuGetExplorerError, SourceQueryError, VersionParseError,
    PackageAnalysisError, AnalysisCancelledError, VulnerabilityFeedError,
    ConfigurationError, ProjectFileError
)
from .cancellation import CancellationToken

__all__ = [
    "NuGetExplorerError",
    "SourceQueryError",
    "VersionParseError",
    "PackageAnalysisError",
    "AnalysisCancelledError",
    "VulnerabilityFeedError",
    "ConfigurationError",
    "ProjectFileError",
    "CancellationToken"
]
