"""
Data models for the NuGet explorer.
"""

from .enums import VersionChangeType, SeverityLevel
from .package import PackageReference, PackageSource, PackageMetadata
from .analysis import (
    PackageAnalysisOptions, UpdateInfo, LicenseChange, Vulnerability,
    PackageAnalysis, SeverityCounts, AnalysisSummary, PackageAnalysisResult
)

__all__ = [
    "VersionChangeType",
    "SeverityLevel",
    "PackageReference",
    "PackageSource",
    "PackageMetadata",
    "PackageAnalysisOptions",
    "UpdateInfo",
    "LicenseChange",
    "Vulnerability",
    "PackageAnalysis",
    "SeverityCounts",
    "AnalysisSummary",
    "PackageAnalysisResult"
]
