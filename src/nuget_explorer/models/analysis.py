"""
Analysis result data models.

All records are immutable and serialize to camelCase dictionaries, which is
the field naming used by the tool output.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple
import json

from .enums import SeverityLevel, VersionChangeType


@dataclass(frozen=True)
class PackageAnalysisOptions:
    """Options controlling one analysis batch."""
    target_framework: Optional[str] = None
    include_prerelease: bool = False
    check_updates: bool = True
    check_vulnerabilities: bool = True
    check_licenses: bool = True
    minimum_severity: SeverityLevel = SeverityLevel.ALL


@dataclass(frozen=True)
class UpdateInfo:
    """A strictly newer version that is available for a package."""
    latest_stable_version: str
    version_change_type: VersionChangeType
    is_compatible: bool = True
    latest_prerelease_version: Optional[str] = None
    release_notes_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latestStableVersion": self.latest_stable_version,
            "latestPrereleaseVersion": self.latest_prerelease_version,
            "versionChangeType": self.version_change_type.label,
            "isCompatible": self.is_compatible,
            "releaseNotesUrl": self.release_notes_url
        }


@dataclass(frozen=True)
class LicenseChange:
    """A license difference between the current and the latest version."""
    current_license: str
    latest_license: str
    severity: SeverityLevel
    description: str
    has_changed: bool = True
    current_license_url: Optional[str] = None
    latest_license_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentLicense": self.current_license,
            "latestLicense": self.latest_license,
            "hasChanged": self.has_changed,
            "severity": self.severity.label,
            "description": self.description,
            "currentLicenseUrl": self.current_license_url,
            "latestLicenseUrl": self.latest_license_url
        }


@dataclass(frozen=True)
class Vulnerability:
    """A known security advisory affecting a package version."""
    id: str
    severity: SeverityLevel
    summary: Optional[str] = None
    advisory_url: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    affected_range: Optional[str] = None
    published: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.label,
            "summary": self.summary,
            "advisoryUrl": self.advisory_url,
            "aliases": list(self.aliases),
            "affectedRange": self.affected_range,
            "published": self.published
        }


@dataclass(frozen=True)
class PackageAnalysis:
    """Complete analysis result for a single package."""
    id: str
    current_version: str
    updates: Optional[UpdateInfo] = None
    vulnerabilities: Tuple[Vulnerability, ...] = ()
    license: Optional[LicenseChange] = None

    @property
    def has_update(self) -> bool:
        return self.updates is not None

    @property
    def is_vulnerable(self) -> bool:
        return len(self.vulnerabilities) > 0

    @property
    def has_license_change(self) -> bool:
        return self.license is not None and self.license.has_changed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "currentVersion": self.current_version,
            "updates": self.updates.to_dict() if self.updates else None,
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "license": self.license.to_dict() if self.license else None
        }


@dataclass(frozen=True)
class SeverityCounts:
    """Vulnerability counts by severity."""
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low

    @classmethod
    def from_vulnerabilities(cls, vulnerabilities: List[Vulnerability]) -> 'SeverityCounts':
        counts = {level: 0 for level in SeverityLevel}
        for vulnerability in vulnerabilities:
            counts[vulnerability.severity] += 1
        return cls(
            critical=counts[SeverityLevel.CRITICAL],
            high=counts[SeverityLevel.HIGH],
            medium=counts[SeverityLevel.MEDIUM],
            low=counts[SeverityLevel.LOW]
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low
        }


@dataclass(frozen=True)
class AnalysisSummary:
    """Aggregate statistics for a batch."""
    total_packages: int
    packages_with_updates: int
    vulnerable_packages: int
    packages_with_license_changes: int
    up_to_date: int
    severity_counts: SeverityCounts = field(default_factory=SeverityCounts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPackages": self.total_packages,
            "packagesWithUpdates": self.packages_with_updates,
            "vulnerablePackages": self.vulnerable_packages,
            "packagesWithLicenseChanges": self.packages_with_license_changes,
            "upToDate": self.up_to_date,
            "severityCounts": self.severity_counts.to_dict()
        }


@dataclass(frozen=True)
class PackageAnalysisResult:
    """Complete analysis result for a batch of packages."""
    summary: AnalysisSummary
    packages: Tuple[PackageAnalysis, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "packages": [p.to_dict() for p in self.packages]
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
