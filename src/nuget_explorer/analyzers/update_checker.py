"""
Update detection and version change classification.
"""

import logging
from typing import Callable, List, Optional, Tuple

from ..error_handling.cancellation import CancellationToken
from ..error_handling.exceptions import AnalysisCancelledError
from ..models import PackageReference, PackageAnalysisOptions, UpdateInfo, VersionChangeType
from ..sources import PackageSourceManager
from ..versioning import SemanticVersion, parse_version

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"

# Evaluated top to bottom, first match wins. A major bump that also has a
# larger minor or patch component is still MAJOR.
VERSION_CHANGE_RULES: List[Tuple[Callable[[SemanticVersion, SemanticVersion], bool], VersionChangeType]] = [
    (lambda current, latest: latest.major > current.major, VersionChangeType.MAJOR),
    (lambda current, latest: latest.minor > current.minor, VersionChangeType.MINOR),
    (lambda current, latest: latest.patch > current.patch, VersionChangeType.PATCH),
]


def determine_version_change_type(current: SemanticVersion, latest: SemanticVersion) -> VersionChangeType:
    """Classify the change from ``current`` to ``latest``."""
    for predicate, change_type in VERSION_CHANGE_RULES:
        if predicate(current, latest):
            return change_type
    return VersionChangeType.NONE


def build_release_notes_url(project_url: Optional[str], version: str) -> Optional[str]:
    """
    Derive a release notes link from a project URL.

    GitHub projects get a release tag URL; anything else is returned as is.
    """
    if not project_url:
        return None

    if GITHUB_HOST in project_url.lower():
        return f"{project_url.rstrip('/')}/releases/tag/v{version}"

    return project_url


class UpdateChecker:
    """
    Checks whether a newer version of a package is available.
    """

    def __init__(self, source_manager: PackageSourceManager):
        self.source_manager = source_manager

    def check_for_update(
        self,
        package: PackageReference,
        options: PackageAnalysisOptions,
        cancellation: Optional[CancellationToken] = None
    ) -> Optional[UpdateInfo]:
        """
        Look for a version newer than the package's current one.

        Args:
            package: Package to check
            options: Analysis options (prerelease inclusion, target framework)
            cancellation: Batch cancellation token

        Returns:
            Update information, or None when the package is current, no
            versions are known, or the check failed

        Raises:
            AnalysisCancelledError: If the batch is cancelled
        """
        try:
            return self._check(package, options, cancellation)
        except AnalysisCancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to check for updates for package {package.id}: {e}")
            return None

    def _check(
        self,
        package: PackageReference,
        options: PackageAnalysisOptions,
        cancellation: Optional[CancellationToken]
    ) -> Optional[UpdateInfo]:
        current_version = parse_version(package.version, package.id)

        all_versions = self.source_manager.get_all_versions(package.id, options.include_prerelease, cancellation)
        if not all_versions:
            logger.warning(f"No versions found for package {package.id}")
            return None

        parsed_versions = sorted((SemanticVersion.parse(v) for v in all_versions), reverse=True)

        latest_stable = next((v for v in parsed_versions if not v.is_prerelease), None)
        latest_prerelease = (
            next((v for v in parsed_versions if v.is_prerelease), None)
            if options.include_prerelease else None
        )

        latest_version = latest_stable or parsed_versions[0]

        if current_version >= latest_version:
            return None

        project_url = self.source_manager.get_project_url(package.id, str(latest_version), cancellation)

        return UpdateInfo(
            latest_stable_version=str(latest_version),
            latest_prerelease_version=str(latest_prerelease) if latest_prerelease else None,
            version_change_type=determine_version_change_type(current_version, latest_version),
            is_compatible=self.check_framework_compatibility(package.id, str(latest_version), options.target_framework),
            release_notes_url=build_release_notes_url(project_url, str(latest_version))
        )

    def check_framework_compatibility(self, package_id: str, version: str, target_framework: Optional[str]) -> bool:
        """
        Whether ``version`` supports ``target_framework``.

        Always True: no supported-framework data is read from the feeds yet.
        """
        # TODO: read the package's dependency groups from its registration leaf and match target_framework
        return True
