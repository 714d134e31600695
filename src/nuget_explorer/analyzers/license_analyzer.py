"""
License change detection between package versions.
"""

import logging
from typing import Callable, List, Optional, Tuple

from ..error_handling.cancellation import CancellationToken
from ..error_handling.exceptions import AnalysisCancelledError
from ..models import PackageReference, LicenseChange, SeverityLevel
from ..sources import PackageSourceManager

logger = logging.getLogger(__name__)

UNKNOWN_LICENSE = "Unknown"
CUSTOM_URL_LICENSE = "Custom License (see URL)"

PERMISSIVE_LICENSES = ("MIT", "Apache-2.0", "BSD-2-Clause", "BSD-3-Clause", "ISC", "0BSD")
COPYLEFT_LICENSES = ("GPL-2.0", "GPL-3.0", "AGPL-3.0", "LGPL-2.1", "LGPL-3.0")
PROPRIETARY_KEYWORDS = ("commercial", "proprietary", "closed-source", "closed source")

# Substring checked in a license URL, in priority order
URL_LICENSE_HINTS = (
    ("mit", "MIT"),
    ("apache", "Apache-2.0"),
    ("gpl", "GPL"),
)

LICENSE_ALIASES = {
    "mit license": "MIT",
    "apache license 2.0": "Apache-2.0",
}


def is_url(license_text: Optional[str]) -> bool:
    return bool(license_text) and license_text.lower().startswith(("http://", "https://"))


def _contains_any(license_text: Optional[str], names) -> bool:
    if not license_text:
        return False
    lowered = license_text.lower()
    return any(name.lower() in lowered for name in names)


def is_permissive(license_text: Optional[str]) -> bool:
    return _contains_any(license_text, PERMISSIVE_LICENSES)


def is_copyleft(license_text: Optional[str]) -> bool:
    return _contains_any(license_text, COPYLEFT_LICENSES)


def is_proprietary(license_text: Optional[str]) -> bool:
    return _contains_any(license_text, PROPRIETARY_KEYWORDS)


def normalize_license(license_text: Optional[str]) -> Optional[str]:
    """
    Reduce a license expression or URL to a comparable name.

    Args:
        license_text: License expression, license URL, or None

    Returns:
        Normalized license name, or None when there is no license
    """
    if not license_text or not license_text.strip():
        return None

    if is_url(license_text):
        lowered = license_text.lower()
        for hint, name in URL_LICENSE_HINTS:
            if hint in lowered:
                return name
        return CUSTOM_URL_LICENSE

    license_text = license_text.strip()
    return LICENSE_ALIASES.get(license_text.lower(), license_text)


# Evaluated top to bottom against normalized (current, latest); first match wins
SEVERITY_RULES: List[Tuple[Callable[[Optional[str], Optional[str]], bool], SeverityLevel]] = [
    (lambda current, latest: not current and bool(latest), SeverityLevel.LOW),
    (lambda current, latest: bool(current) and not latest, SeverityLevel.MEDIUM),
    (lambda current, latest: is_proprietary(latest) and not is_proprietary(current), SeverityLevel.CRITICAL),
    (lambda current, latest: is_copyleft(latest) and is_permissive(current), SeverityLevel.HIGH),
    (lambda current, latest: is_permissive(current) and not is_permissive(latest), SeverityLevel.HIGH),
]

DEFAULT_SEVERITY = SeverityLevel.MEDIUM


def determine_severity(current: Optional[str], latest: Optional[str]) -> SeverityLevel:
    """Classify a license transition between two normalized licenses."""
    for predicate, severity in SEVERITY_RULES:
        if predicate(current, latest):
            return severity
    return DEFAULT_SEVERITY


def build_description(current: str, latest: str, severity: SeverityLevel) -> str:
    if severity == SeverityLevel.CRITICAL:
        return f"Package changed from {current} to commercial/proprietary license"
    if severity == SeverityLevel.HIGH:
        return f"Package license changed from {current} to {latest} (more restrictive)"
    if severity == SeverityLevel.MEDIUM:
        return f"Package license changed from {current} to {latest}"
    if severity == SeverityLevel.LOW:
        return "Package now includes license information (improvement)"
    return f"License changed from {current} to {latest}"


class LicenseAnalyzer:
    """
    Compares the license of a package's current version with a newer one.
    """

    def __init__(self, source_manager: PackageSourceManager):
        self.source_manager = source_manager

    def check_license_change(
        self,
        package: PackageReference,
        latest_version: str,
        cancellation: Optional[CancellationToken] = None
    ) -> Optional[LicenseChange]:
        """
        Detect a license change between the current and a newer version.

        Args:
            package: Package at its current version
            latest_version: Version to compare against
            cancellation: Batch cancellation token

        Returns:
            The license change, or None when the normalized licenses match
            or the lookup failed

        Raises:
            AnalysisCancelledError: If the batch is cancelled
        """
        try:
            current_license = self.source_manager.get_package_license(package.id, package.version, cancellation)
            latest_license = self.source_manager.get_package_license(package.id, latest_version, cancellation)

            normalized_current = normalize_license(current_license)
            normalized_latest = normalize_license(latest_license)

            if (normalized_current or "").lower() == (normalized_latest or "").lower():
                return None

            current_display = normalized_current or UNKNOWN_LICENSE
            latest_display = normalized_latest or UNKNOWN_LICENSE
            severity = determine_severity(normalized_current, normalized_latest)

            logger.info(f"License change for {package.id}: {current_display} -> {latest_display} ({severity.label})")

            return LicenseChange(
                current_license=current_display,
                latest_license=latest_display,
                severity=severity,
                description=build_description(current_display, latest_display, severity),
                current_license_url=current_license if is_url(current_license) else None,
                latest_license_url=latest_license if is_url(latest_license) else None
            )

        except AnalysisCancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to check license change for package {package.id}: {e}")
            return None
