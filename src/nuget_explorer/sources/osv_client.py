"""
Vulnerability lookups against the OSV database.
"""

import requests
import logging
from typing import Dict, Any, Optional, List

from ..config import VulnerabilityConfig
from ..error_handling.cancellation import CancellationToken, raise_if_cancelled
from ..error_handling.exceptions import VulnerabilityFeedError
from ..models import PackageReference, Vulnerability, SeverityLevel
from .base_client import VulnerabilityClient

logger = logging.getLogger(__name__)

OSV_ECOSYSTEM = "NuGet"
OSV_VULNERABILITY_URL = "https://osv.dev/vulnerability/{id}"

_SEVERITY_NAMES = {
    "CRITICAL": SeverityLevel.CRITICAL,
    "HIGH": SeverityLevel.HIGH,
    "MODERATE": SeverityLevel.MEDIUM,
    "MEDIUM": SeverityLevel.MEDIUM,
    "LOW": SeverityLevel.LOW,
}


class OSVVulnerabilityClient(VulnerabilityClient):
    """
    Queries https://osv.dev for advisories affecting a NuGet package version.

    Severity comes from the advisory's ``database_specific.severity`` (GitHub
    advisories use CRITICAL/HIGH/MODERATE/LOW); advisories without one are
    reported as MEDIUM.
    """

    def __init__(self, vulnerability_config: Optional[VulnerabilityConfig] = None,
                 session: Optional[requests.Session] = None, user_agent: str = "nuget-explorer/0.1"):
        config = vulnerability_config or VulnerabilityConfig()
        self.api_url = config.api_url
        self.timeout = config.timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": user_agent
        })

    def get_vulnerabilities(
        self,
        package: PackageReference,
        cancellation: Optional[CancellationToken] = None
    ) -> List[Vulnerability]:
        advisories: List[Dict[str, Any]] = []
        page_token: Optional[str] = None

        while True:
            payload: Dict[str, Any] = {
                "package": {"name": package.id, "ecosystem": OSV_ECOSYSTEM},
                "version": package.version
            }
            if page_token:
                payload["page_token"] = page_token

            document = self._post(payload, cancellation)
            advisories.extend(document.get("vulns") or [])

            page_token = document.get("next_page_token")
            if not page_token:
                break

        vulnerabilities = [self._to_vulnerability(package, advisory) for advisory in advisories]
        if vulnerabilities:
            logger.info(f"Found {len(vulnerabilities)} vulnerabilities for {package}")
        return vulnerabilities

    def _post(self, payload: Dict[str, Any], cancellation: Optional[CancellationToken]) -> Dict[str, Any]:
        raise_if_cancelled(cancellation)

        try:
            response = self.session.post(self.api_url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise VulnerabilityFeedError(f"OSV query failed: {e}", url=self.api_url, cause=e)

        if not response.ok:
            raise VulnerabilityFeedError(
                f"OSV query returned HTTP {response.status_code}",
                url=self.api_url, status_code=response.status_code
            )

        try:
            return response.json() or {}
        except ValueError as e:
            raise VulnerabilityFeedError("OSV returned invalid JSON", url=self.api_url, cause=e)

    @staticmethod
    def parse_severity(advisory: Dict[str, Any]) -> SeverityLevel:
        """Map an advisory's severity name onto SeverityLevel."""
        severity = ((advisory.get("database_specific") or {}).get("severity") or "").upper()
        return _SEVERITY_NAMES.get(severity, SeverityLevel.MEDIUM)

    @classmethod
    def _to_vulnerability(cls, package: PackageReference, advisory: Dict[str, Any]) -> Vulnerability:
        advisory_id = advisory.get("id", "UNKNOWN")
        return Vulnerability(
            id=advisory_id,
            severity=cls.parse_severity(advisory),
            summary=advisory.get("summary") or None,
            advisory_url=cls._advisory_url(advisory),
            aliases=tuple(advisory.get("aliases") or ()),
            affected_range=cls._affected_range(package, advisory),
            published=advisory.get("published")
        )

    @staticmethod
    def _advisory_url(advisory: Dict[str, Any]) -> str:
        for reference in advisory.get("references") or []:
            if reference.get("type") == "ADVISORY" and reference.get("url"):
                return reference["url"]
        return OSV_VULNERABILITY_URL.format(id=advisory.get("id", ""))

    @staticmethod
    def _affected_range(package: PackageReference, advisory: Dict[str, Any]) -> Optional[str]:
        """Describe the affected ECOSYSTEM ranges, e.g. ``>= 1.0.0, < 1.2.3``."""
        ranges = []
        for affected in advisory.get("affected") or []:
            name = (affected.get("package") or {}).get("name", "")
            if name.lower() != package.id.lower():
                continue
            for version_range in affected.get("ranges") or []:
                if version_range.get("type") != "ECOSYSTEM":
                    continue
                bounds = []
                for event in version_range.get("events") or []:
                    if event.get("introduced") and event["introduced"] != "0":
                        bounds.append(f">= {event['introduced']}")
                    elif event.get("fixed"):
                        bounds.append(f"< {event['fixed']}")
                    elif event.get("last_affected"):
                        bounds.append(f"<= {event['last_affected']}")
                if bounds:
                    ranges.append(", ".join(bounds))
        return "; ".join(ranges) if ranges else None

    def close(self) -> None:
        self.session.close()
