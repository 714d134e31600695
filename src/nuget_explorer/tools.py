"""
Tool surface of the NuGet explorer: package analysis and source listing.
"""

import json
import logging
from typing import List, Dict, Any, Iterable, Optional, Union

from .analyzers import UpdateChecker, LicenseAnalyzer
from .cache import MemoryCache
from .config import AppConfig, get_config
from .error_handling.cancellation import CancellationToken
from .models import PackageReference, PackageAnalysisOptions, PackageAnalysisResult, SeverityLevel
from .orchestrator import PackageAnalyzer
from .sources import (
    SourceProvider, RegistryClient, VulnerabilityClient, NuGetConfigSourceProvider,
    NuGetRegistryClient, OSVVulnerabilityClient, PackageSourceManager
)

logger = logging.getLogger(__name__)

PackageInput = Union[PackageReference, Dict[str, Any], str]


def parse_severity_filter(severity_filter: Optional[str]) -> SeverityLevel:
    """Map a severity filter name to a threshold; unknown names mean no filtering."""
    return SeverityLevel.parse(severity_filter, SeverityLevel.ALL)


def to_package_reference(package: PackageInput) -> PackageReference:
    """Accept a PackageReference, an ``{"id", "version"}`` mapping or ``ID@VERSION``."""
    if isinstance(package, PackageReference):
        return package
    if isinstance(package, dict):
        return PackageReference.from_dict(package)
    return PackageReference.parse(str(package))


class NuGetTools:
    """
    Builds the analysis components from configuration and exposes the two
    tool operations, both returning indented camelCase JSON.

    Collaborators can be injected; anything not given is built from the
    configuration. Call ``close()`` (or use as a context manager) to release
    the cache and HTTP sessions.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        source_provider: Optional[SourceProvider] = None,
        registry_client: Optional[RegistryClient] = None,
        vulnerability_client: Optional[VulnerabilityClient] = None,
        cache: Optional[MemoryCache] = None
    ):
        self.config = config or get_config()

        self.cache = cache if cache is not None else MemoryCache()
        self.source_provider = (
            source_provider if source_provider is not None else NuGetConfigSourceProvider(self.config.registry)
        )
        self.registry_client = (
            registry_client if registry_client is not None else NuGetRegistryClient(self.config.registry)
        )

        if vulnerability_client is None and self.config.vulnerability.enabled:
            vulnerability_client = OSVVulnerabilityClient(
                self.config.vulnerability, user_agent=self.config.registry.user_agent
            )
        elif vulnerability_client is None:
            logger.info("Vulnerability checks disabled by configuration")
        self.vulnerability_client = vulnerability_client

        self.source_manager = PackageSourceManager(
            self.source_provider, self.registry_client, self.cache, self.config.cache
        )
        self.update_checker = UpdateChecker(self.source_manager)
        self.license_analyzer = LicenseAnalyzer(self.source_manager)
        self.package_analyzer = PackageAnalyzer(
            self.update_checker,
            self.license_analyzer,
            self.vulnerability_client,
            max_concurrency=self.config.analysis.max_concurrency
        )

    def run_analysis(
        self,
        packages: Iterable[PackageInput],
        target_framework: Optional[str] = None,
        include_prerelease: bool = False,
        check_updates: bool = True,
        check_vulnerabilities: bool = True,
        check_licenses: bool = True,
        severity_filter: str = "all",
        cancellation: Optional[CancellationToken] = None
    ) -> PackageAnalysisResult:
        """
        Analyze packages and return the result object.

        Args:
            packages: Packages to analyze
            target_framework: Target framework moniker, e.g. net8.0
            include_prerelease: Consider prerelease versions as updates
            check_updates: Look for newer versions
            check_vulnerabilities: Query the vulnerability feed
            check_licenses: Compare licenses when an update exists
            severity_filter: all, low, medium, high or critical
            cancellation: Cancels the batch when triggered

        Returns:
            Analysis result for the batch
        """
        references = [to_package_reference(p) for p in packages]
        options = PackageAnalysisOptions(
            target_framework=target_framework,
            include_prerelease=include_prerelease,
            check_updates=check_updates,
            check_vulnerabilities=check_vulnerabilities,
            check_licenses=check_licenses,
            minimum_severity=parse_severity_filter(severity_filter)
        )
        return self.package_analyzer.analyze_packages(references, options, cancellation)

    def analyze_packages(self, packages: Iterable[PackageInput], **kwargs) -> str:
        """
        Check packages for updates, vulnerabilities and license changes.

        Accepts the same keyword arguments as ``run_analysis``.

        Returns:
            The analysis result as JSON
        """
        return self.run_analysis(packages, **kwargs).to_json()

    def list_package_sources(self) -> str:
        """
        List the enabled package sources.

        Returns:
            ``{"sources": [...]}`` as JSON
        """
        sources = self.source_manager.get_configured_sources()
        return json.dumps({"sources": [s.to_dict() for s in sources]}, indent=2)

    def get_cache_statistics(self) -> Dict[str, Any]:
        return self.cache.get_cache_statistics()

    def close(self) -> None:
        """Release the cache and HTTP sessions. Safe to call more than once."""
        self.cache.close()
        self.registry_client.close()
        if self.vulnerability_client is not None:
            self.vulnerability_client.close()

    def __enter__(self) -> 'NuGetTools':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def analyze_packages(packages: List[PackageInput], config: Optional[AppConfig] = None, **kwargs) -> str:
    """Run one analysis with a throwaway ``NuGetTools``."""
    with NuGetTools(config) as tools:
        return tools.analyze_packages(packages, **kwargs)


def list_package_sources(config: Optional[AppConfig] = None) -> str:
    """List sources with a throwaway ``NuGetTools``."""
    with NuGetTools(config) as tools:
        return tools.list_package_sources()
