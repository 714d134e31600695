"""
Base classes and interfaces for the external collaborators of the analyzer.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..error_handling.cancellation import CancellationToken
from ..models import PackageSource, PackageMetadata, PackageReference, Vulnerability


class SourceProvider(ABC):
    """Supplies the configured package feeds."""

    @abstractmethod
    def load_sources(self) -> List[PackageSource]:
        """
        Load every configured package source, enabled or not.

        Returns:
            Package sources in configured order
        """
        pass


class RegistryClient(ABC):
    """
    Queries a single package feed.

    Implementations raise SourceQueryError for any failure so the source
    aggregator can skip the feed and continue with the next one.
    """

    @abstractmethod
    def list_versions(
        self,
        source: PackageSource,
        package_id: str,
        cancellation: Optional[CancellationToken] = None
    ) -> List[str]:
        """
        List every version string the feed knows for a package.

        Args:
            source: Feed to query
            package_id: Package ID
            cancellation: Batch cancellation token

        Returns:
            Version strings as published by the feed (empty if unknown)
        """
        pass

    @abstractmethod
    def get_metadata(
        self,
        source: PackageSource,
        package_id: str,
        version: str,
        cancellation: Optional[CancellationToken] = None
    ) -> Optional[PackageMetadata]:
        """
        Fetch metadata for one exact package version.

        Args:
            source: Feed to query
            package_id: Package ID
            version: Exact version
            cancellation: Batch cancellation token

        Returns:
            Metadata, or None if the feed does not have that version
        """
        pass

    def close(self) -> None:
        """Release network resources."""


class VulnerabilityClient(ABC):
    """Looks up known vulnerabilities for package versions."""

    @abstractmethod
    def get_vulnerabilities(
        self,
        package: PackageReference,
        cancellation: Optional[CancellationToken] = None
    ) -> List[Vulnerability]:
        """
        Get the known vulnerabilities affecting a package version.

        Args:
            package: Package id and version
            cancellation: Batch cancellation token

        Returns:
            Vulnerabilities; empty when none are known
        """
        pass

    def close(self) -> None:
        """Release network resources."""
