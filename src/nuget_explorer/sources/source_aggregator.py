"""
Merged view of all configured package feeds.
"""

import logging
from typing import Callable, List, Optional, TypeVar

from ..cache import MemoryCache, cache_key
from ..config import CacheConfig
from ..error_handling.cancellation import CancellationToken, raise_if_cancelled
from ..error_handling.exceptions import AnalysisCancelledError
from ..models import PackageSource, PackageMetadata
from ..versioning import SemanticVersion, merge_versions
from .base_client import RegistryClient, SourceProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PackageSourceManager:
    """
    Presents every enabled feed as a single package catalog.

    Feeds fail independently: a feed that errors is logged and skipped, and
    the remaining feeds still answer. Version lists are the union across
    feeds; license and project URL come from the first feed, in configured
    order, that has the exact version. All lookups go through the shared
    cache.
    """

    def __init__(
        self,
        source_provider: SourceProvider,
        registry_client: RegistryClient,
        cache: MemoryCache,
        cache_config: Optional[CacheConfig] = None
    ):
        """
        Initialize the source manager.

        Args:
            source_provider: Supplies the configured feeds
            registry_client: Queries a single feed
            cache: Shared lookup cache
            cache_config: Cache lifetimes
        """
        self.source_provider = source_provider
        self.registry_client = registry_client
        self.cache = cache
        self.cache_config = cache_config or CacheConfig()

    def get_configured_sources(self) -> List[PackageSource]:
        """
        Get the enabled package sources.

        Returns:
            Enabled sources in configured order
        """
        def load() -> List[PackageSource]:
            sources = [s for s in self.source_provider.load_sources() if s.is_enabled]
            logger.info(f"Loaded {len(sources)} enabled package sources")
            return sources

        return list(self.cache.get_or_set(cache_key("sources", "configured"), load, self.cache_config.sources_ttl))

    def get_all_versions(
        self,
        package_id: str,
        include_prerelease: bool,
        cancellation: Optional[CancellationToken] = None
    ) -> List[str]:
        """
        Get every known version of a package across all enabled feeds.

        Args:
            package_id: Package ID
            include_prerelease: Keep prerelease versions
            cancellation: Batch cancellation token

        Returns:
            Normalized version strings, newest first
        """
        def load() -> tuple:
            version_sets = []
            for source in self.get_configured_sources():
                raise_if_cancelled(cancellation)
                try:
                    raw_versions = self.registry_client.list_versions(source, package_id, cancellation)
                except AnalysisCancelledError:
                    raise
                except Exception as e:
                    logger.warning(f"Failed to query package {package_id} from source {source.name}: {e}")
                    continue

                version_sets.append(self._parse_versions(package_id, source, raw_versions))

            merged = merge_versions(version_sets, include_prerelease)
            return tuple(str(v) for v in merged)

        key = cache_key("versions", package_id, include_prerelease)
        return list(self.cache.get_or_set(key, load, self.cache_config.versions_ttl))

    @staticmethod
    def _parse_versions(package_id: str, source: PackageSource, raw_versions: List[str]) -> List[SemanticVersion]:
        parsed = []
        for raw in raw_versions:
            version = SemanticVersion.try_parse(raw)
            if version is None:
                logger.debug(f"Ignoring unparseable version '{raw}' of {package_id} from {source.name}")
                continue
            parsed.append(version)
        return parsed

    def get_package_license(
        self,
        package_id: str,
        version: str,
        cancellation: Optional[CancellationToken] = None
    ) -> Optional[str]:
        """
        Get the license expression (or license URL) of a package version.

        Returns:
            License from the first feed that has the version, or None
        """
        return self._first_metadata_value(
            "license", package_id, version, lambda metadata: metadata.license, cancellation
        )

    def get_project_url(
        self,
        package_id: str,
        version: str,
        cancellation: Optional[CancellationToken] = None
    ) -> Optional[str]:
        """
        Get the project URL of a package version.

        Returns:
            Project URL from the first feed that has the version, or None
        """
        return self._first_metadata_value(
            "projecturl", package_id, version, lambda metadata: metadata.project_url, cancellation
        )

    def _first_metadata_value(
        self,
        kind: str,
        package_id: str,
        version: str,
        select: Callable[[PackageMetadata], Optional[T]],
        cancellation: Optional[CancellationToken]
    ) -> Optional[T]:
        def load() -> Optional[T]:
            metadata = self._get_package_metadata(package_id, version, cancellation)
            return select(metadata) if metadata is not None else None

        return self.cache.get_or_set(cache_key(kind, package_id, version), load, self.cache_config.metadata_ttl)

    def _get_package_metadata(
        self,
        package_id: str,
        version: str,
        cancellation: Optional[CancellationToken]
    ) -> Optional[PackageMetadata]:
        for source in self.get_configured_sources():
            raise_if_cancelled(cancellation)
            try:
                metadata = self.registry_client.get_metadata(source, package_id, version, cancellation)
            except AnalysisCancelledError:
                raise
            except Exception as e:
                logger.warning(f"Failed to get metadata for {package_id} {version} from {source.name}: {e}")
                continue

            if metadata is not None:
                return metadata

        return None
