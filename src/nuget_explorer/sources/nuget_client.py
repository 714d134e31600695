"""
NuGet v3 feed client.
"""

import requests
import threading
import logging
from typing import Dict, Any, Optional, List

from ..config import RegistryConfig
from ..error_handling.cancellation import CancellationToken, raise_if_cancelled
from ..error_handling.exceptions import SourceQueryError
from ..models import PackageSource, PackageMetadata
from ..versioning import SemanticVersion
from .base_client import RegistryClient

logger = logging.getLogger(__name__)

PACKAGE_BASE_ADDRESS = "PackageBaseAddress/3.0.0"
REGISTRATION_TYPES = (
    "RegistrationsBaseUrl/3.6.0",
    "RegistrationsBaseUrl/3.4.0",
    "RegistrationsBaseUrl/3.0.0-rc",
    "RegistrationsBaseUrl/3.0.0-beta",
    "RegistrationsBaseUrl",
)


class NuGetRegistryClient(RegistryClient):
    """
    Client for NuGet v3 feeds.

    Each source URL points at a v3 service index, which is resolved once per
    process to find the flat container (version lists) and the registration
    resource (package metadata). Any transport or HTTP failure is raised as
    SourceQueryError; a 404 for a package means the feed does not have it.
    """

    def __init__(self, registry_config: Optional[RegistryConfig] = None, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            registry_config: Registry section of the application configuration
            session: Optional preconfigured requests session
        """
        config = registry_config or RegistryConfig()
        self.timeout = config.timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": config.user_agent
        })

        self._service_indexes: Dict[str, Dict[str, str]] = {}
        self._index_lock = threading.Lock()

    def _get_json(
        self,
        source: PackageSource,
        url: str,
        cancellation: Optional[CancellationToken],
        allow_not_found: bool = False
    ) -> Optional[Any]:
        """
        GET a JSON document from a feed.

        Returns:
            Parsed JSON, or None for a 404 when ``allow_not_found`` is set

        Raises:
            SourceQueryError: On transport errors, non-2xx responses or invalid JSON
        """
        raise_if_cancelled(cancellation)

        try:
            response = self.session.get(url, timeout=self.timeout, auth=source.credentials)
        except requests.exceptions.RequestException as e:
            raise SourceQueryError(f"Request to {source.name} failed: {e}", source_name=source.name, url=url, cause=e)

        if response.status_code == 404 and allow_not_found:
            return None

        if not response.ok:
            raise SourceQueryError(
                f"Feed {source.name} returned HTTP {response.status_code}",
                source_name=source.name, url=url, status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise SourceQueryError(f"Feed {source.name} returned invalid JSON", source_name=source.name, url=url, cause=e)

    def get_service_index(self, source: PackageSource, cancellation: Optional[CancellationToken] = None) -> Dict[str, str]:
        """
        Resolve the resource URLs a feed advertises.

        Returns:
            Mapping of resource type to URL
        """
        with self._index_lock:
            cached = self._service_indexes.get(source.url)
        if cached is not None:
            return cached

        document = self._get_json(source, source.url, cancellation)
        resources: Dict[str, str] = {}
        for resource in (document or {}).get("resources", []):
            resource_types = resource.get("@type")
            if isinstance(resource_types, str):
                resource_types = [resource_types]
            for resource_type in resource_types or []:
                resources.setdefault(resource_type, resource.get("@id", ""))

        if PACKAGE_BASE_ADDRESS not in resources:
            raise SourceQueryError(
                f"Feed {source.name} is not a NuGet v3 feed (no {PACKAGE_BASE_ADDRESS})",
                source_name=source.name, url=source.url
            )

        with self._index_lock:
            self._service_indexes[source.url] = resources
        logger.debug(f"Resolved service index for {source.name} ({len(resources)} resources)")
        return resources

    def _registration_base(self, resources: Dict[str, str]) -> Optional[str]:
        for resource_type in REGISTRATION_TYPES:
            if resources.get(resource_type):
                return resources[resource_type]
        return None

    def list_versions(
        self,
        source: PackageSource,
        package_id: str,
        cancellation: Optional[CancellationToken] = None
    ) -> List[str]:
        resources = self.get_service_index(source, cancellation)
        base = resources[PACKAGE_BASE_ADDRESS].rstrip('/')
        url = f"{base}/{package_id.lower()}/index.json"

        document = self._get_json(source, url, cancellation, allow_not_found=True)
        if document is None:
            logger.debug(f"Package {package_id} not found on {source.name}")
            return []

        versions = document.get("versions", [])
        logger.debug(f"{source.name} lists {len(versions)} versions of {package_id}")
        return [str(v) for v in versions]

    def get_metadata(
        self,
        source: PackageSource,
        package_id: str,
        version: str,
        cancellation: Optional[CancellationToken] = None
    ) -> Optional[PackageMetadata]:
        target = SemanticVersion.parse(version)

        resources = self.get_service_index(source, cancellation)
        registration_base = self._registration_base(resources)
        if not registration_base:
            raise SourceQueryError(
                f"Feed {source.name} has no registration resource",
                source_name=source.name, url=source.url
            )

        url = f"{registration_base.rstrip('/')}/{package_id.lower()}/index.json"
        document = self._get_json(source, url, cancellation, allow_not_found=True)
        if document is None:
            return None

        for page in document.get("items", []):
            if not self._page_may_contain(page, target):
                continue

            leaves = page.get("items")
            if leaves is None:
                page_document = self._get_json(source, page["@id"], cancellation, allow_not_found=True)
                leaves = (page_document or {}).get("items", [])

            for leaf in leaves:
                entry = leaf.get("catalogEntry") or {}
                if entry.get("listed") is False:
                    continue
                entry_version = SemanticVersion.try_parse(str(entry.get("version", "")))
                if entry_version is not None and entry_version == target:
                    return self._metadata_from_entry(package_id, entry)

        return None

    @staticmethod
    def _page_may_contain(page: Dict[str, Any], target: SemanticVersion) -> bool:
        lower = SemanticVersion.try_parse(str(page.get("lower", "")))
        upper = SemanticVersion.try_parse(str(page.get("upper", "")))
        if lower is not None and target < lower:
            return False
        if upper is not None and target > upper:
            return False
        return True

    @staticmethod
    def _metadata_from_entry(package_id: str, entry: Dict[str, Any]) -> PackageMetadata:
        return PackageMetadata(
            id=entry.get("id") or package_id,
            version=str(entry.get("version")),
            license_expression=entry.get("licenseExpression") or None,
            license_url=entry.get("licenseUrl") or None,
            project_url=entry.get("projectUrl") or None
        )

    def close(self) -> None:
        self.session.close()
