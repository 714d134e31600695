"""Pytest configuration and shared fixtures."""
import threading
from typing import Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest
import requests

from nuget_explorer.cache import MemoryCache
from nuget_explorer.config import CacheConfig, reset_config_manager
from nuget_explorer.error_handling import SourceQueryError
from nuget_explorer.error_handling.cancellation import raise_if_cancelled
from nuget_explorer.models import PackageMetadata, PackageSource, Vulnerability
from nuget_explorer.sources import (
    PackageSourceManager, RegistryClient, SourceProvider, VulnerabilityClient
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSourceProvider(SourceProvider):
    """Returns a fixed list of sources and counts loads."""

    def __init__(self, sources: List[PackageSource]):
        self.sources = sources
        self.load_count = 0

    def load_sources(self) -> List[PackageSource]:
        self.load_count += 1
        return list(self.sources)


class FakeRegistryClient(RegistryClient):
    """
    In-memory registry.

    ``versions`` maps source name -> package id -> version strings;
    ``metadata`` maps (source name, package id, version) -> PackageMetadata.
    Sources listed in ``failing`` raise SourceQueryError.
    """

    def __init__(self):
        self.versions: Dict[str, Dict[str, List[str]]] = {}
        self.metadata: Dict[Tuple[str, str, str], PackageMetadata] = {}
        self.failing = set()
        self.calls: List[Tuple[str, ...]] = []
        self._lock = threading.Lock()
        self.closed = False

    def add_versions(self, source: str, package_id: str, versions: List[str]) -> None:
        self.versions.setdefault(source, {})[package_id] = list(versions)

    def add_metadata(self, source: str, package_id: str, version: str, license_expression: Optional[str] = None,
                     license_url: Optional[str] = None, project_url: Optional[str] = None) -> None:
        self.metadata[(source, package_id, version)] = PackageMetadata(
            id=package_id, version=version, license_expression=license_expression,
            license_url=license_url, project_url=project_url
        )

    def list_versions(self, source, package_id, cancellation=None):
        raise_if_cancelled(cancellation)
        with self._lock:
            self.calls.append(("list_versions", source.name, package_id))
        if source.name in self.failing:
            raise SourceQueryError(f"{source.name} is down", source_name=source.name)
        return list(self.versions.get(source.name, {}).get(package_id, []))

    def get_metadata(self, source, package_id, version, cancellation=None):
        raise_if_cancelled(cancellation)
        with self._lock:
            self.calls.append(("get_metadata", source.name, package_id, version))
        if source.name in self.failing:
            raise SourceQueryError(f"{source.name} is down", source_name=source.name)
        return self.metadata.get((source.name, package_id, version))

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)

    def close(self) -> None:
        self.closed = True


class FakeVulnerabilityClient(VulnerabilityClient):
    """Returns canned vulnerabilities keyed by (id, version)."""

    def __init__(self, vulnerabilities: Optional[Dict[Tuple[str, str], List[Vulnerability]]] = None):
        self.vulnerabilities = vulnerabilities or {}
        self.failing = set()
        self.closed = False

    def get_vulnerabilities(self, package, cancellation=None):
        raise_if_cancelled(cancellation)
        if package.id in self.failing:
            raise RuntimeError(f"feed error for {package.id}")
        return list(self.vulnerabilities.get((package.id, package.version), []))

    def close(self) -> None:
        self.closed = True


def make_source(name: str, url: Optional[str] = None, enabled: bool = True) -> PackageSource:
    url = url or f"https://{name}.example.com/v3/index.json"
    return PackageSource(
        name=name, url=url, is_enabled=enabled, is_official=PackageSource.is_official_url(url)
    )


def make_response(status_code: int = 200, json_data=None, json_error: bool = False) -> MagicMock:
    """Build a stand-in for requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture(autouse=True)
def clean_config_environment(monkeypatch):
    """Keep host environment variables and the global config out of tests."""
    for name in (
        "NUGET_CONFIG", "NUGET_TIMEOUT", "NUGET_USER_AGENT", "VULNERABILITY_CHECK", "OSV_API_URL",
        "OSV_TIMEOUT", "ANALYSIS_MAX_CONCURRENCY", "ANALYSIS_INCLUDE_PRERELEASE",
        "ANALYSIS_SEVERITY_FILTER", "CACHE_VERSIONS_TTL", "CACHE_METADATA_TTL", "CACHE_SOURCES_TTL",
        "LOG_LEVEL", "LOG_FILE", "LOG_FORMAT", "LOG_MAX_SIZE", "LOG_BACKUP_COUNT", "LOG_STRUCTURED"
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config_manager()
    yield
    reset_config_manager()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    cache = MemoryCache(clock=clock)
    yield cache
    cache.close()


@pytest.fixture
def sources():
    """Three enabled feeds and one disabled feed."""
    return [
        make_source("alpha"),
        make_source("beta"),
        make_source("gamma"),
        make_source("disabled", enabled=False),
    ]


@pytest.fixture
def source_provider(sources):
    return FakeSourceProvider(sources)


@pytest.fixture
def registry():
    return FakeRegistryClient()


@pytest.fixture
def source_manager(source_provider, registry, cache):
    return PackageSourceManager(source_provider, registry, cache, CacheConfig())
