"""
Package feed access: source configuration, feed clients and the merged view.
"""

from .base_client import SourceProvider, RegistryClient, VulnerabilityClient
from .source_config import NuGetConfigSourceProvider, discover_nuget_config
from .nuget_client import NuGetRegistryClient
from .osv_client import OSVVulnerabilityClient
from .source_aggregator import PackageSourceManager

__all__ = [
    "SourceProvider",
    "RegistryClient",
    "VulnerabilityClient",
    "NuGetConfigSourceProvider",
    "discover_nuget_config",
    "NuGetRegistryClient",
    "OSVVulnerabilityClient",
    "PackageSourceManager"
]
