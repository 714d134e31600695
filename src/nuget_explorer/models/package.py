"""
Package identity and feed data models.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any


OFFICIAL_REGISTRY_HOST = "nuget.org"


@dataclass(frozen=True)
class PackageReference:
    """
    A package id and version under analysis.

    Equality and hashing use (id, version), which is what batch
    deduplication relies on.
    """

    id: str
    version: str

    def __str__(self) -> str:
        return f"{self.id} {self.version}"

    @classmethod
    def parse(cls, value: str) -> 'PackageReference':
        """
        Parse an ``ID@VERSION`` (or ``ID/VERSION``) string.

        Raises:
            ValueError: If the string has no version part
        """
        for separator in ("@", "/"):
            if separator in value:
                package_id, _, version = value.rpartition(separator)
                if package_id.strip() and version.strip():
                    return cls(id=package_id.strip(), version=version.strip())
        raise ValueError(f"Expected ID@VERSION, got: {value!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PackageReference':
        return cls(id=str(data["id"]), version=str(data["version"]))


@dataclass(frozen=True)
class PackageSource:
    """A configured registry feed."""

    name: str
    url: str
    is_enabled: bool = True
    is_official: bool = False
    requires_auth: bool = False
    is_authenticated: bool = False
    username: Optional[str] = None
    password: Optional[str] = None

    @staticmethod
    def is_official_url(url: str) -> bool:
        return OFFICIAL_REGISTRY_HOST in (url or "").lower()

    @property
    def credentials(self) -> Optional[tuple]:
        if self.username:
            return (self.username, self.password or "")
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Public representation; credentials are never included."""
        return {
            "name": self.name,
            "url": self.url,
            "isEnabled": self.is_enabled,
            "isOfficial": self.is_official,
            "requiresAuth": self.requires_auth,
            "isAuthenticated": self.is_authenticated
        }


@dataclass(frozen=True)
class PackageMetadata:
    """Registry metadata for one exact package version."""

    id: str
    version: str
    license_expression: Optional[str] = None
    license_url: Optional[str] = None
    project_url: Optional[str] = None

    @property
    def license(self) -> Optional[str]:
        """License expression, falling back to the license URL."""
        return self.license_expression or self.license_url or None
