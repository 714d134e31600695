"""
NuGet semantic versions.

Numeric release components are handled by ``packaging.version.Version``;
prerelease labels follow SemVer 2.0 precedence (numeric identifiers sort
numerically and before alphanumeric ones, compared case-insensitively as
NuGet does). Build metadata is ignored for equality and ordering.
"""

import re
from functools import total_ordering
from typing import Dict, Iterable, List, Optional, Tuple

from packaging.version import Version, InvalidVersion

from .error_handling.exceptions import VersionParseError

_VERSION_PATTERN = re.compile(
    r"^\s*(?P<release>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<meta>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?\s*$"
)


@total_ordering
class SemanticVersion:
    """A parsed NuGet version with SemVer 2.0 ordering."""

    __slots__ = ("_release", "_prerelease", "_metadata", "_original")

    def __init__(self, release: Version, prerelease: Tuple[str, ...] = (), metadata: Optional[str] = None,
                 original: Optional[str] = None):
        self._release = release
        self._prerelease = prerelease
        self._metadata = metadata
        self._original = original

    @classmethod
    def parse(cls, value: str) -> 'SemanticVersion':
        """
        Parse a version string.

        Raises:
            VersionParseError: If the string is not a valid version
        """
        match = _VERSION_PATTERN.match(value or "")
        if not match:
            raise VersionParseError(f"'{value}' is not a valid version string", version=value)

        try:
            release = Version(match.group("release"))
        except InvalidVersion as e:
            raise VersionParseError(f"'{value}' is not a valid version string", version=value, cause=e)

        pre = match.group("pre")
        prerelease = tuple(pre.split(".")) if pre else ()
        for identifier in prerelease:
            if identifier.isdigit() and len(identifier) > 1 and identifier.startswith("0"):
                raise VersionParseError(
                    f"'{value}' has a numeric prerelease identifier with a leading zero", version=value
                )

        return cls(release, prerelease, match.group("meta"), value.strip())

    @classmethod
    def try_parse(cls, value: str) -> Optional['SemanticVersion']:
        try:
            return cls.parse(value)
        except VersionParseError:
            return None

    def _component(self, index: int) -> int:
        release = self._release.release
        return release[index] if len(release) > index else 0

    @property
    def major(self) -> int:
        return self._component(0)

    @property
    def minor(self) -> int:
        return self._component(1)

    @property
    def patch(self) -> int:
        return self._component(2)

    @property
    def revision(self) -> int:
        return self._component(3)

    @property
    def is_prerelease(self) -> bool:
        return bool(self._prerelease)

    @property
    def release_label(self) -> str:
        return ".".join(self._prerelease)

    @property
    def original(self) -> Optional[str]:
        return self._original

    def _sort_key(self):
        release = (self.major, self.minor, self.patch, self.revision)
        if not self._prerelease:
            return (release, 1, ())
        identifiers = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part.lower())
            for part in self._prerelease
        )
        return (release, 0, identifiers)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._sort_key() == other._sort_key()

    def __lt__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __hash__(self) -> int:
        return hash(self._sort_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self._prerelease:
            text += f"-{self.release_label}"
        return text

    def __repr__(self) -> str:
        return f"SemanticVersion('{self}')"


def parse_version(value: str, package_id: Optional[str] = None) -> SemanticVersion:
    """Parse ``value``, attaching the package id to the error context."""
    try:
        return SemanticVersion.parse(value)
    except VersionParseError as e:
        if package_id:
            raise VersionParseError(e.message, package_id=package_id, version=value, cause=e.cause)
        raise


def merge_versions(version_sets: Iterable[Iterable[SemanticVersion]],
                   include_prerelease: bool) -> List[SemanticVersion]:
    """
    Union several version collections by semantic equality.

    Prereleases are dropped unless ``include_prerelease`` is set. The result
    is sorted newest first and does not depend on the order of the inputs.
    Of several spellings of one version, the lowest string form is kept.
    """
    merged: Dict[SemanticVersion, SemanticVersion] = {}
    for versions in version_sets:
        for version in versions:
            if not include_prerelease and version.is_prerelease:
                continue
            current = merged.get(version)
            if current is None or str(version) < str(current):
                merged[version] = version
    return sorted(merged.values(), reverse=True)
