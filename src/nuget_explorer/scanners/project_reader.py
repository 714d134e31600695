"""
Package reference reader for .NET project files, packages.config and
central package management props.
"""

import xml.etree.ElementTree as ET
import logging
from pathlib import Path
from typing import List, Dict, Optional

from ..error_handling.exceptions import ProjectFileError
from ..models import PackageReference

logger = logging.getLogger(__name__)

PROJECT_EXTENSIONS = (".csproj", ".fsproj", ".vbproj")
PACKAGES_CONFIG = "packages.config"
CENTRAL_PACKAGES_PROPS = "directory.packages.props"
CENTRAL_PACKAGES_PROPS_NAME = "Directory.Packages.props"


def _local_name(tag: str) -> str:
    """Tag name without the MSBuild XML namespace."""
    return tag.rsplit('}', 1)[-1]


def _iter_elements(root: ET.Element, name: str):
    for element in root.iter():
        if isinstance(element.tag, str) and _local_name(element.tag) == name:
            yield element


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name and child.text:
            return child.text.strip()
    return None


def _is_property_reference(version: str) -> bool:
    return "$(" in version


class ProjectReader:
    """
    Reads the NuGet package references declared by a .NET project.

    Supported inputs:
    - SDK-style and legacy project files (.csproj, .fsproj, .vbproj):
      ``PackageReference`` items with a ``Version`` attribute or child element
    - ``packages.config``: ``<package id version>`` entries
    - ``Directory.Packages.props``: central ``PackageVersion`` items

    Project references without a version are resolved against the nearest
    ``Directory.Packages.props`` above the project. Versions that are MSBuild
    property references (``$(...)``) cannot be evaluated and are skipped.
    """

    def can_parse(self, file_path: Path) -> bool:
        """
        Check if this reader can handle the given file.

        Args:
            file_path: Path to the project file

        Returns:
            True if the file type is supported
        """
        file_name = file_path.name.lower()
        return (
            file_name in (PACKAGES_CONFIG, CENTRAL_PACKAGES_PROPS)
            or file_name.endswith(PROJECT_EXTENSIONS)
        )

    def parse_file(self, file_path: Path) -> List[PackageReference]:
        """
        Extract package references from a file.

        Args:
            file_path: Path to the project file

        Returns:
            Package references in declaration order, without duplicates

        Raises:
            ProjectFileError: If the file is missing, unsupported or not valid XML
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ProjectFileError(f"File does not exist: {file_path}", file_path=str(file_path))

        if not self.can_parse(file_path):
            raise ProjectFileError(
                f"Unsupported project file: {file_path.name}. "
                f"Expected a project file, packages.config or Directory.Packages.props",
                file_path=str(file_path)
            )

        root = self._load_xml(file_path)
        file_name = file_path.name.lower()

        if file_name == PACKAGES_CONFIG:
            references = self._parse_packages_config(root)
        elif file_name == CENTRAL_PACKAGES_PROPS:
            references = list(self._parse_central_versions(root).values())
        else:
            references = self._parse_project(root, file_path)

        references = list(dict.fromkeys(references))
        logger.info(f"Read {len(references)} package references from {file_path.name}")
        return references

    @staticmethod
    def _load_xml(file_path: Path) -> ET.Element:
        try:
            return ET.parse(file_path).getroot()
        except ET.ParseError as e:
            raise ProjectFileError(f"Invalid XML in {file_path}: {e}", file_path=str(file_path), cause=e)

    def _parse_packages_config(self, root: ET.Element) -> List[PackageReference]:
        references = []
        for package in _iter_elements(root, "package"):
            reference = self._make_reference(package.get("id"), package.get("version"))
            if reference:
                references.append(reference)
        return references

    def _parse_central_versions(self, root: ET.Element) -> Dict[str, PackageReference]:
        """Central PackageVersion items keyed by lowercased package id."""
        versions: Dict[str, PackageReference] = {}
        for item in _iter_elements(root, "PackageVersion"):
            version = item.get("Version") or _child_text(item, "Version")
            reference = self._make_reference(item.get("Include"), version)
            if reference:
                versions[reference.id.lower()] = reference
        return versions

    def _parse_project(self, root: ET.Element, file_path: Path) -> List[PackageReference]:
        references = []
        central_versions: Optional[Dict[str, PackageReference]] = None

        for item in _iter_elements(root, "PackageReference"):
            package_id = item.get("Include") or item.get("Update")
            if not package_id:
                continue

            version = (
                item.get("VersionOverride")
                or item.get("Version")
                or _child_text(item, "VersionOverride")
                or _child_text(item, "Version")
            )

            if not version:
                if central_versions is None:
                    central_versions = self._load_central_versions(file_path)
                central = central_versions.get(package_id.strip().lower())
                version = central.version if central else None

            reference = self._make_reference(package_id, version)
            if reference:
                references.append(reference)

        return references

    def _load_central_versions(self, project_path: Path) -> Dict[str, PackageReference]:
        props_path = find_central_packages_props(project_path.parent)
        if props_path is None:
            return {}
        logger.debug(f"Resolving central package versions from {props_path}")
        return self._parse_central_versions(self._load_xml(props_path))

    @staticmethod
    def _make_reference(package_id: Optional[str], version: Optional[str]) -> Optional[PackageReference]:
        if not package_id or not package_id.strip():
            return None

        if not version or not version.strip():
            logger.warning(f"Skipping {package_id}: no version specified")
            return None

        if _is_property_reference(version):
            logger.warning(f"Skipping {package_id}: version {version} is an MSBuild property")
            return None

        return PackageReference(id=package_id.strip(), version=version.strip())


def find_central_packages_props(start_dir: Path) -> Optional[Path]:
    """Find the nearest Directory.Packages.props in ``start_dir`` or its parents."""
    current = Path(start_dir).resolve()
    for directory in [current, *current.parents]:
        candidate = directory / CENTRAL_PACKAGES_PROPS_NAME
        if candidate.is_file():
            return candidate
    return None


def read_packages(file_path: Path) -> List[PackageReference]:
    """Read package references from a project file."""
    return ProjectReader().parse_file(Path(file_path))
