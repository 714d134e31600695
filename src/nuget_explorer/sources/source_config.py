"""
Package source configuration from nuget.config files and application config.
"""

import xml.etree.ElementTree as ET
import logging
import re
from pathlib import Path
from typing import List, Dict, Any, Optional

from ..config import RegistryConfig
from ..error_handling.exceptions import ConfigurationError
from ..models import PackageSource
from .base_client import SourceProvider

logger = logging.getLogger(__name__)

NUGET_CONFIG_NAMES = ("nuget.config", "NuGet.Config", "NuGet.config")
_XML_ESCAPE = re.compile(r"_x([0-9A-Fa-f]{4})_")


def _decode_element_name(name: str) -> str:
    """Decode XmlConvert-style names, e.g. ``My_x0020_Feed`` -> ``My Feed``."""
    return _XML_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), name)


def discover_nuget_config(start_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Find the nuget.config NuGet itself would pick first.

    Looks in ``start_dir`` and its parents, then the user-level
    ``~/.nuget/NuGet/NuGet.Config``.
    """
    directory = (start_dir or Path.cwd()).resolve()
    for candidate_dir in [directory] + list(directory.parents):
        for name in NUGET_CONFIG_NAMES:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate

    user_config = Path.home() / ".nuget" / "NuGet" / "NuGet.Config"
    if user_config.is_file():
        return user_config
    return None


class NuGetConfigSourceProvider(SourceProvider):
    """
    Loads package sources from a nuget.config file plus the sources listed
    in the application configuration.

    Sources from nuget.config come first, in file order. Application config
    sources are appended unless a source with the same name or URL is
    already present.
    """

    def __init__(self, registry_config: RegistryConfig):
        """
        Initialize the provider.

        Args:
            registry_config: Registry section of the application configuration
        """
        self.registry_config = registry_config

    def load_sources(self) -> List[PackageSource]:
        sources: List[PackageSource] = []

        config_path = self._resolve_nuget_config()
        if config_path is not None:
            sources.extend(self.parse_nuget_config(config_path))

        seen_names = {s.name.lower() for s in sources}
        seen_urls = {s.url.rstrip('/').lower() for s in sources}
        for entry in self.registry_config.sources or []:
            source = self._source_from_entry(entry)
            if source.name.lower() in seen_names or source.url.rstrip('/').lower() in seen_urls:
                logger.debug(f"Skipping duplicate configured source {source.name}")
                continue
            sources.append(source)
            seen_names.add(source.name.lower())
            seen_urls.add(source.url.rstrip('/').lower())

        logger.debug(f"Loaded {len(sources)} package sources")
        return sources

    def _resolve_nuget_config(self) -> Optional[Path]:
        setting = self.registry_config.nuget_config
        if not setting:
            return None
        if str(setting).lower() == "auto":
            found = discover_nuget_config()
            if found is None:
                logger.info("No nuget.config found; using configured sources only")
            return found

        path = Path(setting).expanduser()
        if not path.is_file():
            raise ConfigurationError(
                f"nuget.config not found: {path}",
                config_section="registry", config_key="nuget_config"
            )
        return path

    @staticmethod
    def _source_from_entry(entry: Dict[str, Any]) -> PackageSource:
        url = str(entry["url"])
        username = entry.get("username") or None
        return PackageSource(
            name=str(entry.get("name") or url),
            url=url,
            is_enabled=bool(entry.get("enabled", True)),
            is_official=PackageSource.is_official_url(url),
            requires_auth=bool(username),
            is_authenticated=bool(username),
            username=username,
            password=entry.get("password") or None
        )

    def parse_nuget_config(self, file_path: Path) -> List[PackageSource]:
        """
        Parse the package sources out of a nuget.config file.

        Args:
            file_path: Path to nuget.config

        Returns:
            Package sources in file order

        Raises:
            ConfigurationError: If the file is not well-formed XML
        """
        try:
            tree = ET.parse(file_path)
        except ET.ParseError as e:
            raise ConfigurationError(
                f"Invalid nuget.config {file_path}: {e}",
                config_section="registry", config_key="nuget_config", cause=e
            )
        root = tree.getroot()

        declared: Dict[str, str] = {}
        package_sources = root.find('packageSources')
        if package_sources is not None:
            for element in package_sources:
                if element.tag == 'clear':
                    declared.clear()
                elif element.tag == 'add':
                    key = element.get('key')
                    value = element.get('value')
                    if key and value:
                        declared.pop(key, None)
                        declared[key] = value
                elif element.tag == 'remove':
                    declared.pop(element.get('key', ''), None)

        disabled = set()
        disabled_section = root.find('disabledPackageSources')
        if disabled_section is not None:
            for element in disabled_section.findall('add'):
                if (element.get('value') or '').lower() == 'true':
                    disabled.add((element.get('key') or '').lower())

        credentials = self._parse_credentials(root)

        sources = []
        for name, url in declared.items():
            username, password = credentials.get(name.lower(), (None, None))
            sources.append(PackageSource(
                name=name,
                url=url,
                is_enabled=name.lower() not in disabled,
                is_official=PackageSource.is_official_url(url),
                requires_auth=bool(username),
                is_authenticated=bool(username),
                username=username,
                password=password
            ))

        logger.info(f"Loaded {len(sources)} package sources from {file_path}")
        return sources

    @staticmethod
    def _parse_credentials(root: ET.Element) -> Dict[str, tuple]:
        credentials: Dict[str, tuple] = {}
        section = root.find('packageSourceCredentials')
        if section is None:
            return credentials

        for source_element in section:
            values = {
                (add.get('key') or '').lower(): add.get('value')
                for add in source_element.findall('add')
            }
            username = values.get('username')
            password = values.get('cleartextpassword')
            if values.get('password') and not password:
                # Encrypted passwords only work on the machine that wrote them
                logger.warning(
                    f"Encrypted password for source {_decode_element_name(source_element.tag)} "
                    f"is not supported; use ClearTextPassword"
                )
            credentials[_decode_element_name(source_element.tag).lower()] = (username, password)

        return credentials
