"""
Configuration management system for the NuGet explorer.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union, List
from dataclasses import dataclass, field, fields, asdict
import copy
import logging
import re

from ..error_handling.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_NAME = "nuget.org"
DEFAULT_SOURCE_URL = "https://api.nuget.org/v3/index.json"
DEFAULT_OSV_URL = "https://api.osv.dev/v1/query"

_TRUE_VALUES = ("true", "yes", "on", "1")
_FALSE_VALUES = ("false", "no", "off", "0")
_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass
class RegistryConfig:
    """Package feed configuration."""
    nuget_config: Optional[str] = "auto"  # "auto" discovers it like NuGet does; empty disables
    sources: list = field(default_factory=lambda: [
        {"name": DEFAULT_SOURCE_NAME, "url": DEFAULT_SOURCE_URL, "enabled": True}
    ])
    timeout: int = 30
    user_agent: str = "nuget-explorer/0.1"


@dataclass
class VulnerabilityConfig:
    """Vulnerability feed configuration."""
    enabled: bool = True
    api_url: str = DEFAULT_OSV_URL
    timeout: int = 30


@dataclass
class AnalysisConfig:
    """Batch analysis configuration."""
    max_concurrency: int = 16
    include_prerelease: bool = False
    severity_filter: str = "all"


@dataclass
class CacheConfig:
    """Cache lifetimes, in seconds."""
    versions_ttl: int = 3600
    metadata_ttl: int = 86400
    sources_ttl: int = 3600


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_file_size: int = 10  # MB
    backup_count: int = 5
    structured: bool = False


@dataclass
class AppConfig:
    """Complete application configuration."""
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    vulnerability: VulnerabilityConfig = field(default_factory=VulnerabilityConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_SECTION_TYPES = {
    "registry": RegistryConfig,
    "vulnerability": VulnerabilityConfig,
    "analysis": AnalysisConfig,
    "cache": CacheConfig,
    "logging": LoggingConfig
}


class ConfigManager:
    """
    Manages application configuration from multiple sources.

    Configuration is loaded in the following order (later sources override earlier):
    1. Default configuration
    2. Configuration file
    3. Environment variables
    4. Explicit overrides (command-line options)
    """

    VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    VALID_SEVERITY_FILTERS = {"all", "low", "medium", "high", "critical"}

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to a YAML configuration file
            overrides: Nested dictionary applied after environment variables
        """
        self.config_file = Path(config_file) if config_file else None
        self.overrides = overrides or {}
        self._config: Optional[AppConfig] = None
        self._env_var_mapping = self._create_env_var_mapping()

    def _create_env_var_mapping(self) -> Dict[str, str]:
        """Create mapping of environment variables to config paths."""
        return {
            # Registry configuration
            "NUGET_CONFIG": "registry.nuget_config",
            "NUGET_TIMEOUT": "registry.timeout",
            "NUGET_USER_AGENT": "registry.user_agent",

            # Vulnerability configuration
            "VULNERABILITY_CHECK": "vulnerability.enabled",
            "OSV_API_URL": "vulnerability.api_url",
            "OSV_TIMEOUT": "vulnerability.timeout",

            # Analysis configuration
            "ANALYSIS_MAX_CONCURRENCY": "analysis.max_concurrency",
            "ANALYSIS_INCLUDE_PRERELEASE": "analysis.include_prerelease",
            "ANALYSIS_SEVERITY_FILTER": "analysis.severity_filter",

            # Cache configuration
            "CACHE_VERSIONS_TTL": "cache.versions_ttl",
            "CACHE_METADATA_TTL": "cache.metadata_ttl",
            "CACHE_SOURCES_TTL": "cache.sources_ttl",

            # Logging configuration
            "LOG_LEVEL": "logging.level",
            "LOG_FILE": "logging.file",
            "LOG_FORMAT": "logging.format",
            "LOG_MAX_SIZE": "logging.max_file_size",
            "LOG_BACKUP_COUNT": "logging.backup_count",
            "LOG_STRUCTURED": "logging.structured",
        }

    def load_config(self) -> AppConfig:
        """
        Load configuration from all sources.

        Returns:
            Complete application configuration

        Raises:
            ConfigurationError: If a value fails validation
        """
        if self._config is not None:
            return self._config

        defaults = self._get_default_config()
        layers = []

        if self.config_file and self.config_file.exists():
            layers.append(self._load_config_file(self.config_file))
        elif self.config_file:
            logger.warning(f"Configuration file not found: {self.config_file}")

        layers.append(self._load_env_config(defaults))
        layers.append(self.overrides)

        config_dict = defaults
        for layer in layers:
            config_dict = self._merge_configs(config_dict, layer)

        config_dict = self._substitute_env_vars(config_dict)
        self._validate_config(config_dict)

        self._config = self._dict_to_config(config_dict)
        return self._config

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values."""
        return AppConfig().to_dict()

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Configuration dictionary

        Raises:
            ConfigurationError: If the file cannot be read or is not a YAML mapping
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load configuration file {config_path}: {e}", cause=e)

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping of sections")

        logger.info(f"Loaded configuration from {config_path}")
        return config

    def _load_env_config(self, defaults: Dict[str, Any]) -> Dict[str, Any]:
        """Collect environment variable overrides, typed like the defaults they replace."""
        env_config: Dict[str, Any] = {}

        for env_var, config_path in self._env_var_mapping.items():
            raw = os.getenv(env_var)
            if raw is None:
                continue

            section, key = config_path.split('.', 1)
            default = defaults.get(section, {}).get(key)
            env_config.setdefault(section, {})[key] = self._convert_env_value(env_var, raw, default)

        return env_config

    @staticmethod
    def _convert_env_value(env_var: str, raw: str, default: Any) -> Any:
        """
        Convert an environment variable to the type of the setting's default.

        Settings without a typed default (optional paths) stay strings.
        """
        value = raw.strip()
        if isinstance(default, bool):
            lowered = value.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ConfigurationError(f"{env_var} must be true or false, got {raw!r}")

        if isinstance(default, (int, float)):
            try:
                return type(default)(value)
            except ValueError:
                raise ConfigurationError(f"{env_var} must be a number, got {raw!r}")

        return value

    @staticmethod
    def _substitute_env_vars(config: Any) -> Any:
        """Expand ``${VAR}`` references inside string values; unknown variables are left in place."""
        if isinstance(config, dict):
            return {k: ConfigManager._substitute_env_vars(v) for k, v in config.items()}
        if isinstance(config, list):
            return [ConfigManager._substitute_env_vars(item) for item in config]
        if isinstance(config, str):
            return _ENV_REFERENCE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), config)
        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge ``override`` into a copy of ``base``; lists are replaced, not merged."""
        result = copy.deepcopy(base)

        for key, value in override.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        log_level = str(config.get("logging", {}).get("level", "INFO")).upper()
        if log_level not in self.VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {log_level}. Valid levels: {sorted(self.VALID_LOG_LEVELS)}",
                config_section="logging", config_key="level"
            )

        max_concurrency = config.get("analysis", {}).get("max_concurrency")
        if not isinstance(max_concurrency, int) or isinstance(max_concurrency, bool) or max_concurrency < 1:
            raise ConfigurationError(
                f"analysis.max_concurrency must be a positive integer, got {max_concurrency!r}",
                config_section="analysis", config_key="max_concurrency"
            )

        severity_filter = str(config.get("analysis", {}).get("severity_filter", "all")).lower()
        if severity_filter not in self.VALID_SEVERITY_FILTERS:
            raise ConfigurationError(
                f"Invalid severity filter: {severity_filter}",
                config_section="analysis", config_key="severity_filter"
            )

        for key, ttl in config.get("cache", {}).items():
            if not isinstance(ttl, (int, float)) or isinstance(ttl, bool) or ttl <= 0:
                raise ConfigurationError(
                    f"cache.{key} must be a positive number of seconds, got {ttl!r}",
                    config_section="cache", config_key=key
                )

        sources = config.get("registry", {}).get("sources") or []
        invalid = [s for s in sources if not isinstance(s, dict) or not s.get("url")]
        if invalid:
            raise ConfigurationError(
                "Every registry source needs a url",
                config_section="registry", config_key="sources", invalid_values=invalid
            )

        if not sources and not config.get("registry", {}).get("nuget_config"):
            logger.warning("No package sources configured - update checks will find nothing")

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> AppConfig:
        """Convert configuration dictionary to AppConfig object."""
        sections = {}
        for name, section_type in _SECTION_TYPES.items():
            values = dict(config_dict.get(name) or {})
            unknown = set(values) - {f.name for f in fields(section_type)}
            if unknown:
                raise ConfigurationError(
                    f"Unknown setting(s) in section '{name}': {', '.join(sorted(unknown))}",
                    config_section=name
                )
            sections[name] = section_type(**values)

        sections["logging"].level = str(sections["logging"].level).upper()
        sections["analysis"].severity_filter = str(sections["analysis"].severity_filter).lower()
        return AppConfig(**sections)

    def get_config(self) -> AppConfig:
        """Get the current configuration, loading it on first use."""
        if self._config is None:
            return self.load_config()
        return self._config

    def reload_config(self) -> AppConfig:
        """Reload configuration from all sources."""
        self._config = None
        return self.load_config()

    def save_config(self, config_path: Optional[Path] = None) -> None:
        """
        Save current configuration to file. Source passwords are not written.

        Args:
            config_path: Path to save configuration file
        """
        if config_path is None:
            config_path = self.config_file or Path("nuget-explorer.yaml")

        config_dict = self.get_config().to_dict()
        config_dict["registry"]["sources"] = [
            {k: v for k, v in source.items() if k != "password"}
            for source in config_dict["registry"]["sources"]
        ]

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2)

        logger.info(f"Configuration saved to {config_path}")


def masked_config_dict(config: AppConfig) -> Dict[str, Any]:
    """Configuration as a dictionary with secrets replaced by asterisks."""
    config_dict = config.to_dict()
    sources: List[Dict[str, Any]] = []
    for source in config_dict["registry"]["sources"]:
        source = dict(source)
        if source.get("password"):
            source["password"] = "*" * 8
        sources.append(source)
    config_dict["registry"]["sources"] = sources
    return config_dict


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_file: Optional[Union[str, Path]] = None) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        config_file: Path to configuration file (only used on first call)

    Returns:
        ConfigManager instance
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(config_file)
    return _config_manager


def get_config() -> AppConfig:
    """Get the current application configuration."""
    return get_config_manager().get_config()


def reset_config_manager() -> None:
    """Drop the global configuration manager."""
    global _config_manager
    _config_manager = None
