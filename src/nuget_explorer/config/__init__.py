"""
Configuration management for the NuGet explorer.
"""

from .config_manager import (
    ConfigManager, AppConfig, RegistryConfig, VulnerabilityConfig,
    AnalysisConfig, CacheConfig, LoggingConfig, get_config_manager,
    get_config, reset_config_manager, masked_config_dict, DEFAULT_SOURCE_NAME, DEFAULT_SOURCE_URL
)

__all__ = [
    "ConfigManager",
    "AppConfig",
    "RegistryConfig",
    "VulnerabilityConfig",
    "AnalysisConfig",
    "CacheConfig",
    "LoggingConfig",
    "get_config_manager",
    "get_config",
    "reset_config_manager",
    "masked_config_dict",
    "DEFAULT_SOURCE_NAME",
    "DEFAULT_SOURCE_URL"
]
