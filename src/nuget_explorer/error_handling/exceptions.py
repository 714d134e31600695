"""
Custom exceptions for the NuGet explorer.
"""

from typing import Optional, Dict, Any, List


class NuGetExplorerError(Exception):
    """
    Base exception for all NuGet explorer errors.

    Carries an optional error code, a context dictionary and the original
    exception, so callers can log a failure without losing its origin.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize NuGet explorer error.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        parts = [self.message]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")

        if self.cause:
            parts.append(f"Caused by: {self.cause}")

        return " | ".join(parts)


class SourceQueryError(NuGetExplorerError):
    """
    Raised when a single package feed fails to answer a query.

    The source aggregator logs and skips these; other feeds are still
    consulted.
    """

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if source_name:
            context['source'] = source_name
        if url:
            context['url'] = url
        if status_code:
            context['status_code'] = status_code

        kwargs['context'] = context
        kwargs.setdefault('error_code', 'SOURCE_QUERY_FAILED')
        super().__init__(message, **kwargs)

        self.source_name = source_name
        self.url = url
        self.status_code = status_code


class VersionParseError(NuGetExplorerError):
    """Raised when a package version string is not a valid semantic version."""

    def __init__(self, message: str, package_id: Optional[str] = None, version: Optional[str] = None, **kwargs):
        context = kwargs.get('context', {})
        if package_id:
            context['package_id'] = package_id
        if version is not None:
            context['version'] = version

        kwargs['context'] = context
        kwargs.setdefault('error_code', 'INVALID_VERSION')
        super().__init__(message, **kwargs)

        self.package_id = package_id
        self.version = version


class PackageAnalysisError(NuGetExplorerError):
    """
    Wraps an unexpected failure inside one package's analysis unit.

    The orchestrator logs it and substitutes a degraded record; it never
    aborts the batch.
    """

    def __init__(self, message: str, package_id: Optional[str] = None, version: Optional[str] = None, **kwargs):
        context = kwargs.get('context', {})
        if package_id:
            context['package_id'] = package_id
        if version:
            context['version'] = version

        kwargs['context'] = context
        kwargs.setdefault('error_code', 'PACKAGE_ANALYSIS_FAILED')
        super().__init__(message, **kwargs)

        self.package_id = package_id
        self.version = version


class AnalysisCancelledError(NuGetExplorerError):
    """Raised when the batch cancellation token is triggered."""

    def __init__(self, message: str = "Package analysis was cancelled", **kwargs):
        kwargs.setdefault('error_code', 'CANCELLED')
        super().__init__(message, **kwargs)


class VulnerabilityFeedError(NuGetExplorerError):
    """Raised when the vulnerability feed cannot be queried."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if url:
            context['url'] = url
        if status_code:
            context['status_code'] = status_code

        kwargs['context'] = context
        kwargs.setdefault('error_code', 'VULNERABILITY_FEED_FAILED')
        super().__init__(message, **kwargs)

        self.url = url
        self.status_code = status_code


class ConfigurationError(NuGetExplorerError):
    """
    Exception for configuration errors.

    Raised when configuration values fail validation while loading.
    """

    def __init__(
        self,
        message: str,
        config_section: Optional[str] = None,
        config_key: Optional[str] = None,
        invalid_values: Optional[List[Any]] = None,
        **kwargs
    ):
        """
        Initialize configuration error.

        Args:
            message: Error message
            config_section: Configuration section with error
            config_key: Specific configuration key with error
            invalid_values: Offending values, if any
            **kwargs: Additional arguments for base class
        """
        context = kwargs.get('context', {})
        if config_section:
            context['config_section'] = config_section
        if config_key:
            context['config_key'] = config_key
        if invalid_values:
            context['invalid_values'] = invalid_values

        kwargs['context'] = context
        kwargs.setdefault('error_code', 'INVALID_CONFIGURATION')
        super().__init__(message, **kwargs)

        self.config_section = config_section
        self.config_key = config_key


class ProjectFileError(NuGetExplorerError):
    """Raised when a project or package list file cannot be read."""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        context = kwargs.get('context', {})
        if file_path:
            context['file_path'] = file_path

        kwargs['context'] = context
        kwargs.setdefault('error_code', 'INVALID_PROJECT_FILE')
        super().__init__(message, **kwargs)

        self.file_path = file_path
