"""Custom exceptions for codewith.

This module defines a hierarchy of exceptions for consistent error handling
across the store, the materializer, reconciliation and sync. All exceptions
inherit from CodewithError, allowing callers to catch every codewith error
with a single except clause if desired.

Details never carry file contents or credentials: only paths, app names,
provider ids and versions.

Exception hierarchy:
    CodewithError (base)
    ├── ConfigurationError
    │   └── ValidationError
    ├── StoreError
    │   ├── CorruptStoreError
    │   ├── InvalidSelectionError
    │   ├── ProviderNotFoundError
    │   ├── DuplicateProviderError
    │   └── ProviderInUseError
    ├── MaterializationError
    │   └── PartialMaterializationError
    ├── InvalidOverrideError
    └── SyncError
"""

from pathlib import Path
from typing import Any


class CodewithError(Exception):
    """Base exception for all codewith errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize codewith error.

        Args:
            message: Error description.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(CodewithError):
    """Raised when configuration is invalid or cannot be loaded."""

    def __init__(
        self,
        message: str,
        config_file: Path | None = None,
        key: str | None = None,
    ):
        details: dict[str, Any] = {}
        if config_file:
            details["config_file"] = str(config_file)
        if key:
            details["key"] = key
        super().__init__(message, details)
        self.config_file = config_file
        self.key = key


class ValidationError(ConfigurationError):
    """Raised when a configuration value fails validation.

    Examples:
        - Non-positive log rotation size
        - Provider id that does not match its mapping key
    """

    def __init__(
        self,
        message: str,
        field: str,
        value: Any = None,
        expected: str | None = None,
    ):
        """Initialize validation error.

        Args:
            message: Error description.
            field: The field that failed validation.
            value: The invalid value (will be truncated if too long).
            expected: Description of expected value format.
        """
        super().__init__(message)
        self.details["field"] = field
        if value is not None:
            value_str = str(value)
            self.details["value"] = value_str[:100] + "..." if len(value_str) > 100 else value_str
        if expected:
            self.details["expected"] = expected
        self.field = field
        self.value = value
        self.expected = expected


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(CodewithError):
    """Base class for SSOT store errors."""


class CorruptStoreError(StoreError):
    """Raised when the SSOT document cannot be read.

    The file is left untouched. Recovery is an explicit user action
    (``codewith store reset``).
    """

    def __init__(self, path: Path, reason: str):
        super().__init__("Config store is unreadable", {"path": str(path), "reason": reason})
        self.path = path
        self.reason = reason


class InvalidSelectionError(StoreError):
    """Raised when a mutation would leave currentId pointing at no provider."""

    def __init__(self, app: str, current_id: str):
        super().__init__(
            "Selected provider does not exist",
            {"app": app, "current_id": current_id},
        )
        self.app = app
        self.current_id = current_id


class ProviderNotFoundError(StoreError):
    """Raised when an operation names a provider the app does not have."""

    def __init__(self, app: str, provider_id: str):
        super().__init__("Provider not found", {"app": app, "provider_id": provider_id})
        self.app = app
        self.provider_id = provider_id


class DuplicateProviderError(StoreError):
    """Raised when adding a provider whose id is already taken."""

    def __init__(self, app: str, provider_id: str):
        super().__init__("Provider already exists", {"app": app, "provider_id": provider_id})
        self.app = app
        self.provider_id = provider_id


class ProviderInUseError(StoreError):
    """Raised when deleting the provider that is currently selected."""

    def __init__(self, app: str, provider_id: str):
        super().__init__("Provider is currently selected", {"app": app, "provider_id": provider_id})
        self.app = app
        self.provider_id = provider_id


# =============================================================================
# Materialization Errors
# =============================================================================


class MaterializationError(CodewithError):
    """Raised when live config files could not be written.

    When raised, no live file was changed.
    """

    def __init__(self, message: str, app: str, path: Path | None = None):
        details: dict[str, Any] = {"app": app}
        if path:
            details["path"] = str(path)
        super().__init__(message, details)
        self.app = app
        self.path = path


class PartialMaterializationError(MaterializationError):
    """Raised when a multi-file write stopped after some files were replaced.

    Attributes:
        applied_files: Files that already carry the new provider.
        failed_file: The file that still carries the old content.
        committed: Set by callers once the SSOT change has been saved.
    """

    def __init__(self, app: str, applied_files: list[Path], failed_file: Path):
        super().__init__("Live config was only partly written", app, failed_file)
        self.details["applied"] = ", ".join(str(p) for p in applied_files)
        self.applied_files = applied_files
        self.failed_file = failed_file
        self.committed = False

    def mark_committed(self) -> None:
        self.committed = True
        self.details["committed"] = True


# =============================================================================
# Reconciliation and Sync Errors
# =============================================================================


class InvalidOverrideError(CodewithError):
    """Raised when an admin override cannot be applied. Local state is untouched."""

    def __init__(self, version: int, reason: str):
        super().__init__("Admin override rejected", {"version": version, "reason": reason})
        self.version = version
        self.reason = reason


class SyncError(CodewithError):
    """Raised when talking to the admin service fails."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if url:
            details["url"] = url
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url
