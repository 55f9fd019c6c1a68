"""
Error taxonomy for extension management.

Public manager operations never raise these; they are converted into
``InstallationOutcome`` failures at the manager boundary. The catalog raises
``CatalogUnavailableError`` only when no cached manifest can be served.
"""

from __future__ import annotations


class ExtensionsError(Exception):
    """Base exception class for vault_extensions errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        if details:
            super().__init__(f"{message}\n\n{details}")
        else:
            super().__init__(message)


class ExtensionValidationError(ExtensionsError):
    """Raised when an operation is rejected by ledger or dependency checks."""


class TransportError(ExtensionsError):
    """Raised when a catalog or package download fails."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message, details)


class CatalogFormatError(TransportError):
    """Raised when a catalog payload fails structural validation."""


class CatalogUnavailableError(TransportError):
    """Raised when the catalog cannot be fetched and nothing is cached."""


class FilesystemConflictError(ExtensionsError):
    """Raised when a target path cannot be written as requested."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class InstallCancelledError(FilesystemConflictError):
    """Raised when the conflict resolver cancels an install."""


class PersistenceError(ExtensionsError):
    """Raised when the tracking store cannot be read or written."""


class ContentPathError(ValueError):
    """Raised when a content path escapes the content store root."""
