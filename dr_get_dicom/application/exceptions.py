"""
Core business exceptions for the DICOM retriever.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains. Every per-item error
is caught by the pipeline stage that raised it; none of them aborts a run.
"""


class RetrieverError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(RetrieverError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(RetrieverError):
    """Base class for errors related to external systems (iRODS, disk)."""
    pass


class CatalogQueryError(InfrastructureError):
    """Raised when a catalog query exits with a non-zero status."""

    def __init__(self, query: str, exit_status: int, diagnostic: str):
        super().__init__(
            f"query exited with status {exit_status}: {diagnostic or query}"
        )
        self.query = query
        self.exit_status = exit_status
        self.diagnostic = diagnostic


class TransferError(InfrastructureError):
    """Raised when fetching a data object returns a non-zero status."""

    def __init__(self, remote_name: str, exit_status: int, diagnostic: str):
        super().__init__(
            f"cannot fetch {remote_name} (exit {exit_status}): {diagnostic}"
        )
        self.remote_name = remote_name
        self.exit_status = exit_status
        self.diagnostic = diagnostic


# --- Domain/Business Logic Errors ---

class DomainError(RetrieverError):
    """Base class for errors related to business logic failures."""
    pass


class PathResolutionError(DomainError):
    """Raised when the date marker is missing from a remote name."""
    pass


class DirectoryCreationError(DomainError):
    """Raised when a local destination directory cannot be created."""
    pass


class ArchiveOpenError(DomainError):
    """Raised when a compressed archive is malformed or truncated."""
    pass


class EmptyArchiveError(DomainError):
    """Raised when an archive holds no regular-file entries."""
    pass


class ArtifactWriteError(DomainError):
    """Raised when an extracted file cannot be written to local disk."""
    pass
