"""
Custom exceptions for the repository backup pipeline.

Provides a hierarchy of exceptions for the individual backup steps,
enabling precise error handling and clear failure reporting.
"""


class BackupError(Exception):
    """Base exception for all backup-related errors."""

    def __init__(self, message: str, stage: str = None, details: dict = None):
        super().__init__(message)
        self.stage = stage
        self.details = details or {}

    def __str__(self):
        base_msg = super().__str__()
        if self.stage:
            return f"[{self.stage}] {base_msg}"
        return base_msg


class ConfigurationError(BackupError):
    """Raised when the run configuration is incomplete or invalid."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Configuration", details=details)


class ListingError(BackupError):
    """Raised when the hosting API cannot list the project's repositories."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Listing", details=details)


class CloneError(BackupError):
    """Raised when git fails to clone a repository."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Clone", details=details)


class SanitizeError(BackupError):
    """Raised when a file inside a clone cannot be renamed."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Sanitize", details=details)


class ArchiveError(BackupError):
    """Raised when a clone cannot be packed into a tarball."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Archive", details=details)


class StorageError(BackupError):
    """Raised when blob storage operations fail."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Storage", details=details)


class ContainerError(StorageError):
    """Raised when a storage container cannot be created."""

    def __init__(self, container: str, reason: str):
        super().__init__(
            f"Container creation failed for '{container}': {reason}",
            details={"container": container, "reason": reason},
        )


class UploadError(StorageError):
    """Raised when an archive cannot be uploaded as a blob."""

    def __init__(self, blob_name: str, container: str, reason: str):
        super().__init__(
            f"Upload of '{blob_name}' to '{container}' failed: {reason}",
            details={"blob": blob_name, "container": container, "reason": reason},
        )
