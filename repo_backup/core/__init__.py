"""
Core module containing configuration and the exception hierarchy.

The orchestrator lives in ``repo_backup.core.pipeline``.
"""

from repo_backup.core.config import (
    BackupConfig,
    Config,
    GitConfig,
    HostingConfig,
    StorageConfig,
    current_run_date,
)
from repo_backup.core.exceptions import (
    ArchiveError,
    BackupError,
    CloneError,
    ConfigurationError,
    ContainerError,
    ListingError,
    SanitizeError,
    StorageError,
    UploadError,
)

__all__ = [
    "BackupConfig",
    "Config",
    "GitConfig",
    "HostingConfig",
    "StorageConfig",
    "current_run_date",
    "ArchiveError",
    "BackupError",
    "CloneError",
    "ConfigurationError",
    "ContainerError",
    "ListingError",
    "SanitizeError",
    "StorageError",
    "UploadError",
]
