"""
Archiving, blob storage and local cleanup.
"""

from repo_backup.storage.archiver import Archiver, archive_path_for
from repo_backup.storage.blob import BlobStorage
from repo_backup.storage.cleaner import cleanup_local_artifacts

__all__ = [
    "Archiver",
    "BlobStorage",
    "archive_path_for",
    "cleanup_local_artifacts",
]
