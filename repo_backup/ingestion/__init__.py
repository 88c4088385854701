"""
Repository ingestion: cloning and post-clone filename normalization.
"""

from repo_backup.ingestion.git_handler import GitHandler
from repo_backup.ingestion.sanitizer import sanitize_filenames

__all__ = [
    "GitHandler",
    "sanitize_filenames",
]
