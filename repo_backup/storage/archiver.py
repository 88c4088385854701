"""
Tarball creation for cloned repositories.
"""

import logging
from pathlib import Path

from repo_backup.core.config import GitConfig
from repo_backup.core.exceptions import ArchiveError
from repo_backup.execution.executor import CommandExecutor

logger = logging.getLogger(__name__)


def archive_path_for(local_dir: Path, run_date: str) -> Path:
    """Archive name for a clone at ``P`` on date ``D``: ``P_D.tar.gz``."""
    local_dir = Path(local_dir)
    return local_dir.with_name(f"{local_dir.name}_{run_date}.tar.gz")


class Archiver:
    """Packs a clone directory into a gzip-compressed tarball."""

    def __init__(self, config: GitConfig, executor: CommandExecutor):
        self.config = config
        self.executor = executor

    def create_archive(self, local_dir: Path, run_date: str) -> Path:
        """
        Create ``<local_dir>_<run_date>.tar.gz`` next to ``local_dir``.

        The archive is built relative to the parent directory so that
        its single root entry is the repository folder.

        Raises:
            ArchiveError: If tar exits with a non-zero status.
        """
        local_dir = Path(local_dir)
        archive = archive_path_for(local_dir, run_date)

        result = self.executor.run(
            [
                self.config.tar_binary,
                "-czf",
                str(archive),
                "-C",
                str(local_dir.parent),
                "--",
                local_dir.name,
            ]
        )
        if not result.succeeded:
            raise ArchiveError(
                f"Could not archive {local_dir}: {result.error_summary()}",
                details={"path": str(local_dir), "archive": str(archive)},
            )

        logger.info(f"Archive created: {archive}")
        return archive
