"""
Git operations handler for repository backup.

Provides full-history cloning of hosted repositories with the access
token injected as an HTTP header.
"""

import logging
import shutil
from pathlib import Path

from repo_backup.core.config import GitConfig
from repo_backup.core.exceptions import CloneError
from repo_backup.execution.executor import CommandExecutor
from repo_backup.hosting.client import basic_auth_header, basic_auth_token
from repo_backup.hosting.repository import RepositoryDescriptor

logger = logging.getLogger(__name__)


class GitHandler:
    """
    Handles Git operations for the backup pipeline.

    The credential is passed to git through ``-c http.extraHeader`` so
    it is never written into the clone's ``.git/config``.
    """

    def __init__(self, config: GitConfig, executor: CommandExecutor, credential: str):
        self.config = config
        self.executor = executor
        self._auth_header = basic_auth_header(credential)
        self.executor.add_secret(credential)
        self.executor.add_secret(basic_auth_token(credential))

    def build_clone_command(self, url: str, clone_path: Path) -> list:
        return [
            self.config.git_binary,
            "-c",
            f"http.extraHeader=Authorization: {self._auth_header}",
            "clone",
            url,
            str(clone_path),
        ]

    def clone_repository(self, repository: RepositoryDescriptor, clone_path: Path) -> Path:
        """
        Clone a repository with its full history.

        Any existing directory at ``clone_path`` is deleted first.

        Args:
            repository: Repository to clone.
            clone_path: Directory to clone into.

        Returns:
            Path to the cloned repository.

        Raises:
            CloneError: If git exits with a non-zero status.
        """
        clone_path = Path(clone_path)
        if clone_path.exists():
            logger.warning(f"Removing existing directory: {clone_path}")
            shutil.rmtree(clone_path)
        clone_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Cloning repository: {repository.clone_url}")
        result = self.executor.run(self.build_clone_command(repository.clone_url, clone_path))

        if not result.succeeded:
            raise CloneError(
                f"Git clone failed for '{repository.name}': {result.error_summary()}",
                details={
                    "repository": repository.name,
                    "url": repository.clone_url,
                    "returncode": result.returncode,
                    "stderr": result.stderr,
                },
            )

        logger.info(f"Repository cloned to: {clone_path}")
        return clone_path
