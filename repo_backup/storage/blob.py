"""
Blob storage operations via the cloud storage CLI.

The account key is handed to the CLI through its environment, so it
never shows up in a process listing or a logged command line.
"""

import logging
from pathlib import Path
from typing import Dict, List

from repo_backup.core.config import GitConfig, StorageConfig
from repo_backup.core.exceptions import ContainerError, UploadError
from repo_backup.execution.executor import CommandExecutor

logger = logging.getLogger(__name__)


class BlobStorage:
    """Creates containers and uploads archives to one storage account."""

    def __init__(self, config: StorageConfig, tools: GitConfig, executor: CommandExecutor):
        self.config = config
        self.tools = tools
        self.executor = executor
        self.executor.add_secret(config.account_key)

    def _auth_args(self) -> List[str]:
        return ["--account-name", self.config.account_name]

    def _auth_env(self) -> Dict[str, str]:
        return {
            "AZURE_STORAGE_ACCOUNT": self.config.account_name,
            "AZURE_STORAGE_KEY": self.config.account_key,
        }

    def create_container(self, name: str) -> None:
        """
        Ensure a container exists.

        An existing container counts as success.

        Raises:
            ContainerError: If the CLI exits with a non-zero status.
        """
        result = self.executor.run(
            [
                self.tools.az_binary,
                "storage",
                "container",
                "create",
                "--name",
                name,
                *self._auth_args(),
                "--output",
                "none",
            ],
            env=self._auth_env(),
        )
        if not result.succeeded:
            raise ContainerError(name, result.error_summary())
        logger.info(f"Container ready: {name}")

    def upload_blob(self, archive: Path, container: str) -> str:
        """
        Upload an archive under the configured access tier.

        The archive's base filename is used as the blob name; an
        existing blob with the same name is overwritten.

        Returns:
            The blob name.

        Raises:
            UploadError: If the CLI exits with a non-zero status.
        """
        archive = Path(archive)
        blob_name = archive.name
        result = self.executor.run(
            [
                self.tools.az_binary,
                "storage",
                "blob",
                "upload",
                "--container-name",
                container,
                "--file",
                str(archive),
                "--name",
                blob_name,
                "--tier",
                self.config.access_tier,
                "--overwrite",
                *self._auth_args(),
                "--output",
                "none",
            ],
            env=self._auth_env(),
        )
        if not result.succeeded:
            raise UploadError(blob_name, container, result.error_summary())

        logger.info(f"Uploaded {blob_name} to container {container} ({self.config.access_tier} tier)")
        return blob_name
