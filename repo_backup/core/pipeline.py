"""
Backup orchestration.

Runs one strictly sequential pass over the repositories of a project:
for each repository the container is provisioned, the repository is
cloned, sanitized, archived, uploaded, and the local artifacts are
removed before the next repository starts.
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import click

from repo_backup.core.config import BackupConfig
from repo_backup.core.exceptions import BackupError, ContainerError, UploadError
from repo_backup.execution.executor import CommandExecutor, SubprocessExecutor
from repo_backup.hosting.client import AzureDevOpsClient
from repo_backup.hosting.repository import RepositoryDescriptor
from repo_backup.ingestion.git_handler import GitHandler
from repo_backup.ingestion.sanitizer import sanitize_filenames
from repo_backup.storage.archiver import Archiver
from repo_backup.storage.blob import BlobStorage
from repo_backup.storage.cleaner import cleanup_local_artifacts

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_UPLOADS_FAILED = 2


class RepositoryStage(Enum):
    """Progress of a single repository through the backup."""
    LISTED = "listed"
    CLONING = "cloning"
    CLONED = "cloned"
    SANITIZED = "sanitized"
    ARCHIVED = "archived"
    UPLOADED = "uploaded"
    CLEANED = "cleaned"
    FAILED = "failed"


@dataclass
class RepositoryResult:
    """Outcome of backing up one repository."""

    repository: RepositoryDescriptor
    stage: RepositoryStage = RepositoryStage.LISTED
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    container_ready: bool = False
    renamed_files: int = 0
    archive: Optional[str] = None
    blob_name: Optional[str] = None
    failed_stage: Optional[RepositoryStage] = None
    error: Optional[str] = None

    def advance(self, stage: RepositoryStage) -> None:
        self.stage = stage
        if stage == RepositoryStage.CLEANED:
            self.completed_at = datetime.now()

    def fail(self, error: Exception) -> None:
        """Record the failure and the stage that was in progress."""
        self.failed_stage = self.stage
        self.stage = RepositoryStage.FAILED
        self.completed_at = datetime.now()
        self.error = str(error)

    @property
    def succeeded(self) -> bool:
        return self.stage == RepositoryStage.CLEANED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "repository": self.repository.name,
            "container": self.repository.container_name,
            "stage": self.stage.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "container_ready": self.container_ready,
            "renamed_files": self.renamed_files,
            "archive": self.archive,
            "blob_name": self.blob_name,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "error": self.error,
        }


@dataclass
class RunSummary:
    """Aggregate outcome of one backup run."""

    project: str
    run_date: str
    total_repositories: int = 0
    results: List[RepositoryResult] = field(default_factory=list)
    aborted: bool = False
    abort_reason: Optional[str] = None

    @property
    def succeeded(self) -> List[RepositoryResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> List[RepositoryResult]:
        return [r for r in self.results if r.stage == RepositoryStage.FAILED]

    @property
    def exit_code(self) -> int:
        if self.aborted:
            return EXIT_FATAL
        if self.failed:
            return EXIT_UPLOADS_FAILED
        return EXIT_OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project,
            "run_date": self.run_date,
            "total_repositories": self.total_repositories,
            "processed": len(self.results),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "exit_code": self.exit_code,
            "results": [r.to_dict() for r in self.results],
        }

    def save(self, path: Path) -> None:
        """Write the summary as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.debug(f"Run summary saved to {path}")


def find_container_collisions(
    repositories: List[RepositoryDescriptor],
) -> Dict[str, List[str]]:
    """Map each container name shared by several repositories to their names."""
    by_container: Dict[str, List[str]] = defaultdict(list)
    for repository in repositories:
        by_container[repository.container_name].append(repository.name)
    return {c: names for c, names in by_container.items() if len(names) > 1}


class BackupPipeline:
    """
    Orchestrates the backup of every repository in a project.

    Collaborators are built from the configuration unless supplied,
    which lets tests substitute the command executor and the API client.
    """

    def __init__(
        self,
        config: BackupConfig,
        executor: Optional[CommandExecutor] = None,
        client: Optional[AzureDevOpsClient] = None,
        echo: Callable[[str], None] = click.echo,
    ):
        self.config = config
        self.executor = executor or SubprocessExecutor(timeout=config.command_timeout)
        self.client = client or AzureDevOpsClient(
            organization_url=config.hosting.organization_url,
            project=config.hosting.project,
            credential=config.hosting.credential,
            api_version=config.hosting.api_version,
            timeout=config.hosting.request_timeout,
        )
        self.echo = echo
        self.work_dir = Path(config.work_dir).resolve()

        self.git = GitHandler(config.git, self.executor, config.hosting.credential)
        self.archiver = Archiver(config.git, self.executor)
        self.storage = BlobStorage(config.storage, config.git, self.executor)

    def clone_dir_for(self, repository: RepositoryDescriptor) -> Path:
        return self.work_dir / repository.name

    def run(self) -> RunSummary:
        """
        Back up every repository in the project.

        A fatal failure stops the run before any later repository is
        attempted and is recorded on the returned summary.

        Raises:
            ListingError: If the repositories cannot be listed.
        """
        repositories = self.client.list_repositories()
        summary = RunSummary(
            project=self.config.hosting.project,
            run_date=self.config.run_date,
            total_repositories=len(repositories),
        )

        for container, names in find_container_collisions(repositories).items():
            logger.warning(
                f"Repositories {', '.join(names)} share container '{container}'; "
                "their archives will land in the same container"
            )

        self.work_dir.mkdir(parents=True, exist_ok=True)

        for index, repository in enumerate(repositories, start=1):
            self.echo(f"Processing repository {index}/{len(repositories)}: {repository.name}")
            result = RepositoryResult(repository=repository)
            summary.results.append(result)

            try:
                self.process_repository(repository, result)
            except BackupError as e:
                logger.error(f"{e.stage or 'Backup'} failed for {repository.name}: {e}")
                summary.aborted = True
                summary.abort_reason = str(e)
                break

        self._report(summary)
        return summary

    def process_repository(
        self, repository: RepositoryDescriptor, result: Optional[RepositoryResult] = None
    ) -> RepositoryResult:
        """
        Run the full backup cycle for one repository.

        Raises:
            BackupError: On any failure that must abort the run.
        """
        result = result or RepositoryResult(repository=repository)
        container = repository.container_name
        clone_dir = self.clone_dir_for(repository)

        try:
            self.echo(f"  Creating container: {container}")
            try:
                self.storage.create_container(container)
                result.container_ready = True
            except ContainerError as e:
                logger.warning(f"{e}; continuing with upload attempt")

            result.advance(RepositoryStage.CLONING)
            self.git.clone_repository(repository, clone_dir)
            result.advance(RepositoryStage.CLONED)
            self.echo(f"  Cloned {repository.name}")

            renamed = sanitize_filenames(clone_dir)
            for source, target in renamed:
                self.echo(f"  Renamed '{source.name}' -> '{target.name}'")
            result.renamed_files = len(renamed)
            result.advance(RepositoryStage.SANITIZED)

            archive = self.archiver.create_archive(clone_dir, self.config.run_date)
            result.archive = str(archive)
            result.advance(RepositoryStage.ARCHIVED)
            self.echo(f"  Archive: {archive}")

            try:
                result.blob_name = self.storage.upload_blob(archive, container)
            except UploadError as e:
                if self.config.on_upload_failure == "abort":
                    raise
                result.fail(e)
                logger.error(f"{e}; keeping {clone_dir} and {archive} for a later retry")
                return result
            result.advance(RepositoryStage.UPLOADED)
            self.echo(f"  Uploaded {result.blob_name} to container {container}")

            cleanup_local_artifacts(clone_dir, archive)
            result.advance(RepositoryStage.CLEANED)
        except (BackupError, OSError) as e:
            result.fail(e)
            raise

        return result

    def _report(self, summary: RunSummary) -> None:
        if summary.aborted:
            self.echo(
                f"Backup aborted after {len(summary.results)} of "
                f"{summary.total_repositories} repositories: {summary.abort_reason}"
            )
            return

        self.echo("=" * 60)
        self.echo("BACKUP COMPLETE")
        self.echo("=" * 60)
        self.echo(f"Project:      {summary.project}")
        self.echo(f"Date:         {summary.run_date}")
        self.echo(f"Backed up:    {len(summary.succeeded)}/{summary.total_repositories}")
        if summary.failed:
            self.echo(f"Failed:       {', '.join(r.repository.name for r in summary.failed)}")
        self.echo("=" * 60)
