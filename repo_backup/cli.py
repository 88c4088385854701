"""
Command-line interface for the repository backup tool.

Provides commands for backing up every repository of a project,
listing what would be backed up, and writing a configuration template.
"""

import sys
from pathlib import Path

import click
from dotenv import find_dotenv, load_dotenv

from repo_backup import __version__
from repo_backup.core.config import Config, UPLOAD_FAILURE_POLICIES
from repo_backup.core.exceptions import BackupError
from repo_backup.utils.logging_config import setup_logging


def _build_config(ctx, organization_url, project, credential,
                  storage_account=None, storage_key=None):
    """Layer file, environment and command-line settings."""
    config_file = ctx.obj.get("config_file")
    config = Config.load_from_file(config_file) if config_file else None
    config = Config.load_from_env(config)

    if organization_url:
        config.hosting.organization_url = organization_url
    if project:
        config.hosting.project = project
    if credential:
        config.hosting.credential = credential
    if storage_account:
        config.storage.account_name = storage_account
    if storage_key:
        config.storage.account_key = storage_key

    config.verbose = config.verbose or ctx.obj.get("verbose", False)
    return config


def _fail(ctx, error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get("verbose"):
        import traceback
        traceback.print_exc()
    sys.exit(1)


hosting_options = [
    click.option("--org-url", "organization_url", envvar="ADO_ORG_URL",
                 help="Organization URL, e.g. https://dev.azure.com/contoso"),
    click.option("--project", envvar="ADO_PROJECT", help="Project name"),
    click.option("--pat", "credential", envvar="ADO_PAT",
                 help="Personal access token"),
]


def with_hosting_options(func):
    for option in reversed(hosting_options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.option(
    "--log-file",
    type=click.Path(),
    help="Path to log file"
)
@click.option(
    "--config", "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON configuration file (secrets are read from the environment)"
)
@click.pass_context
def cli(ctx, verbose, log_file, config_file):
    """
    Repository Backup

    Clone every repository of a project, archive it and upload the
    archive to blob storage.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_file"] = config_file

    log_level = "DEBUG" if verbose else "INFO"
    setup_logging(level=log_level, log_file=Path(log_file) if log_file else None)


@cli.command()
@with_hosting_options
@click.option("--storage-account", envvar="AZURE_STORAGE_ACCOUNT",
              help="Storage account name")
@click.option("--storage-key", envvar="AZURE_STORAGE_KEY",
              help="Storage account key")
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False),
    help="Directory for clones and archives (default: ./backup_work)"
)
@click.option(
    "--on-upload-failure",
    type=click.Choice(UPLOAD_FAILURE_POLICIES),
    help="Keep local artifacts and continue, or abort the run (default: keep)"
)
@click.option(
    "--command-timeout",
    type=int,
    help="Timeout in seconds for git, tar and az invocations"
)
@click.option(
    "--summary-file",
    type=click.Path(dir_okay=False),
    help="Write a JSON summary of the run to this file"
)
@click.pass_context
def run(ctx, organization_url, project, credential, storage_account, storage_key,
        work_dir, on_upload_failure, command_timeout, summary_file):
    """
    Back up every repository of a project.

    Exits with 0 when every repository was uploaded, 1 when the run was
    aborted, and 2 when some uploads failed and their archives were kept.

    Examples:

        repo-backup run --org-url https://dev.azure.com/contoso --project Web

        ADO_PAT=... AZURE_STORAGE_KEY=... repo-backup run --on-upload-failure abort
    """
    from repo_backup.core.pipeline import BackupPipeline

    try:
        config = _build_config(ctx, organization_url, project, credential,
                               storage_account, storage_key)
        if work_dir:
            config.work_dir = work_dir
        if on_upload_failure:
            config.on_upload_failure = on_upload_failure
        if command_timeout:
            config.command_timeout = command_timeout

        config.validate()
        click.echo(f"Backing up project '{config.hosting.project}' ({config.run_date})")
        click.echo()

        pipeline = BackupPipeline(config)
        summary = pipeline.run()
    except Exception as e:
        _fail(ctx, e)

    if summary_file:
        summary.save(Path(summary_file))
        click.echo(f"\nSummary saved to: {summary_file}")

    sys.exit(summary.exit_code)


@cli.command(name="list")
@with_hosting_options
@click.pass_context
def list_repositories(ctx, organization_url, project, credential):
    """List the repositories of a project and their container names."""
    from repo_backup.core.pipeline import find_container_collisions
    from repo_backup.hosting.client import AzureDevOpsClient

    try:
        config = _build_config(ctx, organization_url, project, credential)
        if not (config.hosting.organization_url and config.hosting.project
                and config.hosting.credential):
            raise click.UsageError("--org-url, --project and --pat are required")

        client = AzureDevOpsClient(
            organization_url=config.hosting.organization_url,
            project=config.hosting.project,
            credential=config.hosting.credential,
            api_version=config.hosting.api_version,
            timeout=config.hosting.request_timeout,
        )
        repositories = client.list_repositories()
    except (BackupError, OSError, ValueError) as e:
        _fail(ctx, e)

    click.echo(f"Repositories in {config.hosting.project}:")
    click.echo("-" * 60)
    for repository in repositories:
        flag = " (disabled)" if repository.is_disabled else ""
        click.echo(f"  {repository.name} -> {repository.container_name}{flag}")

    collisions = find_container_collisions(repositories)
    for container, names in collisions.items():
        click.echo(f"Warning: {', '.join(names)} share container '{container}'", err=True)


@cli.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="repo-backup.json",
    help="Output path for configuration file"
)
@click.pass_context
def init(ctx, output):
    """
    Initialize configuration file.

    Creates a configuration file without secrets that can be customized
    and passed back with --config.
    """
    config = _build_config(ctx, None, None, None)
    Config.save_to_file(config, output)
    click.echo(f"Configuration saved to: {output}")


def main():
    """Entry point for the CLI."""
    load_dotenv(find_dotenv(usecwd=True))
    cli(obj={})


if __name__ == "__main__":
    main()
