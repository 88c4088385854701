"""
Configuration management for the repository backup pipeline.

Provides centralized configuration for the hosting API, the storage
account and the external tools, loadable from environment variables
or a JSON file.
"""

import os
import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from repo_backup.core.exceptions import ConfigurationError
from repo_backup.utils.validation import validate_organization_url

UPLOAD_FAILURE_POLICIES = ("keep", "abort")


def current_run_date() -> str:
    """Return today's date as used in archive names (YYYY-MM-DD)."""
    return date.today().strftime("%Y-%m-%d")


@dataclass
class HostingConfig:
    """Configuration for the Git hosting REST API."""

    # Organization URL, e.g. https://dev.azure.com/contoso
    organization_url: str = ""

    project: str = ""

    # Personal access token; never written to disk or logs
    credential: str = field(default="", repr=False)

    # Pinned REST API version
    api_version: str = "7.1"

    # Timeout for the listing request (seconds)
    request_timeout: int = 60


@dataclass
class StorageConfig:
    """Configuration for the blob storage account."""

    account_name: str = ""

    account_key: str = field(default="", repr=False)

    # Access tier applied to uploaded archives
    access_tier: str = "Cool"


@dataclass
class GitConfig:
    """Names of the external binaries the pipeline shells out to."""

    git_binary: str = "git"
    tar_binary: str = "tar"
    az_binary: str = "az"


@dataclass
class BackupConfig:
    """Master configuration for one backup run."""

    hosting: HostingConfig = field(default_factory=HostingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    git: GitConfig = field(default_factory=GitConfig)

    # Working directory for clones and archives
    work_dir: str = "./backup_work"

    # Captured once per run and shared by every repository
    run_date: str = field(default_factory=current_run_date)

    # What to do when an upload fails: keep artifacts and continue, or abort
    on_upload_failure: str = "keep"

    # Timeout for external commands (seconds, None = wait forever)
    command_timeout: Optional[int] = None

    verbose: bool = False

    def validate(self) -> None:
        """
        Check that every required value is present and well formed.

        Raises:
            ConfigurationError: If a value is missing or invalid.
        """
        required = {
            "organization URL": self.hosting.organization_url,
            "access credential": self.hosting.credential,
            "project name": self.hosting.project,
            "storage account name": self.storage.account_name,
            "storage account key": self.storage.account_key,
        }
        missing = [label for label, value in required.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing required settings: {', '.join(missing)}",
                details={"missing": missing},
            )

        is_valid, error = validate_organization_url(self.hosting.organization_url)
        if not is_valid:
            raise ConfigurationError(error)

        if self.on_upload_failure not in UPLOAD_FAILURE_POLICIES:
            raise ConfigurationError(
                f"Unknown upload failure policy: {self.on_upload_failure}",
                details={"allowed": list(UPLOAD_FAILURE_POLICIES)},
            )


class Config:
    """
    Loads and saves backup configuration.

    Supports loading from environment variables and configuration files.
    Secrets are read from the environment but never saved to a file.
    """

    ENV_ORG_URL = "ADO_ORG_URL"
    ENV_CREDENTIAL = "ADO_PAT"
    ENV_PROJECT = "ADO_PROJECT"
    ENV_STORAGE_ACCOUNT = "AZURE_STORAGE_ACCOUNT"
    ENV_STORAGE_KEY = "AZURE_STORAGE_KEY"
    ENV_WORK_DIR = "REPO_BACKUP_WORK_DIR"
    ENV_VERBOSE = "REPO_BACKUP_VERBOSE"

    @classmethod
    def load_from_env(cls, config: BackupConfig = None) -> BackupConfig:
        """
        Apply environment variable overrides.

        Args:
            config: Configuration to update. A default one is created if omitted.

        Returns:
            BackupConfig with environment overrides applied.
        """
        config = config or BackupConfig()

        if os.getenv(cls.ENV_ORG_URL):
            config.hosting.organization_url = os.getenv(cls.ENV_ORG_URL)

        if os.getenv(cls.ENV_CREDENTIAL):
            config.hosting.credential = os.getenv(cls.ENV_CREDENTIAL)

        if os.getenv(cls.ENV_PROJECT):
            config.hosting.project = os.getenv(cls.ENV_PROJECT)

        if os.getenv(cls.ENV_STORAGE_ACCOUNT):
            config.storage.account_name = os.getenv(cls.ENV_STORAGE_ACCOUNT)

        if os.getenv(cls.ENV_STORAGE_KEY):
            config.storage.account_key = os.getenv(cls.ENV_STORAGE_KEY)

        if os.getenv(cls.ENV_WORK_DIR):
            config.work_dir = os.getenv(cls.ENV_WORK_DIR)

        if os.getenv(cls.ENV_VERBOSE):
            config.verbose = os.getenv(cls.ENV_VERBOSE).lower() in ("true", "1", "yes")

        return config

    @classmethod
    def load_from_file(cls, config_path: str) -> BackupConfig:
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the configuration file.

        Returns:
            Loaded BackupConfig instance.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r") as f:
            data = json.load(f)

        return cls._dict_to_config(data)

    @staticmethod
    def _dict_to_config(data: dict) -> BackupConfig:
        """Convert a dictionary to BackupConfig."""
        config = BackupConfig()

        try:
            if "hosting" in data:
                config.hosting = HostingConfig(**data["hosting"])

            if "storage" in data:
                config.storage = StorageConfig(**data["storage"])

            if "git" in data:
                config.git = GitConfig(**data["git"])
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration file: {e}")

        for key in ("work_dir", "on_upload_failure", "command_timeout", "verbose"):
            if key in data:
                setattr(config, key, data[key])

        return config

    @classmethod
    def save_to_file(cls, config: BackupConfig, config_path: str) -> None:
        """
        Save configuration to a JSON file, leaving out secrets.

        Args:
            config: Configuration to save.
            config_path: Path to save the configuration file.
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            json.dump(cls._config_to_dict(config), f, indent=2)

    @staticmethod
    def _config_to_dict(config: BackupConfig) -> dict:
        """Convert BackupConfig to a dictionary without credentials."""
        return {
            "hosting": {
                "organization_url": config.hosting.organization_url,
                "project": config.hosting.project,
                "api_version": config.hosting.api_version,
                "request_timeout": config.hosting.request_timeout,
            },
            "storage": {
                "account_name": config.storage.account_name,
                "access_tier": config.storage.access_tier,
            },
            "git": {
                "git_binary": config.git.git_binary,
                "tar_binary": config.git.tar_binary,
                "az_binary": config.git.az_binary,
            },
            "work_dir": config.work_dir,
            "on_upload_failure": config.on_upload_failure,
            "command_timeout": config.command_timeout,
            "verbose": config.verbose,
        }
