"""
External command execution.

Every step that shells out (git, tar, az) goes through a
CommandExecutor so the pipeline can be driven by a test double.
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

REDACTED = "***"


@dataclass
class CommandResult:
    """Outcome of one external command."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def error_summary(self, limit: int = 500) -> str:
        """Short description of why the command failed."""
        if self.timed_out:
            return "command timed out"
        text = (self.stderr or self.stdout or "").strip()
        if not text:
            return f"exit status {self.returncode}"
        return text[:limit]


class CommandExecutor(ABC):
    """
    Abstract interface for running external commands.

    Secrets registered with ``add_secret`` are masked whenever a
    command line or its output is written to the log.
    """

    def __init__(self):
        self._secrets: List[str] = []

    def add_secret(self, secret: str) -> None:
        """Register a value that must never appear in log output."""
        if secret and secret not in self._secrets:
            self._secrets.append(secret)

    def redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return text

    def describe(self, args: Iterable[str]) -> str:
        """Render a command line for logging with secrets masked."""
        return self.redact(" ".join(str(arg) for arg in args))

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """
        Run a command and capture its status and output.

        Args:
            args: Program and arguments.
            cwd: Working directory for the command.
            env: Extra environment variables layered over the current environment.

        Returns:
            CommandResult describing the outcome. Non-zero exits are
            reported, never raised.
        """
        pass


class SubprocessExecutor(CommandExecutor):
    """Runs commands on the local machine via ``subprocess.run``."""

    def __init__(self, timeout: Optional[int] = None):
        super().__init__()
        self.timeout = timeout

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        args = [str(arg) for arg in args]
        logger.debug(f"Running: {self.describe(args)}")

        child_env = None
        if env:
            child_env = os.environ.copy()
            child_env.update(env)

        try:
            completed = subprocess.run(
                args,
                cwd=str(cwd) if cwd else None,
                env=child_env,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(
                f"Command timed out after {self.timeout} seconds: {self.describe(args[:2])}"
            )
            return CommandResult(args=args, returncode=-1, timed_out=True)
        except FileNotFoundError:
            return CommandResult(
                args=args,
                returncode=127,
                stderr=f"executable not found: {args[0]}",
            )

        result = CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=self.redact(completed.stdout or ""),
            stderr=self.redact(completed.stderr or ""),
        )
        if not result.succeeded:
            logger.debug(f"Exit status {result.returncode}: {result.error_summary()}")
        return result
