"""
External command execution layer.
"""

from repo_backup.execution.executor import (
    CommandExecutor,
    CommandResult,
    SubprocessExecutor,
)

__all__ = [
    "CommandExecutor",
    "CommandResult",
    "SubprocessExecutor",
]
