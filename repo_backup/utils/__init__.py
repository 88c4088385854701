"""
Utility functions and helpers.

Provides common utilities used across the codebase.
"""

from repo_backup.utils.logging_config import setup_logging
from repo_backup.utils.validation import (
    container_name_for,
    trim_trailing_whitespace,
    validate_organization_url,
)

__all__ = [
    "setup_logging",
    "container_name_for",
    "trim_trailing_whitespace",
    "validate_organization_url",
]
