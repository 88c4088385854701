"""
Input validation and naming utilities.

Provides validation for invocation parameters and the name
normalizations applied to repositories and files.
"""

import re
from typing import Optional, Tuple
from urllib.parse import urlparse

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


def validate_organization_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an organization URL.

    Args:
        url: URL to validate.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not url:
        return False, "Organization URL cannot be empty"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False, f"Invalid organization URL: {url}"

    return True, None


def container_name_for(repository_name: str) -> str:
    """
    Derive a storage container name from a repository name.

    The name is lowercased and every character outside ``[a-z0-9]`` is
    dropped. Distinct repository names may collapse to the same result.
    """
    return _NON_ALPHANUMERIC.sub("", repository_name.lower())


def trim_trailing_whitespace(filename: str) -> str:
    """Return ``filename`` without trailing whitespace."""
    return filename.rstrip()
