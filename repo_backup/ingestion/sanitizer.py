"""
Filename normalization for freshly cloned trees.

Some archiving and transport tools mishandle names that end in
whitespace, so such files are renamed before the tree is packed.
"""

import logging
import os
from pathlib import Path
from typing import List, Tuple

from repo_backup.core.exceptions import SanitizeError
from repo_backup.utils.validation import trim_trailing_whitespace

logger = logging.getLogger(__name__)


def sanitize_filenames(root: Path) -> List[Tuple[Path, Path]]:
    """
    Trim trailing whitespace from every file name below ``root``.

    Files are renamed within their own directory and their contents are
    left untouched. A file whose trimmed name is already taken is kept
    as is.

    Args:
        root: Top of the directory tree to walk.

    Returns:
        List of (old_path, new_path) pairs for every rename performed.

    Raises:
        SanitizeError: If a rename fails at the filesystem level.
    """
    renamed: List[Tuple[Path, Path]] = []

    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            trimmed = trim_trailing_whitespace(filename)
            if trimmed == filename:
                continue

            source = Path(dirpath) / filename
            if not trimmed:
                logger.warning(f"Skipping file with a whitespace-only name: {source!r}")
                continue

            target = Path(dirpath) / trimmed
            if os.path.lexists(target):
                logger.warning(f"Not renaming {source!r}: {target.name!r} already exists")
                continue

            try:
                source.rename(target)
            except OSError as e:
                raise SanitizeError(
                    f"Could not rename {source!r}: {e}",
                    details={"path": str(source)},
                ) from e

            logger.info(f"Renamed {filename!r} -> {trimmed!r}")
            renamed.append((source, target))

    return renamed
