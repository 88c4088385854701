"""
Removal of per-repository local artifacts.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def cleanup_local_artifacts(clone_dir: Path, archive: Optional[Path] = None) -> None:
    """
    Remove a clone directory and its archive if they exist.

    Filesystem errors are not caught.
    """
    clone_dir = Path(clone_dir)
    if clone_dir.exists():
        shutil.rmtree(clone_dir)
        logger.debug(f"Removed clone directory: {clone_dir}")

    if archive is not None:
        archive = Path(archive)
        if archive.exists():
            archive.unlink()
            logger.debug(f"Removed archive: {archive}")
