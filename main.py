#!/usr/bin/env python3
"""
Repository Backup - Main Entry Point

Clones every repository of a hosted project with full history,
archives it and uploads the archive to cloud blob storage.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from repo_backup.cli import main

if __name__ == "__main__":
    main()
