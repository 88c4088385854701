"""
Repository backup to cloud blob storage.

Lists the repositories of a hosted project, clones each with full
history, archives it and uploads the archive to blob storage.
"""

__version__ = "1.0.0"
__author__ = "Repository Backup"
