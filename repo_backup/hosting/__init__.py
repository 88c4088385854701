"""
Hosting service access: repository listing and descriptors.
"""

from repo_backup.hosting.client import AzureDevOpsClient, basic_auth_header
from repo_backup.hosting.repository import RepositoryDescriptor, clone_url_for

__all__ = [
    "AzureDevOpsClient",
    "RepositoryDescriptor",
    "basic_auth_header",
    "clone_url_for",
]
