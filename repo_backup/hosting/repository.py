"""
Repository descriptors returned by the hosting API.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

from repo_backup.utils.validation import container_name_for


def clone_url_for(organization_url: str, project: str, name: str) -> str:
    """Build the HTTPS clone URL ``{org}/{project}/_git/{name}``."""
    return "{}/{}/_git/{}".format(
        organization_url.rstrip("/"),
        quote(project, safe=""),
        quote(name, safe=""),
    )


@dataclass(frozen=True)
class RepositoryDescriptor:
    """A repository listed in a project; lives for one backup iteration."""

    name: str
    clone_url: str
    id: Optional[str] = None
    default_branch: Optional[str] = None
    size: int = 0
    is_disabled: bool = False

    @property
    def container_name(self) -> str:
        return container_name_for(self.name)

    @classmethod
    def from_api(
        cls, data: Dict[str, Any], organization_url: str, project: str
    ) -> "RepositoryDescriptor":
        """
        Create a descriptor from one element of the API's ``value`` array.

        The clone URL is derived from the organization, project and
        repository name rather than taken from ``remoteUrl``, which can
        carry a user name.
        """
        name = data["name"]
        return cls(
            name=name,
            clone_url=clone_url_for(organization_url, project, name),
            id=data.get("id"),
            default_branch=data.get("defaultBranch"),
            size=int(data.get("size") or 0),
            is_disabled=bool(data.get("isDisabled", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "clone_url": self.clone_url,
            "container": self.container_name,
            "id": self.id,
            "default_branch": self.default_branch,
            "size": self.size,
            "is_disabled": self.is_disabled,
        }
