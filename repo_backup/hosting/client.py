"""
REST client for listing the repositories of a hosted project.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from repo_backup import __version__
from repo_backup.core.exceptions import ListingError
from repo_backup.hosting.repository import RepositoryDescriptor

logger = logging.getLogger(__name__)

USER_AGENT = f"repo-backup/{__version__}"


def basic_auth_token(credential: str) -> str:
    """Encode a personal access token as ``base64(":" + token)``."""
    return base64.b64encode(f":{credential}".encode("utf-8")).decode("ascii")


def basic_auth_header(credential: str) -> str:
    """Full ``Authorization`` header value for a personal access token."""
    return f"Basic {basic_auth_token(credential)}"


def _error_message(resp: requests.Response) -> str:
    """Extract a short, human-readable message from an error response."""
    try:
        body = resp.json()
    except ValueError:
        body = {"text": (resp.text or "")[:300]}
    if not isinstance(body, dict):
        return str(body)[:300]
    return str(body.get("message") or body.get("error") or body.get("text") or "")


class AzureDevOpsClient:
    """
    Minimal client for the Git repositories endpoint of a project.

    Authentication uses a Basic header built from an empty user name
    and the personal access token.
    """

    def __init__(
        self,
        organization_url: str,
        project: str,
        credential: str,
        api_version: str = "7.1",
        timeout: int = 60,
        session: Optional[requests.Session] = None,
    ):
        self.organization_url = organization_url.rstrip("/")
        self.project = project
        self.api_version = api_version
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
                "Authorization": basic_auth_header(credential),
            }
        )

    @property
    def repositories_url(self) -> str:
        return (
            f"{self.organization_url}/{quote(self.project, safe='')}"
            f"/_apis/git/repositories?api-version={self.api_version}"
        )

    def list_repositories(self) -> List[RepositoryDescriptor]:
        """
        List every repository in the project.

        Returns:
            Repository descriptors in the order the API returns them.

        Raises:
            ListingError: On transport failure, a non-2xx status or an
                unexpected response body.
        """
        url = self.repositories_url
        logger.info(f"Listing repositories in project '{self.project}'")

        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ListingError(
                f"Request to hosting API failed: {e}",
                details={"url": url},
            ) from e

        if not 200 <= resp.status_code < 300:
            message = _error_message(resp)
            raise ListingError(
                f"HTTP {resp.status_code} from hosting API: {message}",
                details={"url": url, "status_code": resp.status_code},
            )

        try:
            payload: Dict[str, Any] = resp.json()
        except ValueError as e:
            # Expired tokens are answered with an HTML sign-in page and status 203
            raise ListingError(
                "Hosting API returned a non-JSON response; check the access credential",
                details={"url": url, "status_code": resp.status_code},
            ) from e

        entries = payload.get("value") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            raise ListingError(
                "Hosting API response has no 'value' list",
                details={"url": url},
            )

        repositories = [
            RepositoryDescriptor.from_api(entry, self.organization_url, self.project)
            for entry in entries
            if isinstance(entry, dict) and entry.get("name")
        ]
        logger.info(f"Found {len(repositories)} repositories")
        return repositories
