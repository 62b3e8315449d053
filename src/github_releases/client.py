"""GitHub API client for release information.

Provides a lightweight REST client for resolving releases (latest,
latest prerelease or by tag) and listing their downloadable assets.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from constants import Constants
from common.errors import DownloadError
from common.http_client import get_json
from github_releases.models import GitHubVersion, VersionKind

logger = logging.getLogger(__name__)


class GitHubClient:
    """Lightweight REST client for GitHub release operations.

    Supports optional authentication via GITHUB_TOKEN environment variable.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None):
        """Initialize GitHub client.

        Args:
            base_url: Base URL for GitHub API (defaults to Constants.GITHUB_API_BASE)
            token: GitHub personal access token (defaults to GITHUB_TOKEN env var)
        """
        self.base_url = (base_url or Constants.GITHUB_API_BASE).rstrip("/")
        self.token = token or os.environ.get(Constants.ENV_GITHUB_TOKEN)

    def _get_headers(self, accept: str = "application/vnd.github+json") -> Dict[str, str]:
        """Get request headers including authorization if token is available."""
        headers = {
            "Accept": accept,
            "X-GitHub-Api-Version": Constants.GITHUB_API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def download_headers(self) -> Dict[str, str]:
        """Headers for fetching a release asset binary."""
        return self._get_headers(accept="application/octet-stream")

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self.base_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    def get_latest_release(self, owner: str, repo: str) -> Optional[Dict[str, Any]]:
        """Fetch the most recent non-prerelease, non-draft release."""
        status, _, data = get_json(
            f"{self._repo_url(owner, repo)}/releases/latest", headers=self._get_headers()
        )
        if status == 200 and isinstance(data, dict):
            return data
        logger.debug("No latest release for %s/%s (HTTP %s)", owner, repo, status)
        return None

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Optional[Dict[str, Any]]:
        """Fetch the release published for ``tag``."""
        status, _, data = get_json(
            f"{self._repo_url(owner, repo)}/releases/tags/{quote(tag, safe='')}",
            headers=self._get_headers(),
        )
        if status == 200 and isinstance(data, dict):
            return data
        logger.debug("No release tagged %s for %s/%s (HTTP %s)", tag, owner, repo, status)
        return None

    def get_releases(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """Fetch the first page of releases, newest first."""
        status, _, data = get_json(
            f"{self._repo_url(owner, repo)}/releases",
            headers=self._get_headers(),
            params={"per_page": Constants.REPO_API_PER_PAGE},
        )
        if status == 200 and isinstance(data, list):
            return data
        return []

    def get_latest_prerelease(self, owner: str, repo: str) -> Optional[Dict[str, Any]]:
        """Return the newest published prerelease, if any."""
        for release in self.get_releases(owner, repo):
            if release.get("prerelease") and not release.get("draft"):
                return release
        return None

    def resolve_release(self, owner: str, repo: str, version: GitHubVersion) -> Dict[str, Any]:
        """Resolve a version descriptor to a release payload.

        Raises:
            DownloadError: If no matching release exists.
        """
        if version.kind is VersionKind.LATEST:
            release = self.get_latest_release(owner, repo)
        elif version.kind is VersionKind.PRERELEASE:
            release = self.get_latest_prerelease(owner, repo)
        else:
            release = self.get_release_by_tag(owner, repo, version.tag or "")

        if release is None:
            raise DownloadError(f"No release matching '{version}' found for {owner}/{repo}")
        return release
