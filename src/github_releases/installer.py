"""Installs GitHub release assets into their manifest destination."""
from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from constants import Constants
from common.errors import DownloadError
from common.http_client import download_file
from github_releases.client import GitHubClient
from github_releases.models import GitHubDependency

logger = logging.getLogger(__name__)


def match_assets(release: Dict[str, Any], pattern: str) -> List[Dict[str, Any]]:
    """Return the release assets whose file name matches the glob ``pattern``."""
    assets = release.get("assets") or []
    return [
        asset for asset in assets
        if isinstance(asset, dict) and fnmatch.fnmatchcase(str(asset.get("name", "")), pattern)
    ]


def ensure_gitignored(base_dir: Path, paths: List[Path]) -> List[str]:
    """Append the given paths to ``base_dir/.gitignore`` unless already listed.

    Paths outside ``base_dir`` are skipped.

    Returns:
        The entries that were added.
    """
    gitignore = base_dir / Constants.GITIGNORE_FILE
    content = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
    existing = [line.strip() for line in content.splitlines()]

    added: List[str] = []
    for path in paths:
        try:
            relative = path.resolve().relative_to(base_dir.resolve())
        except ValueError:
            logger.debug("Not ignoring %s: outside of %s", path, base_dir)
            continue
        entry = "/" + relative.as_posix()
        if entry in existing or entry in added:
            continue
        added.append(entry)

    if added:
        with open(gitignore, "a", encoding="utf-8") as handle:
            if content and not content.endswith("\n"):
                handle.write("\n")
            handle.write("\n".join(added) + "\n")
        logger.debug("Added %d entries to %s", len(added), gitignore)
    return added


class GitHubInstaller:
    """Download/install executor for GitHub release dependencies.

    Relative destinations are resolved against ``base_dir``, the directory
    of the manifest that declares the dependency.
    """

    def __init__(self, base_dir: Optional[os.PathLike] = None, client: Optional[GitHubClient] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self.client = client or GitHubClient()

    def destination_for(self, dependency: GitHubDependency) -> Path:
        destination = Path(dependency.destination).expanduser()
        if not destination.is_absolute():
            destination = self.base_dir / destination
        return destination

    def install(self, dependency: GitHubDependency) -> List[Path]:
        """Download every asset matching the dependency's pattern.

        Returns:
            The paths written.

        Raises:
            DownloadError: If the release or a matching asset cannot be fetched.
        """
        spec = dependency.pathspec
        logger.info("Downloading %s@%s into %s...", spec, dependency.version, dependency.destination)

        release = self.client.resolve_release(spec.owner, spec.repository, dependency.version)
        assets = match_assets(release, spec.pattern)
        if not assets:
            raise DownloadError(
                f"Release '{release.get('tag_name', dependency.version)}' of {spec.origin} "
                f"has no asset matching '{spec.pattern}'"
            )

        destination = self.destination_for(dependency)
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DownloadError(f"Could not create destination '{destination}'") from exc

        written: List[Path] = []
        for asset in assets:
            target = destination / str(asset["name"])
            url = asset.get("url")
            headers = self.client.download_headers()
            if not url:
                url = asset.get("browser_download_url")
            if not url:
                raise DownloadError(f"Asset '{asset['name']}' has no download URL")
            download_file(url, str(target), headers=headers)
            written.append(target)

        if dependency.ignore_in_vcs:
            ensure_gitignored(self.base_dir, written)

        logger.info("Downloaded %s@%s into %s!", spec, dependency.version, dependency.destination)
        return written
