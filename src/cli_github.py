"""CLI handlers for the GitHub provider subcommands."""

from __future__ import annotations

import logging
from typing import Any, Optional

from constants import Providers
from common.errors import DownloadError, InstallFailed
from github_releases.installer import GitHubInstaller
from github_releases.models import GitHubDependency
from github_releases.parser import dependency_to_item, new_dependency, parse_version
from manifest import FullEntry, Manifest, ManifestMutation

logger = logging.getLogger(__name__)


def expand_dependency(raw: str, default_repository: Optional[str]) -> str:
    """Prefix a bare asset pattern with the default repository, if one is set."""
    if ":" not in raw and default_repository:
        return f"{default_repository}:{raw}"
    return raw


def add_github_dependency(
    manifest: Manifest,
    raw_dependency: str,
    installer: Any,
    destination: Optional[str] = None,
    version: Optional[str] = None,
    group: Optional[str] = None,
    ignore_in_vcs: bool = True,
) -> ManifestMutation:
    """Validate, install, then record a GitHub dependency.

    Nothing is written to the manifest unless the installer succeeds.

    Raises:
        ParseError: If the dependency string is malformed.
        AddError: If the dependency cannot be added or installed.
    """
    logger.info("Adding %s@%s...", raw_dependency, version or "latest")

    section = manifest.section(Providers.GITHUB.value)
    dependency: GitHubDependency = new_dependency(
        expand_dependency(raw_dependency, section.default_repository if section else None),
        destination=destination,
        version=parse_version(version) if version else None,
        ignore_in_vcs=ignore_in_vcs,
        default_owner=manifest.effective_owner(section),
    )

    mutation = manifest.plan_add(
        Providers.GITHUB.value,
        group,
        dependency.key,
        FullEntry(dependency),
        dependency_to_item(dependency),
    )
    logger.info("Format check passed!")

    try:
        installer.install(dependency)
    except DownloadError as exc:
        raise InstallFailed(raw_dependency) from exc

    mutation.apply()
    logger.info("Added %s!", dependency.pathspec)
    return mutation


def handle_github(args, manifest: Manifest) -> None:
    """Dispatch ``sink github <action>`` and persist the manifest."""
    if args.github_action == "add":
        add_github_dependency(
            manifest,
            args.dependency,
            GitHubInstaller(base_dir=manifest.base_dir),
            destination=args.DESTINATION,
            version=args.VERSION,
            group=args.GROUP,
            ignore_in_vcs=not args.NO_GITIGNORE,
        )
    else:
        manifest.remove_dependency(Providers.GITHUB.value, args.key, args.GROUP)
        logger.info("Removed %s!", args.key)
    manifest.save()
