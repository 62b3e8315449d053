"""Parsing utilities for GitHub release dependencies.

Converts CLI tokens and manifest values into the models of
:mod:`github_releases.models` and back into manifest tables.
"""

import re
from typing import Any, Dict, Mapping, Optional

import tomlkit
from tomlkit.items import InlineTable

from common.errors import MalformedPathspec, ParseError
from github_releases.models import GitHubDependency, GitHubVersion, Pathspec, VersionKind

_FULL_PATHSPEC = re.compile(r"^(?P<owner>[^/:]+)/(?P<repository>[^/:]+):(?P<pattern>[^:]+)$")
_SHORT_PATHSPEC = re.compile(r"^(?P<repository>[^/:]+):(?P<pattern>[^:]+)$")

KEY_REPOSITORY = "repository"
KEY_ORIGIN = "origin"
KEY_VERSION = "version"
KEY_DESTINATION = "destination"
KEY_GITIGNORE = "gitignore"
RECORD_FIELDS = frozenset({KEY_REPOSITORY, KEY_ORIGIN, KEY_VERSION, KEY_DESTINATION, KEY_GITIGNORE})

DEFAULT_DESTINATION = "."


def parse_pathspec(raw: str, default_owner: Optional[str] = None) -> Pathspec:
    """Parse ``owner/repository:pattern`` (or ``repository:pattern`` with a default owner).

    Raises:
        MalformedPathspec: If the string matches neither form.
    """
    match = _FULL_PATHSPEC.match(raw)
    if match:
        return Pathspec(match.group("owner"), match.group("repository"), match.group("pattern"))

    match = _SHORT_PATHSPEC.match(raw)
    if match:
        if not default_owner:
            raise MalformedPathspec(raw, "no owner given and no default-owner configured")
        return Pathspec(default_owner, match.group("repository"), match.group("pattern"))

    raise MalformedPathspec(raw, "expected 'owner/repository:pattern'")


def parse_version(raw: str) -> GitHubVersion:
    """Parse a version selector. Never fails; unknown strings become tags."""
    if raw == VersionKind.LATEST.value:
        return GitHubVersion.latest()
    if raw == VersionKind.PRERELEASE.value:
        return GitHubVersion.prerelease()
    return GitHubVersion.of_tag(raw)


def new_dependency(
    raw_dependency: str,
    destination: Optional[str] = None,
    version: Optional[GitHubVersion] = None,
    ignore_in_vcs: bool = True,
    default_owner: Optional[str] = None,
) -> GitHubDependency:
    """Build a record from CLI style fields, applying defaults for omitted ones."""
    return GitHubDependency(
        pathspec=parse_pathspec(raw_dependency, default_owner),
        destination=destination if destination is not None else DEFAULT_DESTINATION,
        version=version if version is not None else GitHubVersion.latest(),
        ignore_in_vcs=ignore_in_vcs,
    )


def dependency_from_table(
    key: str,
    table: Mapping[str, Any],
    default_owner: Optional[str] = None,
) -> GitHubDependency:
    """Deserialize a full manifest entry stored under ``key``.

    Raises:
        ParseError: If the table does not have the shape of a full entry.
    """
    unknown = sorted(set(table) - RECORD_FIELDS)
    if unknown:
        raise ParseError(f"Unknown field(s) {', '.join(unknown)}")
    if KEY_REPOSITORY in table and KEY_ORIGIN in table:
        raise ParseError(f"Only one of '{KEY_REPOSITORY}' and '{KEY_ORIGIN}' may be set")

    origin = table.get(KEY_REPOSITORY, table.get(KEY_ORIGIN))
    if origin is None:
        raise ParseError(f"Missing required field '{KEY_REPOSITORY}'")
    if not isinstance(origin, str):
        raise ParseError(f"'{KEY_REPOSITORY}' must be a string")

    version = table.get(KEY_VERSION, VersionKind.LATEST.value)
    if not isinstance(version, str):
        raise ParseError(f"'{KEY_VERSION}' must be a string")

    destination = table.get(KEY_DESTINATION, DEFAULT_DESTINATION)
    if not isinstance(destination, str):
        raise ParseError(f"'{KEY_DESTINATION}' must be a string")

    gitignore = table.get(KEY_GITIGNORE, True)
    if not isinstance(gitignore, bool):
        raise ParseError(f"'{KEY_GITIGNORE}' must be a boolean")

    return GitHubDependency(
        pathspec=parse_pathspec(f"{origin}:{key}", default_owner),
        destination=destination,
        version=parse_version(version),
        ignore_in_vcs=gitignore,
    )


def dependency_to_table(dependency: GitHubDependency) -> Dict[str, Any]:
    """Serialize a record to the plain mapping stored in the manifest."""
    table: Dict[str, Any] = {
        KEY_REPOSITORY: dependency.pathspec.origin,
        KEY_VERSION: str(dependency.version),
        KEY_DESTINATION: dependency.destination,
    }
    if not dependency.ignore_in_vcs:
        table[KEY_GITIGNORE] = False
    return table


def dependency_to_item(dependency: GitHubDependency) -> InlineTable:
    """Serialize a record to an inline table for the formatted document."""
    item = tomlkit.inline_table()
    item.update(dependency_to_table(dependency))
    return item
