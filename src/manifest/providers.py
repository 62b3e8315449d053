"""Supported dependency providers.

The set of providers is closed: each one describes how its manifest table
is named, which options it accepts and how its dependency records are
parsed and resolved.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Mapping, Optional, Tuple

from constants import Providers
from common.errors import ParseError
from github_releases import parser as github_parser
from github_releases.models import GitHubDependency, GitHubVersion

from .entries import DependencyEntry, FullEntry, VersionOnly

OPTION_PROVIDER = "provider"
OPTION_DEFAULT_GROUP = "default-group"
OPTION_DEFAULT_OWNER = "default-owner"
OPTION_DEFAULT_REPOSITORY = "default-repository"
OPTION_DEPENDENCIES = "dependencies"


@dataclass(frozen=True)
class ProviderSpec:
    """Describes one provider variant."""
    name: str
    aliases: Tuple[str, ...]
    record_fields: FrozenSet[str]
    options: Tuple[str, ...]
    parse_version: Callable[[str], Any]
    parse_record: Callable[[str, Mapping[str, Any], Optional[str]], Any]
    resolve_shorthand: Callable[[str, Any, Optional[str], Optional[str]], Any]

    def matches(self, name: str) -> bool:
        lowered = name.lower()
        return lowered == self.name.lower() or lowered in self.aliases

    def resolve(
        self,
        key: str,
        entry: DependencyEntry,
        default_owner: Optional[str] = None,
        default_repository: Optional[str] = None,
    ) -> Any:
        """Turn a valid entry into an installable record.

        Raises:
            ParseError: If the entry is invalid or a shorthand lacks defaults.
        """
        if isinstance(entry, FullEntry):
            return entry.record
        if isinstance(entry, VersionOnly):
            return self.resolve_shorthand(key, entry.version, default_owner, default_repository)
        raise ParseError(f"Cannot resolve invalid entry '{key}'")


def _resolve_github_shorthand(
    key: str,
    version: GitHubVersion,
    default_owner: Optional[str],
    default_repository: Optional[str],
) -> GitHubDependency:
    if not default_repository:
        raise ParseError(f"'{key}' is declared by version only, but no default-repository is set")
    return github_parser.new_dependency(
        f"{default_repository}:{key}",
        version=version,
        default_owner=default_owner,
    )


GITHUB = ProviderSpec(
    name=Providers.GITHUB.value,
    aliases=("github", "gh"),
    record_fields=github_parser.RECORD_FIELDS,
    options=(
        OPTION_PROVIDER,
        OPTION_DEFAULT_GROUP,
        OPTION_DEFAULT_OWNER,
        OPTION_DEFAULT_REPOSITORY,
        OPTION_DEPENDENCIES,
    ),
    parse_version=github_parser.parse_version,
    parse_record=github_parser.dependency_from_table,
    resolve_shorthand=_resolve_github_shorthand,
)

PROVIDERS: Tuple[ProviderSpec, ...] = (GITHUB,)


def find_provider(name: str) -> Optional[ProviderSpec]:
    """Look up a provider by name or alias, case-insensitively."""
    for spec in PROVIDERS:
        if spec.matches(name):
            return spec
    return None
