"""GitHub releases provider."""

from .models import GitHubDependency, GitHubVersion, Pathspec, VersionKind
from .parser import parse_pathspec, parse_version, new_dependency
from .client import GitHubClient
from .installer import GitHubInstaller

__all__ = [
    "GitHubDependency",
    "GitHubVersion",
    "Pathspec",
    "VersionKind",
    "parse_pathspec",
    "parse_version",
    "new_dependency",
    "GitHubClient",
    "GitHubInstaller",
]
