"""Data models for GitHub release dependencies."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Pathspec:
    """Identifies a set of release assets as ``owner/repository:pattern``."""
    owner: str
    repository: str
    pattern: str

    @property
    def origin(self) -> str:
        """The ``owner/repository`` part."""
        return f"{self.owner}/{self.repository}"

    def __str__(self) -> str:
        return f"{self.owner}/{self.repository}:{self.pattern}"


class VersionKind(Enum):
    """Closed set of release selectors."""
    LATEST = "latest"
    PRERELEASE = "prerelease"
    TAG = "tag"


@dataclass(frozen=True)
class GitHubVersion:
    """Version descriptor: latest release, latest prerelease or an explicit tag."""
    kind: VersionKind
    tag: Optional[str] = None

    @classmethod
    def latest(cls) -> "GitHubVersion":
        return cls(VersionKind.LATEST)

    @classmethod
    def prerelease(cls) -> "GitHubVersion":
        return cls(VersionKind.PRERELEASE)

    @classmethod
    def of_tag(cls, tag: str) -> "GitHubVersion":
        return cls(VersionKind.TAG, tag)

    def __str__(self) -> str:
        if self.kind is VersionKind.TAG:
            return self.tag or ""
        return self.kind.value


@dataclass
class GitHubDependency:
    """A fully specified GitHub release dependency."""
    pathspec: Pathspec
    destination: str = "."
    version: GitHubVersion = GitHubVersion(VersionKind.LATEST)
    ignore_in_vcs: bool = True

    @property
    def key(self) -> str:
        """Manifest key under which this dependency is stored."""
        return self.pathspec.pattern
