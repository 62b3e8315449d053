"""Error taxonomy shared by the manifest core, the providers and the CLI.

Every error carries a human readable message. Lower level causes are
attached with ``raise ... from exc`` and rendered by :func:`describe_error`.
"""
from __future__ import annotations

from typing import Optional


class SinkError(Exception):
    """Base class for all errors raised by sink."""


def describe_error(exc: BaseException) -> str:
    """Render an exception together with its cause chain.

    Example:
        ``Failed to load manifest! Caused by: [Errno 2] No such file``
    """
    parts = [str(exc) or type(exc).__name__]
    seen = {id(exc)}
    cause = exc.__cause__ or exc.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        parts.append(f"Caused by: {str(cause) or type(cause).__name__}")
        cause = cause.__cause__ or cause.__context__
    return " ".join(parts)


# ---------- [ Parsing ] ----------

class ParseError(SinkError):
    """A pathspec or version string could not be parsed."""


class MalformedPathspec(ParseError):
    """Raised when a dependency identifier is not ``owner/repository:pattern``."""

    def __init__(self, raw: str, reason: Optional[str] = None):
        self.raw = raw
        message = f"Malformed pathspec '{raw}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# ---------- [ Validation / Loading ] ----------

class ValidationError(SinkError):
    """The manifest contains unrecognized or invalid entries."""


class MalformedEntries(ValidationError):
    """Names the first malformed entry (or container) in declaration order."""

    def __init__(self, provider: str, key: Optional[str], reason: Optional[str] = None):
        self.provider = provider
        self.key = key
        if key is None:
            message = f"Invalid dependencies table for provider '{provider}'!"
        else:
            message = f"Invalid dependency entry for '{key}' in provider '{provider}'!"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class LoadError(SinkError):
    """The manifest could not be read, parsed or validated."""


class SaveError(SinkError):
    """The manifest could not be written back to disk."""


# ---------- [ Mutation ] ----------

class AddError(SinkError):
    """Base class for the failure outcomes of adding a dependency."""


class GroupedIntoSingular(AddError):
    """A group was requested but the provider stores dependencies ungrouped."""

    def __init__(self, provider: str, group: str):
        self.provider = provider
        self.group = group
        super().__init__(
            f"Cannot add into group '{group}': dependencies of '{provider}' are not grouped!"
        )


class DuplicateKey(AddError):
    """The dependency key already exists at the resolved location."""

    def __init__(self, provider: str, key: str, group: Optional[str] = None):
        self.provider = provider
        self.key = key
        self.group = group
        where = f"group '{group}' of '{provider}'" if group else f"'{provider}'"
        super().__init__(f"Dependency '{key}' already exists in {where}!")


class MissingGroupForGroupedContainer(AddError):
    """No group could be resolved but the provider stores dependencies grouped."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"Dependencies of '{provider}' are grouped, but no group was given "
            "and no default-group is configured!"
        )


class CorruptContainer(AddError):
    """The provider's dependencies table has no recognizable shape."""

    def __init__(self, provider: str, reason: Optional[str] = None):
        self.provider = provider
        self.reason = reason
        message = f"Dependencies table of '{provider}' is malformed!"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class UnknownProvider(AddError):
    """The requested provider is not supported."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unknown provider '{provider}'!")


class InstallFailed(AddError):
    """The installer failed, so the dependency was not recorded."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Failed to add '{key}'!")


class RemoveError(SinkError):
    """A dependency could not be removed."""


class ConfigError(SinkError):
    """A manifest option could not be read or updated."""


# ---------- [ Installation ] ----------

class DownloadError(SinkError):
    """A release asset could not be resolved or downloaded."""
