"""Dependency entries and the containers holding them.

A dependency is declared either as a bare version string (shorthand) or
as a table (full record). Whatever matches neither shape is kept as an
invalid entry so it can be reported instead of aborting the whole parse.

The ``dependencies`` table of a provider is either flat (key -> entry) or
grouped one level deep (group -> key -> entry).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AbstractSet, Any, Dict, Iterator, Optional, Tuple, Union

from common.errors import ParseError

if TYPE_CHECKING:
    from .providers import ProviderSpec


@dataclass
class VersionOnly:
    """Shorthand entry: ``key = "v1.2.3"``."""
    version: Any


@dataclass
class FullEntry:
    """Fully specified provider record."""
    record: Any


@dataclass
class InvalidEntry:
    """Value that matched neither known shape."""
    raw: Any
    reason: str = ""


DependencyEntry = Union[VersionOnly, FullEntry, InvalidEntry]


@dataclass
class Singular:
    """Ungrouped dependencies."""
    entries: Dict[str, DependencyEntry] = field(default_factory=dict)


@dataclass
class Grouped:
    """Dependencies nested under named groups."""
    groups: Dict[str, Dict[str, DependencyEntry]] = field(default_factory=dict)


@dataclass
class InvalidContainer:
    """A dependencies table with no recognizable shape."""
    raw: Any
    reason: str = ""


GroupingContainer = Union[Singular, Grouped, InvalidContainer]


def parse_entry(
    key: str,
    raw: Any,
    provider: "ProviderSpec",
    default_owner: Optional[str] = None,
) -> DependencyEntry:
    """Deserialize one dependency value.

    Plain strings are always shorthand; only tables are tried as full records.
    """
    if isinstance(raw, str):
        return VersionOnly(provider.parse_version(raw))
    if isinstance(raw, dict):
        try:
            return FullEntry(provider.parse_record(key, raw, default_owner))
        except ParseError as exc:
            return InvalidEntry(raw, str(exc))
    return InvalidEntry(raw, f"unsupported value of type {type(raw).__name__}")


def is_group_like(value: Any, provider: "ProviderSpec", inline: bool = False) -> bool:
    """A table carrying none of the record fields is a group.

    Inline tables (``key = { ... }``) are always entries.
    """
    return isinstance(value, dict) and not inline and not (set(value) & provider.record_fields)


def _not_a_record(value: Dict[str, Any], provider: "ProviderSpec") -> str:
    if not value:
        return "empty table is not a dependency record"
    return (
        f"unknown field(s) {', '.join(sorted(value))}, "
        f"expected {', '.join(sorted(provider.record_fields))}"
    )


def parse_container(
    raw: Any,
    provider: "ProviderSpec",
    default_owner: Optional[str] = None,
    inline_keys: AbstractSet[str] = frozenset(),
) -> Optional[GroupingContainer]:
    """Decide the shape of a ``dependencies`` table and deserialize it.

    The table is grouped only when every value is group-like. As soon as one
    value is a dependency entry the table is flat, and any group-like value
    in it becomes an invalid entry under its own key.

    Returns None when there is nothing declared yet, so the first added
    dependency decides the shape.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        return InvalidContainer(raw, "'dependencies' must be a table")
    if not raw:
        return None

    group_like = {
        key: is_group_like(value, provider, key in inline_keys)
        for key, value in raw.items()
    }
    if all(group_like.values()):
        return Grouped({
            group: {
                key: parse_entry(key, value, provider, default_owner)
                for key, value in members.items()
            }
            for group, members in raw.items()
        })

    entries: Dict[str, DependencyEntry] = {}
    for key, value in raw.items():
        if group_like[key]:
            entries[key] = InvalidEntry(value, _not_a_record(value, provider))
        else:
            entries[key] = parse_entry(key, value, provider, default_owner)
    return Singular(entries)


def iter_entries(container: Optional[GroupingContainer]) -> Iterator[Tuple[Optional[str], str, DependencyEntry]]:
    """Yield ``(group, key, entry)`` in declaration order; group is None when ungrouped."""
    if isinstance(container, Singular):
        for key, entry in container.entries.items():
            yield None, key, entry
    elif isinstance(container, Grouped):
        for group, members in container.groups.items():
            for key, entry in members.items():
                yield group, key, entry


def entry_to_plain(entry: DependencyEntry) -> Any:
    """Plain representation of an entry for structure dumps."""
    if isinstance(entry, VersionOnly):
        return str(entry.version)
    if isinstance(entry, FullEntry):
        record = entry.record
        return {
            "pathspec": str(record.pathspec),
            "destination": record.destination,
            "version": str(record.version),
            "ignore_in_vcs": record.ignore_in_vcs,
        }
    return {"invalid": entry.raw, "reason": entry.reason}
