"""CLI handlers for inspecting and updating the sink TOML."""

from __future__ import annotations

import json
import logging
import sys
from typing import List

from common.errors import ConfigError
from manifest import FullEntry, Manifest, VersionOnly

logger = logging.getLogger(__name__)


def list_entries(manifest: Manifest, kind: str) -> List[str]:
    """Lines for ``config --list``."""
    if kind == "groups":
        return manifest.groups()
    if kind == "providers":
        return [
            f"{name} ({section.spec.name})" for name, section in manifest.providers.items()
        ]
    lines = []
    for section, group, key, entry in manifest.iter_dependencies():
        where = f"{section.name}.{group}" if group else section.name
        lines.append(f"{where}: {key} = {describe_entry(entry)}")
    return lines


def describe_entry(entry) -> str:
    """Short human readable form of a dependency entry."""
    if isinstance(entry, VersionOnly):
        return str(entry.version)
    if isinstance(entry, FullEntry):
        record = entry.record
        return f"{record.pathspec}@{record.version} -> {record.destination}"
    return f"<invalid: {entry.reason}>"


def split_update(raw: str):
    """Split a KEY=VALUE update expression."""
    key, sep, value = raw.partition("=")
    key, value = key.strip(), value.strip()
    if not sep or not key:
        raise ConfigError(f"Expected KEY=VALUE, got '{raw}'")
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return key, value


def handle_config(args, manifest: Manifest) -> None:
    """Dispatch ``sink config``; output goes to stdout."""
    out = sys.stdout
    if args.ALL:
        out.write(json.dumps(manifest.to_dict(), indent=2, default=str) + "\n")
    if args.TOML:
        out.write(manifest.to_toml())
    if args.LIST:
        for line in list_entries(manifest, args.LIST):
            out.write(line + "\n")
    if args.FIELD:
        value = manifest.get_field(args.FIELD)
        if isinstance(value, (dict, list)):
            out.write(json.dumps(value, indent=2, default=str) + "\n")
        else:
            out.write(f"{value}\n")
    if args.UPDATE:
        key, value = split_update(args.UPDATE)
        manifest.set_option(key, value)
        manifest.save()
        logger.info("Updated %s = %s", key, value)
