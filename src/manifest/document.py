"""Format preserving view of a manifest file.

Wraps a :mod:`tomlkit` document and exposes edits addressed by key path,
so the typed model and the file text can be changed by the same mutation.
Comments, key order and whitespace outside of the edited keys survive.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence, Set

import tomlkit
from tomlkit.items import InlineTable
from tomlkit.toml_document import TOMLDocument


KeyPath = Sequence[str]


def _is_table(node: Any) -> bool:
    # Tables, inline tables, out-of-order proxies and the document itself
    # all behave like mutable mappings.
    return hasattr(node, "keys") and hasattr(node, "__setitem__")


class FormattedDocument:
    """Key path addressed edits on a round-trip TOML document."""

    def __init__(self, document: Optional[TOMLDocument] = None):
        self._document = document if document is not None else tomlkit.document()

    @classmethod
    def parse(cls, text: str) -> "FormattedDocument":
        """Parse TOML text.

        Raises:
            tomlkit.exceptions.ParseError: If the text is not valid TOML.
        """
        return cls(tomlkit.parse(text))

    @property
    def document(self) -> TOMLDocument:
        return self._document

    def get(self, path: KeyPath) -> Optional[Any]:
        """Return the node at ``path`` or None if any segment is missing."""
        node: Any = self._document
        for key in path:
            if not _is_table(node) or key not in node:
                return None
            node = node[key]
        return node

    def contains(self, path: KeyPath) -> bool:
        return self.get(path) is not None

    def ensure_table(self, path: KeyPath) -> Any:
        """Return the table at ``path``, creating missing tables along the way.

        Raises:
            TypeError: If a segment exists but is not a table.
        """
        node: Any = self._document
        for depth, key in enumerate(path):
            if key not in node:
                node[key] = tomlkit.table()
            node = node[key]
            if not _is_table(node):
                raise TypeError(f"'{'.'.join(path[:depth + 1])}' is not a table")
        return node

    def set(self, path: KeyPath, value: Any) -> None:
        """Set ``value`` at ``path``; intermediate tables are created as needed."""
        if not path:
            raise ValueError("Empty key path")
        parent = self.ensure_table(path[:-1])
        parent[path[-1]] = value

    def delete(self, path: KeyPath) -> None:
        """Remove the node at ``path``.

        Raises:
            KeyError: If the path does not exist.
        """
        parent = self.get(path[:-1]) if len(path) > 1 else self._document
        if parent is None or not _is_table(parent) or path[-1] not in parent:
            raise KeyError(".".join(path))
        del parent[path[-1]]

    def inline_keys(self, path: KeyPath) -> Set[str]:
        """Keys of the table at ``path`` whose values are written as inline tables."""
        node = self.get(path)
        if node is None or not _is_table(node):
            return set()
        return {key for key, item in node.items() if isinstance(item, InlineTable)}

    def value(self, path: KeyPath) -> Any:
        """Plain Python value at ``path``.

        Raises:
            KeyError: If the path does not exist.
        """
        node = self.get(path)
        if node is None:
            raise KeyError(".".join(path))
        unwrap = getattr(node, "unwrap", None)
        return unwrap() if callable(unwrap) else node

    def as_string(self) -> str:
        return self._document.as_string()

    def __str__(self) -> str:
        return self.as_string()
