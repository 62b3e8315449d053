"""The sink manifest: typed model plus format preserving document.

Both representations are parsed from the same text when a manifest is
loaded and are only ever changed together, through a
:class:`ManifestMutation` or the small setters on :class:`Manifest`.
The file is always written from the formatted document, never from the
typed model.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from tomlkit.exceptions import TOMLKitError

try:
    import tomllib as toml  # type: ignore
except ImportError:  # Python < 3.11
    import tomli as toml  # type: ignore

from common.errors import (
    ConfigError,
    CorruptContainer,
    DuplicateKey,
    GroupedIntoSingular,
    LoadError,
    MalformedEntries,
    MissingGroupForGroupedContainer,
    RemoveError,
    SaveError,
    UnknownProvider,
    ValidationError,
)

from .document import FormattedDocument
from .entries import (
    DependencyEntry,
    Grouped,
    GroupingContainer,
    InvalidContainer,
    InvalidEntry,
    Singular,
    entry_to_plain,
    iter_entries,
    parse_container,
)
from .providers import (
    OPTION_DEFAULT_GROUP,
    OPTION_DEFAULT_OWNER,
    OPTION_DEFAULT_REPOSITORY,
    OPTION_DEPENDENCIES,
    OPTION_PROVIDER,
    ProviderSpec,
    find_provider,
)

logger = logging.getLogger(__name__)

KEY_DEFAULT_OWNER = "default-owner"
KEY_DEFAULT_GROUP = "default-group"
KEY_INCLUDES = "includes"
ROOT_OPTIONS = (KEY_DEFAULT_OWNER, KEY_DEFAULT_GROUP)
SECTION_OPTIONS = (OPTION_DEFAULT_GROUP, OPTION_DEFAULT_OWNER, OPTION_DEFAULT_REPOSITORY)


@dataclass
class ProviderSection:
    """One provider table of the manifest."""
    name: str
    spec: ProviderSpec
    default_group: Optional[str] = None
    default_owner: Optional[str] = None
    default_repository: Optional[str] = None
    container: Optional[GroupingContainer] = None

    def groups(self) -> List[str]:
        if isinstance(self.container, Grouped):
            return list(self.container.groups)
        return []

    def set_option(self, option: str, value: Optional[str]) -> None:
        if option == OPTION_DEFAULT_GROUP:
            self.default_group = value
        elif option == OPTION_DEFAULT_OWNER:
            self.default_owner = value
        elif option == OPTION_DEFAULT_REPOSITORY:
            self.default_repository = value
        else:
            raise ConfigError(f"'{option}' is not a provider option")


def first_present(*candidates: Optional[str]) -> Optional[str]:
    """Return the first candidate that is set, in precedence order."""
    for candidate in candidates:
        if candidate:
            return candidate
    return None


@dataclass
class ManifestMutation:
    """A planned insertion, applied to the typed model and the document together.

    Created by :meth:`Manifest.plan_add` once every precondition holds, so
    applying it cannot fail on a decision rule.
    """
    manifest: "Manifest"
    section: ProviderSection
    group: Optional[str]
    key: str
    entry: DependencyEntry
    formatted_value: Any
    new_section: bool = False
    applied: bool = field(default=False, init=False)

    @property
    def path(self) -> Tuple[str, ...]:
        """Key path of the entry in the document."""
        if self.group is None:
            return (self.section.name, OPTION_DEPENDENCIES, self.key)
        return (self.section.name, OPTION_DEPENDENCIES, self.group, self.key)

    def apply(self) -> None:
        if self.applied:
            raise RuntimeError(f"Mutation for '{self.key}' was already applied")

        self.manifest.document.set(self.path, self.formatted_value)

        section = self.section
        if self.new_section:
            self.manifest.providers[section.name] = section
        container = section.container
        if container is None:
            if self.group is None:
                section.container = Singular({self.key: self.entry})
            else:
                section.container = Grouped({self.group: {self.key: self.entry}})
        elif isinstance(container, Singular):
            container.entries[self.key] = self.entry
        elif isinstance(container, Grouped):
            container.groups.setdefault(self.group, {})[self.key] = self.entry

        self.applied = True
        logger.debug("Applied %s", ".".join(self.path))


class Manifest:
    """A loaded sink manifest."""

    def __init__(
        self,
        path: Optional[os.PathLike] = None,
        default_owner: Optional[str] = None,
        default_group: Optional[str] = None,
        includes: Optional[List[str]] = None,
        providers: Optional[Dict[str, ProviderSection]] = None,
        document: Optional[FormattedDocument] = None,
    ):
        self.path = Path(path) if path is not None else None
        self.default_owner = default_owner
        self.default_group = default_group
        self.includes = list(includes or [])
        self.providers: Dict[str, ProviderSection] = providers if providers is not None else {}
        self.document = document if document is not None else FormattedDocument()

    # ---------- [ Loading ] ----------

    @classmethod
    def from_text(cls, text: str, path: Optional[os.PathLike] = None) -> "Manifest":
        """Parse ``text`` into both representations. Does not validate.

        Raises:
            LoadError: If the text is not valid TOML or has the wrong structure.
        """
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise LoadError("Failed to parse TOML data!") from exc
        try:
            document = FormattedDocument.parse(text)
        except TOMLKitError as exc:
            raise LoadError("Failed to parse TOML data!") from exc

        manifest = cls(path=path, document=document)
        manifest.default_owner = _optional_string(data, KEY_DEFAULT_OWNER, "root")
        manifest.default_group = _optional_string(data, KEY_DEFAULT_GROUP, "root")
        manifest.includes = _string_list(data, KEY_INCLUDES)

        for key, value in data.items():
            if key in ROOT_OPTIONS or key == KEY_INCLUDES:
                continue
            if not isinstance(value, dict):
                logger.warning("Ignoring unknown option '%s'", key)
                continue
            provider_name = value.get(OPTION_PROVIDER, key)
            spec = find_provider(str(provider_name))
            if spec is None:
                logger.warning("Skipping table '%s': unsupported provider '%s'", key, provider_name)
                continue
            manifest.providers[key] = manifest._parse_section(key, spec, value)
        return manifest

    def _parse_section(self, name: str, spec: ProviderSpec, table: Dict[str, Any]) -> ProviderSection:
        for option in table:
            if option not in spec.options:
                logger.warning("Ignoring unknown option '%s.%s'", name, option)
        section = ProviderSection(
            name=name,
            spec=spec,
            default_group=_optional_string(table, OPTION_DEFAULT_GROUP, name),
            default_owner=_optional_string(table, OPTION_DEFAULT_OWNER, name),
            default_repository=_optional_string(table, OPTION_DEFAULT_REPOSITORY, name),
        )
        section.container = parse_container(
            table.get(OPTION_DEPENDENCIES),
            spec,
            self.effective_owner(section),
            self.document.inline_keys((name, OPTION_DEPENDENCIES)),
        )
        return section

    @classmethod
    def load(cls, path: os.PathLike, _visited: Optional[Set[Path]] = None) -> "Manifest":
        """Read, parse and validate a manifest, then visit its includes.

        Included manifests are loaded and validated but not merged. A broken
        include is logged and skipped.

        Raises:
            LoadError: On I/O, parse or validation failure of this manifest.
        """
        path = Path(path)
        visited = set(_visited or ())
        visited.add(path.resolve())
        logger.debug("Parsing sink TOML from '%s'...", path)

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadError(f"Failed to load sink TOML '{path}'!") from exc

        try:
            manifest = cls.from_text(text, path)
            manifest.validate()
        except (LoadError, ValidationError) as exc:
            raise LoadError(f"Failed to load sink TOML '{path}'!") from exc

        for include in manifest.includes:
            include_path = manifest.resolve_path(include)
            if include_path.resolve() in visited:
                logger.warning("Skipping include '%s': include cycle", include)
                continue
            try:
                cls.load(include_path, visited)
            except LoadError as exc:
                logger.warning("Failed to include '%s': %s", include, exc)
                continue
            logger.info("Including %s...", include)
            logger.warning("Merging included manifests is not supported; '%s' was not merged", include)

        logger.debug("Parsing done!")
        return manifest

    def resolve_path(self, value: str) -> Path:
        """Resolve a manifest-relative path against the manifest's directory."""
        candidate = Path(value).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.base_dir / candidate

    @property
    def base_dir(self) -> Path:
        if self.path is None:
            return Path.cwd()
        return self.path.parent

    # ---------- [ Validation ] ----------

    def validate(self) -> None:
        """Fail on the first invalid container or entry, in declaration order.

        Raises:
            MalformedEntries: Naming the provider and the offending key.
        """
        for name, section in self.providers.items():
            container = section.container
            if isinstance(container, InvalidContainer):
                raise MalformedEntries(name, None, container.reason)
            for _group, key, entry in iter_entries(container):
                if isinstance(entry, InvalidEntry):
                    raise MalformedEntries(name, key, entry.reason)

    # ---------- [ Lookup ] ----------

    def section(self, provider: str) -> Optional[ProviderSection]:
        """Find a provider section by table name, then by provider name or alias."""
        if provider in self.providers:
            return self.providers[provider]
        for section in self.providers.values():
            if section.spec.matches(provider):
                return section
        return None

    def effective_owner(self, section: Optional[ProviderSection]) -> Optional[str]:
        return first_present(section.default_owner if section else None, self.default_owner)

    def resolve_group(self, section: Optional[ProviderSection], requested_group: Optional[str]) -> Optional[str]:
        """Explicit group, then provider default-group, then root default-group."""
        return first_present(
            requested_group,
            section.default_group if section else None,
            self.default_group,
        )

    def groups(self) -> List[str]:
        """All group names across providers, in declaration order."""
        seen: List[str] = []
        for section in self.providers.values():
            for group in section.groups():
                if group not in seen:
                    seen.append(group)
        return seen

    def iter_dependencies(
        self,
        provider: Optional[str] = None,
        group: Optional[str] = None,
    ) -> Iterator[Tuple[ProviderSection, Optional[str], str, DependencyEntry]]:
        """Yield ``(section, group, key, entry)``.

        With a ``group`` filter only grouped entries of that group are
        yielded; ungrouped entries belong to no group.
        """
        for section in self.providers.values():
            if provider is not None and not (section.name == provider or section.spec.matches(provider)):
                continue
            for entry_group, key, entry in iter_entries(section.container):
                if group is not None and entry_group != group:
                    continue
                yield section, entry_group, key, entry

    def resolve_record(self, section: ProviderSection, key: str, entry: DependencyEntry) -> Any:
        """Installable record for an entry, applying the section's defaults."""
        return section.spec.resolve(
            key, entry, self.effective_owner(section), section.default_repository
        )

    # ---------- [ Mutation ] ----------

    def plan_add(
        self,
        provider: str,
        requested_group: Optional[str],
        key: str,
        entry: DependencyEntry,
        formatted_value: Any,
    ) -> ManifestMutation:
        """Decide where ``key`` goes without changing anything.

        Raises:
            AddError: One of its subclasses, if the entry cannot be added.
        """
        section = self.section(provider)
        new_section = False
        if section is None:
            spec = find_provider(provider)
            if spec is None:
                raise UnknownProvider(provider)
            if self.document.contains((spec.name,)):
                raise CorruptContainer(spec.name, f"'{spec.name}' is already used by a value that is not a provider table")
            section = ProviderSection(name=spec.name, spec=spec)
            new_section = True

        group = self.resolve_group(section, requested_group)
        container = section.container

        if isinstance(container, InvalidContainer):
            raise CorruptContainer(section.name)
        if isinstance(container, Singular):
            if group is not None:
                raise GroupedIntoSingular(section.name, group)
            if key in container.entries:
                raise DuplicateKey(section.name, key)
        elif isinstance(container, Grouped):
            if group is None:
                raise MissingGroupForGroupedContainer(section.name)
            if key in container.groups.get(group, {}):
                raise DuplicateKey(section.name, key, group)

        return ManifestMutation(
            manifest=self,
            section=section,
            group=group,
            key=key,
            entry=entry,
            formatted_value=formatted_value,
            new_section=new_section,
        )

    def add_dependency(
        self,
        provider: str,
        requested_group: Optional[str],
        key: str,
        entry: DependencyEntry,
        formatted_value: Any,
    ) -> ManifestMutation:
        """Add a dependency to both representations."""
        mutation = self.plan_add(provider, requested_group, key, entry, formatted_value)
        mutation.apply()
        return mutation

    def remove_dependency(self, provider: str, key: str, group: Optional[str] = None) -> DependencyEntry:
        """Remove a dependency from both representations.

        Raises:
            RemoveError: If the provider, group or key does not exist.
        """
        section = self.section(provider)
        if section is None or section.container is None:
            raise RemoveError(f"No dependencies declared for '{provider}'!")
        container = section.container

        if isinstance(container, Singular):
            if group is not None:
                raise RemoveError(f"Dependencies of '{section.name}' are not grouped!")
            members = container.entries
            path: Tuple[str, ...] = (section.name, OPTION_DEPENDENCIES, key)
        elif isinstance(container, Grouped):
            group = self.resolve_group(section, group)
            if group is None:
                raise RemoveError(f"Dependencies of '{section.name}' are grouped, but no group was given!")
            if group not in container.groups:
                raise RemoveError(f"Group '{group}' does not exist in '{section.name}'!")
            members = container.groups[group]
            path = (section.name, OPTION_DEPENDENCIES, group, key)
        else:
            raise RemoveError(f"Dependencies table of '{section.name}' is malformed!")

        if key not in members:
            raise RemoveError(f"Dependency '{key}' does not exist in '{section.name}'!")

        self.document.delete(path)
        removed = members.pop(key)
        if isinstance(container, Singular) and not members:
            # An empty flat table reads back as "no container yet".
            section.container = None
        return removed

    def set_option(self, option_path: str, value: str) -> None:
        """Update a root or provider option in both representations.

        Raises:
            ConfigError: If the path does not name an updatable option.
        """
        if not value:
            raise ConfigError(f"Refusing to set '{option_path}' to an empty value")
        parts = option_path.split(".")
        if len(parts) == 1 and parts[0] in ROOT_OPTIONS:
            self.document.set(parts, value)
            if parts[0] == KEY_DEFAULT_OWNER:
                self.default_owner = value
            else:
                self.default_group = value
            return
        if len(parts) == 2 and parts[1] in SECTION_OPTIONS:
            section = self.section(parts[0])
            if section is None:
                raise ConfigError(f"Unknown provider '{parts[0]}'")
            self.document.set((section.name, parts[1]), value)
            section.set_option(parts[1], value)
            return
        raise ConfigError(f"'{option_path}' is not an updatable option")

    def get_field(self, field_path: str) -> Any:
        """Plain value at a dot-separated path of the document.

        Raises:
            ConfigError: If the path does not exist.
        """
        try:
            return self.document.value(field_path.split("."))
        except KeyError as exc:
            raise ConfigError(f"No field '{field_path}'") from exc

    # ---------- [ Output ] ----------

    def to_toml(self) -> str:
        """The manifest text, as it would be written to disk."""
        return self.document.as_string()

    def to_dict(self) -> Dict[str, Any]:
        """Plain structure of the typed model."""
        providers: Dict[str, Any] = {}
        for name, section in self.providers.items():
            container = section.container
            if isinstance(container, Singular):
                dependencies: Any = {k: entry_to_plain(e) for k, e in container.entries.items()}
            elif isinstance(container, Grouped):
                dependencies = {
                    g: {k: entry_to_plain(e) for k, e in members.items()}
                    for g, members in container.groups.items()
                }
            elif isinstance(container, InvalidContainer):
                dependencies = {"invalid": container.raw, "reason": container.reason}
            else:
                dependencies = None
            providers[name] = {
                "provider": section.spec.name,
                "default_group": section.default_group,
                "default_owner": section.default_owner,
                "default_repository": section.default_repository,
                "dependencies": dependencies,
            }
        return {
            "path": str(self.path) if self.path else None,
            "default_owner": self.default_owner,
            "default_group": self.default_group,
            "includes": list(self.includes),
            "providers": providers,
        }

    def save(self, path: Optional[os.PathLike] = None) -> Path:
        """Write the formatted document back to ``path`` or the source path.

        Raises:
            SaveError: If there is no target path or writing fails.
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise SaveError("No path to save the sink TOML to!")
        try:
            with open(target, "w", encoding="utf-8", newline="") as handle:
                handle.write(self.to_toml())
        except OSError as exc:
            raise SaveError(f"Failed to save sink TOML '{target}'!") from exc
        logger.debug("Saved sink TOML to '%s'", target)
        return target


def _optional_string(table: Dict[str, Any], key: str, where: str) -> Optional[str]:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise LoadError(f"'{key}' in {where} must be a string")
    return value


def _string_list(table: Dict[str, Any], key: str) -> List[str]:
    value = table.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise LoadError(f"'{key}' must be a list of paths")
    return list(value)
