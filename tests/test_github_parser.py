"""Tests for GitHub pathspec, version and record parsing."""

import pytest

from common.errors import MalformedPathspec, ParseError
from github_releases.models import GitHubDependency, GitHubVersion, Pathspec, VersionKind
from github_releases.parser import (
    dependency_from_table,
    dependency_to_item,
    dependency_to_table,
    new_dependency,
    parse_pathspec,
    parse_version,
)


class TestParsePathspec:
    """Test owner/repository:pattern parsing."""

    @pytest.mark.parametrize("owner,repository,pattern", [
        ("Stausssi", "sink", "file-*.json"),
        ("a", "b", "c"),
        ("some-org", "tool.rs", "tool-linux-x86_64.tar.gz"),
    ])
    def test_round_trip(self, owner, repository, pattern):
        """Test formatting a parsed pathspec gives back the input."""
        raw = f"{owner}/{repository}:{pattern}"
        spec = parse_pathspec(raw)
        assert spec == Pathspec(owner, repository, pattern)
        assert str(spec) == raw

    def test_short_form_uses_default_owner(self):
        """Test the short form takes the default owner."""
        spec = parse_pathspec("sink:*.json", default_owner="Stausssi")
        assert spec == Pathspec("Stausssi", "sink", "*.json")

    def test_explicit_owner_wins_over_default(self):
        """Test an explicit owner is kept over the default."""
        spec = parse_pathspec("other/sink:*.json", default_owner="Stausssi")
        assert spec.owner == "other"

    def test_short_form_without_default_owner_fails(self):
        """Test the short form without a default owner is rejected."""
        with pytest.raises(MalformedPathspec) as excinfo:
            parse_pathspec("sink:*.json")
        assert "sink:*.json" in str(excinfo.value)

    @pytest.mark.parametrize("raw", [
        "owner/repo",            # no colon
        "owner/repo:a:b",        # two colons
        "a/b/c:pattern",         # two slashes before the colon
        "/repo:pattern",         # empty owner
        "owner/:pattern",        # empty repository
        "owner/repo:",           # empty pattern
        ":pattern",
        "",
    ])
    def test_rejects_malformed(self, raw):
        """Test strings with a wrong number of separators are rejected."""
        with pytest.raises(MalformedPathspec):
            parse_pathspec(raw, default_owner="fallback")

    def test_no_case_or_whitespace_normalization(self):
        """Test parts are kept exactly as written."""
        spec = parse_pathspec("Owner/Repo: Pattern")
        assert spec.owner == "Owner"
        assert spec.pattern == " Pattern"

    def test_pathspec_is_hashable(self):
        """Test pathspecs work as set members and dict keys."""
        assert len({parse_pathspec("a/b:c"), parse_pathspec("a/b:c")}) == 1


class TestParseVersion:
    """Test version descriptor parsing."""

    @pytest.mark.parametrize("raw", ["latest", "prerelease", "v1.2.3", "nightly-2024"])
    def test_round_trip(self, raw):
        """Test a tag is returned unchanged."""
        assert str(parse_version(raw)) == raw

    def test_reserved_literals(self):
        """Test latest and prerelease map to their kinds."""
        assert parse_version("latest").kind is VersionKind.LATEST
        assert parse_version("prerelease").kind is VersionKind.PRERELEASE

    def test_case_sensitive(self):
        """Test reserved literals only match in lower case."""
        version = parse_version("Latest")
        assert version == GitHubVersion.of_tag("Latest")


class TestNewDependency:
    """Test building records from CLI fields."""

    def test_defaults(self):
        """Test omitted fields get their defaults."""
        dep = new_dependency("o/r:*.zip")
        assert dep.destination == "."
        assert dep.version == GitHubVersion.latest()
        assert dep.ignore_in_vcs is True
        assert dep.key == "*.zip"

    def test_explicit_fields(self):
        """Test given fields are kept."""
        dep = new_dependency("r:*.zip", destination="bin", version=parse_version("v2"),
                             ignore_in_vcs=False, default_owner="o")
        assert dep.pathspec == Pathspec("o", "r", "*.zip")
        assert dep.destination == "bin"
        assert str(dep.version) == "v2"
        assert dep.ignore_in_vcs is False

    def test_malformed_pathspec_propagates(self):
        """Test a bad pathspec fails record creation."""
        with pytest.raises(MalformedPathspec):
            new_dependency("not-a-pathspec")


class TestDependencyTable:
    """Test full entry (de)serialization."""

    def test_from_table_with_defaults(self):
        """Test a table with only repository gets defaults."""
        dep = dependency_from_table("file-*.json", {"repository": "Stausssi/Stausssi"})
        assert dep == GitHubDependency(Pathspec("Stausssi", "Stausssi", "file-*.json"))

    def test_origin_alias_and_default_owner(self):
        """Test origin works as repository and uses the default owner."""
        dep = dependency_from_table(
            "x", {"origin": "sink", "version": "prerelease", "destination": "./imported/", "gitignore": False},
            default_owner="Stausssi",
        )
        assert dep.pathspec == Pathspec("Stausssi", "sink", "x")
        assert dep.version.kind is VersionKind.PRERELEASE
        assert dep.destination == "./imported/"
        assert dep.ignore_in_vcs is False

    @pytest.mark.parametrize("table", [
        {"version": "v1"},
        {"repository": "a/b", "url": "https://example.com"},
        {"repository": "a/b", "origin": "a/b"},
        {"repository": 3},
        {"repository": "a/b", "version": 1},
        {"repository": "a/b", "destination": ["x"]},
        {"repository": "a/b", "gitignore": "yes"},
        {"repository": "b"},
    ])
    def test_from_table_rejects(self, table):
        """Test malformed tables raise ParseError."""
        with pytest.raises(ParseError):
            dependency_from_table("key", table)

    def test_to_table(self):
        """Test records serialize without default gitignore."""
        dep = new_dependency("o/r:*.zip", destination="bin", version=parse_version("v1"))
        assert dependency_to_table(dep) == {"repository": "o/r", "version": "v1", "destination": "bin"}
        dep.ignore_in_vcs = False
        assert dependency_to_table(dep)["gitignore"] is False

    def test_item_deserializes_to_same_record(self):
        """Test the document item reads back as the same record."""
        dep = new_dependency("o/r:*.zip", destination="bin", version=parse_version("v1"), ignore_in_vcs=False)
        item = dependency_to_item(dep)
        assert dependency_from_table("*.zip", item.unwrap()) == dep
