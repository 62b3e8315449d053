"""Tests for the sink command line layer."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from args import parse_args
from cli_config import handle_config, list_entries, split_update
from cli_github import add_github_dependency, expand_dependency
from cli_install import install_dependencies
from common.errors import (
    ConfigError,
    DownloadError,
    DuplicateKey,
    InstallFailed,
    LoadError,
    MalformedPathspec,
    describe_error,
)
from constants import Constants, ExitCodes
from manifest import FullEntry, Manifest
import sink

MANIFEST_TOML = """\
default-owner = "Stausssi"

[GitHub]
default-repository = "sink"

[GitHub.dependencies]
"file-*.json" = "v1.2.3"  # shorthand
"tool.tar.gz" = { repository = "tools/tool", destination = "bin" }
"""


@pytest.fixture
def manifest_file(tmp_path):
    path = tmp_path / "sink.toml"
    path.write_text(MANIFEST_TOML, encoding="utf-8")
    return path


class TestArgParsing:
    """Tests for CLI argument parsing."""

    def test_github_add(self):
        """Test parsing every gh add option."""
        ns = parse_args(["gh", "add", "o/r:*.zip", "-d", "bin", "-v", "v1", "-g", "dev", "--no-gitignore"])
        assert ns.action == "gh"
        assert ns.github_action == "add"
        assert ns.dependency == "o/r:*.zip"
        assert ns.DESTINATION == "bin"
        assert ns.VERSION == "v1"
        assert ns.GROUP == "dev"
        assert ns.NO_GITIGNORE is True

    def test_github_add_defaults(self):
        """Test gh add defaults."""
        ns = parse_args(["github", "add", "o/r:*.zip"])
        assert ns.DESTINATION is None
        assert ns.VERSION is None
        assert ns.GROUP is None
        assert ns.NO_GITIGNORE is False

    def test_global_options(self):
        """Test global options before the subcommand."""
        ns = parse_args(["--manifest", "x.toml", "--loglevel", "debug", "--verbose", "config", "-t"])
        assert ns.MANIFEST == "x.toml"
        assert ns.LOG_LEVEL == "DEBUG"
        assert ns.VERBOSE is True
        assert ns.TOML is True

    def test_config_list_choices(self):
        """Test list choices are case insensitive and closed."""
        assert parse_args(["config", "--list", "Groups"]).LIST == "groups"
        with pytest.raises(SystemExit):
            parse_args(["config", "--list", "languages"])

    def test_command_required(self):
        """Test a subcommand is required."""
        with pytest.raises(SystemExit):
            parse_args([])


class TestAddGitHubDependency:
    """Tests for the add flow: validate, install, then record."""

    def test_adds_after_successful_install(self, manifest_file):
        """Test the entry is recorded after installing."""
        manifest = Manifest.load(manifest_file)
        installer = MagicMock()
        mutation = add_github_dependency(manifest, "o/r:new-*.zip", installer, destination="lib", version="v2")

        installed = installer.install.call_args[0][0]
        assert str(installed.pathspec) == "o/r:new-*.zip"
        assert mutation.applied
        entry = manifest.providers["GitHub"].container.entries["new-*.zip"]
        assert isinstance(entry, FullEntry)
        assert entry.record.destination == "lib"
        assert 'repository = "o/r"' in manifest.to_toml()

    def test_default_owner_and_repository(self, manifest_file):
        """Test a bare pattern uses the default owner and repository."""
        manifest = Manifest.load(manifest_file)
        installer = MagicMock()
        add_github_dependency(manifest, "bare.zip", installer)
        assert str(installer.install.call_args[0][0].pathspec) == "Stausssi/sink:bare.zip"

    def test_install_failure_leaves_manifest_untouched(self, manifest_file):
        """Test a failed install records nothing."""
        manifest = Manifest.load(manifest_file)
        installer = MagicMock()
        installer.install.side_effect = DownloadError("no such release")
        with pytest.raises(InstallFailed) as excinfo:
            add_github_dependency(manifest, "o/r:new.zip", installer)
        assert "no such release" in describe_error(excinfo.value)
        assert manifest.to_toml() == MANIFEST_TOML

    def test_duplicate_is_rejected_before_install(self, manifest_file):
        """Test duplicates fail before anything is downloaded."""
        manifest = Manifest.load(manifest_file)
        installer = MagicMock()
        with pytest.raises(DuplicateKey):
            add_github_dependency(manifest, "tools/tool:tool.tar.gz", installer)
        installer.install.assert_not_called()

    def test_malformed_dependency(self):
        """Test a malformed pathspec is rejected."""
        with pytest.raises(MalformedPathspec):
            add_github_dependency(Manifest(), "no-colon", MagicMock())

    def test_expand_dependency(self):
        """Test the default repository prefix is added only when missing."""
        assert expand_dependency("a.zip", "repo") == "repo:a.zip"
        assert expand_dependency("o/r:a.zip", "repo") == "o/r:a.zip"
        assert expand_dependency("a.zip", None) == "a.zip"


class TestInstallDependencies:
    """Tests for installing every declared dependency."""

    def test_installs_all(self, manifest_file):
        """Test every dependency is installed in order."""
        manifest = Manifest.load(manifest_file)
        installer = MagicMock()
        assert install_dependencies(manifest, installer) == 0
        specs = [str(call[0][0].pathspec) for call in installer.install.call_args_list]
        assert specs == ["Stausssi/sink:file-*.json", "tools/tool:tool.tar.gz"]

    def test_failures_are_counted_and_do_not_stop_others(self, manifest_file):
        """Test one failure does not stop the rest."""
        manifest = Manifest.load(manifest_file)
        installer = MagicMock()
        installer.install.side_effect = [DownloadError("boom"), None]
        assert install_dependencies(manifest, installer) == 1
        assert installer.install.call_count == 2

    def test_group_filter(self):
        """Test only the selected group is installed."""
        manifest = Manifest.from_text(
            '[GitHub.dependencies.dev]\na = { repository = "o/r" }\n'
            '[GitHub.dependencies.prod]\nb = { repository = "o/r" }\n'
        )
        installer = MagicMock()
        install_dependencies(manifest, installer, group="prod")
        assert [c[0][0].key for c in installer.install.call_args_list] == ["b"]

    def test_shorthand_without_default_repository_fails(self):
        """Test a shorthand entry needs a default repository."""
        manifest = Manifest.from_text('[GitHub.dependencies]\na = "v1"\n')
        installer = MagicMock()
        assert install_dependencies(manifest, installer) == 1
        installer.install.assert_not_called()


class TestConfig:
    """Tests for the config subcommand."""

    def test_list_entries(self, manifest_file):
        """Test listing providers, groups and dependencies."""
        manifest = Manifest.load(manifest_file)
        assert list_entries(manifest, "providers") == ["GitHub (GitHub)"]
        assert list_entries(manifest, "groups") == []
        lines = list_entries(manifest, "dependencies")
        assert lines[0] == "GitHub: file-*.json = v1.2.3"
        assert lines[1] == "GitHub: tool.tar.gz = tools/tool:tool.tar.gz@latest -> bin"

    def test_split_update(self):
        """Test splitting key=value updates."""
        assert split_update("default-group = 'dev'") == ("default-group", "dev")
        with pytest.raises(ConfigError):
            split_update("default-group")

    def test_handle_config_prints_and_updates(self, manifest_file, capsys):
        """Test config prints, reads a field and saves an update."""
        manifest = Manifest.load(manifest_file)
        args = parse_args(["config", "--all", "--field", "GitHub.default-repository",
                           "--update", "default-group=dev"])
        handle_config(args, manifest)
        out = capsys.readouterr().out
        structure = json.loads(out[:out.rindex("}") + 1])
        assert structure["default_owner"] == "Stausssi"
        assert out.rstrip().endswith("sink")
        assert 'default-group = "dev"' in manifest_file.read_text(encoding="utf-8")


class TestMain:
    """End-to-end tests of the entry point."""

    def test_resolve_manifest_path(self, tmp_path, monkeypatch, manifest_file):
        """Test manifest path precedence."""
        monkeypatch.delenv(Constants.ENV_MANIFEST, raising=False)
        assert sink.resolve_manifest_path(str(manifest_file)) == manifest_file
        assert sink.resolve_manifest_path(str(tmp_path / "nope.toml")) == Path(Constants.MANIFEST_FILE)
        monkeypatch.setenv(Constants.ENV_MANIFEST, str(manifest_file))
        assert sink.resolve_manifest_path() == manifest_file

    def test_add_and_save(self, manifest_file):
        """Test gh add installs and saves."""
        with patch("cli_github.GitHubInstaller") as mock_installer_cls:
            code = sink.run(parse_args(["-m", str(manifest_file), "gh", "add", "o/r:x.zip"]))
        assert code == ExitCodes.SUCCESS.value
        mock_installer_cls.return_value.install.assert_called_once()
        text = manifest_file.read_text(encoding="utf-8")
        assert text.startswith(MANIFEST_TOML)
        assert "x.zip" in text

    def test_add_creates_missing_manifest(self, tmp_path, monkeypatch):
        """Test gh add creates the manifest when missing."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(Constants.ENV_MANIFEST, raising=False)
        with patch("cli_github.GitHubInstaller"):
            code = sink.run(parse_args(["gh", "add", "o/r:x.zip", "-g", "dev"]))
        assert code == ExitCodes.SUCCESS.value
        manifest = Manifest.load(tmp_path / Constants.MANIFEST_FILE)
        assert "x.zip" in manifest.providers["GitHub"].container.groups["dev"]

    def test_add_error_exit_code(self, manifest_file):
        """Test an add error exits with a usage error."""
        with patch("cli_github.GitHubInstaller"):
            code = sink.run(parse_args(["-m", str(manifest_file), "gh", "add", "o/r:x.zip", "-g", "dev"]))
        assert code == ExitCodes.USAGE_ERROR.value
        assert manifest_file.read_text(encoding="utf-8") == MANIFEST_TOML

    def test_add_with_provider_name_taken_exits_cleanly(self, tmp_path):
        """Test a scalar under the provider's table name is a usage error."""
        path = tmp_path / "sink.toml"
        path.write_text('GitHub = "x"\n', encoding="utf-8")
        with patch("cli_github.GitHubInstaller") as mock_installer_cls:
            code = sink.run(parse_args(["-m", str(path), "gh", "add", "o/r:x.zip"]))
        assert code == ExitCodes.USAGE_ERROR.value
        mock_installer_cls.return_value.install.assert_not_called()
        assert path.read_text(encoding="utf-8") == 'GitHub = "x"\n'

    def test_remove(self, manifest_file):
        """Test gh rm removes and saves."""
        code = sink.run(parse_args(["-m", str(manifest_file), "gh", "rm", "tool.tar.gz"]))
        assert code == ExitCodes.SUCCESS.value
        assert "tool.tar.gz" not in manifest_file.read_text(encoding="utf-8")

    def test_load_error_exit_code(self, tmp_path):
        """Test a malformed manifest exits with a file error."""
        path = tmp_path / "sink.toml"
        path.write_text('[GitHub.dependencies]\nbroken = { version = "v1" }\n', encoding="utf-8")
        code = sink.run(parse_args(["-m", str(path), "config", "-t"]))
        assert code == ExitCodes.FILE_ERROR.value

    def test_install_requires_selection(self, manifest_file):
        """Test install without a selection is a usage error."""
        code = sink.run(parse_args(["-m", str(manifest_file), "install"]))
        assert code == ExitCodes.USAGE_ERROR.value

    def test_install_all(self, manifest_file):
        """Test install --all runs the installer."""
        with patch("cli_install.install_dependencies", return_value=0) as mock_install:
            code = sink.run(parse_args(["-m", str(manifest_file), "install", "--all"]))
        assert code == ExitCodes.SUCCESS.value
        mock_install.assert_called_once()


class TestDescribeError:
    """Tests for cause chain rendering."""

    def test_chain(self):
        """Test causes are appended to the message."""
        try:
            try:
                raise OSError("disk full")
            except OSError as exc:
                raise LoadError("Failed to load sink TOML!") from exc
        except LoadError as err:
            assert describe_error(err) == "Failed to load sink TOML! Caused by: disk full"
