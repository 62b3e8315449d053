"""sink - declarative dependency installer.

    Returns:
        int: Exit code
"""
import logging
import os
import sys
from pathlib import Path

from constants import Constants, ExitCodes
from args import parse_args
from common.errors import (
    AddError,
    ConfigError,
    DownloadError,
    InstallFailed,
    LoadError,
    ParseError,
    RemoveError,
    SaveError,
    describe_error,
)
from common.logging_utils import configure_logging
from manifest import Manifest

logger = logging.getLogger(__name__)


def setup_logging(args) -> None:
    """Configure logging based on CLI arguments.

    --verbose wins over --loglevel, which wins over SINK_LOG_LEVEL.
    """
    level = "DEBUG" if getattr(args, "VERBOSE", False) else getattr(args, "LOG_LEVEL", None)
    configure_logging(level)

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def resolve_manifest_path(requested=None) -> Path:
    """Pick the manifest file: --manifest, then SINK_MANIFEST, then the conventional name.

    A requested path that does not exist falls back to the conventional name.
    """
    candidate = requested or os.environ.get(Constants.ENV_MANIFEST)
    if candidate:
        path = Path(candidate).expanduser()
        if path.is_file():
            return path
        logger.warning("'%s' does not exist, falling back to %s", candidate, Constants.MANIFEST_FILE)
    return Path(Constants.MANIFEST_FILE)


def load_manifest(path: Path, allow_missing: bool = False) -> Manifest:
    """Load the manifest, or start an empty one when adding to a missing file."""
    if allow_missing and not path.exists():
        logger.info("No sink TOML at '%s', a new one will be created.", path)
        return Manifest(path=path)
    return Manifest.load(path)


def run(args) -> int:
    """Execute the parsed command and return an exit code."""
    from cli_config import handle_config  # pylint: disable=import-outside-toplevel
    from cli_github import handle_github  # pylint: disable=import-outside-toplevel
    from cli_install import install_dependencies  # pylint: disable=import-outside-toplevel
    from github_releases.installer import GitHubInstaller  # pylint: disable=import-outside-toplevel

    path = resolve_manifest_path(getattr(args, "MANIFEST", None))
    try:
        manifest = load_manifest(path, allow_missing=args.action in ("github", "gh"))
    except LoadError as exc:
        logger.error("%s", describe_error(exc))
        return ExitCodes.FILE_ERROR.value
    logger.debug("Loaded sink TOML from '%s'!", path)

    try:
        if args.action == "config":
            handle_config(args, manifest)
        elif args.action == "install":
            if not (args.ALL or args.PROVIDER or args.GROUP):
                logger.error("Nothing selected; pass --all, --provider or --group.")
                return ExitCodes.USAGE_ERROR.value
            failures = install_dependencies(
                manifest,
                GitHubInstaller(base_dir=manifest.base_dir),
                provider=args.PROVIDER,
                group=args.GROUP,
            )
            if failures:
                return ExitCodes.CONNECTION_ERROR.value
        else:
            handle_github(args, manifest)
    except SaveError as exc:
        logger.error("%s", describe_error(exc))
        return ExitCodes.FILE_ERROR.value
    except (DownloadError, InstallFailed) as exc:
        logger.error("%s", describe_error(exc))
        return ExitCodes.CONNECTION_ERROR.value
    except (AddError, ParseError, RemoveError, ConfigError) as exc:
        logger.error("%s", describe_error(exc))
        return ExitCodes.USAGE_ERROR.value

    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
