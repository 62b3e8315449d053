"""Argument parsing functionality for sink."""

import argparse
from constants import Constants


def _add_github_parser(subparsers):
    github = subparsers.add_parser(
        "github",
        aliases=["gh"],
        help="Manage GitHub release dependencies",
    )
    actions = github.add_subparsers(dest="github_action", metavar="ACTION")
    actions.required = True

    add = actions.add_parser(
        "add",
        help="Add and install a dependency",
        description=(
            "Downloads assets from GitHub releases to a local destination "
            "and records the dependency in the sink TOML."
        ),
    )
    add.add_argument("dependency",
                     help="Dependency as owner/repository:pattern. If 'default-owner' is set, "
                          "owner may be omitted; if 'default-repository' is set, so may repository.",
                     type=str)
    add.add_argument("-d", "--destination", "--dest",
                     dest="DESTINATION",
                     help="Local destination; relative paths start at the directory of the sink TOML",
                     action="store",
                     type=str)
    add.add_argument("-v", "--version",
                     dest="VERSION",
                     help="Release tag to download, 'latest' or 'prerelease' (default: latest)",
                     action="store",
                     type=str)
    add.add_argument("-g", "--group",
                     dest="GROUP",
                     help="Group to add the dependency to; created if it does not exist",
                     action="store",
                     type=str)
    add.add_argument("--no-gitignore",
                     dest="NO_GITIGNORE",
                     help="Do not add downloaded files to .gitignore",
                     action="store_true")

    remove = actions.add_parser("remove", aliases=["rm"], help="Remove a dependency from the sink TOML")
    remove.add_argument("key",
                        help="Dependency key (the asset pattern)",
                        type=str)
    remove.add_argument("-g", "--group",
                        dest="GROUP",
                        help="Group to remove the dependency from",
                        action="store",
                        type=str)


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="sink",
        description="sink - declarative dependency installer",
        add_help=True,
    )

    parser.add_argument("-m", "--manifest",
                        dest="MANIFEST",
                        help=f"Path to the sink TOML (default: {Constants.MANIFEST_FILE})",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=Constants.LOG_LEVELS)
    parser.add_argument("--verbose",
                        dest="VERBOSE",
                        help="Enable verbose (debug) output",
                        action="store_true")
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    subparsers = parser.add_subparsers(dest="action", metavar="COMMAND")
    subparsers.required = True

    config = subparsers.add_parser("config", help="Interact with the sink TOML file")
    config.add_argument("-a", "--all",
                        dest="ALL",
                        help="Print the loaded sink TOML as a structure",
                        action="store_true")
    config.add_argument("-t", "--toml",
                        dest="TOML",
                        help="Print the loaded sink TOML as TOML",
                        action="store_true")
    config.add_argument("-l", "--list",
                        dest="LIST",
                        help="List groups, providers or dependencies",
                        action="store",
                        type=str.lower,
                        choices=Constants.LIST_OPTIONS)
    config.add_argument("-f", "--field",
                        dest="FIELD",
                        help="Show a single field by its '.' separated path",
                        action="store",
                        type=str)
    config.add_argument("-u", "--update",
                        dest="UPDATE",
                        help="Update an option (KEY=VALUE); not intended for dependencies",
                        action="store",
                        type=str)

    install = subparsers.add_parser("install", help="Install dependencies")
    install.add_argument("-a", "--all",
                         dest="ALL",
                         help="Install all dependencies regardless of group and provider",
                         action="store_true")
    install.add_argument("-p", "--provider",
                         dest="PROVIDER",
                         help="Install only dependencies of a provider; can be combined with --group",
                         action="store",
                         type=str)
    install.add_argument("-g", "--group",
                         dest="GROUP",
                         help="Install only a specific group; can be combined with --provider",
                         action="store",
                         type=str)

    _add_github_parser(subparsers)

    return parser.parse_args(argv)
