"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    USAGE_ERROR = 3


class Providers(Enum):
    """Dependency providers supported by the program.

    Args:
        Enum (string): Canonical provider names as used for manifest tables.
    """

    GITHUB = "GitHub"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    MANIFEST_FILE = "sink.toml"
    GITIGNORE_FILE = ".gitignore"
    LIST_OPTIONS = ["groups", "providers", "dependencies"]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024

    # Environment
    ENV_MANIFEST = "SINK_MANIFEST"
    ENV_LOG_LEVEL = "SINK_LOG_LEVEL"
    ENV_GITHUB_TOKEN = "GITHUB_TOKEN"

    # Repository API constants
    GITHUB_API_BASE = "https://api.github.com"
    GITHUB_API_VERSION = "2022-11-28"
    REPO_API_PER_PAGE = 100
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
