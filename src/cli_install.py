"""Installation of the dependencies declared in a manifest."""

from __future__ import annotations

import logging
from typing import Any, Optional

from common.errors import DownloadError, ParseError, describe_error
from manifest import Manifest

logger = logging.getLogger(__name__)


def install_dependencies(
    manifest: Manifest,
    installer: Any,
    provider: Optional[str] = None,
    group: Optional[str] = None,
) -> int:
    """Install every selected dependency.

    A failing dependency is logged and does not stop the others.

    Returns:
        The number of dependencies that failed.
    """
    failures = 0
    selected = 0
    for section, entry_group, key, entry in manifest.iter_dependencies(provider, group):
        selected += 1
        where = f"{section.name}.{entry_group}" if entry_group else section.name
        try:
            record = manifest.resolve_record(section, key, entry)
            installer.install(record)
        except (ParseError, DownloadError) as exc:
            failures += 1
            logger.error("Failed to install '%s' (%s): %s", key, where, describe_error(exc))

    if not selected:
        logger.warning("No dependencies matched the selection.")
    else:
        logger.info("Installed %d of %d dependencies.", selected - failures, selected)
    return failures
