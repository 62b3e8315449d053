"""Sink manifest package.

This package holds the typed manifest model, the format preserving
document it is mirrored into, and the provider registry.
"""

from .document import FormattedDocument
from .entries import (
    FullEntry,
    Grouped,
    InvalidContainer,
    InvalidEntry,
    Singular,
    VersionOnly,
)
from .model import Manifest, ManifestMutation, ProviderSection
from .providers import GITHUB, ProviderSpec, find_provider

__all__ = [
    "FormattedDocument",
    "FullEntry",
    "Grouped",
    "InvalidContainer",
    "InvalidEntry",
    "Singular",
    "VersionOnly",
    "Manifest",
    "ManifestMutation",
    "ProviderSection",
    "GITHUB",
    "ProviderSpec",
    "find_provider",
]
