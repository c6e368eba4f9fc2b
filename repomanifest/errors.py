"""Exception types raised by repomanifest."""

from __future__ import annotations


class RepoManifestError(RuntimeError):
    """Base class for manifest generation failures."""


class ConfigError(RepoManifestError):
    """Raised when configuration is missing or cannot be parsed."""


class ContentSourceError(RepoManifestError):
    """Raised when the content source cannot provide the repository tree."""


__all__ = ["ConfigError", "ContentSourceError", "RepoManifestError"]
