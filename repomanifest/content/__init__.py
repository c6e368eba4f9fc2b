"""Content sources: local filesystem and remote mirror checkouts."""

from __future__ import annotations

from .base import ContentSource
from .filesystem import FilesystemContentSource
from .mirror import GitMirrorContentSource

__all__ = [
    "ContentSource",
    "FilesystemContentSource",
    "GitMirrorContentSource",
]
