"""Content source contract used by the manifest pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence


class ContentSource(ABC):
    """Byte-level access to repository files, independent of where they live.

    Paths handed to and returned from a source are POSIX paths relative to the
    repository root.
    """

    source_type: str = "unknown"

    @property
    @abstractmethod
    def root(self) -> str:
        """Absolute location of the repository root."""

    @abstractmethod
    def walk_directory(
        self,
        root: str = "",
        *,
        exclude_patterns: Sequence[str] | None = None,
        max_files: int | None = None,
        include_extensions: Sequence[str] | None = None,
    ) -> List[str]:
        """Return file paths under ``root`` (relative to ``root``)."""

    @abstractmethod
    def read_file(self, path: str) -> str:
        """Return file contents; raises ``OSError`` when unreadable."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True when the path exists in the source."""

    def read_file_or_none(self, path: str) -> Optional[str]:
        try:
            return self.read_file(path)
        except (OSError, UnicodeDecodeError):
            return None

    def get_commit_hash(self) -> Optional[str]:
        """Return the commit being analyzed, or None when unknown."""
        return None

    def cleanup(self) -> None:
        """Release resources held by the source (temporary checkouts, etc.)."""
        return None


__all__ = ["ContentSource"]
