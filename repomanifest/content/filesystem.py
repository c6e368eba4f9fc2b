"""Content source backed by the local filesystem."""

from __future__ import annotations

import os
import subprocess
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from ..config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_MAX_FILES
from ..errors import ContentSourceError
from ..logging import get_logger
from .base import ContentSource

CommandRunner = Callable[..., str]

logger = get_logger("content.filesystem")


def default_runner(args: Iterable[str], *, cwd: Path) -> str:
    """Run a command and return its stdout; raises on non-zero exit."""
    completed = subprocess.run(
        list(args),
        cwd=str(cwd),
        check=True,
        text=True,
        capture_output=True,
    )
    return completed.stdout


def _is_excluded(name: str, rel_path: str, patterns: Sequence[str]) -> bool:
    for pattern in patterns:
        if "*" in pattern:
            if fnmatchcase(name, pattern) or fnmatchcase(rel_path, pattern):
                return True
        elif name == pattern or f"/{pattern}/" in f"/{rel_path}/":
            return True
    return False


class FilesystemContentSource(ContentSource):
    """Reads repository content directly from a local checkout."""

    source_type = "filesystem"

    def __init__(self, base_path: str | Path, runner: CommandRunner | None = None) -> None:
        self._base = Path(base_path).expanduser().resolve()
        self._runner = runner or default_runner

    @property
    def root(self) -> str:
        return str(self._base)

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self._base / candidate

    def walk_directory(
        self,
        root: str = "",
        *,
        exclude_patterns: Sequence[str] | None = None,
        max_files: int | None = None,
        include_extensions: Sequence[str] | None = None,
    ) -> List[str]:
        start = self._resolve(root) if root else self._base
        if not start.exists():
            raise ContentSourceError(f"Repository path not found: {start}")
        if not start.is_dir():
            raise ContentSourceError(f"Repository path is not a directory: {start}")

        patterns = tuple(exclude_patterns) if exclude_patterns is not None else DEFAULT_EXCLUDE_PATTERNS
        limit = max_files if max_files is not None else DEFAULT_MAX_FILES
        extensions = {ext.lower() for ext in include_extensions} if include_extensions else None

        files: List[str] = []
        for dirpath, dirnames, filenames in os.walk(start, onerror=self._log_walk_error):
            current = Path(dirpath)
            rel_dir = current.relative_to(start).as_posix() if current != start else ""

            kept_dirs = []
            for name in sorted(dirnames):
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if not _is_excluded(name, rel_path, patterns):
                    kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for name in sorted(filenames):
                if len(files) >= limit:
                    return files
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _is_excluded(name, rel_path, patterns):
                    continue
                if extensions is not None and Path(name).suffix.lower() not in extensions:
                    continue
                if not (current / name).is_file():
                    continue
                files.append(rel_path)
        return files

    def read_file(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8", errors="ignore")

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def get_commit_hash(self) -> Optional[str]:
        try:
            output = self._runner(["git", "rev-parse", "HEAD"], cwd=self._base)
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("No commit hash for %s: %s", self._base, exc)
            return None
        commit = output.strip()
        return commit or None

    @staticmethod
    def _log_walk_error(error: OSError) -> None:
        logger.debug("Skipping unreadable directory: %s", error)


__all__ = ["FilesystemContentSource", "default_runner"]
