"""Content source backed by a temporary shallow clone of a remote repository."""

from __future__ import annotations

import re
import shutil
import subprocess
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import urlparse, urlunparse

from ..errors import ContentSourceError
from ..logging import get_logger
from .base import ContentSource
from .filesystem import CommandRunner, FilesystemContentSource, default_runner

_CREDENTIAL_PATTERN = re.compile(r"(https?://)[^@/\s]+@")

logger = get_logger("content.mirror")


def _authenticated_url(url: str, token: str | None) -> str:
    if not token:
        return url
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        return url
    netloc = f"x-access-token:{token}@{parsed.hostname}"
    if parsed.port:
        netloc = f"{netloc}:{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


def scrub_credentials(message: str, token: str | None = None) -> str:
    """Remove embedded credentials from git output before it is logged or raised."""
    cleaned = _CREDENTIAL_PATTERN.sub(r"\1***@", message)
    if token:
        cleaned = cleaned.replace(token, "***")
    return cleaned


class GitMirrorContentSource(ContentSource):
    """Delegates reads to a filesystem source rooted at a throwaway clone."""

    source_type = "mirror"

    def __init__(
        self,
        checkout_dir: Path,
        *,
        url: str,
        runner: CommandRunner | None = None,
    ) -> None:
        self._checkout_dir = checkout_dir
        self._runner = runner or default_runner
        self._delegate = FilesystemContentSource(checkout_dir, runner=self._runner)
        self.repository_url = url

    @classmethod
    def create(
        cls,
        url: str,
        *,
        branch: str = "main",
        token: str | None = None,
        commit_sha: str | None = None,
        runner: CommandRunner | None = None,
        workdir: Path | None = None,
    ) -> "GitMirrorContentSource":
        """Shallow-clone ``url`` and return a source reading from the clone."""
        run = runner or default_runner
        parent = workdir or Path(tempfile.gettempdir())
        checkout_dir = parent / f"repomanifest-mirror-{uuid.uuid4().hex}"
        clone_url = _authenticated_url(url, token)
        try:
            run(
                ["git", "clone", "--depth", "1", "--branch", branch, "--", clone_url, str(checkout_dir)],
                cwd=parent,
            )
            if commit_sha:
                head = run(["git", "rev-parse", "HEAD"], cwd=checkout_dir).strip()
                if not (head.startswith(commit_sha) or commit_sha.startswith(head)):
                    run(["git", "fetch", "--depth", "1", "origin", commit_sha], cwd=checkout_dir)
                    run(["git", "checkout", commit_sha], cwd=checkout_dir)
            # The remote URL embeds the token.
            run(["git", "remote", "remove", "origin"], cwd=checkout_dir)
        except (OSError, subprocess.SubprocessError) as exc:
            shutil.rmtree(checkout_dir, ignore_errors=True)
            detail = exc.stderr if isinstance(exc, subprocess.CalledProcessError) and exc.stderr else str(exc)
            message = scrub_credentials(str(detail).strip(), token)
            raise ContentSourceError(f"Failed to clone {scrub_credentials(url, token)}: {message}") from None
        logger.info("Cloned %s (branch %s) into %s", scrub_credentials(url, token), branch, checkout_dir)
        return cls(checkout_dir, url=url, runner=run)

    @property
    def root(self) -> str:
        return self._delegate.root

    def walk_directory(
        self,
        root: str = "",
        *,
        exclude_patterns: Sequence[str] | None = None,
        max_files: int | None = None,
        include_extensions: Sequence[str] | None = None,
    ) -> List[str]:
        return self._delegate.walk_directory(
            root,
            exclude_patterns=exclude_patterns,
            max_files=max_files,
            include_extensions=include_extensions,
        )

    def read_file(self, path: str) -> str:
        return self._delegate.read_file(path)

    def exists(self, path: str) -> bool:
        return self._delegate.exists(path)

    def get_commit_hash(self) -> Optional[str]:
        return self._delegate.get_commit_hash()

    def cleanup(self) -> None:
        if self._checkout_dir.exists():
            shutil.rmtree(self._checkout_dir)
            logger.debug("Removed mirror checkout %s", self._checkout_dir)


__all__ = ["GitMirrorContentSource", "scrub_credentials"]
