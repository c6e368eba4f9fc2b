"""Manifest persistence: an in-memory store and a versioned JSON file store."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from ..logging import get_logger
from ..models import STATUS_COMPLETE, Manifest

_STORE_VERSION = 1

logger = get_logger("stores.manifest")


class ManifestStore(ABC):
    """Keeps manifests by id and answers the (project, commit) dedup lookup."""

    @abstractmethod
    def save(self, manifest: Manifest) -> Manifest:
        """Insert or replace ``manifest`` by id."""

    @abstractmethod
    def get(self, manifest_id: str) -> Optional[Manifest]:
        ...

    @abstractmethod
    def all(self) -> List[Manifest]:
        """Every stored manifest in insertion order."""

    def find_complete(self, project_id: str, commit_hash: str) -> Optional[Manifest]:
        """Newest ``complete`` manifest for the key; failed and in-flight runs never match."""
        matches = [
            manifest
            for manifest in self.all()
            if manifest.project_id == project_id
            and manifest.commit_hash == commit_hash
            and manifest.status == STATUS_COMPLETE
        ]
        return _newest(matches)

    def latest_for_project(self, project_id: str) -> Optional[Manifest]:
        matches = [
            manifest
            for manifest in self.all()
            if manifest.project_id == project_id and manifest.status == STATUS_COMPLETE
        ]
        return _newest(matches)

    def list_for_project(self, project_id: str, limit: Optional[int] = None) -> List[Manifest]:
        """Manifests for ``project_id`` of any status, newest first."""
        matches = [manifest for manifest in self.all() if manifest.project_id == project_id]
        ordered = _newest_first(matches)
        return ordered[:limit] if limit is not None else ordered

    def persist(self) -> None:
        """Flush pending writes; stores without backing storage do nothing."""


class InMemoryManifestStore(ManifestStore):
    def __init__(self) -> None:
        self._manifests: Dict[str, Manifest] = {}

    def save(self, manifest: Manifest) -> Manifest:
        self._manifests[manifest.id] = manifest
        return manifest

    def get(self, manifest_id: str) -> Optional[Manifest]:
        return self._manifests.get(manifest_id)

    def all(self) -> List[Manifest]:
        return list(self._manifests.values())


class JsonManifestStore(InMemoryManifestStore):
    """Manifests held in memory and written to one JSON document on ``persist``.

    Files written by another store version, or that fail to parse, are
    ignored on load and replaced by the next ``persist``.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path
        self._dirty = False
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def save(self, manifest: Manifest) -> Manifest:
        super().save(manifest)
        self._dirty = True
        return manifest

    def persist(self) -> None:
        if not self._dirty:
            return
        payload = {
            "version": _STORE_VERSION,
            "manifests": [manifest.to_dict() for manifest in self.all()],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        self._dirty = False

    def _load(self) -> None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable manifest store %s: %s", self._path, exc)
            return
        if not isinstance(data, dict) or data.get("version") != _STORE_VERSION:
            logger.warning("Ignoring manifest store %s with unsupported version", self._path)
            return
        entries = data.get("manifests")
        if not isinstance(entries, list):
            return
        for raw in entries:
            if not isinstance(raw, dict) or not isinstance(raw.get("id"), str):
                continue
            try:
                manifest = Manifest.from_dict(raw)
            except TypeError:
                continue
            self._manifests[manifest.id] = manifest


def _newest_first(manifests: List[Manifest]) -> List[Manifest]:
    # Stable on equal timestamps, so later insertions win via reversal first.
    return sorted(reversed(manifests), key=lambda manifest: manifest.created_at, reverse=True)


def _newest(manifests: List[Manifest]) -> Optional[Manifest]:
    ordered = _newest_first(manifests)
    return ordered[0] if ordered else None


__all__ = ["InMemoryManifestStore", "JsonManifestStore", "ManifestStore"]
