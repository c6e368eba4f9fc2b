"""Tests for the manifest stores."""

from __future__ import annotations

import json
from pathlib import Path

from repomanifest.models import Manifest
from repomanifest.stores import InMemoryManifestStore, JsonManifestStore


def _manifest(manifest_id: str, *, status: str = "complete", commit: str = "c1", created: str = "2024-01-01T00:00:00Z") -> Manifest:
    return Manifest(
        id=manifest_id,
        root_directory="/repo",
        project_id="shop",
        commit_hash=commit,
        status=status,
        created_at=created,
        updated_at=created,
    )


def test_find_complete_ignores_failed_and_generating() -> None:
    store = InMemoryManifestStore()
    store.save(_manifest("failed", status="failed"))
    store.save(_manifest("running", status="generating"))

    assert store.find_complete("shop", "c1") is None

    store.save(_manifest("done"))
    found = store.find_complete("shop", "c1")
    assert found is not None
    assert found.id == "done"
    assert store.find_complete("shop", "other") is None
    assert store.find_complete("other", "c1") is None


def test_find_complete_returns_newest() -> None:
    store = InMemoryManifestStore()
    store.save(_manifest("old", created="2024-01-01T00:00:00Z"))
    store.save(_manifest("new", created="2024-02-01T00:00:00Z"))
    store.save(_manifest("same-time", created="2024-02-01T00:00:00Z"))

    found = store.find_complete("shop", "c1")

    assert found is not None
    assert found.id == "same-time"


def test_list_and_latest_for_project() -> None:
    store = InMemoryManifestStore()
    store.save(_manifest("a", commit="c1", created="2024-01-01T00:00:00Z"))
    store.save(_manifest("b", commit="c2", created="2024-01-02T00:00:00Z", status="failed"))
    store.save(_manifest("c", commit="c3", created="2024-01-03T00:00:00Z"))

    assert [item.id for item in store.list_for_project("shop")] == ["c", "b", "a"]
    assert [item.id for item in store.list_for_project("shop", limit=2)] == ["c", "b"]
    latest = store.latest_for_project("shop")
    assert latest is not None and latest.id == "c"
    assert store.latest_for_project("unknown") is None


def test_json_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "store" / "manifests.json"
    store = JsonManifestStore(path)
    manifest = _manifest("m1")
    manifest.evidence_inventory = {"summary": {"total": 2, "by_type": {"source_export": 2}}}
    store.save(manifest)

    assert not path.exists()
    store.persist()

    reloaded = JsonManifestStore(path)
    loaded = reloaded.get("m1")
    assert loaded == manifest
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1


def test_json_store_ignores_unreadable_files(tmp_path: Path) -> None:
    path = tmp_path / "manifests.json"
    path.write_text("{broken", encoding="utf-8")
    assert JsonManifestStore(path).all() == []

    path.write_text(json.dumps({"version": 99, "manifests": [{"id": "x", "root_directory": "/"}]}), encoding="utf-8")
    assert JsonManifestStore(path).all() == []


def test_json_store_skips_malformed_entries(tmp_path: Path) -> None:
    path = tmp_path / "manifests.json"
    payload = {
        "version": 1,
        "manifests": [
            {"id": "ok", "root_directory": "/repo", "unknown_field": True},
            {"root_directory": "/missing-id"},
            {"id": "no-root"},
        ],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")

    store = JsonManifestStore(path)

    assert [item.id for item in store.all()] == ["ok"]
