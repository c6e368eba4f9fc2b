"""Manifest stores."""

from .manifest_store import InMemoryManifestStore, JsonManifestStore, ManifestStore

__all__ = ["InMemoryManifestStore", "JsonManifestStore", "ManifestStore"]
