"""Deterministic repository manifests: structure, evidence, orphan tests and health."""

from __future__ import annotations

from .errors import ConfigError, ContentSourceError, RepoManifestError
from .models import EvidenceItem, Manifest, OrphanTestInfo
from .orchestrator import GenerateOptions, ManifestPipeline

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ContentSourceError",
    "EvidenceItem",
    "GenerateOptions",
    "Manifest",
    "ManifestPipeline",
    "OrphanTestInfo",
    "RepoManifestError",
    "__version__",
]
