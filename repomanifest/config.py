"""Configuration loading for repomanifest (.repomanifest.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".repomanifest.yml"
TOKEN_ENV_VAR = "REPOMANIFEST_MIRROR_TOKEN"

DEFAULT_TEST_PATTERNS: tuple[str, ...] = (
    "**/*.spec.ts",
    "**/*.test.ts",
    "**/*.e2e-spec.ts",
    "**/*.spec.tsx",
    "**/*.test.tsx",
    "**/test_*.py",
    "**/*_test.py",
)
DEFAULT_SOURCE_PATTERNS: tuple[str, ...] = ("**/*.ts", "**/*.tsx", "**/*.js", "**/*.py")
DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "node_modules",
    ".git",
    "dist",
    "build",
    "coverage",
    ".next",
    ".nuxt",
    ".cache",
    "__pycache__",
    ".pytest_cache",
    ".venv",
    "vendor",
    ".idea",
    ".vscode",
)
DEFAULT_MAX_FILES = 10_000

DEFAULT_MAX_TESTS = 5000
DEFAULT_MAX_SOURCE_EXPORTS = 200
DEFAULT_MAX_API_ENDPOINTS = 50
DEFAULT_MAX_DOC_SECTIONS = 20
DEFAULT_MAX_SOURCE_FILES = 300
DEFAULT_MAX_DOC_FILES = 30
DEFAULT_ANNOTATION_LOOKBACK = 5
DEFAULT_MIRROR_BRANCH = "main"
DEFAULT_DOC_INDEX_CHUNKS = 20


@dataclass
class StructureConfig:
    """Classifier patterns and walk bounds."""

    test_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_TEST_PATTERNS))
    source_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_PATTERNS))
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    max_files: int = DEFAULT_MAX_FILES


@dataclass
class ExtractionLimits:
    """Per-type evidence caps and per-role file budgets.

    ``max_ui_components`` is ``None`` (uncapped) unless configured.
    """

    max_tests: int = DEFAULT_MAX_TESTS
    max_source_exports: int = DEFAULT_MAX_SOURCE_EXPORTS
    max_api_endpoints: int = DEFAULT_MAX_API_ENDPOINTS
    max_doc_sections: int = DEFAULT_MAX_DOC_SECTIONS
    max_ui_components: Optional[int] = None
    max_source_files: int = DEFAULT_MAX_SOURCE_FILES
    max_doc_files: int = DEFAULT_MAX_DOC_FILES

    def cap_for(self, evidence_type: str) -> Optional[int]:
        return {
            "source_export": self.max_source_exports,
            "api_endpoint": self.max_api_endpoints,
            "documentation": self.max_doc_sections,
            "ui_component": self.max_ui_components,
        }.get(evidence_type)


@dataclass
class MirrorConfig:
    """Remote mirror checkout settings."""

    url: Optional[str] = None
    branch: str = DEFAULT_MIRROR_BRANCH
    token: Optional[str] = None


@dataclass
class PipelineSettings:
    """Effective settings for one pipeline run, resolved once at entry."""

    structure: StructureConfig = field(default_factory=StructureConfig)
    limits: ExtractionLimits = field(default_factory=ExtractionLimits)
    annotation_lookback: int = DEFAULT_ANNOTATION_LOOKBACK
    doc_index_chunks: int = DEFAULT_DOC_INDEX_CHUNKS
    mirror: MirrorConfig = field(default_factory=MirrorConfig)
    store_path: Optional[Path] = None


@dataclass
class RepoManifestConfig:
    """Represents the settings defined in .repomanifest.yml."""

    root: Path
    settings: PipelineSettings = field(default_factory=PipelineSettings)


def load_config(
    config_path: Path, *, environ: Mapping[str, str] | None = None
) -> RepoManifestConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    settings = PipelineSettings()

    structure_data = _as_dict(data.get("structure"))
    if structure_data:
        test_patterns = _as_str_list(structure_data.get("test_patterns"))
        source_patterns = _as_str_list(structure_data.get("source_patterns"))
        exclude_paths = _as_str_list(structure_data.get("exclude_paths"))
        if test_patterns:
            settings.structure.test_patterns = test_patterns
        if source_patterns:
            settings.structure.source_patterns = source_patterns
        if exclude_paths:
            settings.structure.exclude_patterns = exclude_paths
        settings.structure.max_files = _positive(
            structure_data.get("max_files"), "structure.max_files", DEFAULT_MAX_FILES
        )

    limits_data = _as_dict(data.get("limits"))
    if limits_data:
        limits = settings.limits
        limits.max_tests = _positive(limits_data.get("max_tests"), "limits.max_tests", limits.max_tests)
        limits.max_source_exports = _positive(
            limits_data.get("max_source_exports"), "limits.max_source_exports", limits.max_source_exports
        )
        limits.max_api_endpoints = _positive(
            limits_data.get("max_api_endpoints"), "limits.max_api_endpoints", limits.max_api_endpoints
        )
        limits.max_doc_sections = _positive(
            limits_data.get("max_doc_sections"), "limits.max_doc_sections", limits.max_doc_sections
        )
        ui_cap = _as_int(limits_data.get("max_ui_components"))
        limits.max_ui_components = ui_cap if ui_cap is not None and ui_cap >= 0 else None
        limits.max_source_files = _positive(
            limits_data.get("max_source_files"), "limits.max_source_files", limits.max_source_files
        )
        limits.max_doc_files = _positive(
            limits_data.get("max_doc_files"), "limits.max_doc_files", limits.max_doc_files
        )

    orphan_data = _as_dict(data.get("orphans"))
    if orphan_data:
        lookback = _as_int(orphan_data.get("lookback"))
        if lookback is not None:
            if lookback < 0:
                raise ConfigError("orphans.lookback must be zero or greater")
            settings.annotation_lookback = lookback

    mirror_data = _as_dict(data.get("mirror"))
    if mirror_data:
        settings.mirror.url = _as_str(mirror_data.get("url"))
        settings.mirror.branch = _as_str(mirror_data.get("branch")) or DEFAULT_MIRROR_BRANCH
    settings.mirror.token = env.get(TOKEN_ENV_VAR) or None

    store_data = _as_dict(data.get("store"))
    store_path = _as_str(store_data.get("path")) if store_data else None
    if store_path:
        candidate = Path(store_path).expanduser()
        settings.store_path = candidate if candidate.is_absolute() else root / candidate

    return RepoManifestConfig(root=root, settings=settings)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _positive(value: Any, key: str, default: int) -> int:
    if value is None:
        return default
    parsed = _as_int(value)
    if parsed is None or parsed <= 0:
        raise ConfigError(f"{key} must be a positive integer")
    return parsed


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ExtractionLimits",
    "MirrorConfig",
    "PipelineSettings",
    "RepoManifestConfig",
    "StructureConfig",
    "TOKEN_ENV_VAR",
    "load_config",
]
