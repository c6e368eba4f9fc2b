"""Core data models shared across repomanifest components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

SOURCE_EXPORT = "source_export"
UI_COMPONENT = "ui_component"
API_ENDPOINT = "api_endpoint"
DOCUMENTATION = "documentation"
CODE_COMMENT = "code_comment"
TEST = "test"
COVERAGE_GAP = "coverage_gap"

EVIDENCE_TYPES = (
    SOURCE_EXPORT,
    UI_COMPONENT,
    API_ENDPOINT,
    DOCUMENTATION,
    CODE_COMMENT,
    TEST,
    COVERAGE_GAP,
)

# Seeds for downstream scoring; independent of content quality.
EVIDENCE_CONFIDENCE_WEIGHTS: Dict[str, float] = {
    TEST: 1.0,
    API_ENDPOINT: 0.8,
    UI_COMPONENT: 0.7,
    SOURCE_EXPORT: 0.6,
    DOCUMENTATION: 0.5,
    CODE_COMMENT: 0.4,
    COVERAGE_GAP: 0.3,
}

STATUS_GENERATING = "generating"
STATUS_COMPLETE = "complete"
STATUS_FAILED = "failed"

SOURCE_FILESYSTEM = "filesystem"
SOURCE_MIRROR = "mirror"


@dataclass(frozen=True)
class EvidenceItem:
    """One typed fact extracted from a repository file."""

    type: str
    file_path: str
    name: str
    code: str = ""
    line_number: Optional[int] = None
    base_confidence: float = 0.0
    related_files: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "EvidenceItem":
        return cls(
            type=str(payload.get("type", "")),
            file_path=str(payload.get("file_path", "")),
            name=str(payload.get("name", "")),
            code=str(payload.get("code") or ""),
            line_number=payload.get("line_number"),
            base_confidence=float(payload.get("base_confidence") or 0.0),
            related_files=list(payload.get("related_files") or []),
            metadata=dict(payload.get("metadata") or {}),
        )


@dataclass
class OrphanTestInfo:
    """A test declaration with no behavioral-intent annotation nearby."""

    file_path: str
    test_name: str
    line_number: int
    test_code: str
    related_source_files: List[str] = field(default_factory=list)
    test_source_code: str = ""


@dataclass
class PackageInfo:
    """Representative package metadata taken from the first readable manifest file."""

    name: Optional[str] = None
    description: Optional[str] = None
    scripts: Dict[str, str] = field(default_factory=dict)
    dependency_count: int = 0


@dataclass
class RepoStructure:
    """Paths bucketed by role plus detected frameworks."""

    files: List[str] = field(default_factory=list)
    test_files: List[str] = field(default_factory=list)
    source_files: List[str] = field(default_factory=list)
    ui_files: List[str] = field(default_factory=list)
    doc_files: List[str] = field(default_factory=list)
    config_files: List[str] = field(default_factory=list)
    detected_frameworks: List[str] = field(default_factory=list)
    package_info: Optional[PackageInfo] = None


@dataclass
class DirectoryTreeNode:
    """Directory node carrying the number of files discovered beneath it."""

    name: str
    type: str = "directory"
    count: int = 0
    children: List["DirectoryTreeNode"] = field(default_factory=list)


@dataclass
class ManifestIdentity:
    name: Optional[str] = None
    description: Optional[str] = None
    languages: List[str] = field(default_factory=list)
    frameworks: List[str] = field(default_factory=list)
    commit_hash: Optional[str] = None
    repository_url: Optional[str] = None


@dataclass
class ManifestStructure:
    total_files: int = 0
    source_file_count: int = 0
    test_file_count: int = 0
    ui_file_count: int = 0
    doc_file_count: int = 0
    config_file_count: int = 0
    files_by_extension: Dict[str, int] = field(default_factory=dict)
    directory_tree: List[DirectoryTreeNode] = field(default_factory=list)
    entry_points: List[str] = field(default_factory=list)
    test_file_patterns: List[str] = field(default_factory=list)


@dataclass
class CoverageFileData:
    file_path: str
    total_lines: int
    covered_lines: int
    coverage_percent: float
    uncovered_ranges: List[Dict[str, int]] = field(default_factory=list)


@dataclass
class CoverageData:
    """Line coverage parsed from an existing coverage artifact."""

    format: str
    total_lines: int
    covered_lines: int
    coverage_percent: float
    files: List[CoverageFileData] = field(default_factory=list)


@dataclass
class Manifest:
    """Durable snapshot produced by one pipeline run.

    Section and snapshot fields hold JSON-ready structures so the record can
    be persisted without further conversion.
    """

    id: str
    root_directory: str
    project_id: Optional[str] = None
    commit_hash: Optional[str] = None
    status: str = STATUS_GENERATING
    content_source: str = SOURCE_FILESYSTEM
    identity: Dict[str, Any] = field(default_factory=dict)
    structure: Dict[str, Any] = field(default_factory=dict)
    evidence_inventory: Dict[str, Any] = field(default_factory=dict)
    domain_model: Dict[str, Any] = field(default_factory=dict)
    health_signals: Dict[str, Any] = field(default_factory=dict)
    domain_concepts: Dict[str, Any] = field(default_factory=dict)
    repo_structure_snapshot: Optional[Dict[str, Any]] = None
    orphan_tests_snapshot: Optional[List[Dict[str, Any]]] = None
    evidence_items_snapshot: Optional[List[Dict[str, Any]]] = None
    test_quality_snapshot: Optional[Dict[str, Any]] = None
    coverage_data_snapshot: Optional[Dict[str, Any]] = None
    context_snapshot: Optional[Dict[str, Any]] = None
    generation_duration_ms: Optional[int] = None
    error_message: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Manifest":
        known = {name for name in cls.__dataclass_fields__}
        values = {key: value for key, value in payload.items() if key in known}
        return cls(**values)


__all__ = [
    "API_ENDPOINT",
    "CODE_COMMENT",
    "COVERAGE_GAP",
    "CoverageData",
    "CoverageFileData",
    "DOCUMENTATION",
    "DirectoryTreeNode",
    "EVIDENCE_CONFIDENCE_WEIGHTS",
    "EVIDENCE_TYPES",
    "EvidenceItem",
    "Manifest",
    "ManifestIdentity",
    "ManifestStructure",
    "OrphanTestInfo",
    "PackageInfo",
    "RepoStructure",
    "SOURCE_EXPORT",
    "SOURCE_FILESYSTEM",
    "SOURCE_MIRROR",
    "STATUS_COMPLETE",
    "STATUS_FAILED",
    "STATUS_GENERATING",
    "TEST",
    "UI_COMPONENT",
]
