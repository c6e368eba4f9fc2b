"""Evidence collection and aggregation.

Collection reads files through a content source and runs the per-role
extractors and the orphan scanner. Aggregation is pure: it merges those
results under per-type caps, adds coverage gaps and summarises the lot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Sequence

from .analyzers.evidence import ROLE_DOC, ROLE_SOURCE, ROLE_UI, extract_from_file
from .analyzers.evidence.core import evidence
from .analyzers.orphans import count_linked_tests, related_source_path, scan_test_file
from .config import ExtractionLimits
from .content.base import ContentSource
from .logging import get_logger
from .models import (
    API_ENDPOINT,
    CODE_COMMENT,
    COVERAGE_GAP,
    DOCUMENTATION,
    SOURCE_EXPORT,
    TEST,
    UI_COMPONENT,
    CoverageData,
    EvidenceItem,
    OrphanTestInfo,
    RepoStructure,
)

COVERAGE_GAP_THRESHOLD = 0.5

logger = get_logger("aggregator")


@dataclass
class TestScanResult:
    __test__ = False

    orphan_tests: List[OrphanTestInfo] = field(default_factory=list)
    linked_count: int = 0


@dataclass
class AggregateResult:
    evidence_items: List[EvidenceItem] = field(default_factory=list)
    inventory: Dict[str, Any] = field(default_factory=dict)


def scan_tests(
    source: ContentSource,
    test_files: Sequence[str],
    *,
    lookback: int,
    max_tests: int,
) -> TestScanResult:
    """Scan test files for orphans, pairing each with its source module when present."""
    result = TestScanResult()
    for path in test_files:
        if len(result.orphan_tests) >= max_tests:
            break
        content = source.read_file_or_none(path)
        if content is None:
            logger.debug("Skipping unreadable test file %s", path)
            continue

        orphans = scan_test_file(path, content, lookback)
        result.linked_count += count_linked_tests(content, lookback, file_path=path)
        related = related_source_path(path)
        if orphans and related and source.exists(related):
            for orphan in orphans:
                orphan.related_source_files = [related]
        result.orphan_tests.extend(orphans)

    result.orphan_tests = result.orphan_tests[:max_tests]
    return result


def collect_evidence(
    source: ContentSource,
    repo_structure: RepoStructure,
    frameworks: Sequence[str],
    limits: ExtractionLimits,
) -> List[EvidenceItem]:
    """Run the extractors over UI, source and doc files, in that order."""
    work = [
        *((path, ROLE_UI) for path in repo_structure.ui_files),
        *((path, ROLE_SOURCE) for path in repo_structure.source_files[: limits.max_source_files]),
        *((path, ROLE_DOC) for path in repo_structure.doc_files[: limits.max_doc_files]),
    ]
    items: List[EvidenceItem] = []
    for path, role in work:
        content = source.read_file_or_none(path)
        if content is None:
            logger.debug("Skipping unreadable %s file %s", role, path)
            continue
        items.extend(extract_from_file(path, content, frameworks, role))
    return items


def aggregate(
    orphan_tests: Sequence[OrphanTestInfo],
    raw_evidence: Sequence[EvidenceItem],
    coverage_data: Optional[CoverageData],
    limits: ExtractionLimits,
    linked_count: int = 0,
) -> AggregateResult:
    """Merge tests, extracted evidence and coverage gaps into one ordered list.

    Caps keep the first items seen for each type; later ones are dropped.
    """
    tests = list(orphan_tests[: limits.max_tests])
    items: List[EvidenceItem] = [_test_item(test) for test in tests]

    counts: Dict[str, int] = {}
    for item in raw_evidence:
        cap = limits.cap_for(item.type)
        seen = counts.get(item.type, 0)
        if cap is not None and seen >= cap:
            continue
        counts[item.type] = seen + 1
        items.append(item)

    items.extend(coverage_gaps(coverage_data))
    return AggregateResult(
        evidence_items=items,
        inventory=build_inventory(items, len(tests), linked_count, coverage_data),
    )


def coverage_gaps(coverage_data: Optional[CoverageData]) -> List[EvidenceItem]:
    if coverage_data is None:
        return []
    gaps: List[EvidenceItem] = []
    for file in coverage_data.files:
        if file.total_lines <= 0:
            continue
        ratio = file.covered_lines / file.total_lines
        if ratio >= COVERAGE_GAP_THRESHOLD:
            continue
        gaps.append(
            evidence(
                COVERAGE_GAP,
                file.file_path,
                f"Uncovered: {PurePosixPath(file.file_path).name}",
                line_number=file.uncovered_ranges[0]["start"] if file.uncovered_ranges else None,
                metadata={
                    "uncovered_lines": file.total_lines - file.covered_lines,
                    "total_lines": file.total_lines,
                    "coverage_percent": ratio * 100,
                },
            )
        )
    return gaps


def build_inventory(
    items: Sequence[EvidenceItem],
    orphan_count: int,
    linked_count: int,
    coverage_data: Optional[CoverageData],
) -> Dict[str, Any]:
    """Summarise ``items``; tests are reported under ``tests`` only."""
    by_type: Dict[str, int] = {}
    by_export_type: Dict[str, int] = {}
    by_method: Dict[str, int] = {}
    by_comment_type: Dict[str, int] = {}
    ui_frameworks: List[str] = []
    doc_files: List[str] = []

    for item in items:
        if item.type == TEST:
            continue
        by_type[item.type] = by_type.get(item.type, 0) + 1
        meta = item.metadata
        if item.type == SOURCE_EXPORT and meta.get("export_type"):
            _bump(by_export_type, meta["export_type"])
        elif item.type == API_ENDPOINT and meta.get("method"):
            _bump(by_method, meta["method"])
        elif item.type == CODE_COMMENT and meta.get("comment_type"):
            _bump(by_comment_type, meta["comment_type"])
        elif item.type == UI_COMPONENT and meta.get("framework"):
            if meta["framework"] not in ui_frameworks:
                ui_frameworks.append(meta["framework"])
        elif item.type == DOCUMENTATION and item.file_path not in doc_files:
            doc_files.append(item.file_path)

    return {
        "summary": {"total": sum(by_type.values()), "by_type": by_type},
        "tests": {
            "count": orphan_count + linked_count,
            "orphan_count": orphan_count,
            "linked_count": linked_count,
        },
        "source_exports": {"count": by_type.get(SOURCE_EXPORT, 0), "by_export_type": by_export_type},
        "ui_components": {"count": by_type.get(UI_COMPONENT, 0), "frameworks": ui_frameworks},
        "api_endpoints": {"count": by_type.get(API_ENDPOINT, 0), "by_method": by_method},
        "documentation": {"count": by_type.get(DOCUMENTATION, 0), "files": doc_files},
        "code_comments": {"count": by_type.get(CODE_COMMENT, 0), "by_comment_type": by_comment_type},
        "coverage_gaps": {
            "count": by_type.get(COVERAGE_GAP, 0),
            "avg_coverage_percent": coverage_data.coverage_percent if coverage_data else None,
        },
    }


def _bump(counter: Dict[str, int], key: str) -> None:
    counter[key] = counter.get(key, 0) + 1


def _test_item(test: OrphanTestInfo) -> EvidenceItem:
    return evidence(
        TEST,
        test.file_path,
        test.test_name,
        code=test.test_code,
        line_number=test.line_number,
        related_files=test.related_source_files,
        metadata={
            "test_code": test.test_code,
            "related_source_files": list(test.related_source_files),
            "test_source_code": test.test_source_code,
        },
    )


__all__ = [
    "AggregateResult",
    "COVERAGE_GAP_THRESHOLD",
    "TestScanResult",
    "aggregate",
    "build_inventory",
    "collect_evidence",
    "coverage_gaps",
    "scan_tests",
]
