"""Domain concepts, context snapshot, domain model and health signals.

Everything here is derived from evidence already gathered by earlier phases;
the only I/O is the ``docs/`` documentation index.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Sequence

from ..content.base import ContentSource
from ..logging import get_logger
from ..models import (
    API_ENDPOINT,
    CODE_COMMENT,
    COVERAGE_GAP,
    SOURCE_EXPORT,
    TEST,
    UI_COMPONENT,
    CoverageData,
    EvidenceItem,
    OrphanTestInfo,
)

CONCEPT_ALIASES: Dict[str, str] = {
    "users": "user",
    "creating": "create",
    "creates": "create",
    "created": "create",
    "updates": "update",
    "updating": "update",
    "updated": "update",
    "deletes": "delete",
    "deleting": "delete",
    "deleted": "delete",
    "validates": "validate",
    "validating": "validate",
    "validated": "validate",
    "validation": "validate",
    "searches": "search",
    "searching": "search",
    "filters": "filter",
    "filtering": "filter",
    "sorts": "sort",
    "sorting": "sort",
    "uploads": "upload",
    "uploading": "upload",
    "downloads": "download",
    "downloading": "download",
    "submits": "submit",
    "submitting": "submit",
    "notifications": "notification",
    "permissions": "permission",
    "settings": "setting",
    "sessions": "session",
    "tokens": "token",
    "payments": "payment",
    "orders": "order",
    "profiles": "profile",
    "emails": "email",
    "errors": "error",
    "configs": "config",
    "configuration": "config",
    "configurations": "config",
    "logins": "login",
    "authenticating": "auth",
    "authentication": "auth",
    "authenticated": "auth",
    "authorizing": "auth",
    "authorization": "auth",
    "authorized": "auth",
    "products": "product",
    "categories": "category",
    "reviews": "review",
    "ratings": "rating",
    "comments": "comment",
    "accounts": "account",
    "addresses": "address",
    "events": "event",
    "webhooks": "webhook",
    "reports": "report",
}

DOMAIN_KEYWORDS: tuple[str, ...] = (
    "user", "auth", "login", "session", "token", "payment", "order",
    "cart", "checkout", "create", "update", "delete", "get", "list",
    "validate", "error", "success", "fail", "submit", "upload",
    "download", "notification", "email", "search", "filter", "sort",
    "permission", "role", "admin", "config", "setting", "profile",
    "product", "category", "price", "inventory", "shipping",
    "review", "rating", "comment", "address", "account",
    "dashboard", "report", "analytics", "export", "import",
    "webhook", "event", "queue", "cache", "database",
)

MAX_CONCEPTS_PER_ITEM = 15
MAX_CONCEPTS = 50
MAX_CONCEPT_SOURCES = 10
MAX_CLUSTERS = 20
CLUSTER_CO_OCCURRENCE = 3
DOC_CHUNK_CHARS = 2000
MAX_DOC_KEYWORDS = 20

_COMMENT_LABELS = {
    "jsdoc": "JSDoc documentation",
    "task_annotation": "task annotation",
    "atom_reference": "@atom reference",
    "business_logic": "business logic comment",
}

logger = get_logger("analyzers.domain")


def extract_concepts(name: str, code: str) -> List[str]:
    """Concepts from the camelCase/snake_case words of ``name`` and keywords in ``code``."""
    words = re.sub(r"([a-z])([A-Z])", r"\1 \2", name)
    words = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", words).lower()
    concepts: List[str] = []

    def add(concept: str) -> None:
        if concept not in concepts:
            concepts.append(concept)

    for word in re.split(r"[\s_-]+", words):
        if len(word) > 2:
            add(CONCEPT_ALIASES.get(word, word))

    lowered = code.lower()
    for keyword in DOMAIN_KEYWORDS:
        if keyword in lowered:
            add(CONCEPT_ALIASES.get(keyword, keyword))
    for alias, canonical in CONCEPT_ALIASES.items():
        if alias in lowered:
            add(canonical)
    return concepts[:MAX_CONCEPTS_PER_ITEM]


# Context snapshot


def build_context_snapshot(
    orphan_tests: Sequence[OrphanTestInfo],
    evidence_items: Sequence[EvidenceItem],
    quality_scores: Dict[str, Dict[str, Any]],
    documentation_index: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Per-test and per-evidence analyses keyed ``file:test`` and ``type:file:name``."""
    per_test: Dict[str, Dict[str, Any]] = {}
    for test in orphan_tests:
        key = f"{test.file_path}:{test.test_name}"
        per_test[key] = {
            "test_id": key,
            "summary": f"Test: {test.test_name}",
            "domain_concepts": extract_concepts(test.test_name, test.test_code),
            "related_code": [PurePosixPath(path).name for path in test.related_source_files],
            "related_docs": [],
            "raw_context": test.test_code,
        }

    analyses: Dict[str, Dict[str, Any]] = {}
    for item in evidence_items:
        evidence_id = f"{item.type}:{item.file_path}:{item.name}"
        if item.type == TEST:
            test_key = f"{item.file_path}:{item.name}"
            test_analysis = per_test.get(test_key, {})
            score = quality_scores.get(test_key)
            analyses[evidence_id] = {
                "evidence_id": evidence_id,
                "type": TEST,
                "summary": test_analysis.get("summary", f"Test: {item.name}"),
                "domain_concepts": test_analysis.get("domain_concepts", []),
                "related_code": test_analysis.get("related_code", []),
                "related_docs": test_analysis.get("related_docs", []),
                "raw_context": test_analysis.get("raw_context") or item.code,
                "quality_score": score["overall_score"] if score else None,
            }
        else:
            analyses[evidence_id] = _analyse_evidence(item, evidence_id)

    return {
        "context_per_test": per_test,
        "evidence_analysis": analyses,
        "documentation_index": documentation_index or None,
    }


def _analyse_evidence(item: EvidenceItem, evidence_id: str) -> Dict[str, Any]:
    concepts = extract_concepts(item.name, item.code)
    meta = item.metadata
    if item.type == SOURCE_EXPORT:
        default = " (default)" if meta.get("is_default") else ""
        summary = f'Exported {meta.get("export_type", "unknown")} "{item.name}"{default}'
    elif item.type == UI_COMPONENT:
        traits = _ui_traits(meta, form="form input")
        suffix = f" ({', '.join(traits)})" if traits else ""
        summary = f'{meta.get("framework", "unknown")} component "{item.name}"{suffix}'
    elif item.type == API_ENDPOINT:
        path = meta.get("path", "/")
        summary = f'{meta.get("method", "UNKNOWN")} {path} -> {item.name}()'
        for segment in path.split("/"):
            if segment and not segment.startswith((":", "{")) and segment.lower() not in concepts:
                concepts.append(segment.lower())
    elif item.type == CODE_COMMENT:
        label = _COMMENT_LABELS.get(meta.get("comment_type", ""), "code comment")
        summary = f"{label} in {item.file_path}"
    elif item.type == COVERAGE_GAP:
        percent = meta.get("coverage_percent")
        shown = f"{percent:.0f}" if isinstance(percent, (int, float)) else "?"
        summary = f"Coverage gap in {item.file_path} ({shown}% covered)"
    else:
        summary = f"{item.type}: {item.name}"
    return {
        "evidence_id": evidence_id,
        "type": item.type,
        "summary": summary,
        "domain_concepts": concepts,
        "related_code": list(item.related_files),
        "raw_context": item.code,
    }


def _ui_traits(meta: Dict[str, Any], *, form: str) -> List[str]:
    traits: List[str] = []
    if meta.get("has_form"):
        traits.append(form)
    if meta.get("has_navigation"):
        traits.append("navigation")
    return traits


# Domain model and concepts


def build_domain_model(evidence_items: Sequence[EvidenceItem]) -> Dict[str, List[Dict[str, Any]]]:
    entities: List[Dict[str, Any]] = []
    api_surface: List[Dict[str, Any]] = []
    ui_surface: List[Dict[str, Any]] = []
    for item in evidence_items:
        if item.type == SOURCE_EXPORT and item.metadata.get("export_type") in {"class", "interface"}:
            entities.append(
                {"name": item.name, "file_path": item.file_path, "type": item.metadata["export_type"]}
            )
        elif item.type == API_ENDPOINT:
            api_surface.append(
                {
                    "method": item.metadata.get("method", "UNKNOWN"),
                    "path": item.metadata.get("path", "/"),
                    "handler": item.name,
                    "file_path": item.file_path,
                }
            )
        elif item.type == UI_COMPONENT:
            ui_surface.append(
                {
                    "name": item.name,
                    "file_path": item.file_path,
                    "framework": item.metadata.get("framework", "unknown"),
                    "traits": _ui_traits(item.metadata, form="form"),
                }
            )
    return {"entities": entities, "api_surface": api_surface, "ui_surface": ui_surface}


def aggregate_concepts(evidence_analysis: Dict[str, Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Rank concepts by frequency and group those that co-occur often."""
    frequency: Dict[str, int] = {}
    sources: Dict[str, List[str]] = {}
    for analysis in evidence_analysis.values():
        # Drop the type prefix so sources read ``file:name``.
        source = analysis["evidence_id"].split(":", 1)[-1]
        for concept in analysis["domain_concepts"]:
            name = CONCEPT_ALIASES.get(concept, concept)
            frequency[name] = frequency.get(name, 0) + 1
            bucket = sources.setdefault(name, [])
            if source not in bucket:
                bucket.append(source)

    ranked = sorted(frequency, key=lambda name: frequency[name], reverse=True)[:MAX_CONCEPTS]
    concepts = [
        {"name": name, "frequency": frequency[name], "sources": sources[name][:MAX_CONCEPT_SOURCES]}
        for name in ranked
    ]
    return {"concepts": concepts, "clusters": _clusters(concepts, evidence_analysis)}


def _clusters(
    concepts: List[Dict[str, Any]], evidence_analysis: Dict[str, Dict[str, Any]]
) -> List[Dict[str, Any]]:
    known = {concept["name"] for concept in concepts}
    pairs: Dict[str, Dict[str, int]] = {}
    for analysis in evidence_analysis.values():
        names = [
            CONCEPT_ALIASES.get(concept, concept)
            for concept in analysis["domain_concepts"]
            if CONCEPT_ALIASES.get(concept, concept) in known
        ]
        for i, first in enumerate(names):
            for second in names[i + 1 :]:
                for a, b in ((first, second), (second, first)):
                    row = pairs.setdefault(a, {})
                    row[b] = row.get(b, 0) + 1

    clustered: set[str] = set()
    clusters: List[Dict[str, Any]] = []
    for concept in concepts:
        name = concept["name"]
        if name in clustered:
            continue
        members = [name]
        for neighbour, count in pairs.get(name, {}).items():
            if count >= CLUSTER_CO_OCCURRENCE and neighbour not in clustered and neighbour != name:
                members.append(neighbour)
                clustered.add(neighbour)
        clustered.add(name)
        clusters.append({"name": name, "concepts": members, "file_count": len(concept["sources"])})
    return clusters[:MAX_CLUSTERS]


# Health signals and documentation index


def build_health_signals(
    test_quality: Optional[Dict[str, Any]],
    coverage: Optional[CoverageData],
    dependency_count: int,
) -> Dict[str, Any]:
    return {
        "test_quality": test_quality,
        "coverage": (
            {
                "overall_percent": coverage.coverage_percent,
                "format": coverage.format,
                "file_count": len(coverage.files),
            }
            if coverage
            else None
        ),
        "coupling_score": None,
        "dependency_count": dependency_count,
    }


def build_documentation_index(source: ContentSource, max_chunks: int) -> List[Dict[str, Any]]:
    """Index markdown under ``docs/``: a leading excerpt plus heading and code keywords."""
    if not source.exists("docs"):
        return []
    paths = source.walk_directory(
        "docs",
        exclude_patterns=["node_modules"],
        max_files=max_chunks * 2,
        include_extensions=[".md"],
    )
    chunks: List[Dict[str, Any]] = []
    for relative in paths:
        if len(chunks) >= max_chunks:
            break
        path = f"docs/{relative}"
        content = source.read_file_or_none(path)
        if content is None:
            logger.debug("Skipping unreadable doc %s", path)
            continue
        chunks.append(
            {
                "file_path": path,
                "content": content[:DOC_CHUNK_CHARS],
                "keywords": doc_keywords(content),
            }
        )
    return chunks


def doc_keywords(content: str) -> List[str]:
    keywords: List[str] = []
    for match in re.finditer(r"^#{1,3}\s+(.+)$", content, re.MULTILINE):
        for word in re.split(r"[\s\-_:/]+", match.group(1).lower()):
            if len(word) > 2 and word not in keywords:
                keywords.append(word)
    for match in re.finditer(r"`([^`]+)`", content):
        code = match.group(1).lower()
        if 2 < len(code) < 50 and code not in keywords:
            keywords.append(code)
    return keywords[:MAX_DOC_KEYWORDS]


__all__ = [
    "CONCEPT_ALIASES",
    "DOMAIN_KEYWORDS",
    "aggregate_concepts",
    "build_context_snapshot",
    "build_documentation_index",
    "build_domain_model",
    "build_health_signals",
    "doc_keywords",
    "extract_concepts",
]
