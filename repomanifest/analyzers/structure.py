"""Structural classifier: buckets repository paths by role and summarises layout."""

from __future__ import annotations

import json
import re
import tomllib
from collections import Counter
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Sequence

from ..config import StructureConfig
from ..content.base import ContentSource
from ..logging import get_logger
from ..models import (
    CoverageData,
    DirectoryTreeNode,
    ManifestIdentity,
    ManifestStructure,
    PackageInfo,
    RepoStructure,
)
from .coverage import COVERAGE_ARTIFACT_PATHS, parse_coverage_file
from .globs import matches_any

DOC_PATTERNS: tuple[str, ...] = (
    "**/README.md",
    "**/README.rst",
    "**/docs/**/*.md",
    "**/CHANGELOG.md",
    "**/CONTRIBUTING.md",
)
CONFIG_PATTERNS: tuple[str, ...] = ("package.json", "tsconfig.json", ".env.example", "pyproject.toml")
UI_PATTERNS: tuple[str, ...] = ("**/*.tsx", "**/*.jsx", "**/*.vue", "**/*.svelte")

DIRECTORY_TREE_DEPTH = 3

_NODE_FRAMEWORKS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("react", ("react", "next")),
    ("vue", ("vue",)),
    ("nestjs", ("@nestjs/core",)),
    ("express", ("express",)),
    ("angular", ("@angular/core",)),
    ("svelte", ("svelte",)),
    ("fastify", ("fastify",)),
    ("graphql", ("graphql", "@nestjs/graphql", "@apollo/server")),
)
_PYTHON_FRAMEWORKS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("fastapi", ("fastapi",)),
    ("flask", ("flask",)),
    ("django", ("django",)),
)

_LANGUAGE_BY_SUFFIX = {
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".vue": "Vue",
    ".svelte": "Svelte",
    ".py": "Python",
    ".pyi": "Python",
}

_ENTRY_POINT_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"^(src/)?main\.ts$",
        r"^(src/)?index\.ts$",
        r"^(src/)?app\.ts$",
        r"^(src/)?server\.ts$",
        r"^(frontend/|app/)?(src/)?index\.tsx?$",
        r"^(frontend/|app/)?(src/)?main\.tsx?$",
        r"^(src/)?main\.py$",
        r"^(src/)?app\.py$",
        r"^manage\.py$",
        r"^([\w-]+/)*__main__\.py$",
    )
)

# Longest suffixes first so ``.e2e-spec.ts`` is not reported as ``.spec.ts``.
_TEST_SUFFIXES: tuple[tuple[str, str], ...] = (
    (".e2e-spec.ts", "*.e2e-spec.ts"),
    (".spec.tsx", "*.spec.tsx"),
    (".test.tsx", "*.test.tsx"),
    (".spec.ts", "*.spec.ts"),
    (".test.ts", "*.test.ts"),
    (".spec.js", "*.spec.js"),
    (".test.js", "*.test.js"),
    ("_test.py", "*_test.py"),
)

logger = get_logger("analyzers.structure")


@dataclass
class StructureResult:
    """Everything the classification phase hands to later phases."""

    repo_structure: RepoStructure
    identity: ManifestIdentity
    structure: ManifestStructure
    coverage_data: Optional[CoverageData] = None


def classify_path(
    path: str,
    test_patterns: Sequence[str],
    source_patterns: Sequence[str],
) -> Optional[str]:
    """Return the single role of ``path`` or None when no rule matches."""
    if matches_any(path, test_patterns):
        return "test"
    if matches_any(path, DOC_PATTERNS):
        return "doc"
    if matches_any(path, CONFIG_PATTERNS):
        return "config"
    if matches_any(path, UI_PATTERNS):
        return "ui"
    if matches_any(path, source_patterns):
        return "source"
    return None


def classify(root: str, source: ContentSource, options: StructureConfig) -> StructureResult:
    """Walk ``root`` through ``source`` and classify every discovered path.

    A failing walk propagates; unreadable package manifests and coverage
    artifacts are skipped.
    """
    files = source.walk_directory(
        root,
        exclude_patterns=options.exclude_patterns,
        max_files=options.max_files,
    )

    buckets: Dict[str, List[str]] = {"test": [], "doc": [], "config": [], "ui": [], "source": []}
    for path in files:
        role = classify_path(path, options.test_patterns, options.source_patterns)
        if role is not None:
            buckets[role].append(path)

    frameworks, package_info = detect_frameworks(files, source)
    coverage = discover_coverage(source)

    repo_structure = RepoStructure(
        files=list(files),
        test_files=buckets["test"],
        source_files=buckets["source"],
        ui_files=buckets["ui"],
        doc_files=buckets["doc"],
        config_files=buckets["config"],
        detected_frameworks=frameworks,
        package_info=package_info,
    )
    analyzed = buckets["source"] + buckets["ui"] + buckets["test"]
    identity = ManifestIdentity(
        name=package_info.name if package_info else None,
        description=package_info.description if package_info else None,
        languages=detect_languages(analyzed),
        frameworks=list(frameworks),
    )
    structure = ManifestStructure(
        total_files=len(files),
        source_file_count=len(buckets["source"]),
        test_file_count=len(buckets["test"]),
        ui_file_count=len(buckets["ui"]),
        doc_file_count=len(buckets["doc"]),
        config_file_count=len(buckets["config"]),
        files_by_extension=count_by_extension(files),
        directory_tree=build_directory_tree(files, DIRECTORY_TREE_DEPTH),
        entry_points=detect_entry_points(files),
        test_file_patterns=detect_test_patterns(buckets["test"]),
    )
    logger.debug(
        "Classified %d files (%d source, %d test, %d ui, %d doc, %d config)",
        len(files),
        len(buckets["source"]),
        len(buckets["test"]),
        len(buckets["ui"]),
        len(buckets["doc"]),
        len(buckets["config"]),
    )
    return StructureResult(
        repo_structure=repo_structure,
        identity=identity,
        structure=structure,
        coverage_data=coverage,
    )


# Package manifests


def detect_frameworks(
    files: Sequence[str], source: ContentSource
) -> tuple[List[str], Optional[PackageInfo]]:
    """Union framework hits across every package manifest in the tree."""
    found: List[str] = []
    package_info: Optional[PackageInfo] = None

    for path in files:
        name = PurePosixPath(path).name
        if name == "package.json":
            parsed = _read_package_json(source, path)
            if parsed is None:
                continue
            dependencies = _node_dependencies(parsed)
            _add_hits(found, _NODE_FRAMEWORKS, dependencies)
            if package_info is None:
                package_info = _package_info_from_node(parsed, dependencies)
        elif name == "pyproject.toml":
            parsed = _read_pyproject(source, path)
            if parsed is None:
                continue
            dependencies = _pyproject_dependencies(parsed)
            _add_hits(found, _PYTHON_FRAMEWORKS, dependencies)
            if package_info is None:
                package_info = _package_info_from_pyproject(parsed, dependencies)
        elif name == "requirements.txt":
            text = source.read_file_or_none(path)
            if text is None:
                continue
            _add_hits(found, _PYTHON_FRAMEWORKS, _requirement_names(text))

    return found, package_info


def _add_hits(
    found: List[str],
    table: Sequence[tuple[str, tuple[str, ...]]],
    dependencies: Sequence[str],
) -> None:
    lowered = {dep.lower() for dep in dependencies}
    for framework, packages in table:
        if framework not in found and any(package in lowered for package in packages):
            found.append(framework)


def _read_package_json(source: ContentSource, path: str) -> Optional[Dict[str, Any]]:
    text = source.read_file_or_none(path)
    if text is None:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Skipping unparsable %s", path)
        return None
    return data if isinstance(data, dict) else None


def _node_dependencies(data: Dict[str, Any]) -> List[str]:
    names: List[str] = []
    for key in ("dependencies", "devDependencies"):
        section = data.get(key)
        if isinstance(section, dict):
            names.extend(str(name) for name in section)
    return names


def _package_info_from_node(data: Dict[str, Any], dependencies: List[str]) -> PackageInfo:
    scripts = data.get("scripts")
    return PackageInfo(
        name=data.get("name") if isinstance(data.get("name"), str) else None,
        description=data.get("description") if isinstance(data.get("description"), str) else None,
        scripts={str(k): str(v) for k, v in scripts.items()} if isinstance(scripts, dict) else {},
        dependency_count=len(set(dependencies)),
    )


def _read_pyproject(source: ContentSource, path: str) -> Optional[Dict[str, Any]]:
    text = source.read_file_or_none(path)
    if text is None:
        return None
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        logger.debug("Skipping unparsable %s", path)
        return None


def _pyproject_dependencies(data: Dict[str, Any]) -> List[str]:
    raw: List[Any] = []
    project = data.get("project")
    if isinstance(project, dict):
        raw.extend(project.get("dependencies") or [])
        optional = project.get("optional-dependencies") or {}
        if isinstance(optional, dict):
            for values in optional.values():
                raw.extend(values or [])
    tool = data.get("tool")
    poetry = tool.get("poetry") if isinstance(tool, dict) else None
    if isinstance(poetry, dict) and isinstance(poetry.get("dependencies"), dict):
        raw.extend(name for name in poetry["dependencies"] if name.lower() != "python")
    return _requirement_names("\n".join(str(item) for item in raw if isinstance(item, str)))


def _package_info_from_pyproject(data: Dict[str, Any], dependencies: List[str]) -> PackageInfo:
    project = data.get("project") if isinstance(data.get("project"), dict) else {}
    scripts = project.get("scripts")
    return PackageInfo(
        name=project.get("name") if isinstance(project.get("name"), str) else None,
        description=project.get("description") if isinstance(project.get("description"), str) else None,
        scripts={str(k): str(v) for k, v in scripts.items()} if isinstance(scripts, dict) else {},
        dependency_count=len(set(dependencies)),
    )


def _requirement_names(text: str) -> List[str]:
    names: List[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", "-")):
            continue
        name = re.split(r"[<>=!~;\[\s]", stripped, maxsplit=1)[0].strip()
        if name:
            names.append(name)
    return names


# Coverage


def discover_coverage(source: ContentSource) -> Optional[CoverageData]:
    """Return the first coverage artifact that parses, or None."""
    for path in COVERAGE_ARTIFACT_PATHS:
        content = source.read_file_or_none(path)
        if content is None:
            continue
        try:
            parsed = parse_coverage_file(path, content)
        except (ValueError, SyntaxError) as exc:
            # ET.ParseError subclasses SyntaxError.
            logger.debug("Skipping unparsable coverage artifact %s: %s", path, exc)
            continue
        if parsed is not None:
            logger.debug("Using coverage artifact %s (%s)", path, parsed.format)
            return parsed
    return None


# Summaries


def detect_languages(paths: Sequence[str]) -> List[str]:
    counts = Counter(
        _LANGUAGE_BY_SUFFIX[suffix]
        for suffix in (PurePosixPath(path).suffix.lower() for path in paths)
        if suffix in _LANGUAGE_BY_SUFFIX
    )
    return [language for language, _ in counts.most_common()]


def count_by_extension(paths: Sequence[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for path in paths:
        suffix = PurePosixPath(path).suffix
        key = suffix if suffix else "(none)"
        counts[key] = counts.get(key, 0) + 1
    return counts


def build_directory_tree(paths: Sequence[str], max_depth: int) -> List[DirectoryTreeNode]:
    """Count files per directory up to ``max_depth`` levels deep.

    Children are ordered by descending count; ``list.sort`` is stable so ties
    keep discovery order.
    """
    root = DirectoryTreeNode(name=".", count=len(paths))
    for path in paths:
        parts = [part for part in path.split("/") if part]
        current = root
        for name in parts[: min(len(parts) - 1, max_depth)]:
            child = next((node for node in current.children if node.name == name), None)
            if child is None:
                child = DirectoryTreeNode(name=name)
                current.children.append(child)
            child.count += 1
            current = child
    _sort_by_count(root)
    return root.children


def _sort_by_count(node: DirectoryTreeNode) -> None:
    node.children.sort(key=lambda child: child.count, reverse=True)
    for child in node.children:
        _sort_by_count(child)


def detect_entry_points(paths: Sequence[str]) -> List[str]:
    return [path for path in paths if any(pattern.match(path) for pattern in _ENTRY_POINT_PATTERNS)]


def detect_test_patterns(test_files: Sequence[str]) -> List[str]:
    patterns: List[str] = []
    for path in test_files:
        label = _test_pattern_for(path)
        if label and label not in patterns:
            patterns.append(label)
    return patterns


def _test_pattern_for(path: str) -> Optional[str]:
    name = PurePosixPath(path).name
    if name.startswith("test_") and name.endswith(".py"):
        return "test_*.py"
    for suffix, label in _TEST_SUFFIXES:
        if name.endswith(suffix):
            return label
    return None


__all__ = [
    "CONFIG_PATTERNS",
    "DOC_PATTERNS",
    "StructureResult",
    "UI_PATTERNS",
    "build_directory_tree",
    "classify",
    "classify_path",
    "count_by_extension",
    "detect_entry_points",
    "detect_frameworks",
    "detect_languages",
    "detect_test_patterns",
    "discover_coverage",
]
