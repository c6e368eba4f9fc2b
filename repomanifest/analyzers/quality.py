"""Static test quality scoring over seven dimensions.

Scores are heuristics over test source text; nothing is executed. Each
dimension yields a score in ``[0, 1]`` that passes when it reaches the
dimension threshold, and the overall score is the weighted mean scaled to
``0..100``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..logging import get_logger
from ..models import OrphanTestInfo


@dataclass(frozen=True)
class DimensionConfig:
    name: str
    weight: float
    threshold: float


DIMENSIONS: Dict[str, DimensionConfig] = {
    "intent_fidelity": DimensionConfig("Intent Fidelity", 0.2, 0.7),
    "no_vacuous_tests": DimensionConfig("No Vacuous Tests", 0.15, 0.9),
    "no_brittle_tests": DimensionConfig("No Brittle Tests", 0.15, 0.8),
    "determinism": DimensionConfig("Determinism", 0.1, 0.95),
    "failure_signal_quality": DimensionConfig("Failure Signal Quality", 0.15, 0.7),
    "integration_authenticity": DimensionConfig("Integration Test Authenticity", 0.15, 0.8),
    "boundary_and_negative_coverage": DimensionConfig("Boundary & Negative Coverage", 0.1, 0.6),
}

_ANNOTATION = re.compile(r"(?://|#)\s*@atom\s+(IA-[\w-]+)")
_TEST_DECLARATION = re.compile(r"^\s*(?:(?:it|test)\s*\(\s*['\"`](.+?)['\"`]|(?:async\s+)?def\s+(test_\w+))")
_ANNOTATION_REACH = 3

_TEST_CALL = re.compile(r"\bit\(|^\s*(?:async\s+)?def\s+test_", re.MULTILINE)
_ASSERTION = re.compile(r"expect\(|^\s*assert\b", re.MULTILINE)
_COMMENTED_ASSERTION = re.compile(r"(?://|#)[^\n]+\n\s*(?:expect\(|assert\b)")

_VACUOUS = (
    (re.compile(r"expect\([^)]+\)\.toBeDefined\(\)"), "toBeDefined()"),
    (re.compile(r"expect\([^)]+\)\.toBeTruthy\(\)"), "toBeTruthy()"),
    (re.compile(r"expect\(true\)\.toBe\(true\)"), "expect(true).toBe(true)"),
    (re.compile(r"expect\(\)\.pass\(\)"), "empty pass()"),
    (re.compile(r"^\s*assert\s+True\s*$", re.MULTILINE), "assert True"),
    (re.compile(r"^\s*assert\s+\w+\s+is\s+not\s+None\s*$", re.MULTILINE), "assert x is not None"),
)
_BRITTLE = (
    (re.compile(r"\.toHaveBeenCalledTimes\("), "toHaveBeenCalledTimes()"),
    (re.compile(r"toMatchSnapshot\(\)"), "snapshot test"),
    (re.compile(r"setTimeout\("), "setTimeout usage"),
    (re.compile(r"\.only\("), ".only() - focused test"),
    (re.compile(r"time\.sleep\("), "time.sleep usage"),
)
_NONDETERMINISTIC = (
    (re.compile(r"Math\.random\(\)"), "Math.random()"),
    (re.compile(r"Date\.now\(\)"), "Date.now()"),
    (re.compile(r"new Date\(\)"), "new Date()"),
    (re.compile(r"random\.random\(\)"), "random.random()"),
    (re.compile(r"datetime\.now\(\)"), "datetime.now()"),
)
_MOCK_MARKERS = ("jest.mock", "jest.spyOn", "vi.mock", "vi.spyOn", "monkeypatch", "mock.patch")
_INTEGRATION_MOCKS = (
    (re.compile(r"jest\.mock\("), "jest.mock()"),
    (re.compile(r"\.mockImplementation\("), ".mockImplementation()"),
    (re.compile(r"\.mockReturnValue\("), ".mockReturnValue()"),
    (re.compile(r"vi\.mock\("), "vi.mock()"),
    (re.compile(r"mock\.patch\("), "mock.patch()"),
)
_BOUNDARY = tuple(
    re.compile(pattern)
    for pattern in (
        r"toBe\(0\)",
        r"toBe\(null\)",
        r"toBe\(undefined\)",
        r"toBeGreaterThan\(",
        r"toBeLessThan\(",
        r"toThrow",
        r"expect.*\.rejects",
        r"toBeNull\(\)",
        r"toBeUndefined\(\)",
        r"toHaveLength\(0\)",
        r"pytest\.raises\(",
        r"==\s*0\b",
        r"is None\b",
    )
)

logger = get_logger("analyzers.quality")


@dataclass
class QualityIssue:
    severity: str
    message: str
    line_number: Optional[int] = None


@dataclass
class DimensionResult:
    name: str
    score: float
    threshold: float
    weight: float
    passed: bool
    issues: List[QualityIssue] = field(default_factory=list)


@dataclass
class FileQuality:
    overall_score: float
    passed: bool
    dimensions: Dict[str, DimensionResult]
    total_tests: int = 0
    annotated_tests: int = 0
    referenced_intents: List[str] = field(default_factory=list)


@dataclass
class QualityReport:
    """Per-test scores keyed ``file:testName`` plus the aggregate health signal."""

    scores: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    health: Optional[Dict[str, Any]] = None


def analyze_test_source(content: str, file_path: str = "") -> FileQuality:
    """Score one test file's source across every dimension."""
    lines = content.split("\n")
    referenced, orphan_lines, total = _annotation_info(lines)

    dimensions = {
        "intent_fidelity": _intent_fidelity(referenced, orphan_lines, total),
        "no_vacuous_tests": _no_vacuous(content, lines),
        "no_brittle_tests": _no_brittle(content, lines),
        "determinism": _determinism(content, lines),
        "failure_signal_quality": _failure_signal(content),
        "integration_authenticity": _integration_authenticity(content, lines, file_path),
        "boundary_and_negative_coverage": _boundary_coverage(content),
    }
    return FileQuality(
        overall_score=overall_score(dimensions.values()),
        passed=all(result.passed for result in dimensions.values()),
        dimensions=dimensions,
        total_tests=total,
        annotated_tests=total - len(orphan_lines),
        referenced_intents=referenced,
    )


def overall_score(dimensions: Iterable[DimensionResult]) -> float:
    results = list(dimensions)
    total_weight = sum(result.weight for result in results)
    if total_weight == 0:
        return 0.0
    return sum(result.score * result.weight for result in results) / total_weight * 100


def score_tests(orphan_tests: Sequence[OrphanTestInfo]) -> QualityReport:
    """Score the files behind ``orphan_tests`` and fan scores out per test."""
    by_file: Dict[str, List[OrphanTestInfo]] = {}
    for test in orphan_tests:
        by_file.setdefault(test.file_path, []).append(test)

    report = QualityReport()
    for file_path, tests in by_file.items():
        source = tests[0].test_source_code or tests[0].test_code
        if not source:
            continue
        result = analyze_test_source(source, file_path)
        issues = [issue.message for dim in result.dimensions.values() for issue in dim.issues]
        for test in tests:
            report.scores[f"{test.file_path}:{test.test_name}"] = {
                "overall_score": result.overall_score,
                "passed": result.passed,
                "dimensions": {key: dim.score for key, dim in result.dimensions.items()},
                "issues": list(issues),
            }

    if report.scores:
        values = list(report.scores.values())
        report.health = {
            "average_score": sum(item["overall_score"] for item in values) / len(values),
            "pass_rate": sum(1 for item in values if item["passed"]) / len(values),
            "dimension_averages": {
                key: sum(item["dimensions"][key] for item in values) / len(values)
                for key in DIMENSIONS
            },
        }
    logger.debug("Scored %d tests across %d files", len(report.scores), len(by_file))
    return report


# Dimensions


def _annotation_info(lines: List[str]) -> tuple[List[str], List[int], int]:
    referenced: List[str] = []
    orphan_lines: List[int] = []
    total = 0
    last_annotation = -1
    for index, line in enumerate(lines):
        ids = _ANNOTATION.findall(line)
        if ids:
            last_annotation = index
            if ids[-1] not in referenced:
                referenced.append(ids[-1])
        if _TEST_DECLARATION.match(line):
            total += 1
            if last_annotation < 0 or last_annotation < index - _ANNOTATION_REACH:
                orphan_lines.append(index + 1)
    return referenced, orphan_lines, total


def _result(key: str, score: float, issues: Optional[List[QualityIssue]] = None) -> DimensionResult:
    config = DIMENSIONS[key]
    score = max(0.0, min(1.0, score))
    return DimensionResult(
        name=config.name,
        score=score,
        threshold=config.threshold,
        weight=config.weight,
        passed=score >= config.threshold,
        issues=issues or [],
    )


def _line_issues(
    lines: List[str], patterns: Sequence[tuple[re.Pattern[str], str]], template: str
) -> tuple[int, List[QualityIssue]]:
    count = 0
    issues: List[QualityIssue] = []
    for pattern, label in patterns:
        for index, line in enumerate(lines):
            hits = len(pattern.findall(line))
            if hits:
                count += hits
                issues.append(QualityIssue("warning", template.format(label), index + 1))
    return count, issues


def _intent_fidelity(referenced: List[str], orphan_lines: List[int], total: int) -> DimensionResult:
    if total == 0:
        return _result("intent_fidelity", 1.0)
    issues = [
        QualityIssue("warning", "Test has no @atom annotation", line) for line in orphan_lines
    ]
    if not referenced:
        issues.append(QualityIssue("critical", "No intent atoms referenced in this test file"))
        return _result("intent_fidelity", 0.0, issues)
    return _result("intent_fidelity", (total - len(orphan_lines)) / total, issues)


def _no_vacuous(content: str, lines: List[str]) -> DimensionResult:
    count, issues = _line_issues(lines, _VACUOUS, "Vacuous assertion: {}")
    assertions = len(_ASSERTION.findall(content))
    score = 1.0 if assertions == 0 else 1.0 - count / assertions
    return _result("no_vacuous_tests", score, issues)


def _no_brittle(content: str, lines: List[str]) -> DimensionResult:
    count, issues = _line_issues(lines, _BRITTLE, "Potentially brittle: {}")
    tests = len(_TEST_CALL.findall(content))
    score = 1.0 if tests == 0 else 1.0 - (count / tests) * 0.5
    return _result("no_brittle_tests", score, issues)


def _determinism(content: str, lines: List[str]) -> DimensionResult:
    if any(marker in content for marker in _MOCK_MARKERS):
        return _result("determinism", 1.0)
    count, issues = _line_issues(lines, _NONDETERMINISTIC, "Non-deterministic: {} without mocking")
    return _result("determinism", 1.0 - count * 0.1, issues)


def _failure_signal(content: str) -> DimensionResult:
    assertions = len(_ASSERTION.findall(content))
    if assertions == 0:
        return _result("failure_signal_quality", 1.0)
    score = min(len(_COMMENTED_ASSERTION.findall(content)) / assertions, 1.0)
    issues: List[QualityIssue] = []
    if score < DIMENSIONS["failure_signal_quality"].threshold:
        issues.append(
            QualityIssue("info", f"Only {score * 100:.0f}% of assertions have explanatory comments")
        )
    return _result("failure_signal_quality", score, issues)


def _integration_authenticity(content: str, lines: List[str], file_path: str) -> DimensionResult:
    if "integration" not in file_path and "e2e" not in file_path:
        return _result("integration_authenticity", 1.0)
    count, issues = _line_issues(lines, _INTEGRATION_MOCKS, "Integration test uses {}")
    return _result("integration_authenticity", 1.0 - count * 0.2, issues)


def _boundary_coverage(content: str) -> DimensionResult:
    tests = len(_TEST_CALL.findall(content))
    if tests == 0:
        return _result("boundary_and_negative_coverage", 1.0)
    hits = sum(len(pattern.findall(content)) for pattern in _BOUNDARY)
    ratio = hits / tests
    issues: List[QualityIssue] = []
    score = min(ratio / 0.3, 1.0)
    if score < DIMENSIONS["boundary_and_negative_coverage"].threshold:
        issues.append(QualityIssue("info", f"Boundary/negative test coverage: {ratio * 100:.0f}%"))
    return _result("boundary_and_negative_coverage", score, issues)


__all__ = [
    "DIMENSIONS",
    "DimensionConfig",
    "DimensionResult",
    "FileQuality",
    "QualityIssue",
    "QualityReport",
    "analyze_test_source",
    "overall_score",
    "score_tests",
]
