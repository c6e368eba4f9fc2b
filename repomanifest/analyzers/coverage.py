"""Parsers for coverage artifacts already present in a repository.

Nothing here executes tests; LCOV, Istanbul summary JSON and Cobertura XML
reports are read as they were left by the project's own tooling.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, List, Optional

from ..models import CoverageData, CoverageFileData

COVERAGE_ARTIFACT_PATHS: tuple[str, ...] = (
    "coverage/lcov.info",
    "coverage/lcov-report/lcov.info",
    "coverage/coverage-summary.json",
    ".nyc_output/coverage-summary.json",
    "coverage.xml",
    "coverage/cobertura-coverage.xml",
)


def detect_coverage_format(path: str, content: str) -> Optional[str]:
    if path.endswith(".info") or content.startswith(("TN:", "SF:")):
        return "lcov"
    if path.endswith(".json"):
        try:
            parsed = json.loads(content)
        except ValueError:
            return None
        if isinstance(parsed, dict) and ("total" in parsed or "result" in parsed):
            return "istanbul"
        return None
    if path.endswith(".xml") and "<coverage" in content:
        return "cobertura"
    return None


def parse_coverage_file(path: str, content: str) -> Optional[CoverageData]:
    """Parse ``content`` in whichever format ``path``/``content`` indicate.

    Returns None for unrecognised formats; malformed content of a recognised
    format raises ``ValueError`` (or ``ET.ParseError``) for the caller to skip.
    """
    fmt = detect_coverage_format(path, content)
    if fmt == "lcov":
        return parse_lcov(content)
    if fmt == "istanbul":
        return parse_istanbul(content)
    if fmt == "cobertura":
        return parse_cobertura(content)
    return None


def parse_lcov(content: str) -> CoverageData:
    files: List[CoverageFileData] = []
    for record in content.split("end_of_record"):
        file_path = ""
        total = covered = 0
        uncovered: List[int] = []
        for line in record.strip().splitlines():
            if line.startswith("SF:"):
                file_path = line[3:].strip()
            elif line.startswith("LF:"):
                total = _to_int(line[3:])
            elif line.startswith("LH:"):
                covered = _to_int(line[3:])
            elif line.startswith("DA:"):
                parts = line[3:].split(",")
                if len(parts) >= 2 and parts[0].strip().isdigit() and _to_int(parts[1]) == 0:
                    uncovered.append(int(parts[0]))
        if not file_path:
            continue
        files.append(_file_data(file_path, total, covered, uncovered))
    return _summarise("lcov", files)


def parse_istanbul(content: str) -> CoverageData:
    parsed = json.loads(content)
    if not isinstance(parsed, dict):
        raise ValueError("Istanbul summary must be a JSON object")

    files: List[CoverageFileData] = []
    for key, value in parsed.items():
        if key == "total" or not isinstance(value, dict):
            continue
        lines = value.get("lines") if isinstance(value.get("lines"), dict) else {}
        statements = value.get("statements") if isinstance(value.get("statements"), dict) else {}
        total = _to_int(lines.get("total") or statements.get("total"))
        covered = _to_int(lines.get("covered") or statements.get("covered"))
        files.append(_file_data(key, total, covered, []))

    total_block = parsed.get("total")
    total_lines = covered_lines = 0
    if isinstance(total_block, dict) and isinstance(total_block.get("lines"), dict):
        total_lines = _to_int(total_block["lines"].get("total"))
        covered_lines = _to_int(total_block["lines"].get("covered"))
    if not total_lines:
        total_lines = sum(item.total_lines for item in files)
        covered_lines = sum(item.covered_lines for item in files)
    return CoverageData(
        format="istanbul",
        total_lines=total_lines,
        covered_lines=covered_lines,
        coverage_percent=_percent(covered_lines, total_lines),
        files=files,
    )


def parse_cobertura(content: str) -> CoverageData:
    root = ET.fromstring(content)
    totals: Dict[str, List[int]] = {}
    uncovered: Dict[str, List[int]] = {}
    order: List[str] = []

    # Several <class> elements may share one filename.
    for element in root.iter("class"):
        filename = element.get("filename")
        if not filename:
            continue
        if filename not in totals:
            totals[filename] = [0, 0]
            uncovered[filename] = []
            order.append(filename)
        for line in element.iter("line"):
            number = line.get("number")
            hits = _to_int(line.get("hits"))
            totals[filename][0] += 1
            if hits > 0:
                totals[filename][1] += 1
            elif number is not None and number.isdigit():
                uncovered[filename].append(int(number))

    files = [
        _file_data(name, totals[name][0], totals[name][1], uncovered[name]) for name in order
    ]
    return _summarise("cobertura", files)


def collapse_line_numbers(lines: Iterable[int]) -> List[Dict[str, int]]:
    """Collapse line numbers into contiguous ``{"start", "end"}`` ranges."""
    ordered = sorted(set(lines))
    if not ordered:
        return []
    ranges: List[Dict[str, int]] = []
    start = end = ordered[0]
    for number in ordered[1:]:
        if number == end + 1:
            end = number
            continue
        ranges.append({"start": start, "end": end})
        start = end = number
    ranges.append({"start": start, "end": end})
    return ranges


def _file_data(path: str, total: int, covered: int, uncovered: List[int]) -> CoverageFileData:
    return CoverageFileData(
        file_path=path,
        total_lines=total,
        covered_lines=covered,
        coverage_percent=_percent(covered, total),
        uncovered_ranges=collapse_line_numbers(uncovered),
    )


def _summarise(fmt: str, files: List[CoverageFileData]) -> CoverageData:
    total = sum(item.total_lines for item in files)
    covered = sum(item.covered_lines for item in files)
    return CoverageData(
        format=fmt,
        total_lines=total,
        covered_lines=covered,
        coverage_percent=_percent(covered, total),
        files=files,
    )


def _percent(covered: int, total: int) -> float:
    return (covered / total) * 100 if total > 0 else 0.0


def _to_int(value: object) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


__all__ = [
    "COVERAGE_ARTIFACT_PATHS",
    "collapse_line_numbers",
    "detect_coverage_format",
    "parse_cobertura",
    "parse_coverage_file",
    "parse_istanbul",
    "parse_lcov",
]
