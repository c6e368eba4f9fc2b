"""Tests for coverage artifact parsing."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET

import pytest

from repomanifest.analyzers.coverage import (
    COVERAGE_ARTIFACT_PATHS,
    collapse_line_numbers,
    detect_coverage_format,
    parse_coverage_file,
)
from repomanifest.analyzers.structure import discover_coverage
from tests._fixtures.repo_builder import RepoBuilder

LCOV = """TN:
SF:src/a.ts
DA:1,1
DA:2,0
DA:3,0
DA:5,0
LF:4
LH:1
end_of_record
SF:src/b.ts
LF:2
LH:2
end_of_record
"""


def test_parse_lcov_records() -> None:
    data = parse_coverage_file("coverage/lcov.info", LCOV)

    assert data is not None
    assert data.format == "lcov"
    assert [item.file_path for item in data.files] == ["src/a.ts", "src/b.ts"]
    assert data.total_lines == 6
    assert data.covered_lines == 3
    assert data.coverage_percent == pytest.approx(50.0)
    first = data.files[0]
    assert first.coverage_percent == pytest.approx(25.0)
    assert first.uncovered_ranges == [{"start": 2, "end": 3}, {"start": 5, "end": 5}]


def test_parse_istanbul_summary_uses_total_block() -> None:
    payload = {
        "total": {"lines": {"total": 10, "covered": 8}},
        "src/a.ts": {"lines": {"total": 6, "covered": 6}},
        "src/b.ts": {"lines": {"total": 4, "covered": 2}},
    }
    data = parse_coverage_file("coverage/coverage-summary.json", json.dumps(payload))

    assert data is not None
    assert data.format == "istanbul"
    assert data.coverage_percent == pytest.approx(80.0)
    assert {item.file_path: item.covered_lines for item in data.files} == {"src/a.ts": 6, "src/b.ts": 2}


def test_parse_cobertura_merges_classes_by_filename() -> None:
    xml = """<?xml version="1.0"?>
<coverage line-rate="0.5">
  <packages><package name="app"><classes>
    <class name="A" filename="app/a.py"><lines>
      <line number="1" hits="1"/><line number="2" hits="0"/>
    </lines></class>
    <class name="B" filename="app/a.py"><lines>
      <line number="3" hits="0"/><line number="4" hits="2"/>
    </lines></class>
  </classes></package></packages>
</coverage>
"""
    data = parse_coverage_file("coverage.xml", xml)

    assert data is not None
    assert data.format == "cobertura"
    assert len(data.files) == 1
    assert data.files[0].total_lines == 4
    assert data.files[0].covered_lines == 2
    assert data.files[0].uncovered_ranges == [{"start": 2, "end": 3}]


def test_unknown_format_returns_none() -> None:
    assert detect_coverage_format("coverage/coverage-summary.json", "[1, 2]") is None
    assert parse_coverage_file("coverage/clover.xml", "<project/>") is None


def test_clover_reports_are_not_discovered(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "coverage/clover.xml": (
                '<coverage generated="1"><project><file name="src/a.ts">'
                '<metrics statements="10" coveredstatements="2"/></file></project></coverage>\n'
            )
        }
    )

    assert "coverage/clover.xml" not in COVERAGE_ARTIFACT_PATHS
    assert discover_coverage(repo_builder.source()) is None


def test_malformed_cobertura_raises() -> None:
    with pytest.raises(ET.ParseError):
        parse_coverage_file("coverage.xml", "<coverage><class")


def test_zero_total_lines_reports_zero_percent() -> None:
    data = parse_coverage_file("coverage/lcov.info", "SF:src/empty.ts\nLF:0\nLH:0\nend_of_record\n")

    assert data is not None
    assert data.coverage_percent == 0.0
    assert data.files[0].coverage_percent == 0.0


def test_collapse_line_numbers_deduplicates() -> None:
    assert collapse_line_numbers([4, 1, 2, 2, 7]) == [
        {"start": 1, "end": 2},
        {"start": 4, "end": 4},
        {"start": 7, "end": 7},
    ]
    assert collapse_line_numbers([]) == []
