"""Orphan test scanner.

A test is linked when an ``@atom IA-<n>`` annotation appears on its
declaration line or within ``lookback`` lines above it; otherwise it is an
orphan. Group tracking for JavaScript-style suites is line based: a
``describe(`` line opens a group and a bare ``});`` line closes the innermost
one. Files with several closers on one line or multi-line closing expressions
can therefore attribute tests to the wrong group.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional

from ..config import DEFAULT_ANNOTATION_LOOKBACK
from ..models import OrphanTestInfo

MAX_TEST_BODY_LINES = 100
GROUP_SEPARATOR = " > "

_ANNOTATION = re.compile(r"@atom\s+(IA-\d+)")
_JS_TEST = re.compile(r"^\s*(it|test)\s*\(\s*['\"`](.+?)['\"`]")
_JS_GROUP = re.compile(r"^\s*describe\s*\(\s*['\"`](.+?)['\"`]")
_JS_GROUP_CLOSE = "});"
_PY_TEST = re.compile(r"^(\s*)(?:async\s+)?def\s+(test_\w+)\s*\(")
_PY_GROUP = re.compile(r"^(\s*)class\s+(Test\w*)\b")

# Source suffixes tried when pairing a test file with the module it covers.
_TEST_SUFFIXES: tuple[tuple[str, str], ...] = (
    (".e2e-spec.ts", ".ts"),
    (".spec.ts", ".ts"),
    (".test.ts", ".ts"),
)


@dataclass(frozen=True)
class TestDeclaration:
    """A test declaration found while scanning, before linkage is decided."""

    __test__ = False

    index: int
    name: str
    linked: bool


def scan_test_file(
    file_path: str,
    content: str,
    lookback: int = DEFAULT_ANNOTATION_LOOKBACK,
) -> List[OrphanTestInfo]:
    """Return the tests in ``content`` that carry no nearby annotation."""
    lines = content.split("\n")
    is_python = file_path.endswith(".py")
    orphans: List[OrphanTestInfo] = []
    for declaration in iter_test_declarations(file_path, content, lookback):
        if declaration.linked:
            continue
        body = _python_body(lines, declaration.index) if is_python else _braced_body(lines, declaration.index)
        orphans.append(
            OrphanTestInfo(
                file_path=file_path,
                test_name=declaration.name,
                line_number=declaration.index + 1,
                test_code=body,
                related_source_files=[],
                test_source_code=content,
            )
        )
    return orphans


def count_linked_tests(
    content: str,
    lookback: int = DEFAULT_ANNOTATION_LOOKBACK,
    *,
    file_path: str = "",
) -> int:
    return sum(1 for item in iter_test_declarations(file_path, content, lookback) if item.linked)


def iter_test_declarations(
    file_path: str, content: str, lookback: int
) -> Iterator[TestDeclaration]:
    """Yield every test declaration with its group-qualified name."""
    lines = content.split("\n")
    if file_path.endswith(".py"):
        yield from _python_declarations(lines, lookback)
    else:
        yield from _js_declarations(lines, lookback)


def has_annotation(lines: List[str], index: int, lookback: int) -> bool:
    """Check the window ``[index - lookback, index]``, both ends included."""
    start = max(0, index - lookback)
    return any(_ANNOTATION.search(lines[i]) for i in range(start, index + 1))


def related_source_path(test_path: str) -> Optional[str]:
    for suffix, replacement in _TEST_SUFFIXES:
        if test_path.endswith(suffix):
            return test_path[: -len(suffix)] + replacement
    return None


def _js_declarations(lines: List[str], lookback: int) -> Iterator[TestDeclaration]:
    groups: List[str] = []
    for index, line in enumerate(lines):
        group = _JS_GROUP.match(line)
        if group:
            groups.append(group.group(1))
        elif line.strip() == _JS_GROUP_CLOSE and groups:
            groups.pop()

        test = _JS_TEST.match(line)
        if test is None:
            continue
        yield TestDeclaration(
            index=index,
            name=GROUP_SEPARATOR.join([*groups, test.group(2)]),
            linked=has_annotation(lines, index, lookback),
        )


def _python_declarations(lines: List[str], lookback: int) -> Iterator[TestDeclaration]:
    # (indent, name) for each enclosing Test* class.
    groups: List[tuple[int, str]] = []
    for index, line in enumerate(lines):
        if not line.strip():
            continue
        indent = len(line) - len(line.lstrip())
        while groups and indent <= groups[-1][0]:
            groups.pop()

        group = _PY_GROUP.match(line)
        if group:
            groups.append((len(group.group(1)), group.group(2)))
            continue

        test = _PY_TEST.match(line)
        if test is None:
            continue
        yield TestDeclaration(
            index=index,
            name=GROUP_SEPARATOR.join([*(name for _, name in groups), test.group(2)]),
            linked=has_annotation(lines, index, lookback),
        )


def _braced_body(lines: List[str], start: int) -> str:
    captured: List[str] = []
    depth = 0
    opened = False
    for line in lines[start : start + MAX_TEST_BODY_LINES]:
        captured.append(line)
        for char in line:
            if char == "{":
                depth += 1
                opened = True
            elif char == "}":
                depth -= 1
        if opened and depth == 0:
            break
    return "\n".join(captured)


def _python_body(lines: List[str], start: int) -> str:
    header = lines[start]
    base_indent = len(header) - len(header.lstrip())
    captured = [header]
    for line in lines[start + 1 : start + MAX_TEST_BODY_LINES]:
        if line.strip() and len(line) - len(line.lstrip()) <= base_indent:
            break
        captured.append(line)
    return "\n".join(captured).rstrip()


__all__ = [
    "MAX_TEST_BODY_LINES",
    "TestDeclaration",
    "count_linked_tests",
    "has_annotation",
    "iter_test_declarations",
    "related_source_path",
    "scan_test_file",
]
