"""Exported declaration evidence for TypeScript and JavaScript sources."""

from __future__ import annotations

import re
from typing import List

from ...models import SOURCE_EXPORT, EvidenceItem
from .core import evidence, line_of, preceding_doc_block, surrounding_code

_EXPORT = re.compile(r"export\s+(default\s+)?(async\s+)?(function|class|const|interface)\s+(\w+)")
_TEST_DOUBLE_MARKERS = ("Mock", "Fixture", "Stub")
_SNIPPET_LINES = 20


def is_public_export(name: str) -> bool:
    if name.startswith("_") or len(name) < 3:
        return False
    return not any(marker in name for marker in _TEST_DOUBLE_MARKERS)


def extract_source_exports(file_path: str, content: str) -> List[EvidenceItem]:
    items: List[EvidenceItem] = []
    for match in _EXPORT.finditer(content):
        is_default, _, export_type, name = match.groups()
        if not is_public_export(name):
            continue

        doc = preceding_doc_block(content, match.start())
        snippet = surrounding_code(content, match.start(), _SNIPPET_LINES)
        code = snippet
        if doc and doc[:30] not in snippet:
            code = f"/** {doc} */\n{snippet}"

        metadata = {"export_type": export_type, "is_default": bool(is_default)}
        if doc:
            metadata["doc"] = doc
        items.append(
            evidence(
                SOURCE_EXPORT,
                file_path,
                name,
                code=code,
                line_number=line_of(content, match.start()),
                metadata=metadata,
            )
        )
    return items


__all__ = ["extract_source_exports", "is_public_export"]
