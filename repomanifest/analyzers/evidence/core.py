"""Shared helpers for the line and pattern based evidence extractors."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from ...models import EVIDENCE_CONFIDENCE_WEIGHTS, EvidenceItem

DOC_BLOCK_WINDOW = 2000
MIN_DOC_BLOCK_CHARS = 10

# Last /** */ block in the window; only decorators or whitespace may follow it.
_TRAILING_DOC_BLOCK = re.compile(r"/\*\*([\s\S]*?)\*/\s*(?:@\w+\([^)]*\)\s*)*$")
_DOC_LINE_PREFIX = re.compile(r"^\s*\*\s?")


def line_of(text: str, index: int) -> int:
    """Return 1-based line number for a character index."""
    return text.count("\n", 0, index) + 1


def surrounding_code(text: str, index: int, context_lines: int) -> str:
    """Return two lines before ``index`` through ``context_lines`` lines from it."""
    lines = text.split("\n")
    line_index = line_of(text, index) - 1
    start = max(0, line_index - 2)
    end = min(len(lines), line_index + context_lines)
    return "\n".join(lines[start:end])


def clean_doc_block(raw: str) -> str:
    """Strip comment leaders and blank lines from the body of a ``/** */`` block."""
    lines = (_DOC_LINE_PREFIX.sub("", line).strip() for line in raw.split("\n"))
    return "\n".join(line for line in lines if line)


def preceding_doc_block(text: str, index: int) -> Optional[str]:
    """Return the cleaned doc block directly above ``index`` if it says anything."""
    window = text[max(0, index - DOC_BLOCK_WINDOW) : index]
    # Only the last opening counts; an earlier one would swallow code.
    start = window.rfind("/**")
    if start < 0:
        return None
    match = _TRAILING_DOC_BLOCK.match(window, start)
    if match is None:
        return None
    cleaned = clean_doc_block(match.group(1))
    return cleaned if len(cleaned) > MIN_DOC_BLOCK_CHARS else None


def evidence(
    evidence_type: str,
    file_path: str,
    name: str,
    *,
    code: str = "",
    line_number: Optional[int] = None,
    weight: float = 1.0,
    related_files: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> EvidenceItem:
    """Build an item whose confidence is the type weight scaled by ``weight``."""
    return EvidenceItem(
        type=evidence_type,
        file_path=file_path,
        name=name,
        code=code,
        line_number=line_number,
        base_confidence=EVIDENCE_CONFIDENCE_WEIGHTS[evidence_type] * weight,
        related_files=list(related_files or []),
        metadata=dict(metadata or {}),
    )


__all__ = [
    "DOC_BLOCK_WINDOW",
    "clean_doc_block",
    "evidence",
    "line_of",
    "preceding_doc_block",
    "surrounding_code",
]
