"""Documentation evidence from heading-delimited markdown sections."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import List

from ...models import DOCUMENTATION, EvidenceItem
from .core import evidence

_HEADING_SPLIT = re.compile(r"^(#{1,2}\s+.+)$", re.MULTILINE)
_HEADING_PREFIX = re.compile(r"^#{1,2}\s+")
_BOILERPLATE = re.compile(
    r"^(table of contents|license|changelog|contributing|installation|getting started)",
    re.IGNORECASE,
)
_LINK = re.compile(r"\[.*?\]\(.*?\)")

MIN_SECTION_CHARS = 80
MAX_SECTION_CHARS = 1500


def extract_documentation(file_path: str, content: str) -> List[EvidenceItem]:
    """Return one item per substantive ``#``/``##`` section.

    Section positions are not tracked, so every item reports line 1.
    """
    items: List[EvidenceItem] = []
    heading = ""
    for chunk in _HEADING_SPLIT.split(content):
        section = chunk.strip()
        if not section:
            continue
        if _HEADING_PREFIX.match(section):
            heading = _HEADING_PREFIX.sub("", section).strip()
            continue
        if _BOILERPLATE.match(heading):
            continue
        if len(_LINK.sub("", section).strip()) < MIN_SECTION_CHARS:
            continue
        items.append(
            evidence(
                DOCUMENTATION,
                file_path,
                heading or PurePosixPath(file_path).name or "Documentation",
                code=section[:MAX_SECTION_CHARS],
                line_number=1,
                metadata={"section": heading},
            )
        )
    return items


__all__ = ["MAX_SECTION_CHARS", "MIN_SECTION_CHARS", "extract_documentation"]
