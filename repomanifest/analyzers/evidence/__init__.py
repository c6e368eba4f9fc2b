"""Heuristic evidence extractors, dispatched per file by role."""

from __future__ import annotations

from typing import List, Sequence

from ...models import EvidenceItem
from .comments import extract_code_comments
from .docs import extract_documentation
from .endpoints import extract_api_endpoints
from .exports import extract_source_exports
from .ui import extract_ui_components

ROLE_SOURCE = "source"
ROLE_UI = "ui"
ROLE_DOC = "doc"
ROLE_CONFIG = "config"


def extract_from_file(
    file_path: str,
    content: str,
    frameworks: Sequence[str],
    role: str,
) -> List[EvidenceItem]:
    """Run the extractors that apply to ``role`` and concatenate their output.

    Config files yield nothing; their facts live in the package metadata.
    """
    if role == ROLE_SOURCE:
        return [
            *extract_source_exports(file_path, content),
            *extract_api_endpoints(file_path, content, frameworks),
            *extract_code_comments(file_path, content),
        ]
    if role == ROLE_UI:
        # UI modules also export hooks and helpers.
        return [
            *extract_ui_components(file_path, content, frameworks),
            *extract_source_exports(file_path, content),
            *extract_code_comments(file_path, content),
        ]
    if role == ROLE_DOC:
        return extract_documentation(file_path, content)
    return []


__all__ = [
    "ROLE_CONFIG",
    "ROLE_DOC",
    "ROLE_SOURCE",
    "ROLE_UI",
    "extract_api_endpoints",
    "extract_code_comments",
    "extract_documentation",
    "extract_from_file",
    "extract_source_exports",
    "extract_ui_components",
]
