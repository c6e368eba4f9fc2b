"""Code comment evidence: doc blocks, task annotations, rule comments and intent references."""

from __future__ import annotations

import re
from typing import List

from ...models import CODE_COMMENT, EvidenceItem
from .core import clean_doc_block, evidence, line_of, surrounding_code

TASK_ANNOTATION_WEIGHT = 0.8
BUSINESS_RULE_WEIGHT = 0.7

_DOC_BLOCK = re.compile(r"/\*\*([\s\S]*?)\*/")
_FOLLOWED_BY_EXPORT = re.compile(r"\s*(?:@\w+\([^)]*\)\s*)*export\s")
_DOC_TAG = re.compile(r"@(\w+)")
_SIGNATURE_TAGS = frozenset({"param", "returns", "return", "type", "typedef"})

_TASK_ANNOTATION = re.compile(
    r"//\s*((?:needs|hack|bug|note|important|warning|workaround|refactor|deprecated|security)[:\s].{15,})",
    re.IGNORECASE,
)

_LINE_COMMENT = re.compile(r"^//\s*(.{20,})$")
_RULE_KEYWORDS = re.compile(
    r"\b(must|shall|should|require|ensure|validate|verify|allow|deny|prevent|restrict"
    r"|limit|enforce|guarantee|expect|always|never)\b",
    re.IGNORECASE,
)
_TOOLING_NOISE = re.compile(r"eslint|prettier|istanbul|webpack|typescript|noinspection", re.IGNORECASE)

_INTENT_REFERENCE = re.compile(r"//\s*@atom\s+(IA-\d+(?:\s*,\s*IA-\d+)*)")
_TEST_FILE = re.compile(r"\.(spec|test)\.(ts|js|tsx|jsx)$")

MIN_DOC_BLOCK_CHARS = 40
MIN_DOC_DESCRIPTION_CHARS = 30


def extract_code_comments(file_path: str, content: str) -> List[EvidenceItem]:
    return [
        *extract_doc_blocks(file_path, content),
        *extract_task_annotations(file_path, content),
        *extract_business_rules(file_path, content),
        *extract_intent_references(file_path, content),
    ]


def extract_doc_blocks(file_path: str, content: str) -> List[EvidenceItem]:
    """Doc blocks describing modules or types rather than an export.

    Blocks directly above an export are left to the export extractor.
    """
    items: List[EvidenceItem] = []
    for match in _DOC_BLOCK.finditer(content):
        cleaned = clean_doc_block(match.group(1))
        if len(cleaned) < MIN_DOC_BLOCK_CHARS:
            continue
        if _FOLLOWED_BY_EXPORT.match(content[match.end() : match.end() + 200]):
            continue

        tags = [f"@{tag}" for tag in _DOC_TAG.findall(cleaned) if tag not in _SIGNATURE_TAGS]
        description_lines = [line for line in cleaned.split("\n") if not line.startswith("@")]
        if len("\n".join(description_lines).strip()) < MIN_DOC_DESCRIPTION_CHARS:
            continue

        metadata = {"comment_type": "jsdoc"}
        if tags:
            metadata["tags"] = tags
        items.append(
            evidence(
                CODE_COMMENT,
                file_path,
                description_lines[0][:80],
                code=cleaned[:1000],
                line_number=line_of(content, match.start()),
                metadata=metadata,
            )
        )
    return items


def extract_task_annotations(file_path: str, content: str) -> List[EvidenceItem]:
    items: List[EvidenceItem] = []
    for match in _TASK_ANNOTATION.finditer(content):
        annotation = match.group(1).strip()
        items.append(
            evidence(
                CODE_COMMENT,
                file_path,
                annotation[:80],
                code=surrounding_code(content, match.start(), 5),
                line_number=line_of(content, match.start()),
                weight=TASK_ANNOTATION_WEIGHT,
                metadata={"comment_type": "task_annotation"},
            )
        )
    return items


def extract_business_rules(file_path: str, content: str) -> List[EvidenceItem]:
    """Single-line comments phrased as rules (must, never, ensure...)."""
    items: List[EvidenceItem] = []
    lines = content.split("\n")
    for index, raw in enumerate(lines):
        match = _LINE_COMMENT.match(raw.strip())
        if match is None:
            continue
        text = match.group(1).strip()
        if _RULE_KEYWORDS.search(text) is None or _TOOLING_NOISE.search(text):
            continue
        items.append(
            evidence(
                CODE_COMMENT,
                file_path,
                text[:80],
                code="\n".join(lines[max(0, index - 2) : index + 5]),
                line_number=index + 1,
                weight=BUSINESS_RULE_WEIGHT,
                metadata={"comment_type": "business_logic"},
            )
        )
    return items


def extract_intent_references(file_path: str, content: str) -> List[EvidenceItem]:
    # Test files are handled by the orphan scanner.
    if _TEST_FILE.search(file_path):
        return []
    items: List[EvidenceItem] = []
    for match in _INTENT_REFERENCE.finditer(content):
        ids = [part.strip() for part in match.group(1).split(",")]
        items.append(
            evidence(
                CODE_COMMENT,
                file_path,
                f"@atom {', '.join(ids)}",
                code=surrounding_code(content, match.start(), 10),
                line_number=line_of(content, match.start()),
                metadata={"comment_type": "atom_reference", "tags": ids},
            )
        )
    return items


__all__ = [
    "BUSINESS_RULE_WEIGHT",
    "TASK_ANNOTATION_WEIGHT",
    "extract_business_rules",
    "extract_code_comments",
    "extract_doc_blocks",
    "extract_intent_references",
    "extract_task_annotations",
]
