"""UI component evidence for React, Vue and Svelte files."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Dict, List, Sequence

from ...models import UI_COMPONENT, EvidenceItem
from .core import evidence, line_of, surrounding_code

_REACT_FUNCTION = re.compile(r"export\s+(default\s+)?function\s+([A-Z]\w+)")
_REACT_CONST = re.compile(r"export\s+(default\s+)?const\s+([A-Z]\w+)\s*[=:]")
_REACT_WRAPPER = re.compile(
    r"export\s+(default\s+)?const\s+([A-Z]\w+)\s*=\s*(?:React\.)?(?:forwardRef|memo)\s*[(<]"
)
_REACT_SEPARATE_DEFAULT = re.compile(r"export\s+default\s+([A-Z]\w+)\s*;?\s*$", re.MULTILINE)

_REACT_FORM = re.compile(r"(<form|<input|<textarea|<select|useForm)", re.IGNORECASE)
_REACT_NAVIGATION = re.compile(r"(<Link|useRouter|useNavigate|usePathname)", re.IGNORECASE)
_VUE_TEMPLATE = re.compile(r"<template>", re.IGNORECASE)
_VUE_FORM = re.compile(r"(<form|<input|<textarea|v-model)", re.IGNORECASE)
_VUE_NAVIGATION = re.compile(r"(<router-link|useRouter|\$router)", re.IGNORECASE)
_SVELTE_FORM = re.compile(r"(<form|<input|bind:value)", re.IGNORECASE)
_SVELTE_NAVIGATION = re.compile(r"(<a\s+href|goto\()", re.IGNORECASE)

_REACT_SNIPPET_LINES = 30
_SFC_SNIPPET_CHARS = 2000


def extract_ui_components(
    file_path: str, content: str, frameworks: Sequence[str]
) -> List[EvidenceItem]:
    """Return components for the UI frameworks detected in the repository."""
    if "react" in frameworks and file_path.endswith((".tsx", ".jsx")):
        return _react_components(file_path, content)
    if "vue" in frameworks and file_path.endswith(".vue"):
        return _vue_component(file_path, content)
    if "svelte" in frameworks and file_path.endswith(".svelte"):
        return _svelte_component(file_path, content)
    return []


def looks_like_markup(content: str) -> bool:
    return (
        re.search(r"<[A-Z]", content) is not None
        or re.search(r"return\s*\(?\s*<", content) is not None
        or "jsx" in content
        or "React" in content
    )


def _react_components(file_path: str, content: str) -> List[EvidenceItem]:
    file_has_markup = looks_like_markup(content)
    metadata = {
        "framework": "react",
        "has_form": _REACT_FORM.search(content) is not None,
        "has_navigation": _REACT_NAVIGATION.search(content) is not None,
    }
    found: Dict[str, EvidenceItem] = {}

    def add(name: str, index: int) -> None:
        if name in found:
            return
        found[name] = evidence(
            UI_COMPONENT,
            file_path,
            name,
            code=surrounding_code(content, index, _REACT_SNIPPET_LINES),
            line_number=line_of(content, index),
            metadata=dict(metadata),
        )

    for pattern in (_REACT_FUNCTION, _REACT_CONST, _REACT_WRAPPER):
        for match in pattern.finditer(content):
            snippet = surrounding_code(content, match.start(), _REACT_SNIPPET_LINES)
            if not file_has_markup and not _snippet_has_markup(snippet):
                continue
            add(match.group(2), match.start())

    if file_has_markup:
        for match in _REACT_SEPARATE_DEFAULT.finditer(content):
            name = match.group(1)
            if name in found:
                continue
            declared = re.search(rf"(?:function|const)\s+{re.escape(name)}\b", content)
            if declared is None:
                continue
            add(name, match.start())

    return list(found.values())


def _snippet_has_markup(snippet: str) -> bool:
    return "<" in snippet or "jsx" in snippet or "React" in snippet


def _vue_component(file_path: str, content: str) -> List[EvidenceItem]:
    if _VUE_TEMPLATE.search(content) is None:
        return []
    return [
        _single_file_component(
            file_path,
            content,
            framework="vue",
            has_form=_VUE_FORM.search(content) is not None,
            has_navigation=_VUE_NAVIGATION.search(content) is not None,
        )
    ]


def _svelte_component(file_path: str, content: str) -> List[EvidenceItem]:
    return [
        _single_file_component(
            file_path,
            content,
            framework="svelte",
            has_form=_SVELTE_FORM.search(content) is not None,
            has_navigation=_SVELTE_NAVIGATION.search(content) is not None,
        )
    ]


def _single_file_component(
    file_path: str,
    content: str,
    *,
    framework: str,
    has_form: bool,
    has_navigation: bool,
) -> EvidenceItem:
    # The file itself is the component.
    return evidence(
        UI_COMPONENT,
        file_path,
        PurePosixPath(file_path).stem or "UnknownComponent",
        code=content[:_SFC_SNIPPET_CHARS],
        line_number=1,
        metadata={"framework": framework, "has_form": has_form, "has_navigation": has_navigation},
    )


__all__ = ["extract_ui_components", "looks_like_markup"]
