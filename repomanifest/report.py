"""Render manifests as JSON or as a markdown report."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader

from .models import Manifest

FORMAT_JSON = "json"
FORMAT_MARKDOWN = "markdown"
OUTPUT_FORMATS = (FORMAT_JSON, FORMAT_MARKDOWN)

MARKDOWN_TEMPLATE = "manifest.md.j2"
MAX_LISTED_ORPHANS = 20
MAX_LISTED_CONCEPTS = 15

_TEMPLATES_DIR = Path(__file__).with_name("templates")


def create_environment(templates_dir: Path | None = None) -> Environment:
    """Template environment; ``templates_dir`` takes precedence over the bundled templates."""
    directories: List[str] = []
    if templates_dir:
        directories.append(str(templates_dir))
    directories.append(str(_TEMPLATES_DIR))
    return Environment(
        loader=FileSystemLoader(directories),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_json(manifest: Manifest) -> str:
    return json.dumps(manifest.to_dict(), indent=2, sort_keys=True)


def render_markdown(manifest: Manifest, *, templates_dir: Path | None = None) -> str:
    template = create_environment(templates_dir).get_template(MARKDOWN_TEMPLATE)
    return template.render(**report_context(manifest))


def render(manifest: Manifest, output_format: str = FORMAT_JSON) -> str:
    if output_format == FORMAT_MARKDOWN:
        return render_markdown(manifest)
    if output_format == FORMAT_JSON:
        return render_json(manifest)
    raise ValueError(f"Unsupported output format: {output_format}")


def report_context(manifest: Manifest) -> Dict[str, Any]:
    """Flatten a manifest into the values the markdown template reads."""
    identity = manifest.identity or {}
    inventory = manifest.evidence_inventory or {}
    orphans = manifest.orphan_tests_snapshot or []
    concepts = (manifest.domain_concepts or {}).get("concepts", [])
    health = manifest.health_signals or {}
    return {
        "manifest": manifest,
        "title": identity.get("name") or manifest.project_id or manifest.root_directory,
        "identity": identity,
        "structure": manifest.structure or {},
        "summary": inventory.get("summary", {"total": 0, "by_type": {}}),
        "tests": inventory.get("tests", {"count": 0, "orphan_count": 0, "linked_count": 0}),
        "endpoints": inventory.get("api_endpoints", {}),
        "orphans": orphans[:MAX_LISTED_ORPHANS],
        "hidden_orphans": max(len(orphans) - MAX_LISTED_ORPHANS, 0),
        "concepts": concepts[:MAX_LISTED_CONCEPTS],
        "test_quality": health.get("test_quality"),
        "coverage": health.get("coverage"),
        "dependency_count": health.get("dependency_count", 0),
    }


__all__ = [
    "FORMAT_JSON",
    "FORMAT_MARKDOWN",
    "OUTPUT_FORMATS",
    "create_environment",
    "render",
    "render_json",
    "render_markdown",
    "report_context",
]
