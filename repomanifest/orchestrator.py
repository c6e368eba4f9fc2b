"""Pipeline orchestration for manifest generation runs."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .aggregator import aggregate, collect_evidence, scan_tests
from .analyzers.domain import (
    aggregate_concepts,
    build_context_snapshot,
    build_documentation_index,
    build_domain_model,
    build_health_signals,
)
from .analyzers.quality import score_tests
from .analyzers.structure import classify
from .config import PipelineSettings, load_config
from .content.base import ContentSource
from .content.filesystem import CommandRunner, FilesystemContentSource
from .content.mirror import GitMirrorContentSource, scrub_credentials
from .errors import ConfigError
from .logging import get_logger
from .models import (
    SOURCE_FILESYSTEM,
    SOURCE_MIRROR,
    STATUS_COMPLETE,
    STATUS_FAILED,
    STATUS_GENERATING,
    Manifest,
)
from .stores import InMemoryManifestStore, ManifestStore

PHASE_STRUCTURE = "structure"
PHASE_EVIDENCE = "evidence"
PHASE_TEST_QUALITY = "test_quality"
PHASE_DOMAIN = "domain"
PHASE_COMPLETE = "complete"

PHASE_PROGRESS: Dict[str, int] = {
    PHASE_STRUCTURE: 10,
    PHASE_EVIDENCE: 30,
    PHASE_TEST_QUALITY: 55,
    PHASE_DOMAIN: 70,
    PHASE_COMPLETE: 100,
}

ProgressListener = Callable[[str, str, int], None]
SourceFactory = Callable[["GenerateOptions", PipelineSettings], ContentSource]


@dataclass
class GenerateOptions:
    """Inputs for one ``ManifestPipeline.generate`` call."""

    project_id: Optional[str] = None
    root_directory: str = "."
    content_source: str = SOURCE_FILESYSTEM
    force: bool = False
    repository_url: Optional[str] = None
    branch: Optional[str] = None


class ManifestPipeline:
    """Runs the four analysis phases and records the result in a manifest store.

    A run moves ``generating`` to ``complete`` or ``failed`` exactly once.
    When the project already has a complete manifest for the resolved commit
    (and ``force`` is not set) that manifest is returned untouched.
    """

    def __init__(
        self,
        store: ManifestStore | None = None,
        *,
        settings: PipelineSettings | None = None,
        listener: ProgressListener | None = None,
        runner: CommandRunner | None = None,
        source_factory: SourceFactory | None = None,
    ) -> None:
        self.store = store or InMemoryManifestStore()
        self.logger = get_logger("orchestrator")
        self._settings = settings
        self._listener = listener
        self._runner = runner
        self._source_factory = source_factory

    def generate(self, options: GenerateOptions) -> Manifest:
        settings = self._resolve_settings(options)
        if options.content_source == SOURCE_MIRROR and not self._mirror_url(options, settings):
            raise ConfigError("A repository URL is required for mirror content sources")

        source = self._open_source(options, settings)
        try:
            commit_hash = source.get_commit_hash()
            if options.project_id and commit_hash and not options.force:
                cached = self.store.find_complete(options.project_id, commit_hash)
                if cached is not None:
                    self.logger.info(
                        "Reusing manifest %s for %s at %s", cached.id, options.project_id, commit_hash
                    )
                    return cached
            return self._run(options, settings, source, commit_hash)
        finally:
            self._cleanup(source)

    def get_manifest(self, manifest_id: str) -> Optional[Manifest]:
        return self.store.get(manifest_id)

    def latest_for_project(self, project_id: str) -> Optional[Manifest]:
        return self.store.latest_for_project(project_id)

    def list_for_project(self, project_id: str, limit: Optional[int] = None) -> List[Manifest]:
        return self.store.list_for_project(project_id, limit)

    # Run

    def _run(
        self,
        options: GenerateOptions,
        settings: PipelineSettings,
        source: ContentSource,
        commit_hash: Optional[str],
    ) -> Manifest:
        started = time.monotonic()
        now = _utc_now()
        manifest = Manifest(
            id=uuid.uuid4().hex,
            root_directory=self._describe_root(options, settings, source),
            project_id=options.project_id,
            commit_hash=commit_hash,
            status=STATUS_GENERATING,
            content_source=options.content_source,
            created_at=now,
            updated_at=now,
        )
        self.store.save(manifest)
        self.logger.info("Starting manifest run %s for %s", manifest.id, manifest.root_directory)

        try:
            self._execute_phases(manifest, options, settings, source)
        except Exception as exc:
            manifest.status = STATUS_FAILED
            manifest.error_message = str(exc) or exc.__class__.__name__
            manifest.generation_duration_ms = _elapsed_ms(started)
            manifest.updated_at = _utc_now()
            self.logger.error("Manifest run %s failed: %s", manifest.id, manifest.error_message)
            self._record_failure(manifest)
            raise

        manifest.status = STATUS_COMPLETE
        manifest.generation_duration_ms = _elapsed_ms(started)
        manifest.updated_at = _utc_now()
        self.store.save(manifest)
        self.store.persist()
        self._emit(manifest.id, PHASE_COMPLETE)
        self.logger.info(
            "Manifest run %s complete in %d ms", manifest.id, manifest.generation_duration_ms
        )
        return manifest

    def _record_failure(self, manifest: Manifest) -> None:
        # The phase error is what callers see; store errors are only logged.
        try:
            self.store.save(manifest)
            self.store.persist()
        except Exception as exc:
            self.logger.warning("Could not record failed manifest %s: %s", manifest.id, exc)

    def _execute_phases(
        self,
        manifest: Manifest,
        options: GenerateOptions,
        settings: PipelineSettings,
        source: ContentSource,
    ) -> None:
        limits = settings.limits

        self.logger.info("Phase %s: classifying repository", PHASE_STRUCTURE)
        result = classify("", source, settings.structure)
        repo_structure = result.repo_structure
        identity = asdict(result.identity)
        identity["commit_hash"] = manifest.commit_hash
        identity["repository_url"] = self._repository_url(options, settings, source)
        manifest.identity = identity
        manifest.structure = asdict(result.structure)
        manifest.repo_structure_snapshot = asdict(repo_structure)
        manifest.coverage_data_snapshot = asdict(result.coverage_data) if result.coverage_data else None
        self._emit(manifest.id, PHASE_STRUCTURE)

        self.logger.info("Phase %s: scanning tests and extracting evidence", PHASE_EVIDENCE)
        scan = scan_tests(
            source,
            repo_structure.test_files,
            lookback=settings.annotation_lookback,
            max_tests=limits.max_tests,
        )
        raw_evidence = collect_evidence(source, repo_structure, repo_structure.detected_frameworks, limits)
        aggregated = aggregate(
            scan.orphan_tests,
            raw_evidence,
            result.coverage_data,
            limits,
            linked_count=scan.linked_count,
        )
        manifest.evidence_inventory = aggregated.inventory
        manifest.orphan_tests_snapshot = [asdict(test) for test in scan.orphan_tests]
        manifest.evidence_items_snapshot = [item.to_dict() for item in aggregated.evidence_items]
        self.logger.debug(
            "Collected %d evidence items, %d orphan tests, %d linked tests",
            len(aggregated.evidence_items),
            len(scan.orphan_tests),
            scan.linked_count,
        )
        self._emit(manifest.id, PHASE_EVIDENCE)

        self.logger.info("Phase %s: scoring test quality", PHASE_TEST_QUALITY)
        quality = score_tests(scan.orphan_tests)
        manifest.test_quality_snapshot = asdict(quality)
        self._emit(manifest.id, PHASE_TEST_QUALITY)

        self.logger.info("Phase %s: aggregating domain context", PHASE_DOMAIN)
        documentation_index = build_documentation_index(source, settings.doc_index_chunks)
        context = build_context_snapshot(
            scan.orphan_tests,
            aggregated.evidence_items,
            quality.scores,
            documentation_index,
        )
        package_info = repo_structure.package_info
        manifest.context_snapshot = context
        manifest.domain_model = build_domain_model(aggregated.evidence_items)
        manifest.domain_concepts = aggregate_concepts(context["evidence_analysis"])
        manifest.health_signals = build_health_signals(
            quality.health,
            result.coverage_data,
            package_info.dependency_count if package_info else 0,
        )
        self._emit(manifest.id, PHASE_DOMAIN)

    # Collaborators

    def _resolve_settings(self, options: GenerateOptions) -> PipelineSettings:
        if self._settings is not None:
            return self._settings
        return load_config(Path(options.root_directory)).settings

    def _open_source(self, options: GenerateOptions, settings: PipelineSettings) -> ContentSource:
        if self._source_factory is not None:
            return self._source_factory(options, settings)
        if options.content_source == SOURCE_MIRROR:
            return GitMirrorContentSource.create(
                self._mirror_url(options, settings) or "",
                branch=options.branch or settings.mirror.branch,
                token=settings.mirror.token,
                runner=self._runner,
            )
        if options.content_source == SOURCE_FILESYSTEM:
            return FilesystemContentSource(Path(options.root_directory).expanduser(), runner=self._runner)
        raise ConfigError(f"Unknown content source: {options.content_source}")

    @staticmethod
    def _mirror_url(options: GenerateOptions, settings: PipelineSettings) -> Optional[str]:
        return options.repository_url or settings.mirror.url

    def _repository_url(
        self, options: GenerateOptions, settings: PipelineSettings, source: ContentSource
    ) -> Optional[str]:
        url = getattr(source, "repository_url", None) or options.repository_url
        if url is None and options.content_source == SOURCE_MIRROR:
            url = settings.mirror.url
        return scrub_credentials(url, settings.mirror.token) if url else None

    def _describe_root(
        self, options: GenerateOptions, settings: PipelineSettings, source: ContentSource
    ) -> str:
        if options.content_source == SOURCE_MIRROR:
            return self._repository_url(options, settings, source) or source.root
        return source.root

    def _emit(self, run_id: str, phase: str) -> None:
        if self._listener is None:
            return
        try:
            self._listener(run_id, phase, PHASE_PROGRESS[phase])
        except Exception as exc:
            self.logger.warning("Progress listener failed during %s: %s", phase, exc)

    def _cleanup(self, source: ContentSource) -> None:
        try:
            source.cleanup()
        except Exception as exc:
            self.logger.warning("Content source cleanup failed: %s", exc)


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def manifest_summary(manifest: Manifest) -> Dict[str, Any]:
    """Compact view used by listings."""
    inventory = manifest.evidence_inventory or {}
    return {
        "id": manifest.id,
        "project_id": manifest.project_id,
        "commit_hash": manifest.commit_hash,
        "status": manifest.status,
        "created_at": manifest.created_at,
        "evidence_total": inventory.get("summary", {}).get("total", 0),
        "generation_duration_ms": manifest.generation_duration_ms,
    }


__all__ = [
    "GenerateOptions",
    "ManifestPipeline",
    "PHASE_PROGRESS",
    "ProgressListener",
    "manifest_summary",
]
