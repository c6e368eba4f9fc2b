"""Tests for repomanifest.orchestrator."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

from repomanifest.config import PipelineSettings
from repomanifest.content import FilesystemContentSource
from repomanifest.errors import ConfigError, ContentSourceError
from repomanifest.orchestrator import GenerateOptions, ManifestPipeline
from repomanifest.stores import InMemoryManifestStore
from tests._fixtures.fake_git import FakeGit
from tests._fixtures.repo_builder import RepoBuilder

THREE_FILE_REPO = {
    "a.ts": """
        /**
         * Creates an order from the current cart.
         */
        export function createOrder() {}
    """,
    "a.spec.ts": """
        // @atom IA-001

        it('creates an order', () => {
          expect(createOrder()).toBeUndefined();
        });
    """,
    "README.md": "## Usage\n\n" + ("Call createOrder with a cart to place an order for checkout. " * 2),
}


class RecordingSource(FilesystemContentSource):
    """Filesystem source that counts walks and cleanups and can be made to fail."""

    def __init__(
        self,
        root: Path,
        *,
        commit: Optional[str] = "c1",
        fail_walk: bool = False,
        fail_cleanup: bool = False,
    ) -> None:
        def runner(args, *, cwd):  # type: ignore[no-untyped-def]
            if commit is None:
                raise FileNotFoundError("git")
            return f"{commit}\n"

        super().__init__(root, runner=runner)
        self.walks = 0
        self.cleanups = 0
        self.fail_walk = fail_walk
        self.fail_cleanup = fail_cleanup

    def walk_directory(self, root: str = "", **kwargs) -> List[str]:  # type: ignore[no-untyped-def,override]
        self.walks += 1
        if self.fail_walk:
            raise ContentSourceError("walk failed")
        return super().walk_directory(root, **kwargs)

    def cleanup(self) -> None:
        self.cleanups += 1
        if self.fail_cleanup:
            raise OSError("checkout busy")


class EventRecorder:
    def __init__(self) -> None:
        self.events: List[Tuple[str, str, int]] = []

    def __call__(self, run_id: str, phase: str, percent: int) -> None:
        self.events.append((run_id, phase, percent))


def _pipeline(
    source: RecordingSource,
    *,
    store: InMemoryManifestStore | None = None,
    listener=None,  # type: ignore[no-untyped-def]
) -> ManifestPipeline:
    return ManifestPipeline(
        store or InMemoryManifestStore(),
        settings=PipelineSettings(),
        listener=listener,
        source_factory=lambda options, settings: source,
    )


def _options(repo: RepoBuilder, **overrides) -> GenerateOptions:  # type: ignore[no-untyped-def]
    values = {"project_id": "shop", "root_directory": str(repo.path())}
    values.update(overrides)
    return GenerateOptions(**values)


def _names(items: Sequence[dict]) -> List[str]:  # type: ignore[type-arg]
    return [item["name"] for item in items]


def test_generate_records_complete_manifest(repo_builder: RepoBuilder) -> None:
    repo_builder.write(THREE_FILE_REPO)
    source = RecordingSource(repo_builder.path())
    recorder = EventRecorder()
    pipeline = _pipeline(source, listener=recorder)

    manifest = pipeline.generate(_options(repo_builder))

    assert manifest.status == "complete"
    assert manifest.commit_hash == "c1"
    assert manifest.project_id == "shop"
    assert manifest.error_message is None
    assert manifest.generation_duration_ms is not None
    assert manifest.created_at.endswith("Z")
    assert manifest.identity["commit_hash"] == "c1"
    assert manifest.identity["languages"] == ["TypeScript"]
    assert manifest.structure["total_files"] == 3
    assert manifest.evidence_inventory["summary"]["total"] == 2
    assert manifest.evidence_inventory["tests"] == {"count": 1, "orphan_count": 0, "linked_count": 1}
    assert manifest.orphan_tests_snapshot == []
    assert [item["type"] for item in manifest.evidence_items_snapshot or []] == [
        "source_export",
        "documentation",
    ]
    assert manifest.test_quality_snapshot == {"scores": {}, "health": None}
    assert manifest.health_signals["dependency_count"] == 0
    assert manifest.context_snapshot is not None
    assert manifest.domain_model["entities"] == []
    assert pipeline.get_manifest(manifest.id) is manifest
    assert source.cleanups == 1

    assert [(phase, percent) for _, phase, percent in recorder.events] == [
        ("structure", 10),
        ("evidence", 30),
        ("test_quality", 55),
        ("domain", 70),
        ("complete", 100),
    ]
    assert {run_id for run_id, _, _ in recorder.events} == {manifest.id}


def test_generate_is_idempotent_per_project_and_commit(repo_builder: RepoBuilder) -> None:
    repo_builder.write(THREE_FILE_REPO)
    source = RecordingSource(repo_builder.path())
    recorder = EventRecorder()
    pipeline = _pipeline(source, listener=recorder)

    first = pipeline.generate(_options(repo_builder))
    walks = source.walks
    second = pipeline.generate(_options(repo_builder))

    assert second.id == first.id
    assert source.walks == walks
    assert len(recorder.events) == 5
    assert source.cleanups == 2
    assert len(pipeline.list_for_project("shop")) == 1


def test_force_regenerates(repo_builder: RepoBuilder) -> None:
    repo_builder.write(THREE_FILE_REPO)
    pipeline = _pipeline(RecordingSource(repo_builder.path()))

    first = pipeline.generate(_options(repo_builder))
    second = pipeline.generate(_options(repo_builder, force=True))

    assert second.id != first.id
    latest = pipeline.latest_for_project("shop")
    assert latest is not None
    assert {item.id for item in pipeline.list_for_project("shop")} == {first.id, second.id}


@pytest.mark.parametrize(("project_id", "commit"), [(None, "c1"), ("shop", None)])
def test_dedup_requires_project_and_commit(
    repo_builder: RepoBuilder, project_id: Optional[str], commit: Optional[str]
) -> None:
    repo_builder.write(THREE_FILE_REPO)
    pipeline = _pipeline(RecordingSource(repo_builder.path(), commit=commit))

    first = pipeline.generate(_options(repo_builder, project_id=project_id))
    second = pipeline.generate(_options(repo_builder, project_id=project_id))

    assert first.id != second.id
    assert second.commit_hash == commit


def test_phase_failure_records_failed_manifest(repo_builder: RepoBuilder) -> None:
    store = InMemoryManifestStore()
    source = RecordingSource(repo_builder.path(), fail_walk=True)
    recorder = EventRecorder()
    pipeline = _pipeline(source, store=store, listener=recorder)

    with pytest.raises(ContentSourceError, match="walk failed"):
        pipeline.generate(_options(repo_builder))

    (failed,) = store.all()
    assert failed.status == "failed"
    assert failed.error_message == "walk failed"
    assert failed.generation_duration_ms is not None
    assert source.cleanups == 1
    assert recorder.events == []
    assert store.find_complete("shop", "c1") is None


def test_failed_run_does_not_satisfy_dedup(repo_builder: RepoBuilder) -> None:
    repo_builder.write(THREE_FILE_REPO)
    store = InMemoryManifestStore()
    with pytest.raises(ContentSourceError):
        _pipeline(RecordingSource(repo_builder.path(), fail_walk=True), store=store).generate(
            _options(repo_builder)
        )

    manifest = _pipeline(RecordingSource(repo_builder.path()), store=store).generate(_options(repo_builder))

    assert manifest.status == "complete"
    assert len(store.all()) == 2


def test_cleanup_errors_do_not_fail_the_run(repo_builder: RepoBuilder) -> None:
    repo_builder.write(THREE_FILE_REPO)
    source = RecordingSource(repo_builder.path(), fail_cleanup=True)

    manifest = _pipeline(source).generate(_options(repo_builder))

    assert manifest.status == "complete"
    assert source.cleanups == 1


def test_listener_errors_are_ignored(repo_builder: RepoBuilder) -> None:
    repo_builder.write(THREE_FILE_REPO)
    calls: List[str] = []

    def listener(run_id: str, phase: str, percent: int) -> None:
        calls.append(phase)
        raise RuntimeError("notifier down")

    manifest = _pipeline(RecordingSource(repo_builder.path()), listener=listener).generate(
        _options(repo_builder)
    )

    assert manifest.status == "complete"
    assert calls == ["structure", "evidence", "test_quality", "domain", "complete"]


def test_mirror_without_url_fails_before_any_work(repo_builder: RepoBuilder) -> None:
    store = InMemoryManifestStore()
    opened: List[GenerateOptions] = []

    def factory(options, settings):  # type: ignore[no-untyped-def]
        opened.append(options)
        raise AssertionError("source must not be opened")

    pipeline = ManifestPipeline(store, settings=PipelineSettings(), source_factory=factory)

    with pytest.raises(ConfigError):
        pipeline.generate(GenerateOptions(project_id="shop", content_source="mirror"))

    assert opened == []
    assert store.all() == []


def test_mirror_run_clones_and_cleans_up(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    git = FakeGit(head="deadbeef", files={"src/app.ts": "export function bootstrapApp() {}\n"})
    settings = PipelineSettings()
    settings.mirror.token = "tok"
    pipeline = ManifestPipeline(InMemoryManifestStore(), settings=settings, runner=git)

    manifest = pipeline.generate(
        GenerateOptions(
            project_id="shop",
            content_source="mirror",
            repository_url="https://example.com/acme/shop.git",
            branch="release",
        )
    )

    assert manifest.status == "complete"
    assert manifest.content_source == "mirror"
    assert manifest.commit_hash == "deadbeef"
    assert manifest.root_directory == "https://example.com/acme/shop.git"
    assert manifest.identity["repository_url"] == "https://example.com/acme/shop.git"
    assert manifest.evidence_inventory["source_exports"]["count"] == 1
    assert git.calls[0][5] == "release"
    assert list(tmp_path.iterdir()) == []


def test_domain_phase_populates_concepts(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/orders.ts": "export class OrderService {}\nexport interface OrderPayment { id: string }\n",
            "src/orders.spec.ts": "it('creates order payment', () => {\n  expect(total(0)).toBe(0);\n});\n",
        }
    )

    manifest = _pipeline(RecordingSource(repo_builder.path())).generate(_options(repo_builder))

    assert _names(manifest.domain_model["entities"]) == ["OrderService", "OrderPayment"]
    assert "order" in _names(manifest.domain_concepts["concepts"])
    orphans = manifest.orphan_tests_snapshot or []
    assert [orphan["related_source_files"] for orphan in orphans] == [["src/orders.ts"]]
    assert manifest.test_quality_snapshot is not None
    assert list(manifest.test_quality_snapshot["scores"]) == ["src/orders.spec.ts:creates order payment"]
    assert manifest.health_signals["test_quality"] is not None


class UnwritableStore(InMemoryManifestStore):
    def persist(self) -> None:
        raise OSError("disk full")


def test_store_errors_do_not_mask_phase_failure(repo_builder: RepoBuilder) -> None:
    store = UnwritableStore()
    source = RecordingSource(repo_builder.path(), fail_walk=True)

    with pytest.raises(ContentSourceError, match="walk failed"):
        _pipeline(source, store=store).generate(_options(repo_builder))

    (failed,) = store.all()
    assert failed.status == "failed"
    assert source.cleanups == 1
