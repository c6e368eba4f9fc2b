"""Tests for the structural classifier."""

from __future__ import annotations

import json

import pytest

from repomanifest.analyzers.structure import (
    build_directory_tree,
    classify,
    classify_path,
    count_by_extension,
    detect_entry_points,
    detect_test_patterns,
)
from repomanifest.config import DEFAULT_SOURCE_PATTERNS, DEFAULT_TEST_PATTERNS, StructureConfig
from tests._fixtures.repo_builder import RepoBuilder

TESTS = list(DEFAULT_TEST_PATTERNS)
SOURCES = list(DEFAULT_SOURCE_PATTERNS)


@pytest.mark.parametrize(
    ("path", "role"),
    [
        ("src/users/users.service.spec.ts", "test"),
        ("web/src/Button.test.tsx", "test"),
        ("tests/test_app.py", "test"),
        ("README.md", "doc"),
        ("docs/guide/setup.md", "doc"),
        ("package.json", "config"),
        ("pyproject.toml", "config"),
        ("web/src/App.tsx", "ui"),
        ("web/src/Counter.vue", "ui"),
        ("src/users/users.service.ts", "source"),
        ("app/main.py", "source"),
        ("assets/logo.png", None),
        ("web/package.json", None),
    ],
)
def test_classify_path_assigns_exactly_one_role(path: str, role: str | None) -> None:
    assert classify_path(path, TESTS, SOURCES) == role


def test_test_patterns_win_over_ui_and_source() -> None:
    # A .spec.tsx file matches test, UI and source patterns.
    assert classify_path("web/src/App.spec.tsx", TESTS, SOURCES + ["**/*.tsx"]) == "test"


def test_classify_buckets_repository(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "package.json": json.dumps(
                {
                    "name": "shop",
                    "description": "Storefront",
                    "dependencies": {"@nestjs/core": "10", "react": "18"},
                    "devDependencies": {"jest": "29"},
                }
            ),
            "src/main.ts": "export function bootstrap() {}\n",
            "src/orders/orders.service.ts": "export class OrdersService {}\n",
            "src/orders/orders.service.spec.ts": "describe('x', () => {});\n",
            "web/src/App.tsx": "export default function App() { return <div/>; }\n",
            "README.md": "# Shop\n",
            "node_modules/react/index.js": "module.exports = {};\n",
            "coverage/lcov.info": "SF:src/main.ts\nLF:4\nLH:4\nend_of_record\n",
        }
    )

    result = classify("", repo_builder.source(), StructureConfig())
    repo = result.repo_structure

    assert repo.source_files == ["src/main.ts", "src/orders/orders.service.ts"]
    assert repo.test_files == ["src/orders/orders.service.spec.ts"]
    assert repo.ui_files == ["web/src/App.tsx"]
    assert repo.doc_files == ["README.md"]
    assert repo.config_files == ["package.json"]
    assert not any(path.startswith("node_modules/") for path in repo.files)
    assert repo.detected_frameworks == ["react", "nestjs"]
    assert repo.package_info is not None
    assert repo.package_info.dependency_count == 3

    assert result.identity.name == "shop"
    assert result.identity.description == "Storefront"
    assert result.identity.languages == ["TypeScript"]
    assert result.structure.total_files == len(repo.files)
    assert result.structure.entry_points == ["src/main.ts"]
    assert result.structure.test_file_patterns == ["*.spec.ts"]
    assert result.coverage_data is not None
    assert result.coverage_data.coverage_percent == pytest.approx(100.0)


def test_classify_reads_python_manifests(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "pyproject.toml": """
                [project]
                name = "billing"
                dependencies = ["fastapi>=0.100", "pydantic"]
            """,
            "requirements.txt": "flask==3.0\n# comment\n",
            "billing/app.py": "app = 1\n",
            "tests/test_app.py": "def test_app():\n    assert True\n",
        }
    )

    result = classify("", repo_builder.source(), StructureConfig())

    assert result.repo_structure.detected_frameworks == ["fastapi", "flask"]
    assert result.identity.name == "billing"
    assert result.identity.languages == ["Python"]
    assert result.structure.test_file_patterns == ["test_*.py"]


def test_classify_skips_unparsable_package_json(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"package.json": "{not json", "src/a.ts": "export const a = 1;\n"})

    result = classify("", repo_builder.source(), StructureConfig())

    assert result.repo_structure.detected_frameworks == []
    assert result.repo_structure.package_info is None
    assert result.identity.name is None


def test_classify_honours_max_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write({f"src/f{index}.ts": "" for index in range(5)})

    result = classify("", repo_builder.source(), StructureConfig(max_files=3))

    assert result.structure.total_files == 3


def test_build_directory_tree_orders_by_count() -> None:
    tree = build_directory_tree(
        ["a/x.ts", "b/y.ts", "b/z.ts", "b/c/d/e/f.ts", "root.ts"],
        max_depth=3,
    )

    assert [node.name for node in tree] == ["b", "a"]
    b_node = tree[0]
    assert b_node.count == 3
    assert b_node.children[0].name == "c"
    assert b_node.children[0].children[0].name == "d"
    assert b_node.children[0].children[0].children == []


def test_build_directory_tree_keeps_discovery_order_on_ties() -> None:
    tree = build_directory_tree(
        ["z/a.ts", "a/b.ts", "m/c.ts", "q/y/1.ts", "q/x/2.ts", "q/b/3.ts", "q/b/4.ts"],
        max_depth=3,
    )

    assert [(node.name, node.count) for node in tree] == [("q", 4), ("z", 1), ("a", 1), ("m", 1)]
    assert [(node.name, node.count) for node in tree[0].children] == [("b", 2), ("y", 1), ("x", 1)]


def test_classify_skips_default_excluded_directories(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/app.ts": "export const app = 1;\n",
            "vendor/lib.ts": "export const lib = 1;\n",
            ".nuxt/client.js": "export const client = 1;\n",
        }
    )

    result = classify("", repo_builder.source(), StructureConfig())

    assert result.repo_structure.files == ["src/app.ts"]
    assert result.structure.total_files == 1


def test_extension_counts_and_entry_points() -> None:
    paths = ["Makefile", "src/index.ts", "src/util.ts", "pkg/__main__.py", "manage.py"]

    assert count_by_extension(paths) == {"(none)": 1, ".ts": 2, ".py": 2}
    assert detect_entry_points(paths) == ["src/index.ts", "pkg/__main__.py", "manage.py"]


def test_detect_test_patterns_prefers_longest_suffix() -> None:
    assert detect_test_patterns(["e2e/app.e2e-spec.ts", "a.spec.ts", "b.spec.ts"]) == [
        "*.e2e-spec.ts",
        "*.spec.ts",
    ]
