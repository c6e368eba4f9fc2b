"""CLI entrypoints for repomanifest commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import load_config
from .errors import RepoManifestError
from .logging import configure_logging, get_logger
from .models import SOURCE_FILESYSTEM, SOURCE_MIRROR
from .orchestrator import GenerateOptions, ManifestPipeline, manifest_summary
from .report import FORMAT_JSON, OUTPUT_FORMATS, render
from .stores import JsonManifestStore

DEFAULT_STORE_PATH = Path(".repomanifest") / "manifests.json"


def _add_flag(
    parser: argparse.ArgumentParser,
    flags: tuple[str, ...],
    help_text: str,
    *,
    suppress_default: bool = False,
) -> None:
    # Subparsers suppress the default so a flag given before the command survives.
    parser.add_argument(
        *flags,
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help=help_text,
    )


def _add_logging_options(parser: argparse.ArgumentParser, *, suppress_default: bool = False) -> None:
    _add_flag(
        parser,
        ("-v", "--verbose"),
        "Increase log verbosity for troubleshooting.",
        suppress_default=suppress_default,
    )
    _add_flag(parser, ("-q", "--quiet"), "Only log warnings and errors.", suppress_default=suppress_default)


def _add_store_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help=f"Manifest store file (defaults to {DEFAULT_STORE_PATH} in the working directory).",
    )


def _add_format_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=FORMAT_JSON,
        help="Output format for the manifest.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repomanifest",
        description="Build deterministic evidence manifests from repository content.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Analyze a repository and record a manifest.",
    )
    _add_logging_options(generate_parser, suppress_default=True)
    generate_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    generate_parser.add_argument("--project-id", default=None, help="Project identifier used for dedup.")
    generate_parser.add_argument(
        "--mirror-url",
        default=None,
        help="Clone this repository URL instead of reading the local path.",
    )
    generate_parser.add_argument("--branch", default=None, help="Branch to clone for mirror runs.")
    generate_parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate even when a complete manifest exists for the commit.",
    )
    generate_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Explicit .repomanifest.yml path (defaults to the repository root).",
    )
    _add_store_option(generate_parser)
    _add_format_option(generate_parser)

    show_parser = subparsers.add_parser("show", help="Print a stored manifest.")
    _add_logging_options(show_parser, suppress_default=True)
    show_parser.add_argument("manifest_id", help="Identifier of the manifest to print.")
    _add_store_option(show_parser)
    _add_format_option(show_parser)

    list_parser = subparsers.add_parser("list", help="List stored manifests for a project.")
    _add_logging_options(list_parser, suppress_default=True)
    list_parser.add_argument("project_id", help="Project identifier.")
    list_parser.add_argument("--limit", type=int, default=None, help="Maximum manifests to list.")
    _add_store_option(list_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repomanifest commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet))

    if args.command == "generate":
        _run_generate(parser, args)
    elif args.command == "show":
        store = JsonManifestStore(args.store or DEFAULT_STORE_PATH)
        manifest = store.get(args.manifest_id)
        if manifest is None:
            parser.exit(1, f"Manifest {args.manifest_id} not found in {store.path}\n")
        print(render(manifest, args.format))
    elif args.command == "list":
        store = JsonManifestStore(args.store or DEFAULT_STORE_PATH)
        manifests = store.list_for_project(args.project_id, args.limit)
        print(json.dumps([manifest_summary(manifest) for manifest in manifests], indent=2))
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_generate(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    repo_path = Path(args.path).expanduser()
    try:
        config = load_config(args.config or repo_path)
    except RepoManifestError as exc:
        parser.exit(1, f"{exc}\n")

    settings = config.settings
    # The analyzed repository is never written to; the store lives with the caller.
    store = JsonManifestStore(args.store or settings.store_path or DEFAULT_STORE_PATH)
    pipeline = ManifestPipeline(store, settings=settings, listener=_log_progress)
    options = GenerateOptions(
        project_id=args.project_id,
        root_directory=str(repo_path),
        content_source=SOURCE_MIRROR if args.mirror_url else SOURCE_FILESYSTEM,
        force=bool(args.force),
        repository_url=args.mirror_url,
        branch=args.branch,
    )
    try:
        manifest = pipeline.generate(options)
    except Exception as exc:
        get_logger("cli").debug("Manifest generation failed", exc_info=True)
        parser.exit(1, f"repomanifest generate failed: {exc}\nRun with --verbose for more details.\n")
    print(render(manifest, args.format))


def _log_progress(run_id: str, phase: str, percent: int) -> None:
    get_logger("cli").debug("Run %s: %s (%d%%)", run_id, phase, percent)


if __name__ == "__main__":
    main(sys.argv[1:])
