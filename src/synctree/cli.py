"""Command-line entry point for synctree.

Subcommands:

- ``status`` -- synchronize view: classify paths against a remote revision.
- ``diff`` -- two-way diff tree between two revisions.
- ``merge`` -- conflict-aware tree of an in-progress merge.
- ``init`` -- write a starter ``.synctree/config.yml``.

Exit status is 0 on success, 1 on errors and 130 on cancellation.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import yaml
from dotenv import load_dotenv

from . import __version__
from .compare import (
    DiffKind,
    DiffTreeBuilder,
    MergeTreeBuilder,
    diff_tree_to_json,
    format_diff_tree,
    node_patch,
    preview_merge,
)
from .config import Settings, load_settings
from .config_loader import ensure_config, load_hierarchical_config
from .config_schema import SyncProfileConfig, UnifiedConfig, build_config
from .core import GitSnapshotStore, resolve_scope
from .errors import Cancelled, SyncTreeError
from .logger import setup_logging
from .sync import SyncEngine, format_sync_report, report_to_json

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="synctree",
        description="synctree - compare git snapshots and classify sync status",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # What differs between the working tree, HEAD and origin/main under src/
  synctree status src --remote origin/main

  # Use a named profile from .synctree/config.yml
  synctree status --profile upstream

  # Diff tree of the working tree against the last release
  synctree diff v1.2.0 WORKTREE

  # Conflicts of an in-progress merge, with merged previews
  synctree merge --preview

Revisions are branch, tag or remote-tracking names, HEAD, full or
abbreviated commit ids, WORKTREE and INDEX. Suffixes such as ~1 or ^
are not supported.
        """,
    )
    parser.add_argument(
        "--repo",
        help="Repository root (takes precedence over SYNCTREE_REPO and config files)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--log-file", help="Also write log records to this file"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"synctree version {__version__}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    status = commands.add_parser("status", help="Classify sync status of paths")
    status.add_argument("paths", nargs="*", help="Limit to these paths")
    status.add_argument("--profile", help="Named sync profile from config")
    status.add_argument("--remote", help="Revision to compare against")
    status.add_argument("--base", help="Base revision (default: HEAD)")
    status.add_argument(
        "--no-local",
        action="store_true",
        help="Ignore uncommitted working-tree changes",
    )
    status.add_argument(
        "--all", action="store_true", help="Also list in-sync paths (JSON)"
    )
    status.add_argument("--json", action="store_true", help="Emit JSON")

    diff = commands.add_parser("diff", help="Diff tree between two revisions")
    diff.add_argument("old", help="Old revision (shown on the right)")
    diff.add_argument("new", help="New revision (shown on the left)")
    diff.add_argument("paths", nargs="*", help="Limit to these paths")
    diff.add_argument(
        "--no-collapse",
        action="store_true",
        help="Keep single-child folder chains expanded",
    )
    diff.add_argument(
        "--patch", action="store_true", help="Print unified diffs of leaves"
    )
    diff.add_argument("--json", action="store_true", help="Emit JSON")

    merge = commands.add_parser("merge", help="Tree of an in-progress merge")
    merge.add_argument("paths", nargs="*", help="Limit to these paths")
    merge.add_argument(
        "--theirs", help="Other side of the merge (default: detected)"
    )
    merge.add_argument(
        "--use-worktree",
        action="store_true",
        help="Show working-tree content for conflicting paths",
    )
    merge.add_argument(
        "--no-collapse",
        action="store_true",
        help="Keep single-child folder chains expanded",
    )
    merge.add_argument(
        "--preview",
        action="store_true",
        help="Print a three-way merge preview of each conflict",
    )
    merge.add_argument("--json", action="store_true", help="Emit JSON")

    commands.add_parser("init", help="Create a starter config file")

    return parser


# ------------------------------------------------------------------
# Subcommand handlers
# ------------------------------------------------------------------


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2))


def _cmd_status(
    args: argparse.Namespace,
    store: GitSnapshotStore,
    settings: Settings,
    config: UnifiedConfig,
    paths: list[str],
) -> int:
    if args.profile:
        profile = config.sync.get(args.profile)
        if profile is None:
            print(f"Error: unknown sync profile '{args.profile}'", file=sys.stderr)
            return EXIT_ERROR
        updates: dict = {}
        if paths:
            updates["roots"] = paths
        if args.remote:
            updates["remote"] = args.remote
        if args.base:
            updates["base"] = args.base
        if args.no_local:
            updates["include_local"] = False
        profile = profile.model_copy(update=updates)
    else:
        remote = args.remote or settings.remote
        if not remote:
            print(
                "Error: no remote revision. Pass --remote, --profile, "
                "or set SYNCTREE_REMOTE.",
                file=sys.stderr,
            )
            return EXIT_ERROR
        profile = SyncProfileConfig(
            roots=paths,
            base=args.base or settings.base,
            remote=remote,
            include_local=not args.no_local,
            ignore=config.compare.ignore,
        )

    engine = SyncEngine(store, profile, profile_name=args.profile or "adhoc")
    report = engine.run()
    if args.json:
        _print_json(report_to_json(report, include_in_sync=args.all))
    else:
        print(format_sync_report(report))
    return EXIT_OK


def _cmd_diff(
    args: argparse.Namespace,
    store: GitSnapshotStore,
    settings: Settings,
    config: UnifiedConfig,
    paths: list[str],
) -> int:
    builder = DiffTreeBuilder(
        store,
        containers=config.compare.containers,
        collapse=config.compare.collapse and not args.no_collapse,
        ignore=config.compare.ignore,
    )
    root = builder.build(args.new, args.old, paths)
    if args.json:
        _print_json(diff_tree_to_json(root))
        return EXIT_OK

    print(format_diff_tree(root))
    if args.patch:
        for leaf in root.leaves():
            patch = node_patch(store, leaf)
            if patch:
                print()
                print(patch.rstrip())
    return EXIT_OK


def _cmd_merge(
    args: argparse.Namespace,
    store: GitSnapshotStore,
    settings: Settings,
    config: UnifiedConfig,
    paths: list[str],
) -> int:
    builder = MergeTreeBuilder(
        store,
        containers=config.compare.containers,
        collapse=config.compare.collapse and not args.no_collapse,
        use_worktree=args.use_worktree,
        ignore=config.compare.ignore,
    )
    root = builder.build(paths, theirs=args.theirs)
    if args.json:
        _print_json(diff_tree_to_json(root))
        return EXIT_OK

    print(format_diff_tree(root))
    if args.preview:
        for leaf in root.leaves():
            if leaf.kind != DiffKind.CONFLICT:
                continue
            merged, has_conflicts = preview_merge(store, leaf)
            status = "conflicts remain" if has_conflicts else "merges cleanly"
            print()
            print(f"--- {leaf.path}: {status} ---")
            print(merged.rstrip())
    return EXIT_OK


_HANDLERS = {
    "status": _cmd_status,
    "diff": _cmd_diff,
    "merge": _cmd_merge,
}


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the subcommand and return the exit status."""
    args = build_parser().parse_args(argv)
    load_dotenv()

    if args.command == "init":
        setup_logging(mode="cli", debug=args.debug, log_file=args.log_file)
        path = ensure_config()
        print(f"Config file: {path}")
        return EXIT_OK

    try:
        config = build_config(load_hierarchical_config())
        settings = load_settings(
            repository=args.repo,
            debug=args.debug,
            yaml_fallbacks=config.repository.model_dump(),
        )
    except (ValueError, OSError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(
        mode="cli",
        debug=settings.debug,
        log_file=args.log_file or config.logging.file,
        debug_format=args.log_format,
        level=config.logging.level,
    )

    try:
        with GitSnapshotStore(
            settings.repository, first_parent=settings.first_parent
        ) as store:
            paths: list[str] = []
            if args.paths:
                _, paths = resolve_scope(args.paths, settings.repository)
            return _HANDLERS[args.command](args, store, settings, config, paths)
    except (Cancelled, KeyboardInterrupt):
        print("\nCancelled.", file=sys.stderr)
        return EXIT_CANCELLED
    except SyncTreeError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
