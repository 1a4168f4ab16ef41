# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from lingx.adapters.remote import LingxApiClient
from lingx.api.schemas import (
    CreateBranchRequest,
    CreateSpaceRequest,
    KeyResolutionModel,
    MergeRequest,
)
from lingx.app import (
    api_client,
    diff_project,
    pull_project,
    push_project,
    serve,
    sync_project,
)
from lingx.config import (
    ApiConfig,
    ConfigurationError,
    ServerConfig,
    configure_logging,
    load_project_config,
    resolve_log_level,
)
from lingx.config.errors import MissingConfigurationError
from lingx.domain.errors import LingxError, ResolutionCancelled, UnresolvedConflictError
from lingx.domain.model import to_user_key
from lingx.domain.reconciliation import (
    AddedEntry,
    DiffResult,
    RemovedEntry,
    ResolutionMode,
    build_policy,
)
from lingx.ui.prompt import TerminalConflictPrompt, preview

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from lingx.api.schemas import BranchDiffResponse
    from lingx.config import ProjectConfig
    from lingx.domain.ports.prompting import ConflictPrompt
    from lingx.domain.reconciliation import MergeSummary
    from lingx.domain.sync import SyncReport

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_UNRESOLVED = 3
EXIT_CANCELLED = 130


def _add_resolution_flags(parser: argparse.ArgumentParser, *, winner: str) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--force",
        action="store_true",
        help=f"Resolve every conflict in favour of the {winner}",
    )
    group.add_argument(
        "--interactive",
        action="store_true",
        help="Ask which side wins for each conflict",
    )


def _add_languages_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--languages",
        type=_parse_languages,
        help="Comma-separated language codes to limit the operation to",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="lingx", description="Manage translation catalogs")
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to lingx.toml (default: nearest one above the working directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", type=str, help="Interface to bind (default: LINGX_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default: LINGX_PORT)")
    serve_parser.add_argument("--database-uri", type=str, help="Override DATABASE_URI")

    space = subparsers.add_parser("space", help="Space management commands")
    space_sub = space.add_subparsers(dest="space_command", required=True)
    space_create = space_sub.add_parser("create", help="Create a space with a main branch")
    space_create.add_argument("name", type=str, help="Display name of the space")
    space_create.add_argument("--project", type=str, help="Project slug (default: lingx.toml)")
    space_create.add_argument("--slug", type=str, help="Space slug (default: from the name)")

    branch = subparsers.add_parser("branch", help="Branch commands for the configured space")
    branch_sub = branch.add_subparsers(dest="branch_command", required=True)
    branch_create = branch_sub.add_parser("create", help="Create a branch as a copy of another")
    branch_create.add_argument("name", type=str, help="Name of the new branch")
    branch_create.add_argument(
        "--from",
        dest="from_branch",
        type=str,
        help="Branch to copy (default: the space's main branch)",
    )
    branch_diff = branch_sub.add_parser("diff", help="Show differences between two branches")
    branch_diff.add_argument("source", type=str)
    branch_diff.add_argument("target", type=str)
    branch_merge = branch_sub.add_parser("merge", help="Merge SOURCE into TARGET")
    branch_merge.add_argument("source", type=str)
    branch_merge.add_argument("target", type=str)
    _add_resolution_flags(branch_merge, winner="source branch")
    branch_merge.add_argument(
        "--delete",
        action="store_true",
        help="Delete keys that only exist in the target branch",
    )

    for name, help_text in (
        ("push", "Upload local translation files to the remote branch"),
        ("sync", "Push local changes, then pull what only the remote has"),
    ):
        command = subparsers.add_parser(name, help=help_text)
        _add_resolution_flags(command, winner="local files")
        command.add_argument(
            "--delete",
            action="store_true",
            help="Delete remote keys that are missing locally",
        )
        _add_languages_flag(command)
        command.add_argument("--dry-run", action="store_true", help="Show the plan, write nothing")

    pull = subparsers.add_parser("pull", help="Download the remote branch into local files")
    _add_resolution_flags(pull, winner="remote branch")
    _add_languages_flag(pull)
    pull.add_argument("--dry-run", action="store_true", help="Show the plan, write nothing")

    diff = subparsers.add_parser("diff", help="Compare local files with the remote branch")
    _add_languages_flag(diff)

    return parser.parse_args(list(argv))


def _parse_languages(value: str) -> tuple[str, ...]:
    languages = tuple(part.strip() for part in value.split(",") if part.strip())
    if not languages:
        raise argparse.ArgumentTypeError("expected at least one language code")
    return languages


def _resolution_mode(args: argparse.Namespace) -> ResolutionMode:
    if args.force:
        return ResolutionMode.FORCE_SOURCE
    if args.interactive:
        return ResolutionMode.INTERACTIVE
    return ResolutionMode.EXPLICIT


def _prompt_for(
    args: argparse.Namespace,
    *,
    source_label: str,
    target_label: str,
) -> ConflictPrompt | None:
    if not args.interactive:
        return None
    return TerminalConflictPrompt(source_label=source_label, target_label=target_label)


def _print_diff(diff: DiffResult) -> None:
    for added in diff.added_only_source:
        print(f"+ [{added.language}] {to_user_key(added.key)}: {preview(added.value)}")
    for removed in diff.removed_only_target:
        print(f"- [{removed.language}] {to_user_key(removed.key)}: {preview(removed.value)}")
    for conflict in diff.changed_both_present:
        print(
            f"~ [{conflict.language}] {to_user_key(conflict.key)}: "
            f"{preview(conflict.target_value)} -> {preview(conflict.source_value)}"
        )
    print(
        f"{len(diff.added_only_source)} added, {len(diff.removed_only_target)} removed, "
        f"{len(diff.changed_both_present)} changed, {diff.unchanged} unchanged"
    )


def _diff_from_response(response: BranchDiffResponse) -> DiffResult:
    return DiffResult(
        added_only_source=tuple(
            AddedEntry(language=e.language, key=e.key, value=e.value) for e in response.added
        ),
        removed_only_target=tuple(
            RemovedEntry(language=e.language, key=e.key, value=e.value) for e in response.removed
        ),
        changed_both_present=tuple(entry.to_conflict() for entry in response.changed),
    )


def _print_summary(title: str, status: str, summary: MergeSummary) -> None:
    print(f"{title}: {status}")
    for language, counts in summary.languages.items():
        print(
            f"  {language}: {counts.added} added, {counts.updated} updated, "
            f"{counts.skipped} skipped, {counts.deleted} deleted"
        )


def _print_report(report: SyncReport) -> int:
    _print_summary(report.direction.value.capitalize(), report.status.value, report.summary)
    if report.cancelled:
        return EXIT_CANCELLED
    return EXIT_OK


def _print_unresolved(error: UnresolvedConflictError) -> None:
    print(f"{len(error.conflicts)} unresolved conflict(s):", file=sys.stderr)
    for conflict in error.conflicts:
        print(f"  [{conflict.language}] {to_user_key(conflict.key)}", file=sys.stderr)
    print("Re-run with --force or --interactive to resolve them.", file=sys.stderr)


def _load_config(args: argparse.Namespace) -> ProjectConfig:
    return load_project_config(args.config)


def _run_serve(args: argparse.Namespace) -> int:
    defaults = ServerConfig.from_environment()
    config = ServerConfig(host=args.host or defaults.host, port=args.port or defaults.port)
    serve(config, database_uri=args.database_uri)
    return EXIT_OK


def _run_space(args: argparse.Namespace) -> int:
    try:
        project_config = _load_config(args)
        project = args.project or project_config.project
        client = api_client(project_config)
    except MissingConfigurationError:
        if not args.project:
            raise
        project = args.project
        client = LingxApiClient(config=ApiConfig.from_environment())

    detail = client.create_space(project, CreateSpaceRequest(name=args.name, slug=args.slug))
    print(f"Created space {project}/{detail.slug} ({detail.id})")
    for branch in detail.branches:
        print(f"  branch {branch.name} ({branch.id})")
    return EXIT_OK


def _run_branch(args: argparse.Namespace) -> int:
    config = _load_config(args)
    client = api_client(config)
    handlers: dict[str, Callable[[argparse.Namespace, ProjectConfig, LingxApiClient], int]] = {
        "create": _branch_create,
        "diff": _branch_diff,
        "merge": _branch_merge,
    }
    return handlers[args.branch_command](args, config, client)


def _branch_create(
    args: argparse.Namespace,
    config: ProjectConfig,
    client: LingxApiClient,
) -> int:
    space = client.resolve_space(config.project, config.space)
    source_id = None
    if args.from_branch:
        source_id = client.resolve_branch(config.project, config.space, args.from_branch).id
    created = client.create_branch(
        space.id,
        CreateBranchRequest(name=args.name, from_branch_id=source_id),
    )
    print(f"Created branch {created.name} ({created.id})")
    return EXIT_OK


def _branch_diff(
    args: argparse.Namespace,
    config: ProjectConfig,
    client: LingxApiClient,
) -> int:
    source = client.resolve_branch(config.project, config.space, args.source)
    target = client.resolve_branch(config.project, config.space, args.target)
    _print_diff(_diff_from_response(client.diff(source.id, target.id)))
    return EXIT_OK


def _branch_merge(
    args: argparse.Namespace,
    config: ProjectConfig,
    client: LingxApiClient,
) -> int:
    source = client.resolve_branch(config.project, config.space, args.source)
    target = client.resolve_branch(config.project, config.space, args.target)
    diff = _diff_from_response(client.diff(source.id, target.id))

    policy = build_policy(
        _resolution_mode(args),
        prompt=_prompt_for(args, source_label=source.name, target_label=target.name),
        resolutions=(),
    )
    outcome = policy(diff.conflicts)
    if outcome.cancelled:
        print("Merge cancelled; nothing written")
        return EXIT_CANCELLED
    if outcome.rejected:
        raise UnresolvedConflictError(outcome.rejected)

    response = client.merge(
        source.id,
        MergeRequest(
            target_branch_id=target.id,
            resolutions=[
                KeyResolutionModel(key=r.key, resolution=r.winner, language=r.language)
                for r in outcome.accepted
            ],
            delete_unmatched=args.delete,
        ),
    )
    print(f"Merge {source.name} -> {target.name}: {response.status}")
    for language, counts in response.languages.items():
        print(
            f"  {language}: {counts.added} added, {counts.updated} updated, "
            f"{counts.skipped} skipped, {counts.deleted} deleted"
        )
    return EXIT_OK


def _run_push(args: argparse.Namespace) -> int:
    report = push_project(
        _load_config(args),
        mode=_resolution_mode(args),
        prompt=_prompt_for(args, source_label="local", target_label="remote"),
        delete_remote=args.delete,
        languages=args.languages,
        dry_run=args.dry_run,
    )
    return _print_report(report)


def _run_sync(args: argparse.Namespace) -> int:
    report = sync_project(
        _load_config(args),
        mode=_resolution_mode(args),
        prompt=_prompt_for(args, source_label="local", target_label="remote"),
        delete_remote=args.delete,
        languages=args.languages,
        dry_run=args.dry_run,
    )
    code = _print_report(report.push)
    if report.pull is not None:
        code = max(code, _print_report(report.pull))
    return code


def _run_pull(args: argparse.Namespace) -> int:
    report = pull_project(
        _load_config(args),
        mode=_resolution_mode(args),
        prompt=_prompt_for(args, source_label="remote", target_label="local"),
        languages=args.languages,
        dry_run=args.dry_run,
    )
    return _print_report(report)


def _run_diff(args: argparse.Namespace) -> int:
    _print_diff(diff_project(_load_config(args), languages=args.languages))
    return EXIT_OK


_COMMANDS: dict[str, Callable[[argparse.Namespace], int]] = {
    "serve": _run_serve,
    "space": _run_space,
    "branch": _run_branch,
    "push": _run_push,
    "sync": _run_sync,
    "pull": _run_pull,
    "diff": _run_diff,
}


def run(argv: Sequence[str] | None = None) -> int:
    """Run one CLI command and return its exit code."""

    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except SystemExit as exc:
        return EXIT_USAGE if exc.code else EXIT_OK

    try:
        configure_logging(level=resolve_log_level(verbose=parsed_args.verbose))
        return _COMMANDS[parsed_args.command](parsed_args)
    except UnresolvedConflictError as exc:
        _print_unresolved(exc)
        return EXIT_UNRESOLVED
    except ResolutionCancelled:
        print("Cancelled; nothing written")
        return EXIT_CANCELLED
    except KeyboardInterrupt:
        print("Interrupted; local files already rewritten are kept", file=sys.stderr)
        return EXIT_CANCELLED
    except (ConfigurationError, ValueError) as exc:
        log.error("Configuration error: %s", exc)  # noqa: TRY400
        return EXIT_USAGE
    except LingxError as exc:
        log.error("%s", exc)  # noqa: TRY400
        return EXIT_FAILURE
    except Exception:
        log.exception("Fatal error")
        return EXIT_FAILURE


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Turn Ctrl+C into ``KeyboardInterrupt`` so ``run`` can exit with 130.

    At a conflict prompt this cancels before anything is written. During a
    pull into local files it stops between two files: each file is replaced
    atomically, but the ones written before the interrupt stay written.
    """
    log.info("Closed by user (Ctrl+C)")
    raise KeyboardInterrupt


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
