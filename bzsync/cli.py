"""bzsync CLI — keep a scaffolded workspace in sync with its upstream template."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from bzsync import __version__
from bzsync.config import SyncSettings, get_settings
from bzsync.errors import SyncError

console = Console()

# Flags this command does not know are tolerated and ignored.
PASSTHROUGH = {"ignore_unknown_options": True, "allow_extra_args": True}


@dataclass
class CliState:
    workspace_root: Path
    settings: SyncSettings


@contextmanager
def _sync_errors():
    try:
        yield
    except SyncError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise SystemExit(1) from exc


def _template_options(func):
    func = click.option("--offline", is_flag=True, help="Never fetch; use the cached template")(func)
    func = click.option("--refresh", is_flag=True, help="Refetch the cached template now")(func)
    func = click.option(
        "--template-root",
        default=None,
        type=click.Path(file_okay=False, path_type=Path),
        help="Use this template tree instead of the cached clone",
    )(func)
    return func


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--workspace",
    "-w",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Workspace root to synchronize",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every sync decision")
@click.pass_context
def main(ctx: click.Context, workspace: Path, verbose: bool):
    """bzsync — template synchronization for scaffolded projects.

    Compares the workspace against the upstream template, decides per path
    what may be overwritten, merged, or left alone, and applies the result
    behind a snapshot that can be rolled back. Runs ``status`` when no
    command is given.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.obj = CliState(workspace_root=workspace, settings=get_settings())

    if ctx.invoked_subcommand is None:
        ctx.invoke(status)


# ── Status ───────────────────────────────────────────────────────────


@main.command(context_settings=PASSTHROUGH)
@_template_options
@click.pass_obj
def status(state: CliState, template_root: Path | None = None, refresh: bool = False, offline: bool = False):
    """Show pending template changes without modifying the workspace."""
    from bzsync.sync.workflow import run_status

    with _sync_errors():
        report = run_status(
            state.workspace_root,
            state.settings,
            template_root=template_root,
            refresh=refresh,
            offline=offline,
        )

    lines = [
        f"- Template ID: {report.template_id}",
        f"- Current version: {report.current_version}",
    ]
    if not report.available:
        lines += [
            "- Target version: unavailable",
            "- Pending changes: unavailable",
            "- Conflicts: unavailable",
            f"- Template root: {report.template_root}",
            "- Hint: generate or point to a template root with --template-root",
        ]
    else:
        lines += [
            f"- Target version: {report.target_version}",
            f"- Pending changes: {report.pending_changes}",
            f"- Skipped unchanged template files: {report.skipped_unchanged_template_files}",
            f"- Conflicts: {report.conflicts}",
            f"- Report: {report.report_path}",
        ]
    console.print(Panel("\n".join(lines), title="Template status"))


# ── Plan ─────────────────────────────────────────────────────────────


@main.command(context_settings=PASSTHROUGH)
@_template_options
@click.option("--to", "to_version", default=None, help="Version recorded for this update")
@click.pass_obj
def plan(
    state: CliState,
    template_root: Path | None,
    refresh: bool,
    offline: bool,
    to_version: str | None,
):
    """Compute the update plan and write the sync report."""
    from bzsync.sync.workflow import run_plan

    with _sync_errors():
        outcome = run_plan(
            state.workspace_root,
            state.settings,
            template_root=template_root,
            to_version=to_version,
            refresh=refresh,
            offline=offline,
        )

    update_plan = outcome.plan
    console.print(
        Panel(
            f"- Template root: {outcome.template_root}\n"
            f"- From: {outcome.from_version}\n"
            f"- To: {outcome.target_version}\n"
            f"- Changes: {len(update_plan.changes)}\n"
            f"- Conflicts: {len(update_plan.conflicts)}\n"
            f"- Report: {outcome.report_path}",
            title="Template update plan",
        )
    )

    if not update_plan.changes:
        return

    table = Table(title=f"Changes ({len(update_plan.changes)})")
    table.add_column("Type", style="dim", width=8)
    table.add_column("Path", style="cyan")
    table.add_column("Ownership")
    table.add_column("Conflict", style="red")
    for change in update_plan.changes:
        table.add_row(
            change.type.value,
            change.path,
            change.ownership.value,
            change.conflict_reason or "",
        )
    console.print(table)


# ── Apply ────────────────────────────────────────────────────────────


@main.command(context_settings=PASSTHROUGH)
@_template_options
@click.option("--to", "to_version", default=None, help="Version recorded for this update")
@click.option("--dry-run", is_flag=True, help="Classify every change but write nothing")
@click.pass_obj
def apply(
    state: CliState,
    template_root: Path | None,
    refresh: bool,
    offline: bool,
    to_version: str | None,
    dry_run: bool,
):
    """Apply the update plan behind a workspace snapshot.

    If anything fails mid-way the workspace is restored from the snapshot
    before the error is reported.
    """
    from bzsync.sync.workflow import run_apply

    with _sync_errors():
        outcome = run_apply(
            state.workspace_root,
            state.settings,
            template_root=template_root,
            to_version=to_version,
            dry_run=dry_run,
            refresh=refresh,
            offline=offline,
        )

    result = outcome.result
    console.print(
        Panel(
            f"- Dry run: {'yes' if outcome.dry_run else 'no'}\n"
            f"- Snapshot: {outcome.snapshot_id}\n"
            f"- Applied: {result.applied}\n"
            f"- Skipped: {result.skipped}\n"
            f"- Skipped unchanged template files: {outcome.plan.skipped_unchanged_template_files}\n"
            f"- Conflicts: {len(result.conflicts)}\n"
            f"- Report: {outcome.report_path}",
            title="Template apply finished",
        )
    )
    for conflict in result.conflicts:
        console.print(f"  [yellow]![/] {conflict}")


# ── Rollback ─────────────────────────────────────────────────────────


@main.command(context_settings=PASSTHROUGH)
@click.option("--snapshot", "snapshot_id", required=True, help="Snapshot id printed by apply")
@click.option("--clear-snapshots", is_flag=True, help="Delete all snapshots afterwards")
@click.pass_obj
def rollback(state: CliState, snapshot_id: str, clear_snapshots: bool):
    """Restore the workspace from a snapshot taken by apply."""
    from bzsync.sync.workflow import run_rollback

    with _sync_errors():
        run_rollback(state.workspace_root, snapshot_id, clear_snapshots=clear_snapshots)

    console.print(f"[green]Rollback completed[/] from snapshot {snapshot_id}")
    if clear_snapshots:
        console.print("  Snapshots cleared")


# ── Inspect ──────────────────────────────────────────────────────────


@main.command(name="inspect", context_settings=PASSTHROUGH)
@_template_options
@click.option("--host", default=None, help="Interface for the viewer (default from settings)")
@click.option("--port", default=None, type=click.IntRange(0, 65535), help="Port for the viewer")
@click.pass_obj
def inspect_plan(
    state: CliState,
    template_root: Path | None,
    refresh: bool,
    offline: bool,
    host: str | None,
    port: int | None,
):
    """Serve a local web viewer for the pending template changes."""
    import uvicorn

    from bzsync.sync.workflow import build_inspect_payload, run_plan, write_inspect_payload
    from bzsync.web.app import create_app

    with _sync_errors():
        outcome = run_plan(
            state.workspace_root,
            state.settings,
            template_root=template_root,
            refresh=refresh,
            offline=offline,
        )

    payload = build_inspect_payload(state.workspace_root, outcome)
    data_path = write_inspect_payload(state.workspace_root, payload)

    host = host or state.settings.inspect_host
    port = state.settings.inspect_port if port is None else port
    console.print(
        Panel(
            f"- URL: http://{host}:{port}\n"
            f"- Changes: {payload['totalChanges']}\n"
            f"- Skipped unchanged template files: {payload['skippedUnchangedTemplateFiles']}\n"
            f"- Conflicts: {payload['conflicts']}\n"
            f"- Data: {data_path}\n"
            f"- Report: {outcome.report_path}\n"
            "- Press Ctrl+C to stop the viewer",
            title="Template inspect viewer",
        )
    )
    uvicorn.run(create_app(payload), host=host, port=port, log_level="warning")


if __name__ == "__main__":
    main()
