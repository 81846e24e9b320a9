"""Sync workflows — the status, plan, apply and rollback pipelines.

Each workflow reads the manifest once, computes a fresh plan, and (for
apply) writes the manifest and origin at most once at the end. Results are
returned as plain dataclasses; rendering is left to the CLI.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from bzsync.config import SyncSettings
from bzsync.errors import ApplyError, TemplateRootError
from bzsync.models.sync_state import ApplyResult, TemplateManifest, UpdatePlan
from bzsync.sync.apply import apply_update_plan
from bzsync.sync.manifest import ManifestStore, record_apply
from bzsync.sync.origin import OriginStore, build_origin
from bzsync.sync.planner import build_update_plan
from bzsync.sync.report import write_plan_report
from bzsync.sync.snapshot import DRY_RUN_SNAPSHOT_ID, SnapshotStore
from bzsync.sync.template_source import (
    ensure_template_root,
    read_template_version,
    resolve_template_root,
)

logger = logging.getLogger(__name__)

INSPECT_DIR = ".beztack/inspect"


@dataclass
class StatusReport:
    """What ``status`` knows about a workspace.

    When the template root is unavailable, ``available`` is False and the
    plan-derived fields are ``None``.
    """

    template_id: str
    current_version: str
    template_root: Path
    available: bool = True
    target_version: str | None = None
    pending_changes: int | None = None
    skipped_unchanged_template_files: int | None = None
    conflicts: int | None = None
    report_path: Path | None = None


@dataclass
class PlanOutcome:
    template_root: Path
    manifest: TemplateManifest
    detected_version: str
    target_version: str
    plan: UpdatePlan
    report_path: Path

    @property
    def from_version(self) -> str:
        return self.manifest.current_version


@dataclass
class ApplyOutcome:
    dry_run: bool
    snapshot_id: str
    target_version: str
    plan: UpdatePlan
    result: ApplyResult
    report_path: Path


def _manifest_store(workspace_root: str | Path, settings: SyncSettings) -> ManifestStore:
    return ManifestStore(
        workspace_root,
        default_template_id=settings.default_template_id,
        default_version=settings.default_version,
    )


def run_status(
    workspace_root: str | Path,
    settings: SyncSettings,
    template_root: str | Path | None = None,
    refresh: bool = False,
    offline: bool = False,
) -> StatusReport:
    """Summarize pending template changes without touching workspace files.

    A missing template root is reported as unavailable instead of raised.
    """
    resolved_root = resolve_template_root(
        workspace_root, settings, template_root, refresh=refresh, offline=offline
    )
    manifest = _manifest_store(workspace_root, settings).read()
    report = StatusReport(
        template_id=manifest.template_id,
        current_version=manifest.current_version,
        template_root=resolved_root,
    )

    try:
        ensure_template_root(resolved_root)
    except TemplateRootError as exc:
        logger.info("Template root unavailable: %s", exc)
        report.available = False
        return report

    plan = build_update_plan(
        workspace_root=workspace_root, template_root=resolved_root, manifest=manifest
    )
    report.target_version = read_template_version(resolved_root)
    report.pending_changes = len(plan.changes)
    report.skipped_unchanged_template_files = plan.skipped_unchanged_template_files
    report.conflicts = len(plan.conflicts)
    report.report_path = write_plan_report(workspace_root, plan)
    return report


def run_plan(
    workspace_root: str | Path,
    settings: SyncSettings,
    template_root: str | Path | None = None,
    to_version: str | None = None,
    refresh: bool = False,
    offline: bool = False,
) -> PlanOutcome:
    """Build the update plan and write the sync report."""
    resolved_root = resolve_template_root(
        workspace_root, settings, template_root, refresh=refresh, offline=offline
    )
    ensure_template_root(resolved_root)

    manifest = _manifest_store(workspace_root, settings).read()
    detected_version = read_template_version(resolved_root)
    plan = build_update_plan(
        workspace_root=workspace_root, template_root=resolved_root, manifest=manifest
    )
    report_path = write_plan_report(workspace_root, plan)

    return PlanOutcome(
        template_root=resolved_root,
        manifest=manifest,
        detected_version=detected_version,
        target_version=to_version or detected_version,
        plan=plan,
        report_path=report_path,
    )


def run_apply(
    workspace_root: str | Path,
    settings: SyncSettings,
    template_root: str | Path | None = None,
    to_version: str | None = None,
    dry_run: bool = False,
    refresh: bool = False,
    offline: bool = False,
) -> ApplyOutcome:
    """Plan, snapshot, apply, then commit the manifest and origin.

    On any failure after the snapshot the workspace is rolled back before
    the error propagates. I/O failures surface as ``ApplyError``.
    """
    outcome = run_plan(
        workspace_root,
        settings,
        template_root=template_root,
        to_version=to_version,
        refresh=refresh,
        offline=offline,
    )
    snapshots = SnapshotStore(workspace_root)
    snapshot_id = DRY_RUN_SNAPSHOT_ID if dry_run else snapshots.create()

    try:
        result = apply_update_plan(
            workspace_root=workspace_root, plan=outcome.plan, dry_run=dry_run
        )
        if not dry_run:
            _commit(workspace_root, settings, outcome)
    except OSError as exc:
        if dry_run:
            raise
        _rollback_after_failure(snapshots, snapshot_id)
        raise ApplyError(f"Apply failed: {exc}", snapshot_id) from exc
    except Exception:
        if not dry_run:
            _rollback_after_failure(snapshots, snapshot_id)
        raise

    logger.info(
        "Apply finished: %d applied, %d skipped, %d conflict(s)%s",
        result.applied,
        result.skipped,
        len(result.conflicts),
        " (dry run)" if dry_run else "",
    )
    return ApplyOutcome(
        dry_run=dry_run,
        snapshot_id=snapshot_id,
        target_version=outcome.target_version,
        plan=outcome.plan,
        result=result,
        report_path=outcome.report_path,
    )


def _commit(workspace_root: str | Path, settings: SyncSettings, outcome: PlanOutcome) -> None:
    manifest = record_apply(outcome.manifest, outcome.target_version)
    _manifest_store(workspace_root, settings).write(manifest)

    origin_store = OriginStore(workspace_root)
    origin = build_origin(workspace_root, outcome.template_root, previous=origin_store.read())
    origin_store.write(origin)


def _rollback_after_failure(snapshots: SnapshotStore, snapshot_id: str) -> None:
    logger.warning("Apply failed, restoring snapshot %s", snapshot_id)
    snapshots.rollback(snapshot_id)


def run_rollback(
    workspace_root: str | Path,
    snapshot_id: str,
    clear_snapshots: bool = False,
) -> None:
    """Restore the workspace from *snapshot_id*, optionally clearing all snapshots."""
    snapshots = SnapshotStore(workspace_root)
    snapshots.rollback(snapshot_id)
    if clear_snapshots:
        snapshots.clear()


def build_inspect_payload(
    workspace_root: str | Path,
    outcome: PlanOutcome,
    generated_at: str | None = None,
) -> dict:
    """JSON-ready view of a plan for the inspect viewer.

    Binary contents are not embedded; they show up as empty strings.
    """
    plan = outcome.plan
    return {
        "generatedAt": generated_at or datetime.now(timezone.utc).isoformat(),
        "workspaceRoot": str(workspace_root),
        "templateRoot": str(outcome.template_root),
        "fromVersion": outcome.from_version,
        "toVersion": outcome.target_version,
        "totalChanges": len(plan.changes),
        "conflicts": len(plan.conflicts),
        "skippedUnchangedTemplateFiles": plan.skipped_unchanged_template_files,
        "changes": [
            {
                "path": change.path,
                "type": change.type.value,
                "ownership": change.ownership.value,
                "conflictReason": change.conflict_reason,
                "isBinary": change.is_binary,
                "currentContent": change.current_content or "",
                "templateContent": change.template_content or "",
            }
            for change in plan.changes
        ],
    }


def write_inspect_payload(workspace_root: str | Path, payload: dict) -> Path:
    inspect_root = Path(workspace_root) / INSPECT_DIR
    inspect_root.mkdir(parents=True, exist_ok=True)
    path = inspect_root / "data.json"
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path
