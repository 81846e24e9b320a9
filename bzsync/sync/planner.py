"""Planner — turn a diff into an ownership-annotated update plan."""

from __future__ import annotations

import logging
from pathlib import Path

from bzsync.models.sync_state import OwnershipStrategy, PlannedChange, TemplateManifest, UpdatePlan
from bzsync.sync.diff import compute_diff
from bzsync.sync.ownership import resolve_ownership

logger = logging.getLogger(__name__)

CUSTOM_OWNED_REASON = "custom-owned path must be reviewed manually"


def build_update_plan(
    *,
    workspace_root: str | Path,
    template_root: str | Path,
    manifest: TemplateManifest,
) -> UpdatePlan:
    """Compute a fresh plan for bringing the workspace up to the template.

    Pure projection of its inputs: the same workspace, template and
    manifest always produce an equal plan.
    """
    diff = compute_diff(workspace_root, template_root)

    changes = []
    for change in diff.changes:
        ownership = resolve_ownership(change.path, manifest.strategy_by_path)
        conflict_reason = None
        if ownership is OwnershipStrategy.CUSTOM_OWNED:
            conflict_reason = CUSTOM_OWNED_REASON
        changes.append(PlannedChange.from_change(change, ownership, conflict_reason))

    conflicts = tuple(change for change in changes if change.has_conflict)
    logger.info(
        "Planned %d change(s), %d conflict(s), %d unchanged",
        len(changes),
        len(conflicts),
        diff.skipped_unchanged_template_files,
    )
    return UpdatePlan(
        changes=tuple(changes),
        conflicts=conflicts,
        skipped_unchanged_template_files=diff.skipped_unchanged_template_files,
    )
