"""Apply engine — execute an update plan against the workspace.

Changes run in plan order. Custom-owned paths are never touched. Deletes
are idempotent. Binary payloads are copied verbatim, mixed-ownership text
goes through the protected-zone merger, and template-owned text is
overwritten outright.

Any ``OSError`` propagates to the caller, which owns the snapshot and is
responsible for rolling back.
"""

from __future__ import annotations

import logging
from pathlib import Path

from bzsync.models.sync_state import ApplyResult, ChangeType, OwnershipStrategy, UpdatePlan
from bzsync.sync.zones import merge_with_protected_zones

logger = logging.getLogger(__name__)


def apply_update_plan(
    *,
    workspace_root: str | Path,
    plan: UpdatePlan,
    dry_run: bool = False,
) -> ApplyResult:
    """Apply *plan* to the workspace.

    With ``dry_run`` every classification step still runs and the counts
    match a real run, but nothing on disk changes.
    """
    root = Path(workspace_root)
    result = ApplyResult()

    for change in plan.changes:
        if change.ownership is OwnershipStrategy.CUSTOM_OWNED:
            result.skipped += 1
            result.conflicts.append(f"{change.path}: {change.conflict_reason}")
            continue

        destination = root / change.path

        if change.type is ChangeType.DELETE:
            if not dry_run:
                destination.unlink(missing_ok=True)
                logger.debug("Deleted %s", change.path)
            result.applied += 1
            continue

        if change.is_binary:
            payload = change.template_binary or b""
        else:
            output = change.template_content or ""
            if change.ownership is OwnershipStrategy.MIXED:
                merged = merge_with_protected_zones(change.current_content or "", output)
                output = merged.content
                for conflict in merged.conflicts:
                    result.conflicts.append(f"{change.path}: {conflict}")
            payload = output.encode("utf-8")

        if not dry_run:
            _write_file(destination, payload)
            logger.debug("Wrote %s (%s)", change.path, change.type.value)

        result.applied += 1

    return result


def _write_file(destination: Path, payload: bytes) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(payload)
