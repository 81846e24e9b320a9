"""Plan report — a Markdown summary of an update plan."""

from __future__ import annotations

from pathlib import Path

from bzsync.models.sync_state import UpdatePlan

REPORT_FILE = "beztack-sync-report.md"


def render_plan_report(plan: UpdatePlan) -> str:
    lines = [
        "# Beztack Template Sync Report",
        "",
        f"- Total changes: {len(plan.changes)}",
        f"- Conflicts: {len(plan.conflicts)}",
        f"- Skipped unchanged template files: {plan.skipped_unchanged_template_files}",
        "",
        "## Changes",
        "",
    ]

    if not plan.changes:
        lines.append("No changes detected.")
    for change in plan.changes:
        lines.append(f"- [{change.type.value}] {change.path} ({change.ownership.value})")

    lines += ["", "## Conflicts", ""]

    if not plan.conflicts:
        lines.append("No conflicts detected.")
    for conflict in plan.conflicts:
        lines.append(f"- {conflict.path}: {conflict.conflict_reason or 'unknown conflict'}")

    return "\n".join(lines) + "\n"


def write_plan_report(workspace_root: str | Path, plan: UpdatePlan) -> Path:
    """Write the report to the workspace root and return its path."""
    report_path = Path(workspace_root) / REPORT_FILE
    report_path.write_text(render_plan_report(plan), encoding="utf-8")
    return report_path
