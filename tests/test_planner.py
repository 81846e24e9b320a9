"""Tests for update plan construction."""

from bzsync.models.sync_state import ChangeType, OwnershipStrategy, TemplateManifest
from bzsync.sync.planner import CUSTOM_OWNED_REASON, build_update_plan


def _manifest(**rules):
    strategies = {"**": OwnershipStrategy.MIXED}
    strategies.update(rules)
    return TemplateManifest(template_id="t", current_version="0.0.0", strategy_by_path=strategies)


def test_ownership_is_resolved_per_change(roots, write_files):
    workspace, template = roots
    write_files(template, {"apps/api/x.ts": "x", "packages/y.ts": "y"})
    manifest = _manifest(**{"apps/**": OwnershipStrategy.TEMPLATE_OWNED})

    plan = build_update_plan(workspace_root=workspace, template_root=template, manifest=manifest)

    ownership = {c.path: c.ownership for c in plan.changes}
    assert ownership == {
        "apps/api/x.ts": OwnershipStrategy.TEMPLATE_OWNED,
        "packages/y.ts": OwnershipStrategy.MIXED,
    }
    assert plan.conflicts == ()


def test_custom_owned_changes_are_conflicts(roots, write_files):
    workspace, template = roots
    write_files(template, {"apps/web/env.ts": "tpl", "src/a.ts": "a"})
    write_files(workspace, {"apps/web/env.ts": "mine"})
    manifest = _manifest(**{"apps/web/**": OwnershipStrategy.CUSTOM_OWNED})

    plan = build_update_plan(workspace_root=workspace, template_root=template, manifest=manifest)

    assert len(plan.changes) == 2
    assert len(plan.conflicts) == 1
    conflict = plan.conflicts[0]
    assert conflict.path == "apps/web/env.ts"
    assert conflict.type == ChangeType.MODIFY
    assert conflict.conflict_reason == CUSTOM_OWNED_REASON
    assert conflict.has_conflict
    assert all(c.conflict_reason is None for c in plan.changes if c.path != conflict.path)


def test_plan_is_deterministic(roots, write_files, tree_bytes):
    workspace, template = roots
    write_files(template, {"a.ts": "a2", "b/c.ts": "c", "logo.png": b"\x89PNG\x00"})
    write_files(workspace, {"a.ts": "a1", "mine.ts": "m"})
    manifest = _manifest(**{"b/**": OwnershipStrategy.CUSTOM_OWNED})
    before = tree_bytes(workspace)

    first = build_update_plan(workspace_root=workspace, template_root=template, manifest=manifest)
    second = build_update_plan(workspace_root=workspace, template_root=template, manifest=manifest)

    assert first == second
    assert tree_bytes(workspace) == before


def test_plan_carries_unchanged_count(roots, write_files):
    workspace, template = roots
    write_files(template, {"a.ts": "same", "b.ts": "same"})
    write_files(workspace, {"a.ts": "same", "b.ts": "same"})

    plan = build_update_plan(workspace_root=workspace, template_root=template, manifest=_manifest())

    assert plan.changes == ()
    assert plan.skipped_unchanged_template_files == 2
