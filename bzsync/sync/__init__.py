"""Template sync — keep a workspace aligned with an evolving upstream template.

This package provides the primitives for:
- Ownership: per-path rules deciding what the template may overwrite
- Protected zones: workspace regions that survive re-synchronization
- Planning: diffing workspace and template into an annotated update plan
- Apply and rollback: executing a plan behind a workspace snapshot
"""
