"""Core data models for template synchronization.

Covers the persisted state (template manifest, origin record) and the
value objects produced by a sync cycle (file changes, planned changes,
update plans, apply results).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum


class OwnershipStrategy(Enum):
    """Who owns a path when the template and the workspace disagree."""

    TEMPLATE_OWNED = "template-owned"  # Template content always wins
    CUSTOM_OWNED = "custom-owned"  # Never touched automatically
    MIXED = "mixed"  # Template wins outside protected zones


class ChangeType(Enum):
    """What a sync cycle would do to a single path."""

    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"


CATCH_ALL_PATTERN = "**"


# --- Persisted state ---


@dataclass
class TemplateManifest:
    """Per-workspace sync state, stored as ``beztack.template.json``."""

    template_id: str
    current_version: str
    strategy_by_path: dict[str, OwnershipStrategy] = field(
        default_factory=lambda: {CATCH_ALL_PATTERN: OwnershipStrategy.MIXED}
    )
    last_applied_at: str | None = None
    custom_zones: dict[str, list[str]] | None = None
    applied_migrations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: dict = {
            "templateId": self.template_id,
            "currentVersion": self.current_version,
        }
        if self.last_applied_at is not None:
            data["lastAppliedAt"] = self.last_applied_at
        data["strategyByPath"] = {
            pattern: strategy.value for pattern, strategy in self.strategy_by_path.items()
        }
        if self.custom_zones is not None:
            data["customZones"] = self.custom_zones
        data["appliedMigrations"] = list(self.applied_migrations)
        return data


@dataclass
class OriginFileEntry:
    """Content hashes of one path as of the last successful sync."""

    project_hash: str
    template_hash: str


@dataclass
class Origin:
    """Provenance record, stored as ``.beztack/origin.json``."""

    created_at: str
    files: dict[str, OriginFileEntry] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "createdAt": self.created_at,
            "files": {
                path: {
                    "projectHash": entry.project_hash,
                    "templateHash": entry.template_hash,
                }
                for path, entry in self.files.items()
            },
        }


# --- Sync cycle values ---


@dataclass(frozen=True)
class FileChange:
    """A single path that differs between the workspace and the template.

    Text files carry ``current_content``/``template_content``; binary files
    carry ``current_binary``/``template_binary`` instead. A delete never
    carries template content.
    """

    path: str
    type: ChangeType
    current_content: str | None = None
    template_content: str | None = None
    current_binary: bytes | None = None
    template_binary: bytes | None = None
    is_binary: bool = False
    user_modified: bool | None = None


@dataclass(frozen=True)
class PlannedChange(FileChange):
    """A file change annotated with its resolved ownership."""

    ownership: OwnershipStrategy = OwnershipStrategy.MIXED
    conflict_reason: str | None = None

    @classmethod
    def from_change(
        cls,
        change: FileChange,
        ownership: OwnershipStrategy,
        conflict_reason: str | None = None,
    ) -> PlannedChange:
        values = {f.name: getattr(change, f.name) for f in fields(FileChange)}
        return cls(**values, ownership=ownership, conflict_reason=conflict_reason)

    @property
    def has_conflict(self) -> bool:
        return self.conflict_reason is not None


@dataclass(frozen=True)
class UpdatePlan:
    """The computed, not-yet-applied set of changes for one sync cycle."""

    changes: tuple[PlannedChange, ...] = ()
    conflicts: tuple[PlannedChange, ...] = ()
    skipped_unchanged_template_files: int = 0


@dataclass
class ApplyResult:
    """Outcome of executing an update plan."""

    applied: int = 0
    skipped: int = 0
    conflicts: list[str] = field(default_factory=list)
