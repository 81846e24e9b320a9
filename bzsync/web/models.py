"""Pydantic models for the inspect viewer.

These mirror the payload written to ``.beztack/inspect/data.json`` and keep
its camelCase keys on the wire.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangeResponse(BaseModel):
    """One planned change, with both sides of the content."""

    model_config = ConfigDict(populate_by_name=True)

    path: str
    type: str
    ownership: str
    conflict_reason: Optional[str] = Field(default=None, alias="conflictReason")
    is_binary: bool = Field(default=False, alias="isBinary")
    current_content: str = Field(default="", alias="currentContent")
    template_content: str = Field(default="", alias="templateContent")


class InspectPayload(BaseModel):
    """Mirrors bzsync.sync.workflow.build_inspect_payload."""

    model_config = ConfigDict(populate_by_name=True)

    generated_at: str = Field(alias="generatedAt")
    workspace_root: str = Field(alias="workspaceRoot")
    template_root: str = Field(alias="templateRoot")
    from_version: str = Field(alias="fromVersion")
    to_version: str = Field(alias="toVersion")
    total_changes: int = Field(alias="totalChanges")
    conflicts: int = 0
    skipped_unchanged_template_files: int = Field(
        default=0, alias="skippedUnchangedTemplateFiles"
    )
    changes: list[ChangeResponse] = Field(default_factory=list)


class ChangeSummaryResponse(BaseModel):
    """A change without its contents, for list views."""

    model_config = ConfigDict(populate_by_name=True)

    path: str
    type: str
    ownership: str
    conflict_reason: Optional[str] = Field(default=None, alias="conflictReason")
