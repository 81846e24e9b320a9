"""Diff engine — classify how each path differs between workspace and template.

The template tree drives the comparison:

- a template file missing from the workspace is an ``add``;
- a byte-identical file is counted as unchanged and not emitted;
- a differing file is a ``modify``, unless the origin record shows that
  the template has not changed since the last sync (the difference is then
  a local edit and is counted as unchanged too).

Workspace-only files are deleted only when the origin record proves the
template used to ship them and the workspace copy is still exactly what
the last sync wrote. Anything else the workspace holds is left alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from bzsync.models.sync_state import ChangeType, FileChange, Origin
from bzsync.sync.origin import OriginStore, hash_content
from bzsync.utils.file_content import is_binary_content
from bzsync.utils.file_scanner import scan_tree

logger = logging.getLogger(__name__)


@dataclass
class DiffResult:
    """Changes between two trees, sorted by path."""

    changes: list[FileChange] = field(default_factory=list)
    skipped_unchanged_template_files: int = 0


def compute_diff(workspace_root: str | Path, template_root: str | Path) -> DiffResult:
    """Compare the workspace against the template and return the differences."""
    workspace_files = scan_tree(Path(workspace_root))
    template_files = scan_tree(Path(template_root))
    origin = OriginStore(workspace_root).read()

    result = DiffResult()

    for path, template_path in template_files.items():
        template_data = template_path.read_bytes()
        workspace_path = workspace_files.get(path)

        if workspace_path is None:
            result.changes.append(_build_change(path, ChangeType.ADD, None, template_data))
            continue

        current_data = workspace_path.read_bytes()
        if current_data == template_data:
            result.skipped_unchanged_template_files += 1
            continue

        user_modified = None
        entry = origin.files.get(path) if origin else None
        if entry is not None:
            if hash_content(template_data) == entry.template_hash:
                logger.debug("%s: template unchanged since last sync, keeping local edit", path)
                result.skipped_unchanged_template_files += 1
                continue
            user_modified = hash_content(current_data) != entry.project_hash

        result.changes.append(
            _build_change(path, ChangeType.MODIFY, current_data, template_data, user_modified)
        )

    result.changes.extend(_removed_template_files(workspace_files, template_files, origin))
    result.changes.sort(key=lambda change: change.path)
    return result


def _removed_template_files(
    workspace_files: dict[str, Path],
    template_files: dict[str, Path],
    origin: Origin | None,
) -> list[FileChange]:
    if origin is None:
        return []

    deletions = []
    for path, workspace_path in workspace_files.items():
        if path in template_files:
            continue
        entry = origin.files.get(path)
        if entry is None:
            continue

        current_data = workspace_path.read_bytes()
        if hash_content(current_data) != entry.project_hash:
            logger.debug("%s: removed from template but edited locally, keeping it", path)
            continue

        deletions.append(_build_change(path, ChangeType.DELETE, current_data, None))
    return deletions


def _build_change(
    path: str,
    change_type: ChangeType,
    current_data: bytes | None,
    template_data: bytes | None,
    user_modified: bool | None = None,
) -> FileChange:
    samples = [data for data in (current_data, template_data) if data is not None]
    is_binary = any(is_binary_content(path, data) for data in samples)

    if not is_binary:
        try:
            return FileChange(
                path=path,
                type=change_type,
                current_content=_decode(current_data),
                template_content=_decode(template_data),
                user_modified=user_modified,
            )
        except UnicodeDecodeError:
            logger.debug("%s: not valid UTF-8, treating as binary", path)

    return FileChange(
        path=path,
        type=change_type,
        current_binary=current_data,
        template_binary=template_data,
        is_binary=True,
        user_modified=user_modified,
    )


def _decode(data: bytes | None) -> str | None:
    return None if data is None else data.decode("utf-8")
