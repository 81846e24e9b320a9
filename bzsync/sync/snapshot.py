"""Snapshots — capture the workspace before apply so it can be restored.

A snapshot is a plain copy of every in-scope workspace file under
``.beztack/snapshots/<id>``, plus the origin record, which apply rewrites.
Each apply attempt creates its own snapshot. Snapshots are kept after a
successful apply until explicitly cleared.
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path

from bzsync.errors import SnapshotNotFoundError
from bzsync.sync.origin import OriginStore

logger = logging.getLogger(__name__)

DRY_RUN_SNAPSHOT_ID = "dry-run"

# Top-level entries never captured or restored
SKIPPED_ENTRIES = {".git", "node_modules", ".beztack-sandbox", ".nx", "dist"}
INTERNAL_DIR = ".beztack"

# The one internal file that belongs to the workspace state
ORIGIN_PATH = f"{OriginStore.ORIGIN_DIR}/{OriginStore.ORIGIN_FILE}"


class SnapshotStore:
    """Creates, restores and clears workspace snapshots."""

    SNAPSHOT_DIR = ".beztack/snapshots"

    def __init__(self, workspace_root: str | Path):
        self.workspace_root = Path(workspace_root)
        self.snapshots_dir = self.workspace_root / self.SNAPSHOT_DIR

    def create(self) -> str:
        """Copy the workspace into a new snapshot and return its id."""
        snapshot_id = _new_snapshot_id()
        snapshot_root = self.snapshots_dir / snapshot_id
        snapshot_root.mkdir(parents=True)

        files = _list_files(self.workspace_root, include_internal=False)
        if (self.workspace_root / ORIGIN_PATH).is_file():
            files.append(ORIGIN_PATH)
        for rel in files:
            destination = snapshot_root / rel
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.workspace_root / rel, destination)

        logger.info("Created snapshot %s (%d files)", snapshot_id, len(files))
        return snapshot_id

    def rollback(self, snapshot_id: str) -> None:
        """Restore the workspace to the state captured in *snapshot_id*.

        Snapshot files are copied back, and workspace files that did not
        exist when the snapshot was taken are removed, along with any
        directories that end up empty. The origin record is restored, or
        removed if there was none.
        """
        snapshot_root = self._snapshot_root(snapshot_id)

        snapshot_files = _list_files(snapshot_root, include_internal=True)
        for rel in snapshot_files:
            destination = self.workspace_root / rel
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(snapshot_root / rel, destination)

        known = set(snapshot_files)
        if ORIGIN_PATH not in known:
            (self.workspace_root / ORIGIN_PATH).unlink(missing_ok=True)

        removed = []
        for rel in _list_files(self.workspace_root, include_internal=False):
            if rel not in known:
                (self.workspace_root / rel).unlink(missing_ok=True)
                removed.append(rel)
        self._prune_empty_dirs(removed, snapshot_root)

        logger.info(
            "Rolled back to snapshot %s (%d restored, %d removed)",
            snapshot_id,
            len(snapshot_files),
            len(removed),
        )

    def clear(self) -> None:
        """Delete every retained snapshot."""
        shutil.rmtree(self.snapshots_dir, ignore_errors=True)
        logger.info("Cleared snapshots in %s", self.snapshots_dir)

    def list_ids(self) -> list[str]:
        if not self.snapshots_dir.is_dir():
            return []
        return sorted(p.name for p in self.snapshots_dir.iterdir() if p.is_dir())

    def _snapshot_root(self, snapshot_id: str) -> Path:
        """Directory of *snapshot_id*, which must be a direct child of the store."""
        if (
            snapshot_id in ("", ".", "..", DRY_RUN_SNAPSHOT_ID)
            or "/" in snapshot_id
            or "\\" in snapshot_id
        ):
            raise SnapshotNotFoundError(snapshot_id)

        snapshot_root = self.snapshots_dir / snapshot_id
        if (
            not snapshot_root.is_dir()
            or snapshot_root.resolve().parent != self.snapshots_dir.resolve()
        ):
            raise SnapshotNotFoundError(snapshot_id)
        return snapshot_root

    def _prune_empty_dirs(self, removed: list[str], snapshot_root: Path) -> None:
        root = self.workspace_root
        for rel in removed:
            parent = (root / rel).parent
            while parent != root and parent.is_dir():
                rel_dir = parent.relative_to(root)
                if (snapshot_root / rel_dir).is_dir() or any(parent.iterdir()):
                    break
                parent.rmdir()
                parent = parent.parent


def _new_snapshot_id() -> str:
    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    timestamp = timestamp.replace("+00:00", "Z").replace(":", "-")
    return f"{timestamp}-{uuid.uuid4().hex[:6]}"


def _list_files(root: Path, include_internal: bool) -> list[str]:
    """Root-relative POSIX paths of all files under *root*, minus skipped entries."""
    skipped = SKIPPED_ENTRIES if include_internal else SKIPPED_ENTRIES | {INTERNAL_DIR}
    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        if current == root:
            dirnames[:] = [name for name in dirnames if name not in skipped]
            filenames = [name for name in filenames if name not in skipped]
        for name in filenames:
            path = current / name
            if path.is_file():
                files.append(path.relative_to(root).as_posix())
    return sorted(files)
