"""Origin — content hashes of every synced file as of the last apply.

The origin record tells "the workspace differs because the user edited it"
apart from "the workspace differs because the template moved on". It is
optional: without it, ownership rules alone decide what happens.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from bzsync.models.sync_state import Origin, OriginFileEntry
from bzsync.utils.file_scanner import scan_tree

logger = logging.getLogger(__name__)


def hash_content(content: str | bytes) -> str:
    """Stable SHA-256 hex digest of text (as UTF-8) or raw bytes."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


class OriginStore:
    """Reads and writes the origin record of a workspace."""

    ORIGIN_DIR = ".beztack"
    ORIGIN_FILE = "origin.json"

    def __init__(self, workspace_root: str | Path):
        self.workspace_root = Path(workspace_root)
        self.path = self.workspace_root / self.ORIGIN_DIR / self.ORIGIN_FILE

    def read(self) -> Origin | None:
        """Load the origin record; ``None`` when absent or malformed."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.debug("Unreadable origin at %s, ignoring it: %s", self.path, exc)
            return None

        if (
            not isinstance(data, dict)
            or not isinstance(data.get("createdAt"), str)
            or not isinstance(data.get("files"), dict)
        ):
            logger.debug("Origin at %s has an unexpected shape, ignoring it", self.path)
            return None

        files = {}
        for path, entry in data["files"].items():
            if not isinstance(entry, dict):
                continue
            project_hash = entry.get("projectHash")
            template_hash = entry.get("templateHash")
            if isinstance(project_hash, str) and isinstance(template_hash, str):
                files[path] = OriginFileEntry(
                    project_hash=project_hash, template_hash=template_hash
                )

        return Origin(created_at=data["createdAt"], files=files)

    def write(self, origin: Origin) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(origin.to_dict(), indent=2) + "\n", encoding="utf-8")
        return self.path


def build_origin(
    workspace_root: str | Path,
    template_root: str | Path,
    previous: Origin | None = None,
) -> Origin:
    """Hash every template file against its workspace counterpart.

    Template files with no workspace counterpart (skipped conflicts, for
    instance) are left out. ``createdAt`` carries over from *previous*.
    """
    workspace = Path(workspace_root)
    files: dict[str, OriginFileEntry] = {}

    for rel, template_path in scan_tree(Path(template_root)).items():
        workspace_path = workspace / rel
        if not workspace_path.is_file():
            continue
        files[rel] = OriginFileEntry(
            project_hash=hash_content(workspace_path.read_bytes()),
            template_hash=hash_content(template_path.read_bytes()),
        )

    created_at = previous.created_at if previous else datetime.now(timezone.utc).isoformat()
    return Origin(created_at=created_at, files=files)
