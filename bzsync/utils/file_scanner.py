"""File scanner — discover the files that take part in template sync."""

import os
from pathlib import Path

from bzsync.utils.git_ops import find_ignored_paths

# Path segments that are never synced, wherever they appear
EXCLUDED_SEGMENTS = {
    ".git", "node_modules", ".nx", "dist", ".beztack", ".beztack-sandbox",
    "pnpm-lock.yaml", "beztack.template.json", "beztack-sync-report.md",
}

# Template directories that are intentionally not scaffolded into workspaces
TEMPLATE_EXCLUDED_DIRS = (
    ".git",
    "node_modules",
    "scripts/create-beztack",
    ".github",
    ".nx",
    "docs",
)


def is_excluded(relative_path: str) -> bool:
    """Check if a root-relative path is outside the sync scope."""
    if not relative_path:
        return False

    normalized = relative_path.replace("\\", "/")
    for prefix in TEMPLATE_EXCLUDED_DIRS:
        if normalized == prefix or normalized.startswith(f"{prefix}/"):
            return True

    return any(segment in EXCLUDED_SEGMENTS for segment in normalized.split("/"))


def scan_tree(root: Path) -> dict[str, Path]:
    """Map every in-scope file under *root* to its absolute path.

    Keys are root-relative and use forward slashes. Excluded directories
    are pruned without being descended into. When *root* is a git checkout,
    files matched by its ignore rules are left out.
    """
    files: dict[str, Path] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = _relative(root, current)

        dirnames[:] = sorted(
            name for name in dirnames if not is_excluded(_join(rel_dir, name))
        )
        for name in filenames:
            rel = _join(rel_dir, name)
            path = current / name
            if is_excluded(rel) or not path.is_file():
                continue
            files[rel] = path

    ignored = find_ignored_paths(root, sorted(files))
    return {rel: files[rel] for rel in sorted(files) if rel not in ignored}


def _relative(root: Path, path: Path) -> str:
    rel = path.relative_to(root).as_posix()
    return "" if rel == "." else rel


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name
