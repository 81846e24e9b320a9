"""Shared fixtures for building workspace and template trees on disk."""

from pathlib import Path

import pytest


def _write_files(root: Path, files: dict) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def write_files():
    """Return a helper that writes ``{relative_path: content}`` under a root."""
    return _write_files


@pytest.fixture
def roots(tmp_path):
    """An empty (workspace, template) pair of directories."""
    workspace = tmp_path / "workspace"
    template = tmp_path / "template"
    workspace.mkdir()
    template.mkdir()
    return workspace, template


def snapshot_bytes(root: Path) -> dict[str, bytes]:
    """Every file under *root* mapped to its bytes."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def tree_bytes():
    return snapshot_bytes
