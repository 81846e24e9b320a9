"""Template source — locate the template tree a workspace is synced against.

An explicit ``--template-root`` is used as-is. Otherwise the template is a
shallow git clone cached under ``.beztack/template-cache/<branch>``, which
is refreshed when asked to or when older than the configured TTL.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from git import GitCommandError

from bzsync.config import SyncSettings
from bzsync.errors import TemplateFetchError, TemplateRootError
from bzsync.utils.git_ops import clone_template, fetch_and_reset, is_git_checkout

logger = logging.getLogger(__name__)

CACHE_DIR = ".beztack/template-cache"
CACHE_META_FILE = "meta.json"
VERSION_FILE = "template.version"
UNKNOWN_VERSION = "0.0.0"


@dataclass
class TemplateCacheMetadata:
    """Bookkeeping for the cached template clone."""

    last_fetched_at: str
    last_commit: str
    branch: str
    repository: str

    def to_dict(self) -> dict:
        return {
            "lastFetchedAt": self.last_fetched_at,
            "lastCommit": self.last_commit,
            "branch": self.branch,
            "repository": self.repository,
        }


def get_default_template_root(workspace_root: str | Path, branch: str) -> Path:
    return Path(workspace_root) / CACHE_DIR / branch


def ensure_template_root(template_root: str | Path) -> None:
    """Raise ``TemplateRootError`` unless *template_root* is a readable directory."""
    path = Path(template_root)
    if not path.is_dir():
        raise TemplateRootError(str(path))
    if not os.access(path, os.R_OK | os.X_OK):
        raise TemplateRootError(str(path), reason="not readable")


def read_template_version(template_root: str | Path) -> str:
    """Version declared by the template, or ``0.0.0`` when it declares none."""
    try:
        value = (Path(template_root) / VERSION_FILE).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return UNKNOWN_VERSION
    return value or UNKNOWN_VERSION


def resolve_template_root(
    workspace_root: str | Path,
    settings: SyncSettings,
    template_root: str | Path | None = None,
    refresh: bool = False,
    offline: bool = False,
) -> Path:
    """Return the template root to plan against, filling the cache if needed."""
    if template_root is not None:
        return Path(template_root)

    cache_root = get_default_template_root(workspace_root, settings.template_branch)
    sync_remote_template(cache_root, settings, refresh=refresh, offline=offline)
    return cache_root


def sync_remote_template(
    cache_root: Path,
    settings: SyncSettings,
    refresh: bool = False,
    offline: bool = False,
) -> None:
    """Clone or refresh the cached template clone at *cache_root*."""
    if refresh and offline:
        raise TemplateFetchError("Cannot use --refresh together with --offline")

    branch = settings.template_branch

    if cache_root.is_dir() and is_git_checkout(cache_root):
        if offline or not (refresh or _is_cache_stale(cache_root, settings)):
            return

        try:
            commit = fetch_and_reset(cache_root, branch)
        except GitCommandError as exc:
            logger.warning("Failed to refresh template cache, using local cache: %s", exc)
            return
        _write_cache_metadata(cache_root, commit, settings)
        logger.info("Refreshed template cache at %s (%s)", cache_root, commit[:12])
        return

    if offline:
        raise TemplateFetchError(
            "Template cache is missing. Run once without --offline to initialize it."
        )

    if cache_root.exists():
        shutil.rmtree(cache_root)
    cache_root.parent.mkdir(parents=True, exist_ok=True)

    try:
        commit = clone_template(settings.template_repository, cache_root, branch)
    except GitCommandError as exc:
        raise TemplateFetchError(f"Failed to sync template from {branch}: {exc}") from exc

    _write_cache_metadata(cache_root, commit, settings)
    logger.info("Cloned template %s@%s into %s", settings.template_repository, branch, cache_root)


def read_cache_metadata(cache_root: Path) -> TemplateCacheMetadata | None:
    path = cache_root.parent / CACHE_META_FILE
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None

    keys = ("lastFetchedAt", "lastCommit", "branch", "repository")
    if not isinstance(data, dict) or not all(isinstance(data.get(key), str) for key in keys):
        return None
    return TemplateCacheMetadata(
        last_fetched_at=data["lastFetchedAt"],
        last_commit=data["lastCommit"],
        branch=data["branch"],
        repository=data["repository"],
    )


def _is_cache_stale(cache_root: Path, settings: SyncSettings) -> bool:
    metadata = read_cache_metadata(cache_root)
    if metadata is None:
        return True

    try:
        fetched_at = datetime.fromisoformat(metadata.last_fetched_at)
    except ValueError:
        return True
    if fetched_at.tzinfo is None:
        fetched_at = fetched_at.replace(tzinfo=timezone.utc)

    age = datetime.now(timezone.utc) - fetched_at
    return age >= timedelta(hours=settings.cache_ttl_hours)


def _write_cache_metadata(cache_root: Path, commit: str, settings: SyncSettings) -> None:
    metadata = TemplateCacheMetadata(
        last_fetched_at=datetime.now(timezone.utc).isoformat(),
        last_commit=commit,
        branch=settings.template_branch,
        repository=settings.template_repository,
    )
    path = cache_root.parent / CACHE_META_FILE
    path.write_text(json.dumps(metadata.to_dict(), indent=2) + "\n", encoding="utf-8")
