"""Tests for locating and caching the template tree."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from git import GitCommandError

from bzsync.config import SyncSettings
from bzsync.errors import TemplateFetchError, TemplateRootError
from bzsync.sync.template_source import (
    ensure_template_root,
    get_default_template_root,
    read_cache_metadata,
    read_template_version,
    resolve_template_root,
)

SHA = "0123456789abcdef0123456789abcdef01234567"


@pytest.fixture
def settings():
    return SyncSettings(
        template_repository="https://example.invalid/template.git",
        template_branch="main",
        cache_ttl_hours=24,
    )


def _fake_clone(url, destination, branch):
    (destination / ".git").mkdir(parents=True)
    (destination / "template.version").write_text("3.1.0\n")
    return SHA


def _write_meta(cache_root, fetched_at):
    (cache_root / ".git").mkdir(parents=True)
    meta = {
        "lastFetchedAt": fetched_at.isoformat(),
        "lastCommit": SHA,
        "branch": "main",
        "repository": "https://example.invalid/template.git",
    }
    (cache_root.parent / "meta.json").write_text(json.dumps(meta))


def test_read_template_version(tmp_path):
    assert read_template_version(tmp_path) == "0.0.0"
    (tmp_path / "template.version").write_text("  1.4.2\n")
    assert read_template_version(tmp_path) == "1.4.2"
    (tmp_path / "template.version").write_text("\n")
    assert read_template_version(tmp_path) == "0.0.0"


def test_ensure_template_root(tmp_path):
    ensure_template_root(tmp_path)
    with pytest.raises(TemplateRootError):
        ensure_template_root(tmp_path / "missing")
    (tmp_path / "file").write_text("x")
    with pytest.raises(TemplateRootError):
        ensure_template_root(tmp_path / "file")


def test_explicit_root_skips_cache(tmp_path, settings):
    with patch("bzsync.sync.template_source.clone_template") as clone:
        root = resolve_template_root(tmp_path, settings, template_root=tmp_path / "tpl")

    assert root == tmp_path / "tpl"
    clone.assert_not_called()


def test_refresh_and_offline_are_exclusive(tmp_path, settings):
    with pytest.raises(TemplateFetchError, match="--refresh"):
        resolve_template_root(tmp_path, settings, refresh=True, offline=True)


def test_offline_without_cache(tmp_path, settings):
    with pytest.raises(TemplateFetchError, match="Template cache is missing"):
        resolve_template_root(tmp_path, settings, offline=True)


def test_first_use_clones_and_records_metadata(tmp_path, settings):
    with patch("bzsync.sync.template_source.clone_template", side_effect=_fake_clone) as clone:
        root = resolve_template_root(tmp_path, settings)

    assert root == get_default_template_root(tmp_path, "main")
    assert root == tmp_path / ".beztack" / "template-cache" / "main"
    clone.assert_called_once_with(settings.template_repository, root, "main")
    assert read_template_version(root) == "3.1.0"

    metadata = read_cache_metadata(root)
    assert metadata.last_commit == SHA
    assert metadata.branch == "main"
    assert metadata.repository == settings.template_repository


def test_fresh_cache_is_reused(tmp_path, settings):
    cache_root = get_default_template_root(tmp_path, "main")
    _write_meta(cache_root, datetime.now(timezone.utc))

    with patch("bzsync.sync.template_source.fetch_and_reset") as fetch, patch(
        "bzsync.sync.template_source.clone_template"
    ) as clone:
        resolve_template_root(tmp_path, settings)

    fetch.assert_not_called()
    clone.assert_not_called()


def test_stale_cache_is_refreshed(tmp_path, settings):
    cache_root = get_default_template_root(tmp_path, "main")
    _write_meta(cache_root, datetime.now(timezone.utc) - timedelta(hours=25))

    with patch("bzsync.sync.template_source.fetch_and_reset", return_value="f" * 40) as fetch:
        resolve_template_root(tmp_path, settings)

    fetch.assert_called_once_with(cache_root, "main")
    assert read_cache_metadata(cache_root).last_commit == "f" * 40


def test_offline_never_fetches_stale_cache(tmp_path, settings):
    cache_root = get_default_template_root(tmp_path, "main")
    _write_meta(cache_root, datetime.now(timezone.utc) - timedelta(days=30))

    with patch("bzsync.sync.template_source.fetch_and_reset") as fetch:
        assert resolve_template_root(tmp_path, settings, offline=True) == cache_root

    fetch.assert_not_called()


def test_refresh_failure_falls_back_to_cache(tmp_path, settings, caplog):
    cache_root = get_default_template_root(tmp_path, "main")
    _write_meta(cache_root, datetime.now(timezone.utc))

    with patch(
        "bzsync.sync.template_source.fetch_and_reset",
        side_effect=GitCommandError("fetch", 128),
    ):
        root = resolve_template_root(tmp_path, settings, refresh=True)

    assert root == cache_root
    assert "using local cache" in caplog.text
    assert read_cache_metadata(cache_root).last_commit == SHA


def test_clone_failure_raises(tmp_path, settings):
    with patch(
        "bzsync.sync.template_source.clone_template",
        side_effect=GitCommandError("clone", 128),
    ):
        with pytest.raises(TemplateFetchError, match="Failed to sync template from main"):
            resolve_template_root(tmp_path, settings)


def test_non_git_cache_directory_is_replaced(tmp_path, settings):
    cache_root = get_default_template_root(tmp_path, "main")
    cache_root.mkdir(parents=True)
    (cache_root / "leftover.txt").write_text("partial clone")

    with patch("bzsync.sync.template_source.clone_template", side_effect=_fake_clone):
        resolve_template_root(tmp_path, settings)

    assert not (cache_root / "leftover.txt").exists()
    assert (cache_root / "template.version").exists()
