"""Tests for the persisted sync state: manifest and origin."""

import json

from bzsync.models.sync_state import Origin, OriginFileEntry, OwnershipStrategy, TemplateManifest
from bzsync.sync.manifest import ManifestStore, normalize_manifest, record_apply
from bzsync.sync.origin import OriginStore, build_origin, hash_content

# --- Manifest ---


def test_manifest_defaults_when_absent(tmp_path):
    manifest = ManifestStore(tmp_path).read()
    assert manifest.template_id == "beztack-core"
    assert manifest.current_version == "0.0.0"
    assert manifest.strategy_by_path == {"**": OwnershipStrategy.MIXED}
    assert manifest.applied_migrations == []
    assert manifest.last_applied_at is None
    assert not (tmp_path / "beztack.template.json").exists()


def test_manifest_store_custom_defaults(tmp_path):
    manifest = ManifestStore(tmp_path, default_template_id="acme", default_version="1.0.0").read()
    assert manifest.template_id == "acme"
    assert manifest.current_version == "1.0.0"


def test_manifest_malformed_json_falls_back(tmp_path):
    (tmp_path / "beztack.template.json").write_text("{not json")
    assert ManifestStore(tmp_path).read() == ManifestStore(tmp_path).default()


def test_manifest_non_object_falls_back(tmp_path):
    (tmp_path / "beztack.template.json").write_text("[1, 2]")
    assert ManifestStore(tmp_path).read().template_id == "beztack-core"


def test_manifest_write_and_read(tmp_path):
    store = ManifestStore(tmp_path)
    manifest = TemplateManifest(
        template_id="beztack-core",
        current_version="1.2.0",
        strategy_by_path={
            "**": OwnershipStrategy.MIXED,
            "apps/**": OwnershipStrategy.TEMPLATE_OWNED,
        },
        last_applied_at="2026-01-01T00:00:00+00:00",
        applied_migrations=["0.0.0->1.2.0"],
    )
    path = store.write(manifest)

    raw = path.read_text()
    assert raw.endswith("}\n")
    assert raw.startswith('{\n  "templateId"')
    data = json.loads(raw)
    assert data["strategyByPath"] == {"**": "mixed", "apps/**": "template-owned"}
    assert "customZones" not in data

    assert store.read() == manifest


def test_normalize_drops_invalid_fields(tmp_path):
    defaults = ManifestStore(tmp_path).default()
    manifest = normalize_manifest(
        {
            "templateId": "",
            "currentVersion": 3,
            "strategyByPath": {"apps/**": "template-owned", "x/**": "nonsense", "": "mixed"},
            "appliedMigrations": ["0.0.0->1.0.0", "", 7],
            "customZones": {"a.ts": ["one", 2], "b.ts": "bad"},
        },
        defaults,
    )
    assert manifest.template_id == "beztack-core"
    assert manifest.current_version == "0.0.0"
    assert manifest.strategy_by_path == {
        "apps/**": OwnershipStrategy.TEMPLATE_OWNED,
        "**": OwnershipStrategy.MIXED,
    }
    assert manifest.applied_migrations == ["0.0.0->1.0.0"]
    assert manifest.custom_zones == {"a.ts": ["one"]}


def test_normalize_keeps_explicit_catch_all(tmp_path):
    defaults = ManifestStore(tmp_path).default()
    manifest = normalize_manifest({"strategyByPath": {"**": "template-owned"}}, defaults)
    assert manifest.strategy_by_path == {"**": OwnershipStrategy.TEMPLATE_OWNED}


def test_record_apply_appends_migration():
    manifest = TemplateManifest(template_id="t", current_version="1.0.0", applied_migrations=["0.0.0->1.0.0"])
    updated = record_apply(manifest, "1.1.0", applied_at="2026-02-02T00:00:00+00:00")

    assert updated.current_version == "1.1.0"
    assert updated.last_applied_at == "2026-02-02T00:00:00+00:00"
    assert updated.applied_migrations == ["0.0.0->1.0.0", "1.0.0->1.1.0"]
    assert manifest.applied_migrations == ["0.0.0->1.0.0"]


def test_record_apply_stamps_time():
    updated = record_apply(TemplateManifest(template_id="t", current_version="0.0.0"), "1.0.0")
    assert updated.last_applied_at


# --- Origin ---


def test_hash_content_is_stable():
    assert hash_content("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    assert hash_content("héllo") == hash_content("héllo".encode("utf-8"))


def test_origin_absent_is_none(tmp_path):
    assert OriginStore(tmp_path).read() is None


def test_origin_malformed_is_none(tmp_path):
    path = tmp_path / ".beztack" / "origin.json"
    path.parent.mkdir()
    path.write_text("nope")
    assert OriginStore(tmp_path).read() is None

    path.write_text(json.dumps({"createdAt": 1, "files": {}}))
    assert OriginStore(tmp_path).read() is None

    path.write_text(json.dumps({"createdAt": "x", "files": None}))
    assert OriginStore(tmp_path).read() is None


def test_origin_write_and_read(tmp_path):
    origin = Origin(
        created_at="2026-01-01T00:00:00+00:00",
        files={"a.ts": OriginFileEntry(project_hash="p", template_hash="t")},
    )
    store = OriginStore(tmp_path)
    path = store.write(origin)

    assert path == tmp_path / ".beztack" / "origin.json"
    assert json.loads(path.read_text())["files"]["a.ts"] == {"projectHash": "p", "templateHash": "t"}
    assert store.read() == origin


def test_origin_skips_bad_entries(tmp_path):
    path = tmp_path / ".beztack" / "origin.json"
    path.parent.mkdir()
    path.write_text(
        json.dumps(
            {
                "createdAt": "x",
                "files": {"good": {"projectHash": "p", "templateHash": "t"}, "bad": {"projectHash": 1}},
            }
        )
    )
    assert list(OriginStore(tmp_path).read().files) == ["good"]


def test_build_origin(roots, write_files):
    workspace, template = roots
    write_files(template, {"a.ts": "template a", "b.ts": "template b"})
    write_files(workspace, {"a.ts": "workspace a", "extra.ts": "mine"})

    origin = build_origin(workspace, template)

    assert list(origin.files) == ["a.ts"]
    assert origin.files["a.ts"].project_hash == hash_content("workspace a")
    assert origin.files["a.ts"].template_hash == hash_content("template a")
    assert origin.created_at


def test_build_origin_keeps_created_at(roots):
    workspace, template = roots
    previous = Origin(created_at="2025-05-05T00:00:00+00:00")
    assert build_origin(workspace, template, previous).created_at == previous.created_at
