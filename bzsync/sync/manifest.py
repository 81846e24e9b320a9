"""Template manifest — the per-workspace record of sync state.

The manifest lives at ``beztack.template.json`` in the workspace root. It is
created with defaults on first read, rewritten only after a successful
apply, and never deleted.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from bzsync.models.sync_state import CATCH_ALL_PATTERN, OwnershipStrategy, TemplateManifest

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_ID = "beztack-core"
DEFAULT_VERSION = "0.0.0"

_STRATEGIES = {strategy.value: strategy for strategy in OwnershipStrategy}


class ManifestStore:
    """Reads and writes the template manifest of a workspace."""

    MANIFEST_FILE = "beztack.template.json"

    def __init__(
        self,
        workspace_root: str | Path,
        default_template_id: str = DEFAULT_TEMPLATE_ID,
        default_version: str = DEFAULT_VERSION,
    ):
        self.workspace_root = Path(workspace_root)
        self.path = self.workspace_root / self.MANIFEST_FILE
        self.default_template_id = default_template_id
        self.default_version = default_version

    def default(self) -> TemplateManifest:
        return TemplateManifest(
            template_id=self.default_template_id,
            current_version=self.default_version,
        )

    def read(self) -> TemplateManifest:
        """Load the manifest, substituting defaults when it is absent or malformed."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return self.default()
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.debug("Unreadable manifest at %s, using defaults: %s", self.path, exc)
            return self.default()

        if not isinstance(data, dict):
            logger.debug("Manifest at %s is not an object, using defaults", self.path)
            return self.default()

        return normalize_manifest(data, self.default())

    def write(self, manifest: TemplateManifest) -> Path:
        """Persist the manifest as pretty JSON with a trailing newline."""
        normalized = normalize_manifest(manifest.to_dict(), self.default())
        self.path.write_text(
            json.dumps(normalized.to_dict(), indent=2) + "\n", encoding="utf-8"
        )
        return self.path


def normalize_manifest(data: dict, defaults: TemplateManifest) -> TemplateManifest:
    """Build a valid manifest from raw JSON data, field by field.

    Invalid fields fall back to *defaults*. The strategy table always ends
    up with a catch-all rule so every path resolves.
    """
    template_id = data.get("templateId")
    current_version = data.get("currentVersion")
    last_applied_at = data.get("lastAppliedAt")

    strategy_by_path: dict[str, OwnershipStrategy] = {}
    raw_strategies = data.get("strategyByPath")
    if isinstance(raw_strategies, dict):
        for pattern, value in raw_strategies.items():
            strategy = _STRATEGIES.get(value) if isinstance(value, str) else None
            if isinstance(pattern, str) and pattern and strategy is not None:
                strategy_by_path[pattern] = strategy
    if not strategy_by_path:
        strategy_by_path = dict(defaults.strategy_by_path)
    strategy_by_path.setdefault(CATCH_ALL_PATTERN, OwnershipStrategy.MIXED)

    custom_zones = data.get("customZones")
    if isinstance(custom_zones, dict):
        custom_zones = {
            path: [zone for zone in zones if isinstance(zone, str)]
            for path, zones in custom_zones.items()
            if isinstance(zones, list)
        }
    else:
        custom_zones = None

    raw_migrations = data.get("appliedMigrations")
    if isinstance(raw_migrations, list):
        applied_migrations = [m for m in raw_migrations if isinstance(m, str) and m]
    else:
        applied_migrations = list(defaults.applied_migrations)

    return TemplateManifest(
        template_id=template_id if isinstance(template_id, str) and template_id else defaults.template_id,
        current_version=(
            current_version
            if isinstance(current_version, str) and current_version
            else defaults.current_version
        ),
        strategy_by_path=strategy_by_path,
        last_applied_at=last_applied_at if isinstance(last_applied_at, str) else None,
        custom_zones=custom_zones,
        applied_migrations=applied_migrations,
    )


def record_apply(
    manifest: TemplateManifest,
    target_version: str,
    applied_at: str | None = None,
) -> TemplateManifest:
    """Return a copy of *manifest* marking a successful apply to *target_version*."""
    return replace(
        manifest,
        current_version=target_version,
        last_applied_at=applied_at or datetime.now(timezone.utc).isoformat(),
        applied_migrations=[
            *manifest.applied_migrations,
            f"{manifest.current_version}->{target_version}",
        ],
    )
