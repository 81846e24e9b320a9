"""Exception types raised by the template sync engine.

Convention:
- ``TemplateRootError`` is a configuration problem (missing or unreadable
  template root). ``status`` catches exactly this type and degrades to an
  "unavailable" summary instead of failing.
- ``TemplateFetchError`` wraps failures of the git transport used to fill
  the template cache.
- Conflicts are never exceptions; they are carried as data on planned
  changes and in apply results.
- Malformed persisted state never raises; the stores fall back to defaults.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for errors the sync engine raises deliberately."""


class TemplateRootError(SyncError):
    """Raised when the template root does not exist or cannot be read."""

    def __init__(self, template_root: str, reason: str = "not found or unreadable"):
        self.template_root = template_root
        super().__init__(f"Template root {template_root} is {reason}")


class TemplateFetchError(SyncError):
    """Raised when the template cache cannot be cloned or refreshed."""


class SnapshotNotFoundError(SyncError):
    """Raised when a rollback names a snapshot that does not exist."""

    def __init__(self, snapshot_id: str):
        self.snapshot_id = snapshot_id
        super().__init__(f"Snapshot '{snapshot_id}' not found")


class ApplyError(SyncError):
    """Raised after a failed apply has been rolled back.

    The underlying ``OSError`` is chained as ``__cause__``.
    """

    def __init__(self, message: str, snapshot_id: str):
        self.snapshot_id = snapshot_id
        super().__init__(f"{message} (workspace restored from snapshot {snapshot_id})")
