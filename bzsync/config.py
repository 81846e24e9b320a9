"""Tool configuration loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """Template sync settings.

    Every field can be overridden with a ``BZSYNC_``-prefixed environment
    variable, e.g. ``BZSYNC_TEMPLATE_BRANCH=next``.
    """

    model_config = SettingsConfigDict(
        env_prefix="BZSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Upstream template
    template_repository: str = "https://github.com/V473r10/beztack.git"
    template_branch: str = "main"
    cache_ttl_hours: float = Field(default=24, ge=0)

    # Manifest defaults
    default_template_id: str = "beztack-core"
    default_version: str = "0.0.0"

    # Inspect viewer
    inspect_host: str = "127.0.0.1"
    inspect_port: int = Field(default=3434, ge=0, le=65535)


@lru_cache
def get_settings() -> SyncSettings:
    """Return the settings for this process, read once."""
    return SyncSettings()
