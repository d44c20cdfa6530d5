"""
Centralised settings loader.

Every value can be overridden through the environment (or a local `.env`),
e.g. ``DATABASE_URL=postgresql+asyncpg://…`` or ``SCHEDULER_ENABLED=false``.
"""

from __future__ import annotations
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime / DB ────────────────────────────────────────────────
    env_name: str = "local"
    database_url: str = "sqlite+aiosqlite:///./mensa.db"
    log_level: str = "INFO"

    # ─── upstream OpenMensa feed ─────────────────────────────────────
    feed_base_url: str = "https://cvzi.github.io/mensahd/feed"
    meta_base_url: str = "https://cvzi.github.io/mensahd/meta"
    feed_timeout_seconds: float = Field(10.0, gt=0)

    # ─── scheduling (venue civil time) ───────────────────────────────
    timezone: str = "Europe/Berlin"
    meal_refresh_cron: str = "5 0 * * *"   # 00:05, after the feed refreshes
    scheduler_enabled: bool = True
    refresh_on_startup: bool = True

    # allow other teammates’ env-vars without crashing
    model_config = SettingsConfigDict(
        extra="ignore", env_file=".env", env_file_encoding="utf-8"
    )


# ------------------------------------------------------------------ #
#  Cached singleton accessor
# ------------------------------------------------------------------ #
@lru_cache
def _cached() -> _Settings:  # pragma: no cover
    return _Settings()  # type: ignore[call-arg]


settings: _Settings = _cached()
