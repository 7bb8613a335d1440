"""
Centralised settings loader.

Every field maps to the upper-cased environment variable of the same
name (``DATABASE_URL``, ``JWT_SECRET`` …) and may also come from `.env`.
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
    env_name: str = Field("local")
    database_url: str | None = Field(None)
    cloud_sql_connection_name: str | None = Field(None)
    db_user: str | None = Field(None)
    db_pass: str | None = Field(None)
    db_name: str | None = Field(None)

    # ─── sessions ───────────────────────────────────────────────────
    jwt_secret: str = Field("changeme-set-JWT_SECRET-in-production")
    session_ttl_minutes: int = Field(60 * 24 * 30)

    # ─── day window / logging ───────────────────────────────────────
    local_timezone: str | None = Field(None, description="IANA name, e.g. Europe/Rome")
    log_level: str = Field("INFO")

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
