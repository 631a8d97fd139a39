"""
Process settings for the feed serving app.
All values can be overridden via SLOTFEED_* environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ServingSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SLOTFEED_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # ── Data ───────────────────────────────────────────────────────────────
    data_dir: str = "data"

    # ── Feed ───────────────────────────────────────────────────────────────
    default_slot_count: int = 15
    max_slot_count: int = 50
    seed: Optional[int] = None           # fixed seed for reproducible feeds
    profile_cache_ttl_seconds: float = 300.0
    signal_timeout_seconds: float = 0.5

    # ── Server ─────────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"


settings = ServingSettings()
