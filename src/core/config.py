"""
Configuration management with pydantic-settings.

All environment variables are validated at startup. A malformed value
fails immediately with a clear message (fail-fast).
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── HTTP ──────────────────────────────────────────────────────────
    request_timeout: float = Field(
        default=30.0,
        description="Seconds before a page fetch is abandoned.",
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/121.0.0.0 Safari/537.36"
        ),
    )
    impersonate: str = Field(
        default="chrome120",
        description="curl_cffi browser fingerprint to impersonate.",
    )
    accept_language: str = Field(default="zh-CN,zh;q=0.9,en;q=0.8")

    # ── Extraction ────────────────────────────────────────────────────
    default_timezone_offset: str = Field(
        default="+0800",
        description="Offset applied when a site definition does not declare one.",
    )

    # ── Logging ───────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")


class SiteConfig(BaseModel):
    """Per-site runtime configuration (credentials and overrides)."""

    id: str
    name: str = ""
    base_url: str = ""
    cookie: str = ""


# Singleton instance — import this everywhere
settings = Settings()
