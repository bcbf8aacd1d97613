from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CONGREGATE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    database_url: str = "sqlite+aiosqlite:///./congregate.db"

    # For local development
    auto_create_db: bool = False

    log_level: str = "INFO"
    log_json: bool = False
    log_http_requests: bool = True

    # Participation dashboard looks at this many most recent non-announcement meetings.
    dashboard_recent_meetings: int = 10

    # Safety cap on generated instances per recurrence template (one year of weekly meetings).
    max_instances_per_template: int = 52


def get_settings() -> Settings:
    return Settings()
