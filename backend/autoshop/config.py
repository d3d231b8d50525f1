"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ---------------- DATABASE ----------------
    database_url: str = "sqlite+aiosqlite:///./autoshop.db"

    # ---------------- APP ----------------
    app_name: str = "Autoshop Scheduling"
    app_version: str = "0.1.0"
    debug: bool = False
    cors_origins: List[str] = []

    # ---------------- SCHEDULING ----------------
    # Reject transitions outside the lifecycle table unless forced.
    strict_status_transitions: bool = True
    # Reject overlapping technician slots unless forced. When off, overlaps
    # are only logged as warnings.
    block_on_conflict: bool = True

    # ---------------- REMOTE STORE CLIENT ----------------
    api_base_url: str = "http://localhost:8000"
    http_timeout_seconds: Optional[float] = None

    @computed_field
    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
