"""Application settings loaded from environment variables and .env files.

Nested groups use a double underscore in env var names, e.g. DATABASE__URL or
BILIBILI__COOKIE. Everything has a sane default so the app and the test suite
start without any configuration at all.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = "sqlite+aiosqlite:///./data/bbsync.db"
    echo: bool = False
    pool_pre_ping: bool = True
    # Seconds a SQLite connection waits for the write lock before failing
    sqlite_busy_timeout: float = Field(default=30.0, gt=0)
    # Pool settings only apply to server databases (PostgreSQL etc.)
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class BilibiliSettings(BaseModel):
    """Settings for the Bilibili web API client."""

    base_url: str = "https://api.bilibili.com"
    user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )
    # Raw Cookie header value (SESSDATA etc.). Private folders need it.
    cookie: str | None = None
    timeout: float = 15.0
    # Bilibili caps the favorite list endpoint at 40 items per page
    page_size: int = Field(default=40, ge=1, le=40)
    collection_page_size: int = Field(default=20, ge=1)
    # Upper bound for the favorite page walk. None means "until has_more is false".
    max_favorite_pages: int | None = Field(default=None, ge=1)


class Settings(BaseSettings):
    """Top-level application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "bbsync"
    log_level: str = "INFO"
    json_logs: bool = False
    # Max in-app notifications kept in memory
    notification_history: int = Field(default=100, ge=1)

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    bilibili: BilibiliSettings = Field(default_factory=BilibiliSettings)

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite database file path, or None for other backends."""
        url = self.database.url
        if not url.startswith("sqlite") or ":memory:" in url:
            return None
        _, _, path = url.partition(":///")
        return Path(path) if path else None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
