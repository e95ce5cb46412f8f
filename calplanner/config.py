"""
Configuration and settings for the planner backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

DEFAULT_MYSQL_PORT = 3306


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Listen address (PaaS platforms inject PORT)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)

    # Explicit SQLAlchemy URL, wins over both variable groups below
    database_url: Optional[str] = Field(default=None)

    # Manually configured MySQL connection
    db_host: Optional[str] = Field(default=None)
    db_user: Optional[str] = Field(default=None)
    db_pass: Optional[str] = Field(default=None)
    db_name: Optional[str] = Field(default=None)
    db_port: Optional[int] = Field(default=None)

    # Platform-injected MySQL connection
    mysql_host: Optional[str] = Field(default=None)
    mysql_user: Optional[str] = Field(default=None)
    mysql_password: Optional[str] = Field(default=None)
    mysql_database: Optional[str] = Field(default=None)
    mysql_port: Optional[int] = Field(default=None)

    db_timezone: str = Field(default="+08:00")

    # Frontend bundle served from the same process
    static_dir: str = Field(default="public")

    log_level: str = Field(default="INFO")


@dataclass(frozen=True)
class DbConfig:
    """A complete MySQL connection group picked from the environment."""

    host: str
    user: str
    password: str
    database: str
    port: int = DEFAULT_MYSQL_PORT
    source: str = "manual"

    def sqlalchemy_url(self) -> URL:
        return URL.create(
            "mysql+pymysql",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
            query={"charset": "utf8mb4"},
        )


def resolve_db_config(settings: Settings) -> Optional[DbConfig]:
    """
    Pick the first complete connection group.

    Manually set ``DB_*`` variables win over the ``MYSQL_*`` variables a
    hosting platform injects. Returns None when neither group is complete.
    """
    if settings.db_host and settings.db_user and settings.db_pass and settings.db_name:
        return DbConfig(
            host=settings.db_host,
            user=settings.db_user,
            password=settings.db_pass,
            database=settings.db_name,
            port=settings.db_port or settings.mysql_port or DEFAULT_MYSQL_PORT,
            source="manual",
        )
    if (
        settings.mysql_host
        and settings.mysql_user
        and settings.mysql_password
        and settings.mysql_database
    ):
        return DbConfig(
            host=settings.mysql_host,
            user=settings.mysql_user,
            password=settings.mysql_password,
            database=settings.mysql_database,
            port=settings.mysql_port or DEFAULT_MYSQL_PORT,
            source="platform",
        )
    return None


def database_target(settings: Settings) -> str | URL | None:
    """Return the URL the store should connect to, or None for offline mode."""
    if settings.database_url:
        return settings.database_url
    resolved = resolve_db_config(settings)
    if resolved is None:
        return None
    return resolved.sqlalchemy_url()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
