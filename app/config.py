"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .categories import CATEGORIES, CATEGORY_MAP, normalize_category


DEFAULT_CATEGORIES: tuple[str, ...] = tuple(definition.key for definition in CATEGORIES)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="ReelCache", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    youtube_api_key: str | None = Field(default=None, alias="YOUTUBE_API_KEY")

    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    youtube_api_url: HttpUrl = Field(
        default="https://www.googleapis.com/youtube/v3", alias="YOUTUBE_API_URL"
    )
    tmdb_category_path: str = Field(
        default="/discover/{category}", alias="TMDB_CATEGORY_PATH"
    )

    request_timeout_seconds: float = Field(
        default=15.0, alias="REQUEST_TIMEOUT", gt=0, le=300
    )
    connect_timeout_seconds: float = Field(
        default=5.0, alias="CONNECT_TIMEOUT", gt=0, le=60
    )
    max_concurrent_requests: int = Field(
        default=4, alias="MAX_CONCURRENT_REQUESTS", ge=1, le=64
    )

    catalog_categories: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_CATEGORIES, alias="CATALOG_CATEGORIES"
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./reelcache.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("catalog_categories", mode="before")
    @classmethod
    def _parse_categories(cls, value: object) -> tuple[str, ...]:
        """Normalise category selections from environment values."""

        if value is None:
            return DEFAULT_CATEGORIES
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("CATALOG_CATEGORIES must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            if not entry:
                continue
            key = normalize_category(entry)
            if key not in CATEGORY_MAP:
                raise ValueError("Unknown catalog categories configured")
            if key not in cleaned:
                cleaned.append(key)
        if not cleaned:
            return DEFAULT_CATEGORIES
        return tuple(cleaned)

    @field_validator("tmdb_category_path")
    @classmethod
    def _validate_category_path(cls, value: str) -> str:
        path = value.strip()
        if "{category}" not in path:
            raise ValueError("TMDB_CATEGORY_PATH must contain a {category} placeholder")
        if not path.startswith("/"):
            path = f"/{path}"
        return path

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
