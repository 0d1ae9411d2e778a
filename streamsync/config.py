"""Engine configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .categories import CATEGORIES, CategoryDescriptor


DEFAULT_CATEGORY_IDS: tuple[str, ...] = tuple(category.id for category in CATEGORIES)

DEFAULT_CATALOG_BASE_URL = (
    "https://raw.githubusercontent.com/gabrielsaimo/free-tv/main/public/data/enriched/"
)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="streamsync", alias="APP_NAME")

    catalog_base_url: HttpUrl = Field(
        default=DEFAULT_CATALOG_BASE_URL, alias="CATALOG_BASE_URL"
    )
    catalog_categories: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_CATEGORY_IDS, alias="CATALOG_CATEGORIES"
    )
    shard_size: int = Field(default=50, alias="CATALOG_SHARD_SIZE", ge=1, le=10_000)
    page_cache_ttl: float = Field(default=600.0, alias="CATALOG_PAGE_CACHE_TTL", ge=0)
    preview_batch_size: int = Field(default=4, alias="CATALOG_PREVIEW_BATCH", ge=1, le=32)
    hydration_chunk_size: int = Field(
        default=5, alias="CATALOG_HYDRATION_CHUNK", ge=1, le=100
    )
    background_page_delay: float = Field(
        default=0.2, alias="BACKGROUND_PAGE_DELAY", ge=0
    )
    background_category_delay: float = Field(
        default=0.15, alias="BACKGROUND_CATEGORY_DELAY", ge=0
    )

    epg_cache_ttl: float = Field(
        default=7 * 24 * 3_600, alias="EPG_CACHE_TTL", ge=60
    )
    epg_memory_retention: float = Field(
        default=24 * 3_600, alias="EPG_MEMORY_RETENTION", ge=3_600
    )
    epg_min_future_programs: int = Field(
        default=3, alias="EPG_MIN_FUTURE_PROGRAMS", ge=0, le=100
    )
    epg_timezone: str = Field(default="America/Sao_Paulo", alias="EPG_TIMEZONE")
    epg_prefetch_radius: int = Field(default=8, alias="EPG_PREFETCH_RADIUS", ge=0)
    epg_prefetch_delay: float = Field(default=0.15, alias="EPG_PREFETCH_DELAY", ge=0)
    epg_row_fallback_delay: float = Field(
        default=4.0, alias="EPG_ROW_FALLBACK_DELAY", ge=0
    )
    epg_batch_size: int = Field(default=3, alias="EPG_BATCH_SIZE", ge=1, le=50)
    epg_batch_delay: float = Field(default=0.05, alias="EPG_BATCH_DELAY", ge=0)

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    trending_language: str = Field(default="pt-BR", alias="TRENDING_LANGUAGE")
    trending_pages: int = Field(default=5, alias="TRENDING_PAGES", ge=1, le=20)
    trending_cache_ttl: float = Field(default=1_800, alias="TRENDING_CACHE_TTL", ge=0)

    search_debounce: float = Field(default=0.3, alias="SEARCH_DEBOUNCE", ge=0)
    search_max_results: int = Field(
        default=200, alias="SEARCH_MAX_RESULTS", ge=1, le=10_000
    )

    http_timeout: float | None = Field(default=None, alias="HTTP_TIMEOUT", gt=0)

    database_url: str = Field(
        default="sqlite+aiosqlite:///./streamsync.db", alias="DATABASE_URL"
    )

    @field_validator("catalog_categories", mode="before")
    @classmethod
    def _parse_catalog_categories(cls, value: object) -> tuple[str, ...]:
        """Normalise category selections from environment values."""

        if value is None:
            return DEFAULT_CATEGORY_IDS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("CATALOG_CATEGORIES must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            category_id = entry.lower()
            if not category_id:
                continue
            if category_id not in DEFAULT_CATEGORY_IDS:
                raise ValueError("Unknown catalog categories configured")
            if category_id not in cleaned:
                cleaned.append(category_id)
        if not cleaned:
            return DEFAULT_CATEGORY_IDS
        return tuple(cleaned)

    @property
    def category_definitions(self) -> tuple[CategoryDescriptor, ...]:
        """Return the selected categories in configuration order."""

        definition_map = {category.id: category for category in CATEGORIES}
        return tuple(definition_map[key] for key in self.catalog_categories)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]
