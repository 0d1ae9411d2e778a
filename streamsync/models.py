"""Pydantic models describing catalog and program-guide payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MediaType = Literal["movie", "series"]

OVERVIEW_MAX_LENGTH = 300
MAX_GENRES = 3
UNTITLED = "Untitled"


class CastMember(BaseModel):
    """Actor credited on an enriched media item."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    character: str = ""
    photo: str | None = None


class Episode(BaseModel):
    """Playable episode of a series season."""

    model_config = ConfigDict(frozen=True)

    episode: int
    name: str = ""
    url: str = ""
    id: str = ""
    logo: str | None = None


class MediaDetails(BaseModel):
    """TMDB enrichment block attached to catalog entries."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int | None = None
    imdb_id: str | None = Field(default=None, alias="imdbId")
    title: str = ""
    original_title: str | None = Field(default=None, alias="originalTitle")
    tagline: str | None = None
    overview: str = ""
    status: str | None = None
    language: str | None = None
    release_date: str | None = Field(default=None, alias="releaseDate")
    year: str = ""
    runtime: int | None = None
    rating: float = 0.0
    vote_count: int | None = Field(default=None, alias="voteCount")
    popularity: float | None = None
    certification: str | None = None
    genres: list[str] = Field(default_factory=list)
    poster: str = ""
    poster_hd: str | None = Field(default=None, alias="posterHD")
    backdrop: str | None = None
    backdrop_hd: str | None = Field(default=None, alias="backdropHD")
    logo: str | None = None
    cast: list[CastMember] = Field(default_factory=list)

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("rating", mode="before")
    @classmethod
    def _coerce_rating(cls, value: object) -> object:
        return 0.0 if value is None else value


class MediaItem(BaseModel):
    """A movie or series entry from a catalog shard."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = UNTITLED
    url: str = ""
    category: str = ""
    type: MediaType = "movie"
    is_adult: bool = Field(
        default=False, validation_alias=AliasChoices("is_adult", "isAdult")
    )
    tmdb: MediaDetails | None = None
    episodes: dict[str, list[Episode]] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: object) -> object:
        if value in (None, ""):
            return "movie"
        if value == "tv":
            return "series"
        return value

    @classmethod
    def from_shard(cls, data: dict[str, Any], index: int) -> "MediaItem":
        """Build an item from a raw shard object, filling the usual gaps."""

        payload = {**data}
        payload["id"] = str(payload.get("id") or f"item-{index}")
        payload["name"] = payload.get("name") or UNTITLED
        payload["url"] = payload.get("url") or ""
        payload["category"] = payload.get("category") or ""

        raw_details = payload.get("tmdb")
        if isinstance(raw_details, dict):
            details = {**raw_details}
            details["title"] = details.get("title") or payload["name"]
            details["overview"] = (details.get("overview") or "")[:OVERVIEW_MAX_LENGTH]
            details["genres"] = list(details.get("genres") or [])[:MAX_GENRES]
            details["cast"] = [
                member for member in details.get("cast") or [] if isinstance(member, dict)
            ]
            details["poster"] = details.get("poster") or ""
            payload["tmdb"] = details
        else:
            payload["tmdb"] = None

        return cls.model_validate(payload)

    def display_title(self) -> str:
        """Return the enriched title, falling back to the shard name."""

        if self.tmdb and self.tmdb.title:
            return self.tmdb.title
        return self.name

    def is_series(self) -> bool:
        return bool(self.episodes)

    def merge_episodes(self, other: "MediaItem") -> "MediaItem":
        """Return a copy holding the union of both episode maps."""

        if not (self.episodes and other.episodes):
            return self

        merged = {season: list(episodes) for season, episodes in self.episodes.items()}
        changed = False
        for season, episodes in other.episodes.items():
            existing = merged.get(season)
            if existing is None:
                merged[season] = list(episodes)
                changed = True
                continue
            known = {episode.episode for episode in existing}
            for episode in episodes:
                if episode.episode not in known:
                    existing.append(episode)
                    known.add(episode.episode)
                    changed = True
            existing.sort(key=lambda episode: episode.episode)

        if not changed:
            return self
        return self.model_copy(update={"episodes": merged})


class Channel(BaseModel):
    """Live TV channel loaded from static configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    url: str = ""
    category: str = ""
    logo: str | None = None
    channel_number: int | None = Field(
        default=None, validation_alias=AliasChoices("channel_number", "channelNumber")
    )


class Program(BaseModel):
    """Single scheduled program on a channel."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str | None = None
    category: str | None = None
    start_time: datetime
    end_time: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start_time <= moment < self.end_time


class CurrentProgram(BaseModel):
    """What is airing now on a channel, derived from cached programs."""

    current: Program
    next: Program | None = None
    progress: float = Field(ge=0, le=100)
    remaining: int


@dataclass(slots=True)
class LoadResult:
    """Consolidated items of a category and whether more pages remain."""

    items: list[MediaItem]
    has_more: bool


@dataclass(frozen=True, slots=True)
class EPGProgress:
    """Payload of the coarse EPG batch progress channel."""

    loaded: int
    total: int
