"""Stateless filter, sort and dedup helpers over catalog snapshots."""

from __future__ import annotations

import locale
from typing import Iterable, Literal, Sequence

from ..models import MediaItem

SortKey = Literal["rating", "year", "name", "popularity"]

_TYPE_ALIASES = {"tv": "series"}


def _normalized_title(item: MediaItem) -> str:
    return (item.display_title() or "").strip().lower()


def deduplicate_media(items: Iterable[MediaItem]) -> list[MediaItem]:
    """Drop repeated ids and repeated titles, keeping the first occurrence."""

    seen_ids: set[str] = set()
    seen_titles: set[str] = set()
    unique: list[MediaItem] = []

    for item in items:
        if item.id in seen_ids:
            continue
        title = _normalized_title(item)
        if title and title in seen_titles:
            continue
        seen_ids.add(item.id)
        if title:
            seen_titles.add(title)
        unique.append(item)
    return unique


def deduplicate_by_name(items: Iterable[MediaItem]) -> list[MediaItem]:
    """Drop items whose normalised title was already seen."""

    seen: set[str] = set()
    unique: list[MediaItem] = []
    for item in items:
        title = _normalized_title(item)
        if title in seen:
            continue
        seen.add(title)
        unique.append(item)
    return unique


def search_media(query: str, items: Sequence[MediaItem]) -> list[MediaItem]:
    """Title search over an explicit item list.

    A blank query returns the whole list without title duplicates.
    """

    normalized = query.strip().casefold()
    if not normalized:
        return deduplicate_by_name(items)
    matches = [item for item in items if normalized in item.display_title().casefold()]
    return deduplicate_by_name(matches)


def filter_media(
    items: Iterable[MediaItem],
    type: str | None = None,
    genre: str | None = None,
    year: str | int | None = None,
) -> list[MediaItem]:
    """Keep items matching every supplied criterion."""

    wanted_type = _TYPE_ALIASES.get(type, type) if type else None
    wanted_year = str(year) if year not in (None, "") else None

    def _matches(item: MediaItem) -> bool:
        if wanted_type and item.type != wanted_type:
            return False
        if genre and (item.tmdb is None or genre not in item.tmdb.genres):
            return False
        if wanted_year and (item.tmdb is None or item.tmdb.year != wanted_year):
            return False
        return True

    return [item for item in items if _matches(item)]


def sort_media(items: Iterable[MediaItem], key: SortKey | str = "rating") -> list[MediaItem]:
    """Return a new, stably sorted list; the input is left untouched."""

    ordered = list(items)
    if key == "rating":
        ordered.sort(key=lambda item: item.tmdb.rating if item.tmdb else 0.0, reverse=True)
    elif key == "year":
        ordered.sort(
            key=lambda item: (item.tmdb.year if item.tmdb and item.tmdb.year else "0"),
            reverse=True,
        )
    elif key == "name":
        ordered.sort(key=lambda item: locale.strxfrm(item.display_title()))
    elif key == "popularity":
        ordered.sort(
            key=lambda item: (item.tmdb.popularity or 0.0) if item.tmdb else 0.0,
            reverse=True,
        )
    return ordered


def get_all_genres(items: Iterable[MediaItem]) -> list[str]:
    genres: set[str] = set()
    for item in items:
        if item.tmdb:
            genres.update(item.tmdb.genres)
    return sorted(genres)


def get_all_years(items: Iterable[MediaItem]) -> list[str]:
    years = {item.tmdb.year for item in items if item.tmdb and item.tmdb.year}
    return sorted(years, reverse=True)


def get_media_by_actor(actor_id: int, items: Iterable[MediaItem]) -> list[MediaItem]:
    """Return items whose cast credits the given TMDB person id."""

    return [
        item
        for item in items
        if item.tmdb and any(member.id == actor_id for member in item.tmdb.cast)
    ]


def is_series(item: MediaItem) -> bool:
    return item.is_series()
