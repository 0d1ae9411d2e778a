"""Trending overlay joining TMDB trending ids against the loaded catalog."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Literal

import httpx

from ..config import Settings
from ..models import MediaItem
from .catalog_cache import CatalogCache

logger = logging.getLogger(__name__)

Period = Literal["day", "week"]


@dataclass(slots=True)
class TrendingSlot:
    """Cached trending ids for one period."""

    ids: list[int] = field(default_factory=list)
    fetched_at: float | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def is_fresh(self, now: float, ttl: float) -> bool:
        return self.fetched_at is not None and now - self.fetched_at < ttl

    def reset(self) -> None:
        self.ids = []
        self.fetched_at = None


class TrendingOverlay:
    """Expose TMDB's trending lists restricted to items already in memory.

    Only ids are cached; the join with catalog items happens on every read so
    items loaded after the last refresh show up without refetching.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        catalog_cache: CatalogCache,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._client = http_client
        self._catalog = catalog_cache
        self._clock = clock
        self._slots: dict[Period, TrendingSlot] = {
            "day": TrendingSlot(),
            "week": TrendingSlot(),
        }

    async def get_trending_today(self) -> list[MediaItem]:
        return self._join(await self._trending_ids("day"))

    async def get_trending_week(self) -> list[MediaItem]:
        return self._join(await self._trending_ids("week"))

    async def get_all_trending(self) -> dict[Period, list[MediaItem]]:
        today, week = await asyncio.gather(
            self.get_trending_today(), self.get_trending_week()
        )
        return {"day": today, "week": week}

    def clear_trending_cache(self) -> None:
        for slot in self._slots.values():
            slot.reset()
        logger.info("Trending cache cleared")

    async def _trending_ids(self, period: Period) -> list[int]:
        if not self._settings.tmdb_api_key:
            logger.warning("TMDB API key not configured; trending %s unavailable", period)
            return []

        slot = self._slots[period]
        ttl = self._settings.trending_cache_ttl
        if slot.is_fresh(self._clock(), ttl):
            return list(slot.ids)

        async with slot.lock:
            # Another caller may have refreshed while we waited for the lock.
            if slot.is_fresh(self._clock(), ttl):
                return list(slot.ids)

            pages = await asyncio.gather(
                *(
                    self._fetch_page(period, page)
                    for page in range(1, self._settings.trending_pages + 1)
                )
            )
            ids = [tmdb_id for page in pages for tmdb_id in page]
            if not ids:
                logger.warning("Trending %s returned no results; will retry on next read", period)
                return []

            slot.ids = ids
            slot.fetched_at = self._clock()
            logger.info("Cached %s trending ids for %s", len(ids), period)
            return list(ids)

    async def _fetch_page(self, period: Period, page: int) -> list[int]:
        params = {
            "api_key": self._settings.tmdb_api_key,
            "language": self._settings.trending_language,
            "page": page,
        }
        url = f"{str(self._settings.tmdb_api_url).rstrip('/')}/trending/all/{period}"
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Trending %s page %s failed: %s", period, page, exc)
            return []
        if response.status_code >= 400:
            logger.warning(
                "Trending %s page %s returned HTTP %s", period, page, response.status_code
            )
            return []
        try:
            data = response.json()
        except ValueError:
            logger.warning("Malformed trending payload for %s page %s", period, page)
            return []

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        return [
            entry["id"]
            for entry in results
            if isinstance(entry, dict) and isinstance(entry.get("id"), int)
        ]

    def _join(self, ids: list[int]) -> list[MediaItem]:
        if not ids:
            return []

        by_tmdb_id: dict[int, MediaItem] = {}
        for items in self._catalog.get_all_loaded_categories().values():
            for item in items:
                if item.tmdb is None or item.tmdb.id is None:
                    continue
                by_tmdb_id.setdefault(item.tmdb.id, item)

        joined: list[MediaItem] = []
        seen: set[str] = set()
        for tmdb_id in ids:
            item = by_tmdb_id.get(tmdb_id)
            if item is None or item.id in seen:
                continue
            seen.add(item.id)
            joined.append(item)
        return joined
