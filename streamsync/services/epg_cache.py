"""In-memory program-guide cache with single-flight fetches and fan-out."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable
from zoneinfo import ZoneInfo

import httpx

from ..concurrency import EventChannel, SingleFlight, Unsubscribe, yield_to_loop
from ..config import Settings
from ..models import CurrentProgram, EPGProgress, Program
from .epg_sources import PROVIDERS, EPGProvider, EPGSource, resolve_source

logger = logging.getLogger(__name__)


class EPGCache:
    """Per-channel schedules scraped from HTML guides.

    Entries are replaced wholesale on every successful fetch and are never
    persisted. Subscribers registered with :meth:`on_epg_update` receive the
    channel id after each successful fetch and must filter for themselves.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        providers: tuple[EPGProvider, ...] = PROVIDERS,
        now: Callable[[], datetime] | None = None,
    ):
        self._settings = settings
        self._client = http_client
        self._providers = providers
        self._tz = ZoneInfo(settings.epg_timezone)
        self._now = now or (lambda: datetime.now(self._tz))
        self._ttl = timedelta(seconds=settings.epg_cache_ttl)
        self._retention = timedelta(seconds=settings.epg_memory_retention)

        self._programs: dict[str, list[Program]] = {}
        self._fetched_at: dict[str, datetime] = {}
        self._in_flight: SingleFlight[str, tuple[list[Program], bool]] = SingleFlight()
        self._updates: EventChannel[str] = EventChannel("epg-update")
        self._progress: EventChannel[EPGProgress] = EventChannel("epg-progress")
        self._progress_total = 0
        self._progress_loaded = 0

    # ------------------------------------------------------------------
    # Source resolution
    # ------------------------------------------------------------------

    def resolve_source(self, channel_id: str) -> EPGSource | None:
        return resolve_source(channel_id, self._providers)

    def has_epg_mapping(self, channel_id: str) -> bool:
        return self.resolve_source(channel_id) is not None

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch_channel_epg(self, channel_id: str) -> list[Program]:
        """Refresh a channel's schedule unless it is unmapped or still fresh."""

        programs, _ = await self._load(channel_id)
        return programs

    async def prefetch_epg(self, channel_ids: Iterable[str]) -> None:
        """Fetch several channels at once, reporting batch progress."""

        async def _prefetch(channel_id: str) -> None:
            if not self.has_epg_mapping(channel_id):
                return
            programs, ok = await self._load(channel_id)
            if ok and programs:
                self._progress_loaded += 1
                total = max(self._progress_total, self._progress_loaded)
                self._progress.emit(EPGProgress(loaded=self._progress_loaded, total=total))

        await asyncio.gather(*(_prefetch(channel_id) for channel_id in channel_ids))

    async def _load(self, channel_id: str) -> tuple[list[Program], bool]:
        """Return the channel's programs and whether they are current."""

        source = self.resolve_source(channel_id)
        if source is None:
            return [], False
        if self.has_fresh_cache(channel_id):
            return self.get_channel_epg(channel_id), True
        return await self._in_flight.run(channel_id, lambda: self._fetch(channel_id, source))

    async def _fetch(self, channel_id: str, source: EPGSource) -> tuple[list[Program], bool]:
        previous = list(self._programs.get(channel_id, []))
        provider = source.provider

        try:
            response = await self._client.get(source.url)
        except httpx.HTTPError as exc:
            logger.warning(
                "EPG fetch for %s via %s failed: %s", channel_id, provider.name, exc
            )
            return previous, False
        if response.status_code >= 400:
            logger.warning(
                "EPG fetch for %s via %s returned HTTP %s",
                channel_id,
                provider.name,
                response.status_code,
            )
            return previous, False

        html = response.text
        if not provider.looks_valid(html):
            logger.warning("Unrecognised %s markup for %s", provider.name, channel_id)
            return previous, False

        # Let other tasks run before parsing a large page.
        await yield_to_loop()
        now = self._now()
        try:
            programs = provider.parse(html, channel_id, now=now)
        except Exception:  # pragma: no cover - defensive logging branch
            logger.exception("Failed to parse %s schedule for %s", provider.name, channel_id)
            return previous, False
        if not programs:
            logger.warning("No programs found in %s schedule for %s", provider.name, channel_id)
            return previous, False

        horizon = now + self._retention
        retained = [program for program in programs if program.start_time < horizon]
        if not retained:
            logger.warning(
                "Every %s program for %s starts after the retention window",
                provider.name,
                channel_id,
            )
            return previous, False
        self._programs[channel_id] = retained
        self._fetched_at[channel_id] = now
        logger.debug(
            "Cached %s programs for %s from %s", len(retained), channel_id, provider.name
        )
        self._updates.emit(channel_id)
        return retained, True

    # ------------------------------------------------------------------
    # Synchronous reads
    # ------------------------------------------------------------------

    def get_channel_epg(self, channel_id: str) -> list[Program]:
        return list(self._programs.get(channel_id, []))

    def get_current_program(self, channel_id: str) -> CurrentProgram | None:
        """Derive the airing program, the next one and progress from cache."""

        programs = self._programs.get(channel_id)
        if not programs:
            return None

        now = self._now()
        for index, program in enumerate(programs):
            if not program.contains(now):
                continue
            following = programs[index + 1] if index + 1 < len(programs) else None
            duration = (program.end_time - program.start_time).total_seconds()
            elapsed = (now - program.start_time).total_seconds()
            progress = min(100.0, max(0.0, elapsed / duration * 100)) if duration > 0 else 0.0
            remaining = round((program.end_time - now).total_seconds() / 60)
            return CurrentProgram(
                current=program, next=following, progress=progress, remaining=remaining
            )
        return None

    def has_epg(self, channel_id: str) -> bool:
        return bool(self._programs.get(channel_id))

    def has_fresh_cache(self, channel_id: str) -> bool:
        """Whether cached data is recent and still covers upcoming programs."""

        programs = self._programs.get(channel_id)
        fetched_at = self._fetched_at.get(channel_id)
        if not programs or fetched_at is None:
            return False
        now = self._now()
        if now - fetched_at >= self._ttl:
            return False
        upcoming = sum(1 for program in programs if program.end_time > now)
        return upcoming >= self._settings.epg_min_future_programs

    def is_fetching(self, channel_id: str) -> bool:
        return self._in_flight.in_flight(channel_id)

    def get_epg_stats(self) -> dict[str, Any]:
        return {
            "cached_channels": len(self._programs),
            "total_programs": sum(len(programs) for programs in self._programs.values()),
            "pending_fetches": len(self._in_flight),
        }

    # ------------------------------------------------------------------
    # Subscriptions and progress
    # ------------------------------------------------------------------

    def on_epg_update(self, callback: Callable[[str], Any]) -> Unsubscribe:
        return self._updates.subscribe(callback)

    def on_epg_progress(self, callback: Callable[[EPGProgress], Any]) -> Unsubscribe:
        return self._progress.subscribe(callback)

    def set_epg_total_channels(self, total: int) -> None:
        """Start a new progress batch of ``total`` channels."""

        self._progress_total = max(0, total)
        self._progress_loaded = 0

    def clear_epg_cache(self) -> None:
        self._programs.clear()
        self._fetched_at.clear()
        logger.info("EPG cache cleared")
