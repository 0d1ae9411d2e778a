"""Cancellable EPG prefetch policies that avoid request storms."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ..concurrency import CancellationToken
from .epg_cache import EPGCache

logger = logging.getLogger(__name__)


def window_around(channel_ids: Sequence[str], active_index: int, radius: int) -> list[str]:
    """Return channels within ``radius`` of the active index, nearest first."""

    if not channel_ids:
        return []
    active = min(max(active_index, 0), len(channel_ids) - 1)
    ordered = [channel_ids[active]]
    for distance in range(1, radius + 1):
        for index in (active + distance, active - distance):
            if 0 <= index < len(channel_ids):
                ordered.append(channel_ids[index])
    return ordered


class WindowedPrefetcher:
    """Sequential, delayed prefetch around the focused row of a schedule grid.

    Rows outside the window get a per-row fallback timer instead. ``cancel()``
    stops scheduling further fetches; a fetch already in flight completes
    and still lands in the cache.
    """

    def __init__(
        self,
        epg_cache: EPGCache,
        channel_ids: Sequence[str],
        *,
        radius: int,
        delay: float,
        fallback_delay: float,
    ):
        self._epg = epg_cache
        self._channel_ids = list(channel_ids)
        self._radius = radius
        self._delay = delay
        self._fallback_delay = fallback_delay
        self._token = CancellationToken()
        self._run_token: CancellationToken | None = None
        self._task: asyncio.Task[int] | None = None
        self._fallbacks: dict[str, asyncio.Task[None]] = {}

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def start(self, active_index: int) -> asyncio.Task[int] | None:
        """(Re)focus the window; any previous sweep stops before its next fetch."""

        if self._token.cancelled:
            logger.debug("Ignoring prefetch start on a cancelled prefetcher")
            return None
        if self._run_token is not None:
            self._run_token.cancel()
        run_token = CancellationToken()
        self._run_token = run_token
        targets = window_around(self._channel_ids, active_index, self._radius)
        self._task = asyncio.create_task(self._sweep(targets, run_token))
        return self._task

    def cancel(self) -> None:
        self._token.cancel()
        if self._run_token is not None:
            self._run_token.cancel()

    def schedule_row_fallback(self, channel_id: str, grace: float | None = None) -> None:
        """Fetch a row's channel later if nothing has cached it by then."""

        if self._token.cancelled or not self._epg.has_epg_mapping(channel_id):
            return
        existing = self._fallbacks.get(channel_id)
        if existing is not None and not existing.done():
            return
        delay = self._fallback_delay if grace is None else grace

        async def _fallback() -> None:
            try:
                if not await self._token.sleep(delay):
                    return
                if self._epg.has_epg(channel_id):
                    return
                logger.debug("Row fallback fetching EPG for %s", channel_id)
                await self._epg.fetch_channel_epg(channel_id)
            finally:
                if self._fallbacks.get(channel_id) is asyncio.current_task():
                    del self._fallbacks[channel_id]

        self._fallbacks[channel_id] = asyncio.create_task(_fallback())

    def cancel_row_fallback(self, channel_id: str) -> None:
        """Drop a pending row timer (the row left the screen)."""

        task = self._fallbacks.pop(channel_id, None)
        if task is not None and not task.done():
            task.cancel()

    async def wait(self) -> None:
        """Wait for the current sweep and any pending row timers."""

        pending: list[asyncio.Task] = list(self._fallbacks.values())
        if self._task is not None:
            pending.append(self._task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _sweep(self, targets: list[str], run_token: CancellationToken) -> int:
        fetched = 0
        for channel_id in targets:
            if run_token.cancelled:
                break
            if self._epg.has_epg(channel_id) or not self._epg.has_epg_mapping(channel_id):
                continue
            if fetched and not await run_token.sleep(self._delay):
                break
            await self._epg.fetch_channel_epg(channel_id)
            fetched += 1
        logger.debug("Prefetch sweep fetched %s of %s channels", fetched, len(targets))
        return fetched


class BatchPrefetcher:
    """Fetch every mapped channel in small batches with a pause in between."""

    def __init__(
        self,
        epg_cache: EPGCache,
        channel_ids: Sequence[str],
        *,
        batch_size: int,
        delay: float,
    ):
        self._epg = epg_cache
        self._channel_ids = list(channel_ids)
        self._batch_size = max(1, batch_size)
        self._delay = delay
        self._token = CancellationToken()
        self._task: asyncio.Task[None] | None = None

    def start(self) -> asyncio.Task[None]:
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return self._task

    def cancel(self) -> None:
        self._token.cancel()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        mapped = [
            channel_id
            for channel_id in self._channel_ids
            if self._epg.has_epg_mapping(channel_id)
        ]
        if not mapped:
            return
        self._epg.set_epg_total_channels(len(mapped))
        for start in range(0, len(mapped), self._batch_size):
            if self._token.cancelled:
                return
            await self._epg.prefetch_epg(mapped[start : start + self._batch_size])
            if not await self._token.sleep(self._delay):
                return
