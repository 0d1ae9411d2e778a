"""Composition root wiring every sync component from one ``Settings``."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import Any, Sequence

import httpx

from .config import Settings, get_settings
from .database import Database
from .services.blob_store import DatabaseBlobStore
from .services.catalog_cache import CatalogCache
from .services.epg_cache import EPGCache
from .services.prefetch import BatchPrefetcher, WindowedPrefetcher
from .services.search import LiveSearch, ResultsCallback
from .services.trending import TrendingOverlay

logger = logging.getLogger(__name__)

USER_AGENT = "streamsync/1.0 (+https://github.com/streamsync)"


class SyncEngine:
    """Own the HTTP clients, database handle and the three caches.

    Use as ``async with SyncEngine(settings) as engine:``; the clients and the
    database are released on exit.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._exit_stack: AsyncExitStack | None = None
        self._database: Database | None = None
        self.blob_store: DatabaseBlobStore | None = None
        self._catalog: CatalogCache | None = None
        self._epg: EPGCache | None = None
        self._trending: TrendingOverlay | None = None

    async def __aenter__(self) -> "SyncEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def catalog(self) -> CatalogCache:
        if self._catalog is None:
            raise RuntimeError("SyncEngine not started")
        return self._catalog

    @property
    def epg(self) -> EPGCache:
        if self._epg is None:
            raise RuntimeError("SyncEngine not started")
        return self._epg

    @property
    def trending(self) -> TrendingOverlay:
        if self._trending is None:
            raise RuntimeError("SyncEngine not started")
        return self._trending

    async def start(self) -> None:
        if self._exit_stack is not None:
            return
        settings = self.settings
        exit_stack = AsyncExitStack()
        timeout = httpx.Timeout(settings.http_timeout)
        headers = {"User-Agent": USER_AGENT}

        catalog_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(timeout=timeout, headers=headers, follow_redirects=True)
        )
        epg_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(timeout=timeout, headers=headers, follow_redirects=True)
        )
        tmdb_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.tmdb_api_url), timeout=timeout, headers=headers
            )
        )

        database = Database(settings.database_url)
        await database.create_all()
        exit_stack.push_async_callback(database.dispose)

        self._database = database
        self.blob_store = DatabaseBlobStore(database.session_factory)
        self._catalog = CatalogCache(settings, catalog_client, self.blob_store)
        self._epg = EPGCache(settings, epg_client)
        self._trending = TrendingOverlay(settings, tmdb_client, self._catalog)
        self._exit_stack = exit_stack
        logger.info("%s sync engine started", settings.app_name)

    async def close(self) -> None:
        if self._exit_stack is None:
            return
        if self._catalog is not None:
            self._catalog.stop_loading()
        exit_stack, self._exit_stack = self._exit_stack, None
        await exit_stack.aclose()
        logger.info("Sync engine closed")

    async def hydrate(self) -> bool:
        return await self.catalog.hydrate_from_disk()

    async def persist_loaded_categories(self) -> int:
        """Write every loaded category to the blob store for the next warm start."""

        if self.blob_store is None:
            raise RuntimeError("SyncEngine not started")
        loaded = self.catalog.get_all_loaded_categories()
        for category_id, items in loaded.items():
            last_page, has_more = self.catalog.get_paging_state(category_id)
            await self.blob_store.save(
                category_id, items, last_page=last_page, has_more=has_more
            )
        logger.info("Persisted %s categories for warm start", len(loaded))
        return len(loaded)

    def clear(self) -> None:
        """Drop every in-memory cache (catalog, program guide and trending)."""

        self.catalog.clear_all_caches()
        self.epg.clear_epg_cache()
        self.trending.clear_trending_cache()

    def windowed_prefetcher(self, channel_ids: Sequence[str]) -> WindowedPrefetcher:
        return WindowedPrefetcher(
            self.epg,
            channel_ids,
            radius=self.settings.epg_prefetch_radius,
            delay=self.settings.epg_prefetch_delay,
            fallback_delay=self.settings.epg_row_fallback_delay,
        )

    def batch_prefetcher(self, channel_ids: Sequence[str]) -> BatchPrefetcher:
        return BatchPrefetcher(
            self.epg,
            channel_ids,
            batch_size=self.settings.epg_batch_size,
            delay=self.settings.epg_batch_delay,
        )

    def live_search(self, on_results: ResultsCallback | None = None) -> LiveSearch:
        return LiveSearch(
            self.catalog,
            debounce=self.settings.search_debounce,
            max_results=self.settings.search_max_results,
            on_results=on_results,
        )
