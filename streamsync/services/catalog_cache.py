"""Paginated, disk-hydrated catalog cache fed by remote JSON shards."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

import httpx
from pydantic import ValidationError

from ..categories import CategoryDescriptor
from ..concurrency import CancellationToken, yield_to_loop
from ..config import Settings
from ..models import LoadResult, MediaItem
from .blob_store import HydrationStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[], Any]


@dataclass(slots=True)
class CategoryState:
    """Consolidated items and paging cursor of one category."""

    items: list[MediaItem] = field(default_factory=list)
    positions: dict[str, int] = field(default_factory=dict)
    last_page: int = 0
    has_more: bool = True


@dataclass(slots=True)
class CachedPage:
    items: list[MediaItem]
    fetched_at: float


class CatalogCache:
    """Single source of truth for loaded catalog items.

    Lifecycle: construct, ``hydrate_from_disk()``, page in on demand or with
    ``start_background_loading()``, and ``clear_all_caches()`` to start over.
    Every public operation degrades to empty results instead of raising.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        store: HydrationStore | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._client = http_client
        self._store = store
        self._clock = clock
        self._categories: tuple[CategoryDescriptor, ...] = settings.category_definitions
        self._known_ids = frozenset(category.id for category in self._categories)
        base_url = str(settings.catalog_base_url)
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._shard_size = settings.shard_size

        self._states: dict[str, CategoryState] = {}
        self._pages: dict[tuple[str, int], CachedPage] = {}
        self._hydrated: set[str] = set()
        # Bumped by clear_all_caches() so responses from before a clear are dropped.
        self._generation = 0

        self._background_task: asyncio.Task[None] | None = None
        self._background_token: CancellationToken | None = None
        self._progress_callbacks: list[ProgressCallback] = []

    @property
    def categories(self) -> tuple[CategoryDescriptor, ...]:
        return self._categories

    @property
    def is_loading_in_background(self) -> bool:
        return self._background_task is not None and not self._background_task.done()

    # ------------------------------------------------------------------
    # Page fetching
    # ------------------------------------------------------------------

    async def fetch_category_page(
        self,
        category_id: str,
        page: int,
        *,
        token: CancellationToken | None = None,
    ) -> list[MediaItem]:
        """Return one page of a category, fetching and merging it if needed."""

        if category_id not in self._known_ids:
            logger.warning("Ignoring page request for unknown category %s", category_id)
            return []
        if page < 1:
            logger.warning("Ignoring invalid page %s for %s", page, category_id)
            return []

        cached = self._pages.get((category_id, page))
        if cached is not None and self._clock() - cached.fetched_at < self._settings.page_cache_ttl:
            return list(cached.items)

        generation = self._generation
        items = await self._request_page(category_id, page)
        if token is not None and token.cancelled:
            logger.debug("Discarding %s page %s after cancellation", category_id, page)
            return []
        if generation != self._generation:
            logger.debug("Discarding %s page %s fetched before a cache clear", category_id, page)
            return []
        if items is None:
            return []

        self._store_page(category_id, page, items)
        return list(items)

    async def load_next_page(self, category_id: str) -> LoadResult:
        """Fetch the page after the last known one (infinite scroll)."""

        if category_id not in self._known_ids:
            return LoadResult(items=[], has_more=False)
        state = self._state(category_id)
        if not state.has_more:
            return LoadResult(items=list(state.items), has_more=False)

        await self.fetch_category_page(category_id, state.last_page + 1)
        return LoadResult(items=list(state.items), has_more=state.has_more)

    async def load_all_previews(self) -> dict[str, list[MediaItem]]:
        """Load the first page of every category in small parallel batches."""

        result: dict[str, list[MediaItem]] = {}
        batch_size = self._settings.preview_batch_size

        async def _preview(category_id: str) -> tuple[str, list[MediaItem]]:
            existing = self.get_category_items(category_id)
            if existing:
                return category_id, existing
            return category_id, await self.fetch_category_page(category_id, 1)

        for start in range(0, len(self._categories), batch_size):
            batch = self._categories[start : start + batch_size]
            previews = await asyncio.gather(*(_preview(category.id) for category in batch))
            for category_id, items in previews:
                if items:
                    result[category_id] = items
        return result

    async def load_all_pages_for_category(self, category_id: str) -> list[MediaItem]:
        """Fetch pages until the category is exhausted or a page fails."""

        if category_id not in self._known_ids:
            return []
        state = self._state(category_id)
        while state.has_more:
            items = await self.fetch_category_page(category_id, state.last_page + 1)
            if not items:
                break
        return list(state.items)

    # ------------------------------------------------------------------
    # Background population
    # ------------------------------------------------------------------

    async def start_background_loading(
        self, on_progress: ProgressCallback | None = None
    ) -> None:
        """Fill remaining pages of every category, joining a run in progress.

        A run that was stopped but has not wound down yet is not joined; the
        new run starts once the stopped one has finished.
        """

        task = self._background_task
        token = self._background_token
        if task is None or task.done() or token is None or token.cancelled:
            previous = task if task is not None and not task.done() else None
            token = CancellationToken()
            callbacks: list[ProgressCallback] = []
            self._background_token = token
            self._progress_callbacks = callbacks
            task = asyncio.create_task(self._run_background(token, callbacks, previous))
            self._background_task = task
        else:
            logger.debug("Joining background catalog loading already in progress")

        if on_progress is not None:
            self._progress_callbacks.append(on_progress)

        await asyncio.shield(task)

    def stop_loading(self) -> None:
        """Ask the background loop to stop before its next page fetch."""

        if self._background_token is not None and not self._background_token.cancelled:
            logger.info("Stopping background catalog loading")
            self._background_token.cancel()

    async def _run_background(
        self,
        token: CancellationToken,
        callbacks: list[ProgressCallback],
        previous: asyncio.Task[None] | None = None,
    ) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        logger.info("Background catalog loading started")
        failed: set[str] = set()
        merged_pages = 0
        try:
            while not token.cancelled:
                pending = [
                    category.id
                    for category in self._categories
                    if category.id not in failed and self._state(category.id).has_more
                ]
                if not pending:
                    break

                for category_id in pending:
                    if token.cancelled:
                        break
                    state = self._state(category_id)
                    items = await self.fetch_category_page(
                        category_id, state.last_page + 1, token=token
                    )
                    if token.cancelled:
                        break
                    if not items:
                        if state.has_more:
                            # Failed fetch: no retries within this run.
                            failed.add(category_id)
                        continue
                    merged_pages += 1
                    self._notify_progress(callbacks)
                    if not await token.sleep(self._settings.background_page_delay):
                        break

                if not await token.sleep(self._settings.background_category_delay):
                    break
        except Exception:  # pragma: no cover - background safety net
            logger.exception("Background catalog loading crashed")
        finally:
            callbacks.clear()
            logger.info(
                "Background catalog loading finished: %s pages merged, %s items loaded%s",
                merged_pages,
                self.get_total_loaded_count(),
                " (stopped)" if token.cancelled else "",
            )

    @staticmethod
    def _notify_progress(callbacks: list[ProgressCallback]) -> None:
        for callback in list(callbacks):
            try:
                callback()
            except Exception:  # pragma: no cover - subscriber safety net
                logger.exception("Catalog progress callback failed")

    # ------------------------------------------------------------------
    # Disk hydration
    # ------------------------------------------------------------------

    async def hydrate_from_disk(self) -> bool:
        """Warm-start categories from the hydration store.

        Each category is read at most once per session and only while it has
        no items yet. Paging resumes from the saved cursor; a blob saved
        without one keeps ``has_more`` set. Returns ``True`` when anything
        was restored.
        """

        if self._store is None:
            return False

        pending = [
            category
            for category in self._categories
            if category.id not in self._hydrated and not self._state(category.id).items
        ]
        if not pending:
            return False

        restored_categories = 0
        restored_items = 0
        chunk_size = self._settings.hydration_chunk_size
        for start in range(0, len(pending), chunk_size):
            for category in pending[start : start + chunk_size]:
                self._hydrated.add(category.id)
                try:
                    stored = await self._store.load(category.id)
                except Exception:  # pragma: no cover - defensive logging branch
                    logger.exception("Hydration store failed for %s", category.id)
                    continue
                if stored is None or not stored.items:
                    continue
                items = self._parse_items(stored.items, category.id, offset=0)
                state = self._state(category.id)
                if not items or state.items:
                    continue
                self._merge(state, items)
                count = len(state.items)
                if stored.last_page:
                    state.last_page = stored.last_page
                else:
                    # Unknown cursor: re-fetching a seen page only refreshes it.
                    state.last_page = -(-count // self._shard_size)
                state.has_more = True if stored.has_more is None else stored.has_more
                restored_categories += 1
                restored_items += count
            await yield_to_loop()

        logger.info(
            "Hydration complete: %s categories, %s items restored",
            restored_categories,
            restored_items,
        )
        return restored_categories > 0

    # ------------------------------------------------------------------
    # Snapshots and search
    # ------------------------------------------------------------------

    def get_all_loaded_categories(self) -> dict[str, list[MediaItem]]:
        """Return a snapshot of every non-empty category in configured order."""

        return {
            category.id: list(self._states[category.id].items)
            for category in self._categories
            if category.id in self._states and self._states[category.id].items
        }

    def get_total_loaded_count(self) -> int:
        return sum(len(state.items) for state in self._states.values())

    def get_category_items(self, category_id: str) -> list[MediaItem]:
        state = self._states.get(category_id)
        return list(state.items) if state else []

    def category_has_more(self, category_id: str) -> bool:
        if category_id not in self._known_ids:
            return False
        return self._state(category_id).has_more

    def get_paging_state(self, category_id: str) -> tuple[int, bool]:
        """Return ``(last_page, has_more)`` so a saved blob can resume paging."""

        state = self._state(category_id)
        return state.last_page, state.has_more

    def get_media_by_id(self, media_id: str) -> MediaItem | None:
        for state in self._iter_states():
            position = state.positions.get(media_id)
            if position is not None:
                return state.items[position]
        return None

    def search_in_loaded_data(self, query: str) -> list[MediaItem]:
        """Case-insensitive title search over items already in memory."""

        normalized = query.strip().casefold()
        if not normalized:
            return []

        results: list[MediaItem] = []
        seen: set[str] = set()
        for state in self._iter_states():
            for item in state.items:
                if item.id in seen:
                    continue
                if normalized in item.display_title().casefold():
                    results.append(item)
                    seen.add(item.id)
        return results

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def invalidate_first_pages(self) -> None:
        """Force page 1 of every category to be re-fetched on next access."""

        for category in self._categories:
            self._pages.pop((category.id, 1), None)

    def clear_all_caches(self) -> None:
        """Drop every in-memory page, item and hydration marker."""

        self.stop_loading()
        self._generation += 1
        self._states.clear()
        self._pages.clear()
        self._hydrated.clear()
        logger.info("Catalog caches cleared")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _state(self, category_id: str) -> CategoryState:
        state = self._states.get(category_id)
        if state is None:
            state = CategoryState()
            self._states[category_id] = state
        return state

    def _iter_states(self) -> Iterable[CategoryState]:
        for category in self._categories:
            state = self._states.get(category.id)
            if state is not None:
                yield state

    def _shard_url(self, category_id: str, page: int) -> str:
        return f"{self._base_url}{category_id}-p{page}.json"

    async def _request_page(self, category_id: str, page: int) -> list[MediaItem] | None:
        """Return parsed page items, ``[]`` for an absent shard, ``None`` on failure."""

        url = self._shard_url(category_id, page)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch %s page %s: %s", category_id, page, exc)
            return None

        if response.status_code == 404:
            logger.debug("No shard for %s page %s", category_id, page)
            return []
        if response.status_code >= 400:
            logger.warning(
                "Shard fetch for %s page %s returned HTTP %s",
                category_id,
                page,
                response.status_code,
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Malformed shard JSON for %s page %s", category_id, page)
            return None
        if not isinstance(data, list):
            logger.warning("Unexpected shard structure for %s page %s", category_id, page)
            return None

        offset = (page - 1) * self._shard_size
        return self._parse_items(data, category_id, offset=offset)

    @staticmethod
    def _parse_items(
        payload: Iterable[Any], category_id: str, *, offset: int
    ) -> list[MediaItem]:
        items: list[MediaItem] = []
        for index, entry in enumerate(payload):
            if not isinstance(entry, dict):
                continue
            try:
                items.append(MediaItem.from_shard(entry, offset + index))
            except ValidationError as exc:
                logger.debug(
                    "Skipping malformed item %s of %s: %s", offset + index, category_id, exc
                )
        return items

    def _store_page(self, category_id: str, page: int, items: list[MediaItem]) -> None:
        state = self._state(category_id)
        self._pages[(category_id, page)] = CachedPage(items=items, fetched_at=self._clock())
        added = self._merge(state, items)
        if page >= state.last_page:
            state.has_more = len(items) >= self._shard_size
        if items and page > state.last_page:
            state.last_page = page
        logger.debug(
            "Merged %s page %s: %s new of %s items (has_more=%s)",
            category_id,
            page,
            added,
            len(items),
            state.has_more,
        )

    @staticmethod
    def _merge(state: CategoryState, items: Iterable[MediaItem]) -> int:
        added = 0
        for item in items:
            position = state.positions.get(item.id)
            if position is None:
                state.positions[item.id] = len(state.items)
                state.items.append(item)
                added += 1
            elif item.is_series():
                current = state.items[position]
                merged = current.merge_episodes(item)
                if merged is not current:
                    state.items[position] = merged
        return added
