"""Debounced live search over items already loaded in the catalog cache."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..concurrency import Debouncer
from ..models import MediaItem
from . import media
from .catalog_cache import CatalogCache

logger = logging.getLogger(__name__)

ResultsCallback = Callable[[list[MediaItem]], Any]


class LiveSearch:
    """Search-as-you-type controller.

    Every keystroke restarts the debounce timer; only the last query runs.
    Results are delivered through ``on_results`` and kept in :attr:`results`.
    """

    def __init__(
        self,
        catalog_cache: CatalogCache,
        *,
        debounce: float,
        max_results: int,
        on_results: ResultsCallback | None = None,
    ):
        self._catalog = catalog_cache
        self._max_results = max_results
        self._on_results = on_results
        self._debouncer = Debouncer(debounce, self._run)
        self._query = ""
        self._type: str | None = None
        self._genre: str | None = None
        self._sort_key: str | None = None
        self.results: list[MediaItem] = []

    @property
    def query(self) -> str:
        return self._query

    @property
    def searching(self) -> bool:
        return self._debouncer.pending

    def set_filters(self, *, type: str | None = None, genre: str | None = None) -> None:
        self._type = type
        self._genre = genre

    def set_sort(self, key: str | None) -> None:
        self._sort_key = key

    def update_query(self, text: str) -> None:
        self._query = text
        if not text.strip():
            self._debouncer.cancel()
            self._publish([])
            return
        self._debouncer.trigger(text)

    def cancel(self) -> None:
        self._debouncer.cancel()

    async def wait(self) -> None:
        await self._debouncer.wait()

    def _run(self, text: str) -> None:
        matches = self._catalog.search_in_loaded_data(text)
        if self._type or self._genre:
            matches = media.filter_media(matches, type=self._type, genre=self._genre)
        if self._sort_key:
            matches = media.sort_media(matches, self._sort_key)
        logger.debug("Search %r matched %s items", text, len(matches))
        self._publish(matches[: self._max_results])

    def _publish(self, results: list[MediaItem]) -> None:
        self.results = results
        if self._on_results is not None:
            self._on_results(list(results))
