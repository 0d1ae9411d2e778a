"""Tests for the windowed and batched EPG prefetch policies."""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable

import pytest

from streamsync.services.prefetch import BatchPrefetcher, WindowedPrefetcher, window_around

CHANNELS = [f"ch{index}" for index in range(10)]


class FakeEPG:
    """Records fetches; every fetch caches the channel once it completes."""

    def __init__(self, mapped: Iterable[str], cached: Iterable[str] = ()):
        self.mapped = set(mapped)
        self.cached = set(cached)
        self.fetched: list[str] = []
        self.batches: list[list[str]] = []
        self.totals: list[int] = []
        self.on_fetch: Callable[[str], None] | None = None

    def has_epg_mapping(self, channel_id: str) -> bool:
        return channel_id in self.mapped

    def has_epg(self, channel_id: str) -> bool:
        return channel_id in self.cached

    async def fetch_channel_epg(self, channel_id: str) -> list[str]:
        self.fetched.append(channel_id)
        if self.on_fetch is not None:
            self.on_fetch(channel_id)
        await asyncio.sleep(0)
        self.cached.add(channel_id)
        return [channel_id]

    def set_epg_total_channels(self, total: int) -> None:
        self.totals.append(total)

    async def prefetch_epg(self, channel_ids: Iterable[str]) -> None:
        batch = list(channel_ids)
        self.batches.append(batch)
        for channel_id in batch:
            await self.fetch_channel_epg(channel_id)


def build_prefetcher(epg: FakeEPG, radius: int = 2) -> WindowedPrefetcher:
    return WindowedPrefetcher(epg, CHANNELS, radius=radius, delay=0, fallback_delay=0)


def test_window_is_ordered_nearest_first() -> None:
    assert window_around(CHANNELS, 4, 2) == ["ch4", "ch5", "ch3", "ch6", "ch2"]
    assert window_around(CHANNELS, 0, 2) == ["ch0", "ch1", "ch2"]
    assert window_around(CHANNELS, 99, 1) == ["ch9", "ch8"]
    assert window_around([], 3, 5) == []


@pytest.mark.anyio("asyncio")
async def test_sweep_skips_unmapped_and_cached_channels() -> None:
    epg = FakeEPG(mapped=set(CHANNELS) - {"ch5"}, cached={"ch3"})
    prefetcher = build_prefetcher(epg)

    task = prefetcher.start(4)
    await prefetcher.wait()

    assert epg.fetched == ["ch4", "ch6", "ch2"]
    assert task is not None and task.result() == 3


@pytest.mark.anyio("asyncio")
async def test_cancel_stops_the_sequence_but_not_the_fetch_in_flight() -> None:
    epg = FakeEPG(mapped=CHANNELS)
    prefetcher = build_prefetcher(epg)
    epg.on_fetch = lambda _: prefetcher.cancel()

    prefetcher.start(4)
    await prefetcher.wait()

    assert epg.fetched == ["ch4"]
    assert epg.cached == {"ch4"}
    assert prefetcher.cancelled is True
    assert prefetcher.start(0) is None


@pytest.mark.anyio("asyncio")
async def test_refocusing_abandons_the_previous_window() -> None:
    epg = FakeEPG(mapped=CHANNELS)
    prefetcher = build_prefetcher(epg, radius=1)

    prefetcher.start(0)
    prefetcher.start(8)
    await prefetcher.wait()
    await asyncio.sleep(0)

    assert epg.fetched == ["ch8", "ch9", "ch7"]


@pytest.mark.anyio("asyncio")
async def test_row_fallback_fetches_only_uncached_channels() -> None:
    epg = FakeEPG(mapped=CHANNELS, cached={"ch1"})
    prefetcher = build_prefetcher(epg)

    prefetcher.schedule_row_fallback("ch0", grace=0.01)
    prefetcher.schedule_row_fallback("ch1", grace=0.01)
    prefetcher.schedule_row_fallback("ch2", grace=0.01)
    prefetcher.cancel_row_fallback("ch2")
    prefetcher.schedule_row_fallback("unmapped", grace=0.01)
    await prefetcher.wait()

    assert epg.fetched == ["ch0"]


@pytest.mark.anyio("asyncio")
async def test_row_fallback_is_dropped_when_prefetcher_is_cancelled() -> None:
    epg = FakeEPG(mapped=CHANNELS)
    prefetcher = build_prefetcher(epg)

    prefetcher.schedule_row_fallback("ch0", grace=0.05)
    prefetcher.cancel()
    await prefetcher.wait()

    assert epg.fetched == []


@pytest.mark.anyio("asyncio")
async def test_batch_prefetcher_runs_mapped_channels_in_batches() -> None:
    epg = FakeEPG(mapped=["ch0", "ch1", "ch2", "ch4", "ch6"])
    prefetcher = BatchPrefetcher(epg, CHANNELS[:7], batch_size=2, delay=0)

    prefetcher.start()
    await prefetcher.wait()

    assert epg.totals == [5]
    assert epg.batches == [["ch0", "ch1"], ["ch2", "ch4"], ["ch6"]]


@pytest.mark.anyio("asyncio")
async def test_batch_prefetcher_cancel_stops_after_current_batch() -> None:
    epg = FakeEPG(mapped=CHANNELS)
    prefetcher = BatchPrefetcher(epg, CHANNELS, batch_size=3, delay=0)
    epg.on_fetch = lambda _: prefetcher.cancel()

    prefetcher.start()
    await prefetcher.wait()

    assert epg.batches == [["ch0", "ch1", "ch2"]]
    assert epg.fetched == ["ch0", "ch1", "ch2"]
