"""Tests for the in-memory EPG cache."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx
import pytest

from streamsync.config import Settings
from streamsync.models import EPGProgress
from streamsync.services.epg_cache import EPGCache

from conftest import guiadetv_html, meuguia_html

TZ = ZoneInfo("America/Sao_Paulo")
NOW = datetime(2024, 6, 1, 20, 30, tzinfo=TZ)

HBO_EVENING = meuguia_html(
    "Sábado 01/06",
    [
        ("20:00", "Duna: Parte Dois", "Filme"),
        ("21:00", "A Casa do Dragão", "Série"),
        ("22:00", "Last Week Tonight", "Humor"),
    ],
)
HBO_POP_SHORT = guiadetv_html(
    [("2024-06-01 20:00:00", "Friends"), ("2024-06-01 20:30:00", "Seinfeld")]
)


class GuideServer:
    """Serve canned guide pages keyed by URL, counting requests."""

    def __init__(self, pages: dict[str, Any]):
        self.pages = pages
        self.requests: list[str] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        await asyncio.sleep(0)
        payload = self.pages.get(url)
        if payload is None:
            return httpx.Response(404)
        if isinstance(payload, int):
            return httpx.Response(payload)
        return httpx.Response(200, text=payload)


def build_cache(server: GuideServer, **overrides: Any) -> tuple[EPGCache, httpx.AsyncClient]:
    settings = Settings(_env_file=None, **overrides)  # type: ignore[arg-type]
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return EPGCache(settings, client, now=lambda: NOW), client


HBO_URL = "https://meuguia.tv/programacao/canal/HBO"
HBO_POP_URL = "https://www.guiadetv.com/canal/hbo-pop"


@pytest.mark.anyio("asyncio")
async def test_current_program_after_fetch() -> None:
    server = GuideServer({HBO_URL: HBO_EVENING})
    cache, client = build_cache(server)

    assert cache.get_current_program("hbo") is None
    async with client:
        programs = await cache.fetch_channel_epg("hbo")

    current = cache.get_current_program("hbo")
    assert len(programs) == 3
    assert current is not None
    assert current.current.title == "Duna: Parte Dois"
    assert current.current.contains(NOW)
    assert current.next is not None and current.next.title == "A Casa do Dragão"
    assert 0 <= current.progress <= 100
    assert current.progress == pytest.approx(50.0)
    assert current.remaining == 30


@pytest.mark.anyio("asyncio")
async def test_concurrent_fetches_share_one_request() -> None:
    server = GuideServer({HBO_URL: HBO_EVENING})
    cache, client = build_cache(server)
    updates: list[str] = []
    cache.on_epg_update(updates.append)

    async with client:
        results = await asyncio.gather(*(cache.fetch_channel_epg("hbo") for _ in range(5)))
        assert cache.is_fetching("hbo") is False
        # Fresh data with enough upcoming programs is served without I/O.
        await cache.fetch_channel_epg("hbo")

    assert server.requests == [HBO_URL]
    assert updates == ["hbo"]
    assert all(result == results[0] for result in results)
    assert cache.has_fresh_cache("hbo") is True


@pytest.mark.anyio("asyncio")
async def test_unmapped_channels_do_no_io_and_notify_nobody() -> None:
    server = GuideServer({})
    cache, client = build_cache(server)
    updates: list[str] = []
    cache.on_epg_update(updates.append)

    async with client:
        results = await asyncio.gather(
            *(cache.fetch_channel_epg("canal-inexistente") for _ in range(3))
        )

    assert results == [[], [], []]
    assert server.requests == []
    assert updates == []
    assert cache.has_epg_mapping("canal-inexistente") is False


@pytest.mark.anyio("asyncio")
async def test_failures_keep_the_previous_schedule() -> None:
    server = GuideServer({HBO_POP_URL: HBO_POP_SHORT})
    cache, client = build_cache(server)
    updates: list[str] = []
    cache.on_epg_update(updates.append)

    async with client:
        first = await cache.fetch_channel_epg("hbo-pop")
        server.pages[HBO_POP_URL] = 503
        after_error = await cache.fetch_channel_epg("hbo-pop")
        server.pages[HBO_POP_URL] = "<html>manutenção</html>"
        after_garbage = await cache.fetch_channel_epg("hbo-pop")

    assert len(first) == 2
    assert after_error == first
    assert after_garbage == first
    assert cache.get_channel_epg("hbo-pop") == first
    assert updates == ["hbo-pop"]
    assert len(server.requests) == 3


@pytest.mark.anyio("asyncio")
async def test_programs_beyond_memory_retention_are_dropped() -> None:
    page = guiadetv_html(
        [
            ("2024-06-01 20:00:00", "Friends"),
            ("2024-06-01 21:00:00", "Seinfeld"),
            ("2024-06-03 10:00:00", "Muito Longe"),
        ]
    )
    cache, client = build_cache(GuideServer({HBO_POP_URL: page}))
    async with client:
        programs = await cache.fetch_channel_epg("hbo-pop")

    assert [program.title for program in programs] == ["Friends", "Seinfeld"]
    assert programs[-1].end_time == datetime(2024, 6, 3, 10, 0, tzinfo=TZ)


@pytest.mark.anyio("asyncio")
async def test_subscribers_may_unsubscribe_during_notification() -> None:
    server = GuideServer({HBO_POP_URL: HBO_POP_SHORT})
    cache, client = build_cache(server)
    once: list[str] = []
    always: list[str] = []

    def broken(_: str) -> None:
        raise RuntimeError("subscriber bug")

    def only_once(channel_id: str) -> None:
        once.append(channel_id)
        unsubscribe()

    unsubscribe = cache.on_epg_update(only_once)
    cache.on_epg_update(broken)
    stop_always = cache.on_epg_update(always.append)

    async with client:
        await cache.fetch_channel_epg("hbo-pop")
        await cache.fetch_channel_epg("hbo-pop")
        stop_always()
        await cache.fetch_channel_epg("hbo-pop")

    assert once == ["hbo-pop"]
    assert always == ["hbo-pop", "hbo-pop"]
    assert len(server.requests) == 3


@pytest.mark.anyio("asyncio")
async def test_prefetch_reports_batch_progress() -> None:
    server = GuideServer({HBO_URL: HBO_EVENING, HBO_POP_URL: HBO_POP_SHORT})
    cache, client = build_cache(server)
    progress: list[EPGProgress] = []
    cache.on_epg_progress(progress.append)

    cache.set_epg_total_channels(3)
    async with client:
        await cache.prefetch_epg(["hbo", "hbo-pop", "canal-inexistente"])

    assert sorted(event.loaded for event in progress) == [1, 2]
    assert {event.total for event in progress} == {3}
    assert cache.get_epg_stats() == {
        "cached_channels": 2,
        "total_programs": 5,
        "pending_fetches": 0,
    }

    cache.clear_epg_cache()
    assert cache.has_epg("hbo") is False
    assert cache.get_epg_stats()["cached_channels"] == 0


@pytest.mark.anyio("asyncio")
async def test_prefetch_progress_skips_failed_fetches_with_stale_data() -> None:
    server = GuideServer({HBO_POP_URL: HBO_POP_SHORT})
    cache, client = build_cache(server)
    progress: list[EPGProgress] = []
    cache.on_epg_progress(progress.append)

    async with client:
        await cache.fetch_channel_epg("hbo-pop")
        assert cache.has_fresh_cache("hbo-pop") is False
        server.pages[HBO_POP_URL] = 503
        cache.set_epg_total_channels(1)
        await cache.prefetch_epg(["hbo-pop"])

    assert progress == []
    assert cache.has_epg("hbo-pop") is True
    assert len(server.requests) == 2


@pytest.mark.anyio("asyncio")
async def test_schedule_entirely_beyond_retention_counts_as_failure() -> None:
    far_away = guiadetv_html(
        [("2024-06-03 10:00:00", "Muito Longe"), ("2024-06-03 11:00:00", "Mais Longe")]
    )
    server = GuideServer({HBO_POP_URL: far_away})
    cache, client = build_cache(server)
    updates: list[str] = []
    cache.on_epg_update(updates.append)

    async with client:
        empty = await cache.fetch_channel_epg("hbo-pop")
        server.pages[HBO_POP_URL] = HBO_POP_SHORT
        first = await cache.fetch_channel_epg("hbo-pop")
        server.pages[HBO_POP_URL] = far_away
        kept = await cache.fetch_channel_epg("hbo-pop")

    assert empty == []
    assert len(first) == 2
    assert kept == first
    assert cache.get_channel_epg("hbo-pop") == first
    assert updates == ["hbo-pop"]
