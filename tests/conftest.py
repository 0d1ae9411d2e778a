"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest


# Ensure the package is importable when running tests without an editable
# install. ``streamsync`` sits at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def build_shard_entry(
    item_id: str,
    name: str | None = None,
    *,
    tmdb_id: int | None = None,
    rating: float | None = None,
    year: str | int | None = None,
    genres: list[str] | None = None,
    type: str = "movie",
    episodes: dict[str, list[dict[str, Any]]] | None = None,
) -> dict[str, Any]:
    """Build a raw catalog shard object as served by the remote store."""

    entry: dict[str, Any] = {
        "id": item_id,
        "name": name or f"Title {item_id}",
        "url": f"https://cdn.example/{item_id}.mp4",
        "category": "Filmes",
        "type": type,
    }
    if tmdb_id is not None:
        entry["tmdb"] = {
            "id": tmdb_id,
            "title": name or f"Title {item_id}",
            "rating": rating,
            "year": year,
            "genres": genres or [],
            "poster": f"https://image.tmdb.org/t/p/w500/{item_id}.jpg",
        }
    if episodes is not None:
        entry["episodes"] = episodes
    return entry


@pytest.fixture
def shard_entry():
    return build_shard_entry


PAGE_FOOTER = "<footer>" + "<p>Programação sujeita a alterações.</p>" * 40 + "</footer>"


def meuguia_html(day_header: str, entries: list[tuple[str, str, str]]) -> str:
    """Render a meuguia.tv channel page with ``(HH:MM, title, category)`` rows."""

    rows = "".join(
        f'<li><a href="/programa/{index}"><div class="lileft time">{start}</div>'
        f'<div class="licontent"><h2>{title}</h2><h3>{category}</h3></div></a></li>'
        for index, (start, title, category) in enumerate(entries)
    )
    return (
        "<html><body><ul class=\"mw\">"
        f'<li class="subheader devicepadding">{day_header}</li>{rows}'
        f"</ul>{PAGE_FOOTER}</body></html>"
    )


def guiadetv_html(entries: list[tuple[str, str]]) -> str:
    """Render a guiadetv.com page with ``(YYYY-MM-DD HH:MM:SS, title)`` rows."""

    rows = "".join(
        f'<div class="row" data-dt="{stamp}"><span>{stamp[11:16]}</span>'
        f'<a href="https://www.guiadetv.com/programa/{index}">{title}</a></div>'
        for index, (stamp, title) in enumerate(entries)
    )
    return f"<html><body><section>{rows}</section>{PAGE_FOOTER}</body></html>"


def mitv_html(entries: list[tuple[str, str, str]]) -> str:
    """Render a mi.tv listing with ``(HH:MM, title, genre)`` rows."""

    rows = "".join(
        f'<li><a href="#"><span class="time">{start}</span><h2>{title}</h2>'
        f'<span class="sub-title">{genre}</span></a></li>'
        for start, title, genre in entries
    )
    return (
        f'<html><body><div class="listings"><ul class="broadcasts">{rows}</ul></div>'
        f"{PAGE_FOOTER}</body></html>"
    )
