"""EPG providers: channel source resolution and HTML schedule parsing."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Mapping
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from ..epg_mappings import GUIADETV_CHANNEL_SLUGS, MEUGUIA_CHANNEL_CODES, MITV_CHANNEL_SLUGS
from ..models import Program

logger = logging.getLogger(__name__)

DEFAULT_PROGRAM_DURATION = timedelta(hours=1)
MIN_HTML_LENGTH = 1_000

TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")
DAY_MONTH_PATTERN = re.compile(r"(\d{1,2})/(\d{1,2})")
PROGRAM_LINK_PATTERN = re.compile(r"programa/")


@dataclass(frozen=True, slots=True)
class EPGSource:
    """Resolved provider for a channel."""

    provider: "EPGProvider"
    code: str
    url: str


@dataclass(slots=True)
class _Slot:
    start: datetime
    title: str
    category: str | None = None


class EPGProvider(ABC):
    """Base class for scraped program-guide sources."""

    name = "base"
    url_template = ""
    markers: tuple[str, ...] = ()

    def __init__(self, codes: Mapping[str, str]):
        self._codes = dict(codes)

    def code_for(self, channel_id: str) -> str | None:
        return self._codes.get(channel_id)

    def url_for(self, code: str) -> str:
        return self.url_template.format(code=quote(code, safe=""))

    def looks_valid(self, html: str) -> bool:
        return len(html) > MIN_HTML_LENGTH and any(marker in html for marker in self.markers)

    def parse(self, html: str, channel_id: str, *, now: datetime) -> list[Program]:
        soup = BeautifulSoup(html, "html.parser")
        slots = self._extract(soup, now=now)
        return _build_programs(channel_id, slots)

    @abstractmethod
    def _extract(self, soup: BeautifulSoup, *, now: datetime) -> list[_Slot]:
        """Return the raw slots found in a parsed schedule page."""


class GuiaDeTVProvider(EPGProvider):
    """guiadetv.com: absolute ``data-dt`` timestamps in local time."""

    name = "guiadetv"
    url_template = "https://www.guiadetv.com/canal/{code}"
    markers = ("data-dt=", "/programa/")

    def _extract(self, soup: BeautifulSoup, *, now: datetime) -> list[_Slot]:
        tz = now.tzinfo
        slots: list[_Slot] = []
        for node in soup.find_all(attrs={"data-dt": True}):
            raw = str(node.get("data-dt", ""))[:19]
            try:
                start = datetime.strptime(raw, "%Y-%m-%d %H:%M:%S").replace(tzinfo=tz)
            except ValueError:
                logger.debug("guiadetv: unparseable timestamp %r", raw)
                continue
            link = node.find("a", href=PROGRAM_LINK_PATTERN)
            if link is None:
                link = node.find_next("a", href=PROGRAM_LINK_PATTERN)
            if link is None:
                continue
            title = link.get_text(" ", strip=True)
            if title:
                slots.append(_Slot(start=start, title=title))
        return slots


class MeuGuiaProvider(EPGProvider):
    """meuguia.tv: ``DD/MM`` day headers followed by ``HH:MM`` entries."""

    name = "meuguia"
    url_template = "https://meuguia.tv/programacao/canal/{code}"
    markers = ("lileft time", "<h2>")

    def _extract(self, soup: BeautifulSoup, *, now: datetime) -> list[_Slot]:
        tz = now.tzinfo
        today = now.date()
        current_day = today
        last_hour = -1
        day_offset = 0
        slots: list[_Slot] = []

        for node in soup.find_all(True):
            classes = node.get("class") or []
            if node.name == "li" and any(cls.startswith("subheader") for cls in classes):
                header_day = _parse_day_header(node.get_text(" ", strip=True), today)
                if header_day is not None:
                    current_day = header_day
                    last_hour = -1
                    day_offset = 0
                continue
            if node.name != "div" or "lileft" not in classes or "time" not in classes:
                continue

            match = TIME_PATTERN.search(node.get_text(strip=True))
            heading = node.find_next("h2")
            if match is None or heading is None:
                continue
            hours, minutes = int(match.group(1)), int(match.group(2))
            if last_hour != -1 and hours < last_hour - 6:
                day_offset += 1
            last_hour = hours

            subheading = heading.find_next("h3")
            category = subheading.get_text(strip=True) if isinstance(subheading, Tag) else None
            start = _combine(current_day + timedelta(days=day_offset), hours, minutes, tz)
            if start is None:
                continue
            slots.append(
                _Slot(start=start, title=heading.get_text(" ", strip=True), category=category or None)
            )
        return slots


class MiTVProvider(EPGProvider):
    """mi.tv: one day per page, ``span.time`` entries inside listing items."""

    name = "mitv"
    url_template = "https://mi.tv/br/canais/{code}"
    markers = ('class="time"', "listings")

    def _extract(self, soup: BeautifulSoup, *, now: datetime) -> list[_Slot]:
        tz = now.tzinfo
        today = now.date()
        last_hour = -1
        day_offset = 0
        slots: list[_Slot] = []

        for item in soup.find_all("li"):
            time_node = item.find("span", class_="time")
            heading = item.find("h2")
            if time_node is None or heading is None:
                continue
            match = TIME_PATTERN.search(time_node.get_text(strip=True))
            if match is None:
                continue
            hours, minutes = int(match.group(1)), int(match.group(2))
            if last_hour != -1 and hours < last_hour - 6:
                day_offset += 1
            last_hour = hours

            genre = item.find("span", class_="sub-title")
            start = _combine(today + timedelta(days=day_offset), hours, minutes, tz)
            if start is None:
                continue
            slots.append(
                _Slot(
                    start=start,
                    title=heading.get_text(" ", strip=True),
                    category=genre.get_text(strip=True) if genre else None,
                )
            )
        return slots


# Checked in this order; the first provider knowing a channel wins.
PROVIDERS: tuple[EPGProvider, ...] = (
    GuiaDeTVProvider(GUIADETV_CHANNEL_SLUGS),
    MeuGuiaProvider(MEUGUIA_CHANNEL_CODES),
    MiTVProvider(MITV_CHANNEL_SLUGS),
)


def resolve_source(
    channel_id: str, providers: tuple[EPGProvider, ...] = PROVIDERS
) -> EPGSource | None:
    """Return the highest-priority provider mapping for a channel."""

    for provider in providers:
        code = provider.code_for(channel_id)
        if code:
            return EPGSource(provider=provider, code=code, url=provider.url_for(code))
    return None


def get_epg_url(channel_id: str) -> str | None:
    source = resolve_source(channel_id)
    return source.url if source else None


def has_epg_mapping(channel_id: str) -> bool:
    return resolve_source(channel_id) is not None


def _parse_day_header(text: str, today: date) -> date | None:
    match = DAY_MONTH_PATTERN.search(text)
    if match is None:
        return None
    day, month = int(match.group(1)), int(match.group(2))
    year = today.year
    # Early-year headers seen late in the year belong to the next year.
    if month < today.month - 6:
        year += 1
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _combine(day: date, hours: int, minutes: int, tz: tzinfo | None) -> datetime | None:
    try:
        return datetime.combine(day, time(hours, minutes), tzinfo=tz)
    except ValueError:
        return None


def _build_programs(channel_id: str, slots: list[_Slot]) -> list[Program]:
    """Sort slots and chain end times to the next program's start."""

    slots.sort(key=lambda slot: slot.start)
    programs: list[Program] = []
    for index, slot in enumerate(slots):
        if index + 1 < len(slots) and slots[index + 1].start > slot.start:
            end = slots[index + 1].start
        else:
            end = slot.start + DEFAULT_PROGRAM_DURATION
        programs.append(
            Program(
                id=f"{channel_id}-{int(slot.start.timestamp() * 1000)}",
                title=slot.title,
                description="",
                category=slot.category,
                start_time=slot.start,
                end_time=end,
            )
        )
    return programs
