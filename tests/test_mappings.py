"""Integrity checks for the static category and channel tables."""

from __future__ import annotations

from streamsync.categories import CATEGORIES, CATEGORY_COUNT
from streamsync.epg_mappings import (
    GUIADETV_CHANNEL_SLUGS,
    MEUGUIA_CHANNEL_CODES,
    MITV_CHANNEL_SLUGS,
)


def test_category_ids_are_unique_and_url_safe() -> None:
    ids = [category.id for category in CATEGORIES]

    assert len(ids) == len(set(ids)) == CATEGORY_COUNT
    assert all(category_id == category_id.strip().lower() for category_id in ids)
    assert all(" " not in category_id and "/" not in category_id for category_id in ids)
    assert all(category.name for category in CATEGORIES)


def test_channel_tables_have_codes() -> None:
    for table in (GUIADETV_CHANNEL_SLUGS, MEUGUIA_CHANNEL_CODES, MITV_CHANNEL_SLUGS):
        assert table
        assert all(code.strip() for code in table.values())


def test_fallback_tables_only_cover_channels_the_primary_guide_lacks() -> None:
    assert not set(MITV_CHANNEL_SLUGS) & set(MEUGUIA_CHANNEL_CODES)
    assert not set(MITV_CHANNEL_SLUGS) & set(GUIADETV_CHANNEL_SLUGS)
