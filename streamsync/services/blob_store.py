"""Key-value blob storage used to warm-start the catalog cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import CatalogBlob
from ..models import MediaItem

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StoredCategory:
    """Serialized items of a category plus the paging cursor, when known."""

    items: list[dict[str, Any]]
    last_page: int | None = None
    has_more: bool | None = None


class HydrationStore(Protocol):
    """Opaque category id → stored category lookup."""

    async def load(self, category_id: str) -> StoredCategory | None:
        ...


class DatabaseBlobStore:
    """Hydration store persisting one JSON blob per category in SQL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def load(self, category_id: str) -> StoredCategory | None:
        try:
            async with self._session_factory() as session:
                record = await session.get(CatalogBlob, category_id)
        except SQLAlchemyError as exc:
            logger.warning("Failed to read cached blob for %s: %s", category_id, exc)
            return None
        if record is None or not isinstance(record.payload, list):
            return None
        return StoredCategory(
            items=record.payload, last_page=record.last_page, has_more=record.has_more
        )

    async def save(
        self,
        category_id: str,
        items: Sequence[MediaItem],
        *,
        last_page: int | None = None,
        has_more: bool | None = None,
    ) -> None:
        """Replace the stored blob for a category."""

        payload = [item.model_dump(mode="json", exclude_none=True) for item in items]
        async with self._session_factory() as session:
            record = await session.get(CatalogBlob, category_id)
            if record is None:
                record = CatalogBlob(category_id=category_id)
                session.add(record)
            record.payload = payload
            record.item_count = len(payload)
            record.last_page = last_page
            record.has_more = has_more
            record.updated_at = datetime.utcnow()
            await session.commit()

    async def stored_categories(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CatalogBlob.category_id).order_by(CatalogBlob.category_id)
            )
            return [row[0] for row in result.all()]
