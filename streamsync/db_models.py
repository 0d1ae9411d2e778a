"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class CatalogBlob(Base):
    """Serialized items of one catalog category kept for warm starts.

    ``last_page`` and ``has_more`` record the paging cursor at save time;
    they are ``NULL`` for rows written before the cursor was stored.
    """

    __tablename__ = "catalog_blobs"

    category_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    item_count: Mapped[int] = mapped_column(Integer, default=0)
    last_page: Mapped[int | None] = mapped_column(Integer, nullable=True)
    has_more: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
