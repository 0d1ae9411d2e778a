"""Database utilities backing the catalog hydration store."""

from __future__ import annotations

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base with consistent naming conventions."""

    metadata = MetaData()


class Database:
    """Owns the async engine and the session factory handed to stores."""

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    async def create_all(self) -> None:
        """Create missing tables and columns."""

        # Register the ORM tables on the shared metadata.
        from . import db_models  # noqa: F401

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
            await connection.run_sync(self._add_missing_columns)

    @staticmethod
    def _add_missing_columns(sync_connection) -> None:
        """Bring ``catalog_blobs`` tables from older releases up to date."""

        inspector = inspect(sync_connection)
        if "catalog_blobs" not in inspector.get_table_names():
            return

        existing = {column["name"] for column in inspector.get_columns("catalog_blobs")}
        for name, ddl in (
            ("last_page", "ALTER TABLE catalog_blobs ADD COLUMN last_page INTEGER"),
            ("has_more", "ALTER TABLE catalog_blobs ADD COLUMN has_more BOOLEAN"),
        ):
            if name not in existing:
                sync_connection.execute(text(ddl))

    async def dispose(self) -> None:
        await self._engine.dispose()
