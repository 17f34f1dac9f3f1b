"""
Database connection management with SQLAlchemy async support.

Supports SQLite (development, tests) and PostgreSQL (production) via DATABASE_URL.
One Database instance is built per process in the application lifespan and
handed to whatever needs a session.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool
import logging

from kpower.db.models import Base

logger = logging.getLogger(__name__)


def _is_in_memory(database_url: str) -> bool:
    return ":memory:" in database_url or database_url.rstrip("/").endswith(":")


class Database:
    """Owns the engine (connection pool) and session factory"""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: float = 2.0,
    ):
        self.database_url = database_url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker] = None

    async def init(self) -> None:
        """Create the engine and all tables."""
        logger.info(f"Initializing database: {self.database_url.split('://')[0]}")

        if self.database_url.startswith("sqlite"):
            # In-memory SQLite lives on a single connection; file databases get
            # a connection per session so transactions stay isolated
            self.engine = create_async_engine(
                self.database_url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool if _is_in_memory(self.database_url) else NullPool,
            )
        else:
            self.engine = create_async_engine(
                self.database_url,
                echo=False,
                pool_pre_ping=True,  # Verify connections before using
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,  # Starved pool fails fast
            )

        self._session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("✅ Database initialized successfully")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide a transactional scope for database operations.

        Commits on success, rolls back on error.
        """
        if self._session_maker is None:
            raise RuntimeError("Database not initialized. Call init() first.")

        async with self._session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            else:
                await session.commit()

    async def close(self) -> None:
        """Close database connection pool."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self._session_maker = None
            logger.info("Database connection closed")
