"""Async engine and session factory for the PostgreSQL record store.

One :class:`Database` per process owns the engine and hands out the
session factory :class:`SqlRecordStore` needs.  Short-lived commands
(``init-db``, ``recompute``) use a NullPool so nothing lingers after
``dispose``.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from tradelog.core.config import DatabaseConfig

from .models import Base

logger = logging.getLogger(__name__)


def build_engine(config: DatabaseConfig, *, use_null_pool: bool = False) -> AsyncEngine:
    """Create an :class:`AsyncEngine` from *config*.

    Args:
        config: URL, pool sizing and SQL echo flag.
        use_null_pool: Open a fresh connection per checkout instead of
            keeping a pool.
    """
    if use_null_pool:
        engine = create_async_engine(config.url, echo=config.echo, poolclass=NullPool)
    else:
        engine = create_async_engine(
            config.url,
            echo=config.echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_pre_ping=True,
        )
    # Never log credentials
    logger.info("Created async engine for %s", config.url.split("@")[-1])
    return engine


class Database:
    """Engine plus session factory for one database."""

    def __init__(self, config: DatabaseConfig, *, use_null_pool: bool = False) -> None:
        self._engine = build_engine(config, use_null_pool=use_null_pool)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    async def create_tables(self) -> None:
        """``CREATE TABLE IF NOT EXISTS`` for every journal table."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Journal tables created / verified.")

    async def dispose(self) -> None:
        """Release all pooled connections."""
        await self._engine.dispose()
        logger.info("Engine disposed.")
