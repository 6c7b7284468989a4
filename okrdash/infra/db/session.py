"""
Database session management.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from okrdash.infra.db.document_store import DocumentStore

logger = logging.getLogger(__name__)


def create_session_factory(
    database_url: str, echo: bool = False
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an async engine and its session factory."""
    logger.info(f"Document store database: {database_url}")
    engine = create_async_engine(database_url, echo=echo, future=True)
    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine, factory


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database - create all tables."""
    from okrdash.infra.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def open_store(
    database_url: str, echo: bool = False
) -> AsyncGenerator[DocumentStore, None]:
    """Create tables if needed and yield a DocumentStore; disposes the engine on exit."""
    engine, factory = create_session_factory(database_url, echo=echo)
    try:
        await init_db(engine)
        yield DocumentStore(factory)
    finally:
        await engine.dispose()

