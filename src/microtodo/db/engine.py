"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode: create_async_engine for connection
pooling, AsyncSession for per-request database access, dependency
injection via FastAPI.

Each service owns its own database, so each app builds its own Database
at startup and keeps it on app.state. Nothing imports a module-level
engine.
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool


class Database:
    def __init__(self, url: str, echo: bool = False):
        self.url = url
        if url.startswith("sqlite"):
            # One shared connection so in-memory databases survive across sessions
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        else:
            # Connection pool: min 5, max 20 connections.
            engine_kwargs = {"pool_size": 5, "max_overflow": 15}
        self.engine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self, metadata: MetaData) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: yields a session per request, auto-closes."""
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
