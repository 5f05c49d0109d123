# localscope/db/session.py
# -----------------------------------------------------------------------------
# Category-tag store plumbing
# - one engine per DATABASE_URL; tests build their own against a tmp file
# - init_models(): create the category_tags table if it is missing
# - get_session(): request-scoped session for the admin router
# -----------------------------------------------------------------------------
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from localscope.core.config import settings

Base = declarative_base()


def make_engine(url: str) -> AsyncEngine:
    # sqlite: no pool, the file is released after every session
    if url.startswith("sqlite"):
        return create_async_engine(url, poolclass=NullPool)
    return create_async_engine(url, pool_pre_ping=True)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    from localscope.db import models  # noqa: F401  (registers CategoryTagRow)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


engine = make_engine(settings.DATABASE_URL)
AsyncSessionLocal = make_session_factory(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
