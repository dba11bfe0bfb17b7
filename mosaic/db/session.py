"""Engine/session construction and the single-commit unit of work."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import Executable, Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from mosaic.config import Settings
from mosaic.db.base import Base
from mosaic.lib.exceptions import StorageError


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine described by ``settings.db``."""
    if "sqlite" in settings.db.url:
        engine = create_async_engine(settings.db.url, echo=settings.db.echo)
    else:
        engine = create_async_engine(
            settings.db.url,
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.pool_overflow,
            pool_timeout=settings.db.pool_timeout,
            pool_pre_ping=settings.db.pool_pre_ping,
            echo=settings.db.echo,
        )
    return engine


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create every table registered on ``Base.metadata``."""
    import mosaic.db.models  # noqa: F401 - register all models on Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def execute_or_raise(db_session: AsyncSession, entity: str, statement: Executable) -> Result:
    """Run a read, surfacing a database failure as ``StorageError`` naming ``entity``."""
    try:
        return await db_session.execute(statement)
    except SQLAlchemyError as exc:
        raise StorageError(entity, str(exc.orig if getattr(exc, "orig", None) else exc)) from exc


async def commit_or_raise(db_session: AsyncSession, entity: str) -> None:
    """Commit the pending unit of work or roll all of it back.

    Every row added since the last commit lands together or not at all;
    a database failure surfaces as one ``StorageError`` naming ``entity``.
    """
    try:
        await db_session.commit()
    except SQLAlchemyError as exc:
        await db_session.rollback()
        raise StorageError(entity, str(exc.orig if getattr(exc, "orig", None) else exc)) from exc


@asynccontextmanager
async def unit_of_work(db_session: AsyncSession, entity: str) -> AsyncIterator[AsyncSession]:
    """Run a block of writes as one transaction.

    Flush failures inside the block and the final commit both roll back and
    raise ``StorageError``; any other exception rolls back and propagates.
    """
    try:
        yield db_session
    except SQLAlchemyError as exc:
        await db_session.rollback()
        raise StorageError(entity, str(exc.orig if getattr(exc, "orig", None) else exc)) from exc
    except BaseException:
        await db_session.rollback()
        raise
    await commit_or_raise(db_session, entity)
