# survey_intake/database.py
import logging

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .core.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(settings: Settings) -> AsyncEngine:
    logger.info("Using database %s", settings.database_url)
    # echo=True logs every SQL statement, keep it off outside of debugging
    return create_async_engine(settings.database_url, echo=settings.SQL_ECHO)


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    # Rows are read after commit (insert returns the id), so keep them loaded
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db_session(request: Request) -> AsyncSession:
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_db_and_tables(engine: AsyncEngine) -> None:
    """
    Creates the ``responses`` table if it does not exist yet.
    There are no migrations beyond this single table.
    """
    # Import so the model registers itself on Base.metadata
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready.")
