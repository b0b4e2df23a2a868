"""Async database engine and session management."""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def is_embedded(database_url: str) -> bool:
    """True for single-file/in-memory engines (SQLite)."""
    return make_url(database_url).get_backend_name() == "sqlite"


def init_engine(database_url: str, echo: bool = False) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    connect_args = {}
    if is_embedded(database_url):
        connect_args["check_same_thread"] = False
    engine = create_async_engine(database_url, echo=echo, connect_args=connect_args)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, session_factory


async def create_tables(engine: AsyncEngine):
    # Import models so their tables are registered on Base.metadata
    import mvngraph.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
