import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import BigInteger, Integer, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# BIGINT primary keys only autoincrement on SQLite when declared as INTEGER.
BigInt = BigInteger().with_variant(Integer(), "sqlite")


# Base class for declarative models
class Base(DeclarativeBase):
    pass


def create_engine(
    database_url: str,
    pool_size: int = 20,
    max_overflow: int = 10,
    echo: bool = False,
) -> AsyncEngine:
    """Create the async engine for the configured database."""
    if not database_url.startswith("sqlite"):
        logger.info("Connecting to database")
        return create_async_engine(
            database_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
        )

    # In-memory SQLite must share one connection across sessions.
    engine = create_async_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # ON DELETE CASCADE is a no-op on SQLite unless enabled per connection.
    @event.listens_for(engine.sync_engine, "connect")
    def connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async session maker to be used throughout the application."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# Dependency to get DB session
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


# Function to initialize the database (create tables)
async def init_db(engine: AsyncEngine) -> None:
    # Registers every table on Base.metadata
    import database.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Function to close database connections
async def close_db(engine: AsyncEngine) -> None:
    """Close database engine and connections."""
    await engine.dispose()
