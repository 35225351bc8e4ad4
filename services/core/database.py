"""
Database Configuration Module
Async engine, session factory and declarative base
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from config import DATABASE_URL, DATABASE_ECHO

# Base for models
Base = declarative_base()


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create async engine for the given URL.

    PostgreSQL gets connection pooling with pre-ping; SQLite (tests, local
    runs) gets foreign key enforcement switched on per connection.

    SQLite ignores FOR UPDATE, so every transaction starts with
    BEGIN IMMEDIATE and takes the database write lock before its first read.
    Concurrent units of work for one owner are serialized the same way row
    locks serialize them on PostgreSQL.
    """
    if url.startswith("sqlite"):
        new_engine = create_async_engine(url, echo=echo)

        @event.listens_for(new_engine.sync_engine, "connect")
        def _configure_sqlite_connection(dbapi_connection, connection_record):
            # driver must not emit its own deferred BEGIN
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(new_engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return new_engine

    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,              # Verify connections before use
        pool_recycle=3600,               # Recycle connections after 1 hour
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by UnitOfWork"""
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False
    )


engine = create_engine_for_url(DATABASE_URL, echo=DATABASE_ECHO)

# Async session factory
AsyncSessionLocal = create_session_factory(engine)


async def init_models(bind: AsyncEngine | None = None) -> None:
    """Create all tables (idempotent)"""
    import models  # noqa: F401  registers tables on Base.metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db_connections(bind: AsyncEngine | None = None) -> None:
    """
    Gracefully close all database connections.
    Call this on application shutdown.
    """
    await (bind or engine).dispose()
