"""Database configuration and session management for the URL shortener.

This module provides SQLAlchemy async engine setup, session factories,
and schema lifecycle operations. SQLite (aiosqlite) is the default backend;
any async SQLAlchemy URL can be configured via ``database.url``.

Flow Diagram — Database Operations
=================================
::
    ┌─────────────┐
    │ ServiceMgr  │
    │ initialize()│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ build_engine │
    │ + session    │
    │   factory    │
    └──────┬──────┘
           ▼
    ┌─────────────┐      ┌──────────────┐
    │ Request     │      │ Click worker │
    │ session     │      │ / monitor    │
    │ (per call)  │      │ session      │
    └──────┬──────┘      └──────┬───────┘
           ▼                    ▼
    ┌─────────────────────────────┐
    │ Auto-close (async with)     │
    └─────────────────────────────┘

How to Use
===========
**Step 1 — Build on startup**::
    engine = build_engine(settings.database)
    session_factory = build_session_factory(engine)
    await init_db(engine)  # Creates tables

**Step 2 — Open a session**::
    async with session_factory() as session:
        result = await session.execute(select(Link))

**Step 3 — Cleanup on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- Sessions never expire objects on commit so links can outlive the session.
- SQLite foreign keys are switched on per connection.
- Tables are created on startup and by the ``migrate`` command.
- Engine is disposed on application shutdown.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    build_engine():  Creates the async engine from database settings.
    build_session_factory():  Creates an async_sessionmaker bound to an engine.
    init_db():  Creates all tables.
    close_db():  Disposes the engine.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortener.config import DatabaseSettings

__all__ = ["Base", "build_engine", "build_session_factory", "init_db", "close_db"]


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database: DatabaseSettings) -> AsyncEngine:
    url = database.sqlalchemy_url
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=database.echo,
            connect_args={"timeout": 30},
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        echo=database.echo,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # Models must be imported so their tables are registered on Base.metadata
    from shortener import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
