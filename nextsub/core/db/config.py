from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    async_sessionmaker,
    AsyncAttrs,
)
from sqlalchemy.orm import DeclarativeBase

from nextsub.core.config import database_logger, settings

ASYNC_SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for the given URL.

    PostgreSQL gets a sized connection pool. SQLite gets explicit BEGIN
    handling so SAVEPOINTs behave, since the driver's own transaction
    management releases a leading SAVEPOINT as a commit. Transactions start
    with BEGIN IMMEDIATE: SQLite cannot upgrade a read lock to a write lock
    while another connection writes, so writers take the lock up front and
    queue on the busy timeout instead.

    Args:
        url (str): SQLAlchemy database URL (asyncpg or aiosqlite driver).
        echo (bool): Log every SQL statement.

    Returns:
        AsyncEngine: The configured engine.
    """
    engine_kwargs: dict[str, Any] = {"echo": echo}
    if not is_sqlite_url(url):
        engine_kwargs.update(
            pool_size=20,  # Concurrent request handlers
            max_overflow=30,
            pool_pre_ping=True,  # Validate connections before use
            pool_recycle=3600,  # Recycle connections every hour
        )

    engine = create_async_engine(url, **engine_kwargs)

    if is_sqlite_url(url):

        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    database_logger.info(f"Database engine created for {engine.url.get_backend_name()}")
    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        autobegin=True,
    )


async_engine: AsyncEngine = build_engine(
    ASYNC_SQLALCHEMY_DATABASE_URL, echo=settings.DATABASE_ECHO
)

AsyncSessionLocal = build_sessionmaker(async_engine)


# Base class for declarative_base
class Base(AsyncAttrs, DeclarativeBase):
    pass


async def init_db(engine: AsyncEngine | None = None) -> None:
    """
    Create all tables defined in the metadata.

    Migrations are the normal path; this is for local development and tests.

    Args:
        engine (AsyncEngine | None): Engine to use. Defaults to the application engine.
    """
    # Register every model on the metadata before creating tables
    import nextsub.core.db.models  # noqa: F401

    async with (engine or async_engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Dispose the application engine's connection pool."""
    await async_engine.dispose()
