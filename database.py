from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

import models  # noqa: F401  registers the tables on SQLModel.metadata
from config import Settings

MAX_OVERFLOW = 5
POOL_SIZE = 10
POOL_RECYCLE_SECONDS = 5 * 60


def _on_sqlite_connect(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # transactions are opened explicitly in _on_sqlite_begin
    dbapi_connection.isolation_level = None


def _on_sqlite_begin(conn):
    # take the write lock up front so overlap checks and inserts are serialised
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(settings: Settings) -> AsyncEngine:
    return engine_for_url(settings.database_url)


def engine_for_url(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=False)
        event.listen(engine.sync_engine, "connect", _on_sqlite_connect)
        event.listen(engine.sync_engine, "begin", _on_sqlite_begin)
        return engine

    return create_async_engine(
        url,
        echo=False,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_recycle=POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,
    )


async def init_db(engine: AsyncEngine):
    async with engine.begin() as conn:
        # This creates the tables (and the exclusion constraint) if they don't exist
        await conn.run_sync(SQLModel.metadata.create_all)
