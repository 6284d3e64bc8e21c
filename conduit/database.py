"""
Engine, session factory and the request-scoped transaction boundary.

``build_engine`` is the single place an engine is configured: the application
engine below and the test engine in ``tests/conftest.py`` both come from it,
so the SQL query counter and SQLite's foreign-key enforcement are wired the
same way everywhere.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from conduit.config import settings
from conduit.middleware import install_query_counter


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless the pragma is set per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine with the query counter installed."""
    engine = create_async_engine(url, **kwargs)
    install_query_counter(engine)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Services hand ORM objects back after commit; keep them loaded.
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)
async_session = build_session_factory(engine)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    Yield a session for one request and own its transaction: commit when the
    handler returns, roll back and re-raise when it fails.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
