import logging
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from academy_ledger.core.config import settings

logger = logging.getLogger(__name__)


def configure_sqlite_engine(engine: AsyncEngine) -> AsyncEngine:
    """
    Make every SQLite transaction start with BEGIN IMMEDIATE.

    SQLite has no row locks, so SELECT ... FOR UPDATE is a no-op there. Taking the
    write lock when the transaction begins serializes read-validate-write units
    (invoice balance checks, counter increments) across connections and processes.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # aiosqlite would otherwise emit its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine, applying SQLite locking rules where needed."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": settings.sqlite_busy_timeout_seconds},
        )
        return configure_sqlite_engine(engine)
    return create_async_engine(database_url, echo=echo, future=True)


if not settings.database_url:
    raise ValueError("DATABASE_URL environment variable is not set")

# Hide password in logs
_url_for_log = (
    settings.database_url.split("@")[1] if "@" in settings.database_url else settings.database_url[:30]
)
logger.info("Connecting to database ...@%s", _url_for_log)

engine = build_engine(settings.database_url, echo=settings.debug)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
