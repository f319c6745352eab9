from academy_ledger.core.database.session import (
    async_session,
    build_engine,
    configure_sqlite_engine,
    engine,
    get_db,
)
from academy_ledger.core.database.base import Base, BigIntPK, TimestampedModel

__all__ = [
    "async_session",
    "build_engine",
    "configure_sqlite_engine",
    "engine",
    "get_db",
    "Base",
    "BigIntPK",
    "TimestampedModel",
]
