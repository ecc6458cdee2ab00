from nextsub.core.db.config import (
    async_engine,
    AsyncSessionLocal,
    Base,
    build_engine,
    build_sessionmaker,
    dispose_db,
    init_db,
)

__all__ = [
    "async_engine",
    "AsyncSessionLocal",
    "Base",
    "build_engine",
    "build_sessionmaker",
    "dispose_db",
    "init_db",
]
