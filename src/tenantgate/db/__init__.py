"""SQLAlchemy persistence for tenantgate."""

from .config import (
    build_engine,
    build_session_factory,
    close_db,
    get_async_session,
    get_engine,
    get_session_factory,
    init_db,
)
from .store import SQLTenancyStore

__all__ = [
    "SQLTenancyStore",
    "build_engine",
    "build_session_factory",
    "close_db",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_db",
]
