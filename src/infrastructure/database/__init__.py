"""SQL persistence for content types and entries.

- **base**: declarative base and common record fields
- **models**: content records and their domain conversions
- **repository**: async repositories over the records
- **session**: engine and session lifecycle
- **stores**: registry and entry store implementations
"""

from src.infrastructure.database.session import (
    check_database_connection,
    close_database,
    create_database_engine,
    create_tables,
    get_async_session,
    get_engine,
    get_session_factory,
)
from src.infrastructure.database.stores import SqlContentTypeRegistry, SqlEntryStore

__all__ = [
    "SqlContentTypeRegistry",
    "SqlEntryStore",
    "check_database_connection",
    "close_database",
    "create_database_engine",
    "create_tables",
    "get_async_session",
    "get_engine",
    "get_session_factory",
]
