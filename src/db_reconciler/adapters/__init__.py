"""Database adapters package.

Provides the ``DatabaseClient`` / ``DatabaseRepository`` Protocols and the
async PostgreSQL implementation.

Usage:
    from db_reconciler.adapters import AsyncPostgresAdapter, DatabaseRepository
"""

from db_reconciler.adapters.base import DatabaseClient, DatabaseRepository, ExtensionVersion
from db_reconciler.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "DatabaseRepository",
    "ExtensionVersion",
    "AsyncPostgresAdapter",
]
