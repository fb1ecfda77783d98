"""db-reconciler: Postgres bootstrap and declarative schema reconciliation.

Checks the server and vector extension versions at startup, creates or
updates the vector extension, migrates the database to a declared schema
and keeps vector indexes in shape.

Usage:
    from db_reconciler import SchemaBuilder, get_database_service

    builder = SchemaBuilder()
    builder.table("Asset").primary_column("id").column("name", "character varying")
    service = get_database_service(schema=builder.build())
    await service.on_bootstrap()
"""

__version__ = "0.1.0"

# Adapters
from db_reconciler.adapters.base import DatabaseClient, DatabaseRepository, ExtensionVersion
from db_reconciler.adapters.postgres import AsyncPostgresAdapter

# Bootstrap
from db_reconciler.bootstrap import DatabaseService

# Config
from db_reconciler.config.loader import load_db_config
from db_reconciler.config.models import DatabaseSettings

# Constants
from db_reconciler.constants import DatabaseExtension, VectorIndex

# Errors
from db_reconciler.errors import ReconcilerError

# Factory
from db_reconciler.factory import get_adapter, get_database_service, resolve_url

# Schema
from db_reconciler.schema.builder import SchemaBuilder
from db_reconciler.schema.differ import schema_diff
from db_reconciler.schema.migrate import apply_migration_plan, generate_migration_plan
from db_reconciler.schema.models import DatabaseSchema

__all__ = [
    # Adapters
    "DatabaseClient",
    "DatabaseRepository",
    "ExtensionVersion",
    "AsyncPostgresAdapter",
    # Bootstrap
    "DatabaseService",
    # Config
    "load_db_config",
    "DatabaseSettings",
    # Constants
    "DatabaseExtension",
    "VectorIndex",
    # Errors
    "ReconcilerError",
    # Factory
    "get_adapter",
    "get_database_service",
    "resolve_url",
    # Schema
    "SchemaBuilder",
    "DatabaseSchema",
    "schema_diff",
    "generate_migration_plan",
    "apply_migration_plan",
]
