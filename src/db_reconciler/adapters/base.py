"""Database client and repository protocol definitions.

``DatabaseClient`` is the raw SQL surface used by migrations;
``DatabaseRepository`` adds the schema and extension primitives consumed
by ``DatabaseService.on_bootstrap()``.  All methods are ``async def``.

Usage:
    from db_reconciler.adapters.base import DatabaseClient, DatabaseRepository

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.fetch("SELECT extname FROM pg_extension")
        await client.execute("CREATE INDEX idx_name ON users (name)")
        await client.close()
"""

from typing import Protocol

from pydantic import BaseModel

from db_reconciler.constants import DatabaseExtension, VectorIndex


class ExtensionVersion(BaseModel):
    """Installed and available version of one extension.

    ``installed_version`` is ``None`` when the extension is not created in
    the database; ``available_version`` is ``None`` when the Postgres
    instance does not ship it.
    """

    name: DatabaseExtension
    installed_version: str | None = None
    available_version: str | None = None


class DatabaseClient(Protocol):
    """Raw SQL interface that all adapters must implement."""

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (DDL or other non-query operations).

        Args:
            sql: Raw SQL statement to execute.
            params: Optional dict of named parameters for the SQL statement.

        Raises:
            NotImplementedError: If the adapter does not support DDL.
        """
        ...

    async def fetch(self, sql: str, params: dict | None = None) -> list[dict]:
        """Run a query and return one dict per row."""
        ...

    async def test_connection(self) -> bool:
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...


class DatabaseRepository(DatabaseClient, Protocol):
    """Schema and extension primitives used during bootstrap."""

    async def get_postgres_version(self) -> str:
        """Server version, e.g. ``"16.4.0"``."""
        ...

    def get_postgres_version_range(self) -> str:
        ...

    async def get_vector_extension(self) -> DatabaseExtension:
        """The extension to use: configured, else first installed, else VectorChord."""
        ...

    def get_extension_version_range(self, extension: DatabaseExtension) -> str:
        ...

    async def get_extension_versions(
        self, extensions: list[DatabaseExtension]
    ) -> list[ExtensionVersion]:
        """One record per extension known to the catalog."""
        ...

    async def create_extension(self, extension: DatabaseExtension) -> None:
        ...

    async def update_vector_extension(
        self, extension: DatabaseExtension, target_version: str | None = None
    ) -> bool:
        """Update the extension; returns True when a server restart is required."""
        ...

    async def drop_extension(self, extension: DatabaseExtension) -> None:
        ...

    async def run_migrations(self) -> None:
        """Diff the declared schema against the database and apply the result."""
        ...

    async def reindex_vectors_if_needed(self, names: list[VectorIndex]) -> None:
        ...
