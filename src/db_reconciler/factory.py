"""Adapter and service factory.

Builds an ``AsyncPostgresAdapter`` and a ``DatabaseService`` from
``DatabaseSettings`` (``DB_*`` environment variables or ``db.toml``).
"""

from urllib.parse import quote

from db_reconciler.adapters.postgres import AsyncPostgresAdapter
from db_reconciler.bootstrap import DatabaseService
from db_reconciler.config import DatabaseSettings, load_db_config
from db_reconciler.schema.models import DatabaseSchema, DiffOptions


def resolve_url(settings: DatabaseSettings) -> str:
    """Resolve the connection URL from settings.

    ``url`` is used as-is, except that a ``[YOUR-PASSWORD]`` placeholder is
    replaced with the configured password.  Otherwise the URL is built from
    the connection parts.

    Example:
        >>> resolve_url(DatabaseSettings(hostname="db", password="p@ss", database_name="immich"))
        'postgresql://postgres:p%40ss@db:5432/immich'
    """
    if settings.url:
        url = settings.url
        if settings.password and "[YOUR-PASSWORD]" in url:
            url = url.replace("[YOUR-PASSWORD]", quote(settings.password, safe=""))
        return url

    username = quote(settings.username, safe="")
    password = quote(settings.password, safe="")
    return (
        f"postgresql://{username}:{password}@{settings.hostname}:{settings.port}/"
        f"{settings.database_name}"
    )


def get_adapter(
    settings: DatabaseSettings | None = None,
    schema: DatabaseSchema | None = None,
    diff_options: DiffOptions | None = None,
) -> AsyncPostgresAdapter:
    """Create an adapter from settings (loaded from ``db.toml``/env if omitted)."""
    settings = settings or load_db_config()
    return AsyncPostgresAdapter(
        resolve_url(settings),
        schema=schema,
        vector_extension=settings.vector_extension,
        diff_options=diff_options,
    )


def get_database_service(
    settings: DatabaseSettings | None = None,
    schema: DatabaseSchema | None = None,
    diff_options: DiffOptions | None = None,
) -> DatabaseService:
    """Create a ``DatabaseService`` wired to a new adapter.

    Example:
        service = get_database_service(schema=declared_schema)
        try:
            await service.on_bootstrap()
        finally:
            await service.repository.close()
    """
    settings = settings or load_db_config()
    adapter = get_adapter(settings, schema=schema, diff_options=diff_options)
    return DatabaseService(adapter, skip_migrations=settings.skip_migrations)
