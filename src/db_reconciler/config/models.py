"""Settings model for the database connection and bootstrap behaviour."""

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from db_reconciler.constants import DatabaseExtension

# Accepted spellings for DB_VECTOR_EXTENSION
_EXTENSION_ALIASES = {
    "pgvector": DatabaseExtension.VECTOR,
    "pgvecto.rs": DatabaseExtension.VECTORS,
    "vectorchord": DatabaseExtension.VECTORCHORD,
}


class DatabaseSettings(BaseSettings):
    """Database settings from ``DB_*`` environment variables or ``db.toml``.

    Either ``url`` or the individual connection parts are used; ``url``
    wins when both are set.  Environment variables take precedence over
    values passed to the constructor (e.g. from ``db.toml``).

    Example:
        >>> DatabaseSettings(hostname="db", password="secret").port
        5432
    """

    model_config = SettingsConfigDict(env_prefix="DB_", extra="ignore")

    url: str | None = None
    hostname: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: str = "postgres"
    database_name: str = "immich"

    skip_migrations: bool = False
    vector_extension: DatabaseExtension | None = None

    @field_validator("vector_extension", mode="before")
    @classmethod
    def _parse_extension(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if not value:
                return None
            return _EXTENSION_ALIASES.get(value, value)
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # env over file values
        return env_settings, init_settings, dotenv_settings, file_secret_settings
