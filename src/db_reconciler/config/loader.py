"""Load database settings from ``db.toml`` and the environment."""

import tomllib
from pathlib import Path

from db_reconciler.config.models import DatabaseSettings


def load_db_config(config_path: Path | None = None) -> DatabaseSettings:
    """Load database settings.

    Reads the optional ``[database]`` table of a TOML file; ``DB_*``
    environment variables override its values.

    Args:
        config_path: Path to db.toml (default: ``./db.toml``).  A missing
            file is not an error.

    Returns:
        DatabaseSettings

    Raises:
        ValueError: If the file or a value is invalid.

    Example:
        # db.toml
        # [database]
        # hostname = "database"
        # vector_extension = "vectorchord"
        settings = load_db_config(Path("db.toml"))
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    data: dict = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            try:
                data = tomllib.load(f).get("database", {})
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid config file {config_path}: {e}") from e

    return DatabaseSettings(**data)
