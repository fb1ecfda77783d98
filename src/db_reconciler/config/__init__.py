"""Configuration management: settings model and TOML loading.

Usage:
    >>> from db_reconciler.config import load_db_config, DatabaseSettings
"""

from db_reconciler.config.loader import load_db_config
from db_reconciler.config.models import DatabaseSettings

__all__ = ["load_db_config", "DatabaseSettings"]
