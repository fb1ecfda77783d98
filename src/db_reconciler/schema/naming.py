"""Deterministic names for generated schema entities.

Constraint and index names are a prefix plus a truncated SHA-1 of the
table name and the sorted member values, so that the same declaration
always yields the same name in every environment.

Example:
    >>> as_primary_key_name("table1", ["id"])
    'PK_b249cc64cf63b8a22557cdc8537'
"""

import hashlib
import re

# prefix + 27 hex characters
_KEY_LENGTH = 30


def as_snake_case(name: str) -> str:
    """Convert a declaration name (``UserProfile``) to ``user_profile``."""
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return name.replace("-", "_").lower()


def as_key(prefix: str, table_name: str, values: list[str]) -> str:
    digest = hashlib.sha1(f"{table_name}_{'_'.join(sorted(values))}".encode()).hexdigest()
    return (prefix + digest)[:_KEY_LENGTH]


def as_primary_key_name(table_name: str, columns: list[str]) -> str:
    return as_key("PK_", table_name, columns)


def as_foreign_key_name(table_name: str, columns: list[str]) -> str:
    return as_key("FK_", table_name, columns)


def as_unique_name(table_name: str, columns: list[str]) -> str:
    return as_key("UQ_", table_name, columns)


def as_check_name(table_name: str, expression: str) -> str:
    return as_key("CHK_", table_name, [expression])


def as_index_name(table_name: str, columns: list[str] | None = None, where: str | None = None) -> str:
    values = list(columns or [])
    if where:
        values.append(where)
    return as_key("IDX_", table_name, values)


def as_trigger_name(table_name: str, function_name: str) -> str:
    return f"{table_name}_{function_name}"
