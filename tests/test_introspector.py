"""Tests for live schema introspection.

``_fetch`` is replaced by a fake that answers each catalog query with
canned rows, so no database is needed.
"""

from unittest.mock import AsyncMock, patch

import pytest

from db_reconciler.schema.introspector import SchemaIntrospector
from db_reconciler.schema.models import ActionType, ConstraintType, TriggerAction, TriggerTiming

_ROWS = {
    "current_database": [("immich",)],
    "pg_enum": [("asset_status", ["active", "trashed"])],
    "information_schema.columns": [
        ("asset", "id", "uuid", "uuid", "NO", "uuid_generate_v4()", None, None),
        ("asset", "status", "USER-DEFINED", "asset_status", "NO", None, None, None),
        ("asset", "tags", "ARRAY", "_varchar", "YES", None, None, "tag list"),
        ("asset", "ownerId", "uuid", "uuid", "NO", None, None, None),
        ("user", "id", "uuid", "uuid", "NO", None, None, None),
    ],
    "pg_constraint con\n": [
        ("PK_asset", "asset", "p", ["id"], None, [], "a", "a", "PRIMARY KEY (id)"),
        ("FK_asset_owner", "asset", "f", ["ownerId"], "user", ["id"], "c", "a", "FOREIGN KEY ..."),
        ("CHK_size", "asset", "c", [], None, [], " ", " ", "CHECK ((size >= 0))"),
    ],
    "pg_index ix": [
        ("asset", "IDX_owner", False, "btree", None, None, ["ownerId"]),
        ("asset", "IDX_tags", False, "gin", "tags IS NOT NULL", None, ["tags"]),
    ],
    "information_schema.triggers": [
        ("asset", "asset_updated_at", "INSERT", "BEFORE", "ROW", None, "EXECUTE FUNCTION updated_at()"),
        ("asset", "asset_updated_at", "UPDATE", "BEFORE", "ROW", None, "EXECUTE FUNCTION updated_at()"),
    ],
    "information_schema.tables": [("asset",), ("spatial_ref_sys",), ("user",)],
    "pg_extension": [("cube",), ("plpgsql",)],
    "pg_proc": [("updated_at", "CREATE OR REPLACE FUNCTION public.updated_at() ...")],
    "pg_db_role_setting": [("search_path=public",)],
}


async def _fake_fetch(query: str, params: tuple = ()) -> list[tuple]:
    for marker, rows in _ROWS.items():
        if marker in query:
            return rows
    raise AssertionError(f"unexpected query: {query}")


@pytest.fixture
async def schema():
    introspector = SchemaIntrospector("postgresql://u:p@db/immich")
    with patch.object(introspector, "_fetch", AsyncMock(side_effect=_fake_fetch)):
        return await introspector.introspect()


def _table(schema, name):
    return next(table for table in schema.tables if table.name == name)


class TestConnectionUrl:
    def test_driver_suffix_stripped(self):
        introspector = SchemaIntrospector("postgresql+asyncpg://u:p@db/immich")
        assert introspector._database_url == "postgresql://u:p@db/immich"

    def test_plain_url_unchanged(self):
        introspector = SchemaIntrospector("postgresql://u:p@db/immich")
        assert introspector._database_url == "postgresql://u:p@db/immich"

    async def test_fetch_requires_connection(self):
        with pytest.raises(RuntimeError, match="not connected"):
            await SchemaIntrospector("postgresql://db/immich")._fetch("SELECT 1")


class TestNormalizeDataType:
    @pytest.mark.parametrize(
        "udt_name, expected",
        [
            ("int4", "integer"),
            ("varchar", "character varying"),
            ("timestamptz", "timestamp with time zone"),
            ("uuid", "uuid"),
        ],
    )
    def test_mapping(self, udt_name, expected):
        assert SchemaIntrospector._normalize_data_type(udt_name) == expected


class TestIntrospect:
    async def test_database_level(self, schema):
        assert schema.database_name == "immich"
        assert [e.name for e in schema.enums] == ["asset_status"]
        assert [e.name for e in schema.extensions] == ["cube"]
        assert [f.name for f in schema.functions] == ["updated_at"]
        assert [(p.name, p.value, p.database_name) for p in schema.parameters] == [
            ("search_path", "public", "immich")
        ]

    async def test_excluded_tables(self, schema):
        assert [t.name for t in schema.tables] == ["asset", "user"]

    async def test_columns(self, schema):
        columns = {c.name: c for c in _table(schema, "asset").columns}
        assert columns["id"].default == "uuid_generate_v4()"
        assert columns["status"].type == "enum"
        assert columns["status"].enum_name == "asset_status"
        assert columns["tags"].is_array is True
        assert columns["tags"].type == "character varying"
        assert columns["tags"].nullable is True
        assert columns["tags"].comment == "tag list"

    async def test_constraints(self, schema):
        constraints = {c.name: c for c in _table(schema, "asset").constraints}
        assert constraints["PK_asset"].type == ConstraintType.PRIMARY_KEY
        fk = constraints["FK_asset_owner"]
        assert fk.reference_table_name == "user"
        assert fk.on_delete == ActionType.CASCADE
        assert fk.on_update is None
        assert constraints["CHK_size"].expression == "(size >= 0)"

    async def test_indexes(self, schema):
        indexes = {i.name: i for i in _table(schema, "asset").indexes}
        assert indexes["IDX_owner"].using is None
        assert indexes["IDX_tags"].using == "gin"
        assert indexes["IDX_tags"].where == "tags IS NOT NULL"

    async def test_triggers_folded(self, schema):
        (trigger,) = _table(schema, "asset").triggers
        assert trigger.function_name == "updated_at"
        assert trigger.timing == TriggerTiming.BEFORE
        assert trigger.actions == [TriggerAction.INSERT, TriggerAction.UPDATE]
        assert _table(schema, "user").triggers == []
