"""Tests for the schema builder, generated names and authoring validation."""

import pytest

from db_reconciler.schema.builder import SchemaBuilder
from db_reconciler.schema.models import (
    ActionType,
    ConstraintType,
    DatabaseSchema,
    TableSchema,
    TriggerAction,
)
from db_reconciler.schema.naming import (
    as_foreign_key_name,
    as_index_name,
    as_primary_key_name,
    as_snake_case,
)
from db_reconciler.schema.validator import SchemaValidator, validate_schema


def _table(schema: DatabaseSchema, name: str) -> TableSchema:
    return next(table for table in schema.tables if table.name == name)


# ------------------------------------------------------------------
# Naming
# ------------------------------------------------------------------


class TestNaming:
    def test_primary_key_name(self):
        assert as_primary_key_name("table1", ["id"]) == "PK_b249cc64cf63b8a22557cdc8537"

    def test_names_are_deterministic(self):
        assert as_foreign_key_name("album", ["ownerId"]) == as_foreign_key_name("album", ["ownerId"])

    def test_member_order_does_not_change_name(self):
        assert as_index_name("t", ["a", "b"]) == as_index_name("t", ["b", "a"])

    def test_where_changes_index_name(self):
        assert as_index_name("t", ["a"]) != as_index_name("t", ["a"], where="a IS NOT NULL")

    def test_name_length(self):
        assert len(as_primary_key_name("some_table", ["id"])) == 30

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Table1", "table1"),
            ("UserProfile", "user_profile"),
            ("APIKey", "api_key"),
            ("asset-face", "asset_face"),
        ],
    )
    def test_snake_case(self, name, expected):
        assert as_snake_case(name) == expected


# ------------------------------------------------------------------
# Builder
# ------------------------------------------------------------------


class TestSchemaBuilder:
    def test_primary_key_constraint(self):
        """A primary column produces a named primary-key constraint."""
        builder = SchemaBuilder()
        builder.table("Table1").primary_column("id", "uuid")

        schema = builder.build()

        table = _table(schema, "table1")
        assert table.columns[0].primary is True
        assert table.constraints[0].type == ConstraintType.PRIMARY_KEY
        assert table.constraints[0].name == "PK_b249cc64cf63b8a22557cdc8537"
        assert table.constraints[0].column_names == ["id"]

    def test_explicit_table_name(self):
        builder = SchemaBuilder()
        builder.table("Asset", table_name="assets").primary_column("id")

        schema = builder.build()

        assert [table.name for table in schema.tables] == ["assets"]

    def test_duplicate_table_raises(self):
        builder = SchemaBuilder()
        builder.table("Asset")
        with pytest.raises(ValueError, match="already declared"):
            builder.table("asset")

    def test_schema_level_entities(self):
        builder = SchemaBuilder(database_name="immich")
        builder.enum("asset_status", ["active", "trashed"])
        builder.extension("cube")
        builder.function("immich_uuid_v7", "CREATE OR REPLACE FUNCTION immich_uuid_v7() ...")
        builder.parameter("search_path", "public")

        schema = builder.build()

        assert schema.database_name == "immich"
        assert schema.enums[0].values == ["active", "trashed"]
        assert schema.extensions[0].name == "cube"
        assert schema.functions[0].name == "immich_uuid_v7"
        assert schema.parameters[0].database_name == "immich"

    def test_builders_are_independent(self):
        """No declaration leaks from one builder into another."""
        first = SchemaBuilder()
        first.table("Asset").primary_column("id")
        second = SchemaBuilder()

        assert first.build().tables
        assert second.build().tables == []

    def test_foreign_key_defaults_to_primary_columns(self):
        builder = SchemaBuilder()
        users = builder.table("User").primary_column("id")
        builder.table("Album").primary_column("id").column("ownerId", "uuid").foreign_key(
            ["ownerId"], users, on_delete=ActionType.CASCADE
        )

        schema = builder.build()

        fk = next(
            c for c in _table(schema, "album").constraints if c.type == ConstraintType.FOREIGN_KEY
        )
        assert fk.reference_table_name == "user"
        assert fk.reference_column_names == ["id"]
        assert fk.on_delete == ActionType.CASCADE
        assert fk.name == as_foreign_key_name("album", ["ownerId"])
        assert schema.warnings == []

    def test_forward_reference(self):
        """A foreign key may point at a table declared later via a callable."""
        builder = SchemaBuilder()
        builder.table("Album").primary_column("id").column("ownerId", "uuid").foreign_key(
            ["ownerId"], lambda: users
        )
        users = builder.table("User").primary_column("id")

        schema = builder.build()

        fk = next(
            c for c in _table(schema, "album").constraints if c.type == ConstraintType.FOREIGN_KEY
        )
        assert fk.reference_table_name == "user"
        assert fk.reference_column_names == ["id"]
        assert schema.warnings == []

    def test_reference_by_declared_name(self):
        builder = SchemaBuilder()
        builder.table("Album").primary_column("id").column("ownerId", "uuid").foreign_key(
            ["ownerId"], "User"
        )
        builder.table("User").primary_column("id")

        schema = builder.build()

        fk = next(
            c for c in _table(schema, "album").constraints if c.type == ConstraintType.FOREIGN_KEY
        )
        assert fk.reference_table_name == "user"

    def test_self_reference(self):
        builder = SchemaBuilder()
        tags = builder.table("Tag").primary_column("id").column("parentId", "uuid", nullable=True)
        tags.foreign_key(["parentId"], tags)

        schema = builder.build()

        fk = next(
            c for c in _table(schema, "tag").constraints if c.type == ConstraintType.FOREIGN_KEY
        )
        assert fk.reference_table_name == "tag"
        assert schema.warnings == []

    def test_foreign_key_missing_column_warns(self):
        """An FK over an undeclared column yields exactly one warning and is dropped."""
        builder = SchemaBuilder()
        parent = builder.table("Table1").primary_column("id")
        builder.table("Table2").primary_column("id").column("parentId", "uuid").foreign_key(
            ["parentId2"], parent
        )

        schema = builder.build()

        assert schema.warnings == ["[foreign_key.columns] Unable to find column (Table2.parentId2)"]
        assert all(
            c.type != ConstraintType.FOREIGN_KEY for c in _table(schema, "table2").constraints
        )

    def test_foreign_key_unknown_table_warns(self):
        builder = SchemaBuilder()
        builder.table("Album").primary_column("id").column("ownerId", "uuid").foreign_key(
            ["ownerId"], "Ghost", reference_columns=["id"]
        )

        schema = builder.build()

        assert schema.warnings == ["[foreign_key.reference_table] Unable to find table (Ghost)"]

    def test_index_and_unique(self):
        builder = SchemaBuilder()
        builder.table("Asset").primary_column("id").column("checksum", "bytea").index(
            ["checksum"], where="checksum IS NOT NULL"
        ).unique(["checksum"])

        table = _table(builder.build(), "asset")

        assert table.indexes[0].name == as_index_name("asset", ["checksum"], "checksum IS NOT NULL")
        assert table.indexes[0].where == "checksum IS NOT NULL"
        assert [c.type for c in table.constraints] == [ConstraintType.PRIMARY_KEY, ConstraintType.UNIQUE]

    def test_index_missing_column_warns(self):
        builder = SchemaBuilder()
        builder.table("Asset").primary_column("id").index(["missing"])

        schema = builder.build()

        assert schema.warnings == ["[index.columns] Unable to find column (Asset.missing)"]
        assert _table(schema, "asset").indexes == []

    def test_trigger(self):
        builder = SchemaBuilder()
        builder.table("Asset").primary_column("id").trigger(
            "updated_at", [TriggerAction.UPDATE]
        )

        trigger = _table(builder.build(), "asset").triggers[0]

        assert trigger.name == "asset_updated_at"
        assert trigger.function_name == "updated_at"
        assert trigger.actions == [TriggerAction.UPDATE]


# ------------------------------------------------------------------
# Validator
# ------------------------------------------------------------------


class TestValidator:
    def test_warning_format(self):
        validator = SchemaValidator([])
        validator.warn_missing_column("foreign_key.columns", "table2", "parentId2")
        assert validator.warnings == ["[foreign_key.columns] Unable to find column (table2.parentId2)"]

    def test_validate_schema_keeps_existing_warnings(self):
        schema = DatabaseSchema(warnings=["earlier"])
        assert validate_schema(schema).warnings == ["earlier"]

    def test_validate_schema_does_not_mutate_input(self):
        builder = SchemaBuilder()
        builder.table("Asset").primary_column("id")
        schema = builder.build()

        validated = validate_schema(schema)

        assert validated == schema
        assert validated is not schema
