"""Tests for rendering schema diff actions as DDL."""

import pytest

from db_reconciler.schema.models import (
    ActionType,
    ColumnAlter,
    ColumnCreate,
    ColumnDrop,
    ColumnSchema,
    ConstraintCreate,
    ConstraintDrop,
    ConstraintSchema,
    ConstraintType,
    EnumCreate,
    EnumSchema,
    ExtensionCreate,
    ExtensionSchema,
    FunctionCreate,
    FunctionSchema,
    IndexCreate,
    IndexDrop,
    IndexSchema,
    ParameterCreate,
    ParameterDrop,
    ParameterSchema,
    ParameterScope,
    Reason,
    TableCreate,
    TableDrop,
    TableSchema,
    TriggerAction,
    TriggerCreate,
    TriggerSchema,
    TriggerTiming,
)
from db_reconciler.schema.sql import (
    column_definition,
    quote_identifier,
    quote_literal,
    to_sql,
    to_statements,
)

CREATE = Reason.MISSING_IN_TARGET
DROP = Reason.MISSING_IN_SOURCE


class TestQuoting:
    def test_identifier(self):
        assert quote_identifier("ownerId") == '"ownerId"'
        assert quote_identifier('a"b') == '"a""b"'

    def test_literal(self):
        assert quote_literal("it's") == "'it''s'"


class TestColumnDefinition:
    def test_nullable_with_length(self):
        column = ColumnSchema(name="name", table_name="t", type="character varying", length=255, nullable=True)
        assert column_definition(column) == '"name" character varying(255)'

    def test_array(self):
        column = ColumnSchema(name="tags", table_name="t", type="text", is_array=True)
        assert column_definition(column) == '"tags" text[] NOT NULL'

    def test_enum(self):
        column = ColumnSchema(name="status", table_name="t", type="enum", enum_name="asset_status")
        assert column_definition(column) == '"status" "asset_status" NOT NULL'


class TestToSql:
    def test_table_create_with_comment(self):
        table = TableSchema(
            name="asset",
            columns=[
                ColumnSchema(name="id", table_name="asset", type="uuid"),
                ColumnSchema(name="note", table_name="asset", type="text", nullable=True, comment="free text"),
            ],
        )
        assert to_sql(TableCreate(table=table, reason=CREATE)) == [
            'CREATE TABLE "asset" ("id" uuid NOT NULL, "note" text);',
            "COMMENT ON COLUMN \"asset\".\"note\" IS 'free text';",
        ]

    def test_table_drop(self):
        assert to_sql(TableDrop(table_name="asset", reason=DROP)) == ['DROP TABLE "asset";']

    def test_column_create_and_drop(self):
        column = ColumnSchema(name="size", table_name="asset", type="bigint", default="0")
        assert to_sql(ColumnCreate(column=column, reason=CREATE)) == [
            'ALTER TABLE "asset" ADD "size" bigint NOT NULL DEFAULT 0;'
        ]
        assert to_sql(ColumnDrop(table_name="asset", column_name="size", reason=DROP)) == [
            'ALTER TABLE "asset" DROP COLUMN "size";'
        ]

    @pytest.mark.parametrize(
        "changes, expected",
        [
            ({"nullable": True}, 'ALTER TABLE "t" ALTER COLUMN "c" DROP NOT NULL;'),
            ({"nullable": False}, 'ALTER TABLE "t" ALTER COLUMN "c" SET NOT NULL;'),
            ({"default": "now()"}, 'ALTER TABLE "t" ALTER COLUMN "c" SET DEFAULT now();'),
            ({"default": None}, 'ALTER TABLE "t" ALTER COLUMN "c" DROP DEFAULT;'),
            ({"comment": None}, 'COMMENT ON COLUMN "t"."c" IS NULL;'),
        ],
    )
    def test_column_alter(self, changes, expected):
        action = ColumnAlter(table_name="t", column_name="c", changes=changes, reason="changed")
        assert to_sql(action) == [expected]

    def test_index(self):
        index = IndexSchema(
            name="IDX_x", table_name="asset", column_names=["ownerId", "checksum"], unique=True, where='"deletedAt" IS NULL'
        )
        assert to_sql(IndexCreate(index=index, reason=CREATE)) == [
            'CREATE UNIQUE INDEX "IDX_x" ON "asset" ("ownerId", "checksum") WHERE "deletedAt" IS NULL;'
        ]
        assert to_sql(IndexDrop(index_name="IDX_x", reason=DROP)) == ['DROP INDEX "IDX_x";']

    def test_expression_index_with_method(self):
        index = IndexSchema(name="IDX_e", table_name="asset", using="gin", expression="f_unaccent(name) gin_trgm_ops")
        assert to_sql(IndexCreate(index=index, reason=CREATE)) == [
            'CREATE INDEX "IDX_e" ON "asset" USING gin (f_unaccent(name) gin_trgm_ops);'
        ]

    def test_foreign_key(self):
        constraint = ConstraintSchema(
            type=ConstraintType.FOREIGN_KEY,
            name="FK_x",
            table_name="album",
            column_names=["ownerId"],
            reference_table_name="user",
            reference_column_names=["id"],
            on_delete=ActionType.CASCADE,
            on_update=ActionType.CASCADE,
        )
        assert to_sql(ConstraintCreate(constraint=constraint, reason=CREATE)) == [
            'ALTER TABLE "album" ADD CONSTRAINT "FK_x" FOREIGN KEY ("ownerId") REFERENCES "user" ("id") '
            "ON UPDATE CASCADE ON DELETE CASCADE;"
        ]

    def test_primary_key_and_check(self):
        pk = ConstraintSchema(type=ConstraintType.PRIMARY_KEY, name="PK_x", table_name="t", column_names=["id"])
        check = ConstraintSchema(type=ConstraintType.CHECK, name="CHK_x", table_name="t", expression="size >= 0")
        assert to_statements(
            [ConstraintCreate(constraint=pk, reason=CREATE), ConstraintCreate(constraint=check, reason=CREATE)]
        ) == [
            'ALTER TABLE "t" ADD CONSTRAINT "PK_x" PRIMARY KEY ("id");',
            'ALTER TABLE "t" ADD CONSTRAINT "CHK_x" CHECK (size >= 0);',
        ]

    def test_constraint_drop(self):
        assert to_sql(ConstraintDrop(table_name="t", constraint_name="FK_x", reason=DROP)) == [
            'ALTER TABLE "t" DROP CONSTRAINT "FK_x";'
        ]

    def test_trigger(self):
        trigger = TriggerSchema(
            name="asset_updated_at",
            table_name="asset",
            function_name="updated_at",
            timing=TriggerTiming.BEFORE,
            actions=[TriggerAction.INSERT, TriggerAction.UPDATE],
        )
        assert to_sql(TriggerCreate(trigger=trigger, reason=CREATE)) == [
            'CREATE OR REPLACE TRIGGER "asset_updated_at"\n'
            '  BEFORE INSERT OR UPDATE ON "asset"\n'
            "  FOR EACH ROW\n"
            "  EXECUTE FUNCTION updated_at();"
        ]

    def test_enum_extension_function(self):
        actions = [
            ExtensionCreate(extension=ExtensionSchema(name="cube"), reason=CREATE),
            EnumCreate(enum=EnumSchema(name="status", values=["a", "b"]), reason=CREATE),
            FunctionCreate(function=FunctionSchema(name="f", expression="CREATE FUNCTION f() ..."), reason=CREATE),
        ]
        assert to_statements(actions) == [
            'CREATE EXTENSION IF NOT EXISTS "cube";',
            "CREATE TYPE \"status\" AS ENUM ('a', 'b');",
            "CREATE FUNCTION f() ...;",
        ]

    def test_parameters(self):
        database = ParameterSchema(name="search_path", value="public", database_name="immich")
        user = database.model_copy(update={"scope": ParameterScope.USER})
        assert to_sql(ParameterCreate(parameter=database, reason=CREATE)) == [
            'ALTER DATABASE "immich" SET search_path TO public;'
        ]
        assert to_sql(ParameterCreate(parameter=user, reason=CREATE)) == ["SET search_path TO public;"]
        assert to_sql(ParameterDrop(database_name="immich", parameter_name="search_path", reason=DROP)) == [
            'ALTER DATABASE "immich" RESET search_path;'
        ]
