"""Tests for the per-kind entity comparers."""

import pytest

from db_reconciler.schema.comparers import (
    compare,
    compare_columns,
    compare_constraints,
    compare_enums,
    compare_functions,
    compare_indexes,
    compare_parameters,
    compare_triggers,
    get_column_type,
)
from db_reconciler.schema.models import (
    ActionType,
    ColumnSchema,
    ConstraintSchema,
    ConstraintType,
    EnumSchema,
    FunctionSchema,
    IgnoreOptions,
    IndexSchema,
    ParameterSchema,
    Reason,
    TriggerAction,
    TriggerSchema,
)


def _index(**overrides) -> IndexSchema:
    data = {"name": "IDX_test", "table_name": "table1", "column_names": ["a"]}
    data.update(overrides)
    return IndexSchema(**data)


def _column(**overrides) -> ColumnSchema:
    data = {"name": "name", "table_name": "table1", "type": "character varying"}
    data.update(overrides)
    return ColumnSchema(**data)


def _fk(**overrides) -> ConstraintSchema:
    data = {
        "type": ConstraintType.FOREIGN_KEY,
        "name": "FK_test",
        "table_name": "album",
        "column_names": ["ownerId"],
        "reference_table_name": "user",
        "reference_column_names": ["id"],
    }
    data.update(overrides)
    return ConstraintSchema(**data)


class TestIndexComparer:
    def test_same_index(self):
        assert compare_indexes.on_compare(_index(), _index()) == []

    def test_missing(self):
        actions = compare_indexes.on_missing(_index())
        assert [a.type for a in actions] == ["IndexCreate"]
        assert actions[0].reason == Reason.MISSING_IN_TARGET

    def test_extra(self):
        actions = compare_indexes.on_extra(_index())
        assert [a.type for a in actions] == ["IndexDrop"]
        assert actions[0].index_name == "IDX_test"
        assert actions[0].reason == Reason.MISSING_IN_SOURCE

    def test_column_change_recreates(self):
        """Changed columns give a drop followed by a create with the same reason."""
        actions = compare_indexes.on_compare(
            _index(column_names=["a"]), _index(column_names=["a", "b"])
        )
        assert [a.type for a in actions] == ["IndexDrop", "IndexCreate"]
        assert actions[0].reason == "columns are different (a vs a,b)"
        assert actions[1].reason == "columns are different (a vs a,b)"

    def test_column_order_is_significant(self):
        actions = compare_indexes.on_compare(
            _index(column_names=["a", "b"]), _index(column_names=["b", "a"])
        )
        assert [a.type for a in actions] == ["IndexDrop", "IndexCreate"]

    def test_default_method_matches_any(self):
        """An undeclared method does not conflict with the database's btree."""
        assert compare_indexes.on_compare(_index(using=None), _index(using="btree")) == []

    def test_uniqueness_change(self):
        actions = compare_indexes.on_compare(_index(unique=True), _index(unique=False))
        assert actions[0].reason == "uniqueness is different (true vs false)"


class TestColumnComparer:
    def test_type_change_recreates(self):
        actions = compare_columns.on_compare(_column(type="integer"), _column(type="text"))
        assert [a.type for a in actions] == ["ColumnDrop", "ColumnCreate"]
        assert actions[0].reason == "column type is different (integer vs text)"

    def test_nullable_change_alters(self):
        actions = compare_columns.on_compare(_column(nullable=True), _column(nullable=False))
        assert [a.type for a in actions] == ["ColumnAlter"]
        assert actions[0].changes == {"nullable": True}
        assert actions[0].reason == "nullable is different (true vs false)"

    def test_default_and_comment_change(self):
        actions = compare_columns.on_compare(
            _column(default="'x'", comment="new"), _column(default=None, comment=None)
        )
        assert [a.changes for a in actions] == [{"default": "'x'"}, {"comment": "new"}]

    @pytest.mark.parametrize(
        "declared, live",
        [
            ("timestamptz", "timestamp with time zone"),
            ("varchar", "character varying"),
            ("int4", "integer"),
            ("int", "integer"),
            ("bool", "boolean"),
            ("float8", "double precision"),
        ],
    )
    def test_type_aliases_are_equal(self, declared, live):
        assert compare_columns.on_compare(_column(type=declared), _column(type=live)) == []

    def test_aliased_array_type_is_equal(self):
        declared = _column(type="int4", is_array=True)
        live = _column(type="integer", is_array=True)
        assert compare_columns.on_compare(declared, live) == []

    def test_type_change_reason_uses_reported_names(self):
        actions = compare_columns.on_compare(_column(type="int8"), _column(type="integer"))
        assert actions[0].reason == "column type is different (bigint vs integer)"

    def test_column_type_rendering(self):
        assert get_column_type(_column(type="character varying", length=255)) == "character varying(255)"
        assert get_column_type(_column(type="text", is_array=True)) == "text[]"
        assert get_column_type(_column(type="enum", enum_name="status")) == "status"


class TestConstraintComparer:
    def test_same_foreign_key(self):
        assert compare_constraints.on_compare(_fk(), _fk()) == []

    def test_no_action_equals_unset(self):
        assert compare_constraints.on_compare(_fk(on_delete=None), _fk(on_delete=ActionType.NO_ACTION)) == []

    def test_on_delete_change(self):
        actions = compare_constraints.on_compare(_fk(on_delete=ActionType.CASCADE), _fk())
        assert [a.type for a in actions] == ["ConstraintDrop", "ConstraintCreate"]
        assert actions[0].reason == "ON DELETE action is different (CASCADE vs NO ACTION)"

    def test_primary_key_column_order_ignored(self):
        source = ConstraintSchema(
            type=ConstraintType.PRIMARY_KEY, name="PK_x", table_name="t", column_names=["a", "b"]
        )
        target = source.model_copy(update={"column_names": ["b", "a"]})
        assert compare_constraints.on_compare(source, target) == []

    def test_check_with_same_name_is_unchanged(self):
        source = ConstraintSchema(
            type=ConstraintType.CHECK, name="CHK_x", table_name="t", expression="a > 0"
        )
        target = source.model_copy(update={"expression": "(a > 0)"})
        assert compare_constraints.on_compare(source, target) == []


class TestTriggerComparer:
    def test_function_change(self):
        source = TriggerSchema(
            name="trg", table_name="t", function_name="f1", actions=[TriggerAction.UPDATE]
        )
        target = source.model_copy(update={"function_name": "f2"})
        actions = compare_triggers.on_compare(source, target)
        assert [a.type for a in actions] == ["TriggerDrop", "TriggerCreate"]
        assert actions[0].reason == "function is different (f1 vs f2)"


class TestSchemaLevelComparers:
    def test_enum_values_changed(self):
        actions = compare_enums.on_compare(
            EnumSchema(name="e", values=["a", "b"]), EnumSchema(name="e", values=["a"])
        )
        assert [a.type for a in actions] == ["EnumDrop", "EnumCreate"]
        assert actions[0].reason == "enum values has changed (a,b vs a)"

    def test_function_replaced_in_place(self):
        actions = compare_functions.on_compare(
            FunctionSchema(name="f", expression="new"), FunctionSchema(name="f", expression="old")
        )
        assert [a.type for a in actions] == ["FunctionCreate"]

    def test_parameter_value_changed(self):
        source = ParameterSchema(name="search_path", value="public", database_name="immich")
        target = source.model_copy(update={"value": "other"})
        actions = compare_parameters.on_compare(source, target)
        assert [a.type for a in actions] == ["ParameterCreate"]
        assert actions[0].reason == "value is different (public vs other)"


class TestCompare:
    def test_discovery_order(self):
        """Source identities first, then target-only ones."""
        actions = compare(
            [_index(name="b"), _index(name="a")],
            [_index(name="c")],
            None,
            compare_indexes,
        )
        assert [(a.type, getattr(a, "index_name", None)) for a in actions] == [
            ("IndexCreate", None),
            ("IndexCreate", None),
            ("IndexDrop", "c"),
        ]
        assert [a.index.name for a in actions[:2]] == ["b", "a"]

    def test_ignore_extra(self):
        actions = compare([], [_index()], IgnoreOptions(ignore_extra=True), compare_indexes)
        assert actions == []

    def test_ignore_missing(self):
        actions = compare([_index()], [], IgnoreOptions(ignore_missing=True), compare_indexes)
        assert actions == []

    def test_synchronize_disabled_on_either_side(self):
        assert compare([_index(synchronize=False)], [], None, compare_indexes) == []
        assert compare([], [_index(synchronize=False)], None, compare_indexes) == []
        assert (
            compare([_index(column_names=["x"])], [_index(synchronize=False)], None, compare_indexes)
            == []
        )
