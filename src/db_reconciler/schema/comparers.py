"""Entity comparers: one per entity kind.

Every comparer implements the same three pure functions:

- ``on_missing(source)``: entity is declared but absent from the database.
  Default: one ``<Kind>Create`` with ``Reason.MISSING_IN_TARGET``.
- ``on_extra(target)``: entity exists in the database but is not declared.
  Default: one ``<Kind>Drop`` with ``Reason.MISSING_IN_SOURCE``.
- ``on_compare(source, target)``: same identity on both sides.  Returns
  ``[]`` when equivalent, otherwise the actions that turn *target* into
  *source*, with a reason naming the differing field.  When an entity is
  recreated, its drop always comes first.

``compare()`` partitions two entity lists by name and dispatches to a
comparer.  Pure logic -- no I/O.

Usage:
    from db_reconciler.schema.comparers import compare, compare_indexes

    actions = compare(source_table.indexes, target_table.indexes, None, compare_indexes)
"""

from collections.abc import Callable, Sequence
from typing import Any, Generic, Protocol, TypeVar

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
    EnumDrop,
    EnumSchema,
    ExtensionCreate,
    ExtensionDrop,
    ExtensionSchema,
    FunctionCreate,
    FunctionDrop,
    FunctionSchema,
    IgnoreOptions,
    IndexCreate,
    IndexDrop,
    IndexSchema,
    ParameterCreate,
    ParameterDrop,
    ParameterSchema,
    Reason,
    SchemaDiff,
    TableCreate,
    TableDrop,
    TableSchema,
    TriggerCreate,
    TriggerDrop,
    TriggerSchema,
)
from db_reconciler.schema.sql import normalize_type


class _Named(Protocol):
    name: str
    synchronize: bool


T = TypeVar("T", bound=_Named)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _fmt(value: Any) -> str:
    """Format a field value for a reason string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_fmt(item) for item in value)
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _changed(field: str, source: Any, target: Any) -> str:
    return f"{field} is different ({_fmt(source)} vs {_fmt(target)})"


def have_equal_columns(source: Sequence[str] | None, target: Sequence[str] | None) -> bool:
    """Compare two column lists as sets (order-insensitive)."""
    return set(source or []) == set(target or [])


def is_synchronize_disabled(source: _Named | None, target: _Named | None) -> bool:
    return (source is not None and not source.synchronize) or (
        target is not None and not target.synchronize
    )


# ------------------------------------------------------------------
# Comparer base
# ------------------------------------------------------------------


class Comparer(Generic[T]):
    """Base comparer.  Subclasses override the three hooks."""

    def on_missing(self, source: T) -> list[SchemaDiff]:
        raise NotImplementedError

    def on_extra(self, target: T) -> list[SchemaDiff]:
        raise NotImplementedError

    def on_compare(self, source: T, target: T) -> list[SchemaDiff]:
        return []


def compare(
    sources: Sequence[T],
    targets: Sequence[T],
    options: IgnoreOptions | None,
    comparer: Comparer[T],
) -> list[SchemaDiff]:
    """Partition entities by name and collect the comparer's actions.

    Identities are visited in source order, followed by the ones that only
    exist in the target, so the output is deterministic.

    Args:
        sources: Declared entities.
        targets: Entities read from the database.
        options: Optional ignore flags for this kind.
        comparer: Comparer for this entity kind.

    Returns:
        Actions in discovery order (not yet safety-ordered).
    """
    options = options or IgnoreOptions()
    source_map = {item.name: item for item in sources}
    target_map = {item.name: item for item in targets}

    items: list[SchemaDiff] = []
    for key in dict.fromkeys([*source_map, *target_map]):
        source = source_map.get(key)
        target = target_map.get(key)

        if options.ignore_extra and source is None:
            continue
        if options.ignore_missing and target is None:
            continue
        if is_synchronize_disabled(source, target):
            continue

        if source is not None and target is None:
            items.extend(comparer.on_missing(source))
        elif source is None and target is not None:
            items.extend(comparer.on_extra(target))
        else:
            items.extend(comparer.on_compare(source, target))

    return items


# ------------------------------------------------------------------
# Columns
# ------------------------------------------------------------------


def get_column_type(column: ColumnSchema, normalize: bool = False) -> str:
    """Full column type as rendered in DDL, e.g. ``varchar(255)`` or ``text[]``.

    With ``normalize=True`` aliases are spelled the way Postgres reports
    them (``timestamptz`` -> ``timestamp with time zone``).
    """
    column_type = column.enum_name or (normalize_type(column.type) if normalize else column.type)
    if column.is_array:
        return f"{column_type}[{column.length if column.length is not None else ''}]"
    if column.length is not None:
        return f"{column_type}({column.length})"
    return column_type


class ColumnComparer(Comparer[ColumnSchema]):
    def on_missing(self, source: ColumnSchema) -> list[SchemaDiff]:
        return [ColumnCreate(column=source, reason=Reason.MISSING_IN_TARGET)]

    def on_extra(self, target: ColumnSchema) -> list[SchemaDiff]:
        return [
            ColumnDrop(
                table_name=target.table_name,
                column_name=target.name,
                reason=Reason.MISSING_IN_SOURCE,
            )
        ]

    def on_compare(self, source: ColumnSchema, target: ColumnSchema) -> list[SchemaDiff]:
        source_type = get_column_type(source, normalize=True)
        target_type = get_column_type(target, normalize=True)
        if source_type != target_type:
            reason = f"column type is different ({source_type} vs {target_type})"
            return [
                ColumnDrop(table_name=target.table_name, column_name=target.name, reason=reason),
                ColumnCreate(column=source, reason=reason),
            ]

        items: list[SchemaDiff] = []
        if source.nullable != target.nullable:
            items.append(
                ColumnAlter(
                    table_name=source.table_name,
                    column_name=source.name,
                    changes={"nullable": source.nullable},
                    reason=_changed("nullable", source.nullable, target.nullable),
                )
            )
        if source.default != target.default:
            items.append(
                ColumnAlter(
                    table_name=source.table_name,
                    column_name=source.name,
                    changes={"default": source.default},
                    reason=_changed("default", source.default, target.default),
                )
            )
        if source.comment != target.comment:
            items.append(
                ColumnAlter(
                    table_name=source.table_name,
                    column_name=source.name,
                    changes={"comment": source.comment},
                    reason=_changed("comment", source.comment, target.comment),
                )
            )
        return items


# ------------------------------------------------------------------
# Indexes
# ------------------------------------------------------------------


class IndexComparer(Comparer[IndexSchema]):
    def on_missing(self, source: IndexSchema) -> list[SchemaDiff]:
        return [IndexCreate(index=source, reason=Reason.MISSING_IN_TARGET)]

    def on_extra(self, target: IndexSchema) -> list[SchemaDiff]:
        return [IndexDrop(index_name=target.name, reason=Reason.MISSING_IN_SOURCE)]

    def on_compare(self, source: IndexSchema, target: IndexSchema) -> list[SchemaDiff]:
        reason = ""
        # column order is significant for an index
        if list(source.column_names) != list(target.column_names):
            reason = (
                f"columns are different ({','.join(source.column_names)} "
                f"vs {','.join(target.column_names)})"
            )
        elif source.unique != target.unique:
            reason = _changed("uniqueness", source.unique, target.unique)
        elif source.using is not None and source.using != target.using:
            reason = _changed("using method", source.using, target.using)
        elif source.where != target.where:
            reason = _changed("where clause", source.where, target.where)
        elif source.expression != target.expression:
            reason = _changed("expression", source.expression, target.expression)

        if not reason:
            return []

        return [
            IndexDrop(index_name=target.name, reason=reason),
            IndexCreate(index=source, reason=reason),
        ]


# ------------------------------------------------------------------
# Constraints
# ------------------------------------------------------------------


class ConstraintComparer(Comparer[ConstraintSchema]):
    def on_missing(self, source: ConstraintSchema) -> list[SchemaDiff]:
        return [ConstraintCreate(constraint=source, reason=Reason.MISSING_IN_TARGET)]

    def on_extra(self, target: ConstraintSchema) -> list[SchemaDiff]:
        return [
            ConstraintDrop(
                table_name=target.table_name,
                constraint_name=target.name,
                reason=Reason.MISSING_IN_SOURCE,
            )
        ]

    def on_compare(self, source: ConstraintSchema, target: ConstraintSchema) -> list[SchemaDiff]:
        reason = ""
        if source.type != target.type:
            reason = _changed("constraint type", source.type, target.type)
        elif source.type in (ConstraintType.PRIMARY_KEY, ConstraintType.UNIQUE):
            if not have_equal_columns(source.column_names, target.column_names):
                reason = _changed("columns", source.column_names, target.column_names)
        elif source.type == ConstraintType.FOREIGN_KEY:
            reason = self._compare_foreign_key(source, target)
        # Postgres rewrites check expressions, so a check constraint with
        # the same name is treated as unchanged.

        if not reason:
            return []

        return [
            ConstraintDrop(
                table_name=target.table_name,
                constraint_name=target.name,
                reason=reason,
            ),
            ConstraintCreate(constraint=source, reason=reason),
        ]

    @staticmethod
    def _compare_foreign_key(source: ConstraintSchema, target: ConstraintSchema) -> str:
        source_delete = source.on_delete or ActionType.NO_ACTION
        target_delete = target.on_delete or ActionType.NO_ACTION
        source_update = source.on_update or ActionType.NO_ACTION
        target_update = target.on_update or ActionType.NO_ACTION

        if not have_equal_columns(source.column_names, target.column_names):
            return _changed("columns", source.column_names, target.column_names)
        if not have_equal_columns(source.reference_column_names, target.reference_column_names):
            return _changed(
                "reference columns",
                source.reference_column_names,
                target.reference_column_names,
            )
        if source.reference_table_name != target.reference_table_name:
            return _changed(
                "reference table",
                source.reference_table_name,
                target.reference_table_name,
            )
        if source_delete != target_delete:
            return _changed("ON DELETE action", source_delete, target_delete)
        if source_update != target_update:
            return _changed("ON UPDATE action", source_update, target_update)
        return ""


# ------------------------------------------------------------------
# Triggers
# ------------------------------------------------------------------


class TriggerComparer(Comparer[TriggerSchema]):
    def on_missing(self, source: TriggerSchema) -> list[SchemaDiff]:
        return [TriggerCreate(trigger=source, reason=Reason.MISSING_IN_TARGET)]

    def on_extra(self, target: TriggerSchema) -> list[SchemaDiff]:
        return [
            TriggerDrop(
                table_name=target.table_name,
                trigger_name=target.name,
                reason=Reason.MISSING_IN_SOURCE,
            )
        ]

    def on_compare(self, source: TriggerSchema, target: TriggerSchema) -> list[SchemaDiff]:
        reason = ""
        if source.function_name != target.function_name:
            reason = _changed("function", source.function_name, target.function_name)
        elif not have_equal_columns(source.actions, target.actions):
            reason = _changed("action", source.actions, target.actions)
        elif source.timing != target.timing:
            reason = _changed("timing method", source.timing, target.timing)
        elif source.scope != target.scope:
            reason = _changed("scope", source.scope, target.scope)
        elif source.when != target.when:
            reason = _changed("when expression", source.when, target.when)

        if not reason:
            return []

        return [
            TriggerDrop(table_name=target.table_name, trigger_name=target.name, reason=reason),
            TriggerCreate(trigger=source, reason=reason),
        ]


# ------------------------------------------------------------------
# Tables
# ------------------------------------------------------------------


class TableComparer(Comparer[TableSchema]):
    def on_missing(self, source: TableSchema) -> list[SchemaDiff]:
        # Columns are part of CREATE TABLE; everything else follows as
        # separate actions against an empty table.
        empty = TableSchema(name=source.name)
        return [
            TableCreate(table=source, reason=Reason.MISSING_IN_TARGET),
            *compare_table(source, empty, include_columns=False),
        ]

    def on_extra(self, target: TableSchema) -> list[SchemaDiff]:
        return [TableDrop(table_name=target.name, reason=Reason.MISSING_IN_SOURCE)]

    def on_compare(self, source: TableSchema, target: TableSchema) -> list[SchemaDiff]:
        return compare_table(source, target)


def compare_table(
    source: TableSchema,
    target: TableSchema,
    include_columns: bool = True,
) -> list[SchemaDiff]:
    """Compare the members of two tables with the same name.

    Dropping a column also drops the indexes and constraints on it, so
    when a column is recreated the declared ones that use it are created
    again even if both sides already agree on them.
    """
    items: list[SchemaDiff] = []
    if include_columns:
        items.extend(compare(source.columns, target.columns, None, compare_columns))

    recreated = {
        item.column.name
        for item in items
        if isinstance(item, ColumnCreate) and item.reason != Reason.MISSING_IN_TARGET
    }

    index_items = compare(source.indexes, target.indexes, None, compare_indexes)
    constraint_items = compare(source.constraints, target.constraints, None, compare_constraints)
    if recreated:
        index_items.extend(
            _recreate_dependents(
                source.indexes,
                target.indexes,
                index_items,
                recreated,
                lambda index, reason: IndexCreate(index=index, reason=reason),
            )
        )
        constraint_items.extend(
            _recreate_dependents(
                source.constraints,
                target.constraints,
                constraint_items,
                recreated,
                lambda constraint, reason: ConstraintCreate(constraint=constraint, reason=reason),
            )
        )

    items.extend(index_items)
    items.extend(constraint_items)
    items.extend(compare(source.triggers, target.triggers, None, compare_triggers))
    return items


def _recreate_dependents(
    sources: Sequence[IndexSchema | ConstraintSchema],
    targets: Sequence[IndexSchema | ConstraintSchema],
    actions: list[SchemaDiff],
    recreated: set[str],
    create: Callable[[Any, str], SchemaDiff],
) -> list[SchemaDiff]:
    """Create actions for unchanged entities that use a recreated column."""
    target_names = {item.name for item in targets}
    created_names = {
        action.index.name if isinstance(action, IndexCreate) else action.constraint.name
        for action in actions
        if isinstance(action, (IndexCreate, ConstraintCreate))
    }

    items: list[SchemaDiff] = []
    for source in sources:
        if source.name not in target_names or source.name in created_names:
            continue
        if is_synchronize_disabled(source, None):
            continue
        columns = [name for name in source.column_names if name in recreated]
        if columns:
            items.append(create(source, f"column {','.join(columns)} was recreated"))
    return items


# ------------------------------------------------------------------
# Schema-level kinds
# ------------------------------------------------------------------


class EnumComparer(Comparer[EnumSchema]):
    def on_missing(self, source: EnumSchema) -> list[SchemaDiff]:
        return [EnumCreate(enum=source, reason=Reason.MISSING_IN_TARGET)]

    def on_extra(self, target: EnumSchema) -> list[SchemaDiff]:
        return [EnumDrop(enum_name=target.name, reason=Reason.MISSING_IN_SOURCE)]

    def on_compare(self, source: EnumSchema, target: EnumSchema) -> list[SchemaDiff]:
        if have_equal_columns(source.values, target.values):
            return []
        reason = f"enum values has changed ({_fmt(source.values)} vs {_fmt(target.values)})"
        return [
            EnumDrop(enum_name=target.name, reason=reason),
            EnumCreate(enum=source, reason=reason),
        ]


class ExtensionComparer(Comparer[ExtensionSchema]):
    def on_missing(self, source: ExtensionSchema) -> list[SchemaDiff]:
        return [ExtensionCreate(extension=source, reason=Reason.MISSING_IN_TARGET)]

    def on_extra(self, target: ExtensionSchema) -> list[SchemaDiff]:
        return [ExtensionDrop(extension_name=target.name, reason=Reason.MISSING_IN_SOURCE)]


class FunctionComparer(Comparer[FunctionSchema]):
    def on_missing(self, source: FunctionSchema) -> list[SchemaDiff]:
        return [FunctionCreate(function=source, reason=Reason.MISSING_IN_TARGET)]

    def on_extra(self, target: FunctionSchema) -> list[SchemaDiff]:
        return [FunctionDrop(function_name=target.name, reason=Reason.MISSING_IN_SOURCE)]

    def on_compare(self, source: FunctionSchema, target: FunctionSchema) -> list[SchemaDiff]:
        if source.expression == target.expression:
            return []
        # CREATE OR REPLACE keeps dependent triggers intact
        reason = "function expression has changed"
        return [FunctionCreate(function=source, reason=reason)]


class ParameterComparer(Comparer[ParameterSchema]):
    def on_missing(self, source: ParameterSchema) -> list[SchemaDiff]:
        return [ParameterCreate(parameter=source, reason=Reason.MISSING_IN_TARGET)]

    def on_extra(self, target: ParameterSchema) -> list[SchemaDiff]:
        return [
            ParameterDrop(
                database_name=target.database_name,
                parameter_name=target.name,
                reason=Reason.MISSING_IN_SOURCE,
            )
        ]

    def on_compare(self, source: ParameterSchema, target: ParameterSchema) -> list[SchemaDiff]:
        if source.value == target.value:
            return []
        return [ParameterCreate(parameter=source, reason=_changed("value", source.value, target.value))]


compare_columns = ColumnComparer()
compare_indexes = IndexComparer()
compare_constraints = ConstraintComparer()
compare_triggers = TriggerComparer()
compare_tables = TableComparer()
compare_enums = EnumComparer()
compare_extensions = ExtensionComparer()
compare_functions = FunctionComparer()
compare_parameters = ParameterComparer()
