"""Schema differ: compare two schemas and plan an ordered action list.

``schema_diff(source, target)`` runs the per-kind comparers over a
declared schema (*source*) and a schema read from the database (*target*)
and returns the actions in an order that can be executed top to bottom:

1. Drops, dependents first: triggers, constraints (foreign keys before the
   keys they reference), indexes, columns, tables, enums, functions,
   extensions, parameters.
2. Creates, prerequisites first: parameters, extensions, functions, enums,
   tables, columns, column alterations, indexes, constraints (primary key,
   unique, foreign key, check), triggers.

A recreated entity therefore always has its drop before its create.
Pure logic -- no I/O, inputs are never modified.

Usage:
    from db_reconciler.schema.differ import schema_diff

    actions = schema_diff(declared_schema, live_schema)
    for action in actions:
        print(action.type, action.reason)
"""

from collections import defaultdict

from db_reconciler.schema.comparers import (
    compare,
    compare_enums,
    compare_extensions,
    compare_functions,
    compare_parameters,
    compare_tables,
)
from db_reconciler.schema.models import (
    ConstraintCreate,
    ConstraintDrop,
    ConstraintType,
    DatabaseSchema,
    DiffOptions,
    SchemaDiff,
)

# Kind table: (schema attribute, options attribute, comparer)
_KINDS = (
    ("parameters", "parameters", compare_parameters),
    ("extensions", "extensions", compare_extensions),
    ("functions", "functions", compare_functions),
    ("enums", "enums", compare_enums),
    ("tables", "tables", compare_tables),
)

_DROP_ORDER = (
    "TriggerDrop",
    "ConstraintDrop",
    "IndexDrop",
    "ColumnDrop",
    "TableDrop",
    "EnumDrop",
    "FunctionDrop",
    "ExtensionDrop",
    "ParameterDrop",
)

_CREATE_ORDER = (
    "ParameterCreate",
    "ExtensionCreate",
    "FunctionCreate",
    "EnumCreate",
    "TableCreate",
    "ColumnCreate",
    "ColumnAlter",
    "IndexCreate",
    "ConstraintCreate",
    "TriggerCreate",
)

_CONSTRAINT_CREATE_ORDER = (
    ConstraintType.PRIMARY_KEY,
    ConstraintType.UNIQUE,
    ConstraintType.FOREIGN_KEY,
    ConstraintType.CHECK,
)


def schema_diff(
    source: DatabaseSchema,
    target: DatabaseSchema,
    options: DiffOptions | None = None,
) -> list[SchemaDiff]:
    """Compute the ordered actions that turn *target* into *source*.

    Args:
        source: Declared schema (what the application wants).
        target: Schema read from the live database.
        options: Optional per-kind ignore flags.

    Returns:
        Actions in safe execution order.  Empty when the schemas match.

    Examples:
        >>> from db_reconciler.schema.models import DatabaseSchema, TableSchema
        >>> schema_diff(DatabaseSchema(), DatabaseSchema())
        []
        >>> [a.type for a in schema_diff(DatabaseSchema(tables=[TableSchema(name="t")]), DatabaseSchema())]
        ['TableCreate']
    """
    options = options or DiffOptions()

    items: list[SchemaDiff] = []
    for attribute, option_name, comparer in _KINDS:
        items.extend(
            compare(
                getattr(source, attribute),
                getattr(target, attribute),
                getattr(options, option_name),
                comparer,
            )
        )

    return order_actions(items, foreign_keys=_foreign_key_names(target))


def order_actions(
    items: list[SchemaDiff],
    foreign_keys: set[str] | None = None,
) -> list[SchemaDiff]:
    """Sort actions into the fixed drop-then-create order.

    Relative order within an action type is preserved.

    Args:
        items: Unordered actions.
        foreign_keys: Names of foreign-key constraints in the database, so
            their drops can run before other constraint drops.

    Returns:
        A new, ordered list.
    """
    foreign_keys = foreign_keys or set()
    by_type: dict[str, list[SchemaDiff]] = defaultdict(list)
    for item in items:
        by_type[item.type].append(item)

    ordered: list[SchemaDiff] = []
    for action_type in _DROP_ORDER:
        actions = by_type[action_type]
        if action_type == "ConstraintDrop":
            actions = _foreign_keys_first(actions, foreign_keys)
        ordered.extend(actions)

    for action_type in _CREATE_ORDER:
        actions = by_type[action_type]
        if action_type == "ConstraintCreate":
            actions = [
                action
                for constraint_type in _CONSTRAINT_CREATE_ORDER
                for action in actions
                if isinstance(action, ConstraintCreate)
                and action.constraint.type == constraint_type
            ]
        ordered.extend(actions)

    return ordered


def _foreign_keys_first(actions: list[SchemaDiff], foreign_keys: set[str]) -> list[SchemaDiff]:
    first: list[SchemaDiff] = []
    rest: list[SchemaDiff] = []
    for action in actions:
        if isinstance(action, ConstraintDrop) and action.constraint_name in foreign_keys:
            first.append(action)
        else:
            rest.append(action)
    return first + rest


def _foreign_key_names(schema: DatabaseSchema) -> set[str]:
    return {
        constraint.name
        for table in schema.tables
        for constraint in table.constraints
        if constraint.type == ConstraintType.FOREIGN_KEY
    }
