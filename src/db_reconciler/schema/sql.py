"""Render schema diff actions as PostgreSQL DDL.

Each action becomes one or more statements.  Identifiers are always
double-quoted so mixed-case names (``"ownerId"``) survive.

Usage:
    from db_reconciler.schema.differ import schema_diff
    from db_reconciler.schema.sql import to_sql, to_statements

    for action in schema_diff(source, target):
        for statement in to_sql(action):
            print(statement)
"""

from collections.abc import Callable, Iterable

from db_reconciler.schema.models import (
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
    ExtensionCreate,
    ExtensionDrop,
    FunctionCreate,
    FunctionDrop,
    IndexCreate,
    IndexDrop,
    IndexSchema,
    ParameterCreate,
    ParameterDrop,
    ParameterScope,
    SchemaDiff,
    TableCreate,
    TableDrop,
    TriggerCreate,
    TriggerDrop,
    TriggerSchema,
)


# ------------------------------------------------------------------
# Quoting helpers
# ------------------------------------------------------------------


def quote_identifier(name: str) -> str:
    """Quote an identifier.

    Example:
        >>> quote_identifier('ownerId')
        '"ownerId"'
    """
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


_TYPE_ALIASES = {
    "int": "integer",
    "int2": "smallint",
    "int4": "integer",
    "int8": "bigint",
    "float": "double precision",
    "float4": "real",
    "float8": "double precision",
    "bool": "boolean",
    "varchar": "character varying",
    "char": "character",
    "bpchar": "character",
    "decimal": "numeric",
    "timestamptz": "timestamp with time zone",
    "timestamp": "timestamp without time zone",
    "timetz": "time with time zone",
    "time": "time without time zone",
}


def normalize_type(type_name: str) -> str:
    """Map a type alias (``int4``, ``timestamptz``) to the name Postgres reports.

    Example:
        >>> normalize_type("timestamptz")
        'timestamp with time zone'
    """
    return _TYPE_ALIASES.get(type_name.strip().lower(), type_name)


def _column_list(names: Iterable[str]) -> str:
    return ", ".join(quote_identifier(name) for name in names)


# ------------------------------------------------------------------
# Entity fragments
# ------------------------------------------------------------------


def column_definition(column: ColumnSchema) -> str:
    """Column definition as used in CREATE TABLE / ADD COLUMN.

    Example:
        >>> column_definition(ColumnSchema(name="id", table_name="t", type="uuid", default="uuid_generate_v4()"))
        '"id" uuid NOT NULL DEFAULT uuid_generate_v4()'
    """
    if column.enum_name:
        column_type = quote_identifier(column.enum_name)
    elif column.length is not None:
        column_type = f"{column.type}({column.length})"
    else:
        column_type = column.type
    if column.is_array:
        column_type += "[]"

    sql = f"{quote_identifier(column.name)} {column_type}"
    if not column.nullable:
        sql += " NOT NULL"
    if column.default is not None:
        sql += f" DEFAULT {column.default}"
    return sql


def _comment_on_column(table_name: str, column_name: str, comment: str | None) -> str:
    value = "NULL" if comment is None else quote_literal(comment)
    return f"COMMENT ON COLUMN {quote_identifier(table_name)}.{quote_identifier(column_name)} IS {value};"


def constraint_definition(constraint: ConstraintSchema) -> str:
    if constraint.type == ConstraintType.PRIMARY_KEY:
        return f"PRIMARY KEY ({_column_list(constraint.column_names)})"

    if constraint.type == ConstraintType.UNIQUE:
        return f"UNIQUE ({_column_list(constraint.column_names)})"

    if constraint.type == ConstraintType.CHECK:
        return f"CHECK ({constraint.expression})"

    sql = (
        f"FOREIGN KEY ({_column_list(constraint.column_names)}) "
        f"REFERENCES {quote_identifier(constraint.reference_table_name or '')} "
        f"({_column_list(constraint.reference_column_names)})"
    )
    if constraint.on_update:
        sql += f" ON UPDATE {constraint.on_update.value}"
    if constraint.on_delete:
        sql += f" ON DELETE {constraint.on_delete.value}"
    return sql


def index_definition(index: IndexSchema) -> str:
    sql = "CREATE UNIQUE INDEX" if index.unique else "CREATE INDEX"
    sql += f" {quote_identifier(index.name)} ON {quote_identifier(index.table_name)}"
    if index.using:
        sql += f" USING {index.using}"
    if index.expression:
        sql += f" ({index.expression})"
    else:
        sql += f" ({_column_list(index.column_names)})"
    if index.where:
        sql += f" WHERE {index.where}"
    return sql + ";"


def trigger_definition(trigger: TriggerSchema) -> str:
    events = " OR ".join(action.value.upper() for action in trigger.actions)
    lines = [
        f"CREATE OR REPLACE TRIGGER {quote_identifier(trigger.name)}",
        f"  {trigger.timing.value.upper()} {events} ON {quote_identifier(trigger.table_name)}",
        f"  FOR EACH {trigger.scope.value.upper()}",
    ]
    if trigger.when:
        lines.append(f"  WHEN ({trigger.when})")
    lines.append(f"  EXECUTE FUNCTION {trigger.function_name}();")
    return "\n".join(lines)


# ------------------------------------------------------------------
# Action renderers
# ------------------------------------------------------------------


def _table_create(action: TableCreate) -> list[str]:
    table = action.table
    columns = ", ".join(column_definition(column) for column in table.columns)
    statements = [f"CREATE TABLE {quote_identifier(table.name)} ({columns});"]
    statements.extend(
        _comment_on_column(table.name, column.name, column.comment)
        for column in table.columns
        if column.comment
    )
    return statements


def _table_drop(action: TableDrop) -> list[str]:
    return [f"DROP TABLE {quote_identifier(action.table_name)};"]


def _column_create(action: ColumnCreate) -> list[str]:
    column = action.column
    statements = [
        f"ALTER TABLE {quote_identifier(column.table_name)} ADD {column_definition(column)};"
    ]
    if column.comment:
        statements.append(_comment_on_column(column.table_name, column.name, column.comment))
    return statements


def _column_drop(action: ColumnDrop) -> list[str]:
    return [
        f"ALTER TABLE {quote_identifier(action.table_name)} DROP COLUMN {quote_identifier(action.column_name)};"
    ]


def _column_alter(action: ColumnAlter) -> list[str]:
    prefix = f"ALTER TABLE {quote_identifier(action.table_name)} ALTER COLUMN {quote_identifier(action.column_name)}"
    statements = []
    changes = action.changes
    if "nullable" in changes:
        statements.append(f"{prefix} {'DROP' if changes['nullable'] else 'SET'} NOT NULL;")
    if "default" in changes:
        if changes["default"] is None:
            statements.append(f"{prefix} DROP DEFAULT;")
        else:
            statements.append(f"{prefix} SET DEFAULT {changes['default']};")
    if "comment" in changes:
        statements.append(_comment_on_column(action.table_name, action.column_name, changes["comment"]))
    return statements


def _index_create(action: IndexCreate) -> list[str]:
    return [index_definition(action.index)]


def _index_drop(action: IndexDrop) -> list[str]:
    return [f"DROP INDEX {quote_identifier(action.index_name)};"]


def _constraint_create(action: ConstraintCreate) -> list[str]:
    constraint = action.constraint
    return [
        f"ALTER TABLE {quote_identifier(constraint.table_name)} "
        f"ADD CONSTRAINT {quote_identifier(constraint.name)} {constraint_definition(constraint)};"
    ]


def _constraint_drop(action: ConstraintDrop) -> list[str]:
    return [
        f"ALTER TABLE {quote_identifier(action.table_name)} DROP CONSTRAINT {quote_identifier(action.constraint_name)};"
    ]


def _trigger_create(action: TriggerCreate) -> list[str]:
    return [trigger_definition(action.trigger)]


def _trigger_drop(action: TriggerDrop) -> list[str]:
    return [
        f"DROP TRIGGER {quote_identifier(action.trigger_name)} ON {quote_identifier(action.table_name)};"
    ]


def _enum_create(action: EnumCreate) -> list[str]:
    values = ", ".join(quote_literal(value) for value in action.enum.values)
    return [f"CREATE TYPE {quote_identifier(action.enum.name)} AS ENUM ({values});"]


def _enum_drop(action: EnumDrop) -> list[str]:
    return [f"DROP TYPE {quote_identifier(action.enum_name)};"]


def _extension_create(action: ExtensionCreate) -> list[str]:
    return [f"CREATE EXTENSION IF NOT EXISTS {quote_identifier(action.extension.name)};"]


def _extension_drop(action: ExtensionDrop) -> list[str]:
    return [f"DROP EXTENSION {quote_identifier(action.extension_name)};"]


def _function_create(action: FunctionCreate) -> list[str]:
    expression = action.function.expression.strip()
    return [expression if expression.endswith(";") else expression + ";"]


def _function_drop(action: FunctionDrop) -> list[str]:
    return [f"DROP FUNCTION {action.function_name};"]


def _parameter_create(action: ParameterCreate) -> list[str]:
    parameter = action.parameter
    if parameter.scope == ParameterScope.USER:
        return [f"SET {parameter.name} TO {parameter.value};"]
    return [
        f"ALTER DATABASE {quote_identifier(parameter.database_name)} SET {parameter.name} TO {parameter.value};"
    ]


def _parameter_drop(action: ParameterDrop) -> list[str]:
    return [f"ALTER DATABASE {quote_identifier(action.database_name)} RESET {action.parameter_name};"]


_RENDERERS: dict[str, Callable[..., list[str]]] = {
    "TableCreate": _table_create,
    "TableDrop": _table_drop,
    "ColumnCreate": _column_create,
    "ColumnDrop": _column_drop,
    "ColumnAlter": _column_alter,
    "IndexCreate": _index_create,
    "IndexDrop": _index_drop,
    "ConstraintCreate": _constraint_create,
    "ConstraintDrop": _constraint_drop,
    "TriggerCreate": _trigger_create,
    "TriggerDrop": _trigger_drop,
    "EnumCreate": _enum_create,
    "EnumDrop": _enum_drop,
    "ExtensionCreate": _extension_create,
    "ExtensionDrop": _extension_drop,
    "FunctionCreate": _function_create,
    "FunctionDrop": _function_drop,
    "ParameterCreate": _parameter_create,
    "ParameterDrop": _parameter_drop,
}


def to_sql(action: SchemaDiff) -> list[str]:
    """Render one action as a list of statements.

    Raises:
        ValueError: If the action type is unknown.
    """
    renderer = _RENDERERS.get(action.type)
    if renderer is None:
        raise ValueError(f"Unknown schema action: {action.type}")
    return renderer(action)


def to_statements(actions: Iterable[SchemaDiff]) -> list[str]:
    """Render an ordered action list, keeping the action order."""
    return [statement for action in actions for statement in to_sql(action)]
