"""PostgreSQL schema introspection via information_schema and pg_catalog.

This module reads the live database into a ``DatabaseSchema``:
- Tables, columns (types, arrays, enum types, lengths, defaults, comments)
- Constraints (primary key, foreign key, unique, check)
- Indexes not backing a constraint (columns, uniqueness, method, predicate)
- Triggers (timing, events, scope, condition, function)
- Functions, enum types, extensions
- Database-level configuration parameters

Uses psycopg (v3) ``AsyncConnection`` for PostgreSQL connections.

Usage:
    async with SchemaIntrospector(database_url) as introspector:
        schema = await introspector.introspect()
"""

import re
from collections import defaultdict

import psycopg
from psycopg import AsyncConnection

from db_reconciler.schema.models import (
    ActionType,
    ColumnSchema,
    ConstraintSchema,
    ConstraintType,
    DatabaseSchema,
    EnumSchema,
    ExtensionSchema,
    FunctionSchema,
    IndexSchema,
    ParameterSchema,
    TableSchema,
    TriggerAction,
    TriggerSchema,
    TriggerScope,
    TriggerTiming,
)
from db_reconciler.schema.sql import normalize_type

_CONSTRAINT_TYPES = {
    "p": ConstraintType.PRIMARY_KEY,
    "f": ConstraintType.FOREIGN_KEY,
    "u": ConstraintType.UNIQUE,
    "c": ConstraintType.CHECK,
}

# "a" (NO ACTION) is the default and maps to None
_REFERENTIAL_ACTIONS = {
    "r": ActionType.RESTRICT,
    "c": ActionType.CASCADE,
    "n": ActionType.SET_NULL,
    "d": ActionType.SET_DEFAULT,
}


class SchemaIntrospector:
    """Introspects a PostgreSQL database schema.

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            schema = await introspector.introspect("public")
    """

    # Tables to exclude from introspection (system tables)
    EXCLUDED_TABLES = {
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    # Extensions every database has
    EXCLUDED_EXTENSIONS = {"plpgsql"}

    def __init__(self, database_url: str):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL.  A SQLAlchemy driver
                suffix (``postgresql+asyncpg://``) is stripped.
        """
        self._database_url = re.sub(r"^postgres(ql)?\+\w+://", "postgresql://", database_url)
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Context manager entry - opens connection."""
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout=10"

        self._conn = await psycopg.AsyncConnection.connect(url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def _fetch(self, query: str, params: tuple = ()) -> list[tuple]:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        async with self._conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()

    async def introspect(self, schema_name: str = "public") -> DatabaseSchema:
        """Introspect the full database schema.

        Args:
            schema_name: PostgreSQL schema to introspect (default: public)

        Returns:
            DatabaseSchema with tables, enums, extensions, functions and
            parameters.
        """
        rows = await self._fetch("SELECT current_database()")
        database_name = rows[0][0]

        enums = await self._get_enums(schema_name)
        enum_names = {enum.name for enum in enums}

        columns = await self._get_columns(schema_name, enum_names)
        constraints = await self._get_constraints(schema_name)
        indexes = await self._get_indexes(schema_name)
        triggers = await self._get_triggers(schema_name)

        tables = [
            TableSchema(
                name=table_name,
                columns=columns[table_name],
                constraints=constraints[table_name],
                indexes=indexes[table_name],
                triggers=triggers[table_name],
            )
            for table_name in await self._get_tables(schema_name)
            if table_name not in self.EXCLUDED_TABLES
        ]

        return DatabaseSchema(
            database_name=database_name,
            schema_name=schema_name,
            tables=tables,
            enums=enums,
            extensions=await self._get_extensions(),
            functions=await self._get_functions(schema_name),
            parameters=await self._get_parameters(database_name),
        )

    async def _get_tables(self, schema_name: str) -> list[str]:
        """Get all table names in schema."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        return [row[0] for row in await self._fetch(query, (schema_name,))]

    @staticmethod
    def _normalize_data_type(udt_name: str) -> str:
        """Map an internal type name (``int4``) to its SQL name (``integer``)."""
        return normalize_type(udt_name)

    async def _get_columns(
        self, schema_name: str, enum_names: set[str]
    ) -> dict[str, list[ColumnSchema]]:
        """Get columns for every table, keyed by table name."""
        query = """
            SELECT
                c.table_name,
                c.column_name,
                c.data_type,
                c.udt_name,
                c.is_nullable,
                c.column_default,
                c.character_maximum_length,
                col_description(
                    (quote_ident(c.table_schema) || '.' || quote_ident(c.table_name))::regclass,
                    c.ordinal_position
                ) AS comment
            FROM information_schema.columns c
            JOIN information_schema.tables t
                ON t.table_schema = c.table_schema
                AND t.table_name = c.table_name
            WHERE c.table_schema = %s
              AND t.table_type = 'BASE TABLE'
            ORDER BY c.table_name, c.ordinal_position
        """
        columns: dict[str, list[ColumnSchema]] = defaultdict(list)
        for row in await self._fetch(query, (schema_name,)):
            table_name, name, data_type, udt_name, is_nullable, default, length, comment = row

            is_array = data_type == "ARRAY"
            if is_array:
                udt_name = udt_name.lstrip("_")
                column_type = self._normalize_data_type(udt_name)
            elif data_type == "USER-DEFINED":
                column_type = udt_name
            else:
                column_type = data_type

            enum_name = udt_name if udt_name in enum_names else None
            columns[table_name].append(
                ColumnSchema(
                    name=name,
                    table_name=table_name,
                    type="enum" if enum_name else column_type,
                    nullable=(is_nullable == "YES"),
                    is_array=is_array,
                    default=default,
                    enum_name=enum_name,
                    length=length,
                    comment=comment,
                )
            )
        return columns

    async def _get_constraints(self, schema_name: str) -> dict[str, list[ConstraintSchema]]:
        """Get primary key, foreign key, unique and check constraints."""
        query = """
            SELECT
                con.conname,
                cls.relname AS table_name,
                con.contype,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
                    ORDER BY k.ord
                ) AS column_names,
                ref.relname AS reference_table_name,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(con.confkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_attribute a ON a.attrelid = con.confrelid AND a.attnum = k.attnum
                    ORDER BY k.ord
                ) AS reference_column_names,
                con.confdeltype,
                con.confupdtype,
                pg_get_constraintdef(con.oid) AS definition
            FROM pg_constraint con
            JOIN pg_class cls ON cls.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = cls.relnamespace
            LEFT JOIN pg_class ref ON ref.oid = con.confrelid
            WHERE n.nspname = %s
              AND con.contype IN ('p', 'f', 'u', 'c')
            ORDER BY cls.relname, con.conname
        """
        constraints: dict[str, list[ConstraintSchema]] = defaultdict(list)
        for row in await self._fetch(query, (schema_name,)):
            (
                name,
                table_name,
                contype,
                column_names,
                reference_table_name,
                reference_column_names,
                delete_type,
                update_type,
                definition,
            ) = row

            constraint_type = _CONSTRAINT_TYPES[contype]
            is_foreign_key = constraint_type == ConstraintType.FOREIGN_KEY
            expression = None
            if constraint_type == ConstraintType.CHECK:
                match = re.match(r"^CHECK \((.*)\)$", definition or "", re.DOTALL)
                expression = match.group(1) if match else definition

            constraints[table_name].append(
                ConstraintSchema(
                    type=constraint_type,
                    name=name,
                    table_name=table_name,
                    column_names=list(column_names or []),
                    reference_table_name=reference_table_name if is_foreign_key else None,
                    reference_column_names=list(reference_column_names or []),
                    on_delete=_REFERENTIAL_ACTIONS.get(delete_type) if is_foreign_key else None,
                    on_update=_REFERENTIAL_ACTIONS.get(update_type) if is_foreign_key else None,
                    expression=expression,
                )
            )
        return constraints

    async def _get_indexes(self, schema_name: str) -> dict[str, list[IndexSchema]]:
        """Get indexes, excluding those that back a constraint."""
        query = """
            SELECT
                t.relname AS table_name,
                i.relname AS index_name,
                ix.indisunique,
                am.amname,
                pg_get_expr(ix.indpred, ix.indrelid) AS where_clause,
                pg_get_expr(ix.indexprs, ix.indrelid) AS expression,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
                    ORDER BY k.ord
                ) AS column_names
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_am am ON am.oid = i.relam
            WHERE n.nspname = %s
              AND NOT EXISTS (
                  SELECT 1 FROM pg_constraint con WHERE con.conindid = ix.indexrelid
              )
            ORDER BY t.relname, i.relname
        """
        indexes: dict[str, list[IndexSchema]] = defaultdict(list)
        for row in await self._fetch(query, (schema_name,)):
            table_name, name, is_unique, method, where, expression, column_names = row
            indexes[table_name].append(
                IndexSchema(
                    name=name,
                    table_name=table_name,
                    column_names=list(column_names or []),
                    unique=is_unique,
                    # btree is the default access method
                    using=None if method == "btree" else method,
                    where=where,
                    expression=expression,
                )
            )
        return indexes

    async def _get_triggers(self, schema_name: str) -> dict[str, list[TriggerSchema]]:
        """Get triggers; one row per event is folded into one trigger."""
        query = """
            SELECT
                event_object_table,
                trigger_name,
                event_manipulation,
                action_timing,
                action_orientation,
                action_condition,
                action_statement
            FROM information_schema.triggers
            WHERE trigger_schema = %s
            ORDER BY event_object_table, trigger_name, event_manipulation
        """
        rows_by_trigger: dict[tuple[str, str], list[tuple]] = defaultdict(list)
        for row in await self._fetch(query, (schema_name,)):
            rows_by_trigger[(row[0], row[1])].append(row)

        triggers: dict[str, list[TriggerSchema]] = defaultdict(list)
        for (table_name, name), rows in rows_by_trigger.items():
            _, _, _, timing, orientation, condition, statement = rows[0]
            # "EXECUTE FUNCTION func_name()"
            match = re.search(r"EXECUTE (?:FUNCTION|PROCEDURE) ([\w.\"]+)\(", statement or "")
            triggers[table_name].append(
                TriggerSchema(
                    name=name,
                    table_name=table_name,
                    function_name=match.group(1) if match else "",
                    timing=TriggerTiming(timing.lower()),
                    actions=[TriggerAction(row[2].lower()) for row in rows],
                    scope=TriggerScope(orientation.lower()),
                    when=condition,
                )
            )
        return triggers

    async def _get_functions(self, schema_name: str) -> list[FunctionSchema]:
        """Get user-defined functions in schema.

        Note: Uses prokind = 'f' to filter for regular functions and skips
        functions owned by an extension.
        """
        query = """
            SELECT
                p.proname AS function_name,
                pg_get_functiondef(p.oid) AS definition
            FROM pg_proc p
            JOIN pg_namespace n ON n.oid = p.pronamespace
            WHERE n.nspname = %s
              AND p.prokind = 'f'
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = p.oid AND d.deptype = 'e'
              )
            ORDER BY p.proname
        """
        return [
            FunctionSchema(name=name, expression=definition)
            for name, definition in await self._fetch(query, (schema_name,))
        ]

    async def _get_enums(self, schema_name: str) -> list[EnumSchema]:
        query = """
            SELECT t.typname, array_agg(e.enumlabel ORDER BY e.enumsortorder)
            FROM pg_type t
            JOIN pg_enum e ON e.enumtypid = t.oid
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE n.nspname = %s
            GROUP BY t.typname
            ORDER BY t.typname
        """
        return [
            EnumSchema(name=name, values=list(values))
            for name, values in await self._fetch(query, (schema_name,))
        ]

    async def _get_extensions(self) -> list[ExtensionSchema]:
        rows = await self._fetch("SELECT extname FROM pg_extension ORDER BY extname")
        return [
            ExtensionSchema(name=name)
            for (name,) in rows
            if name not in self.EXCLUDED_EXTENSIONS
        ]

    async def _get_parameters(self, database_name: str) -> list[ParameterSchema]:
        """Get parameters set with ``ALTER DATABASE ... SET``."""
        query = """
            SELECT unnest(s.setconfig)
            FROM pg_db_role_setting s
            JOIN pg_database d ON d.oid = s.setdatabase
            WHERE d.datname = %s
              AND s.setrole = 0
        """
        parameters = []
        for (setting,) in await self._fetch(query, (database_name,)):
            name, _, value = setting.partition("=")
            parameters.append(
                ParameterSchema(name=name, value=value, database_name=database_name)
            )
        return parameters
