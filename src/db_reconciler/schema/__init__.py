"""Declarative schema reconciliation.

Declare tables with ``SchemaBuilder``, read the live database with
``SchemaIntrospector``, diff the two with ``schema_diff`` and turn the
ordered actions into SQL with ``to_statements`` (or in one step with
``generate_migration_plan``).

Usage:
    from db_reconciler.schema import SchemaBuilder, SchemaIntrospector
    from db_reconciler.schema import generate_migration_plan, apply_migration_plan
"""

from db_reconciler.schema.builder import SchemaBuilder, TableDeclaration
from db_reconciler.schema.differ import order_actions, schema_diff
from db_reconciler.schema.introspector import SchemaIntrospector
from db_reconciler.schema.migrate import (
    MigrationPlan,
    MigrationResult,
    apply_migration_plan,
    generate_migration_plan,
)
from db_reconciler.schema.models import (
    ColumnSchema,
    ConstraintSchema,
    ConstraintType,
    DatabaseSchema,
    DiffOptions,
    EnumSchema,
    ExtensionSchema,
    FunctionSchema,
    IgnoreOptions,
    IndexSchema,
    ParameterSchema,
    Reason,
    SchemaDiff,
    TableSchema,
    TriggerSchema,
)
from db_reconciler.schema.sql import to_sql, to_statements
from db_reconciler.schema.validator import SchemaValidator, validate_schema

__all__ = [
    "SchemaBuilder",
    "TableDeclaration",
    "SchemaValidator",
    "validate_schema",
    "SchemaIntrospector",
    "schema_diff",
    "order_actions",
    "to_sql",
    "to_statements",
    "generate_migration_plan",
    "apply_migration_plan",
    "MigrationPlan",
    "MigrationResult",
    "ColumnSchema",
    "ConstraintSchema",
    "ConstraintType",
    "IndexSchema",
    "TriggerSchema",
    "TableSchema",
    "EnumSchema",
    "ExtensionSchema",
    "FunctionSchema",
    "ParameterSchema",
    "DatabaseSchema",
    "SchemaDiff",
    "Reason",
    "DiffOptions",
    "IgnoreOptions",
]
