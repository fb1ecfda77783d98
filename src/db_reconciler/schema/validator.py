"""Authoring validation for a resolved schema.

Checks foreign keys and indexes against the tables they point at and
records every problem as a warning string instead of raising:

    [foreign_key.columns] Unable to find column (Table2.parentId2)

Invalid foreign keys and indexes are left out of the returned schema so
that a migration never tries to create them.  Warnings are surfaced later
to the operator through ``DatabaseSchema.warnings``.

Usage:
    from db_reconciler.schema.validator import validate_schema

    schema = validate_schema(schema, labels={"table2": "Table2"})
    for warning in schema.warnings:
        print(warning)
"""

from collections.abc import Mapping

from db_reconciler.schema.models import (
    ConstraintSchema,
    ConstraintType,
    DatabaseSchema,
    IndexSchema,
    TableSchema,
)


class SchemaValidator:
    """Collects warnings while walking resolved tables.

    Args:
        tables: Resolved tables of the schema.
        labels: Optional map of table name to the name it was declared
            with, used in warning messages (defaults to the table name).
    """

    def __init__(self, tables: list[TableSchema], labels: Mapping[str, str] | None = None):
        self._tables = {table.name: table for table in tables}
        self._labels = dict(labels or {})
        self.warnings: list[str] = []

    def warn(self, context: str, message: str) -> None:
        self.warnings.append(f"[{context}] {message}")

    def warn_missing_table(self, context: str, table_name: str) -> None:
        self.warn(context, f"Unable to find table ({table_name})")

    def warn_missing_column(self, context: str, table_name: str, column_name: str) -> None:
        label = self._labels.get(table_name, table_name)
        self.warn(context, f"Unable to find column ({label}.{column_name})")

    def _check_columns(self, context: str, table: TableSchema, column_names: list[str]) -> bool:
        existing = {column.name for column in table.columns}
        valid = True
        for column_name in column_names:
            if column_name not in existing:
                self.warn_missing_column(context, table.name, column_name)
                valid = False
        return valid

    def is_valid_foreign_key(self, table: TableSchema, constraint: ConstraintSchema) -> bool:
        valid = self._check_columns("foreign_key.columns", table, constraint.column_names)

        reference_table = self._tables.get(constraint.reference_table_name or "")
        if reference_table is None:
            self.warn_missing_table("foreign_key.reference_table", str(constraint.reference_table_name))
            return False

        if not self._check_columns(
            "foreign_key.reference_columns", reference_table, constraint.reference_column_names
        ):
            valid = False
        return valid

    def is_valid_index(self, table: TableSchema, index: IndexSchema) -> bool:
        # expression indexes have no plain column list to check
        if index.expression:
            return True
        return self._check_columns("index.columns", table, index.column_names)

    def validate_table(self, table: TableSchema) -> TableSchema:
        constraints = [
            constraint
            for constraint in table.constraints
            if constraint.type != ConstraintType.FOREIGN_KEY
            or self.is_valid_foreign_key(table, constraint)
        ]
        indexes = [index for index in table.indexes if self.is_valid_index(table, index)]
        return table.model_copy(update={"constraints": constraints, "indexes": indexes})


def validate_schema(
    schema: DatabaseSchema,
    labels: Mapping[str, str] | None = None,
) -> DatabaseSchema:
    """Validate a resolved schema and return a copy with warnings attached.

    Args:
        schema: Schema whose foreign-key references are already resolved to
            table names.
        labels: Optional table name -> declaration name map for messages.

    Returns:
        A new ``DatabaseSchema`` without the invalid foreign keys/indexes and
        with the warnings appended to any existing ones.  Never raises for
        authoring problems.
    """
    validator = SchemaValidator(schema.tables, labels)
    tables = [validator.validate_table(table) for table in schema.tables]
    return schema.model_copy(
        update={"tables": tables, "warnings": [*schema.warnings, *validator.warnings]}
    )
