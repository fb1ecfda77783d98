"""Schema builder: collect declarations and produce a ``DatabaseSchema``.

The authoring layer describes tables through a ``SchemaBuilder`` context.
References between tables are resolved lazily, so a table may point at a
table that is declared later (or at itself, or in a cycle):

    builder = SchemaBuilder()
    albums = builder.table("Albums")
    assets = builder.table("Assets")

    albums.primary_column("id", "uuid")
    albums.column("ownerId", "uuid")
    albums.foreign_key(["ownerId"], reference_table=lambda: users)

    users = builder.table("Users").primary_column("id", "uuid")

    schema = builder.build()

``build()`` works in two passes: first every table identity is registered,
then each foreign key's reference is looked up by identity against the
complete set.  The result is validated (see
``db_reconciler.schema.validator``); authoring mistakes end up in
``schema.warnings`` instead of raising.  The builder is a plain object --
no global registry survives it.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

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
    ParameterScope,
    TableSchema,
    TriggerAction,
    TriggerSchema,
    TriggerScope,
    TriggerTiming,
)
from db_reconciler.schema.naming import (
    as_check_name,
    as_foreign_key_name,
    as_index_name,
    as_primary_key_name,
    as_snake_case,
    as_trigger_name,
    as_unique_name,
)
from db_reconciler.schema.validator import validate_schema


# ------------------------------------------------------------------
# Declarations
# ------------------------------------------------------------------


@dataclass
class ColumnDef:
    name: str
    type: str
    nullable: bool = False
    is_array: bool = False
    primary: bool = False
    default: str | None = None
    enum_name: str | None = None
    length: int | None = None
    comment: str | None = None
    synchronize: bool = True


@dataclass
class IndexDef:
    columns: list[str]
    name: str | None = None
    unique: bool = False
    using: str | None = None
    where: str | None = None
    expression: str | None = None
    synchronize: bool = True


@dataclass
class UniqueDef:
    columns: list[str]
    name: str | None = None
    synchronize: bool = True


@dataclass
class CheckDef:
    expression: str
    name: str | None = None
    synchronize: bool = True


@dataclass
class ForeignKeyDef:
    """Foreign key declaration.

    ``reference_table`` may be a ``TableDeclaration``, a declared name, or a
    zero-argument callable returning either (for forward references).
    ``reference_columns`` defaults to the referenced table's primary columns.
    """

    columns: list[str]
    reference_table: "TableRef"
    reference_columns: list[str] | None = None
    name: str | None = None
    on_delete: ActionType | None = None
    on_update: ActionType | None = None
    synchronize: bool = True


@dataclass
class TriggerDef:
    function_name: str
    actions: list[TriggerAction]
    timing: TriggerTiming = TriggerTiming.AFTER
    scope: TriggerScope = TriggerScope.ROW
    name: str | None = None
    when: str | None = None
    synchronize: bool = True


class TableDeclaration:
    """A table being declared.  Methods return ``self`` for chaining.

    Args:
        name: Declaration name (used in warnings), e.g. ``"UserProfile"``.
        table_name: Table name in the database; defaults to the snake_case
            form of ``name``.
        synchronize: ``False`` excludes the table from diffing.
    """

    def __init__(self, name: str, table_name: str | None = None, synchronize: bool = True):
        self.name = name
        self.table_name = table_name or as_snake_case(name)
        self.synchronize = synchronize
        self.columns: list[ColumnDef] = []
        self.indexes: list[IndexDef] = []
        self.uniques: list[UniqueDef] = []
        self.checks: list[CheckDef] = []
        self.foreign_keys: list[ForeignKeyDef] = []
        self.triggers: list[TriggerDef] = []

    def __repr__(self) -> str:
        return f"TableDeclaration({self.name!r}, table_name={self.table_name!r})"

    @property
    def primary_columns(self) -> list[str]:
        return [column.name for column in self.columns if column.primary]

    def column(self, name: str, type: str, **options) -> "TableDeclaration":
        self.columns.append(ColumnDef(name=name, type=type, **options))
        return self

    def primary_column(self, name: str, type: str = "uuid", **options) -> "TableDeclaration":
        return self.column(name, type, primary=True, **options)

    def index(self, columns: list[str], **options) -> "TableDeclaration":
        self.indexes.append(IndexDef(columns=list(columns), **options))
        return self

    def unique(self, columns: list[str], **options) -> "TableDeclaration":
        self.uniques.append(UniqueDef(columns=list(columns), **options))
        return self

    def check(self, expression: str, **options) -> "TableDeclaration":
        self.checks.append(CheckDef(expression=expression, **options))
        return self

    def foreign_key(
        self,
        columns: list[str],
        reference_table: "TableRef",
        **options,
    ) -> "TableDeclaration":
        self.foreign_keys.append(
            ForeignKeyDef(columns=list(columns), reference_table=reference_table, **options)
        )
        return self

    def trigger(
        self,
        function_name: str,
        actions: list[TriggerAction],
        **options,
    ) -> "TableDeclaration":
        self.triggers.append(
            TriggerDef(function_name=function_name, actions=list(actions), **options)
        )
        return self


TableRef = Union[TableDeclaration, str, Callable[[], Union[TableDeclaration, str]]]


# ------------------------------------------------------------------
# Builder
# ------------------------------------------------------------------


class SchemaBuilder:
    """Builder context for one schema.

    Example:
        >>> builder = SchemaBuilder()
        >>> _ = builder.table("Table1").primary_column("id", "uuid")
        >>> schema = builder.build()
        >>> schema.tables[0].constraints[0].name
        'PK_b249cc64cf63b8a22557cdc8537'
    """

    def __init__(self, database_name: str = "postgres", schema_name: str = "public"):
        self.database_name = database_name
        self.schema_name = schema_name
        self._tables: list[TableDeclaration] = []
        self._enums: list[EnumSchema] = []
        self._extensions: list[ExtensionSchema] = []
        self._functions: list[FunctionSchema] = []
        self._parameters: list[ParameterSchema] = []

    def table(self, name: str, table_name: str | None = None, synchronize: bool = True) -> TableDeclaration:
        declaration = TableDeclaration(name, table_name=table_name, synchronize=synchronize)
        for existing in self._tables:
            if existing.table_name == declaration.table_name:
                raise ValueError(f"Table '{declaration.table_name}' is already declared")
        self._tables.append(declaration)
        return declaration

    def enum(self, name: str, values: list[str], synchronize: bool = True) -> EnumSchema:
        item = EnumSchema(name=name, values=list(values), synchronize=synchronize)
        self._enums.append(item)
        return item

    def extension(self, name: str, synchronize: bool = True) -> ExtensionSchema:
        item = ExtensionSchema(name=name, synchronize=synchronize)
        self._extensions.append(item)
        return item

    def function(self, name: str, expression: str, synchronize: bool = True) -> FunctionSchema:
        item = FunctionSchema(name=name, expression=expression, synchronize=synchronize)
        self._functions.append(item)
        return item

    def parameter(
        self,
        name: str,
        value: str,
        scope: ParameterScope = ParameterScope.DATABASE,
        synchronize: bool = True,
    ) -> ParameterSchema:
        item = ParameterSchema(
            name=name,
            value=value,
            database_name=self.database_name,
            scope=scope,
            synchronize=synchronize,
        )
        self._parameters.append(item)
        return item

    # -- build ---------------------------------------------------------

    def build(self) -> DatabaseSchema:
        """Resolve all declarations into a validated ``DatabaseSchema``."""
        # Pass 1: every identity is known before any reference is followed
        by_name: dict[str, TableDeclaration] = {}
        for declaration in self._tables:
            by_name[declaration.name] = declaration
            by_name.setdefault(declaration.table_name, declaration)

        # Pass 2: resolve members and references
        tables = [self._build_table(declaration, by_name) for declaration in self._tables]

        schema = DatabaseSchema(
            database_name=self.database_name,
            schema_name=self.schema_name,
            tables=tables,
            enums=list(self._enums),
            extensions=list(self._extensions),
            functions=list(self._functions),
            parameters=list(self._parameters),
        )
        labels = {declaration.table_name: declaration.name for declaration in self._tables}
        return validate_schema(schema, labels)

    def _resolve(
        self,
        reference: TableRef,
        by_name: dict[str, TableDeclaration],
    ) -> TableDeclaration | str:
        if callable(reference) and not isinstance(reference, TableDeclaration):
            reference = reference()
        if isinstance(reference, TableDeclaration):
            return reference if reference in self._tables else reference.table_name
        return by_name.get(reference, reference)

    def _build_table(
        self,
        declaration: TableDeclaration,
        by_name: dict[str, TableDeclaration],
    ) -> TableSchema:
        table_name = declaration.table_name

        columns = [
            ColumnSchema(
                name=column.name,
                table_name=table_name,
                type=column.type,
                nullable=column.nullable,
                is_array=column.is_array,
                primary=column.primary,
                default=column.default,
                enum_name=column.enum_name,
                length=column.length,
                comment=column.comment,
                synchronize=column.synchronize,
            )
            for column in declaration.columns
        ]

        constraints: list[ConstraintSchema] = []
        primary_columns = declaration.primary_columns
        if primary_columns:
            constraints.append(
                ConstraintSchema(
                    type=ConstraintType.PRIMARY_KEY,
                    name=as_primary_key_name(table_name, primary_columns),
                    table_name=table_name,
                    column_names=primary_columns,
                )
            )

        for fk in declaration.foreign_keys:
            reference = self._resolve(fk.reference_table, by_name)
            if isinstance(reference, TableDeclaration):
                reference_table_name = reference.table_name
                reference_columns = fk.reference_columns or reference.primary_columns
            else:
                reference_table_name = reference
                reference_columns = fk.reference_columns or []
            constraints.append(
                ConstraintSchema(
                    type=ConstraintType.FOREIGN_KEY,
                    name=fk.name or as_foreign_key_name(table_name, fk.columns),
                    table_name=table_name,
                    column_names=fk.columns,
                    reference_table_name=reference_table_name,
                    reference_column_names=list(reference_columns),
                    on_delete=fk.on_delete,
                    on_update=fk.on_update,
                    synchronize=fk.synchronize,
                )
            )

        for unique in declaration.uniques:
            constraints.append(
                ConstraintSchema(
                    type=ConstraintType.UNIQUE,
                    name=unique.name or as_unique_name(table_name, unique.columns),
                    table_name=table_name,
                    column_names=unique.columns,
                    synchronize=unique.synchronize,
                )
            )

        for check in declaration.checks:
            constraints.append(
                ConstraintSchema(
                    type=ConstraintType.CHECK,
                    name=check.name or as_check_name(table_name, check.expression),
                    table_name=table_name,
                    expression=check.expression,
                    synchronize=check.synchronize,
                )
            )

        indexes = [
            IndexSchema(
                name=index.name or as_index_name(table_name, index.columns, index.where),
                table_name=table_name,
                column_names=index.columns,
                unique=index.unique,
                using=index.using,
                where=index.where,
                expression=index.expression,
                synchronize=index.synchronize,
            )
            for index in declaration.indexes
        ]

        triggers = [
            TriggerSchema(
                name=trigger.name or as_trigger_name(table_name, trigger.function_name),
                table_name=table_name,
                function_name=trigger.function_name,
                timing=trigger.timing,
                actions=trigger.actions,
                scope=trigger.scope,
                when=trigger.when,
                synchronize=trigger.synchronize,
            )
            for trigger in declaration.triggers
        ]

        return TableSchema(
            name=table_name,
            columns=columns,
            indexes=indexes,
            triggers=triggers,
            constraints=constraints,
            synchronize=declaration.synchronize,
        )
