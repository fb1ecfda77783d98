"""Pydantic models for the schema model and schema diff actions.

This module contains schema-domain models:
- Entity models: ColumnSchema, IndexSchema, ConstraintSchema, TriggerSchema,
  TableSchema, EnumSchema, ExtensionSchema, FunctionSchema, ParameterSchema,
  DatabaseSchema
- Diff actions: one model per ``<Kind>Create`` / ``<Kind>Drop`` pair plus
  ``ColumnAlter``, joined in the ``SchemaDiff`` union
- ``Reason`` for why an action was emitted

Two schemas are always compared as *source* (declared by the application)
against *target* (read from the live database).  ``Reason.MISSING_IN_TARGET``
marks something to create, ``Reason.MISSING_IN_SOURCE`` something to drop.

All entity models are frozen: a ``DatabaseSchema`` is built once and only
read afterwards.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ============================================================================
# Enumerations
# ============================================================================


class Reason(str, Enum):
    """Why an entity is created or dropped.

    Changed entities carry a free-text reason instead, describing the
    differing field (e.g. ``"columns are different (a vs a,b)"``).
    """

    MISSING_IN_SOURCE = "missing in source"
    MISSING_IN_TARGET = "missing in target"


class ConstraintType(str, Enum):
    PRIMARY_KEY = "primary-key"
    FOREIGN_KEY = "foreign-key"
    UNIQUE = "unique"
    CHECK = "check"


class ActionType(str, Enum):
    """Referential action for ON DELETE / ON UPDATE."""

    NO_ACTION = "NO ACTION"
    RESTRICT = "RESTRICT"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"


class TriggerTiming(str, Enum):
    BEFORE = "before"
    AFTER = "after"
    INSTEAD_OF = "instead of"


class TriggerAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    TRUNCATE = "truncate"


class TriggerScope(str, Enum):
    ROW = "row"
    STATEMENT = "statement"


class ParameterScope(str, Enum):
    DATABASE = "database"
    USER = "user"


# ============================================================================
# Schema Entity Models
# ============================================================================


class ColumnSchema(_Frozen):
    """Schema for a table column.

    Example:
        >>> col = ColumnSchema(name="id", table_name="users", type="uuid")
        >>> col.nullable
        False
    """

    name: str
    table_name: str
    type: str
    nullable: bool = False
    is_array: bool = False
    primary: bool = False
    default: str | None = None
    enum_name: str | None = None
    length: int | None = None
    comment: str | None = None
    synchronize: bool = True


class IndexSchema(_Frozen):
    """Schema for an index.

    ``column_names`` is order-significant: ``(a, b)`` and ``(b, a)`` are
    different indexes.
    """

    name: str
    table_name: str
    column_names: list[str] = Field(default_factory=list)
    unique: bool = False
    using: str | None = None
    where: str | None = None
    expression: str | None = None
    synchronize: bool = True


class ConstraintSchema(_Frozen):
    """Schema for a table constraint.

    Foreign keys additionally use ``reference_table_name``,
    ``reference_column_names``, ``on_delete`` and ``on_update``; check
    constraints use ``expression``.
    """

    type: ConstraintType
    name: str
    table_name: str
    column_names: list[str] = Field(default_factory=list)
    reference_table_name: str | None = None
    reference_column_names: list[str] = Field(default_factory=list)
    on_delete: ActionType | None = None
    on_update: ActionType | None = None
    expression: str | None = None
    synchronize: bool = True


class TriggerSchema(_Frozen):
    """Schema for a table trigger."""

    name: str
    table_name: str
    function_name: str
    timing: TriggerTiming = TriggerTiming.AFTER
    actions: list[TriggerAction] = Field(default_factory=list)
    scope: TriggerScope = TriggerScope.ROW
    when: str | None = None
    synchronize: bool = True


class TableSchema(_Frozen):
    """Schema for a table.

    Tables with ``synchronize=False`` are left alone by the differ.
    """

    name: str
    columns: list[ColumnSchema] = Field(default_factory=list)
    indexes: list[IndexSchema] = Field(default_factory=list)
    triggers: list[TriggerSchema] = Field(default_factory=list)
    constraints: list[ConstraintSchema] = Field(default_factory=list)
    synchronize: bool = True


class EnumSchema(_Frozen):
    """Schema for an enum type."""

    name: str
    values: list[str] = Field(default_factory=list)
    synchronize: bool = True


class ExtensionSchema(_Frozen):
    """Schema for a database extension."""

    name: str
    synchronize: bool = True


class FunctionSchema(_Frozen):
    """Schema for a SQL function.

    ``expression`` is the full ``CREATE OR REPLACE FUNCTION`` statement.
    """

    name: str
    expression: str
    synchronize: bool = True


class ParameterSchema(_Frozen):
    """Schema for a configuration parameter set on a database or user."""

    name: str
    value: str
    database_name: str
    scope: ParameterScope = ParameterScope.DATABASE
    synchronize: bool = True


class DatabaseSchema(_Frozen):
    """Complete database schema.

    ``warnings`` collects authoring problems found while building the
    schema (see ``db_reconciler.schema.validator``).
    """

    database_name: str = "postgres"
    schema_name: str = "public"
    tables: list[TableSchema] = Field(default_factory=list)
    enums: list[EnumSchema] = Field(default_factory=list)
    extensions: list[ExtensionSchema] = Field(default_factory=list)
    functions: list[FunctionSchema] = Field(default_factory=list)
    parameters: list[ParameterSchema] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ============================================================================
# Diff Action Models
# ============================================================================


class _Action(_Frozen):
    reason: Reason | str


class TableCreate(_Action):
    type: Literal["TableCreate"] = "TableCreate"
    table: TableSchema


class TableDrop(_Action):
    type: Literal["TableDrop"] = "TableDrop"
    table_name: str


class ColumnCreate(_Action):
    type: Literal["ColumnCreate"] = "ColumnCreate"
    column: ColumnSchema


class ColumnDrop(_Action):
    type: Literal["ColumnDrop"] = "ColumnDrop"
    table_name: str
    column_name: str


class ColumnAlter(_Action):
    """In-place column change; ``changes`` holds nullable/default/comment."""

    type: Literal["ColumnAlter"] = "ColumnAlter"
    table_name: str
    column_name: str
    changes: dict[str, Any] = Field(default_factory=dict)


class IndexCreate(_Action):
    type: Literal["IndexCreate"] = "IndexCreate"
    index: IndexSchema


class IndexDrop(_Action):
    type: Literal["IndexDrop"] = "IndexDrop"
    index_name: str


class ConstraintCreate(_Action):
    type: Literal["ConstraintCreate"] = "ConstraintCreate"
    constraint: ConstraintSchema


class ConstraintDrop(_Action):
    type: Literal["ConstraintDrop"] = "ConstraintDrop"
    table_name: str
    constraint_name: str


class TriggerCreate(_Action):
    type: Literal["TriggerCreate"] = "TriggerCreate"
    trigger: TriggerSchema


class TriggerDrop(_Action):
    type: Literal["TriggerDrop"] = "TriggerDrop"
    table_name: str
    trigger_name: str


class EnumCreate(_Action):
    type: Literal["EnumCreate"] = "EnumCreate"
    enum: EnumSchema


class EnumDrop(_Action):
    type: Literal["EnumDrop"] = "EnumDrop"
    enum_name: str


class ExtensionCreate(_Action):
    type: Literal["ExtensionCreate"] = "ExtensionCreate"
    extension: ExtensionSchema


class ExtensionDrop(_Action):
    type: Literal["ExtensionDrop"] = "ExtensionDrop"
    extension_name: str


class FunctionCreate(_Action):
    type: Literal["FunctionCreate"] = "FunctionCreate"
    function: FunctionSchema


class FunctionDrop(_Action):
    type: Literal["FunctionDrop"] = "FunctionDrop"
    function_name: str


class ParameterCreate(_Action):
    type: Literal["ParameterCreate"] = "ParameterCreate"
    parameter: ParameterSchema


class ParameterDrop(_Action):
    type: Literal["ParameterDrop"] = "ParameterDrop"
    database_name: str
    parameter_name: str


SchemaDiff = Annotated[
    Union[
        TableCreate,
        TableDrop,
        ColumnCreate,
        ColumnDrop,
        ColumnAlter,
        IndexCreate,
        IndexDrop,
        ConstraintCreate,
        ConstraintDrop,
        TriggerCreate,
        TriggerDrop,
        EnumCreate,
        EnumDrop,
        ExtensionCreate,
        ExtensionDrop,
        FunctionCreate,
        FunctionDrop,
        ParameterCreate,
        ParameterDrop,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# Diff Options
# ============================================================================


class IgnoreOptions(BaseModel):
    """Skip one side of a comparison for an entity kind.

    ``ignore_extra`` keeps entities that only exist in the database;
    ``ignore_missing`` skips creating entities the database lacks.
    """

    ignore_extra: bool = False
    ignore_missing: bool = False


class DiffOptions(BaseModel):
    """Per-kind ignore options for ``schema_diff``."""

    tables: IgnoreOptions = Field(default_factory=IgnoreOptions)
    enums: IgnoreOptions = Field(default_factory=IgnoreOptions)
    extensions: IgnoreOptions = Field(default_factory=IgnoreOptions)
    functions: IgnoreOptions = Field(default_factory=IgnoreOptions)
    parameters: IgnoreOptions = Field(default_factory=IgnoreOptions)
