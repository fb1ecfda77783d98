"""Schema migration module -- bring a live database in line with a declared schema.

Diffs the declared schema against the introspected one, renders the
ordered actions to DDL and applies them via the ``DatabaseClient.execute()``
Protocol method.

Usage:
    from db_reconciler.schema.introspector import SchemaIntrospector
    from db_reconciler.schema.migrate import apply_migration_plan, generate_migration_plan

    # 1. Introspect
    async with SchemaIntrospector(url) as introspector:
        live = await introspector.introspect()

    # 2. Generate plan
    plan = generate_migration_plan(declared, live)

    # 3. Apply
    result = await apply_migration_plan(adapter, plan, dry_run=False, confirm=True)
"""

import logging
from collections.abc import Collection
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from db_reconciler.constants import VECTOR_EXTENSIONS
from db_reconciler.schema.differ import schema_diff
from db_reconciler.schema.models import DatabaseSchema, DiffOptions, SchemaDiff
from db_reconciler.schema.sql import to_statements

if TYPE_CHECKING:
    from db_reconciler.adapters.base import DatabaseClient

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Plan / result
# ------------------------------------------------------------------


@dataclass
class MigrationPlan:
    """Plan for migrating a database.

    Attributes:
        actions: Ordered diff actions from ``schema_diff``.
        statements: The actions rendered as DDL, in execution order.
        warnings: Authoring warnings carried over from the declared schema.
        error: Error message if plan generation failed.
    """

    actions: list[SchemaDiff] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def has_changes(self) -> bool:
        """True if there is anything to apply."""
        return bool(self.statements)

    @property
    def change_count(self) -> int:
        return len(self.actions)


class MigrationResult(BaseModel):
    """Result of applying a migration plan.

    Attributes:
        success: True if every statement was applied (or dry run).
        actions_applied: Number of actions covered by the run.
        statements_executed: Number of statements sent to the database.
        statements: Statements that were (or, in a dry run, would be) executed.
        error: Error message if the migration failed.
    """

    success: bool = False
    actions_applied: int = 0
    statements_executed: int = 0
    statements: list[str] = Field(default_factory=list)
    error: str | None = None


# ------------------------------------------------------------------
# Plan generation
# ------------------------------------------------------------------


MANAGED_EXTENSIONS = frozenset(extension.value for extension in VECTOR_EXTENSIONS)


def without_extensions(schema: DatabaseSchema, names: Collection[str]) -> DatabaseSchema:
    """Copy of *schema* without the extensions named in *names*."""
    if not any(extension.name in names for extension in schema.extensions):
        return schema
    return schema.model_copy(
        update={"extensions": [item for item in schema.extensions if item.name not in names]}
    )


def generate_migration_plan(
    source: DatabaseSchema,
    target: DatabaseSchema,
    options: DiffOptions | None = None,
    managed_extensions: Collection[str] = MANAGED_EXTENSIONS,
) -> MigrationPlan:
    """Generate a plan that turns *target* into *source*.

    Pure sync logic.  The vector extensions are created, updated and
    dropped by the bootstrap sequence, so by default they are left out of
    the comparison on both sides.

    Args:
        source: Declared schema.
        target: Schema introspected from the database.
        options: Optional per-kind ignore flags.
        managed_extensions: Extension names the plan never creates or drops.

    Returns:
        ``MigrationPlan`` with actions and rendered statements.

    Example:
        plan = generate_migration_plan(declared, live)
        if plan.has_changes:
            result = await apply_migration_plan(adapter, plan, dry_run=False, confirm=True)
    """
    plan = MigrationPlan(warnings=list(source.warnings))
    source = without_extensions(source, managed_extensions)
    target = without_extensions(target, managed_extensions)
    try:
        plan.actions = schema_diff(source, target, options)
        plan.statements = to_statements(plan.actions)
    except ValueError as e:
        plan.error = str(e)
    return plan


# ------------------------------------------------------------------
# Plan application
# ------------------------------------------------------------------


async def apply_migration_plan(
    client: "DatabaseClient",
    plan: MigrationPlan,
    dry_run: bool = True,
    confirm: bool = False,
) -> MigrationResult:
    """Apply a migration plan to a database.

    Args:
        client: Database client implementing the ``DatabaseClient`` Protocol.
        plan: Plan from ``generate_migration_plan()``.
        dry_run: If True, only report what would be done without executing.
        confirm: Must be True to actually apply statements (safety guard).

    Returns:
        ``MigrationResult`` with outcome.

    Raises:
        RuntimeError: If the client does not support DDL operations
            (raises ``NotImplementedError`` on ``execute()``).
    """
    result = MigrationResult(statements=list(plan.statements))

    if plan.error:
        result.error = plan.error
        return result

    for warning in plan.warnings:
        logger.warning(warning)

    if not plan.has_changes:
        result.success = True
        return result

    if dry_run:
        result.success = True
        result.actions_applied = plan.change_count
        return result

    if not confirm:
        result.error = "Migration requires confirm=True"
        return result

    try:
        for statement in plan.statements:
            try:
                await client.execute(statement)
            except NotImplementedError:
                raise RuntimeError("DDL operations not supported for this client type")
            result.statements_executed += 1
        result.actions_applied = plan.change_count
        result.success = True
    except RuntimeError:
        raise
    except Exception as e:
        logger.error("Migration failed after %d statements: %s", result.statements_executed, e)
        result.error = f"Failed to apply migration: {e}"

    return result
