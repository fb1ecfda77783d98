"""CLI for database bootstrap and schema reconciliation.

Provides commands to run the startup sequence, preview the migration for
a declared schema, and inspect the vector extension versions.

Usage:
    db-reconciler bootstrap --schema myapp.schema:schema
    db-reconciler plan --schema myapp.schema:build_schema --sql
    db-reconciler plan --schema myapp.schema:schema --confirm
    db-reconciler extensions
    db-reconciler --config db.toml --verbose bootstrap --skip-migrations

Commands:
    bootstrap   - Check versions, resolve the vector extension, migrate, reindex
    plan        - Show (and optionally apply) the migration for a declared schema
    extensions  - Show installed/available vector extension versions
"""

import argparse
import asyncio
import importlib
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from db_reconciler.bootstrap import DatabaseService
from db_reconciler.config import DatabaseSettings, load_db_config
from db_reconciler.constants import VECTOR_EXTENSIONS, get_extension_name
from db_reconciler.errors import ReconcilerError
from db_reconciler.factory import get_adapter
from db_reconciler.schema.builder import SchemaBuilder
from db_reconciler.schema.introspector import SchemaIntrospector
from db_reconciler.schema.migrate import apply_migration_plan, generate_migration_plan
from db_reconciler.schema.models import DatabaseSchema
from db_reconciler.versions import get_version_status

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def load_schema(reference: str) -> DatabaseSchema:
    """Load a declared schema from a ``module:attribute`` reference.

    The attribute may be a ``DatabaseSchema``, a ``SchemaBuilder`` (built on
    load), or a zero-argument callable returning either.

    Raises:
        ValueError: If the reference is malformed or does not resolve to a schema.
        ImportError: If the module cannot be imported.

    Example:
        >>> schema = load_schema("myapp.schema:schema")  # doctest: +SKIP
    """
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Expected 'module:attribute', got '{reference}'")

    module = importlib.import_module(module_name)
    try:
        value = getattr(module, attribute)
    except AttributeError:
        raise ValueError(f"Module '{module_name}' has no attribute '{attribute}'") from None

    if callable(value) and not isinstance(value, (DatabaseSchema, SchemaBuilder)):
        value = value()
    if isinstance(value, SchemaBuilder):
        value = value.build()
    if not isinstance(value, DatabaseSchema):
        raise ValueError(f"'{reference}' is not a DatabaseSchema or SchemaBuilder")
    return value


def _load_settings(args: argparse.Namespace) -> DatabaseSettings:
    config = getattr(args, "config", None)
    return load_db_config(Path(config) if config else None)


def _print_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        console.print(f"[yellow]![/yellow] {warning}")


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_bootstrap(args: argparse.Namespace) -> int:
    """Async implementation for bootstrap command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        settings = _load_settings(args)
        schema = load_schema(args.schema) if args.schema else None
    except (ImportError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if schema is not None:
        _print_warnings(schema.warnings)

    adapter = get_adapter(settings, schema=schema)
    service = DatabaseService(
        adapter,
        skip_migrations=args.skip_migrations or settings.skip_migrations,
    )
    try:
        await service.on_bootstrap()
    except ReconcilerError as e:
        console.print(f"\n[bold red]x[/bold red] {e}")
        return 1
    finally:
        await adapter.close()

    console.print("[bold green]v[/bold green] Database is ready")
    return 0


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command.

    Shows the ordered actions; ``--sql`` also prints the statements and
    ``--confirm`` applies them.

    Returns:
        0 on success (or nothing to do), 1 on failure.
    """
    try:
        settings = _load_settings(args)
        schema = load_schema(args.schema)
    except (ImportError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    adapter = get_adapter(settings, schema=schema)
    try:
        try:
            async with SchemaIntrospector(str(adapter._database_url)) as introspector:
                live = await introspector.introspect(schema.schema_name)
        except Exception as e:
            console.print(f"[red]Failed to connect to database: {e}[/red]")
            return 1

        plan = generate_migration_plan(schema, live)
        _print_warnings(plan.warnings)

        if plan.error:
            console.print(f"\n[red]Error: {plan.error}[/red]")
            return 1

        if not plan.has_changes:
            console.print("[bold green]v[/bold green] Schema is up to date")
            return 0

        table = Table(title=f"Migration plan ({plan.change_count} actions)")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Action", style="cyan")
        table.add_column("Reason")
        for number, action in enumerate(plan.actions, start=1):
            reason = getattr(action.reason, "value", action.reason)
            table.add_row(str(number), action.type, str(reason))
        console.print(table)

        if args.sql:
            console.print()
            for statement in plan.statements:
                console.print(statement, markup=False, highlight=False)

        if not args.confirm:
            console.print("\n[dim]Dry run. Use --confirm to apply.[/dim]")
            return 0

        result = await apply_migration_plan(adapter, plan, dry_run=False, confirm=True)
        if not result.success:
            console.print(f"\n[bold red]x[/bold red] {result.error}")
            return 1

        console.print(
            f"\n[bold green]v[/bold green] Applied {result.actions_applied} actions "
            f"({result.statements_executed} statements)"
        )
        return 0
    finally:
        await adapter.close()


async def _async_extensions(args: argparse.Namespace) -> int:
    """Async implementation for extensions command.

    Returns:
        0 on success, 1 on connection failure.
    """
    try:
        settings = _load_settings(args)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    adapter = get_adapter(settings)
    try:
        try:
            records = await adapter.get_extension_versions(VECTOR_EXTENSIONS)
            active = await adapter.get_vector_extension()
        except Exception as e:
            console.print(f"[red]Failed to connect to database: {e}[/red]")
            return 1
    finally:
        await adapter.close()

    table = Table(title="Vector extensions")
    table.add_column("Extension", style="cyan")
    table.add_column("Installed")
    table.add_column("Available")
    table.add_column("Supported")
    table.add_column("Status")
    for record in records:
        version_range = adapter.get_extension_version_range(record.name)
        status = (
            get_version_status(record.available_version, version_range).value
            if record.available_version
            else "unavailable"
        )
        marker = " [green](active)[/green]" if record.name == active else ""
        table.add_row(
            f"{get_extension_name(record.name)}{marker}",
            record.installed_version or "-",
            record.available_version or "-",
            version_range,
            status,
        )
    console.print(table)
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_bootstrap(args: argparse.Namespace) -> int:
    """Run the database bootstrap sequence.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_bootstrap(args))


def cmd_plan(args: argparse.Namespace) -> int:
    """Show or apply the migration for a declared schema.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_plan(args))


def cmd_extensions(args: argparse.Namespace) -> int:
    """Show vector extension versions.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_extensions(args))


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-reconciler",
        description="Database bootstrap and declarative schema reconciliation",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml; DB_* environment variables override it)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # bootstrap command
    p_bootstrap = subparsers.add_parser(
        "bootstrap",
        help="Check versions, resolve the vector extension, migrate and reindex",
    )
    p_bootstrap.add_argument(
        "--schema",
        default=None,
        help="Declared schema as module:attribute",
    )
    p_bootstrap.add_argument(
        "--skip-migrations",
        action="store_true",
        help="Skip migrations and vector reindexing",
    )
    p_bootstrap.set_defaults(func=cmd_bootstrap)

    # plan command
    p_plan = subparsers.add_parser(
        "plan",
        help="Show the migration for a declared schema",
    )
    p_plan.add_argument(
        "--schema",
        required=True,
        help="Declared schema as module:attribute",
    )
    p_plan.add_argument(
        "--sql",
        action="store_true",
        help="Print the SQL statements",
    )
    p_plan.add_argument(
        "--confirm",
        action="store_true",
        help="Apply the migration",
    )
    p_plan.set_defaults(func=cmd_plan)

    # extensions command
    p_extensions = subparsers.add_parser(
        "extensions",
        help="Show vector extension versions",
    )
    p_extensions.set_defaults(func=cmd_extensions)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
