from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from click import Group
    from rich.console import Console

    from procspec.base import ProcSpec
    from procspec.result import ExecutionHandle

__all__ = ("SHAPE_CHOICES", "get_procspec_group", "main")

SHAPE_CHOICES = ("update", "int", "str", "rows")


def _load_provider(dotted_path: Optional[str]) -> Any:
    from procspec.adapters.sqlite import SqliteConnectionProvider
    from procspec.connection import ConnectionRegistry
    from procspec.utils.module_loader import import_string

    if dotted_path is None:
        registry = ConnectionRegistry(default=SqliteConnectionProvider())
        registry.register("sqlite", SqliteConnectionProvider())
        return registry
    provider = import_string(dotted_path)
    if not hasattr(provider, "acquire") and callable(provider):
        provider = provider()
    if not hasattr(provider, "acquire"):
        msg = f"{dotted_path} is not a connection provider"
        raise ImportError(msg)
    return provider


def _print_handle(console: "Console", handle: "ExecutionHandle") -> None:
    from rich.table import Table

    with handle:
        cursor = handle.cursor
        table = Table(*cursor.column_names)
        row_count = 0
        for row in cursor:
            table.add_row(*("NULL" if value is None else str(value) for value in row))
            row_count += 1
        console.print(table)
        console.print(f"[dim]{row_count} row(s)[/]")


def _print_result(console: "Console", result: Any) -> None:
    from procspec.result import ExecutionHandle

    if isinstance(result, ExecutionHandle):
        _print_handle(console, result)
    elif result is None:
        console.print("[dim]NULL[/]")
    else:
        console.print(str(result))


def get_procspec_group() -> "Group":
    """Get the procspec CLI group.

    Raises:
        MissingDependencyError: If the `click` package is not installed.

    Returns:
        The procspec CLI group.
    """
    from procspec.exceptions import MissingDependencyError

    try:
        import rich_click as click
    except ImportError:
        try:
            import click  # type: ignore[no-redef]
        except ImportError as e:
            raise MissingDependencyError(package="click", install_package="cli") from e

    from rich import get_console

    from procspec.exceptions import ProcSpecError
    from procspec.result import ResultShape

    shapes = {
        "update": ResultShape.NONE,
        "int": ResultShape.INTEGER,
        "str": ResultShape.TEXT,
        "rows": ResultShape.HANDLE,
    }
    shape_option = click.option(
        "--shape",
        type=click.Choice(SHAPE_CHOICES),
        default="rows",
        show_default=True,
        help="Result shape to request",
    )

    def run(ctx: "click.Context", action: Any) -> None:
        console = get_console()
        try:
            _print_result(console, action(ctx.obj["runner"]))
        except (ProcSpecError, ImportError) as e:
            console.print(f"[red]{type(e).__name__}: {e}[/]")
            ctx.exit(1)

    @click.group(name="procspec")
    @click.option(
        "--provider",
        help="Dotted path to a connection provider (default: built-in SQLite provider)",
        required=False,
        type=str,
    )
    @click.option("--validate-placeholders", is_flag=True, help="Check ? counts against declared arguments")
    @click.option(
        "--log-level",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
        default=None,
        help="Log procspec activity to stderr at this level",
    )
    @click.option("--log-json", is_flag=True, help="Log JSON lines with descriptor, shape and scheme fields")
    @click.pass_context
    def procspec_group(
        ctx: "click.Context",
        provider: Optional[str],
        validate_placeholders: bool,
        log_level: Optional[str],
        log_json: bool,
    ) -> None:
        """Run declared queries and stored procedures."""
        from procspec.adapters.sqlite import sqlite_statement_config
        from procspec.base import ProcSpec
        from procspec.config import StatementConfig
        from procspec.utils.logging import configure_logging

        console = get_console()
        ctx.ensure_object(dict)
        if log_level is not None:
            configure_logging(log_level, structured=log_json)
        if provider is None:
            config = sqlite_statement_config(validate_placeholders=validate_placeholders)
        else:
            config = StatementConfig(validate_placeholders=validate_placeholders)
        try:
            ctx.obj["runner"] = ProcSpec(_load_provider(provider), config)
        except ImportError as e:
            console.print(f"[red]Error loading provider: {e}[/]")
            ctx.exit(1)

    @procspec_group.command(name="query")
    @click.argument("descriptor")
    @click.argument("args", nargs=-1)
    @shape_option
    @click.pass_context
    def query_command(ctx: "click.Context", descriptor: str, args: "tuple[str, ...]", shape: str) -> None:
        """Run the query descriptor at DESCRIPTOR (dotted path) with ARGS."""
        from procspec.utils.module_loader import import_string

        def action(runner: "ProcSpec") -> Any:
            return runner.execute_query(shapes[shape], import_string(descriptor), *args)

        run(ctx, action)

    @procspec_group.command(name="call")
    @click.argument("descriptor")
    @click.argument("args", nargs=-1)
    @shape_option
    @click.pass_context
    def call_command(ctx: "click.Context", descriptor: str, args: "tuple[str, ...]", shape: str) -> None:
        """Call the stored procedure descriptor at DESCRIPTOR (dotted path) with ARGS."""
        from procspec.utils.module_loader import import_string

        def action(runner: "ProcSpec") -> Any:
            return runner.call_procedure(shapes[shape], import_string(descriptor), *args)

        run(ctx, action)

    @procspec_group.command(name="sql")
    @click.argument("connection")
    @click.argument("sql")
    @click.argument("params", nargs=-1)
    @shape_option
    @click.pass_context
    def sql_command(ctx: "click.Context", connection: str, sql: str, params: "tuple[str, ...]", shape: str) -> None:
        """Run raw SQL against CONNECTION with positional PARAMS."""

        def action(runner: "ProcSpec") -> Any:
            return runner.execute_sql(shapes[shape], connection, sql, *params)

        run(ctx, action)

    return procspec_group


def main() -> None:
    get_procspec_group()()
