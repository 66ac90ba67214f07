"""
Command-line interface for branch-schema.
"""

import sys
from functools import wraps
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import BranchSchemaSettings, DEFAULT_CONNECTION_NAME
from .database.connection import redact_dsn
from .exceptions import ConfigurationError, BranchSchemaError
from .logging_setup import setup_logging
from .runner import run
from .schema.operations import OperationMode
from .schema.reconciler import ReconciliationReport, ReconciliationStatus


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BranchSchemaError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {e}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


def _load_settings(config: Optional[str]) -> BranchSchemaSettings:
    """Load settings from a YAML file, or from the environment when none is given."""
    if config:
        return BranchSchemaSettings.from_yaml(config)
    return BranchSchemaSettings()


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """branch-schema: Branches table bootstrap for master and tenant databases."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="branch-schema.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new branch-schema configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    config = _create_default_config()
    config.to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print(f"1. Set connection_strings.{DEFAULT_CONNECTION_NAME} to your master database")
    console.print(f"2. Run: branch-schema validate-config -c {output}")
    console.print(f"3. Run: branch-schema reconcile -c {output} --master")
    console.print(f"4. Run: branch-schema reconcile -c {output} --tenants")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@handle_errors
def validate_config(config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    try:
        settings = BranchSchemaSettings.from_yaml(config)
        settings.validate_config()

        console.print("[green]✓[/green] Configuration is valid")

        _display_config_summary(settings)

    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        sys.exit(1)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path (settings are read from the environment if omitted)",
)
@click.option(
    "--master/--tenants",
    "for_master",
    default=True,
    help="Reconcile the master database, or every tenant database listed in it",
)
@click.option(
    "--connection-string",
    help="Master connection string overriding the configured one",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without making changes",
)
@click.option(
    "--advisory-lock",
    is_flag=True,
    help="Serialise concurrent runs with a PostgreSQL advisory lock",
)
@click.pass_context
@handle_errors
def reconcile(
    ctx,
    config: Optional[str],
    for_master: bool,
    connection_string: Optional[str],
    dry_run: bool,
    advisory_lock: bool,
):
    """Ensure the Branches table exists, is complete, and is seeded."""
    settings = _load_settings(config)
    debug = bool(ctx.obj and ctx.obj.get("debug")) or settings.debug
    setup_logging(settings.logging, debug=debug)

    if advisory_lock:
        settings.reconciliation.advisory_lock = True

    target = "master database" if for_master else "tenant databases"
    console.print(f"[blue]Reconciling Branches table in {target}...[/blue]")
    if dry_run:
        console.print("[yellow]Dry run mode - no changes will be made[/yellow]")

    report = run(
        settings,
        for_master,
        connection_string=connection_string,
        operation_mode=OperationMode.DRY_RUN if dry_run else None,
    )

    if report is None:
        console.print("[red]✗ Reconciliation could not run, see log output[/red]")
        sys.exit(1)

    _display_report(report, dry_run)

    if report.status != ReconciliationStatus.SUCCESS:
        sys.exit(1)


def _create_default_config() -> BranchSchemaSettings:
    """Create a default configuration with examples."""
    return BranchSchemaSettings(
        connection_strings={
            DEFAULT_CONNECTION_NAME: (
                "postgresql://${POSTGRES_USER}:${POSTGRES_PASSWORD}"
                "@${POSTGRES_HOST}:5432/${POSTGRES_DB}"
            ),
        },
    )


def _display_config_summary(settings: BranchSchemaSettings):
    """Display a summary of the configuration."""
    console.print("\n[blue]Configuration Summary[/blue]")

    conn_table = Table(title="Connection Strings")
    conn_table.add_column("Name", style="cyan")
    conn_table.add_column("Target", style="magenta")
    conn_table.add_column("Default", style="green")

    for name, value in settings.connection_strings.items():
        is_default = name.lower() == settings.default_connection_name.lower()
        conn_table.add_row(name, redact_dsn(value), "yes" if is_default else "")

    console.print(conn_table)

    reconciliation = settings.reconciliation
    console.print(f"  Branches schema: {reconciliation.schema_name}")
    directory = settings.tenant_directory
    console.print(f"  Tenant directory: {directory.full_table_name}.{directory.column}")
    console.print(f"  Mode: {reconciliation.mode}")
    console.print(f"  Advisory lock: {'on' if reconciliation.advisory_lock else 'off'}")


def _display_report(report: ReconciliationReport, dry_run: bool = False):
    """Display per-target reconciliation results."""
    if not report.results:
        console.print("[yellow]No databases to reconcile[/yellow]")
        return

    results_table = Table(title="Branches Reconciliation")
    results_table.add_column("Database", style="cyan")
    results_table.add_column("Role", style="magenta")
    results_table.add_column("Status")
    results_table.add_column("Pending" if dry_run else "Changes", style="yellow")
    results_table.add_column("Time (ms)", justify="right")
    results_table.add_column("Error", style="red")

    status_styles = {
        ReconciliationStatus.SUCCESS: "green",
        ReconciliationStatus.SKIPPED: "yellow",
        ReconciliationStatus.FAILED: "red",
    }

    for result in report.results:
        status_style = status_styles.get(result.status, "red")
        changes = result.pending_changes if dry_run else result.applied_changes
        results_table.add_row(
            result.target,
            result.role.value,
            f"[{status_style}]{result.status.value}[/{status_style}]",
            str(changes),
            f"{result.execution_time_ms:.1f}",
            result.error or "",
        )

    console.print(results_table)

    if dry_run:
        for result in report.results:
            for change in result.changes:
                console.print(f"  [dim]{result.target}[/dim] {change.description}")

    summary = report.summary()
    line = (
        f"\n{summary['successful']} succeeded, {summary['failed']} failed, "
        f"{summary['total_changes']} changes applied"
    )
    if summary["skipped"]:
        line += f", {summary['skipped']} skipped (dry run)"
    console.print(line)


if __name__ == "__main__":
    main()
