"""Main CLI entry point for svncache.

Provides command-line access to cache updates, pinned exports, eviction
and ledger status.
"""

import logging
import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from svncache.cache import CacheCleanError, CacheConfig, CacheError, CacheManager
from svncache.vcs import VcsError

# Global console for Rich output
console = Console()

CLI_ERRORS = (CacheError, VcsError, ValueError, OSError)


def setup_logging(verbose: int) -> None:
    """Route log records through Rich.

    Args:
        verbose: 0 for warnings, 1 for info, 2 or more for debug
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def load_config(ctx_config: Optional[str] = None) -> CacheConfig:
    """Find cache configuration from multiple sources.

    Priority:
    1. Explicit --config flag
    2. SVNCACHE_CONFIG environment variable
    3. SVNCACHE_* environment variables

    Args:
        ctx_config: Config path from CLI context

    Returns:
        Loaded CacheConfig

    Raises:
        click.ClickException: If no usable configuration is found
    """
    config_file = ctx_config or os.environ.get("SVNCACHE_CONFIG")
    if config_file:
        path = Path(config_file)
        if not path.exists():
            raise click.ClickException(f"Config file not found: {config_file}")
        try:
            return CacheConfig.load(path)
        except ValueError as e:
            raise click.ClickException(str(e)) from e

    try:
        return CacheConfig.from_env()
    except ValueError as e:
        raise click.ClickException(
            f"No configuration given (use --config or SVNCACHE_CONFIG): {e}"
        ) from e


def open_manager(ctx) -> CacheManager:
    config = load_config(ctx.obj.get("config"))
    return CacheManager.from_config(config)


def format_duration(value: Optional[timedelta]) -> str:
    if value is None:
        return "never"
    days = value.total_seconds() / 86400
    if days >= 1:
        return f"{days:.1f}d"
    return f"{value.total_seconds() / 3600:.1f}h"


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(),
    help="Path to JSON config file (default: SVNCACHE_CONFIG or SVNCACHE_* env vars)",
)
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v, -vv)")
@click.pass_context
def cli(ctx, config, verbose):
    """svncache - Cache Subversion working copies and pinned exports.

    Use --config/-c to specify a config file, or set SVNCACHE_CONFIG.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    setup_logging(verbose)


@cli.command("update")
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def update(ctx, paths):
    """Check out or update repository paths.

    Example:
        svncache update tags/1.0 branches/feature
    """
    try:
        with open_manager(ctx) as manager:
            for relative_path in paths:
                destination = manager.update(relative_path)
                if destination is None:
                    console.print(
                        f"[yellow]![/yellow] Removed inconsistent working copy for "
                        f"'{relative_path}', it will be checked out on next update"
                    )
                else:
                    console.print(f"[green]✓[/green] {relative_path} -> {destination}")
    except CLI_ERRORS as e:
        console.print(f"[red]✗[/red] Error: {escape(str(e))}", style="red")
        sys.exit(1)


@cli.command("export")
@click.argument("path")
@click.option("--revision", "-r", type=int, required=True, help="Revision to export")
@click.pass_context
def export(ctx, path, revision):
    """Export a repository path at a fixed revision.

    Example:
        svncache export trunk -r 100
    """
    try:
        with open_manager(ctx) as manager:
            destination = manager.export_to_revision(path, revision)
        console.print(f"[green]✓[/green] {path}@{revision} -> {destination}")
    except CLI_ERRORS as e:
        console.print(f"[red]✗[/red] Error: {escape(str(e))}", style="red")
        sys.exit(1)


@cli.command("clean")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clean(ctx, yes):
    """Evict idle and untracked cache entries.

    Example:
        svncache clean --yes
    """
    try:
        manager = open_manager(ctx)
        with manager:
            if not yes and not click.confirm(
                f"Remove idle entries under {manager.export_root}?"
            ):
                console.print("[yellow]Cancelled[/yellow]")
                return
            report = manager.clean()
    except CacheCleanError as e:
        for error in e.errors:
            console.print(f"[red]✗[/red] {escape(str(error))}", style="red")
        console.print(f"[red]✗[/red] Error: {escape(str(e))}", style="red")
        sys.exit(1)
    except CLI_ERRORS as e:
        console.print(f"[red]✗[/red] Error: {escape(str(e))}", style="red")
        sys.exit(1)

    if not report.removed and not report.pruned:
        console.print("[green]Nothing to clean[/green]")
        return

    table = Table(title=f"Removed entries ({len(report.removed)})")
    table.add_column("Path", style="cyan")
    for path in report.removed:
        table.add_row(str(path))
    console.print(table)
    if report.pruned:
        console.print(f"  Dropped {len(report.pruned)} stale ledger record(s)")
    console.print(f"[green]✓[/green] Kept {len(report.kept)} entries")


@cli.command("status")
@click.pass_context
def status(ctx):
    """Show tracked cache entries and their access times.

    Example:
        svncache status
    """
    try:
        with open_manager(ctx) as manager:
            entries = manager.status()
    except CLI_ERRORS as e:
        console.print(f"[red]✗[/red] Error: {escape(str(e))}", style="red")
        sys.exit(1)

    if not entries:
        console.print("[yellow]No cached entries[/yellow]")
        return

    table = Table(title=f"Cache entries ({len(entries)})")
    table.add_column("Path", style="cyan", no_wrap=True)
    table.add_column("Last access", style="blue")
    table.add_column("Age", justify="right", style="white")
    table.add_column("TTL", style="magenta")
    table.add_column("Expires in", justify="right", style="green")
    table.add_column("On disk", justify="center")

    for entry in entries:
        table.add_row(
            str(entry.path),
            entry.last_access_time.strftime("%Y-%m-%d %H:%M"),
            format_duration(entry.age),
            entry.ttl_class,
            format_duration(entry.expires_in),
            "[green]yes[/green]" if entry.exists else "[red]no[/red]",
        )

    console.print(table)


if __name__ == "__main__":
    cli()
