"""
Generate command for ommrepo.

Creates or updates a repository index from a folder of package archives.
This is the primary way to keep an index in step with the files on disk.
"""

import json
import os
import sys

import click

from ..config import load_config
from ..exit_codes import CommandError, PartialSuccessError, get_exit_code_for_exception
from ..output import emit_error
from ..services import (
    DescriptorBuilder,
    FolderRepositoryService,
    SyncEvent,
    SyncOutcome,
    SyncStats,
    generate_folder_repository,
)


@click.command('generate')
@click.argument('index_path', type=click.Path(dir_okay=False))
@click.argument('title')
@click.argument('root_path', type=click.Path())
@click.option('--recursive', '-r', is_flag=True, help='Also index archives in sub directories')
@click.option('--rebuild', is_flag=True, help='Drop every entry and re-index from scratch')
@click.option('--strict', is_flag=True, help='Exit non-zero if any archive was skipped as invalid')
@click.option('--quiet', '-q', is_flag=True, help='Minimal output')
@click.option('--pretty', is_flag=True, help='Pretty output with progress')
def generate_handler(
    index_path: str,
    title: str,
    root_path: str,
    recursive: bool,
    rebuild: bool,
    strict: bool,
    quiet: bool,
    pretty: bool,
):
    """
    Create or update a repository index for a folder of packages.

    Entries whose archive was deleted are pruned, new archives are
    added and changed ones are re-described. An archive already indexed
    with the same size is skipped without hashing.

    \b
    Examples:
        # Index the archives directly in /srv/mods
        ommrepo generate repository.xml "My Mods" /srv/mods
        # Include sub directories
        ommrepo generate repository.xml "My Mods" /srv/mods --recursive
        # Throw away existing entries and re-hash everything
        ommrepo generate repository.xml "My Mods" /srv/mods --rebuild
    """
    config = load_config()
    service = FolderRepositoryService(builder=DescriptorBuilder(config=config), config=config)

    def report(event: SyncEvent) -> None:
        if quiet:
            return
        click.echo(event.message, err=event.outcome is SyncOutcome.FAILED)

    try:
        if pretty:
            stats = _generate_with_progress(
                service, index_path, title, root_path, recursive, rebuild
            )
        else:
            stats = generate_folder_repository(
                index_path, title, root_path,
                recursive=recursive,
                rebuild=rebuild,
                service=service,
                report=report,
            )
    except (CommandError, KeyboardInterrupt) as e:
        emit_error(str(e) or "Interrupted", type=type(e).__name__, context={'index_path': index_path})
        sys.exit(get_exit_code_for_exception(e))

    if quiet:
        pass
    elif pretty:
        _print_summary_pretty(stats, index_path)
    else:
        print(json.dumps(stats.to_dict()))

    if strict and stats.errors:
        error = PartialSuccessError(
            f"{stats.errors} archive(s) could not be indexed",
            succeeded=stats.added + stats.replaced,
            failed=stats.errors,
        )
        emit_error(str(error), type="partial_success", context={'failures': stats.failures})
        sys.exit(error.exit_code)


def _generate_with_progress(service, index_path, title, root_path, recursive, rebuild) -> SyncStats:
    """Run generate_folder_repository under a rich progress bar."""
    from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn

    if not os.path.isdir(root_path):
        # Let generate_folder_repository raise the usual error
        return generate_folder_repository(index_path, title, root_path, service=service)

    archives = service.discover_archives(root_path, recursive)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
    ) as progress:
        task = progress.add_task("Indexing packages...", total=len(archives))

        def advance(event: SyncEvent) -> None:
            if event.outcome is not SyncOutcome.REMOVED:
                progress.update(task, advance=1)
            if event.outcome is SyncOutcome.FAILED:
                progress.console.print(f"[yellow]{event.message}[/yellow]")

        return generate_folder_repository(
            index_path, title, root_path,
            recursive=recursive,
            rebuild=rebuild,
            service=service,
            archives=archives,
            report=advance,
        )


def _format_bytes(size: int) -> str:
    """Format byte size as human readable string."""
    sz: float = float(size)
    for unit in ['B', 'KB', 'MB', 'GB']:
        if sz < 1024:
            return f"{sz:.1f} {unit}"
        sz /= 1024
    return f"{sz:.1f} TB"


def _print_summary_pretty(stats: SyncStats, index_path: str):
    """Print a pretty summary of the run."""
    from rich.console import Console
    from rich.table import Table

    console = Console()

    table = Table(title="Repository Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Archives scanned", str(stats.scanned))
    table.add_row("Packages added", str(stats.added))
    table.add_row("Packages updated", str(stats.replaced))
    table.add_row("Packages skipped", str(stats.skipped))
    table.add_row("Packages removed", str(stats.removed))
    table.add_row("Invalid archives", str(stats.errors))
    table.add_row("Total in index", str(stats.total))
    if os.path.exists(index_path):
        table.add_row("Index size", _format_bytes(os.path.getsize(index_path)))

    console.print(table)

    for failure in stats.failures:
        console.print(f"[red]{failure['path']}[/red]: {failure['error']}")
