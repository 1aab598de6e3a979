"""
Commands that inspect or edit an existing repository index.
"""

import sys
from typing import Tuple

import click

from ..exit_codes import CommandError, PackageNotFoundError
from ..output import emit, emit_error, emit_record
from ..services import RepositoryIndex


def _open_index(index_path: str) -> RepositoryIndex:
    """Open an index without touching its title or download path."""
    try:
        return RepositoryIndex.open(index_path)
    except CommandError as e:
        emit_error(str(e), type=type(e).__name__, context={'index_path': index_path})
        sys.exit(e.exit_code)


index_argument = click.argument('index_path', type=click.Path(exists=True, dir_okay=False))


@click.command('list')
@index_argument
@click.option('--category', help='Only list packages in this category')
@click.option('--pretty', is_flag=True, help='Display as formatted table')
def list_handler(index_path: str, category: str, pretty: bool):
    """
    List the packages in a repository index.

    \b
    Examples:
        ommrepo list repository.xml
        ommrepo list repository.xml --pretty
        ommrepo list repository.xml | jq -r .identifier
    """
    index = _open_index(index_path)
    entries = index.all_entries()
    if category:
        entries = [entry for entry in entries if entry.category == category]
    emit(entries, pretty=pretty, title=index.title or None)


@click.command('info')
@index_argument
@click.option('--pretty', is_flag=True, help='Display as formatted table')
def info_handler(index_path: str, pretty: bool):
    """Show the UUID, title, download path and package count of an index."""
    index = _open_index(index_path)
    emit_record(index, pretty=pretty, title="Repository")


@click.command('show')
@index_argument
@click.argument('identifier')
@click.option('--pretty', is_flag=True, help='Display as formatted table')
def show_handler(index_path: str, identifier: str, pretty: bool):
    """Show one package, including its decoded description."""
    index = _open_index(index_path)
    try:
        details = index.package_details(identifier)
        if details is None:
            raise PackageNotFoundError(identifier)
    except CommandError as e:
        emit_error(str(e), type=type(e).__name__, context={'identifier': identifier})
        sys.exit(e.exit_code)

    emit_record(details, pretty=pretty, title=identifier)


@click.command('remove')
@index_argument
@click.argument('identifiers', nargs=-1, required=True)
@click.option('--dry-run', is_flag=True, help='Show what would be removed')
def remove_handler(index_path: str, identifiers: Tuple[str, ...], dry_run: bool):
    """
    Remove packages from an index by identifier.

    Unknown identifiers are reported and otherwise ignored. The index is
    only written if something was removed.
    """
    index = _open_index(index_path)

    results = []
    for identifier in identifiers:
        if dry_run:
            removed = index.contains_package(identifier)
        else:
            removed = index.remove_package(identifier)
        results.append({'identifier': identifier, 'removed': removed, 'dry_run': dry_run})

    if not dry_run and any(result['removed'] for result in results):
        try:
            index.flush()
        except CommandError as e:
            emit_error(str(e), type=type(e).__name__, context={'index_path': index_path})
            sys.exit(e.exit_code)

    emit(results)
