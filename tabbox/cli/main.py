#!/usr/bin/env python3
"""
Command-line interface for tabbox.

Inspects and edits the persisted StorageDocument directly, without a live
session. These commands bypass the engine's queue: do not point them at a
document a running engine is writing.
"""

from __future__ import annotations

import asyncio
import traceback
from collections.abc import Awaitable, Callable

import typer

from tabbox.cli.logger import CLILogger
from tabbox.config import build_store, configure_logging, settings
from tabbox.exceptions import TabBoxError
from tabbox.schemas.records import GroupRecord, StorageDocument, TabRecord, WindowRecord
from tabbox.services.gateway import StorageGateway
from tabbox.services.records import RecordCommands

app = typer.Typer(
    name='tabbox',
    help='Inspect and edit stored browser windows, tab groups and tabs',
    add_completion=False,
)


def _records(verbose: bool) -> RecordCommands:
    gateway = StorageGateway(build_store(settings), settings.STORAGE_KEY)
    return RecordCommands(gateway, CLILogger(verbose=verbose))


async def _run(action: str, verbose: bool, body: Callable[[RecordCommands], Awaitable[None]]) -> None:
    """Run one command body against the stored document, turning domain errors into a clean exit."""
    logger = CLILogger(verbose=verbose)
    if verbose:
        configure_logging(settings.LOG_LEVEL)
    try:
        await body(_records(verbose))
    except TabBoxError as e:
        typer.secho(f'Error: {e}', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except Exception as e:
        await logger.error(f'Failed to {action}: {e}')
        if verbose:
            traceback.print_exc()
        raise typer.Exit(1)


# ==============================================================================
# Read-only commands
# ==============================================================================


def _state(closed: bool) -> str:
    return 'closed' if closed else 'open'


def _print_tab(tab: TabRecord) -> None:
    marker = '-' if tab.closed else '*'
    title = tab.title or tab.url
    line = f'      {marker} {title}'
    if tab.url and tab.url != title:
        line += f'  <{tab.url}>'
    typer.secho(line, dim=tab.closed)


def _print_group(key: str, group: GroupRecord, include_closed: bool) -> None:
    color = f' ({group.color})' if group.color else ''
    typer.secho(f'  Group {key}: {group.title or "(untitled)"}{color} [{_state(group.closed)}]', bold=not group.closed)
    for tab in group.tabs:
        if include_closed or not tab.closed:
            _print_tab(tab)


def _print_window(key: str, window: WindowRecord, include_closed: bool) -> None:
    name = f' "{window.name}"' if window.name else ''
    typer.secho(f'Window {key}{name} [{_state(window.closed)}]', fg=typer.colors.CYAN)
    for group_key, group in sorted(window.groups.items(), key=lambda item: item[1].position):
        if include_closed or not group.closed:
            _print_group(group_key, group, include_closed)


def _print_document(document: StorageDocument, include_closed: bool) -> None:
    shown = {k: w for k, w in document.windows.items() if include_closed or not w.closed}
    if not shown:
        typer.echo('No stored windows.')
        return
    for key, window in shown.items():
        _print_window(key, window, include_closed)


@app.command()
def show(
    closed: bool = typer.Option(True, '--closed/--open-only', help='Include closed windows, groups and tabs'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Print the stored window/group/tab tree."""
    asyncio.run(_run('read storage', verbose, lambda records: _show_async(records, closed)))


async def _show_async(records: RecordCommands, include_closed: bool) -> None:
    document = await records.get_document()
    await records.user_logger.info(f'Storage key: {records.gateway.key}')
    _print_document(document, include_closed)


@app.command()
def export(
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Print the stored document as JSON."""
    asyncio.run(_run('export storage', verbose, _export_async))


async def _export_async(records: RecordCommands) -> None:
    document = await records.get_document()
    typer.echo(document.model_dump_json(indent=2))


# ==============================================================================
# Record edits
# ==============================================================================


@app.command('rename-window')
def rename_window(
    window_key: str = typer.Argument(..., help='Window key'),
    name: str = typer.Argument(..., help='New name (empty string clears it)'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Set or clear a window's name."""

    async def edit(records: RecordCommands) -> None:
        await records.set_window_name(window_key, name)
        typer.secho(f'✓ Window {window_key} renamed', fg=typer.colors.GREEN)

    asyncio.run(_run('rename window', verbose, edit))


@app.command('delete-window')
def delete_window(
    window_key: str = typer.Argument(..., help='Window key'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Permanently delete a window with all its groups and tabs."""

    async def edit(records: RecordCommands) -> None:
        await records.delete_window(window_key)
        typer.secho(f'✓ Window {window_key} deleted', fg=typer.colors.GREEN)

    asyncio.run(_run('delete window', verbose, edit))


@app.command('delete-group')
def delete_group(
    window_key: str = typer.Argument(..., help='Window key'),
    group_key: str = typer.Argument(..., help='Group key'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Permanently delete a group."""

    async def edit(records: RecordCommands) -> None:
        await records.delete_group(window_key, group_key)
        typer.secho(f'✓ Group {group_key} deleted', fg=typer.colors.GREEN)

    asyncio.run(_run('delete group', verbose, edit))


@app.command('delete-tab')
def delete_tab(
    window_key: str = typer.Argument(..., help='Window key'),
    group_key: str = typer.Argument(..., help='Group key'),
    tab_id: int | None = typer.Option(None, '--tab-id', help='Live id of an open tab record'),
    url: str | None = typer.Option(None, '--url', help='URL of a tab record without a live id'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Permanently delete one tab record, by live id or (records without one) by URL."""
    if (tab_id is None) == (url is None):
        raise typer.BadParameter('Pass exactly one of --tab-id or --url')

    async def edit(records: RecordCommands) -> None:
        removed = await records.delete_tab(window_key, group_key, tab_id=tab_id, url=url)
        typer.secho(f'✓ Tab deleted: {removed.url}', fg=typer.colors.GREEN)

    asyncio.run(_run('delete tab', verbose, edit))


@app.command('delete-closed-tabs')
def delete_closed_tabs(
    window_key: str = typer.Argument(..., help='Window key'),
    group_key: str = typer.Argument(..., help='Group key'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Drop a group's closed-tab history."""

    async def edit(records: RecordCommands) -> None:
        removed = await records.delete_closed_tabs(window_key, group_key)
        typer.secho(f'✓ {removed} closed tabs deleted', fg=typer.colors.GREEN)

    asyncio.run(_run('delete closed tabs', verbose, edit))


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == '__main__':
    main()
