import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from classpkg.cli import common
from classpkg.cli.common import console, print_removal_report
from classpkg.core.diff import clean_up as _clean_up
from classpkg.core.diff import diff_status
from classpkg.core.installer import force_remove_class as _force_remove_class
from classpkg.errors import ClassPackageError
from classpkg.models import Action, ConflictKind, DiffStatus, RemovalReport

_STATUS_STYLES = {
    DiffStatus.NEW: "green",
    DiffStatus.REMOVED: "red",
    DiffStatus.MODIFIED: "yellow",
}


def diff(
    repo: Annotated[Path, typer.Argument(help="Repository folder containing packages.")],
) -> None:
    """Show which classes are new, removed or modified compared to the store."""
    store = common.get_store()

    async def _run() -> dict[str, DiffStatus]:
        try:
            await common.require_store(store)
            return await diff_status(repo, store)
        finally:
            await store.dispose()

    try:
        status = asyncio.run(_run())
    except ClassPackageError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    if not status:
        console.print("[green]Repository and database are in sync.[/green]")
        return
    table = Table(show_lines=False)
    table.add_column("identifier")
    table.add_column("status")
    for identifier, state in status.items():
        style = _STATUS_STYLES[state]
        table.add_row(identifier, f"[{style}]{state}[/{style}]")
    console.print(table)


def clean_up(
    repo: Annotated[Path, typer.Argument(help="Repository folder containing packages.")],
    delete_objects: Annotated[
        bool, typer.Option("--delete-objects", help="Also delete the objects of removed classes.")
    ] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Only report what would be removed.")] = False,
) -> None:
    """Uninstall classes that no package in the repository defines any more."""
    store = common.get_store()
    overrides = {ConflictKind.HAS_OBJECTS: Action.DELETE} if delete_objects else None

    async def _run() -> list[RemovalReport]:
        try:
            await common.require_store(store)
            return await _clean_up(repo, store, common.make_resolver(overrides), dry_run=dry_run)
        finally:
            await store.dispose()

    try:
        reports = asyncio.run(_run())
    except ClassPackageError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    if not reports:
        console.print("[green]Nothing to clean up.[/green]")
    for report in reports:
        print_removal_report(report)


def force_remove_class(
    identifier: Annotated[str, typer.Argument(help="Identifier of the class to remove.")],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Only report what would be removed.")] = False,
) -> None:
    """Delete a class together with all of its objects."""
    store = common.get_store()

    async def _run() -> RemovalReport:
        try:
            await common.require_store(store)
            return await _force_remove_class(store, identifier, dry_run=dry_run)
        finally:
            await store.dispose()

    try:
        report = asyncio.run(_run())
    except ClassPackageError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    print_removal_report(report)
    if not report.exists:
        raise typer.Exit(1)
