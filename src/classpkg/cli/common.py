"""Shared state and helpers for the CLI command modules."""

import logging
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.logging import RichHandler

from classpkg.core.decisions import NonInteractiveResolver
from classpkg.core.ports.decisions import DecisionResolver
from classpkg.core.ports.store import ClassStore
from classpkg.models import Action, ConflictKind, InstallOutcome, PackageResult, RemovalReport

console = Console()

_OUTCOME_STYLES = {
    InstallOutcome.INSTALLED: "green",
    InstallOutcome.REMOVED: "green",
    InstallOutcome.SKIPPED: "yellow",
    InstallOutcome.FAILED: "red",
}


@dataclass
class Settings:
    verbose: bool = False
    interactive: bool = False
    database_url: str | None = None


settings = Settings()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def get_store() -> ClassStore:
    from classpkg.db.engine import get_engine
    from classpkg.db.sql import SqlClassStore

    return SqlClassStore(get_engine(settings.database_url))


def make_resolver(overrides: dict[ConflictKind, Action] | None = None) -> DecisionResolver:
    if settings.interactive:
        from classpkg.cli.prompt import PromptResolver

        return PromptResolver(console)
    return NonInteractiveResolver(overrides)


async def require_store(store: ClassStore) -> None:
    """Stop with exit code 1 when the store cannot be reached."""
    if not await store.ping():
        console.print("[red]Database is empty or not reachable, run `classpkg db upgrade` first.[/red]")
        raise typer.Exit(1)


def print_package_result(result: PackageResult, verb: str) -> None:
    if result.error:
        console.print(f"[red]Failed[/red] {verb} package {result.package}: {result.error}")
        return
    for item in result.items:
        style = _OUTCOME_STYLES[item.outcome]
        label = item.identifier or item.item.filename or item.item.type
        line = f"  [{style}]{item.outcome}[/{style}] {label}"
        if item.reason:
            line += f" ({item.reason})"
        console.print(line)
    if result.failed:
        console.print(f"[red]Failed[/red] {verb} package {result.package}")
    elif result.skipped:
        console.print(f"[yellow]Skipped[/yellow] package {result.package}")
    else:
        console.print(f"[green]Done[/green] {verb} package {result.package}")


def print_removal_report(report: RemovalReport) -> None:
    if not report.exists:
        console.print(f"[yellow]Class {report.identifier} does not exist.[/yellow]")
    elif report.removed:
        console.print(f"[green]Removed[/green] class {report.identifier} and {report.object_count} object(s)")
    elif report.dry_run and report.conflict is None:
        console.print(f"Would remove class {report.identifier} and {report.object_count} object(s)")
    else:
        console.print(
            f"[yellow]Kept[/yellow] class {report.identifier}: {report.object_count} object(s) still use it"
        )
