"""Database schema commands."""

import asyncio

import typer

from classpkg.cli import common
from classpkg.cli.common import console
from classpkg.db.engine import database_url
from classpkg.db.migrations import run_migrations

db_app = typer.Typer(help="Manage the class store database.")


@db_app.command("upgrade")
def upgrade() -> None:
    """Create or migrate the store tables to the latest schema."""
    url = database_url(common.settings.database_url)
    run_migrations(url)
    console.print(f"[green]Database schema is up to date[/green] ({url})")


@db_app.command("status")
def status() -> None:
    """Check that the store database is reachable."""
    store = common.get_store()

    async def _run() -> bool:
        try:
            return await store.ping()
        finally:
            await store.dispose()

    if asyncio.run(_run()):
        console.print("Database: [green]reachable[/green]")
    else:
        console.print("Database: [red]not reachable[/red]")
        raise typer.Exit(1)
