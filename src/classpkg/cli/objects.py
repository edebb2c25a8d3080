import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated

import typer

from classpkg.cli import common
from classpkg.cli.common import console
from classpkg.core.objects import change_node_class, change_object_class
from classpkg.core.ports.store import ClassStore
from classpkg.errors import ClassPackageError
from classpkg.models import ContentObject


def _report(change: Callable[[ClassStore], Awaitable[ContentObject]]) -> None:
    store = common.get_store()

    async def _run() -> ContentObject:
        try:
            await common.require_store(store)
            return await change(store)
        finally:
            await store.dispose()

    try:
        content_object = asyncio.run(_run())
    except ClassPackageError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    console.print(f"[green]Changed[/green] object {content_object.id} ({content_object.name})")


def change_object(
    object_id: Annotated[int, typer.Argument(help="Id of the content object.")],
    identifier: Annotated[str, typer.Option("--identifier", help="Identifier of the new class.")],
) -> None:
    """Make an object an instance of another class."""
    _report(lambda store: change_object_class(store, object_id, identifier))


def change_node(
    node: Annotated[str, typer.Argument(help="Node id or URL alias.")],
    identifier: Annotated[str, typer.Option("--identifier", help="Identifier of the new class.")],
) -> None:
    """Make the object of a node an instance of another class."""
    _report(lambda store: change_node_class(store, node, identifier))
