import asyncio
import glob
from pathlib import Path
from typing import Annotated

import typer

from classpkg.cli import common
from classpkg.cli.common import console, print_package_result
from classpkg.core.context import SystemClock, locale_provider_from_env
from classpkg.core.definition import update_modified as _update_modified
from classpkg.core.diff import package_update_status
from classpkg.core.extract import TarArchiveExtractor, extract_and_transform
from classpkg.core.installer import PackageInstaller, default_registry
from classpkg.errors import ClassPackageError
from classpkg.models import Action, ConflictKind, PackageStatus


def extract(
    pattern: Annotated[str, typer.Argument(help="Path or wildcard pattern of .ezpkg files.")],
) -> None:
    """Extract binary packages next to the archive and normalise their class definitions."""
    results = extract_and_transform(pattern, TarArchiveExtractor(), SystemClock())

    if not results:
        console.print(f"[yellow]No packages match {pattern}[/yellow]")
    for result in results:
        if result.error:
            console.print(f"[red]Failed[/red] extracting {result.archive.name}: {result.error}")
            continue
        console.print(
            f"[green]Extracted[/green] {result.archive.name} into {result.package_path} "
            f"({len(result.transformed)} class definition(s))"
        )
    if any(result.error for result in results):
        raise typer.Exit(1)


def install(
    pattern: Annotated[str, typer.Argument(help="Path or wildcard pattern of package folders.")],
    ignore_version: Annotated[
        bool, typer.Option("--ignore-version", help="Install every class, whatever its modified date.")
    ] = False,
) -> None:
    """Install packages, skipping classes whose installed version is as new."""
    store = common.get_store()

    async def _run() -> bool:
        try:
            await common.require_store(store)
            installer = PackageInstaller(default_registry(store, common.make_resolver()))
            results = await installer.install_packages(pattern, check_version=not ignore_version)
        finally:
            await store.dispose()
        for result in results:
            print_package_result(result, "installing")
        return any(result.failed for result in results)

    if asyncio.run(_run()):
        raise typer.Exit(1)


def uninstall(
    pattern: Annotated[str, typer.Argument(help="Path or wildcard pattern of package folders.")],
    delete_objects: Annotated[
        bool, typer.Option("--delete-objects", help="Also delete the objects of classes that have any.")
    ] = False,
) -> None:
    """Uninstall packages. Classes that still have objects are kept unless told otherwise."""
    store = common.get_store()
    overrides = {ConflictKind.HAS_OBJECTS: Action.DELETE} if delete_objects else None

    async def _run() -> bool:
        try:
            await common.require_store(store)
            installer = PackageInstaller(default_registry(store, common.make_resolver(overrides)))
            results = await installer.uninstall_packages(pattern)
        finally:
            await store.dispose()
        for result in results:
            print_package_result(result, "uninstalling")
        return any(result.failed for result in results)

    if asyncio.run(_run()):
        raise typer.Exit(1)


def update_modified(
    file: Annotated[Path, typer.Argument(help="Class definition file (not a package).")],
    timestamp: Annotated[int | None, typer.Option(help="Unix timestamp to use instead of now.")] = None,
    locale: Annotated[str | None, typer.Option(help="Current locale, e.g. eng-GB.")] = None,
    locales: Annotated[str | None, typer.Option(help="Comma separated list of locales to fill in.")] = None,
) -> None:
    """Set the modified date of a class definition and tidy the file."""
    if not file.is_file():
        console.print(f"[red]Failed.[/red] {file} does not exist")
        raise typer.Exit(1)
    try:
        definition = _update_modified(file, SystemClock(), timestamp, locale_provider_from_env(locale, locales))
    except ClassPackageError as exc:
        console.print(f"[red]Failed.[/red] {exc}")
        raise typer.Exit(1) from exc
    console.print(f"[green]Updated[/green] {definition.identifier}: modified {definition.modified}")


def update_status(
    pattern: Annotated[str, typer.Argument(help="Path or wildcard pattern of package folders.")],
) -> None:
    """List the packages that need to be installed again."""
    store = common.get_store()

    async def _run() -> list[PackageStatus]:
        try:
            await common.require_store(store)
            return await package_update_status(sorted(glob.glob(pattern)), store)
        finally:
            await store.dispose()

    statuses = asyncio.run(_run())
    failed = [status for status in statuses if status.error]
    names = [status.package for status in statuses if status.needs_update]
    for status in failed:
        console.print(f"[red]Failed[/red] checking package {status.package}: {status.error}")
    if names:
        console.print(f"Packages modified: {len(names)}")
        for name in names:
            console.print(name)
    elif not failed:
        console.print("[green]Packages are up to date.[/green]")
    if failed:
        raise typer.Exit(1)
