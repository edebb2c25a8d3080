"""Compare a package repository with the classes installed in a store."""

import logging
from pathlib import Path

from classpkg.core.definition import parse
from classpkg.core.installer import package_needs_update, remove_class
from classpkg.core.manifest import is_package
from classpkg.core.ports.decisions import DecisionResolver
from classpkg.core.ports.store import ClassStore
from classpkg.core.repository import list_available_class_identifiers, list_packages, package_class_definition_files
from classpkg.core.version import is_definition_current
from classpkg.errors import ClassPackageError, DependencyError
from classpkg.models import DiffStatus, PackageStatus, RemovalReport

logger = logging.getLogger(__name__)


async def stale_identifiers(repo_root: str | Path, store: ClassStore) -> list[str]:
    """Identifiers of classes in packages that need an update and are older in the store."""
    result: list[str] = []
    for package_path in list_packages(repo_root):
        if not is_package(package_path):
            continue
        if not await package_needs_update(package_path, store):
            continue
        for file_path in package_class_definition_files(package_path):
            definition = parse(file_path)
            if not await is_definition_current(store, definition):
                result.append(definition.identifier)
    return result


async def diff_status(repo_root: str | Path, store: ClassStore) -> dict[str, DiffStatus]:
    """Classify class identifiers as new, removed or modified.

    "removed" and "new" overwrite a "modified" mark for the same identifier.
    Keys come back sorted.
    """
    status: dict[str, DiffStatus] = {}
    for identifier in await stale_identifiers(repo_root, store):
        status[identifier] = DiffStatus.MODIFIED

    repo_ids = set(list_available_class_identifiers(repo_root))
    installed_ids = {persisted.identifier for persisted in await store.list_classes()}

    for identifier in installed_ids - repo_ids:
        status[identifier] = DiffStatus.REMOVED
    for identifier in repo_ids - installed_ids:
        status[identifier] = DiffStatus.NEW

    return dict(sorted(status.items()))


async def package_update_status(package_paths: list[str] | list[Path], store: ClassStore) -> list[PackageStatus]:
    """Update status of every package; a package that cannot be read carries its error."""
    statuses: list[PackageStatus] = []
    for package_path in package_paths:
        if not is_package(package_path):
            logger.info("The provided path %s is not a package", package_path)
            continue
        name = Path(package_path).name
        try:
            needs_update = await package_needs_update(package_path, store)
        except ClassPackageError as exc:
            logger.warning("Package %s failed: %s", name, exc)
            statuses.append(PackageStatus(package=name, error=str(exc)))
            continue
        statuses.append(PackageStatus(package=name, needs_update=needs_update))
    return statuses


async def clean_up(
    repo_root: str | Path,
    store: ClassStore,
    resolver: DecisionResolver,
    dry_run: bool = False,
) -> list[RemovalReport]:
    """Uninstall every installed class that no package defines any more."""
    reports: list[RemovalReport] = []
    status = await diff_status(repo_root, store)
    for identifier, state in status.items():
        if state != DiffStatus.REMOVED:
            continue
        persisted = await store.fetch_class_by_identifier(identifier)
        if persisted is None:
            continue
        try:
            reports.append(await remove_class(store, persisted, resolver, dry_run=dry_run))
        except DependencyError as exc:
            logger.warning("Class %s not removed: %s", identifier, exc)
            reports.append(
                RemovalReport(
                    identifier=identifier,
                    exists=True,
                    object_count=exc.object_count,
                    dry_run=dry_run,
                    conflict=exc.request,
                )
            )
    return reports
