"""Install and uninstall folder-based packages.

A package's manifest lists items by kind. Each kind has a handler, looked up
in an explicit ``HandlerRegistry``; the content-class handler does the real
work through the merge engine. Items are processed one at a time and a
failing or skipped item never stops the rest of the package.
"""

import glob
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Protocol

from classpkg.core.context import SystemClock
from classpkg.core.decisions import DeferringResolver
from classpkg.core.definition import parse
from classpkg.core.manifest import is_package, load_manifest, resolve_item_path
from classpkg.core.merge import merge_class
from classpkg.core.ports.clock import Clock
from classpkg.core.ports.decisions import DecisionResolver
from classpkg.core.ports.store import ClassStore
from classpkg.core.version import is_definition_current
from classpkg.errors import ClassPackageError, DependencyError, NotFoundError, ParseError
from classpkg.models import (
    Action,
    ConflictKind,
    ConflictRequest,
    InstallItem,
    InstallOutcome,
    ItemKind,
    ItemResult,
    PackageManifest,
    PackageResult,
    PersistedClass,
    RemovalReport,
)

logger = logging.getLogger(__name__)


class ItemHandler(Protocol):
    async def install_item(self, manifest: PackageManifest, item: InstallItem, check_version: bool) -> ItemResult: ...

    async def uninstall_item(self, manifest: PackageManifest, item: InstallItem) -> ItemResult: ...

    async def is_version_current(self, manifest: PackageManifest, item: InstallItem) -> bool: ...


class HandlerRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, ItemHandler] = {}

    def register(self, kind: ItemKind | str, handler: ItemHandler) -> None:
        self._handlers[str(kind)] = handler

    def get(self, kind: str) -> ItemHandler | None:
        return self._handlers.get(kind)

    def kinds(self) -> list[str]:
        return sorted(self._handlers)


# ---------------------------------------------------------------------------
# Class removal
# ---------------------------------------------------------------------------


async def force_remove_class(store: ClassStore, identifier: str, dry_run: bool = False) -> RemovalReport:
    """Delete every object of the class and then the class itself.

    The removability check is bypassed. With *dry_run* nothing is changed and
    the report only tells what would be deleted.
    """
    persisted = await store.fetch_class_by_identifier(identifier)
    if persisted is None:
        logger.info("Class %s does not exist", identifier)
        return RemovalReport(identifier=identifier, exists=False, dry_run=dry_run)

    objects = await store.fetch_objects(persisted.id)
    if dry_run:
        return RemovalReport(identifier=identifier, exists=True, object_count=len(objects), dry_run=True)

    async with store.transaction():
        for content_object in objects:
            await store.delete_object(content_object.id)
        await store.delete_class(persisted.id)
    logger.info("Removed class %s and %d object(s)", identifier, len(objects))
    return RemovalReport(identifier=identifier, exists=True, object_count=len(objects), removed=True)


def _has_objects_request(persisted: PersistedClass, object_count: int) -> ConflictRequest:
    return ConflictRequest(
        kind=ConflictKind.HAS_OBJECTS,
        element_id=persisted.remote_id,
        description=(
            f"Removing class '{persisted.identifier}' will result in the removal of {object_count} "
            "object(s) of this class and all their sub-items."
        ),
        actions={Action.DELETE: "Uninstall class and object(s)", Action.SKIP: "Skip"},
        object_count=object_count,
    )


async def remove_class(
    store: ClassStore,
    persisted: PersistedClass,
    resolver: DecisionResolver,
    dry_run: bool = False,
) -> RemovalReport:
    """Remove a class that has no objects; ask *resolver* when it does.

    Raises ``DependencyError`` when objects exist and no decision was made.
    """
    object_count = await store.count_objects(persisted.id)
    if object_count:
        request = _has_objects_request(persisted, object_count)
        action = resolver.resolve(request)
        if action is None:
            raise DependencyError(request)
        if action == Action.SKIP:
            return RemovalReport(
                identifier=persisted.identifier,
                exists=True,
                object_count=object_count,
                dry_run=dry_run,
                conflict=request,
            )
        return await force_remove_class(store, persisted.identifier, dry_run=dry_run)

    if dry_run:
        return RemovalReport(identifier=persisted.identifier, exists=True, dry_run=True)

    async with store.transaction():
        await store.delete_class(persisted.id)
    logger.info("Removed class %s", persisted.identifier)
    return RemovalReport(identifier=persisted.identifier, exists=True, removed=True)


# ---------------------------------------------------------------------------
# Content classes
# ---------------------------------------------------------------------------


class ContentClassHandler:
    def __init__(self, store: ClassStore, resolver: DecisionResolver, clock: Clock | None = None) -> None:
        self.store = store
        self.resolver = resolver
        self.clock = clock or SystemClock()

    def _definition_path(self, manifest: PackageManifest, item: InstallItem) -> Path:
        path = resolve_item_path(manifest, item)
        if path is None or not path.is_file():
            raise NotFoundError(f"Class definition for item {item.filename!r} not found in {manifest.name}")
        return path

    async def is_version_current(self, manifest: PackageManifest, item: InstallItem) -> bool:
        definition = parse(self._definition_path(manifest, item))
        return await is_definition_current(self.store, definition)

    async def install_item(self, manifest: PackageManifest, item: InstallItem, check_version: bool) -> ItemResult:
        try:
            definition = parse(self._definition_path(manifest, item))
        except (NotFoundError, ParseError) as exc:
            logger.warning("Failed reading %s: %s", item.filename, exc)
            return ItemResult(item=item, outcome=InstallOutcome.FAILED, reason=str(exc))

        if check_version and await is_definition_current(self.store, definition):
            logger.info("Class %s is up to date, skipped", definition.identifier)
            return ItemResult(
                item=item,
                outcome=InstallOutcome.SKIPPED,
                identifier=definition.identifier,
                reason="installed version is current",
            )

        outcome = await merge_class(self.store, definition, self.resolver, self.clock)
        if outcome.conflict is not None:
            return ItemResult(
                item=item,
                outcome=InstallOutcome.FAILED,
                identifier=definition.identifier,
                reason=outcome.conflict.description,
                conflict=outcome.conflict,
            )
        if outcome.class_id is None:
            return ItemResult(
                item=item,
                outcome=InstallOutcome.SKIPPED,
                identifier=definition.identifier,
                reason="skipped by decision",
            )
        return ItemResult(
            item=item,
            outcome=InstallOutcome.INSTALLED,
            identifier=definition.identifier,
            class_id=outcome.class_id,
        )

    async def uninstall_item(self, manifest: PackageManifest, item: InstallItem) -> ItemResult:
        try:
            definition = parse(self._definition_path(manifest, item))
        except (NotFoundError, ParseError) as exc:
            return ItemResult(item=item, outcome=InstallOutcome.FAILED, reason=str(exc))

        persisted = await self.store.fetch_class_by_remote_id(definition.remote_id)
        if persisted is None:
            logger.info("Class having remote id %r not found", definition.remote_id)
            return ItemResult(
                item=item,
                outcome=InstallOutcome.SKIPPED,
                identifier=definition.identifier,
                reason="not installed",
            )

        try:
            report = await remove_class(self.store, persisted, self.resolver)
        except DependencyError as exc:
            return ItemResult(
                item=item,
                outcome=InstallOutcome.FAILED,
                identifier=persisted.identifier,
                class_id=persisted.id,
                reason=str(exc),
                conflict=exc.request,
            )
        if not report.removed:
            return ItemResult(
                item=item,
                outcome=InstallOutcome.SKIPPED,
                identifier=persisted.identifier,
                class_id=persisted.id,
                reason="class has objects",
                conflict=report.conflict,
            )
        return ItemResult(
            item=item,
            outcome=InstallOutcome.REMOVED,
            identifier=persisted.identifier,
            class_id=persisted.id,
        )


def default_registry(store: ClassStore, resolver: DecisionResolver, clock: Clock | None = None) -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register(ItemKind.CONTENT_CLASS, ContentClassHandler(store, resolver, clock))
    return registry


async def package_needs_update(package_path: str | Path, store: ClassStore) -> bool:
    """True when any class of the package is newer on disk than in the store."""
    return await PackageInstaller(default_registry(store, DeferringResolver())).needs_update(package_path)


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------


def _no_handler(item: InstallItem) -> ItemResult:
    return ItemResult(item=item, outcome=InstallOutcome.SKIPPED, reason=f"no handler for item type {item.type!r}")


class PackageInstaller:
    def __init__(self, registry: HandlerRegistry) -> None:
        self.registry = registry

    async def install(self, package_path: str | Path, check_version: bool = True) -> PackageResult:
        """Install every item of a package.

        With *check_version*, classes whose installed version is as new as the
        file are skipped. Store errors propagate.
        """
        manifest = load_manifest(package_path)
        logger.info("Installing package %s from %s", manifest.name, manifest.path)
        result = PackageResult(package=manifest.name)
        for item in manifest.install_items:
            handler = self.registry.get(item.type)
            if handler is None:
                result.items.append(_no_handler(item))
                continue
            result.items.append(await handler.install_item(manifest, item, check_version))
        return result

    async def uninstall(self, package_path: str | Path) -> PackageResult:
        manifest = load_manifest(package_path)
        logger.info("Uninstalling package %s from %s", manifest.name, manifest.path)
        result = PackageResult(package=manifest.name)
        for item in manifest.uninstall_items:
            handler = self.registry.get(item.type)
            if handler is None:
                result.items.append(_no_handler(item))
                continue
            result.items.append(await handler.uninstall_item(manifest, item))
        return result

    async def needs_update(self, package_path: str | Path) -> bool:
        """True as soon as one item's installed version is older than its file."""
        manifest = load_manifest(package_path)
        for item in manifest.install_items:
            handler = self.registry.get(item.type)
            path = resolve_item_path(manifest, item)
            if handler is None or path is None or not path.is_file():
                continue
            if not await handler.is_version_current(manifest, item):
                return True
        return False

    async def install_packages(self, pattern: str, check_version: bool = True) -> list[PackageResult]:
        return await self._each_package(pattern, lambda path: self.install(path, check_version))

    async def uninstall_packages(self, pattern: str) -> list[PackageResult]:
        return await self._each_package(pattern, self.uninstall)

    async def _each_package(
        self, pattern: str, action: Callable[[str], Awaitable[PackageResult]]
    ) -> list[PackageResult]:
        results: list[PackageResult] = []
        for path in sorted(glob.glob(pattern)):
            if not is_package(path):
                logger.info("The provided path %s is not a package", path)
                continue
            try:
                results.append(await action(path))
            except ClassPackageError as exc:
                logger.error("Package %s failed: %s", Path(path).name, exc)
                results.append(PackageResult(package=Path(path).name, error=str(exc)))
        return results
