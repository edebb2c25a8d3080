"""Tests for the repository diff reporter and clean-up."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from classpkg.core.context import FixedClock
from classpkg.core.decisions import DeferringResolver, NonInteractiveResolver
from classpkg.core.diff import clean_up, diff_status, package_update_status, stale_identifiers
from classpkg.core.installer import PackageInstaller, default_registry
from classpkg.db import InMemoryClassStore
from classpkg.models import Action, ConflictKind, ContentObject, DiffStatus, PersistedClass
from tests.conftest import class_xml, write_package


async def _install(store: InMemoryClassStore, clock: FixedClock, package: Path) -> None:
    result = await PackageInstaller(default_registry(store, NonInteractiveResolver(), clock)).install(package)
    assert not result.failed


class TestDiffStatus:
    @pytest.mark.asyncio
    async def test_new_and_removed(self, repo: Path, store: InMemoryClassStore, clock: FixedClock) -> None:
        write_package(repo, "news", {"class-x": class_xml("x"), "class-y": class_xml("y")})
        await _install(store, clock, write_package(repo.parent, "old", {"class-y": class_xml("y")}))
        await store.create_class(PersistedClass(identifier="z", remote_id="remote-z"))

        status = await diff_status(repo, store)

        assert status == {"x": DiffStatus.NEW, "z": DiffStatus.REMOVED}

    @pytest.mark.asyncio
    async def test_in_sync_repository(self, repo: Path, store: InMemoryClassStore, clock: FixedClock) -> None:
        await _install(store, clock, write_package(repo, "news", {"class-x": class_xml("x")}))

        assert await diff_status(repo, store) == {}

    @pytest.mark.asyncio
    async def test_older_installed_version_is_modified(
        self, repo: Path, store: InMemoryClassStore, clock: FixedClock
    ) -> None:
        await _install(store, clock, write_package(repo.parent, "v1", {"class-x": class_xml("x", modified="100")}))
        write_package(repo, "v2", {"class-x": class_xml("x", modified="200")})

        assert await stale_identifiers(repo, store) == ["x"]
        assert await diff_status(repo, store) == {"x": DiffStatus.MODIFIED}

    @pytest.mark.asyncio
    async def test_removed_and_new_overwrite_modified(self, repo: Path, store: InMemoryClassStore) -> None:
        write_package(repo, "news", {"class-a": class_xml("a")})
        await store.create_class(PersistedClass(identifier="b", remote_id="remote-b"))
        stale = AsyncMock(return_value=["a", "b", "c"])

        with patch("classpkg.core.diff.stale_identifiers", stale):
            status = await diff_status(repo, store)

        assert status == {"a": DiffStatus.NEW, "b": DiffStatus.REMOVED, "c": DiffStatus.MODIFIED}
        assert list(status) == ["a", "b", "c"]


class TestPackageUpdateStatus:
    @pytest.mark.asyncio
    async def test_lists_stale_packages(self, repo: Path, store: InMemoryClassStore, clock: FixedClock) -> None:
        current = write_package(repo, "current", {"class-x": class_xml("x")})
        stale = write_package(repo, "stale", {"class-y": class_xml("y")})
        plain = repo / "plain"
        plain.mkdir()
        await _install(store, clock, current)

        statuses = await package_update_status([current, plain, stale], store)

        assert [(s.package, s.needs_update, s.error) for s in statuses] == [("current", False, ""), ("stale", True, "")]

    @pytest.mark.asyncio
    async def test_broken_package_does_not_stop_the_run(self, repo: Path, store: InMemoryClassStore) -> None:
        broken = write_package(repo, "a-broken", {"class-x": "<content-class>"})
        good = write_package(repo, "b-good", {"class-y": class_xml("y")})

        statuses = await package_update_status([broken, good], store)

        assert [s.package for s in statuses] == ["a-broken", "b-good"]
        assert "Not an XML document" in statuses[0].error
        assert statuses[0].needs_update is False
        assert statuses[1].needs_update is True
        assert statuses[1].error == ""


class TestCleanUp:
    @pytest.mark.asyncio
    async def test_removes_classes_without_package(self, repo: Path, store: InMemoryClassStore) -> None:
        write_package(repo, "news", {"class-x": class_xml("x")})
        await store.create_class(PersistedClass(identifier="z", remote_id="remote-z"))

        reports = await clean_up(repo, store, DeferringResolver())

        assert [(r.identifier, r.removed) for r in reports] == [("z", True)]
        assert await store.fetch_class_by_identifier("z") is None

    @pytest.mark.asyncio
    async def test_dry_run_keeps_classes(self, repo: Path, store: InMemoryClassStore) -> None:
        await store.create_class(PersistedClass(identifier="z", remote_id="remote-z"))

        reports = await clean_up(repo, store, DeferringResolver(), dry_run=True)

        assert reports[0].dry_run is True
        assert reports[0].removed is False
        assert await store.fetch_class_by_identifier("z") is not None

    @pytest.mark.asyncio
    async def test_class_with_objects_is_reported(self, repo: Path, store: InMemoryClassStore) -> None:
        z = await store.create_class(PersistedClass(identifier="z", remote_id="remote-z"))
        await store.create_object(ContentObject(class_id=z.id))

        reports = await clean_up(repo, store, DeferringResolver())

        assert reports[0].removed is False
        assert reports[0].object_count == 1
        assert reports[0].conflict is not None
        assert await store.fetch_class_by_identifier("z") is not None

    @pytest.mark.asyncio
    async def test_delete_objects_decision(self, repo: Path, store: InMemoryClassStore) -> None:
        z = await store.create_class(PersistedClass(identifier="z", remote_id="remote-z"))
        await store.create_object(ContentObject(class_id=z.id))
        resolver = NonInteractiveResolver({ConflictKind.HAS_OBJECTS: Action.DELETE})

        reports = await clean_up(repo, store, resolver)

        assert reports[0].removed is True
        assert await store.list_classes() == []
