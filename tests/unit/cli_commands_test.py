"""CLI commands driven end to end against the in-memory store."""

from __future__ import annotations

import asyncio
import tarfile
from collections.abc import Iterator
from io import StringIO
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console
from typer.testing import CliRunner

from classpkg.cli.app import app
from classpkg.cli.prompt import PromptResolver
from classpkg.core.definition import parse
from classpkg.db import InMemoryClassStore
from classpkg.models import Action, ConflictKind, ConflictRequest, ContentObject, PersistedClass
from tests.conftest import class_xml, write_package

runner = CliRunner()


@pytest.fixture
def cli_store(store: InMemoryClassStore) -> Iterator[InMemoryClassStore]:
    with patch("classpkg.cli.common.get_store", return_value=store):
        yield store


class TestInstall:
    def test_install_then_diff_in_sync(self, repo: Path, cli_store: InMemoryClassStore) -> None:
        write_package(repo, "news", {"class-article": class_xml("article")})

        result = runner.invoke(app, ["install", str(repo / "*")])

        assert result.exit_code == 0, result.output
        assert "article" in result.output
        assert asyncio.run(cli_store.fetch_class_by_identifier("article")) is not None

        result = runner.invoke(app, ["diff", str(repo)])
        assert result.exit_code == 0
        assert "in sync" in result.output

    def test_failing_item_exits_nonzero(self, repo: Path, cli_store: InMemoryClassStore) -> None:
        write_package(repo, "news", {"class-broken": "<content-class>"})

        result = runner.invoke(app, ["install", str(repo / "news")])

        assert result.exit_code == 1
        assert "Failed" in result.output

    def test_unreachable_store(self, repo: Path, cli_store: InMemoryClassStore) -> None:
        write_package(repo, "news", {"class-article": class_xml("article")})

        with patch.object(cli_store, "ping", return_value=False):
            result = runner.invoke(app, ["install", str(repo / "news")])

        assert result.exit_code == 1
        assert "classpkg db upgrade" in result.output


class TestUninstall:
    def test_delete_objects_flag(self, repo: Path, cli_store: InMemoryClassStore) -> None:
        package = write_package(repo, "news", {"class-article": class_xml("article")})
        assert runner.invoke(app, ["install", str(package)]).exit_code == 0
        article = asyncio.run(cli_store.fetch_class_by_identifier("article"))
        assert article is not None
        asyncio.run(cli_store.create_object(ContentObject(class_id=article.id)))

        kept = runner.invoke(app, ["uninstall", str(package)])
        assert kept.exit_code == 0
        assert asyncio.run(cli_store.fetch_class_by_identifier("article")) is not None

        removed = runner.invoke(app, ["uninstall", "--delete-objects", str(package)])
        assert removed.exit_code == 0
        assert asyncio.run(cli_store.list_classes()) == []


class TestRepositoryCommands:
    def test_diff_lists_new_and_removed(self, repo: Path, cli_store: InMemoryClassStore) -> None:
        write_package(repo, "news", {"class-article": class_xml("article")})
        asyncio.run(cli_store.create_class(PersistedClass(identifier="legacy", remote_id="r-legacy")))

        result = runner.invoke(app, ["diff", str(repo)])

        assert result.exit_code == 0
        assert "article" in result.output
        assert "new" in result.output
        assert "legacy" in result.output
        assert "removed" in result.output

    def test_diff_on_missing_repository(self, tmp_path: Path, cli_store: InMemoryClassStore) -> None:
        result = runner.invoke(app, ["diff", str(tmp_path / "nothing")])
        assert result.exit_code == 1

    def test_clean_up_dry_run(self, repo: Path, cli_store: InMemoryClassStore) -> None:
        asyncio.run(cli_store.create_class(PersistedClass(identifier="legacy", remote_id="r-legacy")))

        result = runner.invoke(app, ["clean-up", "--dry-run", str(repo)])

        assert result.exit_code == 0
        assert "Would remove class legacy" in result.output
        assert asyncio.run(cli_store.fetch_class_by_identifier("legacy")) is not None

    def test_update_status(self, repo: Path, cli_store: InMemoryClassStore) -> None:
        write_package(repo, "news", {"class-article": class_xml("article")})

        result = runner.invoke(app, ["update-status", str(repo / "*")])

        assert result.exit_code == 0
        assert "Packages modified: 1" in result.output
        assert "news" in result.output

    def test_force_remove_class(self, cli_store: InMemoryClassStore) -> None:
        legacy = asyncio.run(cli_store.create_class(PersistedClass(identifier="legacy", remote_id="r")))
        asyncio.run(cli_store.create_object(ContentObject(class_id=legacy.id)))

        result = runner.invoke(app, ["force-remove-class", "legacy"])

        assert result.exit_code == 0
        assert "1 object(s)" in result.output
        assert asyncio.run(cli_store.list_classes()) == []

    def test_force_remove_unknown_class(self, cli_store: InMemoryClassStore) -> None:
        result = runner.invoke(app, ["force-remove-class", "nothing"])
        assert result.exit_code == 1

    def test_force_remove_store_failure(self, cli_store: InMemoryClassStore) -> None:
        asyncio.run(cli_store.create_class(PersistedClass(identifier="legacy", remote_id="r")))

        with patch.object(cli_store, "delete_class", side_effect=RuntimeError("disk full")):
            result = runner.invoke(app, ["force-remove-class", "legacy"])

        assert result.exit_code == 1
        assert "Transaction rolled back" in result.output
        assert asyncio.run(cli_store.fetch_class_by_identifier("legacy")) is not None

    def test_update_status_reports_broken_package(self, repo: Path, cli_store: InMemoryClassStore) -> None:
        write_package(repo, "a-broken", {"class-x": "<content-class>"})
        write_package(repo, "b-good", {"class-y": class_xml("y")})

        result = runner.invoke(app, ["update-status", str(repo / "*")])

        assert result.exit_code == 1
        assert "Failed" in result.output
        assert "a-broken" in result.output
        assert "b-good" in result.output


class TestObjectCommands:
    def test_change_object(self, cli_store: InMemoryClassStore) -> None:
        article = asyncio.run(cli_store.create_class(PersistedClass(identifier="article", remote_id="a")))
        blog = asyncio.run(cli_store.create_class(PersistedClass(identifier="blog", remote_id="b")))
        content_object = asyncio.run(cli_store.create_object(ContentObject(class_id=article.id, name="Hello")))

        result = runner.invoke(app, ["change-object", str(content_object.id), "--identifier", "blog"])

        assert result.exit_code == 0
        stored = asyncio.run(cli_store.fetch_object(content_object.id))
        assert stored is not None
        assert stored.class_id == blog.id

    def test_change_unknown_node(self, cli_store: InMemoryClassStore) -> None:
        result = runner.invoke(app, ["change-node", "/nowhere", "--identifier", "blog"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_change_object_store_failure(self, cli_store: InMemoryClassStore) -> None:
        article = asyncio.run(cli_store.create_class(PersistedClass(identifier="article", remote_id="a")))
        asyncio.run(cli_store.create_class(PersistedClass(identifier="blog", remote_id="b")))
        content_object = asyncio.run(cli_store.create_object(ContentObject(class_id=article.id)))

        with patch.object(cli_store, "update_object", side_effect=RuntimeError("locked")):
            result = runner.invoke(app, ["change-object", str(content_object.id), "--identifier", "blog"])

        assert result.exit_code == 1
        assert "Transaction rolled back" in result.output


class TestUpdateModified:
    def test_sets_timestamp(self, tmp_path: Path) -> None:
        file_path = tmp_path / "class-article.xml"
        file_path.write_text(class_xml("article"), encoding="utf-8")

        result = runner.invoke(app, ["update-modified", str(file_path), "--timestamp", "1234"])

        assert result.exit_code == 0
        assert parse(file_path).modified == "1234"

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["update-modified", str(tmp_path / "nothing.xml")])
        assert result.exit_code == 1


class TestPromptResolver:
    def test_answer_is_returned(self) -> None:
        request = ConflictRequest(
            kind=ConflictKind.CLASS_EXISTS,
            element_id="r",
            description="Class exists",
            actions={Action.REPLACE: "Replace", Action.SKIP: "Skip"},
        )
        resolver = PromptResolver(Console(file=StringIO()))

        with patch("classpkg.cli.prompt.Prompt.ask", return_value="skip"):
            assert resolver.resolve(request) == Action.SKIP
        with patch("classpkg.cli.prompt.Prompt.ask", return_value="cancel"):
            assert resolver.resolve(request) is None


class TestExtract:
    def test_broken_archive_is_reported_and_others_extracted(self, tmp_path: Path) -> None:
        repo = tmp_path / "repo"
        repo.mkdir()
        (repo / "a-1.0-1.ezpkg").write_bytes(b"not an archive")
        source = write_package(tmp_path / "build", "b", {"class-y": class_xml("y")})
        with tarfile.open(repo / "b-1.0-1.ezpkg", "w:gz") as tar:
            for path in sorted(source.rglob("*")):
                tar.add(path, arcname=str(path.relative_to(source)), recursive=False)

        result = runner.invoke(app, ["extract", str(repo / "*.ezpkg")])

        assert result.exit_code == 1
        assert "Failed" in result.output
        assert "Extracted" in result.output
        assert (repo / "b" / "ezcontentclass" / "class-y.xml").is_file()
