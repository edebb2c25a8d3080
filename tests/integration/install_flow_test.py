"""Install, diff and uninstall packages against the SQL store."""

from pathlib import Path

import pytest

from classpkg.core.context import FixedClock
from classpkg.core.decisions import NonInteractiveResolver
from classpkg.core.diff import diff_status
from classpkg.core.installer import PackageInstaller, default_registry, package_needs_update
from classpkg.db import SqlClassStore
from classpkg.models import DiffStatus, InstallOutcome
from tests.conftest import FIXED_TIME, class_xml, write_package


@pytest.mark.asyncio
async def test_install_diff_uninstall(tmp_path: Path, sql_store: SqlClassStore) -> None:
    repo = tmp_path / "repo"
    package = write_package(
        repo,
        "news",
        {
            "class-article": class_xml(
                "article", attributes=[("title", "ezstring"), ("body", "ezxmltext")], groups=[(1, "Content")]
            ),
            "class-blog": class_xml("blog", attributes=[("title", "ezstring")]),
        },
    )
    installer = PackageInstaller(default_registry(sql_store, NonInteractiveResolver(), FixedClock(FIXED_TIME)))

    result = await installer.install(package)

    assert [item.outcome for item in result.items] == [InstallOutcome.INSTALLED, InstallOutcome.INSTALLED]
    article = await sql_store.fetch_class_by_identifier("article")
    assert article is not None
    assert [a.identifier for a in await sql_store.fetch_attributes(article.id)] == ["title", "body"]
    group = await sql_store.fetch_group_by_name("Content")
    assert group is not None
    assert await sql_store.fetch_class_group_ids(article.id) == [group.id]
    assert await package_needs_update(package, sql_store) is False
    assert await diff_status(repo, sql_store) == {}

    write_package(repo, "news", {"class-article": class_xml("article", modified="2000")})
    assert await diff_status(repo, sql_store) == {"article": DiffStatus.MODIFIED, "blog": DiffStatus.REMOVED}

    result = await installer.install(package)
    assert result.items[0].outcome == InstallOutcome.INSTALLED
    assert await sql_store.fetch_attributes(article.id) == []

    result = await installer.uninstall(package)
    assert result.items[0].outcome == InstallOutcome.REMOVED
    assert [c.identifier for c in await sql_store.list_classes()] == ["blog"]
