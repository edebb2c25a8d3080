"""Shared fixtures and helpers for tests."""

import json
import logging
from pathlib import Path
from xml.sax.saxutils import escape

import pytest

from classpkg.core.context import FixedClock
from classpkg.db import InMemoryClassStore

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).parent.parent

FIXED_TIME = 1700000000


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Package builders
# ---------------------------------------------------------------------------


def _names(value: str) -> str:
    return escape(json.dumps({"eng-GB": value, "always-available": "eng-GB"}))


def class_xml(
    identifier: str,
    remote_id: str | None = None,
    modified: str = "1000",
    attributes: list[tuple[str, str]] | None = None,
    groups: list[tuple[int, str]] | None = None,
    name: str | None = None,
) -> str:
    """Build a class definition document; *attributes* are ``(identifier, datatype)`` pairs."""
    attribute_xml = "".join(
        f"""
    <attribute datatype="{datatype}" required="false" searchable="true" information-collector="false" translatable="true">
      <serialized-name-list>{_names(attr_identifier.title())}</serialized-name-list>
      <identifier>{attr_identifier}</identifier>
      <placement>{index}</placement>
      <datatype-parameters/>
    </attribute>"""
        for index, (attr_identifier, datatype) in enumerate(attributes or [], start=1)
    )
    group_xml = "".join(f'<group id="{group_id}" name="{group_name}"/>' for group_id, group_name in groups or [])
    return f"""<?xml version="1.0" encoding="utf-8"?>
<content-class is-container="false" always-available="true" sort-field="1" sort-order="1">
  <serialized-name-list>{_names(name or identifier.title())}</serialized-name-list>
  <identifier>{identifier}</identifier>
  <remote-id>{remote_id or f"remote-{identifier}"}</remote-id>
  <object-name-pattern>&lt;title&gt;</object-name-pattern>
  <remote>
    <id>1</id>
    <created>900</created>
    <modified>{modified}</modified>
    <groups>{group_xml}</groups>
  </remote>
  <ezcontentclass-attribute:attributes xmlns:ezcontentclass-attribute="http://ezpublish/contentclassattribute">{attribute_xml}
  </ezcontentclass-attribute:attributes>
</content-class>
"""


def write_package(root: Path, name: str, classes: dict[str, str], uninstall: list[str] | None = None) -> Path:
    """Write a package folder; *classes* maps file names (without .xml) to documents."""
    package = root / name
    (package / "ezcontentclass").mkdir(parents=True, exist_ok=True)
    for filename, document in classes.items():
        (package / "ezcontentclass" / f"{filename}.xml").write_text(document, encoding="utf-8")

    def _items(filenames: list[str]) -> str:
        return "".join(
            f'<item type="ezcontentclass" sub-directory="ezcontentclass" filename="{f}"/>' for f in filenames
        )

    uninstall_xml = f"<uninstall>{_items(uninstall)}</uninstall>" if uninstall is not None else ""
    (package / "package.xml").write_text(
        f'<?xml version="1.0" encoding="utf-8"?>\n<package><install>{_items(list(classes))}</install>'
        f"{uninstall_xml}</package>\n",
        encoding="utf-8",
    )
    return package


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryClassStore:
    return InMemoryClassStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FIXED_TIME)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Empty repository folder."""
    path = tmp_path / "repo"
    path.mkdir()
    return path
