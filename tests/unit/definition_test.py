"""Tests for reading and normalising class definition files."""

import re
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from classpkg.core.context import FixedClock, StaticLocaleProvider
from classpkg.core.definition import (
    add_attribute_comments,
    attribute_nodes,
    backfill_locales,
    normalize_placement,
    open_document,
    parse,
    transform_definition,
    update_created,
    update_modified,
)
from classpkg.errors import NotFoundError, ParseError
from tests.conftest import FIXED_TIME, class_xml

LEGACY_NAMES = 'a:2:{s:6:"eng-GB";s:5:"Title";s:16:"always-available";s:6:"eng-GB";}'


def _write(tmp_path: Path, document: str, name: str = "class-article.xml") -> Path:
    path = tmp_path / name
    path.write_text(document, encoding="utf-8")
    return path


def _root(document: str) -> ET.Element:
    return ET.fromstring(document.split("\n", 1)[1])


def _placement_values(root: ET.Element) -> list[str]:
    return [attr.findtext("placement", "") for attr in attribute_nodes(root)]


def _placements(path: Path) -> list[str]:
    return _placement_values(open_document(path).getroot())


class TestParse:
    def test_reads_class_and_attributes(self, tmp_path: Path) -> None:
        document = class_xml(
            "article",
            modified="1234",
            attributes=[("title", "ezstring"), ("body", "ezxmltext")],
            groups=[(1, "Content")],
        )
        path = _write(tmp_path, document)

        definition = parse(path)

        assert definition.identifier == "article"
        assert definition.remote_id == "remote-article"
        assert definition.modified == "1234"
        assert definition.name_list["eng-GB"] == "Article"
        assert definition.object_name_pattern == "<title>"
        assert definition.always_available is True
        assert [a.identifier for a in definition.attributes] == ["title", "body"]
        assert definition.attributes[0].datatype == "ezstring"
        assert definition.attributes[0].searchable is True
        assert definition.groups[0].name == "Content"
        assert definition.groups[0].id == 1

    def test_missing_file_raises_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            parse(tmp_path / "missing.xml")

    def test_malformed_xml_raises_parse_error(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "<content-class><identifier>x</content-class>")
        with pytest.raises(ParseError):
            parse(path)

    def test_missing_identifier_raises_parse_error(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "<content-class><remote-id>r</remote-id></content-class>")
        with pytest.raises(ParseError):
            parse(path)

    def test_unsupported_attributes_are_ignored(self, tmp_path: Path) -> None:
        document = class_xml("article", attributes=[("title", "ezstring"), ("legacy", "ezfoo")]).replace(
            'datatype="ezfoo"', 'datatype="ezfoo" unsupported="true"'
        )
        definition = parse(_write(tmp_path, document))
        assert [a.identifier for a in definition.attributes] == ["title"]

    def test_plain_name_is_used_without_name_list(self, tmp_path: Path) -> None:
        document = (
            "<content-class><name>Old Article</name><identifier>old</identifier>"
            "<remote><modified>1</modified></remote></content-class>"
        )
        definition = parse(_write(tmp_path, document))
        assert definition.name_list == {"eng-GB": "Old Article", "always-available": "eng-GB"}


class TestPlacement:
    def test_renumbers_one_to_n(self) -> None:
        document = class_xml("article", attributes=[("a", "ezstring"), ("b", "ezstring"), ("c", "ezstring")])
        document = document.replace("<placement>2</placement>", "<placement>7</placement>")
        root = _root(document)

        assert normalize_placement(root) == 3
        assert _placement_values(root) == ["1", "2", "3"]

    def test_is_idempotent(self, tmp_path: Path, clock: FixedClock) -> None:
        document = class_xml("article", attributes=[("a", "ezstring"), ("b", "ezstring")])
        path = _write(tmp_path, document.replace("<placement>1</placement>", "<placement>5</placement>"))

        update_modified(path, clock)
        first = _placements(path)
        update_modified(path, clock)

        assert first == ["1", "2"]
        assert _placements(path) == first


class TestComments:
    def test_comment_precedes_each_attribute_once(self) -> None:
        root = _root(class_xml("article", attributes=[("title", "ezstring")]))

        add_attribute_comments(root)
        add_attribute_comments(root)

        container = root[-1]
        comments = [child for child in container if child.tag is ET.Comment]
        assert len(comments) == 1
        assert comments[0].text == " title "


class TestTransform:
    def test_reencodes_and_stamps(self, tmp_path: Path, clock: FixedClock) -> None:
        document = re.sub(
            r"<serialized-name-list>.*?</serialized-name-list>",
            f"<serialized-name-list>{LEGACY_NAMES}</serialized-name-list>",
            class_xml("article", attributes=[("title", "ezstring")]),
            count=1,
        )
        path = _write(tmp_path, document)

        definition = transform_definition(path, clock)

        assert definition.modified == str(FIXED_TIME)
        assert definition.created == str(FIXED_TIME)
        assert definition.name_list == {"eng-GB": "Title", "always-available": "eng-GB"}
        text = path.read_text(encoding="utf-8")
        assert '{"eng-GB":"Title","always-available":"eng-GB"}' in text
        assert "<!-- title -->" in text

    def test_transform_twice_leaves_file_unchanged(self, tmp_path: Path, clock: FixedClock) -> None:
        path = _write(tmp_path, class_xml("article", attributes=[("title", "ezstring"), ("body", "eztext")]))

        transform_definition(path, clock)
        once = path.read_text(encoding="utf-8")
        transform_definition(path, clock)

        assert path.read_text(encoding="utf-8") == once

    def test_escapes_markup_but_not_quotes(self, tmp_path: Path, clock: FixedClock) -> None:
        path = _write(tmp_path, class_xml("article"))
        transform_definition(path, clock)
        text = path.read_text(encoding="utf-8")
        assert "&lt;title&gt;" in text
        assert '"eng-GB"' in text
        assert "&quot;" not in text


class TestStamps:
    def test_update_modified_uses_given_timestamp(self, tmp_path: Path, clock: FixedClock) -> None:
        path = _write(tmp_path, class_xml("article"))
        assert update_modified(path, clock, timestamp=42).modified == "42"

    def test_update_created_falls_back_to_clock(self, tmp_path: Path) -> None:
        path = _write(tmp_path, class_xml("article"))
        assert update_created(path, FixedClock(77)).created == "77"


class TestLocales:
    def test_missing_translations_are_filled_from_current_locale(self) -> None:
        root = _root(class_xml("article"))

        backfill_locales(root, StaticLocaleProvider("eng-GB", ["eng-GB", "ger-DE"]))

        element = root.find("serialized-name-list")
        assert element is not None
        assert element.text == '{"eng-GB":"Article","always-available":"eng-GB","ger-DE":"Article"}'

        document = '<content-class><serialized-data-text>["one","two"]</serialized-data-text></content-class>'
        document = "<content-class><serialized-data-text>[\"one\",\"two\"]</serialized-data-text></content-class>"
        root = ET.fromstring(document)

        backfill_locales(root, StaticLocaleProvider("eng-GB", ["eng-GB"]))

        element = root.find("serialized-data-text")
        assert element is not None
        assert element.text == '{"0":"one","1":"two","eng-GB":"","always-available":"eng-GB"}'
