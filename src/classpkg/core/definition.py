"""Reading and normalising content-class definition files.

A definition is an XML document rooted at ``content-class``. The transforms
below rewrite a parsed document in place; each is idempotent, and
``save_document`` writes the result back in a consistent layout.
"""

import copy
import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import DefusedXMLParser
from defusedxml.ElementTree import parse as _safe_parse

from classpkg.core.context import DEFAULT_LOCALE
from classpkg.core.ports.clock import Clock, LocaleProvider
from classpkg.core.serialized import decode_name_list, decode_serialized, reserialize, to_json
from classpkg.errors import NotFoundError, ParseError
from classpkg.models import AttributeDefinition, ClassDefinition, GroupRef

logger = logging.getLogger(__name__)

ATTRIBUTE_NS = "http://ezpublish/contentclassattribute"
ATTRIBUTE_PREFIX = "ezcontentclass-attribute"

XPATH_IDENTIFIER = "identifier"
XPATH_MODIFIED = "remote/modified"
XPATH_CREATED = "remote/created"
XPATH_GROUPS = "remote/groups/group"

SERIALIZED_PREFIX = "serialized-"
ALWAYS_AVAILABLE_KEY = "always-available"

ET.register_namespace(ATTRIBUTE_PREFIX, ATTRIBUTE_NS)


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _is_true(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


def _text(node: ET.Element | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.strip()


def open_document(path: str | Path) -> ET.ElementTree:
    """Parse *path*, keeping comments so they survive a rewrite."""
    file_path = Path(path)
    if not file_path.is_file():
        raise NotFoundError(f"File {file_path} not found!")

    parser = DefusedXMLParser(target=ET.TreeBuilder(insert_comments=True))
    try:
        tree = _safe_parse(str(file_path), parser=parser)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise ParseError(f"Not an XML document: {file_path} ({exc})", path=str(file_path)) from exc
    logger.debug("Opened XML file %s", file_path)
    return tree


def save_document(tree: ET.ElementTree, path: str | Path) -> None:
    ET.indent(tree, space="  ")
    tree.write(str(path), encoding="utf-8", xml_declaration=True)


def attributes_container(root: ET.Element) -> ET.Element | None:
    node = root.find(f"{{{ATTRIBUTE_NS}}}attributes")
    if node is None:
        node = root.find("attributes")
    return node


def attribute_nodes(root: ET.Element) -> list[ET.Element]:
    container = attributes_container(root)
    if container is None:
        return []
    return [child for child in container if _local_name(child.tag) == "attribute"]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _name_list(node: ET.Element, list_tag: str, default_locale: str) -> dict[str, str]:
    names = decode_name_list(_text(node.find(list_tag)))
    if names:
        return names
    # exports from before translated names carry a plain <name>
    plain = _text(node.find("name"))
    if plain:
        return {default_locale: plain, ALWAYS_AVAILABLE_KEY: default_locale}
    return {}


def _datatype_parameters(node: ET.Element) -> str:
    params = node.find("datatype-parameters")
    if params is None:
        return ""
    params = copy.deepcopy(params)
    params.tail = None
    return ET.tostring(params, encoding="unicode")


def _parse_attribute(node: ET.Element, default_locale: str) -> AttributeDefinition | None:
    identifier = _text(node.find("identifier"))
    if not identifier:
        return None
    placement = _text(node.find("placement"))
    return AttributeDefinition(
        identifier=identifier,
        datatype=node.get("datatype", ""),
        placement=int(placement) if placement.isdigit() else 0,
        category=_text(node.find("category")),
        required=_is_true(node.get("required")),
        searchable=_is_true(node.get("searchable")),
        is_information_collector=_is_true(node.get("information-collector")),
        translatable=_is_true(node.get("translatable")),
        name_list=_name_list(node, "serialized-name-list", default_locale),
        description_list=decode_name_list(_text(node.find("serialized-description-list"))),
        data_text=decode_name_list(_text(node.find("serialized-data-text"))),
        datatype_parameters=_datatype_parameters(node),
    )


def parse_document(root: ET.Element, path: str = "", default_locale: str = DEFAULT_LOCALE) -> ClassDefinition:
    identifier = _text(root.find(XPATH_IDENTIFIER))
    if not identifier:
        raise ParseError(f"Missing class identifier in {path or 'document'}", path=path or None)

    attributes: list[AttributeDefinition] = []
    for node in attribute_nodes(root):
        if _is_true(node.get("unsupported")):
            logger.info("Skipping unsupported attribute in %s", identifier)
            continue
        attribute = _parse_attribute(node, default_locale)
        if attribute is not None:
            attributes.append(attribute)

    groups = tuple(
        GroupRef(id=int(g.get("id")) if (g.get("id") or "").isdigit() else None, name=g.get("name", ""))
        for g in root.findall(XPATH_GROUPS)
    )

    sort_order = root.get("sort-order")
    always_available = root.get("always-available")
    url_alias = root.find("url-alias-pattern")

    return ClassDefinition(
        identifier=identifier,
        remote_id=_text(root.find("remote-id")),
        modified=_text(root.find(XPATH_MODIFIED)),
        created=_text(root.find(XPATH_CREATED)),
        name_list=_name_list(root, "serialized-name-list", default_locale),
        description_list=decode_name_list(_text(root.find("serialized-description-list"))),
        object_name_pattern=_text(root.find("object-name-pattern")),
        url_alias_pattern=_text(url_alias) if url_alias is not None else None,
        is_container=_is_true(root.get("is-container")),
        always_available=_is_true(always_available) if always_available is not None else None,
        sort_field=root.get("sort-field"),
        sort_order=int(sort_order) if sort_order and sort_order.lstrip("-").isdigit() else None,
        attributes=tuple(attributes),
        groups=groups,
    )


def parse(path: str | Path, default_locale: str = DEFAULT_LOCALE) -> ClassDefinition:
    """Read a class definition file.

    Raises ``NotFoundError`` for a missing file and ``ParseError`` for
    malformed XML or a definition without an identifier.
    """
    tree = open_document(path)
    return parse_document(tree.getroot(), str(path), default_locale)


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


def serialized_elements(root: ET.Element) -> list[ET.Element]:
    return [el for el in root.iter() if _local_name(el.tag).startswith(SERIALIZED_PREFIX)]


def reencode_serialized_fields(root: ET.Element) -> int:
    """Convert legacy-serialized ``serialized-*`` fields to JSON.

    Text is stored unescaped on the element; ``&``, ``<`` and ``>`` are
    entity-escaped when the document is written, quotes are left alone.
    """
    elements = serialized_elements(root)
    logger.info("Transforming %d serialized elements", len(elements))
    for element in elements:
        if element.text and element.text.strip():
            element.text = reserialize(element.text.strip())
    return len(elements)


def _stamp(root: ET.Element, xpath: str, timestamp: int | None, clock: Clock) -> str | None:
    node = root.find(xpath)
    if node is None:
        return None
    value = str(timestamp if timestamp else clock.now())
    node.text = value
    return value


def stamp_modified(root: ET.Element, clock: Clock, timestamp: int | None = None) -> str | None:
    value = _stamp(root, XPATH_MODIFIED, timestamp, clock)
    if value is not None:
        logger.info('New "modified" timestamp: %s', value)
    return value


def stamp_created(root: ET.Element, clock: Clock, timestamp: int | None = None) -> str | None:
    value = _stamp(root, XPATH_CREATED, timestamp, clock)
    if value is not None:
        logger.info('New "created" timestamp: %s', value)
    return value


def normalize_placement(root: ET.Element) -> int:
    """Renumber attribute placements 1..N in document order."""
    nodes = [p for attr in attribute_nodes(root) if (p := attr.find("placement")) is not None]
    for position, node in enumerate(nodes, start=1):
        node.text = str(position)
    if nodes:
        logger.info("Updated placement for %d nodes", len(nodes))
    return len(nodes)


def add_attribute_comments(root: ET.Element) -> None:
    """Put a comment with the attribute identifier in front of every attribute."""
    container = attributes_container(root)
    if container is None:
        return

    children: list[ET.Element] = []
    for child in list(container):
        if _local_name(child.tag) == "attribute":
            identifier = _text(child.find("identifier"))
            if identifier:
                if children and children[-1].tag is ET.Comment:
                    children.pop()
                children.append(ET.Comment(f" {identifier} "))
        children.append(child)

    for child in list(container):
        container.remove(child)
    container.extend(children)


def backfill_locales(root: ET.Element, locales: LocaleProvider) -> int:
    """Fill every translation missing from ``serialized-*`` maps with the current locale's value."""
    current = locales.current_locale()
    elements = serialized_elements(root)
    logger.info("Translating %d serialized elements", len(elements))
    for element in elements:
        content = decode_serialized(element.text.strip() if element.text else "")
        if isinstance(content, list):
            content = {str(index): value for index, value in enumerate(content)}
        elif not isinstance(content, dict):
            content = {}
        fallback = content.get(current) or ""
        for locale in locales.locales():
            if not content.get(locale):
                content[locale] = fallback
        content[ALWAYS_AVAILABLE_KEY] = current
        element.text = to_json(content)
    return len(elements)


# ---------------------------------------------------------------------------
# File operations
# ---------------------------------------------------------------------------


def transform_definition(path: str | Path, clock: Clock, timestamp: int | None = None) -> ClassDefinition:
    """Make a freshly extracted definition easier to edit and save it in place."""
    tree = open_document(path)
    root = tree.getroot()

    reencode_serialized_fields(root)
    stamp_created(root, clock, timestamp)
    stamp_modified(root, clock, timestamp)
    normalize_placement(root)
    add_attribute_comments(root)

    save_document(tree, path)
    return parse_document(root, str(path))


def update_modified(
    path: str | Path,
    clock: Clock,
    timestamp: int | None = None,
    locales: LocaleProvider | None = None,
) -> ClassDefinition:
    tree = open_document(path)
    root = tree.getroot()
    logger.info("Update modified date for %s", path)

    stamp_modified(root, clock, timestamp)
    normalize_placement(root)
    add_attribute_comments(root)
    if locales is not None:
        backfill_locales(root, locales)

    save_document(tree, path)
    return parse_document(root, str(path))


def update_created(path: str | Path, clock: Clock, timestamp: int | None = None) -> ClassDefinition:
    tree = open_document(path)
    root = tree.getroot()
    logger.info("Update created date for %s", path)

    stamp_created(root, clock, timestamp)

    save_document(tree, path)
    return parse_document(root, str(path))
