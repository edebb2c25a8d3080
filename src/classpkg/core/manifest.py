import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import parse as _safe_parse

from classpkg.errors import NotFoundError, ParseError
from classpkg.models import InstallItem, PackageManifest

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.xml"


def _local_name(tag: object) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _find_child(root: ET.Element, name: str) -> ET.Element | None:
    for child in root:
        if _local_name(child.tag) == name:
            return child
    return None


def _items(container: ET.Element | None) -> list[InstallItem]:
    if container is None:
        return []
    items: list[InstallItem] = []
    for child in container:
        if not isinstance(child.tag, str):
            continue
        items.append(
            InstallItem(
                type=child.get("type", ""),
                filename=child.get("filename") or None,
                sub_directory=child.get("sub-directory") or None,
                name=child.get("name") or None,
            )
        )
    return items


def is_package(path: str | Path) -> bool:
    folder = Path(path)
    return folder.is_dir() and (folder / MANIFEST_FILENAME).is_file()


def load_manifest(package_path: str | Path) -> PackageManifest:
    """Load ``package.xml`` of a package folder.

    Items listed under ``<uninstall>`` are used for uninstalling; packages
    without that list are uninstalled by walking their install items.
    """
    folder = Path(package_path).resolve()
    manifest_file = folder / MANIFEST_FILENAME
    if not manifest_file.is_file():
        raise NotFoundError(f"The provided path {folder} is not a package!")

    try:
        root = _safe_parse(str(manifest_file)).getroot()
    except (ET.ParseError, DefusedXmlException) as exc:
        raise ParseError(f"Invalid package manifest {manifest_file} ({exc})", path=str(manifest_file)) from exc

    install_items = _items(_find_child(root, "install"))
    uninstall_node = _find_child(root, "uninstall")
    uninstall_items = _items(uninstall_node) if uninstall_node is not None else list(install_items)

    return PackageManifest(
        name=folder.name,
        path=str(folder),
        install_items=install_items,
        uninstall_items=uninstall_items,
    )


def resolve_item_path(manifest: PackageManifest, item: InstallItem) -> Path | None:
    """Return the definition file of *item*, or ``None`` when it does not name one."""
    if not item.filename:
        return None
    base = Path(manifest.path)
    if item.sub_directory:
        base = base / item.sub_directory
    return base / f"{item.filename}.xml"
