import logging
import os
from pathlib import Path

from classpkg.core.definition import parse
from classpkg.core.manifest import is_package, load_manifest, resolve_item_path
from classpkg.errors import NotFoundError
from classpkg.models import ItemKind

logger = logging.getLogger(__name__)


def list_packages(repo_root: str | Path) -> list[Path]:
    """List package folders of a repository in filesystem order.

    When *repo_root* is a file (usually a ``package.xml``), its folder is the
    only package. The result is not sorted.
    """
    root = Path(repo_root)
    if root.is_file():
        return [root.resolve().parent]
    if not root.is_dir():
        raise NotFoundError(f"{root} is not a valid directory")

    root = root.resolve()
    with os.scandir(root) as entries:
        return [root / entry.name for entry in entries if entry.is_dir() and entry.name not in (".", "..")]


def package_class_definition_files(package_path: str | Path) -> list[Path]:
    """Class definition files referenced by one package manifest.

    Items that name no file, or whose file is missing, are skipped.
    """
    manifest = load_manifest(package_path)
    result: list[Path] = []
    for item in manifest.install_items:
        if item.type != ItemKind.CONTENT_CLASS or not item.sub_directory or not item.filename:
            continue
        file_path = resolve_item_path(manifest, item)
        if file_path is not None and file_path.is_file():
            result.append(file_path)
    return result


def list_class_definition_files(repo_root: str | Path) -> list[Path]:
    """Collect the class definition files referenced by every package manifest."""
    result: list[Path] = []
    for package_path in list_packages(repo_root):
        if not is_package(package_path):
            logger.info("Skipping %s: no package manifest", package_path)
            continue
        result.extend(package_class_definition_files(package_path))
    return result


def list_available_class_identifiers(repo_root: str | Path) -> list[str]:
    """Identifiers of every class defined in the repository.

    A definition that cannot be read is an error here; it is not skipped.
    """
    return [parse(file_path).identifier for file_path in list_class_definition_files(repo_root)]
