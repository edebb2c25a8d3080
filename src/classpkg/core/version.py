"""Decide whether an installed class is at least as new as a definition on disk.

``modified`` values are Unix timestamps in practice but are compared as
case-insensitive strings, the way installed data has always been compared.
"""

from classpkg.core.ports.store import ClassStore
from classpkg.models import ClassDefinition


def compare_modified(current: object, candidate: object) -> int:
    """Case-insensitive ordinal comparison; negative, zero or positive."""
    a = ("" if current is None else str(current)).lower()
    b = ("" if candidate is None else str(candidate)).lower()
    return (a > b) - (a < b)


async def is_installed_version_current(store: ClassStore, identifier: str, candidate_modified: str) -> bool:
    """True when the installed class is as new as or newer than *candidate_modified*.

    A class that is not installed is never current.
    """
    installed = await store.fetch_class_by_identifier(identifier)
    if installed is None:
        return False
    return compare_modified(installed.modified, candidate_modified) >= 0


async def is_definition_current(store: ClassStore, definition: ClassDefinition) -> bool:
    return await is_installed_version_current(store, definition.identifier, definition.modified)
