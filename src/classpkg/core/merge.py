"""Merge class definitions into the store.

Attributes are matched by identifier only, never by numeric id, because ids
differ between installations. A datatype change is handled as delete and
recreate, together with all object data stored for the old attribute.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field

from classpkg.core.context import SystemClock
from classpkg.core.ports.clock import Clock
from classpkg.core.ports.decisions import DecisionResolver
from classpkg.core.ports.store import ClassStore
from classpkg.models import (
    Action,
    AttributeDefinition,
    ClassDefinition,
    ClassGroup,
    ConflictKind,
    ConflictRequest,
    GroupRef,
    ObjectAttribute,
    PersistedAttribute,
    PersistedClass,
)

logger = logging.getLogger(__name__)

IMPORTED_SUFFIX = " (imported)"
_ALWAYS_AVAILABLE_KEY = "always-available"
_NUMBERED_IDENTIFIER = re.compile(r"^(.*)_(\d+)$")


@dataclass
class AttributeSyncReport:
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    retyped: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def synced(self) -> set[str]:
        return set(self.created) | set(self.updated)


@dataclass
class MergeOutcome:
    """Result of merging one class definition.

    ``class_id`` is ``None`` when nothing was written: either the class was
    skipped or ``conflict`` holds a decision the caller still has to make.
    """

    class_id: int | None
    action: Action | None = None
    created: bool = False
    conflict: ConflictRequest | None = None
    attributes: AttributeSyncReport | None = None


def generate_remote_id() -> str:
    return uuid.uuid4().hex


def _display_name(name_list: dict[str, str], fallback: str) -> str:
    locale = name_list.get(_ALWAYS_AVAILABLE_KEY)
    if locale and name_list.get(locale):
        return name_list[locale]
    for key, value in name_list.items():
        if key != _ALWAYS_AVAILABLE_KEY and value:
            return value
    return fallback


def _with_suffix(name_list: dict[str, str], suffix: str) -> dict[str, str]:
    return {k: v if k == _ALWAYS_AVAILABLE_KEY else f"{v}{suffix}" for k, v in name_list.items()}


async def unique_identifier(store: ClassStore, identifier: str) -> str:
    """Return *identifier*, or ``<identifier>_N`` for the first free N when it is taken."""
    candidate = identifier
    while await store.fetch_class_by_identifier(candidate) is not None:
        match = _NUMBERED_IDENTIFIER.match(candidate)
        if match:
            candidate = f"{match.group(1)}_{int(match.group(2)) + 1}"
        else:
            candidate = f"{candidate}_1"
    return candidate


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------


def _apply_attribute_fields(record: PersistedAttribute, definition: AttributeDefinition) -> PersistedAttribute:
    return record.model_copy(
        update={
            "identifier": definition.identifier,
            "placement": definition.placement,
            "category": definition.category,
            "is_required": definition.required,
            "is_searchable": definition.searchable,
            "is_information_collector": definition.is_information_collector,
            "can_translate": definition.translatable,
            # empty lists from the file leave the stored translations alone
            "name_list": definition.name_list or record.name_list,
            "description_list": definition.description_list or record.description_list,
            "data_text": definition.data_text or record.data_text,
            "datatype_parameters": definition.datatype_parameters,
        }
    )


async def _delete_attribute_with_data(store: ClassStore, attribute: PersistedAttribute) -> int:
    object_attributes = await store.fetch_object_attributes(attribute.id)
    for object_attribute in object_attributes:
        await store.delete_object_attribute(object_attribute.id)
    await store.delete_attribute(attribute.id)
    return len(object_attributes)


async def initialize_object_attributes(store: ClassStore, attribute: PersistedAttribute) -> int:
    """Give every object of the attribute's class an empty value for it, one per translation."""
    count = 0
    for content_object in await store.fetch_objects(attribute.class_id):
        for language in content_object.languages or [""]:
            await store.create_object_attribute(
                ObjectAttribute(
                    object_id=content_object.id,
                    class_attribute_id=attribute.id,
                    identifier=attribute.identifier,
                    language_code=language,
                )
            )
            count += 1
    return count


async def merge_attributes(
    store: ClassStore,
    persisted_class: PersistedClass,
    attributes: list[AttributeDefinition] | tuple[AttributeDefinition, ...],
) -> AttributeSyncReport:
    """Bring the stored attributes of *persisted_class* in line with *attributes*.

    Callers run this inside a store transaction.
    """
    report = AttributeSyncReport()
    class_id = persisted_class.id

    for definition in attributes:
        existing = await store.fetch_attribute_by_identifier(class_id, definition.identifier)

        if existing is not None and existing.datatype != definition.datatype:
            removed = await _delete_attribute_with_data(store, existing)
            report.retyped.append(definition.identifier)
            logger.info(
                "Attribute %s in class %s changed datatype from %s to %s (%d object attributes removed)",
                definition.identifier,
                persisted_class.identifier,
                existing.datatype,
                definition.datatype,
                removed,
            )
            existing = None

        if existing is not None:
            await store.update_attribute(_apply_attribute_fields(existing, definition))
            report.updated.append(definition.identifier)
            logger.info("Attribute %s in class %s was merged", definition.identifier, persisted_class.identifier)
        else:
            record = _apply_attribute_fields(
                PersistedAttribute(class_id=class_id, identifier=definition.identifier, datatype=definition.datatype),
                definition,
            )
            created = await store.create_attribute(record)
            initialized = await initialize_object_attributes(store, created)
            report.created.append(definition.identifier)
            logger.info(
                "Attribute %s in class %s created (%d object attributes initialized)",
                definition.identifier,
                persisted_class.identifier,
                initialized,
            )

    synced = report.synced
    for attribute in await store.fetch_attributes(class_id):
        if attribute.identifier in synced:
            continue
        removed = await _delete_attribute_with_data(store, attribute)
        report.removed.append(attribute.identifier)
        logger.info(
            "Attribute %s in class %s removed (%d object attributes removed)",
            attribute.identifier,
            persisted_class.identifier,
            removed,
        )

    return report


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


async def _resolve_group(store: ClassStore, ref: GroupRef) -> ClassGroup:
    group = await store.fetch_group_by_name(ref.name)
    if group is not None:
        return group
    if ref.id is not None:
        group = await store.fetch_group(ref.id)
        if group is not None:
            group = group.model_copy(update={"name": ref.name})
            await store.update_group(group)
            return group
    return await store.create_group(ClassGroup(id=ref.id or 0, name=ref.name))


async def sync_class_groups(store: ClassStore, class_id: int, groups: list[GroupRef] | tuple[GroupRef, ...]) -> None:
    """Make the class a member of exactly the listed groups, creating groups as needed."""
    current = set(await store.fetch_class_group_ids(class_id))
    wanted: list[int] = []
    for ref in groups:
        group = await _resolve_group(store, ref)
        wanted.append(group.id)
        if group.id not in current:
            await store.add_class_to_group(class_id, group.id)
            current.add(group.id)

    for group_id in current - set(wanted):
        await store.remove_class_from_group(class_id, group_id)


# ---------------------------------------------------------------------------
# Classes
# ---------------------------------------------------------------------------


def _replace_fields(record: PersistedClass, definition: ClassDefinition) -> PersistedClass:
    update: dict[str, object] = {
        "identifier": definition.identifier,
        "name_list": definition.name_list,
        "description_list": definition.description_list,
        "object_name_pattern": definition.object_name_pattern,
        "url_alias_pattern": definition.url_alias_pattern,
        "is_container": definition.is_container,
        "modified": definition.modified or "0",
    }
    if definition.always_available is not None:
        update["always_available"] = definition.always_available
    if definition.sort_field is not None:
        update["sort_field"] = definition.sort_field
    if definition.sort_order is not None:
        update["sort_order"] = definition.sort_order
    return record.model_copy(update=update)


def _exists_request(existing: PersistedClass, object_count: int) -> ConflictRequest:
    name = _display_name(existing.name_list, existing.identifier)
    replace_label = "Replace existing class"
    if object_count:
        replace_label += f" (Warning! {object_count} content object(s) use this class)"
    return ConflictRequest(
        kind=ConflictKind.CLASS_EXISTS,
        element_id=existing.remote_id,
        description=f"Class '{name}' already exists.",
        actions={
            Action.REPLACE: replace_label,
            Action.SKIP: "Skip installing this class",
            Action.NEW: "Keep existing and create a new one",
        },
        object_count=object_count,
    )


async def _create_class(
    store: ClassStore,
    definition: ClassDefinition,
    clock: Clock,
    name_suffix: str = "",
) -> tuple[PersistedClass, AttributeSyncReport]:
    identifier = await unique_identifier(store, definition.identifier)
    if identifier != definition.identifier:
        logger.info("Class identifier %s is taken, using %s", definition.identifier, identifier)

    name_list = _with_suffix(definition.name_list, name_suffix) if name_suffix else definition.name_list
    record = PersistedClass(
        identifier=identifier,
        remote_id=definition.remote_id or generate_remote_id(),
        name_list=name_list,
        description_list=definition.description_list,
        object_name_pattern=definition.object_name_pattern,
        url_alias_pattern=definition.url_alias_pattern,
        is_container=definition.is_container,
        always_available=bool(definition.always_available),
        sort_field=definition.sort_field,
        sort_order=definition.sort_order,
        created=str(clock.now()),
        modified=definition.modified or "0",
    )
    created = await store.create_class(record)
    report = await merge_attributes(store, created, definition.attributes)
    await sync_class_groups(store, created.id, definition.groups)
    logger.info("Class %s created with %d attributes", created.identifier, len(report.created))
    return created, report


async def merge_class(
    store: ClassStore,
    definition: ClassDefinition,
    resolver: DecisionResolver,
    clock: Clock | None = None,
) -> MergeOutcome:
    """Install *definition*, creating the class or merging into an existing one.

    The existing class is found by remote id. What happens to it is up to
    *resolver*; when it gives no answer the returned outcome carries the
    pending request and the store is left untouched.
    """
    clock = clock or SystemClock()
    existing = await store.fetch_class_by_remote_id(definition.remote_id) if definition.remote_id else None

    if existing is None:
        async with store.transaction():
            created, report = await _create_class(store, definition, clock)
        return MergeOutcome(class_id=created.id, created=True, attributes=report)

    request = _exists_request(existing, await store.count_objects(existing.id))
    action = resolver.resolve(request)

    if action is None:
        return MergeOutcome(class_id=None, conflict=request)

    if action == Action.SKIP:
        logger.info("Skipping existing class %s", existing.identifier)
        return MergeOutcome(class_id=None, action=action)

    if action == Action.NEW:
        async with store.transaction():
            incoming = definition.model_copy(update={"remote_id": generate_remote_id()})
            created, report = await _create_class(store, incoming, clock, name_suffix=IMPORTED_SUFFIX)
        return MergeOutcome(class_id=created.id, action=action, created=True, attributes=report)

    async with store.transaction():
        updated = _replace_fields(existing, definition)
        await store.update_class(updated)
        report = await merge_attributes(store, updated, definition.attributes)
        await sync_class_groups(store, updated.id, definition.groups)
    logger.info("Class %s merged", updated.identifier)
    return MergeOutcome(class_id=updated.id, action=Action.REPLACE, attributes=report)
