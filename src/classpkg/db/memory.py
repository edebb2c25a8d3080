import copy
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from classpkg.errors import ClassPackageError, StoreError
from classpkg.models import (
    ClassGroup,
    ContentObject,
    ObjectAttribute,
    PersistedAttribute,
    PersistedClass,
)

logger = logging.getLogger(__name__)


@dataclass
class InMemoryState:
    classes: dict[int, PersistedClass] = field(default_factory=dict)
    attributes: dict[int, PersistedAttribute] = field(default_factory=dict)
    objects: dict[int, ContentObject] = field(default_factory=dict)
    object_attributes: dict[int, ObjectAttribute] = field(default_factory=dict)
    groups: dict[int, ClassGroup] = field(default_factory=dict)
    memberships: set[tuple[int, int]] = field(default_factory=set)
    next_ids: dict[str, int] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        value = self.next_ids.get(table, 1)
        self.next_ids[table] = value + 1
        return value


class InMemoryClassStore:
    """Dict-backed store; a transaction snapshots the state and restores it on error."""

    def __init__(self) -> None:
        self.state = InMemoryState()
        self._depth = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshot = copy.deepcopy(self.state)
        self._depth = 1
        try:
            yield
        except ClassPackageError:
            self.state = snapshot
            raise
        except Exception as exc:
            self.state = snapshot
            logger.error("Transaction rolled back: %s", exc)
            raise StoreError(f"Transaction rolled back: {exc}") from exc
        finally:
            self._depth = 0

    async def ping(self) -> bool:
        return True

    async def dispose(self) -> None:
        pass

    # -- classes ------------------------------------------------------------

    async def fetch_class(self, class_id: int) -> PersistedClass | None:
        return self.state.classes.get(class_id)

    async def fetch_class_by_identifier(self, identifier: str) -> PersistedClass | None:
        return next((c for c in self.state.classes.values() if c.identifier == identifier), None)

    async def fetch_class_by_remote_id(self, remote_id: str) -> PersistedClass | None:
        return next((c for c in self.state.classes.values() if c.remote_id == remote_id), None)

    async def list_classes(self) -> list[PersistedClass]:
        return sorted(self.state.classes.values(), key=lambda c: c.identifier)

    async def create_class(self, record: PersistedClass) -> PersistedClass:
        created = record.model_copy(update={"id": self.state.next_id("classes")})
        self.state.classes[created.id] = created
        return created

    async def update_class(self, record: PersistedClass) -> None:
        if record.id not in self.state.classes:
            raise StoreError(f"Class {record.id} does not exist")
        self.state.classes[record.id] = record

    async def delete_class(self, class_id: int) -> None:
        for attribute in [a for a in self.state.attributes.values() if a.class_id == class_id]:
            await self.delete_attribute(attribute.id)
        self.state.memberships = {m for m in self.state.memberships if m[0] != class_id}
        self.state.classes.pop(class_id, None)

    # -- class attributes ---------------------------------------------------

    async def fetch_attributes(self, class_id: int) -> list[PersistedAttribute]:
        found = [a for a in self.state.attributes.values() if a.class_id == class_id]
        return sorted(found, key=lambda a: (a.placement, a.id))

    async def fetch_attribute_by_identifier(self, class_id: int, identifier: str) -> PersistedAttribute | None:
        return next(
            (a for a in self.state.attributes.values() if a.class_id == class_id and a.identifier == identifier),
            None,
        )

    async def create_attribute(self, record: PersistedAttribute) -> PersistedAttribute:
        created = record.model_copy(update={"id": self.state.next_id("attributes")})
        self.state.attributes[created.id] = created
        return created

    async def update_attribute(self, record: PersistedAttribute) -> None:
        if record.id not in self.state.attributes:
            raise StoreError(f"Attribute {record.id} does not exist")
        self.state.attributes[record.id] = record

    async def delete_attribute(self, attribute_id: int) -> None:
        self.state.object_attributes = {
            k: v for k, v in self.state.object_attributes.items() if v.class_attribute_id != attribute_id
        }
        self.state.attributes.pop(attribute_id, None)

    # -- content objects ----------------------------------------------------

    async def fetch_object(self, object_id: int) -> ContentObject | None:
        return self.state.objects.get(object_id)

    async def fetch_object_by_node_id(self, node_id: int) -> ContentObject | None:
        return next((o for o in self.state.objects.values() if o.main_node_id == node_id), None)

    async def fetch_object_by_url_alias(self, url_alias: str) -> ContentObject | None:
        return next((o for o in self.state.objects.values() if o.url_alias == url_alias), None)

    async def fetch_objects(self, class_id: int) -> list[ContentObject]:
        return [o for o in self.state.objects.values() if o.class_id == class_id]

    async def count_objects(self, class_id: int) -> int:
        return len(await self.fetch_objects(class_id))

    async def create_object(self, record: ContentObject) -> ContentObject:
        created = record.model_copy(update={"id": self.state.next_id("objects")})
        self.state.objects[created.id] = created
        return created

    async def update_object(self, record: ContentObject) -> None:
        if record.id not in self.state.objects:
            raise StoreError(f"Object {record.id} does not exist")
        self.state.objects[record.id] = record

    async def delete_object(self, object_id: int) -> None:
        self.state.object_attributes = {
            k: v for k, v in self.state.object_attributes.items() if v.object_id != object_id
        }
        self.state.objects.pop(object_id, None)

    # -- object attributes --------------------------------------------------

    async def fetch_object_attributes(self, class_attribute_id: int) -> list[ObjectAttribute]:
        return [a for a in self.state.object_attributes.values() if a.class_attribute_id == class_attribute_id]

    async def fetch_attributes_of_object(self, object_id: int) -> list[ObjectAttribute]:
        return [a for a in self.state.object_attributes.values() if a.object_id == object_id]

    async def create_object_attribute(self, record: ObjectAttribute) -> ObjectAttribute:
        created = record.model_copy(update={"id": self.state.next_id("object_attributes")})
        self.state.object_attributes[created.id] = created
        return created

    async def update_object_attribute(self, record: ObjectAttribute) -> None:
        if record.id not in self.state.object_attributes:
            raise StoreError(f"Object attribute {record.id} does not exist")
        self.state.object_attributes[record.id] = record

    async def delete_object_attribute(self, object_attribute_id: int) -> None:
        self.state.object_attributes.pop(object_attribute_id, None)

    # -- class groups -------------------------------------------------------

    async def fetch_group(self, group_id: int) -> ClassGroup | None:
        return self.state.groups.get(group_id)

    async def fetch_group_by_name(self, name: str) -> ClassGroup | None:
        return next((g for g in self.state.groups.values() if g.name == name), None)

    async def create_group(self, record: ClassGroup) -> ClassGroup:
        group_id = record.id
        if not group_id or group_id in self.state.groups:
            group_id = self.state.next_id("groups")
            while group_id in self.state.groups:
                group_id = self.state.next_id("groups")
        created = record.model_copy(update={"id": group_id})
        self.state.groups[created.id] = created
        return created

    async def update_group(self, record: ClassGroup) -> None:
        self.state.groups[record.id] = record

    async def fetch_class_group_ids(self, class_id: int) -> list[int]:
        return sorted(group_id for cid, group_id in self.state.memberships if cid == class_id)

    async def add_class_to_group(self, class_id: int, group_id: int) -> None:
        self.state.memberships.add((class_id, group_id))

    async def remove_class_from_group(self, class_id: int, group_id: int) -> None:
        self.state.memberships.discard((class_id, group_id))
