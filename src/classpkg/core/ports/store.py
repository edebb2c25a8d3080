from contextlib import AbstractAsyncContextManager
from typing import Protocol

from classpkg.models import (
    ClassGroup,
    ContentObject,
    ObjectAttribute,
    PersistedAttribute,
    PersistedClass,
)


class ClassStore(Protocol):
    # classes
    async def fetch_class(self, class_id: int) -> PersistedClass | None: ...

    async def fetch_class_by_identifier(self, identifier: str) -> PersistedClass | None: ...

    async def fetch_class_by_remote_id(self, remote_id: str) -> PersistedClass | None: ...

    async def list_classes(self) -> list[PersistedClass]: ...

    async def create_class(self, record: PersistedClass) -> PersistedClass: ...

    async def update_class(self, record: PersistedClass) -> None: ...

    async def delete_class(self, class_id: int) -> None: ...

    # class attributes
    async def fetch_attributes(self, class_id: int) -> list[PersistedAttribute]: ...

    async def fetch_attribute_by_identifier(self, class_id: int, identifier: str) -> PersistedAttribute | None: ...

    async def create_attribute(self, record: PersistedAttribute) -> PersistedAttribute: ...

    async def update_attribute(self, record: PersistedAttribute) -> None: ...

    async def delete_attribute(self, attribute_id: int) -> None: ...

    # content objects
    async def fetch_object(self, object_id: int) -> ContentObject | None: ...

    async def fetch_object_by_node_id(self, node_id: int) -> ContentObject | None: ...

    async def fetch_object_by_url_alias(self, url_alias: str) -> ContentObject | None: ...

    async def fetch_objects(self, class_id: int) -> list[ContentObject]: ...

    async def count_objects(self, class_id: int) -> int: ...

    async def create_object(self, record: ContentObject) -> ContentObject: ...

    async def update_object(self, record: ContentObject) -> None: ...

    async def delete_object(self, object_id: int) -> None: ...

    # object attributes
    async def fetch_object_attributes(self, class_attribute_id: int) -> list[ObjectAttribute]: ...

    async def fetch_attributes_of_object(self, object_id: int) -> list[ObjectAttribute]: ...

    async def create_object_attribute(self, record: ObjectAttribute) -> ObjectAttribute: ...

    async def update_object_attribute(self, record: ObjectAttribute) -> None: ...

    async def delete_object_attribute(self, object_attribute_id: int) -> None: ...

    # class groups
    async def fetch_group(self, group_id: int) -> ClassGroup | None: ...

    async def fetch_group_by_name(self, name: str) -> ClassGroup | None: ...

    async def create_group(self, record: ClassGroup) -> ClassGroup: ...

    async def update_group(self, record: ClassGroup) -> None: ...

    async def fetch_class_group_ids(self, class_id: int) -> list[int]: ...

    async def add_class_to_group(self, class_id: int, group_id: int) -> None: ...

    async def remove_class_from_group(self, class_id: int, group_id: int) -> None: ...

    # lifecycle
    def transaction(self) -> AbstractAsyncContextManager[None]: ...

    async def ping(self) -> bool: ...

    async def dispose(self) -> None: ...
