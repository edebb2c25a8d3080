"""Move existing content objects to a different class."""

import logging

from classpkg.core.ports.store import ClassStore
from classpkg.errors import NotFoundError
from classpkg.models import ContentObject, ObjectAttribute

logger = logging.getLogger(__name__)


async def change_object_class(store: ClassStore, object_id: int, identifier: str) -> ContentObject:
    """Make the object an instance of the class *identifier*.

    Object attributes are matched to the class attributes by identifier and
    keep their data. Missing ones are created empty, one per object language;
    the ones the class no longer defines are deleted.
    """
    content_object = await store.fetch_object(object_id)
    persisted = await store.fetch_class_by_identifier(identifier)
    if content_object is None or persisted is None:
        raise NotFoundError(f"Invalid object id ({object_id}) or class identifier ({identifier})")

    logger.info("Changing object %r to be of class %s", content_object.name, persisted.identifier)
    class_attributes = {attribute.identifier: attribute for attribute in await store.fetch_attributes(persisted.id)}

    async with store.transaction():
        updated = content_object.model_copy(update={"class_id": persisted.id})
        await store.update_object(updated)

        present: set[str] = set()
        for object_attribute in await store.fetch_attributes_of_object(content_object.id):
            class_attribute = class_attributes.get(object_attribute.identifier)
            if class_attribute is None:
                logger.info("Removing attribute %s", object_attribute.identifier)
                await store.delete_object_attribute(object_attribute.id)
                continue
            present.add(object_attribute.identifier)
            if object_attribute.class_attribute_id != class_attribute.id:
                await store.update_object_attribute(
                    object_attribute.model_copy(update={"class_attribute_id": class_attribute.id})
                )

        for attr_identifier, class_attribute in class_attributes.items():
            if attr_identifier in present:
                continue
            logger.info("Initializing attribute %s", attr_identifier)
            for language in content_object.languages or [""]:
                await store.create_object_attribute(
                    ObjectAttribute(
                        object_id=content_object.id,
                        class_attribute_id=class_attribute.id,
                        identifier=attr_identifier,
                        language_code=language,
                    )
                )

    return updated


async def change_node_class(store: ClassStore, node_ref: str | int, identifier: str) -> ContentObject:
    """Like ``change_object_class``, addressing the object by node id or URL alias."""
    ref = str(node_ref)
    if ref.isdigit():
        content_object = await store.fetch_object_by_node_id(int(ref))
    else:
        content_object = await store.fetch_object_by_url_alias(ref.strip("/"))
    if content_object is None:
        raise NotFoundError(f"Node {node_ref} not found.")
    return await change_object_class(store, content_object.id, identifier)
