import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import sqlalchemy as sa
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from classpkg.db.tables import (
    class_attributes,
    class_group_members,
    class_groups,
    content_classes,
    content_objects,
    object_attributes,
)
from classpkg.errors import ClassPackageError, StoreError
from classpkg.models import (
    ClassGroup,
    ContentObject,
    ObjectAttribute,
    PersistedAttribute,
    PersistedClass,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


@asynccontextmanager
async def _use_conn(engine: AsyncEngine, conn: AsyncConnection | None = None) -> AsyncIterator[AsyncConnection]:
    """Yield an existing connection or open a new transactional one."""
    if conn is not None:
        yield conn
    else:
        async with engine.begin() as new_conn:
            yield new_conn


def _to_model(model: type[M], row: Any) -> M:
    return model.model_validate(dict(row._mapping))


def _values(record: BaseModel) -> dict[str, Any]:
    return record.model_dump(exclude={"id"})


class SqlClassStore:
    """ClassStore on SQLAlchemy async Core.

    Outside ``transaction()`` every call runs in its own short transaction.
    Inside, all calls share one connection that commits or rolls back as a whole.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._conn: AsyncConnection | None = None

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        if self._conn is not None:
            yield self._conn
            return
        try:
            async with _use_conn(self._engine) as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._conn is not None:
            yield
            return
        try:
            async with self._engine.begin() as conn:
                self._conn = conn
                try:
                    yield
                finally:
                    self._conn = None
        except ClassPackageError:
            raise
        except Exception as exc:
            logger.error("Transaction rolled back: %s", exc)
            raise StoreError(f"Transaction rolled back: {exc}") from exc

    async def ping(self) -> bool:
        try:
            async with self._connection() as conn:
                await conn.execute(sa.select(sa.func.count()).select_from(content_classes))
        except StoreError:
            return False
        return True

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def _fetch_one(self, model: type[M], query: sa.Select) -> M | None:
        async with self._connection() as conn:
            row = (await conn.execute(query)).first()
        return _to_model(model, row) if row is not None else None

    async def _fetch_all(self, model: type[M], query: sa.Select) -> list[M]:
        async with self._connection() as conn:
            rows = (await conn.execute(query)).all()
        return [_to_model(model, row) for row in rows]

    async def _insert(self, table: sa.Table, values: dict[str, Any]) -> int:
        async with self._connection() as conn:
            result = await conn.execute(sa.insert(table).values(**values))
        return int(result.inserted_primary_key[0])

    async def _update(self, table: sa.Table, record: BaseModel) -> None:
        async with self._connection() as conn:
            result = await conn.execute(sa.update(table).where(table.c.id == record.id).values(**_values(record)))
        if result.rowcount == 0:
            raise StoreError(f"{table.name} row {record.id} does not exist")

    async def _execute(self, statement: sa.Executable) -> None:
        async with self._connection() as conn:
            await conn.execute(statement)

    # -- classes ------------------------------------------------------------

    async def fetch_class(self, class_id: int) -> PersistedClass | None:
        return await self._fetch_one(PersistedClass, sa.select(content_classes).where(content_classes.c.id == class_id))

    async def fetch_class_by_identifier(self, identifier: str) -> PersistedClass | None:
        query = sa.select(content_classes).where(content_classes.c.identifier == identifier)
        return await self._fetch_one(PersistedClass, query)

    async def fetch_class_by_remote_id(self, remote_id: str) -> PersistedClass | None:
        query = sa.select(content_classes).where(content_classes.c.remote_id == remote_id)
        return await self._fetch_one(PersistedClass, query)

    async def list_classes(self) -> list[PersistedClass]:
        return await self._fetch_all(PersistedClass, sa.select(content_classes).order_by(content_classes.c.identifier))

    async def create_class(self, record: PersistedClass) -> PersistedClass:
        class_id = await self._insert(content_classes, _values(record))
        return record.model_copy(update={"id": class_id})

    async def update_class(self, record: PersistedClass) -> None:
        await self._update(content_classes, record)

    async def delete_class(self, class_id: int) -> None:
        attribute_ids = sa.select(class_attributes.c.id).where(class_attributes.c.class_id == class_id)
        async with self.transaction():
            await self._execute(
                sa.delete(object_attributes).where(object_attributes.c.class_attribute_id.in_(attribute_ids))
            )
            await self._execute(sa.delete(class_attributes).where(class_attributes.c.class_id == class_id))
            await self._execute(sa.delete(class_group_members).where(class_group_members.c.class_id == class_id))
            await self._execute(sa.delete(content_classes).where(content_classes.c.id == class_id))

    # -- class attributes ---------------------------------------------------

    async def fetch_attributes(self, class_id: int) -> list[PersistedAttribute]:
        query = (
            sa.select(class_attributes)
            .where(class_attributes.c.class_id == class_id)
            .order_by(class_attributes.c.placement, class_attributes.c.id)
        )
        return await self._fetch_all(PersistedAttribute, query)

    async def fetch_attribute_by_identifier(self, class_id: int, identifier: str) -> PersistedAttribute | None:
        query = sa.select(class_attributes).where(
            class_attributes.c.class_id == class_id,
            class_attributes.c.identifier == identifier,
        )
        return await self._fetch_one(PersistedAttribute, query)

    async def create_attribute(self, record: PersistedAttribute) -> PersistedAttribute:
        attribute_id = await self._insert(class_attributes, _values(record))
        return record.model_copy(update={"id": attribute_id})

    async def update_attribute(self, record: PersistedAttribute) -> None:
        await self._update(class_attributes, record)

    async def delete_attribute(self, attribute_id: int) -> None:
        async with self.transaction():
            await self._execute(
                sa.delete(object_attributes).where(object_attributes.c.class_attribute_id == attribute_id)
            )
            await self._execute(sa.delete(class_attributes).where(class_attributes.c.id == attribute_id))

    # -- content objects ----------------------------------------------------

    async def fetch_object(self, object_id: int) -> ContentObject | None:
        return await self._fetch_one(ContentObject, sa.select(content_objects).where(content_objects.c.id == object_id))

    async def fetch_object_by_node_id(self, node_id: int) -> ContentObject | None:
        query = sa.select(content_objects).where(content_objects.c.main_node_id == node_id)
        return await self._fetch_one(ContentObject, query)

    async def fetch_object_by_url_alias(self, url_alias: str) -> ContentObject | None:
        query = sa.select(content_objects).where(content_objects.c.url_alias == url_alias)
        return await self._fetch_one(ContentObject, query)

    async def fetch_objects(self, class_id: int) -> list[ContentObject]:
        query = sa.select(content_objects).where(content_objects.c.class_id == class_id).order_by(content_objects.c.id)
        return await self._fetch_all(ContentObject, query)

    async def count_objects(self, class_id: int) -> int:
        query = sa.select(sa.func.count()).select_from(content_objects).where(content_objects.c.class_id == class_id)
        async with self._connection() as conn:
            return int((await conn.execute(query)).scalar_one())

    async def create_object(self, record: ContentObject) -> ContentObject:
        object_id = await self._insert(content_objects, _values(record))
        return record.model_copy(update={"id": object_id})

    async def update_object(self, record: ContentObject) -> None:
        await self._update(content_objects, record)

    async def delete_object(self, object_id: int) -> None:
        async with self.transaction():
            await self._execute(sa.delete(object_attributes).where(object_attributes.c.object_id == object_id))
            await self._execute(sa.delete(content_objects).where(content_objects.c.id == object_id))

    # -- object attributes --------------------------------------------------

    async def fetch_object_attributes(self, class_attribute_id: int) -> list[ObjectAttribute]:
        query = sa.select(object_attributes).where(object_attributes.c.class_attribute_id == class_attribute_id)
        return await self._fetch_all(ObjectAttribute, query)

    async def fetch_attributes_of_object(self, object_id: int) -> list[ObjectAttribute]:
        query = sa.select(object_attributes).where(object_attributes.c.object_id == object_id)
        return await self._fetch_all(ObjectAttribute, query)

    async def create_object_attribute(self, record: ObjectAttribute) -> ObjectAttribute:
        object_attribute_id = await self._insert(object_attributes, _values(record))
        return record.model_copy(update={"id": object_attribute_id})

    async def update_object_attribute(self, record: ObjectAttribute) -> None:
        await self._update(object_attributes, record)

    async def delete_object_attribute(self, object_attribute_id: int) -> None:
        await self._execute(sa.delete(object_attributes).where(object_attributes.c.id == object_attribute_id))

    # -- class groups -------------------------------------------------------

    async def fetch_group(self, group_id: int) -> ClassGroup | None:
        return await self._fetch_one(ClassGroup, sa.select(class_groups).where(class_groups.c.id == group_id))

    async def fetch_group_by_name(self, name: str) -> ClassGroup | None:
        return await self._fetch_one(ClassGroup, sa.select(class_groups).where(class_groups.c.name == name))

    async def create_group(self, record: ClassGroup) -> ClassGroup:
        values = _values(record)
        if record.id and await self.fetch_group(record.id) is None:
            values["id"] = record.id
        group_id = await self._insert(class_groups, values)
        return record.model_copy(update={"id": group_id})

    async def update_group(self, record: ClassGroup) -> None:
        await self._update(class_groups, record)

    async def fetch_class_group_ids(self, class_id: int) -> list[int]:
        query = (
            sa.select(class_group_members.c.group_id)
            .where(class_group_members.c.class_id == class_id)
            .order_by(class_group_members.c.group_id)
        )
        async with self._connection() as conn:
            return [int(value) for value in (await conn.execute(query)).scalars()]

    async def add_class_to_group(self, class_id: int, group_id: int) -> None:
        await self._execute(sa.insert(class_group_members).values(class_id=class_id, group_id=group_id))

    async def remove_class_from_group(self, class_id: int, group_id: int) -> None:
        await self._execute(
            sa.delete(class_group_members).where(
                class_group_members.c.class_id == class_id,
                class_group_members.c.group_id == group_id,
            )
        )
