"""Resources attached to topics (videos, articles, PDFs, links)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from .models import Resource, ResourceCreate, ResourceType, ResourceUpdate
from .store import EntityStore, generate_id

log = logging.getLogger(__name__)


class ResourceRepository:
    def __init__(self, store: EntityStore):
        self._store = store

    async def create_resource(self, data: ResourceCreate | dict[str, Any]) -> Resource:
        if not isinstance(data, ResourceCreate):
            data = ResourceCreate.model_validate(data)

        now = datetime.now(UTC)
        resource = Resource(id=generate_id(), **data.model_dump(), created_at=now, updated_at=now)
        await self._store.create(resource.model_dump(mode="json"))
        log.debug("Created %s resource %s for topic %s", resource.type.value, resource.id, resource.topic_id)
        return resource

    async def get_resource(self, resource_id: str) -> Resource | None:
        record = await self._store.find_by_id(resource_id)
        return Resource.model_validate(record) if record is not None else None

    async def update_resource(
        self, resource_id: str, updates: ResourceUpdate | dict[str, Any]
    ) -> Resource | None:
        """Shallow-merge updates and refresh updated_at. None if the resource is unknown."""
        if not isinstance(updates, ResourceUpdate):
            updates = ResourceUpdate.model_validate(updates)

        existing = await self.get_resource(resource_id)
        if existing is None:
            return None

        updated = Resource.model_validate(
            {
                **existing.model_dump(),
                **updates.model_dump(exclude_unset=True),
                "id": existing.id,
                "created_at": existing.created_at,
                "updated_at": datetime.now(UTC),
            }
        )
        stored = await self._store.update(resource_id, updated.model_dump(mode="json"))
        return updated if stored is not None else None

    async def delete_resource(self, resource_id: str) -> bool:
        return await self._store.delete(resource_id)

    async def delete_resources_for_topic(self, topic_id: str) -> int:
        records = await self._store.find_by_field("topic_id", topic_id)
        return await self._store.delete_many(record["id"] for record in records)

    async def list_resources(self) -> list[Resource]:
        return [Resource.model_validate(r) for r in await self._store.find_all()]

    async def get_resources_by_topic(self, topic_id: str) -> list[Resource]:
        records = await self._store.find_by_field("topic_id", topic_id)
        return [Resource.model_validate(r) for r in records]

    async def get_resources_by_type(self, resource_type: ResourceType | str) -> list[Resource]:
        records = await self._store.find_by_field("type", ResourceType(resource_type).value)
        return [Resource.model_validate(r) for r in records]

    async def search_resources(self, term: str) -> list[Resource]:
        """Case-insensitive substring match against description and url."""
        needle = term.lower()
        return [
            resource
            for resource in await self.list_resources()
            if needle in resource.description.lower() or needle in resource.url.lower()
        ]
