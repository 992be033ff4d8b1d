"""Topic repository: CRUD for topics with automatic version-chain maintenance.

Every topic owns an append-only chain of TopicVersion snapshots numbered
1..N. Creating a topic seeds version 1; every update appends the snapshot of
the state it just wrote.

Design principles:
- All functions are async; the store handle is injected, never global
- Missing topics are reported as None / False / [], never raised
- Store failures propagate unchanged
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import UTC, datetime
from typing import Any

from .models import Topic, TopicCreate, TopicUpdate, TopicVersion
from .store import EntityStore, generate_id

log = logging.getLogger(__name__)


class TopicRepository:
    """Topics plus their version chains, backed by two entity stores."""

    def __init__(self, topics: EntityStore, versions: EntityStore):
        self._topics = topics
        self._versions = versions
        # Serializes update/delete per topic id within this process so that
        # concurrent updates append contiguous version numbers. An entry lives
        # only while some coroutine holds or waits on its lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, topic_id: str) -> asyncio.Lock:
        lock = self._locks.get(topic_id)
        if lock is None:
            lock = self._locks[topic_id] = asyncio.Lock()
        return lock

    async def _append_version(self, topic: Topic) -> TopicVersion:
        snapshot = TopicVersion.from_topic(topic, generate_id())
        await self._versions.create(snapshot.model_dump(mode="json"))
        return snapshot

    # ─────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────

    async def create_topic(self, data: TopicCreate | dict[str, Any]) -> Topic:
        """Create a topic at version 1 and seed its version chain."""
        if not isinstance(data, TopicCreate):
            data = TopicCreate.model_validate(data)

        now = datetime.now(UTC)
        topic = Topic(
            id=generate_id(),
            name=data.name,
            content=data.content,
            version=1,
            parent_topic_id=data.parent_topic_id,
            created_at=now,
            updated_at=now,
        )
        await self._topics.create(topic.model_dump(mode="json"))
        await self._append_version(topic)
        log.debug("Created topic %s (%r)", topic.id, topic.name)
        return topic

    async def update_topic(
        self, topic_id: str, updates: TopicUpdate | dict[str, Any]
    ) -> Topic | None:
        """Merge updates into a topic and append a new version.

        The new version number is one past the highest version recorded in the
        chain, so the chain stays contiguous even if the stored counter drifted.

        Returns:
            The updated topic, or None if no topic has this id.
        """
        if not isinstance(updates, TopicUpdate):
            updates = TopicUpdate.model_validate(updates)
        changes = updates.model_dump(exclude_unset=True)

        async with self._lock_for(topic_id):
            existing = await self.get_topic(topic_id)
            if existing is None:
                return None

            chain = await self.get_versions(topic_id)
            new_version = max((v.version for v in chain), default=existing.version) + 1

            updated = Topic.model_validate(
                {
                    **existing.model_dump(),
                    **changes,
                    "id": existing.id,
                    "created_at": existing.created_at,
                    "version": new_version,
                    "updated_at": datetime.now(UTC),
                }
            )
            stored = await self._topics.update(topic_id, updated.model_dump(mode="json"))
            if stored is None:
                # Deleted underneath us by another writer
                return None

            await self._append_version(updated)

        log.debug("Updated topic %s to version %d", topic_id, new_version)
        return updated

    async def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic together with its whole version chain.

        Returns:
            True if a topic was deleted, False if none existed.
        """
        async with self._lock_for(topic_id):
            if await self._topics.find_by_id(topic_id) is None:
                return False

            versions = await self._versions.find_by_field("topic_id", topic_id)
            await self._versions.delete_many(record["id"] for record in versions)
            deleted = await self._topics.delete(topic_id)

        if deleted:
            log.debug("Deleted topic %s and %d versions", topic_id, len(versions))
        return deleted

    # ─────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────

    async def get_topic(self, topic_id: str) -> Topic | None:
        record = await self._topics.find_by_id(topic_id)
        return Topic.model_validate(record) if record is not None else None

    async def list_topics(self) -> list[Topic]:
        """All topics in store listing order."""
        return [Topic.model_validate(r) for r in await self._topics.find_all()]

    async def get_versions(self, topic_id: str) -> list[TopicVersion]:
        """The version chain of a topic, oldest first. Empty if unknown."""
        records = await self._versions.find_by_field("topic_id", topic_id)
        versions = [TopicVersion.model_validate(r) for r in records]
        versions.sort(key=lambda v: v.version)
        return versions

    async def get_version(self, topic_id: str, version: int) -> TopicVersion | None:
        for snapshot in await self.get_versions(topic_id):
            if snapshot.version == version:
                return snapshot
        return None

    async def get_children(self, parent_id: str) -> list[Topic]:
        records = await self._topics.find_by_field("parent_topic_id", parent_id)
        return [Topic.model_validate(r) for r in records]

    async def get_root_topics(self) -> list[Topic]:
        return [t for t in await self.list_topics() if not t.parent_topic_id]

    async def search_topics(self, term: str) -> list[Topic]:
        """Case-insensitive substring match against name and content."""
        needle = term.lower()
        return [
            topic
            for topic in await self.list_topics()
            if needle in topic.name.lower() or needle in topic.content.lower()
        ]
