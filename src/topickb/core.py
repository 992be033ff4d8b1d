"""Core business logic for topickb.

KnowledgeBase wires the entity stores, repositories and the hierarchy engine
together for a single store root. The CLI (and any other caller) constructs
one explicitly and passes it around; there is no module-level instance.

Design principles:
- All functions are async for consistency
- Not-found is an absence marker; only store failures raise
"""

from __future__ import annotations

import logging
from pathlib import Path

from .config import RESOURCES_COLLECTION, TOPICS_COLLECTION, VERSIONS_COLLECTION
from .models import ShortestPathResult, Topic, TopicFilters, TopicTree
from .hierarchy import TopicHierarchy
from .resources import ResourceRepository
from .store import EntityStore, open_store
from .topics import TopicRepository

log = logging.getLogger(__name__)


class KnowledgeBase:
    """Topics, their version chains, resources and the hierarchy over them."""

    def __init__(
        self,
        topic_store: EntityStore,
        version_store: EntityStore,
        resource_store: EntityStore,
    ):
        self.topics = TopicRepository(topic_store, version_store)
        self.resources = ResourceRepository(resource_store)
        self.hierarchy = TopicHierarchy(self.topics)

    @classmethod
    def open(cls, root: Path | None = None) -> KnowledgeBase:
        """Open JSON collections under root, or in-memory collections if root is None."""
        if root is not None:
            log.debug("Opening store at %s", root)
        return cls(
            open_store(TOPICS_COLLECTION, root),
            open_store(VERSIONS_COLLECTION, root),
            open_store(RESOURCES_COLLECTION, root),
        )

    async def list_topics(self, filters: TopicFilters | None = None) -> list[Topic]:
        """List topics with optional parent filter, search and pagination.

        A search term replaces the candidate set with the search results (it
        does not narrow the parent filter). Pagination is 1-based and only
        applies when both page and limit are set.
        """
        filters = filters or TopicFilters()
        topics = await self.topics.list_topics()

        if filters.parent_topic_id:
            topics = [t for t in topics if t.parent_topic_id == filters.parent_topic_id]

        if filters.search:
            topics = await self.topics.search_topics(filters.search)

        if filters.page and filters.limit:
            start = (filters.page - 1) * filters.limit
            topics = topics[start : start + filters.limit]

        return topics

    async def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic, its version chain and the resources attached to it."""
        deleted = await self.topics.delete_topic(topic_id)
        if deleted:
            removed = await self.resources.delete_resources_for_topic(topic_id)
            if removed:
                log.debug("Removed %d resources of deleted topic %s", removed, topic_id)
        return deleted

    async def get_topic_tree(self, topic_id: str) -> TopicTree | None:
        return await self.hierarchy.build_topic_tree(topic_id)

    async def find_shortest_path(self, from_id: str, to_id: str) -> ShortestPathResult:
        return await self.hierarchy.find_shortest_path(from_id, to_id)
