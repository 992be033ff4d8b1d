"""Tests for the KnowledgeBase facade in topickb.core.

Covers the behaviour that spans repositories: filtered listing with
pagination, cascading deletes, and a file-backed round trip.
"""

import pytest

from topickb.core import KnowledgeBase
from topickb.models import TopicFilters
from topickb.store import JsonFileStore, MemoryStore


async def _seed(kb: KnowledgeBase):
    root = await kb.topics.create_topic({"name": "Databases", "content": "storage engines"})
    children = [
        await kb.topics.create_topic({"name": name, "content": body, "parent_topic_id": root.id})
        for name, body in [
            ("Indexes", "b-trees and hash indexes"),
            ("Transactions", "isolation levels"),
            ("Replication", "leaders and followers"),
        ]
    ]
    other = await kb.topics.create_topic({"name": "Networking", "content": "tcp, index of RFCs"})
    return root, children, other


class TestOpen:
    def test_open_without_root_uses_memory(self):
        kb = KnowledgeBase.open()
        assert isinstance(kb.topics._topics, MemoryStore)

    def test_open_with_root_uses_json_files(self, tmp_path):
        kb = KnowledgeBase.open(tmp_path)
        assert isinstance(kb.topics._topics, JsonFileStore)
        assert kb.topics._topics.path == tmp_path / "topics.json"


class TestListTopics:
    @pytest.mark.asyncio
    async def test_no_filters_lists_everything(self, kb):
        root, children, other = await _seed(kb)

        topics = await kb.list_topics()

        assert [t.id for t in topics] == [root.id, *(c.id for c in children), other.id]

    @pytest.mark.asyncio
    async def test_parent_filter(self, kb):
        root, children, _ = await _seed(kb)

        topics = await kb.list_topics(TopicFilters(parent_topic_id=root.id))

        assert [t.id for t in topics] == [c.id for c in children]

    @pytest.mark.asyncio
    async def test_search_replaces_candidates(self, kb):
        root, children, other = await _seed(kb)

        topics = await kb.list_topics(TopicFilters(parent_topic_id=root.id, search="index"))

        # Search runs over every topic, not only the parent's children
        assert [t.id for t in topics] == [children[0].id, other.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "page,limit,expected",
        [
            (1, 2, [0, 1]),
            (2, 2, [2, 3]),
            (3, 2, [4]),
            (4, 2, []),
            (None, 2, [0, 1, 2, 3, 4]),
            (2, None, [0, 1, 2, 3, 4]),
        ],
    )
    async def test_pagination(self, kb, page, limit, expected):
        root, children, other = await _seed(kb)
        all_ids = [root.id, *(c.id for c in children), other.id]

        topics = await kb.list_topics(TopicFilters(page=page, limit=limit))

        assert [t.id for t in topics] == [all_ids[i] for i in expected]


class TestDeleteTopic:
    @pytest.mark.asyncio
    async def test_delete_cascades_to_versions_and_resources(self, kb):
        root, children, _ = await _seed(kb)
        await kb.resources.create_resource({"topic_id": root.id, "url": "https://a"})
        kept = await kb.resources.create_resource({"topic_id": children[0].id, "url": "https://b"})

        assert await kb.delete_topic(root.id) is True

        assert await kb.topics.get_versions(root.id) == []
        assert await kb.resources.get_resources_by_topic(root.id) == []
        assert await kb.resources.list_resources() == [kept]

    @pytest.mark.asyncio
    async def test_delete_missing(self, kb):
        assert await kb.delete_topic("missing") is False


class TestFileBackedRoundTrip:
    @pytest.mark.asyncio
    async def test_state_survives_reopen(self, tmp_path):
        kb = KnowledgeBase.open(tmp_path)
        a = await kb.topics.create_topic({"name": "Root", "content": "r"})
        b = await kb.topics.create_topic({"name": "Child1", "parent_topic_id": a.id})
        c = await kb.topics.create_topic({"name": "Child2", "parent_topic_id": a.id})
        await kb.topics.update_topic(a.id, {"name": "Root2"})

        reopened = KnowledgeBase.open(tmp_path)

        assert (await reopened.topics.get_topic(a.id)).version == 2
        assert (await reopened.topics.get_version(a.id, 1)).name == "Root"
        path = await reopened.find_shortest_path(b.id, c.id)
        assert path.path == [b.id, a.id, c.id]
        tree = await reopened.get_topic_tree(a.id)
        assert [child.name for child in tree.children] == ["Child1", "Child2"]
