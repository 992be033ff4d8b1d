"""Read-only graph operations over the topic hierarchy.

Parent/child links form a forest. For path finding they are treated as
undirected, unweighted edges.
"""

from __future__ import annotations

import logging
from collections import deque

from .models import ShortestPathResult, Topic, TopicTree
from .topics import TopicRepository

log = logging.getLogger(__name__)


class TopicHierarchy:
    """Tree construction and shortest-path search over a TopicRepository."""

    def __init__(self, repository: TopicRepository):
        self._repository = repository

    async def build_topic_tree(self, root_id: str) -> TopicTree | None:
        """Expand root_id and its descendants into a TopicTree.

        Children keep store listing order. A topic that was already placed in
        the tree (a parent cycle) is not expanded a second time.

        Returns:
            The tree, or None if root_id does not exist.
        """
        root = await self._repository.get_topic(root_id)
        if root is None:
            return None

        return await self._expand(root)

    async def _expand(self, root: Topic) -> TopicTree:
        visited: set[str] = {root.id}
        children: dict[str, list[Topic]] = {}
        expanded: list[Topic] = []
        stack = [root]

        while stack:
            topic = stack.pop()
            expanded.append(topic)
            placed: list[Topic] = []
            for child in await self._repository.get_children(topic.id):
                if child.id in visited:
                    log.warning(
                        "Parent cycle detected: %s lists already visited %s as child",
                        topic.id,
                        child.id,
                    )
                    continue
                visited.add(child.id)
                placed.append(child)
            children[topic.id] = placed
            stack.extend(reversed(placed))

        # Every topic is expanded after its parent, so walking backwards builds
        # each subtree before the node that holds it.
        built: dict[str, TopicTree] = {}
        for topic in reversed(expanded):
            built[topic.id] = TopicTree(
                **topic.model_dump(),
                children=[built[child.id] for child in children[topic.id]],
            )
        return built[root.id]

    async def find_shortest_path(self, from_id: str, to_id: str) -> ShortestPathResult:
        """Breadth-first search between two topics.

        Edges run from each topic to its parent and to its children. The first
        path found is a minimum-edge path.
        """
        topics = await self._repository.list_topics()
        by_id = {topic.id: topic for topic in topics}
        if from_id not in by_id or to_id not in by_id:
            return ShortestPathResult.not_found()

        children: dict[str, list[str]] = {}
        for topic in topics:
            if topic.parent_topic_id:
                children.setdefault(topic.parent_topic_id, []).append(topic.id)

        visited: set[str] = {from_id}
        queue: deque[list[str]] = deque([[from_id]])

        while queue:
            path = queue.popleft()
            current = path[-1]
            if current == to_id:
                return ShortestPathResult(path=path, distance=len(path) - 1, exists=True)

            neighbors: list[str] = []
            parent_id = by_id[current].parent_topic_id
            if parent_id and parent_id in by_id:
                neighbors.append(parent_id)
            neighbors.extend(children.get(current, []))

            for neighbor in neighbors:
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append([*path, neighbor])

        return ShortestPathResult.not_found()


def flatten_tree(tree: TopicTree) -> list[Topic]:
    """All topics in a tree, depth-first pre-order, children stripped."""
    flat: list[Topic] = []
    stack = [tree]
    while stack:
        node = stack.pop()
        flat.append(Topic(**node.model_dump(exclude={"children"})))
        stack.extend(reversed(node.children))
    return flat
