"""In-memory composite view over a flat list of topics.

A TopicComponent is either a TopicLeaf (cannot hold children) or a
TopicComposite (ordered child list). Operations dispatch on the variant with
``match``; asking a leaf to take a child is a programming error and raises
LeafTopicError.

Nothing here touches a store: the view is built from topics the caller
already has and is discarded afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, TypeAlias

from .models import Topic

log = logging.getLogger(__name__)


class LeafTopicError(TypeError):
    """Raised when a child operation is attempted on a leaf component."""

    pass


@dataclass(eq=False)
class TopicLeaf:
    topic: Topic


@dataclass(eq=False)
class TopicComposite:
    topic: Topic
    children: list[TopicComponent] = field(default_factory=list)


TopicComponent: TypeAlias = TopicLeaf | TopicComposite


# ─────────────────────────────────────────────────────────────────────────────
# Construction
# ─────────────────────────────────────────────────────────────────────────────


def create_component(topic: Topic, has_children: bool = False) -> TopicComponent:
    """A composite with no children yet if has_children, else a leaf."""
    if has_children:
        return TopicComposite(topic)
    return TopicLeaf(topic)


def create_from_topic_list(topics: Iterable[Topic]) -> list[TopicComponent]:
    """One component per topic; a topic is composite if any other lists it as parent."""
    topics = list(topics)
    parent_ids = {t.parent_topic_id for t in topics if t.parent_topic_id}
    return [create_component(topic, topic.id in parent_ids) for topic in topics]


class TopicTreeBuilder:
    """Accumulate components by topic id, then link them into a forest."""

    def __init__(self) -> None:
        self._components: dict[str, TopicComponent] = {}

    def add_topic(self, topic: Topic, has_children: bool = False) -> TopicTreeBuilder:
        self._components[topic.id] = create_component(topic, has_children)
        return self

    def build_hierarchy(self) -> list[TopicComponent]:
        """Attach every child to its parent composite and return the roots.

        Children whose parent is missing from the builder, or is a leaf, are
        left out of the hierarchy.
        """
        roots: list[TopicComponent] = []
        children: list[TopicComponent] = []
        for component in self._components.values():
            if component.topic.parent_topic_id:
                children.append(component)
            else:
                roots.append(component)

        for child in children:
            parent = self._components.get(child.topic.parent_topic_id)
            match parent:
                case TopicComposite():
                    add_child(parent, child)
                case TopicLeaf():
                    log.debug("Dropping %s: parent %s is a leaf", child.topic.id, parent.topic.id)
                case None:
                    log.debug("Dropping %s: parent not in builder", child.topic.id)

        return roots

    def clear(self) -> None:
        self._components.clear()


def build_forest(topics: Iterable[Topic]) -> list[TopicComponent]:
    """Build the composite forest for a flat topic list in one pass."""
    builder = TopicTreeBuilder()
    for component in create_from_topic_list(topics):
        builder.add_topic(component.topic, has_children=not is_leaf(component))
    return builder.build_hierarchy()


# ─────────────────────────────────────────────────────────────────────────────
# Component operations
# ─────────────────────────────────────────────────────────────────────────────


def get_topic(component: TopicComponent) -> Topic:
    return component.topic


def is_leaf(component: TopicComponent) -> bool:
    return isinstance(component, TopicLeaf)


def get_children(component: TopicComponent) -> list[TopicComponent]:
    match component:
        case TopicComposite(children=children):
            return children
        case TopicLeaf():
            return []


def add_child(parent: TopicComponent, child: TopicComponent) -> None:
    match parent:
        case TopicComposite(children=children):
            children.append(child)
        case TopicLeaf():
            raise LeafTopicError("cannot add child to leaf topic")


def remove_child(parent: TopicComponent, child: TopicComponent) -> None:
    """Remove child by identity; a child that is not present is ignored."""
    match parent:
        case TopicComposite(children=children):
            for index, candidate in enumerate(children):
                if candidate is child:
                    del children[index]
                    return
        case TopicLeaf():
            raise LeafTopicError("cannot remove child from leaf topic")


def child_count(component: TopicComponent) -> int:
    return len(get_children(component))


def has_children(component: TopicComponent) -> bool:
    return child_count(component) > 0


def get_depth(component: TopicComponent) -> int:
    """Edges on the longest downward path; 0 for leaves and empty composites."""
    match component:
        case TopicComposite(children=children) if children:
            return 1 + max(get_depth(child) for child in children)
        case _:
            return 0


def get_path(component: TopicComponent) -> list[str]:
    # Components do not know their parent, so the path is just their own name.
    return [component.topic.name]


def find_child_by_name(component: TopicComponent, name: str) -> TopicComponent | None:
    """Depth-first search of the descendants for a topic with this exact name."""
    for child in get_children(component):
        if child.topic.name == name:
            return child
        found = find_child_by_name(child, name)
        if found is not None:
            return found
    return None


def get_all_descendants(component: TopicComponent) -> list[TopicComponent]:
    """Every component below this one, depth-first pre-order."""
    descendants: list[TopicComponent] = []
    for child in get_children(component):
        descendants.append(child)
        descendants.extend(get_all_descendants(child))
    return descendants


def get_all_topics(component: TopicComponent) -> list[Topic]:
    """This topic followed by every descendant topic, each exactly once."""
    return [component.topic, *(d.topic for d in get_all_descendants(component))]
