"""Tests for the composite (leaf / composite) topic view."""

import pytest

from conftest import make_topic
from topickb.composite import (
    LeafTopicError,
    TopicComposite,
    TopicLeaf,
    TopicTreeBuilder,
    add_child,
    build_forest,
    child_count,
    create_component,
    create_from_topic_list,
    find_child_by_name,
    get_all_descendants,
    get_all_topics,
    get_children,
    get_depth,
    get_path,
    has_children,
    is_leaf,
    remove_child,
)


@pytest.fixture
def topics():
    """
    root
    ├── a
    │   └── a1
    │       └── a1x
    └── b
    other
    """
    return [
        make_topic("root", "Root"),
        make_topic("a", "A", parent="root"),
        make_topic("b", "B", parent="root"),
        make_topic("a1", "A1", parent="a"),
        make_topic("a1x", "A1X", parent="a1"),
        make_topic("other", "Other"),
    ]


class TestCreateComponent:
    def test_leaf_without_children(self):
        component = create_component(make_topic("t"))
        assert isinstance(component, TopicLeaf)
        assert is_leaf(component)
        assert get_children(component) == []

    def test_composite_with_children(self):
        component = create_component(make_topic("t"), has_children=True)
        assert isinstance(component, TopicComposite)
        assert not is_leaf(component)
        assert get_children(component) == []
        assert not has_children(component)

    def test_from_topic_list_marks_parents_as_composites(self, topics):
        components = create_from_topic_list(topics)

        kinds = {c.topic.id: is_leaf(c) for c in components}
        assert kinds == {
            "root": False,
            "a": False,
            "b": True,
            "a1": False,
            "a1x": True,
            "other": True,
        }
        assert [c.topic.id for c in components] == [t.id for t in topics]


class TestLeafMisuse:
    def test_add_child_to_leaf_raises(self):
        leaf = TopicLeaf(make_topic("leaf"))
        with pytest.raises(LeafTopicError, match="cannot add child to leaf topic"):
            add_child(leaf, TopicLeaf(make_topic("x")))

    def test_remove_child_from_leaf_raises(self):
        leaf = TopicLeaf(make_topic("leaf"))
        with pytest.raises(LeafTopicError, match="cannot remove child from leaf topic"):
            remove_child(leaf, TopicLeaf(make_topic("x")))

    def test_leaf_error_is_a_type_error(self):
        assert issubclass(LeafTopicError, TypeError)


class TestCompositeOperations:
    def test_add_and_remove_child(self):
        parent = TopicComposite(make_topic("p"))
        first = TopicLeaf(make_topic("c1"))
        second = TopicLeaf(make_topic("c2"))

        add_child(parent, first)
        add_child(parent, second)
        assert child_count(parent) == 2
        assert has_children(parent)

        remove_child(parent, first)
        assert get_children(parent) == [second]

        # Removing something that is not a child is a no-op
        remove_child(parent, first)
        assert get_children(parent) == [second]

    def test_depth(self, topics):
        roots = build_forest(topics)
        root = next(r for r in roots if r.topic.id == "root")
        other = next(r for r in roots if r.topic.id == "other")

        assert get_depth(root) == 3
        assert get_depth(other) == 0
        assert get_depth(TopicComposite(make_topic("empty"))) == 0

    def test_path_is_own_name(self):
        assert get_path(TopicLeaf(make_topic("t", "Topic"))) == ["Topic"]

    def test_find_child_by_name_searches_recursively(self, topics):
        root = build_forest(topics)[0]

        found = find_child_by_name(root, "A1X")
        assert found is not None
        assert found.topic.id == "a1x"
        assert find_child_by_name(root, "Root") is None
        assert find_child_by_name(root, "Missing") is None

    def test_descendants_in_depth_first_order(self, topics):
        root = build_forest(topics)[0]

        assert [d.topic.id for d in get_all_descendants(root)] == ["a", "a1", "a1x", "b"]
        assert get_all_descendants(TopicLeaf(make_topic("leaf"))) == []

    def test_all_topics_lists_each_topic_once(self, topics):
        root = build_forest(topics)[0]

        ids = [t.id for t in get_all_topics(root)]
        assert ids == ["root", "a", "a1", "a1x", "b"]
        assert len(ids) == len(set(ids))


class TestTreeBuilder:
    def test_build_forest_returns_roots_in_order(self, topics):
        roots = build_forest(topics)
        assert [r.topic.id for r in roots] == ["root", "other"]

    def test_builder_is_chainable(self):
        builder = TopicTreeBuilder()
        result = builder.add_topic(make_topic("r"), has_children=True).add_topic(
            make_topic("c", parent="r")
        )
        assert result is builder

        roots = builder.build_hierarchy()
        assert [r.topic.id for r in roots] == ["r"]
        assert [c.topic.id for c in get_children(roots[0])] == ["c"]

    def test_children_of_leaf_parent_are_dropped(self):
        builder = TopicTreeBuilder()
        builder.add_topic(make_topic("r"), has_children=False)
        builder.add_topic(make_topic("c", parent="r"))

        roots = builder.build_hierarchy()

        assert len(roots) == 1
        assert is_leaf(roots[0])

    def test_children_with_unknown_parent_are_dropped(self):
        builder = TopicTreeBuilder()
        builder.add_topic(make_topic("r"))
        builder.add_topic(make_topic("c", parent="elsewhere"))

        assert [r.topic.id for r in builder.build_hierarchy()] == ["r"]

    def test_clear(self):
        builder = TopicTreeBuilder().add_topic(make_topic("r"))
        builder.clear()
        assert builder.build_hierarchy() == []
