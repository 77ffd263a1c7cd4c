"""Tests for the graph store, node serialization and subtree collapse."""

from lab_explorer.explorer.collapse import CollapseEngine
from lab_explorer.explorer.nodes import Link, Node, NodeKind, root_node, slug, truncate_label
from lab_explorer.explorer.store import GraphStore, endpoint_id, link_key
from lab_explorer.models.records import Project


def _node(node_id, kind=NodeKind.COLLABORATOR, parent="root"):
    return Node.create(node_id, node_id.upper(), kind, parent)


def _chain_store():
    """root -> a -> b -> c, plus a sibling root -> s."""
    store = GraphStore([root_node()])
    store.merge(
        [_node("a"), _node("b", parent="a"), _node("c", parent="b"), _node("s")],
        [Link("root", "a"), Link("a", "b"), Link("b", "c"), Link("root", "s")],
    )
    return store


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class TestNodes:
    def test_create_applies_kind_style(self):
        node = Node.create("root", "LISTIC", NodeKind.ROOT)
        assert node.weight == 20
        assert node.color == "#ef4444"

    def test_to_dict_shape(self):
        project = Project(id="p1", name="ALPHA", partners=["Lab A"])
        node = Node.create("proj-x-p1", "ALPHA", NodeKind.PROJECT, "x", payload=project, lookup_key="p1")
        d = node.to_dict()
        assert d["id"] == "proj-x-p1"
        assert d["type"] == "project"
        assert d["label"] == "ALPHA"
        assert d["metadata"]["parent_id"] == "x"
        assert d["metadata"]["payload"]["partners"] == ["Lab A"]

    def test_slug_and_truncate(self):
        assert slug(" PhD  Students ") == "PhD_Students"
        assert truncate_label("x" * 40) == "x" * 35 + "..."
        assert truncate_label("short") == "short"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TestGraphStoreMerge:
    def test_duplicate_nodes_and_links_are_dropped(self):
        store = GraphStore([root_node()])
        added_nodes, added_links = store.merge([_node("a")], [Link("root", "a")])
        assert len(added_nodes) == 1
        assert len(added_links) == 1

        added_nodes, added_links = store.merge([_node("a")], [Link("root", "a")])
        assert added_nodes == []
        assert added_links == []
        assert len(store) == 2
        assert len(store.links) == 1

    def test_first_node_wins(self):
        store = GraphStore([root_node()])
        store.merge([Node.create("a", "First", NodeKind.COLLABORATOR)], [])
        store.merge([Node.create("a", "Second", NodeKind.COLLABORATOR)], [])
        assert store.get("a").name == "First"

    def test_endpoint_forms_are_normalized(self):
        store = GraphStore([root_node()])
        a = _node("a")
        store.merge([a], [{"source": {"id": "root", "x": 1.5}, "target": a}])
        assert store.has_link("root", "a")
        # Same edge in another form is a duplicate
        _, added = store.merge([], [("root", {"id": "a"})])
        assert added == []

    def test_dangling_links_are_dropped(self):
        store = GraphStore([root_node()])
        _, added = store.merge([], [Link("root", "ghost")])
        assert added == []
        assert store.links == []

    def test_children_of(self):
        store = _chain_store()
        assert sorted(n.id for n in store.children_of("root")) == ["a", "s"]
        assert store.children_of("c") == []

    def test_endpoint_helpers(self):
        assert endpoint_id("a") == "a"
        assert endpoint_id({"id": "a"}) == "a"
        assert endpoint_id(_node("a")) == "a"
        assert link_key({"source": "a", "target": {"id": "b"}}) == ("a", "b")


class TestGraphStoreSnapshot:
    def test_prune_removes_touching_links(self):
        store = _chain_store()
        assert store.prune({"b", "missing"}) == 1
        assert "b" not in store
        assert not store.has_link("a", "b")
        assert not store.has_link("b", "c")
        assert store.has_link("root", "a")

    def test_to_dict(self):
        data = _chain_store().to_dict()
        assert len(data["nodes"]) == 5
        assert {"source": "a", "target": "b"} in data["links"]


# ---------------------------------------------------------------------------
# Collapse
# ---------------------------------------------------------------------------


class TestCollapseEngine:
    def test_closure(self):
        collapser = CollapseEngine(_chain_store())
        assert collapser.descendants_closure("a") == {"a", "b", "c"}
        assert collapser.descendants_closure("c") == {"c"}

    def test_remove_subtree_keeps_node_and_siblings(self):
        store = _chain_store()
        expanded = {"root", "a", "b", "s"}
        removed = CollapseEngine(store).remove_node_and_descendants("a", expanded)

        assert removed == {"b", "c"}
        assert sorted(n.id for n in store.nodes) == ["a", "root", "s"]
        assert store.has_link("root", "a")
        assert expanded == {"root", "s"}

    def test_collapse_leaf_is_noop(self):
        store = _chain_store()
        expanded = {"root"}
        assert CollapseEngine(store).remove_node_and_descendants("s", expanded) == set()
        assert len(store) == 5
        assert expanded == {"root"}
