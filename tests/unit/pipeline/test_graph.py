"""Tests for the dependency graph."""

from __future__ import annotations

from foliokit.pipeline.graph import DependencyGraph


def test_add_edge_updates_both_directions() -> None:
    g = DependencyGraph()
    g.add_edge("bio.md", "photo.jpg")

    assert g.dependencies_of("bio.md") == ["photo.jpg"]
    assert g.dependents_of("photo.jpg") == ["bio.md"]
    assert g.has_edge("bio.md", "photo.jpg")
    assert not g.has_edge("photo.jpg", "bio.md")
    assert len(g) == 1


def test_self_edges_ignored() -> None:
    g = DependencyGraph()
    g.add_edge("a.md", "a.md")
    assert len(g) == 0
    assert "a.md" not in g


def test_duplicate_edge_counted_once() -> None:
    g = DependencyGraph()
    g.add_edge("a", "b")
    g.add_edge("a", "b")
    assert list(g.edges()) == [("a", "b")]


def test_set_dependencies_replaces_outgoing_edges() -> None:
    g = DependencyGraph()
    g.set_dependencies("a", ["b", "c"])
    g.set_dependencies("a", ["c", "d"])

    assert g.dependencies_of("a") == ["c", "d"]
    assert g.dependents_of("b") == []
    assert g.dependents_of("c") == ["a"]
    assert "b" not in g


def test_set_dependencies_empty_keeps_node_known() -> None:
    g = DependencyGraph()
    g.set_dependencies("a", [])
    assert "a" in g
    assert g.dependencies_of("a") == []


def test_remove_keeps_incoming_edges() -> None:
    g = DependencyGraph()
    g.add_edge("bio.md", "photo.jpg")
    g.add_edge("photo.jpg", "raw.png")

    g.remove("photo.jpg")

    assert g.dependencies_of("photo.jpg") == []
    assert g.dependents_of("raw.png") == []
    assert g.dependents_of("photo.jpg") == ["bio.md"]


def test_dependents_in_insertion_order() -> None:
    g = DependencyGraph()
    for src in ("c.md", "a.md", "b.md"):
        g.add_edge(src, "shared.css")
    assert g.dependents_of("shared.css") == ["c.md", "a.md", "b.md"]


def test_cycle_edges_are_kept() -> None:
    g = DependencyGraph()
    g.add_edge("a", "b")
    g.add_edge("b", "a")
    assert g.nodes() == {"a", "b"}
    assert sorted(g.edges()) == [("a", "b"), ("b", "a")]
