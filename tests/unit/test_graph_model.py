"""Unit tests for the graph model and its analyses."""

import math

import networkx as nx
import pytest

from linknode.graph import GraphAnalysis, GraphModel
from linknode.models import Bundles, EdgeStyle, RelationshipSpec
from linknode.view import LinkNodeView


class TestGraphModel:
    """Tests for GraphModel."""

    def test_add_node_is_idempotent(self) -> None:
        """Test entities map to stable indices."""
        graph: GraphModel[str] = GraphModel()
        a = graph.add_node("a")
        assert graph.add_node("a") == a
        assert graph.entity(a) == "a"
        assert graph.index_of("a") == a
        assert graph.index_of("missing") is None
        assert len(graph) == 1

    def test_weight_infinite_when_unlinked(self) -> None:
        """Test missing edges have infinite weight."""
        graph: GraphModel[str] = GraphModel()
        a, b = graph.add_node("a"), graph.add_node("b")
        assert math.isinf(graph.weight(a, b))
        assert not graph.has_edge(a, b)

    def test_increment_accumulates(self) -> None:
        """Test increment creates and accumulates the weight."""
        graph: GraphModel[str] = GraphModel()
        a, b = graph.add_node("a"), graph.add_node("b")
        graph.increment(a, b)
        graph.increment(a, b, 2.0)
        assert graph.weight(a, b) == 3.0
        assert graph.neighbors(a) == [b]
        assert not graph.has_edge(b, a)

    def test_add_neighbor_sets_weight(self) -> None:
        """Test add_neighbor overwrites rather than accumulates."""
        graph: GraphModel[str] = GraphModel()
        i, j = graph.add_neighbor("a", "b", 5.0)
        graph.add_neighbor("a", "b", 2.0)
        assert graph.weight(i, j) == 2.0

    def test_link_references(self) -> None:
        """Test references are deduplicated and reverse-indexed."""
        graph: GraphModel[str] = GraphModel()
        a, b, c = (graph.add_node(e) for e in "abc")
        assert graph.add_link_reference(a, b, "r1")
        assert not graph.add_link_reference(a, b, "r1")
        graph.add_link_reference(b, c, "r1")
        assert graph.link_references(a, b) == {"r1"}
        assert graph.links_for("r1") == {(a, b), (b, c)}
        assert graph.links_for("r2") == set()
        assert set(graph.referenced()) == {"r1"}

    def test_link_styles(self) -> None:
        """Test style tags accumulate per ordered pair."""
        graph: GraphModel[str] = GraphModel()
        a, b = graph.add_node("a"), graph.add_node("b")
        graph.add_link_style(a, b, EdgeStyle.SOLID)
        graph.add_link_style(a, b, EdgeStyle.DOTTED)
        assert graph.link_styles(a, b) == {EdgeStyle.SOLID, EdgeStyle.DOTTED}
        assert graph.link_styles(b, a) == set()

    def test_edges_and_degree(self) -> None:
        """Test edge enumeration and degree."""
        graph: GraphModel[str] = GraphModel()
        a, b, c = (graph.add_node(e) for e in "abc")
        graph.increment(a, b)
        graph.increment(a, c)
        assert set(graph.edges()) == {(a, b), (a, c)}
        assert graph.edge_count() == 2
        assert graph.degree(a) == 2
        assert graph.degree(b) == 0

    def test_to_networkx(self) -> None:
        """Test the networkx snapshot copies nodes and weights."""
        graph: GraphModel[str] = GraphModel(directed=False)
        a, b = graph.add_node("a"), graph.add_node("b")
        graph.add_node("lonely")
        graph.increment(a, b, 4.0)
        graph.increment(b, a, 4.0)
        snapshot = graph.to_networkx()
        assert not snapshot.is_directed()
        assert set(snapshot.nodes) == {"a", "b", "lonely"}
        assert snapshot["a"]["b"]["weight"] == 4.0

        graph.increment(a, b)
        assert snapshot["a"]["b"]["weight"] == 4.0


def _undirected(edges: list[tuple[str, str]]) -> GraphModel:
    graph: GraphModel[str] = GraphModel(directed=False)
    for u, v in edges:
        i, j = graph.add_node(u), graph.add_node(v)
        graph.increment(i, j)
        graph.increment(j, i)
    return graph


class TestGraphAnalysis:
    """Tests for memoized graph analyses."""

    def test_cut_vertices(self) -> None:
        """Test articulation points of a path."""
        analysis = GraphAnalysis(_undirected([("a", "b"), ("b", "c")]))
        assert analysis.cut_vertices() == {"b"}

    def test_biconnected_components_largest_first(self) -> None:
        """Test components are sorted by size."""
        graph = _undirected([("a", "b"), ("b", "c"), ("c", "a"), ("c", "d")])
        components = GraphAnalysis(graph).biconnected_components()
        assert components[0] == {"a", "b", "c"}
        assert {"c", "d"} in components

    def test_cluster_coefficients(self) -> None:
        """Test clustering matches networkx."""
        graph = _undirected([("a", "b"), ("b", "c"), ("c", "a"), ("c", "d")])
        coefficients = GraphAnalysis(graph).cluster_coefficients()
        assert coefficients["a"] == 1.0
        assert coefficients["d"] == 0.0

    def test_conductance(self) -> None:
        """Test conductance of a cut and of degenerate sets."""
        graph = _undirected([("a", "b"), ("b", "c"), ("c", "d")])
        analysis = GraphAnalysis(graph)
        expected = nx.conductance(graph.to_networkx(), {"a", "b"})
        assert analysis.conductance(["a", "b"]) == expected
        assert analysis.conductance([]) == 0.0
        assert analysis.conductance(["a", "b", "c", "d"]) == 0.0

    def test_self_loops_ignored(self) -> None:
        """Test self-loops do not affect analyses."""
        graph = _undirected([("a", "a"), ("a", "b")])
        assert GraphAnalysis(graph).cluster_coefficients()["a"] == 0.0

    def test_invalidate(self) -> None:
        """Test invalidate drops every memo."""
        graph = _undirected([("a", "b"), ("b", "c")])
        analysis = GraphAnalysis(graph)
        assert not analysis.is_cached
        analysis.cut_vertices()
        analysis.conductance(["a"])
        assert analysis.is_cached
        analysis.invalidate()
        assert not analysis.is_cached


class TestViewAnalysis:
    """Tests for structural measures exposed by the view."""

    @pytest.fixture
    def chain_view(self, view: LinkNodeView) -> LinkNodeView:
        view.set_records(Bundles.from_rows([{"a": "x", "b": "y", "c": "z"}]))
        view.add_relationship(RelationshipSpec("a", "b"))
        view.add_relationship(RelationshipSpec("b", "c"))
        return view

    def test_summary(self, chain_view: LinkNodeView) -> None:
        """Test components, cut vertices and clustering of a chain."""
        data = chain_view.graph_analysis()
        assert data["biconnected_components"] == [["x", "y"], ["y", "z"]]
        assert data["cut_vertices"] == ["y"]
        assert data["clustering"] == {"x": 0.0, "y": 0.0, "z": 0.0}
        assert data["conductance"] == 0.0

    def test_conductance_of_selection(self, chain_view: LinkNodeView) -> None:
        """Test conductance defaults to the selection."""
        chain_view.selection.select({"x"})
        assert chain_view.graph_analysis()["conductance"] == pytest.approx(1.0)
        assert chain_view.graph_analysis(["x", "y", "z"])["conductance"] == 0.0

    def test_reflects_relationship_changes(self, chain_view: LinkNodeView) -> None:
        """Test a removed relationship is not served from a stale memo."""
        chain_view.graph_analysis()
        chain_view.remove_relationship(RelationshipSpec("b", "c"))
        assert chain_view.graph_analysis()["cut_vertices"] == []
