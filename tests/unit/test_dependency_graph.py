"""
Tests for the DependencyGraph reverse-dependency index and cycle detection.
"""

import pytest

from emc.exceptions import CircularDependencyError
from emc.util import DependencyGraph


class TestDependencyGraph:
    """Test suite for DependencyGraph."""

    def test_empty_graph(self):
        """Empty graph has no nodes."""
        graph = DependencyGraph()
        assert len(graph) == 0
        assert graph.dependents_of("a") == ()

    def test_single_node(self):
        graph = DependencyGraph()
        graph.add_node("a")

        assert len(graph) == 1
        assert "a" in graph
        assert graph.dependents_of("a") == ()

    def test_simple_chain(self):
        """Linear chain: c depends on b, b depends on a."""
        graph = DependencyGraph()

        graph.add_edges("b", ["a"])
        graph.add_edges("c", ["b"])

        assert len(graph) == 3
        assert graph.dependents_of("a") == ("b",)
        assert graph.dependents_of("b") == ("c",)
        assert graph.dependents_of("c") == ()

    def test_dependents_keep_insertion_order(self):
        graph = DependencyGraph()
        graph.add_edges("size", ["width", "height"])
        graph.add_edges("perimeter", ["width", "height"])
        graph.add_edges("area", ["width"])

        assert graph.dependents_of("width") == ("size", "perimeter", "area")
        assert graph.dependents_of("height") == ("size", "perimeter")

    def test_simple_cycle(self):
        """Closing a -> b -> c -> a is rejected with the cycle path."""
        graph = DependencyGraph()

        graph.add_edges("b", ["a"])
        graph.add_edges("c", ["b"])

        with pytest.raises(CircularDependencyError) as excinfo:
            graph.add_edges("a", ["c"])

        assert excinfo.value.path == ("a", "b", "c", "a")

    def test_self_dependency(self):
        graph = DependencyGraph()

        with pytest.raises(CircularDependencyError) as excinfo:
            graph.add_edges("a", ["a"])

        assert excinfo.value.path == ("a", "a")

    def test_mutual_dependency(self):
        graph = DependencyGraph()
        graph.add_edges("a", ["b"])

        with pytest.raises(CircularDependencyError, match="b -> a -> b"):
            graph.add_edges("b", ["a"])

    def test_rejected_definition_adds_no_edges(self):
        """A definition closing a cycle leaves the graph unchanged."""
        graph = DependencyGraph()
        graph.add_edges("b", ["a"])

        with pytest.raises(CircularDependencyError):
            graph.add_edges("a", ["x", "b"])

        assert "x" not in graph
        assert graph.dependents_of("b") == ()
        assert str(graph) == "DependencyGraph(nodes=2, edges=1)"

    def test_diamond_is_not_a_cycle(self):
        graph = DependencyGraph()
        graph.add_edges("b", ["a"])
        graph.add_edges("c", ["a"])
        graph.add_edges("d", ["b", "c"])

        assert graph.dependents_of("a") == ("b", "c")
        assert graph.dependents_of("b") == ("d",)
        assert graph.dependents_of("c") == ("d",)

    def test_clear(self):
        graph = DependencyGraph()
        graph.add_edges("b", ["a"])
        graph.clear()

        assert len(graph) == 0
        assert "a" not in graph

    def test_str(self):
        graph = DependencyGraph()
        graph.add_edges("c", ["a", "b"])

        assert str(graph) == "DependencyGraph(nodes=3, edges=2)"
