"""
Dependency Graph with Incremental Cycle Detection
=================================================

Directed graph of property names used by the computed property engine. An edge
``A -> B`` means *B depends on A*: a change to ``A`` requires re-evaluating
``B``. The forward edges are the reverse-dependency index the model consults
after every committed change, so looking up the dependents of a name is a
single dict access instead of a scan over every computed property.

Cycles are detected as edges are added: before inserting ``A -> B`` the graph
checks, with a breadth-first search over the forward edges, whether ``B`` can already reach
``A``. If it can, the new edge would close a cycle and is rejected.

Usage:
    graph = DependencyGraph()

    graph.add_edges("size", ["width", "height"])  # size depends on width, height
    graph.add_edges("label", ["size"])

    graph.dependents_of("width")   # ("size",)

    graph.add_edges("width", ["label"])  # raises CircularDependencyError

Dependents are kept in insertion order, which is what makes propagation order
deterministic.
"""

from collections import deque
from typing import Dict, Iterable, List, Optional, Tuple

from ..exceptions import CircularDependencyError


class DependencyGraph:
    """
    Incrementally maintained dependency graph over property names.

    Attributes:
        graph: Forward edges (name -> names that depend on it), insertion ordered
    """

    def __init__(self):
        self.graph: Dict[str, Dict[str, None]] = {}

    def add_node(self, node: str) -> None:
        """Add a node to the graph if it doesn't exist."""
        if node not in self.graph:
            self.graph[node] = {}

    def add_edges(self, dependent: str, dependencies: Iterable[str]) -> None:
        """
        Declare that ``dependent`` depends on every name in ``dependencies``.

        Either all edges are added or, when any of them would close a cycle,
        none are.

        Raises:
            CircularDependencyError: If an edge would create a cycle
        """
        dependencies = list(dependencies)
        for dependency in dependencies:
            path = self.find_cycle(dependency, dependent)
            if path is not None:
                raise CircularDependencyError(path)

        self.add_node(dependent)
        for dependency in dependencies:
            self.add_node(dependency)
            self.graph[dependency][dependent] = None

    def find_cycle(self, from_node: str, to_node: str) -> Optional[List[str]]:
        """
        Return the cycle an edge ``from_node -> to_node`` would close.

        Returns:
            The cycle as a list of names starting and ending with ``to_node``,
            or None if the edge is safe
        """
        if from_node == to_node:
            return [to_node, to_node]

        # BFS from to_node along dependents, remembering how each node was reached
        parents: Dict[str, Optional[str]] = {to_node: None}
        queue = deque([to_node])
        while queue:
            node = queue.popleft()
            for dependent in self.graph.get(node, ()):
                if dependent in parents:
                    continue
                parents[dependent] = node
                if dependent == from_node:
                    path = [dependent]
                    while parents[path[-1]] is not None:
                        path.append(parents[path[-1]])
                    path.reverse()
                    return path + [to_node]
                queue.append(dependent)
        return None

    def dependents_of(self, node: str) -> Tuple[str, ...]:
        """Names that directly depend on ``node``, in insertion order."""
        return tuple(self.graph.get(node, ()))

    def clear(self) -> None:
        """Clear all nodes and edges from the graph."""
        self.graph.clear()

    def __len__(self) -> int:
        return len(self.graph)

    def __contains__(self, node: str) -> bool:
        return node in self.graph

    def __str__(self) -> str:
        edges = sum(len(dependents) for dependents in self.graph.values())
        return f"DependencyGraph(nodes={len(self.graph)}, edges={edges})"
