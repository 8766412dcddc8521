"""
Graph - Road network topology.

A graph is a set of unique nodes plus a set of unique edges between
them. Nodes are deduplicated by coordinate, edges by endpoints
(respecting direction). Every edge endpoint is guaranteed to be a node
of the graph.
"""

from typing import Dict, List, Optional, Tuple
import math

from roadsim.graph.primitives import Node, Edge, NODE_EPSILON


class GraphError(ValueError):
    """Raised for structurally invalid graph requests."""


class Graph:
    """Road network graph.

    Features:
    - Coordinate-deduplicated nodes (within epsilon)
    - Direction-aware edge deduplication
    - Cascading node removal
    - Nearest node / edge lookups
    - Index-based dictionary snapshots

    Usage:
        graph = Graph()
        a = graph.add_node((0, 0))
        b = graph.add_node((10, 0))
        graph.add_edge(a, b)

        edge = graph.nearest_edge((5, 1))
    """

    def __init__(self, epsilon: float = NODE_EPSILON):
        """Initialize an empty graph.

        Args:
            epsilon: Coordinate tolerance for node equality
        """
        self.epsilon = epsilon
        self._nodes: List[Node] = []
        self._edges: List[Edge] = []
        self._changes: int = 0

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self._nodes)}, edges={len(self._edges)})"

    @property
    def changes(self) -> int:
        """Mutation counter, bumped by every structural change."""
        return self._changes

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def get_nodes(self) -> Tuple[Node, ...]:
        """Snapshot of the nodes, safe to iterate while mutating."""
        return tuple(self._nodes)

    def get_edges(self) -> Tuple[Edge, ...]:
        """Snapshot of the edges, safe to iterate while mutating."""
        return tuple(self._edges)

    # Nodes

    def contains_node(self, point) -> Optional[Node]:
        """Return the canonical node at point, if any."""
        target = point if isinstance(point, Node) else Node.from_point(point)
        for node in self._nodes:
            if node.equals(target, self.epsilon):
                return node
        return None

    def add_node(self, point) -> Node:
        """Add a node, or return the existing one at the same location.

        Args:
            point: Node or (x, y) pair

        Returns:
            The canonical node stored in the graph
        """
        existing = self.contains_node(point)
        if existing is not None:
            return existing

        node = point if isinstance(point, Node) else Node.from_point(point)
        self._nodes.append(node)
        self._changes += 1
        return node

    def _require_node(self, point) -> Node:
        node = self.contains_node(point)
        if node is None:
            raise GraphError(f"{point!r} is not a node of this graph")
        return node

    def remove_node(self, node) -> None:
        """Remove a node and every edge touching it."""
        canonical = self._require_node(node)
        for edge in self.get_edges_with_node(canonical):
            self._edges.remove(edge)
        self._nodes.remove(canonical)
        self._changes += 1

    def move_node(self, node, x: float, y: float) -> Node:
        """Move a node to a new location.

        If the destination coincides with another node the two are
        merged, and any edges collapsing into self-loops or duplicates
        are dropped.

        Returns:
            The node now representing the moved location
        """
        canonical = self._require_node(node)
        target = self.contains_node((x, y))
        if target is None or target is canonical:
            canonical.x = float(x)
            canonical.y = float(y)
            self._changes += 1
            return canonical

        kept: List[Edge] = []
        for edge in self._edges:
            if edge.n1 is canonical:
                edge.n1 = target
            if edge.n2 is canonical:
                edge.n2 = target
            if edge.n1 is edge.n2 or any(e.equals(edge) for e in kept):
                continue
            kept.append(edge)
        self._edges = kept
        self._nodes.remove(canonical)
        self._changes += 1
        return target

    def nearest_node(self, point, threshold: float = math.inf) -> Optional[Node]:
        """Closest node to point within threshold."""
        target = Node.from_point(point)
        best: Optional[Node] = None
        best_dist = threshold
        for node in self._nodes:
            dist = node.distance_to(target)
            if dist < best_dist:
                best_dist = dist
                best = node
        return best

    # Edges

    def contains_edge(self, edge: Edge) -> Optional[Edge]:
        """Return the stored edge equal to edge, if any."""
        for existing in self._edges:
            if existing.equals(edge):
                return existing
        return None

    def add_edge(self, a, b, directed: bool = False) -> Optional[Edge]:
        """Connect two existing nodes.

        Args:
            a: Start node (or its coordinates)
            b: End node (or its coordinates)
            directed: One-way connection a -> b

        Returns:
            The new or already existing edge, or None when a == b

        Raises:
            GraphError: If either endpoint is not a node of the graph
        """
        n1 = self._require_node(a)
        n2 = self._require_node(b)
        if n1 is n2:
            return None

        edge = Edge(n1, n2, directed)
        existing = self.contains_edge(edge)
        if existing is not None:
            return existing

        self._edges.append(edge)
        self._changes += 1
        return edge

    def remove_edge(self, edge: Edge) -> None:
        existing = self.contains_edge(edge)
        if existing is None:
            raise GraphError(f"{edge!r} is not an edge of this graph")
        self._edges.remove(existing)
        self._changes += 1

    def get_edges_with_node(self, node) -> List[Edge]:
        return [edge for edge in self._edges if edge.includes(node)]

    def nearest_edge(self, point, threshold: float = math.inf) -> Optional[Edge]:
        """Edge with the smallest point-to-segment distance.

        Ties keep the earliest edge in insertion order.

        Returns:
            Nearest edge within threshold, or None if there is none
        """
        best: Optional[Edge] = None
        best_dist = threshold
        for edge in self._edges:
            dist = edge.distance_to_point(point)
            if dist < best_dist:
                best_dist = dist
                best = edge
        return best

    def connected_components(self) -> List[List[Node]]:
        """Group nodes into weakly connected components."""
        index = {node: i for i, node in enumerate(self._nodes)}
        parent = list(range(len(self._nodes)))

        def find(i: int) -> int:
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        for edge in self._edges:
            ra, rb = find(index[edge.n1]), find(index[edge.n2])
            if ra != rb:
                parent[max(ra, rb)] = min(ra, rb)

        groups: Dict[int, List[Node]] = {}
        for node, i in index.items():
            groups.setdefault(find(i), []).append(node)
        return list(groups.values())

    def clear(self) -> None:
        self._nodes.clear()
        self._edges.clear()
        self._changes += 1

    # Serialization

    def to_dict(self) -> dict:
        """Index-based snapshot: edges reference nodes by position."""
        index = {node: i for i, node in enumerate(self._nodes)}
        return {
            "nodes": [node.to_dict() for node in self._nodes],
            "edges": [
                {"n1": index[e.n1], "n2": index[e.n2], "directed": e.directed}
                for e in self._edges
            ],
        }

    @classmethod
    def from_dict(cls, data: dict, epsilon: float = NODE_EPSILON) -> "Graph":
        """Build a graph from an index-based snapshot.

        The whole payload is validated before the graph is built.

        Raises:
            GraphError: On missing keys, bad coordinates, non-boolean
                directed flags, out-of-range node indices, duplicate nodes
                or self-loop edges
        """
        try:
            raw_nodes = data["nodes"]
            raw_edges = data["edges"]
        except (KeyError, TypeError) as exc:
            raise GraphError(f"graph data must contain 'nodes' and 'edges': {exc}") from exc
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise GraphError("graph 'nodes' and 'edges' must be lists")

        points = []
        for i, raw in enumerate(raw_nodes):
            try:
                x, y = float(raw["x"]), float(raw["y"])
            except (KeyError, TypeError, ValueError) as exc:
                raise GraphError(f"node {i} is malformed: {raw!r}") from exc
            if not (math.isfinite(x) and math.isfinite(y)):
                raise GraphError(f"node {i} has non-finite coordinates")
            points.append((x, y))

        links = []
        for i, raw in enumerate(raw_edges):
            try:
                a, b = raw["n1"], raw["n2"]
                directed = raw.get("directed", False)
            except (KeyError, TypeError, AttributeError) as exc:
                raise GraphError(f"edge {i} is malformed: {raw!r}") from exc
            if not isinstance(directed, bool):
                raise GraphError(f"edge {i} has a non-boolean directed flag: {directed!r}")
            for ref in (a, b):
                if isinstance(ref, bool) or not isinstance(ref, int) or not 0 <= ref < len(points):
                    raise GraphError(
                        f"edge {i} references node {ref!r}, "
                        f"but only {len(points)} nodes exist"
                    )
            if a == b:
                raise GraphError(f"edge {i} is a self-loop on node {a}")
            links.append((a, b, directed))

        graph = cls(epsilon=epsilon)
        nodes = [graph.add_node(p) for p in points]
        if graph.node_count != len(points):
            raise GraphError("graph data contains duplicate nodes")
        for a, b, directed in links:
            graph.add_edge(nodes[a], nodes[b], directed)
        if graph.edge_count != len(links):
            raise GraphError("graph data contains duplicate edges")
        return graph
