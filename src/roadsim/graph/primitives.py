"""
Graph primitives - Nodes and edges of the road network.

Defines:
- Node: a 2D point, compared by coordinates within a tolerance
- Edge: a directed or undirected connection between two nodes
"""

from typing import Tuple
import numpy as np

from roadsim.graph.geometry import distance_to_segment, project_onto_segment


# Coordinate tolerance for node equality
NODE_EPSILON = 1e-6


class Node:
    """A point in the road network.

    Two distinct Node objects at the same location (within epsilon) are
    considered the same node. Hashing stays identity-based so canonical
    nodes can key lookup tables.
    """

    __slots__ = ("x", "y")

    def __init__(self, x: float, y: float):
        self.x = float(x)
        self.y = float(y)

    def __repr__(self) -> str:
        return f"Node({self.x:g}, {self.y:g})"

    def __iter__(self):
        yield self.x
        yield self.y

    @classmethod
    def from_point(cls, point) -> "Node":
        """Build a node from a Node, (x, y) pair or array."""
        if isinstance(point, Node):
            return cls(point.x, point.y)
        x, y = point
        return cls(x, y)

    def equals(self, other, epsilon: float = NODE_EPSILON) -> bool:
        """Coordinate equality within epsilon."""
        return abs(self.x - other.x) <= epsilon and abs(self.y - other.y) <= epsilon

    def distance_to(self, other) -> float:
        """Euclidean distance to another node or point."""
        ox, oy = other
        return float(np.hypot(self.x - ox, self.y - oy))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


class Edge:
    """Connection between two nodes.

    Undirected edges are symmetric: Edge(a, b) equals Edge(b, a).
    Directed edges only equal a directed edge with the same endpoint order.
    """

    __slots__ = ("n1", "n2", "directed")

    def __init__(self, n1: Node, n2: Node, directed: bool = False):
        self.n1 = n1
        self.n2 = n2
        self.directed = bool(directed)

    def __repr__(self) -> str:
        arrow = "->" if self.directed else "--"
        return f"Edge({self.n1!r} {arrow} {self.n2!r})"

    def length(self) -> float:
        """Euclidean length (the routing weight)."""
        return self.n1.distance_to(self.n2)

    def direction_vector(self) -> np.ndarray:
        """Unit vector pointing from n1 to n2."""
        vec = self.n2.as_array() - self.n1.as_array()
        norm = np.hypot(*vec)
        if norm == 0.0:
            return np.zeros(2)
        return vec / norm

    def includes(self, node: Node) -> bool:
        return self.n1.equals(node) or self.n2.equals(node)

    def other(self, node: Node) -> Node:
        """Endpoint opposite to node."""
        return self.n2 if self.n1.equals(node) else self.n1

    def equals(self, other: "Edge") -> bool:
        if self.directed != other.directed:
            return False
        if self.n1.equals(other.n1) and self.n2.equals(other.n2):
            return True
        if not self.directed:
            return self.n1.equals(other.n2) and self.n2.equals(other.n1)
        return False

    def connects(self, a: Node, b: Node) -> bool:
        """True if this edge can be equated with a connection a -> b."""
        return self.equals(Edge(a, b, self.directed))

    def project_point(self, point) -> Tuple[np.ndarray, float]:
        """Project point onto the edge's line.

        Returns:
            (projected point, offset) with offset 0 at n1 and 1 at n2
        """
        return project_onto_segment(point, self.n1, self.n2)

    def distance_to_point(self, point) -> float:
        """Distance from point to the segment (endpoints when outside)."""
        return distance_to_segment(point, self.n1, self.n2)
