"""
PathFinder - Shortest routes over the road graph.

Runs Dijkstra's algorithm between the graph nodes nearest to two query
points, using edge length as weight. Nodes are mapped to integer ids
per query, so all working state (adjacency, distances, predecessors)
is array-based and rebuilt from the current graph every time.
"""

from typing import List, Sequence, Tuple
import heapq
import logging
import numpy as np

from roadsim.graph.graph import Graph
from roadsim.graph.primitives import Edge, Node


log = logging.getLogger(__name__)

# (neighbor id, weight, edge id)
Adjacency = List[List[Tuple[int, float, int]]]


class PathFinder:
    """Dijkstra shortest-path queries over a Graph.

    Queries are pure: the graph is never modified and nothing is cached
    between calls. Failures (no edges near a query point, disconnected
    graph) produce an empty path and a log entry, never an exception.

    Usage:
        finder = PathFinder(graph)
        path = finder.find_path((0, 0), (100, 40))
    """

    def __init__(self, graph: Graph):
        """Initialize path finder.

        Args:
            graph: Road graph to route over
        """
        self.graph = graph

    def find_path(self, src, dest) -> List[Edge]:
        """Find the shortest edge sequence between two positions.

        Args:
            src: Source position (Node or (x, y))
            dest: Destination position (Node or (x, y))

        Returns:
            Ordered list of edges from source to destination, or an
            empty list if no route exists
        """
        src = Node.from_point(src)
        dest = Node.from_point(dest)

        start_edge = self.graph.nearest_edge(src)
        end_edge = self.graph.nearest_edge(dest)
        if start_edge is None or end_edge is None:
            log.info("no edge near %r or %r, cannot route", src, dest)
            return []

        if start_edge is end_edge:
            return [start_edge]

        start = self._nearer_endpoint(start_edge, src)
        end = self._nearer_endpoint(end_edge, dest)

        nodes = self.graph.get_nodes()
        edges = self.graph.get_edges()
        index = {node: i for i, node in enumerate(nodes)}

        adjacency = self.build_adjacency(len(nodes), edges, index)
        dist, prev_node, prev_edge = self.run_dijkstra(adjacency, index[start], index[end])

        if not np.isfinite(dist[index[end]]):
            log.info("no path between %r and %r (disconnected)", start, end)
            return []

        path = self._reconstruct(edges, prev_node, prev_edge, index[start], index[end])
        if path is None:
            log.info("failed to reconstruct path between %r and %r", start, end)
            return []
        if not path:
            log.info("%r and %r resolve to the same node %r", src, dest, start)
        return path

    @staticmethod
    def _nearer_endpoint(edge: Edge, point: Node) -> Node:
        """Endpoint of edge closest to point, preferring n1 on ties."""
        if point.distance_to(edge.n1) <= point.distance_to(edge.n2):
            return edge.n1
        return edge.n2

    @staticmethod
    def build_adjacency(node_count: int, edges: Sequence[Edge], index: dict) -> Adjacency:
        """Outgoing (neighbor, weight, edge id) lists per node id.

        Undirected edges are traversable both ways, directed edges only
        from n1 to n2.
        """
        adjacency: Adjacency = [[] for _ in range(node_count)]
        for edge_id, edge in enumerate(edges):
            a = index[edge.n1]
            b = index[edge.n2]
            weight = edge.length()
            adjacency[a].append((b, weight, edge_id))
            if not edge.directed:
                adjacency[b].append((a, weight, edge_id))
        return adjacency

    @staticmethod
    def run_dijkstra(
        adjacency: Adjacency,
        start: int,
        end: int,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Single-source shortest paths, stopping once end is settled.

        Returns:
            (distances, predecessor node ids, predecessor edge ids);
            unreachable nodes keep distance inf and predecessor -1
        """
        n = len(adjacency)
        dist = np.full(n, np.inf)
        prev_node = np.full(n, -1, dtype=np.int64)
        prev_edge = np.full(n, -1, dtype=np.int64)
        settled = np.zeros(n, dtype=bool)

        dist[start] = 0.0
        # Ties on distance pop the lower node id first
        heap: List[Tuple[float, int]] = [(0.0, start)]

        while heap:
            d, u = heapq.heappop(heap)
            if settled[u]:
                continue
            settled[u] = True
            if u == end:
                break

            for v, weight, edge_id in adjacency[u]:
                if settled[v]:
                    continue
                alt = d + weight
                if alt < dist[v]:
                    dist[v] = alt
                    prev_node[v] = u
                    prev_edge[v] = edge_id
                    heapq.heappush(heap, (alt, v))

        return dist, prev_node, prev_edge

    @staticmethod
    def _reconstruct(
        edges: Sequence[Edge],
        prev_node: np.ndarray,
        prev_edge: np.ndarray,
        start: int,
        end: int,
    ) -> List[Edge] | None:
        """Walk predecessors back from end; None if start is unreachable."""
        path: List[Edge] = []
        cursor = end
        # A simple path never has more edges than there are nodes
        for _ in range(len(prev_node)):
            if cursor == start:
                path.reverse()
                return path
            if prev_edge[cursor] < 0:
                return None
            path.append(edges[prev_edge[cursor]])
            cursor = int(prev_node[cursor])
        return path[::-1] if cursor == start else None
