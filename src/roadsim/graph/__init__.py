"""
Graph module - Road network topology and planar geometry.

This module contains:
- Node / Edge: Graph primitives with tolerance-based equality
- Graph: Deduplicating road graph with nearest-element lookups
- Polygon: Closed polygons for footprints and obstacles
- Geometry helpers: interpolation and segment intersection
"""

from roadsim.graph.primitives import Node, Edge, NODE_EPSILON
from roadsim.graph.graph import Graph, GraphError
from roadsim.graph.geometry import (
    Intersection,
    Polygon,
    get_intersection,
    ray_intersections,
    segment_intersections,
    lerp,
    inv_lerp,
)

__all__ = [
    "Node",
    "Edge",
    "NODE_EPSILON",
    "Graph",
    "GraphError",
    "Intersection",
    "Polygon",
    "get_intersection",
    "ray_intersections",
    "segment_intersections",
    "lerp",
    "inv_lerp",
]
