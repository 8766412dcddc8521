"""
Routing module - Shortest-path queries over the road graph.

This module contains:
- PathFinder: Dijkstra routing between two positions
"""

from roadsim.routing.pathfinder import PathFinder

__all__ = ["PathFinder"]
