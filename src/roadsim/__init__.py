"""
RoadSim - A road-network traffic simulation.

This package provides a frame-driven traffic simulation with:
- A deduplicating road graph with nearest-node/edge lookups
- Kinematic cars with ray-cast sensors and footprint collisions
- Dijkstra routing over directed and undirected roads
- Timed traffic lights governing cars on their edge
- World snapshots and OpenStreetMap road import
"""

__version__ = "0.1.0"

from roadsim.simulation.simulator import Simulator
from roadsim.simulation.world import World
from roadsim.car.car import Car
from roadsim.graph.graph import Graph

__all__ = ["Simulator", "World", "Car", "Graph", "__version__"]
