"""
IO module - Persistence and map import.

This module contains:
- Snapshot: World <-> dict/JSON conversion
- OSM: Road graph data from OpenStreetMap elements
"""

from roadsim.io.snapshot import (
    NumpyEncoder,
    SnapshotError,
    marking_from_dict,
    world_to_dict,
    world_from_dict,
    save_world,
    load_world,
)
from roadsim.io.osm import graph_data_from_osm, graph_from_osm

__all__ = [
    "NumpyEncoder",
    "SnapshotError",
    "marking_from_dict",
    "world_to_dict",
    "world_from_dict",
    "save_world",
    "load_world",
    "graph_data_from_osm",
    "graph_from_osm",
]
