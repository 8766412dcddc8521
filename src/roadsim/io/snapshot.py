"""
Snapshot - World persistence to plain dictionaries and JSON files.

Format:
    {
        "graph": {"nodes": [{x, y}], "edges": [{n1, n2, directed}]},
        "light_graph": {"nodes": [...], "edges": [...]},
        "markings": [{type, position, direction, ...}]
    }

The light graph links lights that share an intersection; it is optional
when loading.

Snapshots are fully validated before a World is built, so a bad file
never leaves a half-loaded world behind.
"""

from pathlib import Path
from typing import Any, Dict, List
import json
import logging
import numpy as np

from roadsim.graph.graph import Graph, GraphError
from roadsim.markings.marking import Destination, Marking, MarkingType, Source
from roadsim.markings.traffic_light import TrafficLight
from roadsim.simulation.world import World, WorldConfig


log = logging.getLogger(__name__)

MARKING_CLASSES = {
    MarkingType.DEFAULT: Marking,
    MarkingType.SOURCE: Source,
    MarkingType.DESTINATION: Destination,
    MarkingType.TRAFFIC_LIGHT: TrafficLight,
}


class SnapshotError(ValueError):
    """Raised when a snapshot cannot be turned into a World."""


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


def marking_from_dict(data: Dict[str, Any]) -> Marking:
    """Build the right Marking subclass from its dictionary form.

    Raises:
        SnapshotError: On unknown types or malformed fields
    """
    if not isinstance(data, dict):
        raise SnapshotError(f"marking must be a mapping, got {type(data).__name__}")
    try:
        marking_type = MarkingType(data.get("type", MarkingType.DEFAULT.value))
    except ValueError as exc:
        raise SnapshotError(f"unknown marking type {data.get('type')!r}") from exc
    try:
        return MARKING_CLASSES[marking_type].from_dict(data)
    except ValueError as exc:
        raise SnapshotError(str(exc)) from exc


def world_to_dict(world: World) -> Dict[str, Any]:
    """Serialize graph topology, light links and markings (cars are not persisted)."""
    return {
        "graph": world.graph.to_dict(),
        "light_graph": world.light_graph.to_dict(),
        "markings": [marking.to_dict() for marking in world.markings],
    }


def world_from_dict(data: Dict[str, Any], config: WorldConfig | None = None) -> World:
    """Build a new World from a snapshot dictionary.

    Args:
        data: Snapshot as produced by world_to_dict
        config: Configuration for the new world

    Returns:
        World with the snapshot's graphs and markings and no cars

    Raises:
        SnapshotError: If the snapshot is malformed
    """
    if not isinstance(data, dict):
        raise SnapshotError(f"snapshot must be a mapping, got {type(data).__name__}")
    if "graph" not in data:
        raise SnapshotError("snapshot has no 'graph' section")

    try:
        graph = Graph.from_dict(data["graph"])
    except GraphError as exc:
        raise SnapshotError(f"invalid graph: {exc}") from exc

    try:
        light_graph = Graph.from_dict(data.get("light_graph", {"nodes": [], "edges": []}))
    except GraphError as exc:
        raise SnapshotError(f"invalid light graph: {exc}") from exc

    raw_markings = data.get("markings", [])
    if not isinstance(raw_markings, list):
        raise SnapshotError("'markings' must be a list")
    markings: List[Marking] = [marking_from_dict(item) for item in raw_markings]

    world = World(graph, config, light_graph)
    for marking in markings:
        world.add_marking(marking)
    return world


def save_world(world: World, path: str | Path) -> Path:
    """Write a world snapshot as JSON.

    Returns:
        Path to the written file
    """
    filepath = Path(path)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as f:
        json.dump(world_to_dict(world), f, indent=2, cls=NumpyEncoder)
    log.info("saved world (%d nodes, %d edges, %d markings) to %s",
             world.graph.node_count, world.graph.edge_count, len(world.markings), filepath)
    return filepath


def load_world(path: str | Path, config: WorldConfig | None = None) -> World:
    """Read a JSON snapshot written by save_world.

    Raises:
        SnapshotError: If the file is not valid JSON or not a valid snapshot
    """
    filepath = Path(path)
    with open(filepath, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"{filepath} is not valid JSON: {exc}") from exc
    return world_from_dict(data, config)
