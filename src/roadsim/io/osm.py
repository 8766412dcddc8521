"""
OSM import - Road topology from OpenStreetMap-style elements.

Converts raw node/way elements into the normalised graph dictionary
accepted by Graph.from_dict. Fetching the data is left to the caller.
"""

from typing import Any, Dict, Iterable, List, Tuple
import logging
import numpy as np

from roadsim.graph.graph import Graph


log = logging.getLogger(__name__)

METERS_PER_DEGREE = 111000.0
DEFAULT_SCALE = 10.0


def _elements(data) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get("elements", [])
    return [e for e in data if isinstance(e, dict)]


def _oneway(tags: Dict[str, Any]) -> Tuple[bool, bool]:
    """(directed, reversed) for a way's oneway tag."""
    value = str(tags.get("oneway", "no")).lower()
    if value in ("yes", "true", "1"):
        return True, False
    if value == "-1":
        return True, True
    return False, False


def graph_data_from_osm(data: Iterable | Dict[str, Any], scale: float = DEFAULT_SCALE) -> Dict[str, list]:
    """Project OSM elements into {nodes, edges} graph data.

    Coordinates are equirectangular: x grows east, y grows south, the
    north-west corner of the road nodes sits at the origin, and one
    metre maps to `scale` units.

    Args:
        data: Element list, or a response dict with an "elements" key
        scale: World units per metre

    Returns:
        Dictionary with "nodes" and "edges" lists
    """
    elements = _elements(data)
    positions: Dict[Any, Tuple[float, float]] = {}
    for element in elements:
        if element.get("type") == "node" and "lat" in element and "lon" in element:
            positions[element["id"]] = (float(element["lat"]), float(element["lon"]))

    ways = [
        e for e in elements
        if e.get("type") == "way" and "highway" in (e.get("tags") or {})
    ]

    # Consecutive node pairs of each road, skipping references to unknown nodes
    segments: List[Tuple[Any, Any, bool]] = []
    for way in ways:
        directed, reverse = _oneway(way.get("tags") or {})
        refs = [ref for ref in way.get("nodes", []) if ref in positions]
        for a, b in zip(refs, refs[1:]):
            if a == b:
                continue
            segments.append((b, a, directed) if reverse else (a, b, directed))

    used = []
    for a, b, _ in segments:
        for ref in (a, b):
            if ref not in used:
                used.append(ref)

    if not used:
        log.info("no highway ways in %d elements", len(elements))
        return {"nodes": [], "edges": []}

    coords = np.array([positions[ref] for ref in used])
    max_lat = coords[:, 0].max()
    min_lon = coords[:, 1].min()
    meters_x = METERS_PER_DEGREE * np.cos(np.radians(max_lat))
    xs = (coords[:, 1] - min_lon) * meters_x * scale
    ys = (max_lat - coords[:, 0]) * METERS_PER_DEGREE * scale

    # Distinct OSM ids can share a location
    nodes: List[Dict[str, float]] = []
    node_index: Dict[Tuple[float, float], int] = {}
    ref_index: Dict[Any, int] = {}
    for ref, x, y in zip(used, xs, ys):
        key = (float(x), float(y))
        if key not in node_index:
            node_index[key] = len(nodes)
            nodes.append({"x": key[0], "y": key[1]})
        ref_index[ref] = node_index[key]

    edges: List[Dict[str, Any]] = []
    seen = set()
    for a, b, directed in segments:
        n1, n2 = ref_index[a], ref_index[b]
        if n1 == n2:
            continue
        key = (n1, n2, True) if directed else (min(n1, n2), max(n1, n2), False)
        if key in seen:
            continue
        seen.add(key)
        edges.append({"n1": n1, "n2": n2, "directed": directed})

    log.info("imported %d nodes and %d edges from %d ways", len(nodes), len(edges), len(ways))
    return {"nodes": nodes, "edges": edges}


def graph_from_osm(data: Iterable | Dict[str, Any], scale: float = DEFAULT_SCALE) -> Graph:
    """Build a Graph straight from OSM elements."""
    return Graph.from_dict(graph_data_from_osm(data, scale))
