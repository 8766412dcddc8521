"""
Marking - Placeable road annotations.

Markings sit on the road network at a position and face along a
direction (usually the direction of the edge they were placed on).
"""

from enum import Enum
from typing import Any, Dict
import numpy as np

from roadsim.graph.primitives import Node


class MarkingType(Enum):
    """Kinds of marking that can be placed in a world."""
    TRAFFIC_LIGHT = "traffic-light"
    SOURCE = "source"
    DESTINATION = "destination"
    DEFAULT = "default"


def _node_from(data: Any, field_name: str) -> Node:
    try:
        return Node(float(data["x"]), float(data["y"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"marking {field_name} must be an {{x, y}} mapping, got {data!r}") from exc


class Marking:
    """A marking with position and facing direction.

    Attributes:
        position: Location in world coordinates
        direction: Facing vector, stored as a node-like (x, y) pair
        marking_type: Kind of marking
    """

    marking_type: MarkingType = MarkingType.DEFAULT

    def __init__(self, position, direction=(0.0, -1.0)):
        self.position = Node.from_point(position)
        self.direction = Node.from_point(direction)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(position={self.position!r})"

    @property
    def direction_vector(self) -> np.ndarray:
        """Unit facing vector (zero if direction is degenerate)."""
        vec = self.direction.as_array()
        norm = np.hypot(*vec)
        return vec / norm if norm > 0 else np.zeros(2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.marking_type.value,
            "position": self.position.to_dict(),
            "direction": self.direction.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Marking":
        """Rebuild a marking from to_dict() output.

        Raises:
            ValueError: If position or direction is malformed
        """
        position = _node_from(data.get("position"), "position")
        direction = _node_from(data.get("direction"), "direction")
        return cls(position, direction)


class Source(Marking):
    """Start point for routing."""
    marking_type = MarkingType.SOURCE


class Destination(Marking):
    """End point for routing."""
    marking_type = MarkingType.DESTINATION
