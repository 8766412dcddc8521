"""
Marking editor - Snap-to-road placement of markings.

Pointer positions are projected onto the nearest road edge; the
resulting preview faces along that edge and is added to the world on
commit.
"""

from typing import Callable, Optional, TYPE_CHECKING
import logging

from roadsim.graph.primitives import Node
from roadsim.markings.marking import Marking, MarkingType
from roadsim.markings.traffic_light import TrafficLight, TrafficLightConfig

if TYPE_CHECKING:
    from roadsim.simulation.world import World


log = logging.getLogger(__name__)

DEFAULT_SNAP_DISTANCE = 20.0

# Builds a marking from (position, direction)
MarkingFactory = Callable[[Node, Node], Marking]


class MarkingEditor:
    """Places markings of one kind onto a world's road edges.

    Usage:
        editor = MarkingEditor.for_traffic_lights(world)
        editor.handle_pointer_move((120, 40))
        light = editor.commit()
    """

    def __init__(
        self,
        world: "World",
        factory: MarkingFactory,
        snap_distance: float = DEFAULT_SNAP_DISTANCE,
        marking_type: MarkingType | None = None,
    ):
        """Initialize editor.

        Args:
            world: World whose graph is snapped to and that receives markings
            factory: Callable building a marking at (position, direction)
            snap_distance: Max pointer distance to an edge for a preview
            marking_type: Kind removed by remove_nearest. Taken from the
                factory's output if None.
        """
        if snap_distance <= 0:
            raise ValueError(f"snap_distance must be positive, got {snap_distance}")
        self.world = world
        self.factory = factory
        self.snap_distance = snap_distance
        if marking_type is None:
            marking_type = factory(Node(0.0, 0.0), Node(0.0, -1.0)).marking_type
        self.marking_type = marking_type
        self.intent: Optional[Marking] = None

    @classmethod
    def for_traffic_lights(cls, world: "World", config: TrafficLightConfig | None = None) -> "MarkingEditor":
        """Editor placing TrafficLight markings sharing one config."""
        return cls(
            world,
            lambda position, direction: TrafficLight(position, direction, config),
            marking_type=MarkingType.TRAFFIC_LIGHT,
        )

    def handle_pointer_move(self, point) -> Optional[Marking]:
        """Update the preview for a pointer position.

        Returns:
            The previewed marking, or None if no edge is close enough or
            the projection falls outside the edge
        """
        self.intent = None
        edge = self.world.graph.nearest_edge(point, threshold=self.snap_distance)
        if edge is None:
            return None

        projected, offset = edge.project_point(point)
        if not 0.0 <= offset <= 1.0:
            return None

        direction = edge.direction_vector()
        self.intent = self.factory(Node.from_point(projected), Node.from_point(direction))
        return self.intent

    def commit(self) -> Optional[Marking]:
        """Add the previewed marking to the world."""
        if self.intent is None:
            log.warning("nothing to commit: pointer is not on a road")
            return None
        marking = self.intent
        self.world.add_marking(marking)
        self.intent = None
        return marking

    def cancel(self) -> None:
        self.intent = None

    def remove_nearest(self, point, threshold: float | None = None) -> Optional[Marking]:
        """Remove the closest marking of this editor's kind.

        Args:
            point: Query position
            threshold: Max distance; defaults to snap_distance

        Returns:
            The removed marking, or None if none was within threshold
        """
        limit = self.snap_distance if threshold is None else threshold
        p = Node.from_point(point)
        best: Optional[Marking] = None
        best_dist = limit
        for marking in self.world.markings:
            if marking.marking_type is not self.marking_type:
                continue
            dist = p.distance_to(marking.position)
            if dist <= best_dist:
                best, best_dist = marking, dist
        if best is None:
            log.warning("no %s marking within %.1f of %r", self.marking_type.value, limit, p)
            return None
        self.world.remove_marking(best)
        return best
