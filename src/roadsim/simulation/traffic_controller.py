"""
TrafficController - Light phasing and stop decisions.

Lights are read through a provider callable so the controller always
sees the world's current marking collection.

Lights that sit on nodes of the light graph are grouped by connected
component. Within a group one light at a time runs green -> yellow ->
red while the others show red, then the next light in the group takes
over. Lights outside the light graph cycle on their own timers.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TYPE_CHECKING
import logging
import numpy as np

from roadsim import config
from roadsim.graph.graph import Graph
from roadsim.markings.traffic_light import NEXT_STATE, LightState, TrafficLight

if TYPE_CHECKING:
    from roadsim.car.car import Car


log = logging.getLogger(__name__)

LightsProvider = Callable[[], Sequence[TrafficLight]]


@dataclass
class TrafficControllerConfig:
    """Governance parameters."""
    braking_distance: float = config.BRAKING_DISTANCE
    # Max distance between a light and the car's edge for it to govern that edge
    edge_tolerance: float = config.ROAD_WIDTH / 2

    def __post_init__(self):
        if self.braking_distance < 0:
            raise ValueError(f"braking_distance must be non-negative, got {self.braking_distance}")


class LightGroup:
    """Lights sharing an intersection, served round-robin.

    Only the active light ever leaves red. When it finishes its red
    phase the next light in the group turns green.
    """

    def __init__(self, lights: Sequence[TrafficLight]):
        if not lights:
            raise ValueError("a light group needs at least one light")
        self.lights: List[TrafficLight] = list(lights)
        self.active = 0
        self.restart()

    def __repr__(self) -> str:
        return f"LightGroup(lights={len(self.lights)}, active={self.active})"

    @property
    def active_light(self) -> TrafficLight:
        return self.lights[self.active]

    def restart(self) -> None:
        """All lights red, then the first light green."""
        for light in self.lights:
            light.set_state(LightState.RED)
        self.active = 0
        self.active_light.set_state(LightState.GREEN)

    def advance(self, dt: float) -> int:
        """Advance the active light, handing over after its red phase.

        Leftover time carries across hand-overs like it does within a
        single light.

        Returns:
            Number of state transitions made
        """
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")

        light = self.active_light
        light.elapsed += dt
        transitions = 0
        while light.phase_complete:
            leftover = max(0.0, light.elapsed - light.config.duration(light.state))
            if light.state is LightState.RED:
                self.active = (self.active + 1) % len(self.lights)
                light = self.active_light
            light.set_state(NEXT_STATE[light.state])
            light.elapsed = leftover
            transitions += 1
        return transitions


class TrafficController:
    """Advances light timers and tells cars when to hold.

    A light governs a car when it sits on the car's current edge, lies
    ahead of the car and faces the car's direction of travel. Only the
    nearest such light within braking distance counts.

    Usage:
        controller = TrafficController(graph, lambda: lights, light_graph=links)
        controller.tick(dt)
        if controller.should_stop(car):
            ...
    """

    def __init__(
        self,
        graph: Graph,
        lights: LightsProvider,
        config: TrafficControllerConfig | None = None,
        light_graph: Graph | None = None,
    ):
        """Initialize controller.

        Args:
            graph: Road graph used to find each car's current edge
            lights: Callable returning the current traffic lights
            config: Controller configuration. Uses defaults if None.
            light_graph: Graph linking lights that share an intersection.
                Without it every light cycles independently.
        """
        self.graph = graph
        self.light_graph = light_graph
        self._lights = lights
        self.config = config or TrafficControllerConfig()

        self._groups: List[LightGroup] = []
        self._grouped_changes: Optional[int] = None
        self._grouped_lights: List[TrafficLight] = []

    @property
    def lights(self) -> List[TrafficLight]:
        return list(self._lights())

    @property
    def groups(self) -> List[LightGroup]:
        """Light groups as of the last tick."""
        return list(self._groups)

    def _sync_groups(self, lights: Sequence[TrafficLight]) -> None:
        """Regroup when the light graph or the set of lights has changed."""
        if self.light_graph is None:
            self._groups = []
            return
        changes = self.light_graph.changes
        if (
            changes == self._grouped_changes
            and len(lights) == len(self._grouped_lights)
            and all(a is b for a, b in zip(lights, self._grouped_lights))
        ):
            return
        self._grouped_changes = changes
        self._grouped_lights = list(lights)

        epsilon = self.light_graph.epsilon
        groups = []
        for nodes in self.light_graph.connected_components():
            members = [
                light for light in lights
                if any(node.equals(light.position, epsilon) for node in nodes)
            ]
            if members:
                groups.append(LightGroup(members))
        self._groups = groups
        log.debug("regrouped %d lights into %d groups", sum(len(g.lights) for g in groups), len(groups))

    def tick(self, dt: float) -> None:
        """Advance light groups and free-running lights by dt seconds."""
        lights = list(self._lights())
        self._sync_groups(lights)

        grouped = set()
        for group in self._groups:
            group.advance(dt)
            grouped.update(id(light) for light in group.lights)
        for light in lights:
            if id(light) not in grouped:
                light.advance(dt)

    def governing_light(self, car: "Car") -> Optional[TrafficLight]:
        """Nearest light governing the car, within braking distance."""
        edge = self.graph.nearest_edge(car.position)
        if edge is None:
            return None

        position = car.position
        heading = car.direction
        best: Optional[TrafficLight] = None
        best_dist = self.config.braking_distance
        for light in self._lights():
            if edge.distance_to_point(light.position) > self.config.edge_tolerance:
                continue
            offset = light.position.as_array() - position
            if np.dot(offset, heading) <= 0:
                continue   # behind or level with the car
            if np.dot(light.direction_vector, heading) <= 0:
                continue   # governs the opposite direction
            dist = float(np.hypot(*offset))
            if dist <= best_dist:
                best, best_dist = light, dist
        return best

    def should_stop(self, car: "Car") -> bool:
        """True if the governing light shows red or yellow."""
        light = self.governing_light(car)
        return light is not None and light.is_stop_signal
