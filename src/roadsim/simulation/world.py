"""
World - Owner of the road graph, traffic and markings.

Manages:
- Road graph and shortest-path queries
- Car spawning, removal and per-tick update
- Markings, including traffic lights, their intersection links and controller
- Static obstacles
- Global time
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple
import logging
import numpy as np

from roadsim import config
from roadsim.car.car import Car, CarConfig, create_footprint
from roadsim.car.controls import ControlType
from roadsim.car.sensor import Reading
from roadsim.graph.geometry import Polygon
from roadsim.graph.graph import Graph
from roadsim.graph.primitives import Edge
from roadsim.markings.marking import Destination, Marking, Source
from roadsim.markings.traffic_light import TrafficLight
from roadsim.routing.pathfinder import PathFinder
from roadsim.simulation.traffic_controller import TrafficController, TrafficControllerConfig


log = logging.getLogger(__name__)


@dataclass
class WorldConfig:
    """World configuration."""
    road_width: float = config.ROAD_WIDTH
    car: CarConfig | None = None
    traffic: TrafficControllerConfig | None = None

    # Spawning
    spawn_max_attempts: int = config.SPAWN_MAX_ATTEMPTS   # per car
    spawn_radius: float = config.SPAWN_RADIUS             # used when the graph has no edges
    seed: int | None = None

    def __post_init__(self):
        if self.spawn_max_attempts < 1:
            raise ValueError(f"spawn_max_attempts must be at least 1, got {self.spawn_max_attempts}")


class World:
    """World state container and tick driver.

    Cars are kept in insertion order and updated sequentially in that
    order, so earlier cars see later cars' previous-tick footprints.

    Usage:
        world = World(graph)
        world.generate_traffic(10, ControlType.AI)
        world.tick(1 / 60)
    """

    def __init__(
        self,
        graph: Graph | None = None,
        config: WorldConfig | None = None,
        light_graph: Graph | None = None,
    ):
        """Initialize world.

        Args:
            graph: Road graph. A new empty graph is created if None.
            config: World configuration. Uses defaults if None.
            light_graph: Links between lights sharing an intersection.
                A new empty graph is created if None.
        """
        self.config = config or WorldConfig()
        self.graph = graph if graph is not None else Graph()
        self.light_graph = light_graph if light_graph is not None else Graph()
        self.path_finder = PathFinder(self.graph)

        self._cars: Dict[int, Car] = {}
        self._next_car_id: int = 0
        self._markings: List[Marking] = []
        self._obstacles: List[Polygon] = []

        traffic_config = self.config.traffic or TrafficControllerConfig(
            edge_tolerance=self.config.road_width / 2,
        )
        self.traffic_controller = TrafficController(
            self.graph, lambda: self.traffic_lights, traffic_config, self.light_graph,
        )
        self._rng = np.random.default_rng(self.config.seed)

        self._time: float = 0.0
        self._frame: int = 0
        self._disposed = False

    def __repr__(self) -> str:
        return (f"World(cars={self.car_count}, markings={len(self._markings)}, "
                f"graph={self.graph!r})")

    @property
    def time(self) -> float:
        """Simulation time in seconds."""
        return self._time

    @property
    def frame(self) -> int:
        return self._frame

    @property
    def cars(self) -> List[Car]:
        """Cars in update order."""
        return list(self._cars.values())

    @property
    def car_count(self) -> int:
        return len(self._cars)

    @property
    def markings(self) -> List[Marking]:
        return list(self._markings)

    @property
    def traffic_lights(self) -> List[TrafficLight]:
        return [m for m in self._markings if isinstance(m, TrafficLight)]

    @property
    def obstacles(self) -> List[Polygon]:
        return list(self._obstacles)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # -- cars --------------------------------------------------------------

    def add_car(self, car: Car) -> int:
        """Add a car and assign it the next id.

        Returns:
            Car ID
        """
        car_id = self._next_car_id
        self._next_car_id += 1
        car.car_id = car_id
        self._cars[car_id] = car
        return car_id

    def remove_car(self, car_id: int) -> bool:
        """Remove a car and release its sensor.

        Returns:
            True if the car was removed
        """
        car = self._cars.pop(car_id, None)
        if car is None:
            return False
        car.dispose()
        return True

    def get_car(self, car_id: int) -> Optional[Car]:
        return self._cars.get(car_id)

    def clear_traffic(self) -> int:
        """Remove every car.

        Returns:
            Number of cars removed
        """
        count = len(self._cars)
        for car in self._cars.values():
            car.dispose()
        self._cars.clear()
        return count

    def generate_traffic(
        self,
        count: int,
        control_type: ControlType = ControlType.AI,
        clear_existing: bool = False,
        max_speed: float | None = None,
    ) -> List[Car]:
        """Spawn cars at random non-overlapping positions.

        Each car gets up to spawn_max_attempts placements; a spot is
        rejected if the footprint overlaps a placed car or an obstacle.
        Spawning stops at the first car that cannot be placed.

        Args:
            count: Number of cars to spawn (positive)
            control_type: Control type of the new cars
            clear_existing: Remove current cars first
            max_speed: Override the configured top speed

        Returns:
            The spawned cars, possibly fewer than count
        """
        if isinstance(count, bool) or not isinstance(count, (int, np.integer)) or count < 1:
            raise ValueError(f"count must be a positive integer, got {count!r}")
        self._check_alive()

        if clear_existing:
            self.clear_traffic()

        car_config = self.config.car or CarConfig()
        if max_speed is not None:
            car_config = replace(car_config, max_speed=max_speed, max_reverse_speed=None)

        spawned: List[Car] = []
        for _ in range(count):
            pose = self._find_spawn_pose(car_config)
            if pose is None:
                break
            x, y, heading = pose
            car = Car(x, y, heading, control_type=control_type, config=car_config)
            self.add_car(car)
            spawned.append(car)

        if len(spawned) < count:
            log.warning("placed %d of %d cars after %d attempts each",
                        len(spawned), count, self.config.spawn_max_attempts)
        return spawned

    def _find_spawn_pose(self, car_config: CarConfig) -> Optional[Tuple[float, float, float]]:
        for _ in range(self.config.spawn_max_attempts):
            x, y, heading = self._random_pose()
            footprint = create_footprint(x, y, heading, car_config.width, car_config.length)
            if not self._placement_blocked(footprint):
                return x, y, heading
        return None

    def _random_pose(self) -> Tuple[float, float, float]:
        edges = self.graph.get_edges()
        if not edges:
            r = self.config.spawn_radius
            x, y = self._rng.uniform(-r, r, size=2)
            return float(x), float(y), float(self._rng.uniform(0.0, 2 * np.pi))

        edge = edges[int(self._rng.integers(len(edges)))]
        t = float(self._rng.random())
        point = edge.n1.as_array() + (edge.n2.as_array() - edge.n1.as_array()) * t
        dx, dy = edge.direction_vector()
        # Heading 0 faces -y
        heading = float(np.arctan2(dx, -dy))
        if not edge.directed and self._rng.random() < 0.5:
            heading += np.pi
        return float(point[0]), float(point[1]), heading

    def _placement_blocked(self, footprint: Polygon) -> bool:
        for car in self._cars.values():
            if footprint.intersects(car.footprint):
                return True
        return any(footprint.intersects(obstacle) for obstacle in self._obstacles)

    # -- markings and obstacles -------------------------------------------

    def add_marking(self, marking: Marking) -> Marking:
        self._markings.append(marking)
        return marking

    def remove_marking(self, marking: Marking) -> bool:
        """Remove a marking by identity.

        Returns:
            True if the marking was present
        """
        for i, existing in enumerate(self._markings):
            if existing is marking:
                del self._markings[i]
                return True
        return False

    def clear_markings(self) -> None:
        self._markings.clear()

    def link_lights(self, a: TrafficLight, b: TrafficLight) -> Edge:
        """Put two lights in the same intersection group.

        Linked lights take turns: at most one of a group shows green
        or yellow at any time.

        Returns:
            The light graph edge joining them

        Raises:
            ValueError: If both lights sit at the same position
        """
        if a.position.equals(b.position, self.light_graph.epsilon):
            raise ValueError("linked lights must be at different positions")
        return self.light_graph.add_edge(
            self.light_graph.add_node(tuple(a.position)),
            self.light_graph.add_node(tuple(b.position)),
        )

    def add_obstacle(self, obstacle) -> Polygon:
        """Add a static obstacle (Polygon or sequence of corner points)."""
        polygon = obstacle if isinstance(obstacle, Polygon) else Polygon(obstacle)
        self._obstacles.append(polygon)
        return polygon

    # -- routing -----------------------------------------------------------

    def find_path(self, src, dest) -> List[Edge]:
        return self.path_finder.find_path(src, dest)

    def find_route(self) -> List[Edge]:
        """Path from the first Source marking to the first Destination marking."""
        source = next((m for m in self._markings if isinstance(m, Source)), None)
        destination = next((m for m in self._markings if isinstance(m, Destination)), None)
        if source is None or destination is None:
            log.info("route needs both a source and a destination marking")
            return []
        return self.path_finder.find_path(source.position, destination.position)

    # -- simulation --------------------------------------------------------

    def _check_alive(self) -> None:
        if self._disposed:
            raise RuntimeError("World has been disposed")

    def tick(self, dt: float) -> None:
        """Advance the world by one frame.

        Updates every car in order, then advances the light timers.

        Args:
            dt: Frame time in seconds (drives the light timers)
        """
        self._check_alive()
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")

        cars = list(self._cars.values())
        for car in cars:
            car.update(cars, self._obstacles, self.traffic_controller)
        self.traffic_controller.tick(dt)

        self._time += dt
        self._frame += 1

    def get_readings(self) -> Dict[int, Tuple[Optional[Reading], ...]]:
        """Sensor readings per car id."""
        return {car_id: car.readings for car_id, car in self._cars.items()}

    def reset(self) -> None:
        """Remove all cars and restart the clock; graph and markings stay."""
        self.clear_traffic()
        self._next_car_id = 0
        self._time = 0.0
        self._frame = 0
        self._rng = np.random.default_rng(self.config.seed)

    def dispose(self) -> None:
        """Release every car and drop all world content."""
        if self._disposed:
            return
        self.clear_traffic()
        self._markings.clear()
        self._obstacles.clear()
        self.graph.clear()
        self.light_graph.clear()
        self._disposed = True

    def get_state(self) -> Dict[str, Any]:
        """World state as a plain dictionary."""
        return {
            "time": self._time,
            "frame": self._frame,
            "car_count": self.car_count,
            "damaged_count": sum(1 for car in self._cars.values() if car.damaged),
            "graph": {
                "nodes": self.graph.node_count,
                "edges": self.graph.edge_count,
            },
            "markings": len(self._markings),
            "traffic_lights": {
                str(i): light.state.value for i, light in enumerate(self.traffic_lights)
            },
            "cars": [car.get_state() for car in self._cars.values()],
        }
