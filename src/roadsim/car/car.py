"""
Car - Kinematic vehicle with intent controls, footprint and sensor.

Integrates:
- Controls (human / AI / none)
- Arcade kinematics (acceleration, friction, steering)
- Rectangular collision footprint
- Ray-cast sensor
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Sequence, TYPE_CHECKING
import logging
import numpy as np

from roadsim import config
from roadsim.car.controls import Controls, ControlType
from roadsim.car.sensor import Sensor, SensorConfig, Reading
from roadsim.graph.geometry import Polygon

if TYPE_CHECKING:
    from roadsim.simulation.traffic_controller import TrafficController


log = logging.getLogger(__name__)


@dataclass
class CarConfig:
    """Car dimensions and per-frame kinematic constants."""
    width: float = config.CAR_WIDTH
    length: float = config.CAR_LENGTH

    acceleration: float = config.CAR_ACCELERATION
    friction: float = config.CAR_FRICTION
    max_speed: float = config.CAR_MAX_SPEED
    max_reverse_speed: float | None = None   # defaults to max_speed / 2
    turn_rate: float = config.CAR_TURN_RATE  # rad per frame

    sensor: SensorConfig | None = None

    def __post_init__(self):
        if self.max_speed <= 0:
            raise ValueError(f"max_speed must be positive, got {self.max_speed}")
        if self.max_reverse_speed is None:
            self.max_reverse_speed = self.max_speed / 2
        if self.width <= 0 or self.length <= 0:
            raise ValueError("car width and length must be positive")


@dataclass
class CarState:
    """Pose and speed of the car."""
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0  # radians, 0 = "north" (-y)
    speed: float = 0.0    # units per frame, negative when reversing


def create_footprint(x: float, y: float, heading: float, width: float, length: float) -> Polygon:
    """Four-corner rectangle centred on (x, y), long side along heading.

    Corners are ordered front-left, front-right, rear-right, rear-left.
    """
    rad = np.hypot(width, length) / 2
    alpha = np.arctan2(width, length)
    angles = np.array([heading - alpha, heading + alpha,
                       np.pi + heading - alpha, np.pi + heading + alpha])
    points = np.column_stack((x + np.sin(angles) * rad, y - np.cos(angles) * rad))
    return Polygon(points)


class Car:
    """Simulated vehicle.

    Each tick the car turns its controls into speed and heading changes,
    moves, rebuilds its footprint, senses the other cars and finally
    checks for collisions. A collision marks the car damaged and rolls
    it back to its pose from the start of the tick; damaged cars stay
    put from then on.

    Usage:
        car = Car(x=0.0, y=0.0, control_type=ControlType.HUMAN)
        car.controls.forward = True
        car.update(traffic=[other_car])
        readings = car.sensor.readings
    """

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        heading: float = 0.0,
        control_type: ControlType = ControlType.AI,
        config: CarConfig | None = None,
        car_id: int = 0,
    ):
        """Initialize car.

        Args:
            x: Starting X position
            y: Starting Y position
            heading: Starting heading in radians
            control_type: Source of control intent
            config: Car configuration. Uses defaults if None.
            car_id: Identifier, assigned by the world on insertion
        """
        self.config = config or CarConfig()
        self.car_id = car_id
        self.control_type = control_type
        self.controls = Controls.for_type(control_type)

        # Fixed obstacles carry no sensor
        self.sensor: Optional[Sensor] = None
        if control_type != ControlType.NONE:
            self.sensor = Sensor(self.config.sensor)

        self.state = CarState()
        self.damaged = False
        self.footprint = create_footprint(0.0, 0.0, 0.0, self.config.width, self.config.length)
        self.reset(x=x, y=y, heading=heading)

    def __repr__(self) -> str:
        return (f"Car(id={self.car_id}, {self.control_type.name}, "
                f"x={self.state.x:.2f}, y={self.state.y:.2f}, damaged={self.damaged})")

    def reset(self, x: float = 0.0, y: float = 0.0, heading: float = 0.0) -> None:
        """Place the car at rest at the given pose."""
        self.state = CarState(x=float(x), y=float(y), heading=float(heading))
        self.damaged = False
        self.controls.reset()
        self.controls.forward = self.control_type == ControlType.AI
        self._update_footprint()
        if self.sensor is not None:
            self.sensor.clear()

    @property
    def position(self) -> np.ndarray:
        """Current (x, y) position."""
        return np.array([self.state.x, self.state.y])

    @property
    def heading(self) -> float:
        return self.state.heading

    @property
    def speed(self) -> float:
        return self.state.speed

    @property
    def direction(self) -> np.ndarray:
        """Unit vector of travel for positive speed."""
        return np.array([np.sin(self.state.heading), -np.cos(self.state.heading)])

    def _update_footprint(self) -> None:
        self.footprint = create_footprint(
            self.state.x, self.state.y, self.state.heading,
            self.config.width, self.config.length,
        )

    def _move(self, forward: bool, reverse: bool, left: bool, right: bool) -> None:
        """Apply one frame of kinematics."""
        cfg = self.config
        s = self.state

        if forward:
            s.speed += cfg.acceleration
        if reverse:
            s.speed -= cfg.acceleration
        s.speed = float(np.clip(s.speed, -cfg.max_reverse_speed, cfg.max_speed))

        # Friction only when coasting, and never past zero
        if not forward and not reverse:
            if s.speed > 0:
                s.speed = max(0.0, s.speed - cfg.friction)
            elif s.speed < 0:
                s.speed = min(0.0, s.speed + cfg.friction)

        # Steering follows the direction of travel
        if s.speed != 0:
            flip = 1.0 if s.speed > 0 else -1.0
            if left:
                s.heading -= cfg.turn_rate * flip
            if right:
                s.heading += cfg.turn_rate * flip

        s.x += float(np.sin(s.heading)) * s.speed
        s.y -= float(np.cos(s.heading)) * s.speed

    def update(
        self,
        traffic: Sequence["Car"] = (),
        obstacles: Iterable[Polygon] = (),
        controller: Optional["TrafficController"] = None,
    ) -> CarState:
        """Advance the car by one tick.

        Args:
            traffic: Other cars (self is ignored if present)
            obstacles: Static obstacle polygons
            controller: Traffic light governance, if any

        Returns:
            Updated car state
        """
        if self.control_type == ControlType.NONE:
            self.controls.reset()

        c = self.controls
        forward = c.forward
        if forward and controller is not None and controller.should_stop(self):
            forward = False

        previous = replace(self.state)
        if not self.damaged:
            self._move(forward, c.reverse, c.left, c.right)
        self._update_footprint()

        other_cars = [car for car in traffic if car is not self]
        others = [car.footprint for car in other_cars]
        if self.sensor is not None:
            self.sensor.update(self.position, self.state.heading, others)

        if self.assess_damage(others, obstacles):
            if not self.damaged:
                log.debug("car %s collided at (%.2f, %.2f)", self.car_id, self.state.x, self.state.y)
            self.damaged = True
            # The car that was hit is damaged too
            for car in other_cars:
                if not car.damaged and self.footprint.intersects(car.footprint):
                    log.debug("car %s was hit by car %s", car.car_id, self.car_id)
                    car.damaged = True
            self.state = previous
            self._update_footprint()

        return self.state

    def assess_damage(self, others: Iterable[Polygon], obstacles: Iterable[Polygon] = ()) -> bool:
        """True if the footprint overlaps any other footprint or obstacle."""
        for poly in others:
            if self.footprint.intersects(poly):
                return True
        for poly in obstacles:
            if self.footprint.intersects(poly):
                return True
        return False

    def sensor_offsets(self) -> np.ndarray:
        """Normalised proximity per ray (1 - offset, 0 when clear)."""
        if self.sensor is None:
            return np.zeros(0)
        return self.sensor.get_offsets()

    @property
    def readings(self) -> tuple[Optional[Reading], ...]:
        """Sensor readings, empty for cars without a sensor."""
        if self.sensor is None:
            return ()
        return self.sensor.readings

    def dispose(self) -> None:
        """Release the sensor buffers."""
        if self.sensor is not None:
            self.sensor.clear()
            self.sensor = None

    def get_state(self) -> Dict[str, Any]:
        """Car state as a plain dictionary."""
        return {
            "car_id": self.car_id,
            "control_type": self.control_type.value,
            "x": self.state.x,
            "y": self.state.y,
            "heading": self.state.heading,
            "speed": self.state.speed,
            "damaged": self.damaged,
            "controls": {
                "forward": self.controls.forward,
                "left": self.controls.left,
                "right": self.controls.right,
                "reverse": self.controls.reverse,
            },
            "footprint": self.footprint.to_list(),
        }
