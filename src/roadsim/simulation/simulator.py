"""
Simulator - Frame loop and session control.

Provides:
- Start / stop / pause of a World
- Fixed or caller-supplied time stepping, optionally paced in real time
- Pre/post step callbacks
- Keyboard input routed to one human-driven car
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import time

from roadsim.car.car import Car
from roadsim.car.controls import ControlType, ControlsInput, KeyBindings
from roadsim.car.sensor import Reading
from roadsim.simulation.world import World


log = logging.getLogger(__name__)

# Called as callback(simulator, dt)
StepCallback = Callable[["Simulator", float], None]


@dataclass
class SimulatorConfig:
    """Simulator configuration."""
    fixed_dt: float = 1 / 60         # one animation frame
    max_dt: float = 0.1              # clamp for long frames
    real_time: bool = False          # pace steps to wall-clock time
    max_time: float = 0.0            # stop after this many seconds (0 = unlimited)

    def __post_init__(self):
        if self.fixed_dt <= 0:
            raise ValueError(f"fixed_dt must be positive, got {self.fixed_dt}")


class Simulator:
    """Drives a World one frame at a time.

    Holds at most one keyboard subscription; attaching input to another
    car detaches the previous one.

    Usage:
        sim = Simulator(world)
        sim.start()
        while sim.is_running:
            readings = sim.step()
    """

    def __init__(self, world: World | None = None, config: SimulatorConfig | None = None):
        """Initialize simulator.

        Args:
            world: World to drive. A new empty world is created if None.
            config: Simulator configuration. Uses defaults if None.
        """
        self.config = config or SimulatorConfig()
        self.world = world if world is not None else World()

        self._running: bool = False
        self._paused: bool = False

        self._before_tick: List[StepCallback] = []
        self._after_tick: List[StepCallback] = []

        self._input: Optional[ControlsInput] = None
        self._input_car: Optional[Car] = None

        self._frame_deadline: float = 0.0   # monotonic time the next frame may start

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def time(self) -> float:
        """Current simulation time."""
        return self.world.time

    @property
    def cars(self) -> List[Car]:
        return self.world.cars

    @property
    def input_car(self) -> Optional[Car]:
        """Car currently receiving keyboard input."""
        return self._input_car

    def add_pre_step_callback(self, callback: StepCallback) -> None:
        """Run callback(simulator, dt) before the world ticks.

        This is where driving strategies set controls from last frame's
        sensor readings.
        """
        self._before_tick.append(callback)

    def add_post_step_callback(self, callback: StepCallback) -> None:
        """Run callback(simulator, dt) after the world ticks and the clock moves."""
        self._after_tick.append(callback)

    def attach_input(self, car: Car, bindings: KeyBindings | None = None) -> ControlsInput:
        """Route keyboard events to a car's controls.

        Args:
            car: Human-driven car
            bindings: Key map. Uses arrow keys and WASD if None.

        Returns:
            The new subscription
        """
        if car.control_type != ControlType.HUMAN:
            raise ValueError(f"car {car.car_id} is {car.control_type.value}-controlled, not human")
        if self._input is not None:
            log.info("keyboard input moves from car %s to car %s",
                     self._input_car.car_id if self._input_car else None, car.car_id)
            self.detach_input()
        self._input = ControlsInput(car.controls, bindings)
        self._input_car = car
        return self._input

    def detach_input(self) -> None:
        if self._input is not None:
            self._input.detach()
        self._input = None
        self._input_car = None

    def key_down(self, key: str) -> bool:
        """Forward a key press; True if it changed a control."""
        return self._input is not None and self._input.handle_key(key, True)

    def key_up(self, key: str) -> bool:
        """Forward a key release; True if it changed a control."""
        return self._input is not None and self._input.handle_key(key, False)

    def start(self) -> None:
        """Begin accepting steps.

        Raises:
            RuntimeError: If the world has been disposed
        """
        if self.world.is_disposed:
            raise RuntimeError("cannot start a disposed world")
        self._running = True
        self._paused = False
        self._frame_deadline = time.monotonic()

    def stop(self) -> None:
        """Stop stepping. Cars, markings and light phases are left as they are."""
        self._running = False

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False
        self._frame_deadline = time.monotonic()

    def _pace(self, dt: float) -> None:
        """Sleep until dt of wall-clock time has passed since the last frame."""
        now = time.monotonic()
        if now < self._frame_deadline:
            time.sleep(self._frame_deadline - now)
        self._frame_deadline = max(now, self._frame_deadline) + dt

    def step(self, dt: float | None = None) -> Dict[int, Tuple[Optional[Reading], ...]]:
        """Advance simulation by one frame.

        Args:
            dt: Frame time (uses fixed_dt if None, clamped to max_dt)

        Returns:
            Sensor readings per car id, empty if not running or paused
        """
        if not self._running or self._paused:
            return {}

        dt = self.config.fixed_dt if dt is None else dt
        dt = min(dt, self.config.max_dt)

        if self.config.real_time:
            self._pace(dt)

        for callback in self._before_tick:
            callback(self, dt)

        self.world.tick(dt)

        if self.config.max_time > 0 and self.world.time >= self.config.max_time:
            self.stop()

        for callback in self._after_tick:
            callback(self, dt)

        return self.world.get_readings()

    def step_until(self, condition: Callable[["Simulator"], bool], max_steps: int = 100_000) -> int:
        """Take fixed_dt steps until condition(simulator) holds.

        The condition is checked before every step, so nothing runs if
        it already holds. Stepping also ends when the simulator stops
        (max_time reached), is paused or has taken max_steps.

        Returns:
            Number of steps taken
        """
        for steps in range(max_steps):
            if not self._running or self._paused or condition(self):
                return steps
            self.step()
        return max_steps

    def reset(self) -> None:
        """Stop, drop input and remove all cars."""
        self.detach_input()
        self.world.reset()
        self._running = False
        self._paused = False

    def get_state(self) -> Dict[str, Any]:
        """Session flags, stepping config and the world state."""
        return {
            "config": {
                "fixed_dt": self.config.fixed_dt,
                "max_dt": self.config.max_dt,
                "real_time": self.config.real_time,
                "max_time": self.config.max_time,
            },
            "running": self._running,
            "paused": self._paused,
            "input_car": self._input_car.car_id if self._input_car else None,
            "world": self.world.get_state(),
        }
