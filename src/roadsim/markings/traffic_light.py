"""
Traffic light - Timed signal marking.

Each light runs a fixed-timer state machine cycling
green -> yellow -> red -> green. Lights linked into an intersection
group are driven by the traffic controller instead.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from roadsim import config
from roadsim.markings.marking import Marking, MarkingType


class LightState(Enum):
    """Signal aspect."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


# Accumulated dt within this much of a duration counts as reaching it
TIMER_EPSILON = 1e-9

# Strict cycle order
NEXT_STATE = {
    LightState.GREEN: LightState.YELLOW,
    LightState.YELLOW: LightState.RED,
    LightState.RED: LightState.GREEN,
}


@dataclass
class TrafficLightConfig:
    """Per-state durations in seconds."""
    green_duration: float = config.GREEN_DURATION
    yellow_duration: float = config.YELLOW_DURATION
    red_duration: float = config.RED_DURATION
    initial_state: LightState = LightState.GREEN

    def __post_init__(self):
        for name in ("green_duration", "yellow_duration", "red_duration"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    def duration(self, state: LightState) -> float:
        return {
            LightState.GREEN: self.green_duration,
            LightState.YELLOW: self.yellow_duration,
            LightState.RED: self.red_duration,
        }[state]

    @property
    def cycle_duration(self) -> float:
        """Time for one full green -> yellow -> red -> green cycle."""
        return self.green_duration + self.yellow_duration + self.red_duration


class TrafficLight(Marking):
    """Signal placed on the road network.

    Usage:
        light = TrafficLight((50, 0), direction=(1, 0))
        light.advance(dt=0.1)
        if light.state is LightState.RED:
            ...
    """

    marking_type = MarkingType.TRAFFIC_LIGHT

    def __init__(self, position, direction=(0.0, -1.0), config: TrafficLightConfig | None = None):
        """Initialize traffic light.

        Args:
            position: Location in world coordinates
            direction: Direction of the traffic the light governs
            config: Durations and initial state. Uses defaults if None.
        """
        super().__init__(position, direction)
        self.config = config or TrafficLightConfig()
        self.state: LightState = self.config.initial_state
        self.elapsed: float = 0.0   # time spent in the current state

    def __repr__(self) -> str:
        return f"TrafficLight(position={self.position!r}, state={self.state.value})"

    @property
    def is_stop_signal(self) -> bool:
        """Red and yellow both tell approaching cars to stop."""
        return self.state in (LightState.RED, LightState.YELLOW)

    @property
    def phase_complete(self) -> bool:
        """True once the current state has run for its full duration."""
        return self.elapsed >= self.config.duration(self.state) - TIMER_EPSILON

    def set_state(self, state: LightState) -> None:
        self.state = state
        self.elapsed = 0.0

    def advance(self, dt: float) -> int:
        """Advance the timer.

        Leftover time carries into the next state, so fixed-size ticks
        complete a cycle exactly once per cycle_duration.

        Returns:
            Number of state transitions made
        """
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")

        self.elapsed += dt
        transitions = 0
        while self.phase_complete:
            self.elapsed = max(0.0, self.elapsed - self.config.duration(self.state))
            self.state = NEXT_STATE[self.state]
            transitions += 1
        return transitions

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "state": self.state.value,
            "elapsed": self.elapsed,
            "durations": {
                "green": self.config.green_duration,
                "yellow": self.config.yellow_duration,
                "red": self.config.red_duration,
            },
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrafficLight":
        """Rebuild a light, keeping its phase and durations.

        Raises:
            ValueError: On unknown state names or bad durations
        """
        base = Marking.from_dict(data)
        durations = data.get("durations") or {}
        try:
            state = LightState(data.get("state", LightState.GREEN.value))
            light_config = TrafficLightConfig(
                green_duration=float(durations.get("green", config.GREEN_DURATION)),
                yellow_duration=float(durations.get("yellow", config.YELLOW_DURATION)),
                red_duration=float(durations.get("red", config.RED_DURATION)),
                initial_state=state,
            )
            elapsed = float(data.get("elapsed", 0.0))
        except (TypeError, AttributeError) as exc:
            raise ValueError(f"malformed traffic light: {data!r}") from exc

        light = cls(base.position, base.direction, light_config)
        light.elapsed = elapsed
        return light
