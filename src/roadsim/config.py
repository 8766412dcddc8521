"""
Config - Process-wide simulation defaults.

Values are per-frame units unless stated otherwise. A subset can be
overridden through environment variables:

- ROADSIM_ROAD_WIDTH
- ROADSIM_GREEN_DURATION / ROADSIM_YELLOW_DURATION / ROADSIM_RED_DURATION
- ROADSIM_LOG_LEVEL

This module is a leaf: it never imports from other roadsim modules.
"""

import os


def _positive_float(name: str, default: float) -> float:
    """Read a positive float from the environment."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0, got {value}")
    return value


# Road network
ROAD_WIDTH: float = _positive_float("ROADSIM_ROAD_WIDTH", 40.0)

# Vehicle kinematics
CAR_WIDTH: float = 10.0
CAR_LENGTH: float = 17.5
CAR_ACCELERATION: float = 0.2
CAR_FRICTION: float = 0.05
CAR_MAX_SPEED: float = 0.5
CAR_TURN_RATE: float = 0.03       # rad per frame

# Sensor
SENSOR_RAY_COUNT: int = 10
SENSOR_RAY_LENGTH: float = 50.0
SENSOR_RAY_SPREAD: float = 1.5707963267948966  # pi / 2

# Traffic lights (seconds)
GREEN_DURATION: float = _positive_float("ROADSIM_GREEN_DURATION", 5.0)
YELLOW_DURATION: float = _positive_float("ROADSIM_YELLOW_DURATION", 2.0)
RED_DURATION: float = _positive_float("ROADSIM_RED_DURATION", 5.0)
BRAKING_DISTANCE: float = 40.0

# Spawning
SPAWN_MAX_ATTEMPTS: int = 50
SPAWN_RADIUS: float = 200.0

# Logging
LOG_LEVEL: str = os.environ.get("ROADSIM_LOG_LEVEL", "INFO").upper()
