"""
Car module - Vehicles, their controls and their sensors.

This module contains:
- Car: Kinematic vehicle with footprint, damage flag and sensor
- Controls: Forward/left/right/reverse intent
- ControlsInput: Scoped keyboard subscription for human drivers
- Sensor: Ray-cast perception of other vehicles
"""

from roadsim.car.car import Car, CarConfig, CarState, create_footprint
from roadsim.car.controls import Controls, ControlType, ControlsInput, KeyBindings
from roadsim.car.sensor import Sensor, SensorConfig, Reading

__all__ = [
    "Car",
    "CarConfig",
    "CarState",
    "create_footprint",
    "Controls",
    "ControlType",
    "ControlsInput",
    "KeyBindings",
    "Sensor",
    "SensorConfig",
    "Reading",
]
