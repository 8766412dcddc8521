"""
Markings module - Annotations placed on the road network.

This module contains:
- Marking / Source / Destination: Positioned, directed annotations
- TrafficLight: Timed green/yellow/red signal
- MarkingEditor: Snap-to-edge placement and removal
"""

from roadsim.markings.marking import Marking, MarkingType, Source, Destination
from roadsim.markings.traffic_light import TrafficLight, TrafficLightConfig, LightState
from roadsim.markings.editor import MarkingEditor

__all__ = [
    "Marking",
    "MarkingType",
    "Source",
    "Destination",
    "TrafficLight",
    "TrafficLightConfig",
    "LightState",
    "MarkingEditor",
]
