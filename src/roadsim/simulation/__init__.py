"""
Simulation module - World orchestration and frame loop.

This module contains:
- World: Owns graph, cars, markings and obstacles; runs one tick
- TrafficController: Light phasing and stop decisions
- LightGroup: Round-robin phasing for lights sharing an intersection
- Simulator: Session control, time stepping and keyboard routing
"""

from roadsim.simulation.traffic_controller import LightGroup, TrafficController, TrafficControllerConfig
from roadsim.simulation.world import World, WorldConfig
from roadsim.simulation.simulator import Simulator, SimulatorConfig

__all__ = [
    "LightGroup",
    "TrafficController",
    "TrafficControllerConfig",
    "World",
    "WorldConfig",
    "Simulator",
    "SimulatorConfig",
]
