#!/usr/bin/env python3
"""
Basic Simulation Example

This example demonstrates how to:
1. Build a small road grid
2. Place two linked traffic lights at an intersection
3. Spawn AI traffic and run the simulation loop
4. Route between a source and a destination
5. Save the world snapshot

Run with: python run_simulation.py [--cars 8] [--steps 600] [--save world.json]
"""

import argparse

from roadsim import Simulator, World, Graph
from roadsim.car import ControlType
from roadsim.io import save_world
from roadsim.logging_setup import setup_logging
from roadsim.markings import MarkingEditor, Source, Destination
from roadsim.simulation import SimulatorConfig, WorldConfig


def build_grid(size: int = 4, spacing: float = 150.0) -> Graph:
    """Square grid of undirected roads."""
    graph = Graph()
    nodes = [[graph.add_node((i * spacing, j * spacing)) for j in range(size)] for i in range(size)]
    for i in range(size):
        for j in range(size):
            if i + 1 < size:
                graph.add_edge(nodes[i][j], nodes[i + 1][j])
            if j + 1 < size:
                graph.add_edge(nodes[i][j], nodes[i][j + 1])
    return graph


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="RoadSim basic simulation")
    parser.add_argument("--cars", type=int, default=8, help="Number of AI cars")
    parser.add_argument("--steps", type=int, default=600, help="Frames to simulate")
    parser.add_argument("--seed", type=int, default=42, help="Spawn seed")
    parser.add_argument("--save", type=str, default=None, help="Write a snapshot to this path")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging(args.log_level)

    print("=" * 60)
    print("RoadSim Basic Simulation Example")
    print("=" * 60)

    print("\n1. Building road grid...")
    world = World(build_grid(), WorldConfig(seed=args.seed))
    print(f"   Nodes: {world.graph.node_count}")
    print(f"   Edges: {world.graph.edge_count}")

    print("\n2. Placing linked traffic lights...")
    editor = MarkingEditor.for_traffic_lights(world)
    editor.handle_pointer_move((130.0, 152.0))
    west = editor.commit()
    editor.handle_pointer_move((152.0, 130.0))
    north = editor.commit()
    world.link_lights(west, north)
    print(f"   {west}")
    print(f"   {north}")

    print("\n3. Spawning traffic...")
    cars = world.generate_traffic(args.cars, ControlType.AI)
    print(f"   Spawned {len(cars)} of {args.cars} cars")

    sim = Simulator(world, SimulatorConfig())
    sim.start()
    for step in range(args.steps):
        readings = sim.step()
        if (step + 1) % 120 == 0:
            seen = sum(1 for car_readings in readings.values() for r in car_readings if r is not None)
            state = world.get_state()
            print(f"   t={world.time:5.2f}s  damaged={state['damaged_count']}  "
                  f"ray hits={seen}  lights={west.state.value}/{north.state.value}")
    sim.stop()

    print("\n4. Routing...")
    world.add_marking(Source((0.0, 0.0)))
    world.add_marking(Destination((450.0, 450.0)))
    route = world.find_route()
    length = sum(edge.length() for edge in route)
    print(f"   {len(route)} edges, {length:.0f} units")

    if args.save:
        print("\n5. Saving snapshot...")
        path = save_world(world, args.save)
        print(f"   Written to {path}")

    print("\n" + "=" * 60)
    print("Simulation complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
