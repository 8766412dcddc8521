"""Tests for RoadSim traffic lights, the traffic controller and the marking editor."""

import logging

import pytest
import numpy as np

from roadsim.car import Car, ControlType
from roadsim.graph import Graph
from roadsim.markings import (
    LightState,
    MarkingEditor,
    MarkingType,
    Source,
    TrafficLight,
    TrafficLightConfig,
)
from roadsim.simulation import LightGroup, TrafficController, TrafficControllerConfig, World


def straight_road() -> Graph:
    graph = Graph()
    a = graph.add_node((0, 0))
    b = graph.add_node((200, 0))
    graph.add_edge(a, b)
    return graph


def eastbound_car(x: float = 50.0) -> Car:
    """AI car on the x axis heading +x."""
    return Car(x, 0.0, np.pi / 2, ControlType.AI)


class TestTrafficLight:
    """Test the light state machine."""

    def test_initial_state(self):
        """Test lights start in the configured state."""
        assert TrafficLight((0, 0)).state is LightState.GREEN
        config = TrafficLightConfig(initial_state=LightState.RED)
        assert TrafficLight((0, 0), config=config).state is LightState.RED

    def test_cycle_order(self):
        """Test green -> yellow -> red -> green."""
        light = TrafficLight((0, 0), config=TrafficLightConfig(5.0, 2.0, 5.0))
        seen = [light.state]
        for _ in range(48):
            light.advance(0.25)
            if light.state is not seen[-1]:
                seen.append(light.state)

        assert seen == [LightState.GREEN, LightState.YELLOW, LightState.RED, LightState.GREEN]

    def test_full_cycle_duration(self):
        """Test one full cycle takes exactly the summed durations."""
        config = TrafficLightConfig(5.0, 2.0, 5.0)
        light = TrafficLight((0, 0), config=config)
        dt = 0.25
        steps = int(config.cycle_duration / dt)

        transitions = sum(light.advance(dt) for _ in range(steps))

        assert transitions == 3
        assert light.state is LightState.GREEN
        assert light.elapsed == pytest.approx(0.0)

    def test_tenth_second_ticks_switch_on_time(self):
        """Test 0.1 s ticks switch state on exactly every tenth tick."""
        light = TrafficLight((0, 0), config=TrafficLightConfig(1.0, 1.0, 1.0))

        switched = [tick for tick in range(1, 31) if light.advance(0.1)]

        assert switched == [10, 20, 30]
        assert light.state is LightState.GREEN

    @pytest.mark.parametrize("dt", [0.1, 1 / 60, 1 / 30])
    def test_cycle_completes_at_fixed_dt(self, dt):
        """Test a full cycle at common frame rates makes exactly three transitions."""
        config = TrafficLightConfig(5.0, 2.0, 5.0)
        light = TrafficLight((0, 0), config=config)
        steps = round(config.cycle_duration / dt)

        transitions = sum(light.advance(dt) for _ in range(steps))

        assert transitions == 3
        assert light.state is LightState.GREEN
        assert light.elapsed == pytest.approx(0.0, abs=1e-6)

    def test_large_step_carries_over(self):
        """Test a long tick can pass several states."""
        light = TrafficLight((0, 0), config=TrafficLightConfig(5.0, 2.0, 5.0))

        assert light.advance(8.0) == 2
        assert light.state is LightState.RED
        assert light.elapsed == pytest.approx(1.0)

    def test_stop_signal(self):
        """Test red and yellow both mean stop."""
        light = TrafficLight((0, 0))
        assert not light.is_stop_signal
        light.set_state(LightState.YELLOW)
        assert light.is_stop_signal
        light.set_state(LightState.RED)
        assert light.is_stop_signal

    def test_invalid_values(self):
        """Test durations must be positive and dt non-negative."""
        with pytest.raises(ValueError):
            TrafficLightConfig(green_duration=0.0)
        with pytest.raises(ValueError):
            TrafficLight((0, 0)).advance(-1.0)

    def test_direction_vector(self):
        """Test facing direction is normalised."""
        light = TrafficLight((0, 0), direction=(3, 4))
        assert np.allclose(light.direction_vector, [0.6, 0.8])
        assert light.marking_type is MarkingType.TRAFFIC_LIGHT


class TestTrafficController:
    """Test which lights govern a car."""

    def controller(self, *lights):
        return TrafficController(straight_road(), lambda: lights, TrafficControllerConfig(braking_distance=40.0))

    def red(self, x: float, direction=(1.0, 0.0)) -> TrafficLight:
        return TrafficLight((x, 0.0), direction, TrafficLightConfig(initial_state=LightState.RED))

    def test_red_ahead_stops(self):
        """Test a red light ahead within braking distance stops the car."""
        assert self.controller(self.red(80.0)).should_stop(eastbound_car())

    def test_green_ahead_goes(self):
        """Test a green light lets the car through."""
        light = TrafficLight((80.0, 0.0), (1.0, 0.0))
        assert not self.controller(light).should_stop(eastbound_car())

    def test_yellow_ahead_stops(self):
        """Test yellow also suppresses forward."""
        light = TrafficLight((80.0, 0.0), (1.0, 0.0), TrafficLightConfig(initial_state=LightState.YELLOW))
        assert self.controller(light).should_stop(eastbound_car())

    def test_light_behind_ignored(self):
        """Test lights the car has passed do not govern it."""
        assert not self.controller(self.red(20.0)).should_stop(eastbound_car())

    def test_opposite_direction_ignored(self):
        """Test lights facing oncoming traffic do not govern the car."""
        assert not self.controller(self.red(80.0, (-1.0, 0.0))).should_stop(eastbound_car())

    def test_beyond_braking_distance(self):
        """Test far lights are ignored."""
        assert not self.controller(self.red(150.0)).should_stop(eastbound_car())

    def test_off_edge_ignored(self):
        """Test lights away from the car's edge are ignored."""
        light = TrafficLight((80.0, 100.0), (1.0, 0.0), TrafficLightConfig(initial_state=LightState.RED))
        assert not self.controller(light).should_stop(eastbound_car())

    def test_nearest_light_governs(self):
        """Test the closest governing light decides."""
        near_green = TrafficLight((70.0, 0.0), (1.0, 0.0))
        far_red = self.red(85.0)
        controller = self.controller(far_red, near_green)

        assert controller.governing_light(eastbound_car()) is near_green
        assert not controller.should_stop(eastbound_car())

    def test_tick_advances_lights(self):
        """Test the controller advances every light."""
        light = TrafficLight((80.0, 0.0), config=TrafficLightConfig(green_duration=1.0))
        self.controller(light).tick(1.0)

        assert light.state is LightState.YELLOW


def intersection(world: World):
    """Four lights around the origin, linked into one group."""
    timing = TrafficLightConfig(1.0, 1.0, 1.0)
    lights = [
        world.add_marking(TrafficLight(position, direction, timing))
        for position, direction in [
            ((0.0, 20.0), (0.0, -1.0)),
            ((-20.0, 0.0), (1.0, 0.0)),
            ((0.0, -20.0), (0.0, 1.0)),
            ((20.0, 0.0), (-1.0, 0.0)),
        ]
    ]
    for a, b in zip(lights, lights[1:]):
        world.link_lights(a, b)
    return lights


class TestLightGroup:
    """Test round-robin phasing within one group."""

    def lights(self, count: int = 2):
        timing = TrafficLightConfig(1.0, 1.0, 1.0)
        return [TrafficLight((10.0 * i, 0.0), config=timing) for i in range(count)]

    def test_restart(self):
        """Test a new group shows green on its first light only."""
        group = LightGroup(self.lights(3))

        assert [light.state for light in group.lights] == [
            LightState.GREEN, LightState.RED, LightState.RED,
        ]
        assert group.active_light is group.lights[0]

    def test_hand_over_after_red(self):
        """Test the next light turns green once the active light's red ends."""
        group = LightGroup(self.lights())

        assert group.advance(3.0) == 3

        first, second = group.lights
        assert first.state is LightState.RED
        assert second.state is LightState.GREEN
        assert group.active == 1

    def test_hand_over_carries_leftover(self):
        """Test leftover time carries into the next light's green."""
        group = LightGroup(self.lights())
        group.advance(3.5)

        assert group.active_light.elapsed == pytest.approx(0.5)

    def test_wraps_around(self):
        """Test the last light hands back to the first."""
        group = LightGroup(self.lights())
        for _ in range(60):
            group.advance(0.1)

        assert group.active == 0
        assert group.lights[0].state is LightState.GREEN

    def test_invalid(self):
        """Test empty groups and negative dt are rejected."""
        with pytest.raises(ValueError):
            LightGroup([])
        with pytest.raises(ValueError):
            LightGroup(self.lights()).advance(-0.1)


class TestIntersectionPhasing:
    """Test lights grouped through the world's light graph."""

    def test_never_two_greens(self):
        """Test at most one light of an intersection leaves red at any time."""
        world = World()
        lights = intersection(world)
        served = []

        for _ in range(150):
            world.tick(0.1)
            moving = [light for light in lights if light.state is not LightState.RED]
            assert len(moving) <= 1
            green = [light for light in moving if light.state is LightState.GREEN]
            if green and (not served or served[-1] is not green[0]):
                served.append(green[0])

        assert served[:5] == lights + lights[:1]

    def test_unlinked_light_runs_alone(self):
        """Test lights outside the light graph keep their own cycle."""
        world = World()
        intersection(world)
        lone = world.add_marking(TrafficLight((500.0, 0.0), config=TrafficLightConfig(green_duration=1.0)))

        world.tick(1.0)

        assert lone.state is LightState.YELLOW
        (group,) = world.traffic_controller.groups
        assert lone not in group.lights

    def test_regroups_on_new_link(self):
        """Test linking two free lights starts them as a group."""
        world = World()
        a = world.add_marking(TrafficLight((0.0, 0.0)))
        b = world.add_marking(TrafficLight((50.0, 0.0)))
        world.tick(0.1)
        assert world.traffic_controller.groups == []
        assert b.state is LightState.GREEN

        world.link_lights(a, b)
        world.tick(0.1)

        (group,) = world.traffic_controller.groups
        assert group.lights == [a, b]
        assert a.state is LightState.GREEN
        assert b.state is LightState.RED

    def test_separate_intersections(self):
        """Test disconnected light groups run independently."""
        world = World()
        a = world.add_marking(TrafficLight((0.0, 0.0)))
        b = world.add_marking(TrafficLight((50.0, 0.0)))
        c = world.add_marking(TrafficLight((500.0, 0.0)))
        d = world.add_marking(TrafficLight((550.0, 0.0)))
        world.link_lights(a, b)
        world.link_lights(c, d)

        world.tick(0.1)

        assert len(world.traffic_controller.groups) == 2
        assert a.state is LightState.GREEN
        assert c.state is LightState.GREEN

    def test_link_same_position(self):
        """Test two lights at one spot cannot be linked."""
        world = World()
        a = world.add_marking(TrafficLight((0.0, 0.0)))
        b = world.add_marking(TrafficLight((0.0, 0.0)))

        with pytest.raises(ValueError):
            world.link_lights(a, b)

    def test_car_waits_for_its_turn(self):
        """Test a car facing a waiting light of the group holds."""
        world = World(straight_road())
        first = world.add_marking(TrafficLight((100.0, 150.0), (0.0, 1.0)))
        second = world.add_marking(TrafficLight((80.0, 0.0), (1.0, 0.0)))
        world.link_lights(first, second)
        world.tick(0.1)
        car = eastbound_car()
        world.add_car(car)

        for _ in range(4):
            world.tick(0.1)

        assert first.state is LightState.GREEN
        assert second.state is LightState.RED
        assert car.speed == 0.0
        assert car.state.x == pytest.approx(50.0)


class TestWorldTrafficLights:
    """Test lights acting through World.tick."""

    def test_car_waits_at_red(self):
        """Test a car holds at red and leaves on green."""
        world = World(straight_road())
        car = eastbound_car()
        world.add_car(car)
        light = world.add_marking(TrafficLight(
            (80.0, 0.0), (1.0, 0.0), TrafficLightConfig(initial_state=LightState.RED),
        ))

        for _ in range(4):
            world.tick(0.25)

        assert car.speed == 0.0
        assert car.state.x == pytest.approx(50.0)

        light.set_state(LightState.GREEN)
        world.tick(0.25)

        assert car.speed == pytest.approx(0.2)


class TestMarkingEditor:
    """Test snap-to-edge placement."""

    def world(self) -> World:
        graph = Graph()
        a = graph.add_node((0, 0))
        b = graph.add_node((100, 0))
        graph.add_edge(a, b)
        return World(graph)

    def test_preview_snaps_to_edge(self):
        """Test previews project onto the edge and face along it."""
        world = self.world()
        editor = MarkingEditor.for_traffic_lights(world)

        intent = editor.handle_pointer_move((40.0, 5.0))

        assert isinstance(intent, TrafficLight)
        assert intent.position.x == pytest.approx(40.0)
        assert intent.position.y == pytest.approx(0.0)
        assert np.allclose(intent.direction_vector, [1.0, 0.0])
        assert world.traffic_lights == []

    def test_commit_adds_marking(self):
        """Test commit appends the preview to the world."""
        world = self.world()
        editor = MarkingEditor.for_traffic_lights(world)
        editor.handle_pointer_move((40.0, 5.0))

        light = editor.commit()

        assert world.traffic_lights == [light]
        assert editor.intent is None

    def test_no_preview_far_from_road(self, caplog):
        """Test pointers away from any edge produce nothing to commit."""
        world = self.world()
        editor = MarkingEditor.for_traffic_lights(world)

        assert editor.handle_pointer_move((40.0, 50.0)) is None
        with caplog.at_level(logging.WARNING, logger="roadsim"):
            assert editor.commit() is None
        assert "nothing to commit" in caplog.text

    def test_no_preview_past_edge_end(self):
        """Test projections outside the edge are rejected."""
        editor = MarkingEditor.for_traffic_lights(self.world())
        assert editor.handle_pointer_move((110.0, 0.0)) is None

    def test_cancel(self):
        """Test cancel drops the preview."""
        world = self.world()
        editor = MarkingEditor.for_traffic_lights(world)
        editor.handle_pointer_move((40.0, 5.0))
        editor.cancel()

        assert editor.commit() is None
        assert world.markings == []

    def test_remove_nearest_same_type_only(self):
        """Test removal only touches markings of the editor's type."""
        world = self.world()
        light_editor = MarkingEditor.for_traffic_lights(world)
        source_editor = MarkingEditor(world, Source)

        source_editor.handle_pointer_move((40.0, 1.0))
        source = source_editor.commit()
        light_editor.handle_pointer_move((42.0, 1.0))
        light = light_editor.commit()

        assert source_editor.marking_type is MarkingType.SOURCE
        assert light_editor.remove_nearest((40.0, 0.0)) is light
        assert world.markings == [source]
        assert light_editor.remove_nearest((40.0, 0.0)) is None

    def test_invalid_snap_distance(self):
        """Test snap distance must be positive."""
        with pytest.raises(ValueError):
            MarkingEditor(self.world(), Source, snap_distance=0.0)
