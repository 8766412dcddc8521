"""Tests for the RoadSim sensor."""

import pytest
import numpy as np

from roadsim.car import Car, ControlType, Sensor, SensorConfig, create_footprint
from roadsim.graph import Polygon


def car_ahead(distance: float) -> Polygon:
    """Footprint of a car parked `distance` units in front of the origin."""
    return create_footprint(0.0, -distance, 0.0, width=10.0, length=17.5)


class TestSensorGeometry:
    """Test ray layout."""

    def test_single_ray_on_heading(self):
        """Test one ray points straight along the heading."""
        sensor = Sensor(SensorConfig(ray_count=1, ray_length=50.0))
        sensor.cast_rays((0.0, 0.0), 0.0)

        starts, ends = sensor.rays
        assert np.allclose(ends[0], [0.0, -50.0])

    def test_fan_spread(self):
        """Test first ray sits at +spread/2 and last at -spread/2."""
        sensor = Sensor(SensorConfig(ray_count=3, ray_length=10.0, ray_spread=np.pi / 2))
        sensor.cast_rays((0.0, 0.0), 0.0)

        _, ends = sensor.rays
        h = 10.0 * np.sqrt(0.5)
        assert np.allclose(ends[0], [h, -h])
        assert np.allclose(ends[1], [0.0, -10.0])
        assert np.allclose(ends[2], [-h, -h])

    def test_rays_are_read_only(self):
        """Test exposed ray arrays cannot be written."""
        sensor = Sensor()
        starts, _ = sensor.rays

        with pytest.raises(ValueError):
            starts[0, 0] = 1.0

    def test_invalid_config(self):
        """Test ray count and length validation."""
        with pytest.raises(ValueError):
            SensorConfig(ray_count=0)
        with pytest.raises(ValueError):
            SensorConfig(ray_length=-1.0)


class TestSensorReadings:
    """Test hit detection."""

    def test_readings_length_matches_ray_count(self):
        """Test readings always have one entry per ray."""
        for count in (1, 4, 10):
            sensor = Sensor(SensorConfig(ray_count=count))
            assert len(sensor.update((0, 0), 0.0, [])) == count
            assert len(sensor.update((0, 0), 0.0, [car_ahead(30.0)])) == count

    def test_car_directly_ahead(self):
        """Test only the centre ray sees a car straight ahead."""
        sensor = Sensor(SensorConfig(ray_count=3, ray_length=50.0, ray_spread=np.pi / 2))

        left, centre, right = sensor.update((0.0, 0.0), 0.0, [car_ahead(30.0)])

        assert left is None
        assert right is None
        assert centre is not None
        assert centre.offset == pytest.approx(21.25 / 50.0)
        assert centre.x == pytest.approx(0.0)
        assert centre.y == pytest.approx(-21.25)

    def test_nearest_hit_wins(self):
        """Test the closest of two cars on the same ray is reported."""
        sensor = Sensor(SensorConfig(ray_count=1, ray_length=100.0))

        (reading,) = sensor.update((0.0, 0.0), 0.0, [car_ahead(60.0), car_ahead(30.0)])

        assert reading.offset == pytest.approx(21.25 / 100.0)

    def test_out_of_range(self):
        """Test cars beyond ray length are not seen."""
        sensor = Sensor(SensorConfig(ray_count=3, ray_length=10.0))

        readings = sensor.update((0.0, 0.0), 0.0, [car_ahead(40.0)])

        assert readings == (None, None, None)

    def test_degenerate_polygon_ignored(self):
        """Test collapsed polygons neither crash nor register hits."""
        sensor = Sensor(SensorConfig(ray_count=3))
        flat = Polygon([[0, -20], [0, -20], [0, -20]])

        assert sensor.update((0.0, 0.0), 0.0, [flat]) == (None, None, None)

    def test_offsets(self):
        """Test proximity values are 1 - offset, 0 when clear."""
        sensor = Sensor(SensorConfig(ray_count=3, ray_length=50.0, ray_spread=np.pi / 2))
        sensor.update((0.0, 0.0), 0.0, [car_ahead(30.0)])

        assert np.allclose(sensor.get_offsets(), [0.0, 1.0 - 0.425, 0.0])

    def test_segment_buffer_reused(self):
        """Test the segment buffer is kept across updates and grows only when needed."""
        sensor = Sensor(SensorConfig(ray_count=3))
        sensor.update((0.0, 0.0), 0.0, [car_ahead(30.0), car_ahead(60.0)])
        buffer = sensor._seg_starts
        assert sensor.segment_capacity == 8

        sensor.update((0.0, 0.0), 0.0, [car_ahead(40.0)])
        sensor.update((0.0, 0.0), 0.0, [car_ahead(20.0), car_ahead(45.0)])
        assert sensor._seg_starts is buffer

        sensor.update((0.0, 0.0), 0.0, [car_ahead(d) for d in (20.0, 40.0, 60.0)])
        assert sensor.segment_capacity == 16

    def test_fewer_cars_ignore_stale_segments(self):
        """Test segments left over from a busier update are not sensed."""
        sensor = Sensor(SensorConfig(ray_count=1, ray_length=100.0))
        sensor.update((0.0, 0.0), 0.0, [car_ahead(30.0), car_ahead(60.0)])

        (reading,) = sensor.update((0.0, 0.0), 0.0, [car_ahead(60.0)])

        assert reading.offset == pytest.approx(51.25 / 100.0)

    def test_clear(self):
        """Test clear forgets previous hits."""
        sensor = Sensor(SensorConfig(ray_count=1))
        sensor.update((0.0, 0.0), 0.0, [car_ahead(30.0)])
        sensor.clear()

        assert sensor.readings == (None,)


class TestCarSensing:
    """Test sensing through Car.update."""

    def test_car_senses_other_car(self):
        """Test a moving car sees a parked car ahead and not itself."""
        car = Car(0.0, 0.0, 0.0, ControlType.AI)
        parked = Car(0.0, -30.0, 0.0, ControlType.NONE)

        car.update([car, parked])

        hits = [r for r in car.readings if r is not None]
        assert hits
        assert all(r.y < 0 for r in hits)
        assert len(car.readings) == car.sensor.ray_count

    def test_sensor_offsets_for_strategies(self):
        """Test the normalised proximity vector exposed by the car."""
        car = Car(0.0, 0.0, 0.0, ControlType.AI)
        parked = Car(0.0, -30.0, 0.0, ControlType.NONE)
        car.update([car, parked])

        offsets = car.sensor_offsets()

        assert offsets.shape == (10,)
        assert np.all((offsets >= 0.0) & (offsets <= 1.0))
        assert offsets.max() > 0.0
        assert parked.sensor_offsets().size == 0
