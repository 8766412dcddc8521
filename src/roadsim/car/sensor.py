"""
Sensor - Ray-cast perception of surrounding traffic.

Casts a fan of rays from the car's position and reports, per ray, the
nearest point where it hits another car's footprint.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple
import numpy as np

from roadsim import config
from roadsim.graph.geometry import Polygon, ray_intersections, lerp


@dataclass
class SensorConfig:
    """Sensor fan configuration."""
    ray_count: int = config.SENSOR_RAY_COUNT
    ray_length: float = config.SENSOR_RAY_LENGTH
    ray_spread: float = config.SENSOR_RAY_SPREAD   # radians, centred on heading

    def __post_init__(self):
        if self.ray_count < 1:
            raise ValueError(f"ray_count must be at least 1, got {self.ray_count}")
        if self.ray_length <= 0:
            raise ValueError(f"ray_length must be positive, got {self.ray_length}")


@dataclass(frozen=True)
class Reading:
    """Nearest hit along one ray."""
    x: float
    y: float
    offset: float  # 0 = ray origin, 1 = ray tip


class Sensor:
    """Fan of range-finding rays owned by one car.

    Ray endpoints, hit offsets and the batch of traffic segments live
    in buffers reused on every update. The segment buffer only grows
    when more footprint edges are in view than ever before. Each
    reading is the intersection with the smallest offset along its ray.

    Usage:
        sensor = Sensor()
        sensor.update((x, y), heading, [other.footprint for other in traffic])
        readings = sensor.readings
    """

    def __init__(self, config: SensorConfig | None = None):
        """Initialize sensor.

        Args:
            config: Sensor configuration. Uses defaults if None.
        """
        self.config = config or SensorConfig()
        n = self.config.ray_count

        # Reused buffers
        self._angles = np.empty(n)
        self._starts = np.zeros((n, 2))
        self._ends = np.zeros((n, 2))
        self._offsets = np.full(n, np.nan)
        self._hits = np.full((n, 2), np.nan)
        self._seg_starts = np.empty((0, 2))
        self._seg_ends = np.empty((0, 2))

        # Ray angles relative to heading, from +spread/2 down to -spread/2
        if n == 1:
            self._relative = np.zeros(1)
        else:
            spread = self.config.ray_spread
            self._relative = np.array(
                [lerp(spread / 2, -spread / 2, i / (n - 1)) for i in range(n)]
            )

        self._readings: Tuple[Optional[Reading], ...] = (None,) * n

    @property
    def ray_count(self) -> int:
        return self.config.ray_count

    @property
    def ray_length(self) -> float:
        return self.config.ray_length

    @property
    def ray_spread(self) -> float:
        return self.config.ray_spread

    @property
    def rays(self) -> Tuple[np.ndarray, np.ndarray]:
        """Current ray segments as (starts, ends) read-only views."""
        starts = self._starts.view()
        ends = self._ends.view()
        starts.flags.writeable = False
        ends.flags.writeable = False
        return starts, ends

    @property
    def readings(self) -> Tuple[Optional[Reading], ...]:
        """One entry per ray: the nearest hit or None."""
        return self._readings

    @property
    def segment_capacity(self) -> int:
        """Size of the reusable segment buffer."""
        return len(self._seg_starts)

    def cast_rays(self, position, heading: float) -> None:
        """Rebuild ray segments from the car's pose.

        Heading 0 points to -y ("north"), matching the car's motion.
        """
        np.add(self._relative, heading, out=self._angles)
        self._starts[:] = position
        self._ends[:, 0] = self._starts[:, 0] + np.sin(self._angles) * self.config.ray_length
        self._ends[:, 1] = self._starts[:, 1] - np.cos(self._angles) * self.config.ray_length

    def update(self, position, heading: float, traffic: Iterable[Polygon]) -> Tuple[Optional[Reading], ...]:
        """Cast rays and record the nearest hit per ray.

        Args:
            position: Ray origin (car position)
            heading: Car heading in radians
            traffic: Footprints of the other cars

        Returns:
            The readings tuple (length == ray_count)
        """
        self.cast_rays(position, heading)
        self._offsets.fill(np.nan)
        self._hits.fill(np.nan)

        polygons = [p for p in traffic if p is not None and not p.is_degenerate]
        count = self._load_segments(polygons)
        if count:
            offsets = ray_intersections(
                self._starts, self._ends, self._seg_starts[:count], self._seg_ends[:count],
            )
            seen = ~np.all(np.isnan(offsets), axis=1)
            self._offsets[seen] = np.nanmin(offsets[seen], axis=1)

        hit = ~np.isnan(self._offsets)
        self._hits[hit] = self._starts[hit] + (self._ends[hit] - self._starts[hit]) * self._offsets[hit, None]
        self._readings = tuple(
            Reading(float(self._hits[i, 0]), float(self._hits[i, 1]), float(self._offsets[i]))
            if hit[i] else None
            for i in range(self.config.ray_count)
        )
        return self._readings

    def _load_segments(self, polygons: Sequence[Polygon]) -> int:
        """Copy every footprint edge into the segment buffers.

        Returns:
            Number of segments loaded
        """
        total = sum(len(p) for p in polygons)
        if total > len(self._seg_starts):
            size = max(total, 2 * len(self._seg_starts))
            self._seg_starts = np.empty((size, 2))
            self._seg_ends = np.empty((size, 2))

        i = 0
        for p in polygons:
            n = len(p)
            self._seg_starts[i:i + n] = p.points
            self._seg_ends[i:i + n - 1] = p.points[1:]
            self._seg_ends[i + n - 1] = p.points[0]
            i += n
        return total

    def get_offsets(self) -> np.ndarray:
        """Proximity per ray: 1 - offset for hits, 0 where nothing was seen."""
        return np.where(np.isnan(self._offsets), 0.0, 1.0 - self._offsets)

    def clear(self) -> None:
        """Forget the current rays and readings and drop the segment buffers."""
        self._starts.fill(0.0)
        self._ends.fill(0.0)
        self._offsets.fill(np.nan)
        self._hits.fill(np.nan)
        self._seg_starts = np.empty((0, 2))
        self._seg_ends = np.empty((0, 2))
        self._readings = (None,) * self.config.ray_count
