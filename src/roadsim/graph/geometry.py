"""
Geometry - Planar helpers shared by the graph, collision and sensor code.

Provides:
- Interpolation helpers
- Segment/segment intersection (scalar and vectorised)
- Closed polygons used as vehicle footprints and static obstacles
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import numpy as np


# Tolerance below which a determinant is treated as zero (parallel segments)
PARALLEL_EPS = 1e-12


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation between a and b."""
    return a + (b - a) * t


def inv_lerp(a: float, b: float, v: float) -> float:
    """Inverse of lerp: where v sits between a and b."""
    if a == b:
        return 0.0
    return (v - a) / (b - a)


def as_point(p) -> np.ndarray:
    """Coerce a Node, tuple or array into a float (2,) array."""
    if hasattr(p, "x") and hasattr(p, "y"):
        return np.array([p.x, p.y], dtype=float)
    return np.asarray(p, dtype=float).reshape(2)


@dataclass(frozen=True)
class Intersection:
    """Intersection point plus normalized offset along the first segment."""
    x: float
    y: float
    offset: float  # 0 = segment start, 1 = segment end


def get_intersection(a, b, c, d) -> Optional[Intersection]:
    """Intersect segment a->b with segment c->d.

    Args:
        a, b: Endpoints of the first segment
        c, d: Endpoints of the second segment

    Returns:
        Intersection with offset along a->b, or None if the segments
        do not touch or are parallel
    """
    ax, ay = as_point(a)
    bx, by = as_point(b)
    cx, cy = as_point(c)
    dx, dy = as_point(d)

    t_top = (dx - cx) * (ay - cy) - (dy - cy) * (ax - cx)
    u_top = (cy - ay) * (ax - bx) - (cx - ax) * (ay - by)
    bottom = (dy - cy) * (bx - ax) - (dx - cx) * (by - ay)

    if abs(bottom) < PARALLEL_EPS:
        return None

    t = t_top / bottom
    u = u_top / bottom
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return Intersection(lerp(ax, bx, t), lerp(ay, by, t), t)
    return None


def ray_intersections(
    starts: np.ndarray,
    ends: np.ndarray,
    seg_starts: np.ndarray,
    seg_ends: np.ndarray,
) -> np.ndarray:
    """Offsets along each of many rays where it crosses each of many segments.

    Args:
        starts: Ray starts (R, 2)
        ends: Ray ends (R, 2)
        seg_starts: Segment starts (N, 2)
        seg_ends: Segment ends (N, 2)

    Returns:
        (R, N) array of offsets in [0, 1] along each ray, nan where
        there is no hit
    """
    if len(seg_starts) == 0:
        return np.empty((len(starts), 0))

    ax, ay = starts[:, 0, None], starts[:, 1, None]
    bx, by = ends[:, 0, None], ends[:, 1, None]
    cx, cy = seg_starts[:, 0], seg_starts[:, 1]
    dx, dy = seg_ends[:, 0], seg_ends[:, 1]

    t_top = (dx - cx) * (ay - cy) - (dy - cy) * (ax - cx)
    u_top = (cy - ay) * (ax - bx) - (cx - ax) * (ay - by)
    bottom = (dy - cy) * (bx - ax) - (dx - cx) * (by - ay)

    valid = np.abs(bottom) >= PARALLEL_EPS
    safe_bottom = np.where(valid, bottom, 1.0)
    t = t_top / safe_bottom
    u = u_top / safe_bottom

    hit = valid & (t >= 0.0) & (t <= 1.0) & (u >= 0.0) & (u <= 1.0)
    return np.where(hit, t, np.nan)


def segment_intersections(
    start: np.ndarray,
    end: np.ndarray,
    seg_starts: np.ndarray,
    seg_ends: np.ndarray,
) -> np.ndarray:
    """Offsets along start->end where it crosses each of many segments.

    Single-ray form of ray_intersections.

    Returns:
        (N,) array of offsets in [0, 1], nan where there is no hit
    """
    ray_start = np.asarray(start, dtype=float).reshape(1, 2)
    ray_end = np.asarray(end, dtype=float).reshape(1, 2)
    return ray_intersections(ray_start, ray_end, seg_starts, seg_ends)[0]


def project_onto_segment(point, a, b) -> Tuple[np.ndarray, float]:
    """Project point onto the infinite line through a and b.

    Returns:
        Tuple of (projected point, offset) where offset 0 is a and 1 is b
    """
    p = as_point(point)
    a = as_point(a)
    b = as_point(b)
    ab = b - a
    length_sq = float(np.dot(ab, ab))
    if length_sq == 0.0:
        return a.copy(), 0.0
    offset = float(np.dot(p - a, ab)) / length_sq
    return a + ab * offset, offset


def distance_to_segment(point, a, b) -> float:
    """Shortest distance from point to the closed segment a-b."""
    p = as_point(point)
    projected, offset = project_onto_segment(p, a, b)
    if 0.0 < offset < 1.0:
        return float(np.hypot(*(p - projected)))
    return float(min(np.hypot(*(p - as_point(a))), np.hypot(*(p - as_point(b)))))


class Polygon:
    """Closed polygon defined by ordered corner points.

    Consecutive points form the edges and the last point closes back to
    the first. Used for vehicle footprints and static obstacles.
    """

    def __init__(self, points: Sequence | np.ndarray):
        """Initialize polygon.

        Args:
            points: Corner points as an (N, 2) array or sequence of pairs
        """
        self.points = np.asarray(points, dtype=float).reshape(-1, 2)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_degenerate(self) -> bool:
        """True if the polygon has fewer than 3 points or no area."""
        if len(self.points) < 3 or not np.all(np.isfinite(self.points)):
            return True
        x = self.points[:, 0]
        y = self.points[:, 1]
        area = 0.5 * abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))
        return area <= PARALLEL_EPS

    @property
    def centroid(self) -> np.ndarray:
        """Average of the corner points."""
        return self.points.mean(axis=0)

    def segments(self) -> Tuple[np.ndarray, np.ndarray]:
        """Edge start and end points as two (N, 2) arrays."""
        return self.points, np.roll(self.points, -1, axis=0)

    def contains_point(self, point) -> bool:
        """Even-odd rule point-in-polygon test."""
        if self.is_degenerate:
            return False
        px, py = as_point(point)
        starts, ends = self.segments()
        x1, y1 = starts[:, 0], starts[:, 1]
        x2, y2 = ends[:, 0], ends[:, 1]

        crosses = (y1 > py) != (y2 > py)
        with np.errstate(divide="ignore", invalid="ignore"):
            x_at = x1 + (py - y1) * (x2 - x1) / (y2 - y1)
        return bool(np.count_nonzero(crosses & (px < x_at)) % 2 == 1)

    def intersects(self, other: "Polygon") -> bool:
        """Check whether two polygons overlap.

        Overlap means an edge crossing or one polygon lying inside the
        other. Degenerate polygons never overlap anything.
        """
        if self.is_degenerate or other.is_degenerate:
            return False

        starts, ends = self.segments()
        if not np.all(np.isnan(ray_intersections(starts, ends, *other.segments()))):
            return True

        return self.contains_point(other.points[0]) or other.contains_point(self.points[0])

    def distance_to_point(self, point) -> float:
        """Shortest distance from point to the polygon outline."""
        starts, ends = self.segments()
        return min(distance_to_segment(point, a, b) for a, b in zip(starts, ends))

    def copy(self) -> "Polygon":
        return Polygon(self.points.copy())

    def to_list(self) -> list:
        return self.points.tolist()
