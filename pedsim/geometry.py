"""
Geometry Primitives
Line segments, point-to-segment distance and angle helpers
"""

import numpy as np
from typing import Tuple

from .errors import ScenarioError


TAU = 2.0 * np.pi


class Wall:
    """
    Straight line segment between two distinct points (metres).

    The same type backs physical obstacle walls and non-physical timing
    boundaries; its role depends on which list of the environment holds it.
    """

    __slots__ = ('_start', '_end')

    def __init__(self, start, end):
        start = np.array(start, dtype=float)
        end = np.array(end, dtype=float)
        if start.shape != (2,) or end.shape != (2,):
            raise ScenarioError(f"Wall endpoints must be 2D points, got {start!r} and {end!r}")
        if np.array_equal(start, end):
            raise ScenarioError(f"Wall endpoints must differ, got {tuple(start)} twice")
        start.flags.writeable = False
        end.flags.writeable = False
        self._start = start
        self._end = end

    @property
    def start(self) -> np.ndarray:
        return self._start

    @property
    def end(self) -> np.ndarray:
        return self._end

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self._end - self._start))

    def endpoints(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """Endpoints as plain tuples, for renderers."""
        return (tuple(self._start.tolist()), tuple(self._end.tolist()))

    def distance_and_normal(self, point) -> Tuple[float, np.ndarray]:
        return distance_and_normal(self, point)

    def side(self, point) -> float:
        """Signed cross product placing a point on either side of the line (0 on it)."""
        return _cross(self._end - self._start, np.asarray(point, dtype=float) - self._start)

    def crossed_by(self, origin, target) -> bool:
        """
        Whether moving in a straight line from origin to target passes
        through this segment. Ending exactly on the segment counts, starting
        on it does not.
        """
        before = self.side(origin)
        after = self.side(target)
        if before == 0.0 or before * after > 0.0:
            return False
        origin = np.asarray(origin, dtype=float)
        path = np.asarray(target, dtype=float) - origin
        return _cross(path, self._start - origin) * _cross(path, self._end - origin) <= 0.0

    def unit_normal(self, towards) -> np.ndarray:
        """Unit vector perpendicular to the segment, on the side of `towards`."""
        direction = (self._end - self._start) / self.length
        normal = np.array([-direction[1], direction[0]])
        return normal if self.side(towards) >= 0.0 else -normal

    def __repr__(self):
        (x1, y1), (x2, y2) = self.endpoints()
        return f"Wall(({x1}, {y1}), ({x2}, {y2}))"


def distance_and_normal(segment: Wall, point) -> Tuple[float, np.ndarray]:
    """
    Distance from a point to a segment and the vector pointing from the
    closest point on the segment to the point.

    The projection onto the infinite line is clamped to the segment, so
    points beyond either end measure against the nearer endpoint. A point
    lying on the segment gives distance 0 and a zero vector.

    Args:
        segment: Wall to measure against
        point: [x, y] position

    Returns:
        (distance, normal_vector)
    """
    p = np.asarray(point, dtype=float)
    direction = segment.end - segment.start
    t = np.dot(p - segment.start, direction) / np.dot(direction, direction)
    t = min(1.0, max(0.0, t))

    closest = segment.start + t * direction
    normal = p - closest
    return float(np.hypot(normal[0], normal[1])), normal


def _cross(a, b) -> float:
    return float(a[0] * b[1] - a[1] * b[0])


def wrap_angle(angle: float) -> float:
    """Map an angle to the interval (-pi, pi]."""
    wrapped = (angle + np.pi) % TAU - np.pi
    if wrapped == -np.pi:
        return float(np.pi)
    return float(wrapped)


def normalise_heading(angle: float) -> float:
    """Map an angle to the interval [0, 2pi)."""
    normalised = angle % TAU
    if normalised >= TAU:
        return 0.0
    return float(normalised)


def bearing(origin, target) -> float:
    """Direction from origin to target, in radians (0 = +x, clockwise with y down)."""
    dx = target[0] - origin[0]
    dy = target[1] - origin[1]
    return float(np.arctan2(dy, dx))
