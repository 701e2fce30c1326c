"""
Environment
Obstacle walls, timing boundaries and per-group start/end waypoints
"""

import logging
import numpy as np
from typing import List, Sequence, Tuple

from .errors import ScenarioError
from .geometry import Wall


logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class Environment:
    """
    The 2D space a simulation takes place in.

    Built up with add_wall / add_timing_boundary / add_start_end_group, then
    frozen when a CrowdSim takes ownership of it. A frozen environment is
    shared read-only by the scheduler and every walker for the whole run.
    """

    def __init__(self):
        self._walls: List[Wall] = []
        self._timing_boundaries: List[Wall] = []
        self._start_positions: List[Tuple[Point, ...]] = []
        self._end_positions: List[Tuple[Point, ...]] = []
        self._frozen = False

    # ---------- construction ----------
    def add_wall(self, p1, p2) -> Wall:
        """Add an impassable wall between two points."""
        self._check_mutable()
        wall = Wall(p1, p2)
        self._walls.append(wall)
        return wall

    def add_timing_boundary(self, p1, p2) -> Wall:
        """Add a non-physical line used to time pedestrians between two crossings."""
        self._check_mutable()
        boundary = Wall(p1, p2)
        self._timing_boundaries.append(boundary)
        return boundary

    def add_start_end_group(self, starts: Sequence, ends: Sequence) -> int:
        """
        Add a group of start and end locations.

        Args:
            starts: Ordered start points of the group
            ends: Ordered destination points of the group

        Returns:
            The id of the new group
        """
        self._check_mutable()
        start_points = self._as_points(starts, 'start')
        end_points = self._as_points(ends, 'end')

        self._start_positions.append(start_points)
        self._end_positions.append(end_points)
        return len(self._start_positions) - 1

    def freeze(self):
        """Prevent further changes. Idempotent."""
        if not self._frozen:
            logger.debug(
                "Environment frozen: %d walls, %d timing boundaries, %d groups",
                len(self._walls), len(self._timing_boundaries), self.group_count
            )
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self):
        if self._frozen:
            raise ScenarioError("Environment is frozen and can no longer be modified")

    @staticmethod
    def _as_points(points: Sequence, kind: str) -> Tuple[Point, ...]:
        if len(points) == 0:
            raise ScenarioError(f"A start/end group needs at least one {kind} point")
        parsed = []
        for point in points:
            arr = np.asarray(point, dtype=float)
            if arr.shape != (2,) or not np.all(np.isfinite(arr)):
                raise ScenarioError(f"Invalid {kind} point: {point!r}")
            parsed.append((float(arr[0]), float(arr[1])))
        return tuple(parsed)

    # ---------- queries ----------
    @property
    def walls(self) -> Tuple[Wall, ...]:
        return tuple(self._walls)

    @property
    def timing_boundaries(self) -> Tuple[Wall, ...]:
        return tuple(self._timing_boundaries)

    @property
    def start_positions(self) -> Tuple[Tuple[Point, ...], ...]:
        return tuple(self._start_positions)

    @property
    def end_positions(self) -> Tuple[Tuple[Point, ...], ...]:
        return tuple(self._end_positions)

    @property
    def group_count(self) -> int:
        return len(self._start_positions)

    def start_position(self, group: int, index: int) -> Point:
        return self._start_positions[group][index]

    def end_position(self, group: int, index: int) -> Point:
        return self._end_positions[group][index]

    def validate_group(self, group: int):
        """
        Raises:
            ScenarioError: if the group is not an integer id of this environment
        """
        if not isinstance(group, (int, np.integer)) or not 0 <= group < self.group_count:
            raise ScenarioError(f"Group {group!r} does not exist (have {self.group_count})")

    def validate_route(self, group: int, start: int, end: int):
        """
        Check that a group/start/end index triple exists.

        Raises:
            ScenarioError: if any index is out of range
        """
        self.validate_group(group)
        n_starts = len(self._start_positions[group])
        n_ends = len(self._end_positions[group])
        if not isinstance(start, (int, np.integer)) or not 0 <= start < n_starts:
            raise ScenarioError(f"Start index {start!r} out of range for group {group} ({n_starts} starts)")
        if not isinstance(end, (int, np.integer)) or not 0 <= end < n_ends:
            raise ScenarioError(f"End index {end!r} out of range for group {group} ({n_ends} ends)")

    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) over walls, boundaries and waypoints."""
        points = []
        for wall in self._walls + self._timing_boundaries:
            points.extend([wall.start, wall.end])
        for group in self._start_positions + self._end_positions:
            points.extend(np.array(p) for p in group)
        if not points:
            return (0.0, 0.0, 1.0, 1.0)
        stacked = np.vstack(points)
        min_x, min_y = stacked.min(axis=0)
        max_x, max_y = stacked.max(axis=0)
        return (float(min_x), float(min_y), float(max_x), float(max_y))
