"""
Walker: a single simulated pedestrian
Each walker steers itself toward a destination while reacting to walls,
neighbours and its own walking etiquette
"""

import enum
import logging
import numpy as np
from typing import List, Optional, Tuple

from .analytics import TimingSample
from .errors import ScenarioError
from .geometry import bearing, distance_and_normal, normalise_heading, wrap_angle


logger = logging.getLogger(__name__)


class Etiquette(enum.Enum):
    """Per-walker steering policy, fixed at creation."""

    LEFT_BIAS = 'left'
    RIGHT_BIAS = 'right'
    NO_BIAS = 'none'

    @classmethod
    def parse(cls, value) -> 'Etiquette':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            pass
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ScenarioError(f"Unknown etiquette {value!r}") from None


class WalkerBehaviour:
    """
    Tuning constants shared by all walkers of a simulation.

    Distances are in metres, rates in radians per second unless stated.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        # m/s^2
        self.acceleration = config.get('acceleration', 1.0)
        # fraction of the heading error removed per second
        self.turn_rate = config.get('turn_rate', 2.0)
        self.bias_rate = config.get('bias_rate', 0.1)

        self.radius = config.get('radius', 0.4)
        self.comfort_radius = config.get('comfort_radius', 0.6)
        self.look_ahead = config.get('look_ahead', 4.0)
        self.look_beside = config.get('look_beside', 1.0)
        # full angular width of the forward cone
        self.field_of_view = config.get('field_of_view', 2.0 * np.pi / 3.0)
        # (min, max) absolute relative bearing of the side cones
        self.side_arc = tuple(config.get('side_arc', (np.pi / 3.0, 2.0 * np.pi / 3.0)))

        self.avoid_rate = config.get('avoid_rate', 1.0)
        self.oncoming_deceleration = config.get('oncoming_deceleration', 0.5)
        self.follow_deceleration = config.get('follow_deceleration', 1.0)
        # rad*m/s, divided by neighbour distance
        self.repulsion_rate = config.get('repulsion_rate', 0.2)

        self.wall_turn_rate = config.get('wall_turn_rate', 2.0)
        self.wall_nudge_rate = config.get('wall_nudge_rate', 0.3)

        self.heading_noise = config.get('heading_noise', 0.05)
        self.speed_noise = config.get('speed_noise', 0.05)

        self.speed_range = tuple(config.get('speed_range', (1.25, 1.45)))

        if self.radius <= 0:
            raise ValueError("Walker radius must be positive")
        if self.speed_range[0] < 0 or self.speed_range[1] < self.speed_range[0]:
            raise ValueError(f"Invalid speed range {self.speed_range}")

    @property
    def comfort_zone(self) -> float:
        """Centre distance inside which a neighbour or wall is uncomfortably close."""
        return self.radius + self.comfort_radius

    @property
    def neighbour_reach(self) -> float:
        return max(self.look_ahead, self.look_beside, self.comfort_zone, 2.0 * self.radius)


class Walker:
    """
    A pedestrian walking from a start point to an end point of its group.

    Attributes:
        id: Identifier assigned by the simulation
        position: Current [x, y] position in metres
        heading: Direction of travel in radians, 0 = +x, clockwise positive
        speed: Instantaneous walking speed (m/s)
        target_speed: Preferred walking speed (m/s)
        group: Start/end group of the environment
        etiquette: Steering policy
    """

    def __init__(
        self,
        environment,
        group: int,
        start: int,
        end: int,
        target_speed: float,
        etiquette: Etiquette = Etiquette.NO_BIAS,
        behaviour: Optional[WalkerBehaviour] = None,
        walker_id: int = 0
    ):
        environment.validate_route(group, start, end)
        if not target_speed >= 0:
            raise ScenarioError(f"Target speed must be non-negative, got {target_speed!r}")

        self.id = walker_id
        self.environment = environment
        self.behaviour = behaviour or WalkerBehaviour()

        self.group = int(group)
        self.start_index = int(start)
        self.target_location = int(end)
        self.etiquette = Etiquette.parse(etiquette)

        self.position = np.array(environment.start_position(group, start), dtype=float)
        self._destination = np.array(environment.end_position(group, end), dtype=float)
        self.heading = normalise_heading(bearing(self.position, self._destination))
        self.speed = 0.0
        self.target_speed = float(target_speed)

        # Timing boundary state
        self.gates_crossed: List[bool] = [False] * len(environment.timing_boundaries)
        self.gate_timer: Optional[float] = None

    # ---------- draw surface ----------
    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    @property
    def destination(self) -> Tuple[float, float]:
        return (float(self._destination[0]), float(self._destination[1]))

    @property
    def radius(self) -> float:
        return self.behaviour.radius

    @property
    def look_ahead(self) -> float:
        return self.behaviour.look_ahead

    @property
    def look_beside(self) -> float:
        return self.behaviour.look_beside

    def state_row(self) -> Tuple[float, float, float]:
        """(x, y, heading) as stored in the per-tick neighbour snapshot."""
        return (self.x, self.y, self.heading)

    def distance_to_destination(self) -> float:
        return float(np.linalg.norm(self._destination - self.position))

    # ---------- main update ----------
    def simulate_timestep(
        self,
        dt: float,
        others_before: np.ndarray,
        others_after: np.ndarray,
        rng: np.random.Generator,
        current_time: float = 0.0
    ) -> Optional[TimingSample]:
        """
        Simulate a small period of time in a single step.

        Args:
            dt: Seconds that pass during this step
            others_before: (n, 3) rows of (x, y, heading) for walkers earlier in
                the update order
            others_after: (m, 3) rows for walkers later in the update order
            rng: Random generator for behavioural noise
            current_time: Simulation time, stamped on any emitted timing sample

        Returns:
            A TimingSample if this step completed a gate-to-gate measurement
        """
        previous = self.position.copy()

        self._relax_speed(dt)
        self._align_with_goal(dt)
        self._apply_etiquette_bias(dt)
        self._react_to_neighbours(dt, others_before, others_after)
        self._apply_noise(dt, rng)

        self.position += self.speed * dt * np.array([np.cos(self.heading), np.sin(self.heading)])

        self.resolve_wall_collisions(dt, previous)
        return self._update_timing(dt, current_time)

    # ---------- decision stages ----------
    def _relax_speed(self, dt: float):
        step = self.behaviour.acceleration * dt
        if self.speed < self.target_speed:
            self.speed = min(self.target_speed, self.speed + step)
        elif self.speed > self.target_speed:
            self.speed = max(self.target_speed, self.speed - step)

    def _align_with_goal(self, dt: float):
        diff = wrap_angle(bearing(self.position, self._destination) - self.heading)
        self._turn(diff * min(1.0, self.behaviour.turn_rate * dt))

    def _apply_etiquette_bias(self, dt: float):
        if self.etiquette is Etiquette.LEFT_BIAS:
            self._turn(-self.behaviour.bias_rate * dt)
        elif self.etiquette is Etiquette.RIGHT_BIAS:
            self._turn(self.behaviour.bias_rate * dt)

    def _react_to_neighbours(self, dt: float, others_before: np.ndarray, others_after: np.ndarray):
        """
        Respond to every other active walker in the pre-tick snapshot.

        Both slices hold positions from before anyone moved this tick, so they
        are treated alike. Cones are classified against the heading as it
        stood on entering this stage. Only the strongest slow-down applies.
        """
        others = _stack_rows(others_before, others_after)
        if len(others) == 0:
            return

        b = self.behaviour
        # pushes during this loop can move us by up to 2r per contact
        reach = b.neighbour_reach + 2.0 * b.radius
        offsets = others[:, :2] - self.position
        candidates = others[np.hypot(offsets[:, 0], offsets[:, 1]) < reach]

        reference_heading = self.heading
        half_fov = b.field_of_view / 2.0
        side_min, side_max = b.side_arc
        bias_yielded = False
        slowdown = 0.0

        for other_x, other_y, other_heading in candidates:
            dx = other_x - self.position[0]
            dy = other_y - self.position[1]
            dist = float(np.hypot(dx, dy))

            if dist < 2.0 * b.radius:
                self._resolve_walker_collision(dx, dy, dist)
                continue

            relative = wrap_angle(np.arctan2(dy, dx) - reference_heading)

            # Forward cone
            if dist < b.look_ahead and abs(relative) <= half_fov:
                heading_gap = normalise_heading(other_heading - reference_heading)
                if np.pi / 2.0 <= heading_gap <= 3.0 * np.pi / 2.0:
                    close = dist < b.comfort_zone
                    self._turn(self._avoidance_direction(relative, close) * b.avoid_rate * dt)
                    if close:
                        slowdown = max(slowdown, b.oncoming_deceleration)
                else:
                    slowdown = max(slowdown, b.follow_deceleration * (1.0 - dist / b.look_ahead))

            # Side cones
            if not bias_yielded and dist < b.look_beside and side_min <= abs(relative) <= side_max:
                if self.etiquette is Etiquette.RIGHT_BIAS and relative > 0:
                    self._turn(-b.bias_rate * dt)
                    bias_yielded = True
                elif self.etiquette is Etiquette.LEFT_BIAS and relative < 0:
                    self._turn(b.bias_rate * dt)
                    bias_yielded = True

            # Personal space
            if dist < b.comfort_zone:
                away = -1.0 if relative > 0 else 1.0
                amount = min(b.repulsion_rate * dt / dist, np.pi - abs(relative))
                self._turn(away * amount)

        self._decelerate(slowdown * dt)

    def _avoidance_direction(self, relative: float, close: bool = False) -> float:
        """
        Sign of the turn away from an oncoming walker (+1 = clockwise/right).

        Biased walkers keep to their side unless the oncoming walker is
        already on that side inside the comfort zone.
        """
        away = -1.0 if relative > 0 else 1.0
        if self.etiquette is Etiquette.LEFT_BIAS:
            preferred = -1.0
        elif self.etiquette is Etiquette.RIGHT_BIAS:
            preferred = 1.0
        else:
            return away
        if close and preferred != away:
            return away
        return preferred

    def _resolve_walker_collision(self, dx: float, dy: float, dist: float):
        overlap = 2.0 * self.behaviour.radius - dist
        if dist > 0.0:
            away = np.array([-dx, -dy]) / dist
            self.heading = normalise_heading(np.arctan2(away[1], away[0]))
        else:
            # Coincident: step straight back
            self.heading = normalise_heading(self.heading + np.pi)
            away = np.array([np.cos(self.heading), np.sin(self.heading)])
        self.position += away * overlap
        self.speed = 0.0

    def _apply_noise(self, dt: float, rng: np.random.Generator):
        b = self.behaviour
        if b.heading_noise > 0:
            self._turn(rng.normal(0.0, b.heading_noise) * dt)
        if b.speed_noise > 0:
            self.speed = max(0.0, self.speed + rng.normal(0.0, b.speed_noise) * dt)

    # ---------- walls ----------
    def resolve_wall_collisions(self, dt: float, previous: Optional[np.ndarray] = None):
        """
        Push the walker out of any wall it overlaps and steer it away from nearby walls.

        Args:
            dt: Seconds that pass during this step
            previous: Position at the start of the step. A walker whose move
                from there passes through a wall is put back on its original
                side, one body radius clear of the wall.
        """
        b = self.behaviour

        if previous is not None:
            for wall in self.environment.walls:
                if wall.crossed_by(previous, self.position):
                    _, normal = distance_and_normal(wall, self.position)
                    closest = self.position - normal
                    self.position = closest + wall.unit_normal(previous) * b.radius
                    logger.debug("Walker %d kept inside %r", self.id, wall)

        goal_bearing = bearing(self.position, self._destination)
        goal_direction = np.array([np.cos(goal_bearing), np.sin(goal_bearing)])

        for wall in self.environment.walls:
            dist, normal = distance_and_normal(wall, self.position)

            # On the line: no defined outward direction
            if dist == 0.0:
                continue

            if dist < b.radius:
                self.position += normal * (b.radius / dist - 1.0)
                normal_angle = np.arctan2(normal[1], normal[0])
                if np.dot(goal_direction, normal) < 0.0:
                    self.heading = normalise_heading(normal_angle)
                else:
                    diff = wrap_angle(normal_angle - self.heading)
                    self._turn(diff * min(1.0, b.wall_turn_rate * dt))
            elif dist < b.comfort_zone:
                normal_angle = np.arctan2(normal[1], normal[0])
                diff = wrap_angle(normal_angle - self.heading)
                self._turn(diff * min(1.0, b.wall_nudge_rate * dt))

    # ---------- timing ----------
    def _update_timing(self, dt: float, current_time: float) -> Optional[TimingSample]:
        if self.gate_timer is not None:
            self.gate_timer += dt

        for i, gate in enumerate(self.environment.timing_boundaries):
            if self.gates_crossed[i]:
                continue
            dist, _ = distance_and_normal(gate, self.position)
            if dist <= self.behaviour.radius:
                self.gates_crossed[i] = True
                if self.gate_timer is None:
                    self.gate_timer = 0.0

        if sum(self.gates_crossed) == 2:
            sample = TimingSample(self.gate_timer, self.group, current_time)
            self.gates_crossed = [False] * len(self.gates_crossed)
            self.gate_timer = None
            return sample
        return None

    # ---------- helpers ----------
    def _turn(self, angle: float):
        self.heading = normalise_heading(self.heading + angle)

    def _decelerate(self, amount: float):
        self.speed = max(0.0, self.speed - amount)

    def __repr__(self) -> str:
        return (f"Walker({self.id}, pos=({self.x:.2f}, {self.y:.2f}), "
                f"heading={self.heading:.2f}, speed={self.speed:.2f}, {self.etiquette.name})")


def _stack_rows(before: np.ndarray, after: np.ndarray) -> np.ndarray:
    before = np.asarray(before, dtype=float).reshape(-1, 3)
    after = np.asarray(after, dtype=float).reshape(-1, 3)
    return np.vstack((before, after))
