"""
Crowd Simulator
Walker lifecycle, admission policy, time-stepping and timing aggregation
"""

import logging
import numpy as np
from typing import List, Optional, Tuple

from .agent import Etiquette, Walker, WalkerBehaviour
from .analytics import TimingSample
from .environment import Environment
from .errors import ScenarioError, SimulationTimeout


logger = logging.getLogger(__name__)

ADMISSION_TOLERANCE = 1e-9


class CrowdSim:
    """
    Owns an environment and every walker in it, and advances them in time.

    Walkers live in exactly one of three pools: available (queued, not yet
    walking), active (being simulated) and finished (arrived, never updated
    again). Admission always takes from the tail of the available pool.
    """

    def __init__(
        self,
        environment: Environment,
        admission_rate: float,
        config: Optional[dict] = None,
        seed: Optional[int] = None
    ):
        """
        Args:
            environment: Environment to simulate in; frozen from here on
            admission_rate: Walkers per second moved from available to active
            config: Optional dict with 'simulation' and 'walker' sections
            seed: Seed for the random generator (overrides config seed)
        """
        if not admission_rate >= 0:
            raise ScenarioError(f"Admission rate must be non-negative, got {admission_rate!r}")

        config = config or {}
        sim_config = config.get('simulation', {})

        environment.freeze()
        self.environment = environment
        self.admission_rate = float(admission_rate)
        self.behaviour = WalkerBehaviour(config.get('walker', {}))
        self.arrival_radius = sim_config.get('arrival_radius', 0.5)

        if seed is None:
            seed = sim_config.get('seed')
        self.rng = np.random.default_rng(seed)

        self.available: List[Walker] = []
        self.active: List[Walker] = []
        self.finished: List[Walker] = []

        self.time_elapsed = 0.0
        self.admitted_count = 0
        self.timing_samples: List[TimingSample] = []
        self._next_id = 0

    # ---------- population ----------
    def add_pedestrian(
        self,
        group: int,
        start: int,
        end: int,
        target_speed: float,
        etiquette: Etiquette = Etiquette.NO_BIAS
    ) -> Walker:
        """
        Queue one fully specified walker.

        Raises:
            ScenarioError: if the group, start or end index does not exist, or
                the target speed is negative
        """
        walker = Walker(
            self.environment,
            group,
            start,
            end,
            target_speed,
            etiquette,
            behaviour=self.behaviour,
            walker_id=self._next_id
        )
        self._next_id += 1
        self.available.append(walker)
        return walker

    def add_pedestrian_set(self, count: int, group: int, etiquette: Etiquette = Etiquette.NO_BIAS) -> List[Walker]:
        """
        Queue `count` walkers of one group with random start, end and target speed.

        Start and end indices are uniform over the group's waypoints, target
        speed is uniform over the configured speed range.
        """
        if count < 0:
            raise ScenarioError(f"Pedestrian count must be non-negative, got {count}")
        self.environment.validate_group(group)

        n_starts = len(self.environment.start_positions[group])
        n_ends = len(self.environment.end_positions[group])
        low, high = self.behaviour.speed_range

        walkers = []
        for _ in range(count):
            start = int(self.rng.integers(n_starts))
            end = int(self.rng.integers(n_ends))
            speed = float(self.rng.uniform(low, high))
            walkers.append(self.add_pedestrian(group, start, end, speed, etiquette))
        return walkers

    def randomise_pedestrian_order(self):
        """Shuffle the available pool, which sets the order of admission."""
        self.rng.shuffle(self.available)

    # ---------- time stepping ----------
    def simulate_timestep(self, dt: float):
        """
        Simulate a small period of time in a single step.

        Args:
            dt: Seconds that pass during this step
        """
        if not dt > 0:
            raise ValueError(f"Time step must be positive, got {dt!r}")

        self._admit_walkers()

        # One consistent view of everyone, taken before anyone moves
        snapshot = self._snapshot()

        for i, walker in enumerate(self.active):
            sample = walker.simulate_timestep(
                dt,
                snapshot[:i],
                snapshot[i + 1:],
                self.rng,
                self.time_elapsed
            )
            if sample is not None:
                self.timing_samples.append(sample)
                logger.debug("Walker %d timed at %.2fs (group %d)", walker.id, sample.duration, sample.group)

        self.time_elapsed += dt

        self._retire_arrived_walkers()

    def simulate_full(self, dt: float, max_time: Optional[float] = None) -> Tuple[float, int, List[TimingSample]]:
        """
        Run until every walker has been admitted and has arrived.

        A zero admission rate never empties the available pool, so without
        `max_time` such a run does not terminate.

        Args:
            dt: Seconds per step
            max_time: Optional simulated-time limit

        Returns:
            (total elapsed time, number of finished walkers, all timing samples)

        Raises:
            SimulationTimeout: if max_time is given and exceeded
        """
        total = len(self.available) + len(self.active) + len(self.finished)
        logger.info("Starting full simulation: %d walkers, rate %.2f/s, dt %.3fs",
                    total, self.admission_rate, dt)

        while self.available or self.active:
            if max_time is not None and self.time_elapsed >= max_time:
                raise SimulationTimeout(
                    f"Simulation exceeded {max_time}s with counts {self.get_pedestrian_counts()}"
                )
            self.simulate_timestep(dt)

        logger.info("Simulation finished after %.1fs: %d walkers, %d timing samples",
                    self.time_elapsed, len(self.finished), len(self.timing_samples))
        return self.time_elapsed, len(self.finished), list(self.timing_samples)

    def get_pedestrian_counts(self) -> Tuple[int, int, int]:
        """(available, active, finished)"""
        return len(self.available), len(self.active), len(self.finished)

    # ---------- internal helpers ----------
    def _admit_walkers(self):
        # Tolerance absorbs the drift of summing dt
        target = self.time_elapsed * self.admission_rate - ADMISSION_TOLERANCE
        while self.available and self.admitted_count < target:
            walker = self.available[-1]
            if self._start_occupied(walker):
                # Stays queued; the admission backlog is caught up on a later tick
                break
            self.available.pop()
            self.active.append(walker)
            self.admitted_count += 1
            logger.debug("Admitted walker %d at %.2fs", walker.id, self.time_elapsed)

    def _start_occupied(self, walker: Walker) -> bool:
        """Whether an active walker overlaps the body of `walker` at its start point."""
        if not self.active:
            return False
        positions = np.array([other.position for other in self.active])
        gaps = np.hypot(positions[:, 0] - walker.x, positions[:, 1] - walker.y)
        return bool(np.any(gaps < 2.0 * walker.radius))

    def _snapshot(self) -> np.ndarray:
        if not self.active:
            return np.empty((0, 3), dtype=float)
        snapshot = np.array([walker.state_row() for walker in self.active], dtype=float)
        snapshot.flags.writeable = False
        return snapshot

    def _retire_arrived_walkers(self):
        still_active = []
        for walker in self.active:
            if walker.distance_to_destination() < self.arrival_radius:
                self.finished.append(walker)
                logger.debug("Walker %d arrived at %.2fs", walker.id, self.time_elapsed)
            else:
                still_active.append(walker)
        self.active = still_active

    # ---------- draw surface ----------
    @property
    def active_walkers(self) -> Tuple[Walker, ...]:
        return tuple(self.active)

    @property
    def total_pedestrians(self) -> int:
        return sum(self.get_pedestrian_counts())

    def __repr__(self) -> str:
        available, active, finished = self.get_pedestrian_counts()
        return (f"CrowdSim(t={self.time_elapsed:.2f}s, available={available}, "
                f"active={active}, finished={finished})")
