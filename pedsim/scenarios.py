"""
Scenario Library
Hand-built environments, populations and batch experiments
"""

import logging
import numpy as np
from typing import Callable, Dict, List, Optional, Tuple

from .agent import Etiquette
from .analytics import parse_results
from .environment import Environment
from .simulator import CrowdSim


logger = logging.getLogger(__name__)

# Calibration target: mean gate-to-gate travel time observed in the real corridor
CALIBRATION_TARGET = 18.57
CALIBRATION_TOLERANCE = 3.0

# Observed share of (left-biased, unbiased, right-biased) pedestrians
OBSERVED_BIAS_RATIOS = (0.443877551020408, 0.520408163265306, 0.0357142857142857)


# ---------- environments ----------
def testing_environment() -> Environment:
    """30 m corridor, 6 m wide, timing boundaries at x=3 and x=28, two opposing flows."""
    env = Environment()

    env.add_wall((-1.0, 0.0), (32.0, 0.0))
    env.add_wall((-1.0, 6.0), (32.0, 6.0))
    env.add_wall((-1.0, 0.0), (-1.0, 6.0))
    env.add_wall((32.0, 0.0), (32.0, 6.0))

    env.add_timing_boundary((3.0, 0.0), (3.0, 6.0))
    env.add_timing_boundary((28.0, 0.0), (28.0, 6.0))

    # Left-to-right
    env.add_start_end_group(
        [(0.0, y) for y in (1.0, 2.0, 3.0, 4.0, 5.0)],
        [(30.0, y) for y in (1.0, 2.0, 3.0, 4.0, 5.0)],
    )
    # Right-to-left
    env.add_start_end_group(
        [(31.0, y) for y in (1.0, 2.0, 3.0, 4.0, 5.0)],
        [(1.0, y) for y in (1.0, 2.0, 3.0, 4.0, 5.0)],
    )
    return env


def testing_environment_vertical() -> Environment:
    """The testing corridor mirrored about y = x."""
    env = Environment()

    env.add_wall((0.0, -1.0), (0.0, 32.0))
    env.add_wall((6.0, -1.0), (6.0, 32.0))
    env.add_wall((0.0, -1.0), (6.0, -1.0))
    env.add_wall((0.0, 32.0), (6.0, 32.0))

    env.add_timing_boundary((0.0, 3.0), (6.0, 3.0))
    env.add_timing_boundary((0.0, 28.0), (6.0, 28.0))

    # Top-to-bottom
    env.add_start_end_group(
        [(x, 0.0) for x in (1.0, 2.0, 3.0, 4.0, 5.0)],
        [(x, 30.0) for x in (1.0, 2.0, 3.0, 4.0, 5.0)],
    )
    # Bottom-to-top
    env.add_start_end_group(
        [(x, 31.0) for x in (1.0, 2.0, 3.0, 4.0, 5.0)],
        [(x, 1.0) for x in (1.0, 2.0, 3.0, 4.0, 5.0)],
    )
    return env


def diagonal_environment() -> Environment:
    """Corridor running at 45 degrees, to exercise non axis-aligned walls."""
    env = Environment()

    env.add_wall((0.0, 4.0), (12.0, 16.0))
    env.add_wall((4.0, 0.0), (16.0, 12.0))

    env.add_start_end_group(
        [(1.0, 3.0), (2.0, 2.0), (3.0, 1.0)],
        [(14.0, 16.0), (16.0, 14.0)],
    )
    env.add_start_end_group(
        [(13.0, 15.0), (14.0, 14.0), (15.0, 13.0)],
        [(0.0, 2.0), (2.0, 0.0)],
    )

    env.add_timing_boundary((1.0, 5.0), (5.0, 1.0))
    env.add_timing_boundary((11.0, 15.0), (15.0, 11.0))
    return env


def crossroads_environment() -> Environment:
    """Two 6 m corridors crossing at right angles, with chamfered corners."""
    env = Environment()

    # Horizontal corridor
    env.add_wall((-1.0, 12.5), (11.5, 12.5))
    env.add_wall((19.5, 12.5), (32.0, 12.5))
    env.add_wall((-1.0, 18.5), (11.5, 18.5))
    env.add_wall((19.5, 18.5), (32.0, 18.5))
    env.add_wall((-1.0, 12.5), (-1.0, 18.5))
    env.add_wall((32.0, 12.5), (32.0, 18.5))

    # Vertical corridor
    env.add_wall((12.5, -1.0), (12.5, 11.5))
    env.add_wall((12.5, 19.5), (12.5, 32.0))
    env.add_wall((18.5, -1.0), (18.5, 11.5))
    env.add_wall((18.5, 19.5), (18.5, 32.0))
    env.add_wall((12.5, -1.0), (18.5, -1.0))
    env.add_wall((12.5, 32.0), (18.5, 32.0))

    # Corners
    env.add_wall((12.5, 11.5), (11.5, 12.5))
    env.add_wall((18.5, 11.5), (19.5, 12.5))
    env.add_wall((19.5, 18.5), (18.5, 19.5))
    env.add_wall((11.5, 18.5), (12.5, 19.5))

    lanes = (13.5, 14.5, 15.5, 16.5, 17.5)
    env.add_start_end_group([(0.0, y) for y in lanes], [(30.0, y) for y in lanes])
    env.add_start_end_group([(31.0, y) for y in lanes], [(1.0, y) for y in lanes])
    env.add_start_end_group([(x, 0.0) for x in lanes], [(x, 30.0) for x in lanes])
    env.add_start_end_group([(x, 31.0) for x in lanes], [(x, 1.0) for x in lanes])

    env.add_timing_boundary((3.0, 12.5), (3.0, 18.5))
    env.add_timing_boundary((28.0, 12.5), (28.0, 18.5))
    env.add_timing_boundary((12.5, 3.0), (18.5, 3.0))
    env.add_timing_boundary((12.5, 28.0), (18.5, 28.0))
    return env


def demo_environment() -> Environment:
    """Small open corridor used for demonstrations and debugging."""
    env = Environment()

    env.add_wall((0.0, 0.0), (20.0, 0.0))
    env.add_wall((0.0, 8.0), (20.0, 8.0))

    env.add_start_end_group(
        [(0.0, 1.0), (0.0, 3.0), (0.0, 5.0), (0.0, 7.0)],
        [(21.0, 1.0), (21.0, 3.0), (21.0, 5.0), (21.0, 7.0), (5.0, 5.0)],
    )
    env.add_start_end_group(
        [(20.0, 1.0), (20.0, 3.0), (20.0, 5.0), (20.0, 7.0)],
        [(-1.0, 1.0), (-1.0, 3.0), (-1.0, 5.0), (-1.0, 7.0), (5.0, 4.0)],
    )
    return env


# ---------- populations ----------
def _settings(config: Optional[dict]) -> Tuple[dict, int, float]:
    config = config or {}
    sim_config = config.get('simulation', {})
    total = sim_config.get('total_pedestrians', 1040)
    rate = sim_config.get('admission_rate', 0.8)
    return config, total, rate


def _add_mixed_population(
    sim: CrowdSim,
    groups: List[int],
    total: int,
    ratios: Tuple[float, float, float],
    share: float
):
    """Split `total * share` walkers per group over left/none/right bias by `ratios`."""
    left, none, right = ratios
    for group in groups:
        sim.add_pedestrian_set(int(total * left * share), group, Etiquette.LEFT_BIAS)
        sim.add_pedestrian_set(int(total * none * share), group, Etiquette.NO_BIAS)
        sim.add_pedestrian_set(int(total * right * share), group, Etiquette.RIGHT_BIAS)


def _bias_ratios(config: dict, default=OBSERVED_BIAS_RATIOS) -> Tuple[float, float, float]:
    ratios = config.get('population', {}).get('bias_ratios', default)
    if len(ratios) != 3:
        raise ValueError(f"bias_ratios needs three values (left, none, right), got {ratios!r}")
    return tuple(float(r) for r in ratios)


def calibration_sim(config: Optional[dict] = None, seed: Optional[int] = None,
                    rate: Optional[float] = None) -> CrowdSim:
    """Observed etiquette mix in the testing corridor."""
    config, total, default_rate = _settings(config)
    sim = CrowdSim(testing_environment(), rate if rate is not None else default_rate, config, seed)
    _add_mixed_population(sim, [0, 1], total, _bias_ratios(config), 0.5)
    sim.randomise_pedestrian_order()
    return sim


def vertical_calibration_sim(config: Optional[dict] = None, seed: Optional[int] = None,
                             rate: Optional[float] = None) -> CrowdSim:
    """Calibration population in the vertical corridor."""
    config, total, default_rate = _settings(config)
    sim = CrowdSim(testing_environment_vertical(), rate if rate is not None else default_rate, config, seed)
    _add_mixed_population(sim, [0, 1], total, _bias_ratios(config), 0.5)
    sim.randomise_pedestrian_order()
    return sim


def _uniform_sim(etiquette: Etiquette, config, seed, rate) -> CrowdSim:
    config, total, default_rate = _settings(config)
    sim = CrowdSim(testing_environment(), rate if rate is not None else default_rate, config, seed)
    sim.add_pedestrian_set(int(total * 0.5), 0, etiquette)
    sim.add_pedestrian_set(int(total * 0.5), 1, etiquette)
    sim.randomise_pedestrian_order()
    return sim


def left_bias_sim(config: Optional[dict] = None, seed: Optional[int] = None,
                  rate: Optional[float] = None) -> CrowdSim:
    """Everyone keeps left."""
    return _uniform_sim(Etiquette.LEFT_BIAS, config, seed, rate)


def no_bias_sim(config: Optional[dict] = None, seed: Optional[int] = None,
                rate: Optional[float] = None) -> CrowdSim:
    """Nobody has a side preference."""
    return _uniform_sim(Etiquette.NO_BIAS, config, seed, rate)


def diagonal_sim(config: Optional[dict] = None, seed: Optional[int] = None,
                 rate: Optional[float] = None) -> CrowdSim:
    config, total, default_rate = _settings(config)
    sim = CrowdSim(diagonal_environment(), rate if rate is not None else default_rate, config, seed)
    _add_mixed_population(sim, [0, 1], total, _bias_ratios(config, (0.44, 0.52, 0.04)), 0.5)
    sim.randomise_pedestrian_order()
    return sim


def crossroads_sim(config: Optional[dict] = None, seed: Optional[int] = None,
                   rate: Optional[float] = None) -> CrowdSim:
    config, total, default_rate = _settings(config)
    sim = CrowdSim(crossroads_environment(), rate if rate is not None else default_rate, config, seed)
    _add_mixed_population(sim, [0, 1, 2, 3], total, _bias_ratios(config, (0.44, 0.52, 0.04)), 0.25)
    sim.randomise_pedestrian_order()
    return sim


def demo_sim(config: Optional[dict] = None, seed: Optional[int] = None,
             rate: Optional[float] = None) -> CrowdSim:
    """A dozen hand-placed walkers, including a couple of fast ones."""
    config = config or {}
    sim = CrowdSim(demo_environment(), rate if rate is not None else 4.0, config, seed)

    for start, end, speed in [(3, 4, 1.35), (0, 2, 1.35), (1, 0, 1.35), (2, 0, 1.35),
                              (2, 1, 1.35), (2, 1, 2.5), (2, 1, 2.0)]:
        sim.add_pedestrian(0, start, end, speed, Etiquette.LEFT_BIAS)

    for start, end, speed in [(3, 4, 1.35), (0, 2, 1.35), (1, 0, 1.35), (2, 0, 1.35), (2, 1, 1.35)]:
        sim.add_pedestrian(1, start, end, speed, Etiquette.NO_BIAS)

    sim.randomise_pedestrian_order()
    return sim


SCENARIOS: Dict[str, Callable[..., CrowdSim]] = {
    'calibration': calibration_sim,
    'left_bias': left_bias_sim,
    'no_bias': no_bias_sim,
    'vertical': vertical_calibration_sim,
    'diagonal': diagonal_sim,
    'crossroads': crossroads_sim,
    'demo': demo_sim,
}


def build_scenario(name: str, config: Optional[dict] = None, seed: Optional[int] = None,
                   rate: Optional[float] = None) -> CrowdSim:
    try:
        factory = SCENARIOS[name]
    except KeyError:
        raise ValueError(f"Unknown scenario '{name}'. Choose from: {', '.join(SCENARIOS)}") from None
    return factory(config, seed=seed, rate=rate)


# ---------- experiments ----------
def run_rate_sweep(
    kind: str,
    lower: float,
    upper: float,
    increment: float,
    config: Optional[dict] = None,
    seed: Optional[int] = None
) -> List[Tuple[float, float, float]]:
    """
    Run one full simulation per admission rate between lower and upper.

    The number of trimmed samples scales with the rate, so roughly the walkers
    admitted before the first timing sample are excluded.

    Returns:
        List of (rate, mean travel time, standard deviation)
    """
    if increment <= 0:
        raise ValueError("increment must be positive")
    config = config or {}
    sim_config = config.get('simulation', {})
    dt = sim_config.get('time_step', 0.02)
    max_time = sim_config.get('max_time')
    factory = {'left_bias': left_bias_sim, 'no_bias': no_bias_sim}.get(kind)
    if factory is None:
        raise ValueError(f"Rate sweeps support 'left_bias' or 'no_bias', got '{kind}'")

    results = []
    rate = lower
    while rate <= upper:
        sim = factory(config, seed=seed, rate=rate)
        _, _, samples = sim.simulate_full(dt, max_time)
        excluded = int(rate * samples[0][0] + 1.0) if samples else 0
        _, mean, std = parse_results(samples, excluded)
        logger.info("Rate %.3f: %.2f ± %.2fs", rate, mean, std)
        results.append((rate, mean, std))
        # Round to avoid accumulating floating point drift
        rate = round(rate + increment, 3)
    return results


def compare_etiquettes(iterations: int, config: Optional[dict] = None,
                       seed: Optional[int] = None) -> Dict[str, object]:
    """
    Run the all-left-bias and all-no-bias corridors against each other repeatedly.

    Returns:
        Dict with per-iteration means and win counts
    """
    config = config or {}
    sim_config = config.get('simulation', {})
    dt = sim_config.get('time_step', 0.02)
    trim = sim_config.get('trimmed_pedestrians', 20)
    max_time = sim_config.get('max_time')

    seeds = np.random.default_rng(seed).integers(0, 2**31, size=(iterations, 2))
    rounds = []
    left_wins = 0
    no_bias_wins = 0

    for left_seed, none_seed in seeds:
        _, left_mean, left_std = parse_results(
            left_bias_sim(config, seed=int(left_seed)).simulate_full(dt, max_time)[2], trim)
        _, none_mean, none_std = parse_results(
            no_bias_sim(config, seed=int(none_seed)).simulate_full(dt, max_time)[2], trim)

        if left_mean < none_mean:
            left_wins += 1
        elif left_mean > none_mean:
            no_bias_wins += 1
        rounds.append(((left_mean, left_std), (none_mean, none_std)))

    return {
        'rounds': rounds,
        'left_bias_wins': left_wins,
        'no_bias_wins': no_bias_wins,
    }
