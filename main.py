"""
Main Application Entry Point
Command-line interface for running pedestrian etiquette simulations
"""

import sys
import logging
import yaml
import argparse
from pathlib import Path

from pedsim.analytics import TravelTimeReport
from pedsim.errors import ScenarioError, SimulationTimeout
from pedsim.scenarios import (
    CALIBRATION_TARGET,
    CALIBRATION_TOLERANCE,
    SCENARIOS,
    build_scenario,
    compare_etiquettes,
    run_rate_sweep,
)


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file."""
    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)
    return config or {}


def apply_overrides(config: dict, args) -> dict:
    """Apply command-line overrides on top of the file configuration."""
    sim_config = config.setdefault('simulation', {})
    if args.seed is not None:
        sim_config['seed'] = args.seed
    if args.rate is not None:
        sim_config['admission_rate'] = args.rate
    if args.dt is not None:
        sim_config['time_step'] = args.dt
    if args.pedestrians is not None:
        sim_config['total_pedestrians'] = args.pedestrians
    if args.trim is not None:
        sim_config['trimmed_pedestrians'] = args.trim
    if args.no_viz:
        config.setdefault('visualization', {})['enabled'] = False
    return config


def run_scenario(name: str, config: dict, render: bool) -> int:
    sim_config = config.get('simulation', {})
    dt = sim_config.get('time_step', 0.02)
    trim = sim_config.get('trimmed_pedestrians', 20)

    sim = build_scenario(name, config)
    available, _, _ = sim.get_pedestrian_counts()

    print("=" * 60)
    print(f"Scenario: {name}")
    print("=" * 60)
    print(f"Pedestrians: {available}")
    print(f"Admission rate: {sim.admission_rate:.2f}/s, Time step: {dt}s")
    print(f"Walls: {len(sim.environment.walls)}, Timing boundaries: {len(sim.environment.timing_boundaries)}")
    print("=" * 60)

    if render:
        from pedsim.visualizer import Visualizer

        visualizer = Visualizer(config.get('visualization', {}), sim.environment)
        visualizer.animate(sim, dt)
        visualizer.close()
        return 0

    results = sim.simulate_full(dt, max_time=sim_config.get('max_time'))
    if len(results[2]) <= 2 * trim:
        print(f"Only {len(results[2])} timing samples recorded; nothing left after trimming {trim}.")
        print(f"Total simulation time: {results[0]:.1f}s, finished: {results[1]}")
        return 0

    report = TravelTimeReport.from_results(
        results,
        trim=trim,
        target=CALIBRATION_TARGET if name in ('calibration', 'vertical') else None,
        tolerance=CALIBRATION_TOLERANCE
    )
    print(report.summary())
    return 0


def run_sweep(config: dict) -> int:
    sweep = config.get('experiments', {}).get('sweep', {})
    lower = sweep.get('lower', 0.5)
    upper = sweep.get('upper', 2.0)
    increment = sweep.get('increment', 0.01)

    for kind in ('left_bias', 'no_bias'):
        print(f"Varying pedestrian rates: {kind}")
        for rate, mean, std in run_rate_sweep(kind, lower, upper, increment, config):
            print(f"{rate}: {mean:.2f} ± {std:.2f}s")
    return 0


def run_compare(config: dict) -> int:
    iterations = config.get('experiments', {}).get('compare_iterations', 100)
    seed = config.get('simulation', {}).get('seed')

    print(f"Comparing left-bias and no-bias {iterations} times")
    outcome = compare_etiquettes(iterations, config, seed=seed)
    for (left_mean, left_std), (none_mean, none_std) in outcome['rounds']:
        print(f"Left bias: {left_mean:.2f} ± {left_std:.2f}s  |  No bias: {none_mean:.2f} ± {none_std:.2f}s")
    print(f"Left bias won {outcome['left_bias_wins']} times.")
    print(f"No bias won {outcome['no_bias_wins']} times.")
    return 0


def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(
        description='Pedestrian Behaviour & Etiquette Simulator',
        epilog='Examples:\n'
               '  python main.py calibration\n'
               '  python main.py no_bias --rate 1.2 --seed 7\n'
               '  python main.py demo --render\n'
               '  python main.py compare --config config.yaml',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        'scenario',
        type=str,
        nargs='?',
        default='calibration',
        choices=list(SCENARIOS) + ['sweep', 'compare'],
        help='Scenario or experiment to run'
    )
    parser.add_argument('--config', type=str, default='config.yaml', help='Path to configuration file')
    parser.add_argument('--render', action='store_true', help='Draw the simulation while it runs')
    parser.add_argument('--no-viz', action='store_true', help='Disable visualization')
    parser.add_argument('--seed', type=int, help='Random seed')
    parser.add_argument('--rate', type=float, help='Walkers admitted per second')
    parser.add_argument('--dt', type=float, help='Seconds per simulation step')
    parser.add_argument('--pedestrians', type=int, help='Total number of pedestrians')
    parser.add_argument('--trim', type=int, help='Timing samples dropped from each end of a run')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log simulation progress')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s'
    )

    config_path = Path(args.config)
    if config_path.exists():
        config = load_config(str(config_path))
    elif args.config != parser.get_default('config'):
        print(f"Error: Configuration file '{config_path}' not found.")
        sys.exit(1)
    else:
        config = {}

    config = apply_overrides(config, args)
    render = args.render and config.get('visualization', {}).get('enabled', True)

    try:
        if args.scenario == 'sweep':
            status = run_sweep(config)
        elif args.scenario == 'compare':
            status = run_compare(config)
        else:
            status = run_scenario(args.scenario, config, render)
    except KeyboardInterrupt:
        print("\n\nSimulation interrupted by user.")
        status = 1
    except (ScenarioError, SimulationTimeout, ValueError) as e:
        print(f"\n\nError during simulation: {e}")
        status = 1

    sys.exit(status)


if __name__ == '__main__':
    main()
