import pytest

from pedsim.agent import Etiquette
from pedsim.analytics import parse_results
from pedsim.scenarios import (
    CALIBRATION_TARGET,
    SCENARIOS,
    build_scenario,
    calibration_sim,
    compare_etiquettes,
    crossroads_environment,
    run_rate_sweep,
    testing_environment as corridor_environment,
)
from pedsim.simulator import CrowdSim


TINY_CONFIG = {
    'simulation': {
        'total_pedestrians': 20,
        'admission_rate': 0.8,
        'time_step': 0.1,
        'trimmed_pedestrians': 2,
    }
}


# --------------------------------------------------
# END-TO-END CORRIDOR RUN
# --------------------------------------------------
def test_corridor_travel_time_matches_observation():
    """Opposing unbiased flows at walking pace take about 18.5 s between the gates."""
    sim = CrowdSim(corridor_environment(), 0.8, seed=1)
    for i in range(20):
        sim.add_pedestrian(i % 2, i % 5, i % 5, 1.35, Etiquette.NO_BIAS)

    elapsed, finished, samples = sim.simulate_full(0.05, max_time=600.0)

    assert finished == 20
    assert len(samples) >= 15
    _, mean, _ = parse_results(samples)
    assert CALIBRATION_TARGET - 3.0 <= mean <= CALIBRATION_TARGET + 3.0
    assert elapsed < 600.0


def _inside_corridor(walker):
    return -1.0 < walker.x < 32.0 and 0.0 < walker.y < 6.0


def test_crowded_corridor_stays_inside_walls_and_drains():
    sim = CrowdSim(corridor_environment(), 0.8, seed=4)
    sim.add_pedestrian_set(80, 0, Etiquette.NO_BIAS)
    sim.add_pedestrian_set(80, 1, Etiquette.NO_BIAS)
    sim.randomise_pedestrian_order()

    while sim.available or sim.active:
        assert sim.time_elapsed < 600.0, sim
        sim.simulate_timestep(0.05)
        for walker in sim.active:
            assert _inside_corridor(walker), walker

    assert sim.get_pedestrian_counts() == (0, 0, 160)
    _, mean, _ = parse_results(sim.timing_samples, 20)
    assert CALIBRATION_TARGET - 3.0 <= mean <= CALIBRATION_TARGET + 3.0


def test_calibration_crowd_drains():
    config = {'simulation': {'total_pedestrians': 300, 'admission_rate': 0.8}}
    sim = calibration_sim(config, seed=1)
    total = sim.total_pedestrians

    elapsed, finished, _ = sim.simulate_full(0.1, max_time=900.0)

    assert finished == total
    assert elapsed < 900.0
    assert all(_inside_corridor(walker) for walker in sim.finished)


# --------------------------------------------------
# SCENARIO LIBRARY
# --------------------------------------------------
def test_every_scenario_builds():
    for name in SCENARIOS:
        sim = build_scenario(name, TINY_CONFIG, seed=0)
        available, active, finished = sim.get_pedestrian_counts()
        assert available > 0
        assert active == 0 and finished == 0
        assert sim.environment.frozen


def test_calibration_population_follows_bias_ratios():
    sim = build_scenario('calibration', {'simulation': {'total_pedestrians': 1040}}, seed=0)
    counts = {etiquette: 0 for etiquette in Etiquette}
    for walker in sim.available:
        counts[walker.etiquette] += 1

    # int(1040 * ratio * 0.5) per group, two groups
    assert counts[Etiquette.LEFT_BIAS] == 460
    assert counts[Etiquette.NO_BIAS] == 540
    assert counts[Etiquette.RIGHT_BIAS] == 36


def test_demo_scenario_is_hand_placed():
    sim = build_scenario('demo', seed=0)
    assert sim.total_pedestrians == 12
    assert sim.admission_rate == 4.0
    assert max(w.target_speed for w in sim.available) == 2.5


def test_rate_override_and_seed():
    sim = build_scenario('no_bias', TINY_CONFIG, seed=4, rate=1.7)
    assert sim.admission_rate == 1.7
    assert all(w.etiquette is Etiquette.NO_BIAS for w in sim.available)


def test_crossroads_has_four_groups():
    env = crossroads_environment()
    assert env.group_count == 4
    assert len(env.timing_boundaries) == 4


def test_unknown_scenario_rejected():
    with pytest.raises(ValueError):
        build_scenario('stadium')


def test_bad_bias_ratios_rejected():
    config = {'simulation': {'total_pedestrians': 20}, 'population': {'bias_ratios': [0.5, 0.5]}}
    with pytest.raises(ValueError):
        build_scenario('calibration', config)


# --------------------------------------------------
# EXPERIMENTS
# --------------------------------------------------
def test_rate_sweep_rejects_bad_arguments():
    with pytest.raises(ValueError):
        run_rate_sweep('left_bias', 0.5, 1.0, 0.0)
    with pytest.raises(ValueError):
        run_rate_sweep('calibration', 0.5, 1.0, 0.1)


def test_compare_etiquettes_counts_rounds():
    outcome = compare_etiquettes(1, TINY_CONFIG, seed=3)

    assert len(outcome['rounds']) == 1
    assert outcome['left_bias_wins'] + outcome['no_bias_wins'] <= 1
    (left_mean, _), (none_mean, _) = outcome['rounds'][0]
    assert left_mean > 0.0
    assert none_mean > 0.0


def test_rate_sweep_runs_each_rate():
    config = {'simulation': {'total_pedestrians': 60, 'time_step': 0.1, 'max_time': 900.0}}

    results = run_rate_sweep('no_bias', 0.8, 0.82, 0.01, config, seed=2)

    assert [rate for rate, _, _ in results] == [0.8, 0.81, 0.82]
    for _, mean, std in results:
        assert mean > 0.0
        assert std >= 0.0
