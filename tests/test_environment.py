import pytest

from pedsim.environment import Environment
from pedsim.errors import ScenarioError
from pedsim.simulator import CrowdSim


def _two_group_environment():
    env = Environment()
    env.add_wall((0.0, 0.0), (10.0, 0.0))
    env.add_timing_boundary((2.0, 0.0), (2.0, 5.0))
    env.add_start_end_group([(0.0, 1.0), (0.0, 2.0)], [(10.0, 1.0)])
    env.add_start_end_group([(10.0, 1.0)], [(0.0, 1.0), (0.0, 2.0), (0.0, 3.0)])
    return env


def test_group_ids_are_sequential():
    env = Environment()
    assert env.add_start_end_group([(0.0, 0.0)], [(1.0, 0.0)]) == 0
    assert env.add_start_end_group([(1.0, 0.0)], [(0.0, 0.0)]) == 1
    assert env.group_count == 2


def test_waypoints_kept_in_order():
    env = _two_group_environment()
    assert env.start_positions[0] == ((0.0, 1.0), (0.0, 2.0))
    assert env.end_position(1, 2) == (0.0, 3.0)
    assert len(env.walls) == 1
    assert len(env.timing_boundaries) == 1


@pytest.mark.parametrize("group,start,end", [
    (2, 0, 0),
    (-1, 0, 0),
    (0, 2, 0),
    (0, 0, 1),
    (1, 0, 3),
    (0, 0.5, 0),
])
def test_validate_route_rejects_bad_indices(group, start, end):
    env = _two_group_environment()
    with pytest.raises(ScenarioError):
        env.validate_route(group, start, end)


def test_validate_route_accepts_good_indices():
    env = _two_group_environment()
    env.validate_route(0, 1, 0)
    env.validate_route(1, 0, 2)


def test_empty_waypoint_lists_rejected():
    env = Environment()
    with pytest.raises(ScenarioError):
        env.add_start_end_group([], [(1.0, 1.0)])
    with pytest.raises(ScenarioError):
        env.add_start_end_group([(1.0, 1.0)], [])


def test_degenerate_wall_fails_at_construction():
    env = Environment()
    with pytest.raises(ScenarioError):
        env.add_wall((3.0, 3.0), (3.0, 3.0))
    with pytest.raises(ScenarioError):
        env.add_timing_boundary((3.0, 3.0), (3.0, 3.0))


def test_simulation_freezes_environment():
    env = _two_group_environment()
    CrowdSim(env, 1.0)

    assert env.frozen
    with pytest.raises(ScenarioError):
        env.add_wall((0.0, 5.0), (10.0, 5.0))
    with pytest.raises(ScenarioError):
        env.add_start_end_group([(0.0, 0.0)], [(1.0, 1.0)])


def test_bounds_cover_all_geometry():
    env = _two_group_environment()
    assert env.bounds() == (0.0, 0.0, 10.0, 5.0)
