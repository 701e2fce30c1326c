import matplotlib
matplotlib.use('Agg')

from pedsim.scenarios import build_scenario
from pedsim.visualizer import Visualizer


def test_render_and_save_frame(tmp_path):
    sim = build_scenario('demo', seed=2)
    for _ in range(40):
        sim.simulate_timestep(0.05)
    assert sim.active_walkers

    visualizer = Visualizer({'figsize': (8, 4)}, sim.environment)
    try:
        visualizer.render_frame(sim)
        path = visualizer.save_frame(str(tmp_path / 'frames' / 'demo.png'))
    finally:
        visualizer.close()

    assert path.exists()
    assert path.stat().st_size > 0


def test_disabled_visualizer_draws_nothing(tmp_path):
    sim = build_scenario('demo', seed=2)
    visualizer = Visualizer({'enabled': False}, sim.environment)

    visualizer.render_frame(sim)

    assert visualizer.fig is None
    assert visualizer.save_frame(str(tmp_path / 'never.png')) is None
    assert not (tmp_path / 'never.png').exists()
