from argparse import Namespace

import yaml

from main import apply_overrides, load_config, run_scenario


def _args(**overrides):
    values = dict(seed=None, rate=None, dt=None, pedestrians=None, trim=None, no_viz=False)
    values.update(overrides)
    return Namespace(**values)


def test_load_config_reads_yaml(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump({'simulation': {'seed': 9, 'admission_rate': 1.1}}))

    config = load_config(str(path))

    assert config['simulation'] == {'seed': 9, 'admission_rate': 1.1}


def test_empty_config_file_gives_empty_dict(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text('')
    assert load_config(str(path)) == {}


def test_command_line_overrides_config():
    config = {'simulation': {'seed': 1, 'admission_rate': 0.8}}

    config = apply_overrides(config, _args(seed=5, rate=1.5, pedestrians=40, no_viz=True))

    assert config['simulation']['seed'] == 5
    assert config['simulation']['admission_rate'] == 1.5
    assert config['simulation']['total_pedestrians'] == 40
    assert config['visualization']['enabled'] is False
    assert 'time_step' not in config['simulation']


def test_run_scenario_prints_report(capsys):
    config = {
        'simulation': {
            'seed': 3,
            'total_pedestrians': 20,
            'time_step': 0.1,
            'trimmed_pedestrians': 2,
            'max_time': 600.0,
        }
    }

    status = run_scenario('calibration', config, render=False)
    out = capsys.readouterr().out

    assert status == 0
    assert "Scenario: calibration" in out
    assert "TRAVEL TIME SUMMARY REPORT" in out
    assert "Within Target:" in out
