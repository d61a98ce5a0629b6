"""End-to-end runs of the config-driven commands."""

import csv
import json

import numpy as np
import pytest

from oscnet.commands import run_distances, run_resonances, run_simulate


def _write_config(tmp_path, **overrides):
    cfg = {
        'network': {
            'masses': [1.0, 2.0],
            'damping': [[0.02, 0.1], [0.1, 0.1]],
            'stiffness': [[4.0, 2.0], [2.0, 1.0]],
        },
        'initial_state': {'positions': [1.0, 1.0]},
        'simulation': {'t_start_s': 0.0, 't_end_s': 2.0, 'n_samples': 21},
        'solver': {
            'imag_tol': 1e-8,
            'cond_limit': 1e6,
            'max_step_s': 0.01,
            'step_fraction': 0.1,
            'divergence_limit': 1e12,
        },
        'distance': {'ground_mode': 'individual'},
        'plotting': {'enabled': False},
        'output_dir': 'out',
    }
    for key, value in overrides.items():
        cfg[key] = value
    path = tmp_path / 'config.json'
    path.write_text(json.dumps(cfg), encoding='utf-8')
    return path


class TestRunSimulate:
    """Simulation command"""

    def test_writes_outputs(self, tmp_path):
        messages = []
        summary = run_simulate(_write_config(tmp_path), echo=messages.append)

        out = tmp_path / 'out'
        assert (out / 'trajectory.csv').exists()
        assert not (out / 'trajectory.png').exists()
        assert json.loads((out / 'summary.json').read_text(encoding='utf-8')) == summary
        assert summary['oscillators'] == 2
        assert summary['samples'] == 21
        assert summary['events'] == 0
        assert any('analytic' in m for m in messages)

    def test_events_relative_to_config(self, tmp_path):
        (tmp_path / 'events.csv').write_text('variable,time,value\nx.1,1.0,0.0\n', encoding='utf-8')
        simulation = {
            't_start_s': 0.0,
            't_end_s': 2.0,
            'n_samples': 21,
            'events_csv': 'events.csv',
            'interpolation': 'hold',
        }
        summary = run_simulate(_write_config(tmp_path, simulation=simulation), echo=lambda *_: None)

        assert summary['events'] == 1
        assert summary['final_state']['x.1'] == 0.0
        assert summary['final_state']['v.1'] == 0.0

        with (tmp_path / 'out' / 'trajectory.csv').open(newline='', encoding='utf-8') as f:
            rows = list(csv.reader(f))
        assert rows[0] == ['time', 'x.1', 'x.2', 'v.1', 'v.2']
        assert len(rows) == 22

    def test_missing_event_file(self, tmp_path):
        simulation = {'t_start_s': 0.0, 't_end_s': 1.0, 'n_samples': 11, 'events_csv': 'nope.csv'}
        with pytest.raises(FileNotFoundError):
            run_simulate(_write_config(tmp_path, simulation=simulation), echo=lambda *_: None)

    def test_plots(self, tmp_path):
        run_simulate(_write_config(tmp_path), echo=lambda *_: None, plots=True)
        assert (tmp_path / 'out' / 'trajectory.png').exists()

    def test_invalid_config(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'network': {}}), encoding='utf-8')
        with pytest.raises(KeyError):
            run_simulate(path, echo=lambda *_: None)


class TestRunResonances:
    """Resonance command"""

    def test_report(self, tmp_path):
        res = run_resonances(_write_config(tmp_path), echo=lambda *_: None, plots=True)

        assert len(res) == 2
        assert res[0]['undamped_hz'] < res[1]['undamped_hz']
        assert (tmp_path / 'out' / 'resonances.csv').exists()
        assert (tmp_path / 'out' / 'resonances.png').exists()


class TestRunDistances:
    """Rest-length command"""

    def test_with_load(self, tmp_path):
        network = {
            'masses': [1.0, 2.0],
            'damping': [[0.1, 0.0], [0.0, 0.0]],
            'stiffness': [[4.0, 2.0], [2.0, 0.0]],
            'external_force': [0.0, -1.0],
        }
        distance = {'ground_mode': 'individual', 'equilibrium': [1.0, 1.5]}
        rest = run_distances(_write_config(tmp_path, network=network, distance=distance), echo=lambda *_: None)

        np.testing.assert_allclose(rest, [[1.25, 1.0], [1.0, 0.0]], atol=1e-12)
        assert (tmp_path / 'out' / 'rest_lengths.csv').exists()

    def test_defaults_to_initial_positions(self, tmp_path):
        rest = run_distances(_write_config(tmp_path), echo=lambda *_: None)
        np.testing.assert_allclose(rest, [[1.0, 0.0], [0.0, 1.0]], atol=1e-12)


class TestCli:
    """simulate.py entry point"""

    def test_default_run(self, tmp_path, monkeypatch, capsys):
        import simulate

        path = _write_config(tmp_path)
        monkeypatch.setattr('sys.argv', ['simulate.py', '--config', str(path), '--no-plots'])
        simulate.main()

        assert (tmp_path / 'out' / 'trajectory.csv').exists()
        assert 'Results written to' in capsys.readouterr().out

    def test_exclusive_modes(self, tmp_path, monkeypatch):
        import simulate

        path = _write_config(tmp_path)
        monkeypatch.setattr('sys.argv', ['simulate.py', '--config', str(path), '--resonances', '--distances'])
        with pytest.raises(SystemExit):
            simulate.main()
