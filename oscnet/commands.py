"""Simulation, resonance and rest-length commands."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from oscnet.distance import estimate
from oscnet.events import EventSet
from oscnet.io import read_event_csv, time_vector
from oscnet.model_components import build_network_from_config, initial_state_from_config
from oscnet.output import write_matrix_csv, write_resonances_csv, write_trajectory_csv
from oscnet.plotting import plot_resonances, plot_trajectory
from oscnet.resonance import resonances
from oscnet.scheduler import simulate
from oscnet.settings import (
    DEFAULT_CONFIG_PATH,
    has_key,
    read_config,
    req_float,
    req_int,
    req_list,
    req_str,
    resolve_path,
    solver_settings,
)


def _load(config_path: Path | None) -> tuple[dict, Path]:
    path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)
    return read_config(path), path.resolve().parent


def _output_dir(config: dict, base: Path) -> Path:
    out_dir = resolve_path(req_str(config, ['output_dir']), base)
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir


def _load_events(config: dict, base: Path, n: int, echo=print) -> EventSet:
    if not has_key(config, ['simulation', 'events_csv']):
        return EventSet()
    events_path = resolve_path(req_str(config, ['simulation', 'events_csv']), base)
    if not events_path.exists():
        raise FileNotFoundError(f"Missing event table: {events_path}")
    kind = config['simulation'].get('interpolation', None)
    events = read_event_csv(events_path, n, kind=kind)
    echo(f"Loaded {len(events)} event(s) from {events_path.name}")
    return events


def run_simulate(config_path: Path | None = None, echo=print, plots: bool | None = None) -> dict:
    """
    Simulate the configured network and write trajectory.csv (+ trajectory.png)
    and summary.json into output_dir.
    """
    config, base = _load(config_path)
    settings = solver_settings(config)

    model = build_network_from_config(config)
    z0 = initial_state_from_config(model, config)
    n = model.size()

    times = time_vector(
        req_float(config, ['simulation', 't_start_s']),
        req_float(config, ['simulation', 't_end_s']),
        req_int(config, ['simulation', 'n_samples']),
    )
    events = _load_events(config, base, n, echo=echo)

    echo(f"Network: {n} oscillator(s), {times.size} sample(s) in [{times[0]:.6g}, {times[-1]:.6g}] s")
    echo(f"  path: {'numeric (events present)' if events.has_events() else 'analytic'}")

    traj = simulate(model, z0, times, events, settings=settings, echo=echo)

    out_dir = _output_dir(config, base)
    write_trajectory_csv(out_dir / 'trajectory.csv', traj)

    if plots is None:
        plots = bool(config.get('plotting', {}).get('enabled', True))
    if plots:
        plot_trajectory(traj, out_dir / 'trajectory.png', event_times=events.boundary_times())

    summary = {
        'oscillators': n,
        'samples': int(times.size),
        'events': len(events),
        'final_state': {name: float(traj.states[-1, j]) for j, name in enumerate(traj.names)},
        'peak_abs_position': {
            traj.names[i]: float(np.max(np.abs(traj.x[:, i]))) for i in range(n)
        },
    }
    (out_dir / 'summary.json').write_text(json.dumps(summary, indent=2) + '\n', encoding='utf-8')

    echo(f"Results written to {out_dir}/")
    return summary


def run_resonances(config_path: Path | None = None, echo=print, plots: bool | None = None) -> list[dict]:
    config, base = _load(config_path)
    settings = solver_settings(config)
    model = build_network_from_config(config)

    res = resonances(model.system_matrix(), imag_tol=settings.imag_tol)

    echo('Resonances:')
    echo('  mode  freq_hz     undamped_hz  zeta')
    for i, r in enumerate(res, start=1):
        echo(f'  {i:4d}  {r.frequency_hz:10.5f}  {r.undamped_hz:10.5f}  {r.damping_ratio:7.4f}')

    out_dir = _output_dir(config, base)
    write_resonances_csv(out_dir / 'resonances.csv', res)
    if plots is None:
        plots = bool(config.get('plotting', {}).get('enabled', True))
    if plots:
        plot_resonances(res, out_dir / 'resonances.png')

    return [
        {'frequency_hz': r.frequency_hz, 'undamped_hz': r.undamped_hz, 'damping_ratio': r.damping_ratio}
        for r in res
    ]


def run_distances(config_path: Path | None = None, echo=print) -> np.ndarray:
    """
    Estimate rest lengths for the configured stiffness so that
    distance.equilibrium (or initial_state.positions) is a static state.
    """
    config, base = _load(config_path)
    model = build_network_from_config(config)

    mode = req_str(config, ['distance', 'ground_mode'])
    if has_key(config, ['distance', 'equilibrium']):
        eq = req_list(config, ['distance', 'equilibrium'])
    else:
        eq = req_list(config, ['initial_state', 'positions'])

    rest = estimate(model.stiffness, eq, mode, load=model.external_force)

    names = [f'x.{i + 1}' for i in range(model.size())]
    echo(f'Rest lengths ({mode} ground mode):')
    for i, name in enumerate(names):
        echo(f'  {name:6s}  ' + '  '.join(f'{rest[i, j]:10.5f}' for j in range(model.size())))

    out_dir = _output_dir(config, base)
    write_matrix_csv(out_dir / 'rest_lengths.csv', rest, names)
    return rest
